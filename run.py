#!/usr/bin/env python3
"""
RosterDesk - Development Entry Point
Roster registration and report backend for the league
"""

from rosterdesk.main import main

if __name__ == '__main__':
    main()
