"""
RosterDesk - player registration and roster reports for an amateur league.
"""

__version__ = "1.0.0"
