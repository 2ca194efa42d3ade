#!/usr/bin/env python3
"""
Script to create a team official (or reset its password) and link its team

Usage:
    python scripts/create_official.py <username> <team name> [--code CODE]

The password is read from the OFFICIAL_PASSWORD environment variable or
prompted for.
"""
import argparse
import getpass
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rosterdesk import config
from rosterdesk.errors import DuplicateRecordError
from rosterdesk.storage import StorageManager


def create_official(username, team_name, password, code=None, data_dir=None):
    """Create or update the official and link the team; returns True on success"""
    storage = StorageManager(data_dir or config.DATA_DIR)

    existing = storage.get_official_by_username(username)
    if existing:
        print(f"Official '{username}' already exists. Updating password and team...")
        official = storage.update_official(existing.id, password=password, team_name=team_name)
    else:
        print(f"Creating official '{username}'...")
        official = storage.create_official(username, password, team_name)
        print(f"✓ Official '{username}' created (id {official.id})")

    team = storage.link_team_to_official(team_name, official.id)
    if code and team.code != code:
        team.code = code
        try:
            storage.save_team(team)
        except DuplicateRecordError as e:
            print(f"✗ {e.message}")
            return False
        print(f"✓ Registration code '{code}' assigned to {team_name}")

    print(f"✓ Team '{team_name}' linked to '{username}'")
    return True


def main():
    parser = argparse.ArgumentParser(description="Create a team official")
    parser.add_argument('username')
    parser.add_argument('team_name')
    parser.add_argument('--code', help="Registration code to assign to the team")
    parser.add_argument('--data-dir', help="Data directory (defaults to DATA_DIR)")
    args = parser.parse_args()

    password = os.environ.get('OFFICIAL_PASSWORD') or getpass.getpass("Password: ")
    if not password:
        print("✗ A password is required")
        return 1

    ok = create_official(args.username, args.team_name, password, code=args.code, data_dir=args.data_dir)
    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
