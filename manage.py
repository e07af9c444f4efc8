#!/usr/bin/env python3
"""
Management script for the lecture hub.
Supports registering admins, toggling admin rights and maintenance.

Usage:
  python manage.py create_admin <telegram_id> [--username NAME] [--no-admin]
  python manage.py set_admin <telegram_id> (--on | --off)
  python manage.py list_users
  python manage.py reconcile
"""

import sys
import os
from argparse import ArgumentParser

# Ensure lecture_hub can be imported
sys.path.insert(0, os.path.dirname(__file__))

from lecture_hub.database import SessionLocal, engine
from lecture_hub.models import Base
from lecture_hub import crud, lectures
from lecture_hub.errors import LectureHubError, NotFoundError
from lecture_hub.logging_config import configure_logging


def create_admin(telegram_id: str, username: str = None, is_admin: bool = True):
    """Register a user by Telegram ID."""
    db = SessionLocal()
    try:
        existing = crud.get_user_by_telegram_id(db, telegram_id)
        if existing:
            print(f"❌ User with Telegram ID {telegram_id} already exists (id={existing.id})")
            return False

        user = crud.create_user(db, telegram_id, username=username, is_admin=is_admin)
        role = "admin" if is_admin else "user"
        print(f"✅ Created {role} user:")
        print(f"   Telegram ID: {telegram_id}")
        print(f"   ID: {user.id}")
        return True
    except LectureHubError as e:
        print(f"❌ Error creating user: {e}")
        return False
    finally:
        db.close()


def set_admin(telegram_id: str, is_admin: bool):
    """Grant or revoke admin rights of an existing user."""
    db = SessionLocal()
    try:
        user = crud.set_user_admin_status(db, telegram_id, is_admin)
        state = "granted to" if is_admin else "revoked from"
        print(f"✅ Admin rights {state} {user.username or user.telegram_id}")
        return True
    except NotFoundError:
        print(f"❌ User with Telegram ID {telegram_id} not found. They must send /start to the bot first.")
        return False
    finally:
        db.close()


def list_users():
    """List all users in the database."""
    db = SessionLocal()
    try:
        users = crud.list_users(db)
        if not users:
            print("No users found.")
            return

        print("\n📋 Users in database:")
        print(f"{'Telegram ID':<15} {'Username':<20} {'Role':<10} {'Created':<20}")
        print("-" * 65)
        for user in users:
            role = "admin" if user.is_admin else "student"
            created = user.created_at.isoformat() if user.created_at else "N/A"
            print(f"{user.telegram_id:<15} {(user.username or '-'):<20} {role:<10} {created:<20}")
    finally:
        db.close()


def reconcile():
    """Remove lectures whose stored file is missing."""
    db = SessionLocal()
    try:
        removed = lectures.reconcile_orphans(db)
        print(f"✅ Removed {removed} orphaned lecture(s); {crud.count_lectures(db)} left")
        return True
    except LectureHubError as e:
        print(f"❌ Reconcile failed: {e}")
        return False
    finally:
        db.close()


def main():
    parser = ArgumentParser(description="Lecture hub management script")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # create_admin command
    create_parser = subparsers.add_parser("create_admin", help="Register a new admin user")
    create_parser.add_argument("telegram_id", help="Telegram user ID")
    create_parser.add_argument("--username", help="Telegram username")
    create_parser.add_argument("--no-admin", action="store_true", help="Create as regular user (not admin)")

    # set_admin command
    admin_parser = subparsers.add_parser("set_admin", help="Grant or revoke admin rights")
    admin_parser.add_argument("telegram_id", help="Telegram user ID")
    toggle = admin_parser.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--on", dest="is_admin", action="store_true", help="Grant admin rights")
    toggle.add_argument("--off", dest="is_admin", action="store_false", help="Revoke admin rights")

    # list_users command
    subparsers.add_parser("list_users", help="List all users")

    # reconcile command
    subparsers.add_parser("reconcile", help="Remove lectures whose file is missing")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging()
    Base.metadata.create_all(bind=engine)

    if args.command == "create_admin":
        success = create_admin(args.telegram_id, username=args.username, is_admin=not args.no_admin)
        sys.exit(0 if success else 1)

    elif args.command == "set_admin":
        success = set_admin(args.telegram_id, args.is_admin)
        sys.exit(0 if success else 1)

    elif args.command == "list_users":
        list_users()
        sys.exit(0)

    elif args.command == "reconcile":
        success = reconcile()
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
