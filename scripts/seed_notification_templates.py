"""Utility script to load the default notification templates into the database."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from outdrinkme.application.use_cases.notifications import DEFAULT_TEMPLATES, seed_templates
from outdrinkme.domain.entities import NotificationType
from outdrinkme.infrastructure.database import SessionLocal, initialize_database
from outdrinkme.infrastructure.repositories import NotificationTemplateRepository


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for template seeding."""

    parser = argparse.ArgumentParser(
        description="Insert or refresh the default notification templates.",
    )
    parser.add_argument(
        "--only",
        nargs="+",
        choices=[notification_type.value for notification_type in NotificationType],
        default=None,
        help="Seed only the listed notification types (default: all of them)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the templates currently stored instead of seeding",
    )
    return parser.parse_args()


def _print_templates(templates) -> None:
    for template in templates:
        print(f"  {template.type.value} ({template.default_priority.value}, ttl {template.ttl_hours}h)")


def list_templates() -> None:
    session = SessionLocal()
    try:
        stored = NotificationTemplateRepository(session).list()
    finally:
        session.close()
    print(f"{len(stored)} notification template(s) stored:")
    _print_templates(stored)


def main() -> None:
    """Seed the templates selected on the command line."""

    args = parse_args()
    initialize_database()
    if args.list:
        list_templates()
        return

    templates = [
        template
        for template in DEFAULT_TEMPLATES
        if args.only is None or template.type.value in args.only
    ]

    session = SessionLocal()
    try:
        seeded = seed_templates(session, templates)
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Failed to store notification templates: {exc}") from exc
    else:
        print(f"Seeded {len(seeded)} notification template(s):")
        _print_templates(seeded)
    finally:
        session.close()


if __name__ == "__main__":
    main()
