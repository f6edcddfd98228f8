import argparse
import logging
import sys
from pathlib import Path

from src.adapters.clock import SystemClock
from src.adapters.dev_notifier import DevNotificationAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteConsultationRepo, SQLiteInvitationRepo
from src.components.invite import InviteConfig, SendUpcomingNoticesInput, run_send_upcoming_notices
from src.rules.loader import load_rules
from src.rules.models import Rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DB_PATH = "data/telehealth.db"
MIGRATIONS_DIR = "migrations"
RULES_PATH = "rules.yaml"


def get_rules() -> Rules:
    if not Path(RULES_PATH).exists():
        logger.error("Rules file %s not found.", RULES_PATH)
        sys.exit(1)
    return load_rules(Path(RULES_PATH))


def handle_migrate(args: argparse.Namespace) -> None:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    migrator = SQLiteMigrator(args.db, MIGRATIONS_DIR)
    if args.dry_run:
        pending = migrator.pending()
        print(f"{len(pending)} pending migration(s): {', '.join(pending) or 'none'}")
        return
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_send_upcoming(args: argparse.Namespace) -> int:
    rules = get_rules()
    policy = rules.invitations
    config = InviteConfig(
        patient_base_url=args.patient_url or policy.patient_base_url,
        device_test_cutoff_minutes=policy.device_test_cutoff_minutes,
        upcoming_notice_window_minutes=policy.upcoming_notice_window_minutes,
    )

    result = run_send_upcoming_notices(
        SendUpcomingNoticesInput(window_minutes=args.window),
        SQLiteInvitationRepo(args.db),
        SQLiteConsultationRepo(args.db),
        DevNotificationAdapter(),
        SystemClock(),
        config,
    )
    print(f"Processed {result.processed} upcoming consultations: {result.sent} sent, {result.failed} failed.")
    return 1 if result.failed else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Telehealth admission CLI")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument(
        "--dry-run", action="store_true", help="List pending migrations without applying"
    )

    # send_upcoming
    upcoming_parser = subparsers.add_parser(
        "send_upcoming", help="Send pre-consultation notices for consultations starting soon"
    )
    upcoming_parser.add_argument(
        "--window", type=int, default=None, help="Look-ahead window in minutes"
    )
    upcoming_parser.add_argument("--patient-url", default=None, help="Patient app base URL")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
        return 0
    elif args.command == "send_upcoming":
        return handle_send_upcoming(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
