# healthclub/jobs/dispatch_reminders.py
"""
Host-crontab entry point for reminder dispatch.

    python -m healthclub.jobs.dispatch_reminders [--dry-run] [--date YYYY-MM-DD]

Same work as GET /cron/process-scheduled-notifications.
"""
import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from healthclub.config.settings import settings  # noqa: E402
from healthclub.db.database import SessionLocal  # noqa: E402
from healthclub.errors import BadRequestError  # noqa: E402
from healthclub.services.dates import parse_day  # noqa: E402
from healthclub.services.fcm_push import init_firebase  # noqa: E402
from healthclub.services.reminder_dispatch import process_pending  # noqa: E402

logger = logging.getLogger("healthclub.jobs.dispatch_reminders")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send due medication reminders")
    parser.add_argument("--dry-run", action="store_true", help="report only, no sends or writes")
    parser.add_argument("--date", help="treat this day (YYYY-MM-DD) as today")
    args = parser.parse_args(argv)

    try:
        today = parse_day(args.date, "--date") if args.date else None
    except BadRequestError as e:
        logger.error("[dispatch] %s", e.message)
        return 2

    if not args.dry_run:
        init_firebase(settings.firebase_key_path)

    with SessionLocal() as db:
        report = process_pending(db, today=today, dry_run=args.dry_run)

    print(json.dumps(report.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    sys.exit(main())
