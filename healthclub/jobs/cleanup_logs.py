# healthclub/jobs/cleanup_logs.py
"""
Host-crontab entry point for log retention.

    python -m healthclub.jobs.cleanup_logs [--force]

Without --force it deletes only during the configured cleanup hour (UTC).
"""
import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from healthclub.db.database import SessionLocal  # noqa: E402
from healthclub.services.retention import purge_old, resolve_retention_settings  # noqa: E402

logger = logging.getLogger("healthclub.jobs.cleanup_logs")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Delete old push/webhook logs and resolved reminders")
    parser.add_argument("--force", action="store_true", help="ignore the cleanup hour")
    args = parser.parse_args(argv)

    with SessionLocal() as db:
        retention_days, cleanup_hour = resolve_retention_settings(db)
        try:
            report = purge_old(db, retention_days, cleanup_hour, force=args.force)
        except ValueError as e:
            logger.error("[retention] bad settings: %s", e)
            return 2

    print(json.dumps(report.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    sys.exit(main())
