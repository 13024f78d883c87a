"""
Run one attendance notification pass from a scheduler (cron, systemd timer).

    python scripts/run_attendance_notifications.py late_arrival
    python scripts/run_attendance_notifications.py absent --date 2024-03-04
"""
import argparse
import json
import logging
import sys
from datetime import date

from ems.core.cache import QueryCache
from ems.core.logging import setup_logging
from ems.database import init_db, session_scope
from ems.services.attendance_notifications import NOTIFICATION_TYPES, AttendanceNotificationJob

setup_logging()
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send attendance notifications")
    parser.add_argument("type", choices=NOTIFICATION_TYPES)
    parser.add_argument("--employee-id", type=int, default=None)
    parser.add_argument("--date", type=date.fromisoformat, default=None)
    args = parser.parse_args(argv)

    init_db()
    try:
        with session_scope() as db:
            # A standalone process has no cached views to keep in sync
            result = AttendanceNotificationJob(db, QueryCache(enabled=False)).run(
                args.type, employee_id=args.employee_id, day=args.date
            )
    except Exception as e:
        logger.error(f"Attendance notification run failed: {e}", exc_info=True)
        return 1

    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
