"""
Run maintenance-schedule jobs from cron or by hand.

Deployments that do not run the in-process scheduler (IS_SCHEDULER_INSTANCE
unset on every worker) call this once a day instead.

Usage:
    python -m app.scripts.maintenance_cron initialize                      # current month
    python -m app.scripts.maintenance_cron initialize --year 2025 --month 3
    python -m app.scripts.maintenance_cron update-expired                  # as of today
    python -m app.scripts.maintenance_cron update-expired --date 2025-03-13 --no-notify
    python -m app.scripts.maintenance_cron daily                           # initialize + update-expired
    python -m app.scripts.maintenance_cron report --out maintenance_2025_03.csv --year 2025 --month 3
"""

import argparse

from app.datetime_utils import facility_today
from app.logging_config import get_logger
from app.maintenance.windows import as_date

logger = get_logger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Crane maintenance schedule jobs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("initialize", help="Create PENDING rows for every active crane")
    init_parser.add_argument("--year", type=int, help="Year (default: current facility year)")
    init_parser.add_argument("--month", type=int, help="1-indexed month (default: current facility month)")

    expire_parser = subparsers.add_parser("update-expired", help="Mark PENDING rows MISSED once their window has passed")
    expire_parser.add_argument("--date", help="Evaluate as of YYYY-MM-DD (default: facility today)")
    expire_parser.add_argument("--no-notify", action="store_true", help="Skip the Telegram summary")

    daily_parser = subparsers.add_parser("daily", help="initialize + update-expired for today")
    daily_parser.add_argument("--no-notify", action="store_true", help="Skip the Telegram summary")

    report_parser = subparsers.add_parser("report", help="Write the month's per-crane status table to CSV")
    report_parser.add_argument("--out", required=True, help="Output CSV path")
    report_parser.add_argument("--year", type=int, help="Year (default: current facility year)")
    report_parser.add_argument("--month", type=int, help="1-indexed month (default: current facility month)")

    return parser


def run(args, app):
    """Execute the parsed command inside the app context. Returns a result dict."""
    from app.maintenance.jobs import expire_and_notify, initialize_current_month
    from app.maintenance.tracker import ScheduleTracker

    with app.app_context():
        today = facility_today(app.config.get("FACILITY_TIMEZONE"))
        tracker = ScheduleTracker()

        if args.command == "initialize":
            return tracker.initialize_month(args.year or today.year, args.month or today.month)

        if args.command == "update-expired":
            day = as_date(args.date) if args.date else today
            return expire_and_notify(day, tracker, notify=not args.no_notify)

        if args.command == "daily":
            initialized = initialize_current_month(today, tracker)
            expired = expire_and_notify(today, tracker, notify=not args.no_notify)
            return {'initialize': initialized, 'update_expired': expired}

        if args.command == "report":
            year, month = args.year or today.year, args.month or today.month
            frame = tracker.monthly_report_frame(year, month)
            frame.to_csv(args.out, index=False)
            return {'year': year, 'month': month, 'rows': len(frame), 'path': args.out}

    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    from app import create_app

    args = build_parser().parse_args(argv)
    app = create_app({"MAINTENANCE_SCHEDULER_ENABLED": False})

    try:
        result = run(args, app)
    except Exception as exc:
        logger.error("Maintenance job failed", command=args.command, error=str(exc), exc_info=True)
        print(f"✗ {args.command} failed: {exc}")
        return 1

    print(f"✓ {args.command}: {result}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
