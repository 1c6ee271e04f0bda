"""
Background entry points for the maintenance schedule.

Run daily by the in-process APScheduler (see app.init_scheduler) or from
cron via ``python -m app.scripts.maintenance_cron``. Both paths call the
same functions; the tracker itself never schedules anything.
"""
from app.datetime_utils import facility_today
from app.logging_config import get_logger
from app.maintenance.notifier import notify_missed_cranes
from app.maintenance.tracker import ScheduleTracker
from app.models import db

logger = get_logger(__name__)


def initialize_current_month(today=None, tracker=None):
    today = today or facility_today()
    tracker = tracker or ScheduleTracker()
    return tracker.initialize_month(today.year, today.month)


def expire_and_notify(today=None, tracker=None, notify=True):
    """
    Run the expiry check for ``today`` and, when rows were newly flagged,
    send the month's missed-crane summary.

    Returns:
        dict: date, updated_count, notified
    """
    today = today or facility_today()
    tracker = tracker or ScheduleTracker()

    updated = tracker.update_expired_statuses(today)
    notified = False
    if updated and notify:
        notified = notify_missed_cranes(tracker.get_reschedule_cranes(today.year, today.month))

    return {'date': today.isoformat(), 'updated_count': updated, 'notified': notified}


def run_daily_maintenance(app):
    """Scheduler job: make sure this month is tracked, then expire passed windows."""
    with app.app_context():
        today = facility_today(app.config.get("FACILITY_TIMEZONE"))
        try:
            tracker = ScheduleTracker()
            initialize_current_month(today, tracker)
            result = expire_and_notify(today, tracker)
            logger.info("Daily maintenance job finished", **result)
        except Exception as exc:
            db.session.rollback()
            logger.error("Daily maintenance job failed", error=str(exc), exc_info=True)
        finally:
            db.session.remove()
