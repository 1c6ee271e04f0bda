"""Entry point the inspection-recording side calls after an inspection is saved."""
from app.logging_config import get_logger
from app.maintenance.tracker import ScheduleTracker

logger = get_logger(__name__)


def on_inspection_recorded(crane_id, inspection_date, tracker=None):
    """
    Forward a recorded inspection to the schedule tracker.

    Returns the updated MonthlyCraneStatus. NotFoundError propagates so the
    caller can initialize the month and retry.
    """
    tracker = tracker or ScheduleTracker()
    logger.info("Inspection recorded", crane_id=crane_id, inspection_date=str(inspection_date))
    return tracker.record_completion(crane_id, inspection_date)
