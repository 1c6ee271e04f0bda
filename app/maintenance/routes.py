"""
API routes for calendar-based crane maintenance scheduling.

Mounted at /api/maintenance-schedule. Months are 1-indexed; a missing
year/month means the facility's current month.
"""
from flask import Blueprint, current_app, jsonify, request

from app.auth.utils import admin_required, get_current_user, login_required
from app.datetime_utils import facility_today
from app.logging_config import get_logger
from app.maintenance.errors import InvalidDateError, MaintenanceScheduleError
from app.maintenance.hooks import on_inspection_recorded
from app.maintenance.tracker import ScheduleTracker
from app.maintenance.windows import (
    as_date,
    current_window_status,
    department_window,
    generate_calendar_grid,
    month_name,
    validate_year_month,
)
from app.models import db

logger = get_logger(__name__)

maintenance_bp = Blueprint("maintenance", __name__)


def _today():
    """The facility's current date in the app's configured timezone."""
    return facility_today(current_app.config.get("FACILITY_TIMEZONE"))


def _parse_int(value, label):
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidDateError(value, f"{label} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidDateError(value, f"{label} must be an integer") from None


def _year_month(params):
    """Read year/month from a mapping, defaulting each to the facility's current month."""
    today = _today()
    year = _parse_int(params.get('year'), 'year')
    month = _parse_int(params.get('month'), 'month')
    return validate_year_month(
        year if year is not None else today.year,
        month if month is not None else today.month,
    )


def _crane_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _error_response(exc, message):
    """JSON envelope for a failed request. Domain errors keep their own status code."""
    if isinstance(exc, MaintenanceScheduleError):
        return jsonify({"success": False, "message": message, "error": exc.message}), exc.status_code

    logger.error(message, error=str(exc), exc_info=True)
    return jsonify({"success": False, "message": message, "error": str(exc)}), 500


@maintenance_bp.route("/calendar", methods=["GET"])
@login_required
def get_calendar():
    """Calendar data with the department assignment of each day and per-department progress."""
    try:
        year, month = _year_month(request.args)
        data = ScheduleTracker().get_calendar(year, month)
        return jsonify({"success": True, "data": data}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to fetch calendar data")


@maintenance_bp.route("/calendar-grid", methods=["GET"])
@login_required
def get_calendar_grid():
    """Sunday-first 7-column grid for rendering the month."""
    try:
        year, month = _year_month(request.args)
        weeks = generate_calendar_grid(year, month, today=_today())
        return jsonify({
            "success": True,
            "data": {
                "year": year,
                "month": month,
                "month_name": month_name(month),
                "weeks": [[cell.to_dict() for cell in week] for week in weeks],
            }
        }), 200
    except Exception as exc:
        return _error_response(exc, "Failed to build calendar grid")


@maintenance_bp.route("/status", methods=["GET"])
@login_required
def get_department_status():
    """Maintenance status of a department's cranes for a month."""
    department_code = request.args.get('department_code')
    if not department_code:
        return jsonify({"success": False, "message": "department_code is required"}), 400

    try:
        year, month = _year_month(request.args)
        tracker = ScheduleTracker()
        cranes = tracker.get_department_status(department_code, year, month)
        summary = tracker.get_department_summary(department_code, year, month)
        window = department_window(department_code, year, month)

        return jsonify({
            "success": True,
            "data": {
                "department": window.department.value,
                "year": year,
                "month": month,
                "window": window.to_dict(),
                "summary": summary,
                "cranes": cranes,
            }
        }), 200
    except Exception as exc:
        return _error_response(exc, "Failed to fetch department status")


@maintenance_bp.route("/reschedule", methods=["GET"])
@login_required
def get_reschedule_cranes():
    """Cranes that missed their window this month, for the reschedule period."""
    try:
        year, month = _year_month(request.args)
        data = ScheduleTracker().get_reschedule_cranes(year, month)
        return jsonify({"success": True, "data": data}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to fetch reschedule cranes")


@maintenance_bp.route("/active-window", methods=["GET"])
@login_required
def get_active_window():
    """The window active today, or on ?date=YYYY-MM-DD."""
    try:
        requested = request.args.get('date')
        day = as_date(requested) if requested else _today()
        return jsonify({"success": True, "data": current_window_status(day)}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to fetch active window")


@maintenance_bp.route("/check-window", methods=["GET"])
@login_required
def check_window():
    """Whether an inspection on the given date is inside the crane's window."""
    crane_id = _crane_id(request.args.get('crane_id'))
    if crane_id is None:
        return jsonify({"success": False, "message": "crane_id is required"}), 400

    try:
        requested = request.args.get('inspection_date')
        inspection_date = as_date(requested) if requested else _today()
        data = ScheduleTracker().check_window(crane_id, inspection_date)
        return jsonify({"success": True, "data": data}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to check window")


@maintenance_bp.route("/crane/<int:crane_id>", methods=["GET"])
@login_required
def get_crane_status(crane_id):
    """Tracking record of one crane for a month."""
    try:
        year, month = _year_month(request.args)
        data = ScheduleTracker().get_crane_status(crane_id, year, month)
        return jsonify({"success": True, "data": data}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to fetch crane status")


@maintenance_bp.route("/mark-status", methods=["POST"])
@admin_required
def mark_status():
    """Manually mark a crane's maintenance status (admin override)."""
    data = request.get_json(silent=True) or {}
    crane_id = _crane_id(data.get('crane_id'))
    status = data.get('status')

    if crane_id is None or not data.get('year') or not data.get('month') or not status:
        return jsonify({
            "success": False,
            "message": "crane_id, year, month, and status are required"
        }), 400

    try:
        year, month = _year_month(data)
        user = get_current_user()
        record = ScheduleTracker().mark_status(
            crane_id,
            year,
            month,
            status,
            data.get('notes'),
            now=_today(),
            marked_by=user.id if user else None,
        )
        return jsonify({
            "success": True,
            "message": f"Crane status updated to {record.status.value}",
            "data": record.to_dict()
        }), 200
    except Exception as exc:
        db.session.rollback()
        return _error_response(exc, "Failed to update status")


@maintenance_bp.route("/initialize", methods=["POST"])
@admin_required
def initialize_month():
    """Create PENDING tracking rows for every active crane (safe to repeat)."""
    try:
        year, month = _year_month(request.get_json(silent=True) or {})
        result = ScheduleTracker().initialize_month(year, month)
        return jsonify({
            "success": True,
            "message": f"Initialized tracking for {month}/{year}",
            "data": result
        }), 200
    except Exception as exc:
        db.session.rollback()
        return _error_response(exc, "Failed to initialize month tracking")


@maintenance_bp.route("/update-expired", methods=["POST"])
@admin_required
def update_expired_statuses():
    """Mark PENDING rows MISSED for every window that has passed as of today."""
    try:
        today = _today()
        updated = ScheduleTracker().update_expired_statuses(today)
        return jsonify({
            "success": True,
            "message": "Expired statuses updated",
            "data": {"date": today.isoformat(), "updated_count": updated}
        }), 200
    except Exception as exc:
        db.session.rollback()
        return _error_response(exc, "Failed to update expired statuses")


@maintenance_bp.route("/inspection-recorded", methods=["POST"])
@login_required
def inspection_recorded():
    """Notification from the inspection side that a crane was inspected."""
    data = request.get_json(silent=True) or {}
    crane_id = _crane_id(data.get('crane_id'))
    if crane_id is None:
        return jsonify({"success": False, "message": "crane_id is required"}), 400

    try:
        requested = data.get('inspection_date')
        inspection_date = as_date(requested) if requested else _today()
        record = on_inspection_recorded(crane_id, inspection_date)
        return jsonify({"success": True, "data": record.to_dict()}), 200
    except Exception as exc:
        db.session.rollback()
        return _error_response(exc, "Failed to record maintenance completion")
