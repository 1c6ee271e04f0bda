"""
Calendar-based crane maintenance scheduling.

Window resolution (which department owns a day, window ranges, calendar
views) is pure and re-exported here. The stateful tracker lives in
app.maintenance.tracker and the HTTP blueprint in app.maintenance.routes.
"""

from app.maintenance.config import Department, MaintenanceStatus, ScheduleConfig, normalize_status
from app.maintenance.errors import (
    InvalidDateError,
    InvalidDepartmentError,
    InvalidStatusError,
    MaintenanceScheduleError,
    NotFoundError,
)
from app.maintenance.windows import (
    all_department_windows,
    current_window_status,
    department_window,
    days_remaining_in_window,
    generate_calendar_grid,
    generate_month_schedule,
    has_window_passed,
    is_currently_in_window,
    is_reschedule_period,
    is_within_or_past_window,
    last_day_of_month,
    next_window_start,
    resolve_department_by_date,
    window_warning_message,
)

__all__ = [
    'Department',
    'MaintenanceStatus',
    'ScheduleConfig',
    'normalize_status',
    'MaintenanceScheduleError',
    'InvalidDateError',
    'InvalidDepartmentError',
    'InvalidStatusError',
    'NotFoundError',
    'resolve_department_by_date',
    'last_day_of_month',
    'department_window',
    'all_department_windows',
    'is_reschedule_period',
    'is_within_or_past_window',
    'is_currently_in_window',
    'has_window_passed',
    'days_remaining_in_window',
    'next_window_start',
    'generate_month_schedule',
    'generate_calendar_grid',
    'current_window_status',
    'window_warning_message',
]
