"""
Pure calendar logic for department maintenance windows.
Contains no database or clock dependencies - every date is passed in.

Months are 1-indexed (1 = January) everywhere in this module.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from app.maintenance.config import DEPARTMENT_COLORS, Department, ScheduleConfig
from app.maintenance.errors import InvalidDateError, InvalidDepartmentError


@dataclass(frozen=True)
class DepartmentWindow:
    """Inclusive day range a department owns in one specific month."""
    department: Department
    start_day: int
    end_day: int
    start_date: date
    end_date: date

    def contains(self, day: int) -> bool:
        return self.start_day <= day <= self.end_day

    def to_dict(self) -> Dict:
        return {
            'department': self.department.value,
            'start_day': self.start_day,
            'end_day': self.end_day,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
        }


@dataclass(frozen=True)
class ScheduleDay:
    day: int
    department: Department
    date: date

    def to_dict(self) -> Dict:
        return {
            'day': self.day,
            'department': self.department.value,
            'date': self.date.isoformat(),
            'color': DEPARTMENT_COLORS[self.department.value]['hex'],
        }


@dataclass(frozen=True)
class CalendarCell:
    """One cell of a month grid. Placeholder cells outside the month have day=None."""
    day: Optional[int] = None
    date: Optional[date] = None
    department: Optional[Department] = None
    is_today: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.day is None

    def to_dict(self) -> Dict:
        return {
            'day': self.day,
            'date': self.date.isoformat() if self.date else None,
            'department': self.department.value if self.department else None,
            'is_today': self.is_today,
        }


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def as_date(value) -> date:
    """
    Coerce a date-like value to a calendar date.

    Accepts date, datetime (the calendar day is used as-is, no timezone
    conversion) or an ISO 'YYYY-MM-DD' string.

    Raises:
        InvalidDateError: for anything else
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            raise InvalidDateError(value, "expected YYYY-MM-DD") from None
    raise InvalidDateError(value, "expected a date")


def validate_year_month(year, month) -> Tuple[int, int]:
    """Raise InvalidDateError unless year/month name a real calendar month."""
    for label, value in (("year", year), ("month", month)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDateError(value, f"{label} must be an integer")
    if not 1 <= month <= 12:
        raise InvalidDateError(month, "month must be 1-12")
    if not date.min.year <= year <= date.max.year:
        raise InvalidDateError(year, "year out of range")
    return year, month


def normalize_department(department) -> Department:
    """
    Resolve a Department from an enum member or a code string ('hbm', ' PTM ').

    Raises:
        InvalidDepartmentError: for unknown codes
    """
    if isinstance(department, Department):
        return department
    if isinstance(department, str):
        code = department.strip().upper()
        for member in Department:
            if member.value == code:
                return member
    raise InvalidDepartmentError(department)


# ---------------------------------------------------------------------------
# Window resolution
# ---------------------------------------------------------------------------

def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the month (28-31), leap years included."""
    year, month = validate_year_month(year, month)
    return calendar.monthrange(year, month)[1]


def month_name(month: int) -> str:
    return calendar.month_name[month]


def resolve_department_by_date(value) -> Department:
    """
    Resolve which department owns the given calendar day.

    Args:
        value: date, datetime or 'YYYY-MM-DD', already in the facility's local day

    Returns:
        Department: HSM, HBM, PTM, or RESCHEDULE for day 24 onwards
    """
    day = as_date(value).day
    for department, (start_day, end_day) in ScheduleConfig.DEPARTMENT_WINDOWS.items():
        if start_day <= day <= end_day:
            return department
    return Department.RESCHEDULE


def department_window(department, year: int, month: int) -> DepartmentWindow:
    """
    Get the date range for a department in a given month.

    Args:
        department: Department or code ('HSM', 'HBM', 'PTM', 'RESCHEDULE')
        year: Calendar year
        month: 1-indexed month

    Returns:
        DepartmentWindow with both day numbers and dates

    Raises:
        InvalidDepartmentError: for unknown department codes
        InvalidDateError: for an invalid year/month
    """
    department = normalize_department(department)
    last_day = last_day_of_month(year, month)

    if department.is_reschedule:
        start_day, end_day = ScheduleConfig.RESCHEDULE_START_DAY, last_day
    else:
        start_day, end_day = ScheduleConfig.DEPARTMENT_WINDOWS[department]

    return DepartmentWindow(
        department=department,
        start_day=start_day,
        end_day=end_day,
        start_date=date(year, month, start_day),
        end_date=date(year, month, end_day),
    )


def all_department_windows(year: int, month: int) -> Dict[Department, DepartmentWindow]:
    """Windows for HSM, HBM, PTM and RESCHEDULE, in calendar order."""
    return {
        department: department_window(department, year, month)
        for department in ScheduleConfig.ALL_PERIODS
    }


def is_reschedule_period(value) -> bool:
    return resolve_department_by_date(value) is Department.RESCHEDULE


def is_within_or_past_window(value, department) -> bool:
    """
    True when the department's cranes are addressable on this day: either its
    own window is active or the month is in its reschedule period.
    """
    department = normalize_department(department)
    active = resolve_department_by_date(value)
    return active is department or active.is_reschedule


def is_currently_in_window(department, value) -> bool:
    """True only inside the department's own window (reschedule days excluded for HSM/HBM/PTM)."""
    d = as_date(value)
    return department_window(department, d.year, d.month).contains(d.day)


def has_window_passed(department, value) -> bool:
    """True once the day-of-month is past the department's end day for that month."""
    d = as_date(value)
    return d.day > department_window(department, d.year, d.month).end_day


def days_remaining_in_window(value) -> int:
    """Days left in the active window after this one (0 on its last day)."""
    d = as_date(value)
    window = department_window(resolve_department_by_date(d), d.year, d.month)
    return max(0, window.end_day - d.day)


def next_window_start(value) -> Tuple[Department, date]:
    """
    The next window that opens strictly after the given day.

    From the reschedule period this rolls into HSM of the following month,
    including December -> January of the next year.
    """
    d = as_date(value)
    periods = ScheduleConfig.ALL_PERIODS
    index = periods.index(resolve_department_by_date(d))

    if index + 1 < len(periods):
        upcoming = periods[index + 1]
        return upcoming, department_window(upcoming, d.year, d.month).start_date

    year, month = (d.year + 1, 1) if d.month == 12 else (d.year, d.month + 1)
    upcoming = periods[0]
    return upcoming, department_window(upcoming, year, month).start_date


# ---------------------------------------------------------------------------
# Month views
# ---------------------------------------------------------------------------

def generate_month_schedule(year: int, month: int) -> List[ScheduleDay]:
    """One entry per calendar day, ascending. Each call builds a fresh list."""
    last_day = last_day_of_month(year, month)
    schedule = []
    for day in range(1, last_day + 1):
        current = date(year, month, day)
        schedule.append(ScheduleDay(day=day, department=resolve_department_by_date(current), date=current))
    return schedule


def generate_calendar_grid(year: int, month: int, today=None) -> List[List[CalendarCell]]:
    """
    Build Sunday-first week rows for a month calendar.

    Every row holds exactly 7 cells. Days outside the month are placeholder
    cells (day, date and department all None), so the first row starts on the
    weekday of day 1 and the last row is padded to a full week.

    Args:
        year: Calendar year
        month: 1-indexed month
        today: Optional facility date used to flag the current day

    Returns:
        List of weeks, each a list of 7 CalendarCell objects
    """
    year, month = validate_year_month(year, month)
    today = as_date(today) if today is not None else None

    weeks = []
    for week in calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(year, month):
        row = []
        for day in week:
            # monthdayscalendar uses 0 for days belonging to the neighbouring months
            if day == 0:
                row.append(CalendarCell())
                continue
            current = date(year, month, day)
            row.append(CalendarCell(
                day=day,
                date=current,
                department=resolve_department_by_date(current),
                is_today=current == today,
            ))
        weeks.append(row)
    return weeks


def current_window_status(value) -> Dict:
    """Summary of the window active on the given day, for dashboards."""
    d = as_date(value)
    active = resolve_department_by_date(d)
    window = department_window(active, d.year, d.month)
    return {
        'active_department': active.value,
        'year': d.year,
        'month': d.month,
        'month_name': month_name(d.month),
        'current_day': d.day,
        'window_start': window.start_day,
        'window_end': window.end_day,
        'window_start_date': window.start_date.isoformat(),
        'window_end_date': window.end_date.isoformat(),
        'days_remaining': days_remaining_in_window(d),
        'is_reschedule': active.is_reschedule,
        'color': DEPARTMENT_COLORS[active.value],
    }


def window_warning_message(crane_department, inspection_date) -> Optional[str]:
    """
    Warning for an inspection recorded outside the crane's window.

    Returns None inside the crane's own window and during the reschedule period.
    """
    d = as_date(inspection_date)
    department = normalize_department(crane_department)
    active = resolve_department_by_date(d)

    if active is department or active.is_reschedule:
        return None

    window = department_window(department, d.year, d.month)
    return (
        f"This crane belongs to {department.value} department. "
        f"The maintenance window for {department.value} is "
        f"{month_name(d.month)} {window.start_day}-{window.end_day}. "
        f"You are currently in the {active.value} window."
    )
