"""
Tests for the pure window calendar (no database, no clock).
"""
import calendar
from datetime import date, datetime

import pytest

from app.maintenance.config import Department, MaintenanceStatus, normalize_status
from app.maintenance.errors import InvalidDateError, InvalidDepartmentError, InvalidStatusError
from app.maintenance.windows import (
    all_department_windows,
    as_date,
    current_window_status,
    days_remaining_in_window,
    department_window,
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

ALL_MONTHS = [(year, month) for year in (2023, 2024, 2100) for month in range(1, 13)]


# ==============================================================================
# DAY -> DEPARTMENT
# ==============================================================================

class TestResolveDepartmentByDate:
    """Tests for resolve_department_by_date."""

    @pytest.mark.parametrize("day,expected", [
        (1, Department.HSM),
        (5, Department.HSM),
        (6, Department.HBM),
        (12, Department.HBM),
        (13, Department.PTM),
        (23, Department.PTM),
        (24, Department.RESCHEDULE),
        (31, Department.RESCHEDULE),
    ])
    def test_window_boundaries(self, day, expected):
        """Boundary days map to the right department in a 31-day month."""
        assert resolve_department_by_date(date(2024, 1, day)) is expected

    def test_accepts_iso_string_and_datetime(self):
        """Strings and datetimes resolve by their calendar day only."""
        assert resolve_department_by_date("2024-03-12") is Department.HBM
        assert resolve_department_by_date(datetime(2024, 3, 23, 23, 59)) is Department.PTM

    @pytest.mark.parametrize("bad", ["2024-13-01", "not a date", "", 20240301, None])
    def test_rejects_malformed_input(self, bad):
        """Malformed input fails fast instead of returning a sentinel."""
        with pytest.raises(InvalidDateError):
            resolve_department_by_date(bad)

    @pytest.mark.parametrize("year,month", ALL_MONTHS)
    def test_windows_partition_every_month(self, year, month):
        """Every day is owned by exactly one period and the window ranges tile the month."""
        last_day = last_day_of_month(year, month)
        windows = all_department_windows(year, month)

        covered = []
        for window in windows.values():
            covered.extend(range(window.start_day, window.end_day + 1))
        assert covered == list(range(1, last_day + 1))

        for day in range(1, last_day + 1):
            owner = resolve_department_by_date(date(year, month, day))
            owning = [d for d, w in windows.items() if w.contains(day)]
            assert owning == [owner]


# ==============================================================================
# MONTH LENGTH AND WINDOW RANGES
# ==============================================================================

class TestLastDayOfMonth:
    """Tests for last_day_of_month."""

    def test_known_month_lengths(self):
        """Leap February, common February and a 30-day month."""
        assert last_day_of_month(2024, 2) == 29
        assert last_day_of_month(2023, 2) == 28
        assert last_day_of_month(2024, 4) == 30
        assert last_day_of_month(2024, 12) == 31

    def test_century_years(self):
        """1900 and 2100 are not leap years, 2000 is."""
        assert last_day_of_month(2100, 2) == 28
        assert last_day_of_month(2000, 2) == 29

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month(self, month):
        """Months are 1-indexed; 0 and 13 are rejected."""
        with pytest.raises(InvalidDateError):
            last_day_of_month(2024, month)

    def test_non_integer_month(self):
        """Strings and bools are not accepted as month numbers."""
        with pytest.raises(InvalidDateError):
            last_day_of_month(2024, "2")
        with pytest.raises(InvalidDateError):
            last_day_of_month(2024, True)


class TestDepartmentWindow:
    """Tests for department_window."""

    def test_fixed_windows(self):
        """HSM, HBM and PTM have the same day range in every month."""
        assert (department_window("HSM", 2024, 2).start_day, department_window("HSM", 2024, 2).end_day) == (1, 5)
        assert (department_window("HBM", 2024, 2).start_day, department_window("HBM", 2024, 2).end_day) == (6, 12)
        assert (department_window("PTM", 2024, 2).start_day, department_window("PTM", 2024, 2).end_day) == (13, 23)

    def test_reschedule_ends_on_last_day(self):
        """RESCHEDULE runs from day 24 to the month's last day."""
        window = department_window(Department.RESCHEDULE, 2024, 2)
        assert window.start_date == date(2024, 2, 24)
        assert window.end_date == date(2024, 2, 29)

        window = department_window("reschedule", 2023, 2)
        assert window.end_day == 28

    def test_code_normalization(self):
        """Codes are matched case-insensitively with surrounding whitespace ignored."""
        assert department_window(" hbm ", 2024, 5).department is Department.HBM

    @pytest.mark.parametrize("bad", ["XYZ", "", None, 3])
    def test_unknown_department(self, bad):
        """Unknown codes raise InvalidDepartmentError."""
        with pytest.raises(InvalidDepartmentError):
            department_window(bad, 2024, 5)

    def test_to_dict(self):
        """Serialized window carries ISO dates."""
        assert department_window("PTM", 2024, 6).to_dict() == {
            'department': 'PTM',
            'start_day': 13,
            'end_day': 23,
            'start_date': '2024-06-13',
            'end_date': '2024-06-23',
        }


# ==============================================================================
# WINDOW PREDICATES
# ==============================================================================

class TestWindowPredicates:
    """Tests for the is_*/has_* helpers."""

    def test_is_reschedule_period(self):
        assert is_reschedule_period(date(2024, 4, 24))
        assert is_reschedule_period(date(2024, 4, 30))
        assert not is_reschedule_period(date(2024, 4, 23))

    def test_is_within_or_past_window(self):
        """A department is addressable in its own window and in reschedule, nowhere else."""
        assert is_within_or_past_window(date(2024, 3, 10), "HBM")
        assert is_within_or_past_window(date(2024, 3, 26), "HBM")
        assert not is_within_or_past_window(date(2024, 3, 3), "HBM")
        assert not is_within_or_past_window(date(2024, 3, 15), "HBM")

    def test_is_currently_in_window(self):
        """Only the department's own days count; reschedule days do not."""
        assert is_currently_in_window("HSM", date(2024, 3, 5))
        assert not is_currently_in_window("HSM", date(2024, 3, 26))

    def test_has_window_passed(self):
        assert not has_window_passed("HBM", date(2024, 3, 12))
        assert has_window_passed("HBM", date(2024, 3, 13))
        assert has_window_passed("HSM", date(2024, 3, 6))
        assert not has_window_passed("PTM", date(2024, 3, 1))

    def test_reschedule_window_never_passes_within_month(self):
        assert not has_window_passed("RESCHEDULE", date(2024, 3, 31))

    def test_days_remaining(self):
        assert days_remaining_in_window(date(2024, 3, 1)) == 4
        assert days_remaining_in_window(date(2024, 3, 12)) == 0
        assert days_remaining_in_window(date(2024, 2, 24)) == 5


class TestNextWindowStart:
    """Tests for next_window_start."""

    def test_next_window_same_month(self):
        assert next_window_start(date(2024, 3, 2)) == (Department.HBM, date(2024, 3, 6))
        assert next_window_start(date(2024, 3, 20)) == (Department.RESCHEDULE, date(2024, 3, 24))

    def test_rolls_into_next_month(self):
        assert next_window_start(date(2024, 3, 30)) == (Department.HSM, date(2024, 4, 1))

    def test_december_rolls_into_next_year(self):
        """December -> January increments the year."""
        assert next_window_start(date(2024, 12, 31)) == (Department.HSM, date(2025, 1, 1))


# ==============================================================================
# MONTH VIEWS
# ==============================================================================

class TestGenerateMonthSchedule:
    """Tests for generate_month_schedule."""

    def test_one_entry_per_day_in_order(self):
        schedule = generate_month_schedule(2024, 2)
        assert [entry.day for entry in schedule] == list(range(1, 30))
        assert schedule[0].department is Department.HSM
        assert schedule[-1].department is Department.RESCHEDULE
        assert schedule[-1].date == date(2024, 2, 29)

    def test_each_call_builds_a_fresh_list(self):
        """Generating twice gives equal, independent sequences."""
        first = generate_month_schedule(2024, 5)
        second = generate_month_schedule(2024, 5)
        assert first == second
        assert first is not second

    def test_to_dict_includes_color(self):
        entry = generate_month_schedule(2024, 5)[6].to_dict()
        assert entry['department'] == 'HBM'
        assert entry['date'] == '2024-05-07'
        assert entry['color'].startswith('#')


class TestGenerateCalendarGrid:
    """Tests for generate_calendar_grid."""

    @pytest.mark.parametrize("year,month", ALL_MONTHS)
    def test_complete_weeks_cover_month(self, year, month):
        """Rows are always 7 cells and real cells equal the number of days."""
        weeks = generate_calendar_grid(year, month)
        assert all(len(week) == 7 for week in weeks)

        real_cells = [cell for week in weeks for cell in week if not cell.is_placeholder]
        assert len(real_cells) == last_day_of_month(year, month)
        assert [cell.day for cell in real_cells] == list(range(1, last_day_of_month(year, month) + 1))

    def test_first_row_starts_on_weekday_of_day_one(self):
        """Sunday-first layout: day 1 sits in the column of its weekday."""
        # 2024-03-01 is a Friday
        first_week = generate_calendar_grid(2024, 3)[0]
        leading = [cell for cell in first_week if cell.is_placeholder]
        assert len(leading) == 5
        assert first_week[5].day == 1
        assert first_week[5].date.weekday() == calendar.FRIDAY

    def test_placeholders_have_no_department(self):
        cell = generate_calendar_grid(2024, 3)[0][0]
        assert cell.to_dict() == {'day': None, 'date': None, 'department': None, 'is_today': False}

    def test_today_is_flagged(self):
        weeks = generate_calendar_grid(2024, 3, today=date(2024, 3, 13))
        flagged = [cell for week in weeks for cell in week if cell.is_today]
        assert len(flagged) == 1
        assert flagged[0].day == 13
        assert flagged[0].department is Department.PTM

    def test_february_starting_on_sunday(self):
        """Feb 2015 starts on Sunday and fills exactly four rows."""
        weeks = generate_calendar_grid(2015, 2)
        assert len(weeks) == 4
        assert weeks[0][0].day == 1


class TestCurrentWindowStatus:
    """Tests for current_window_status."""

    def test_status_during_reschedule(self):
        status = current_window_status(date(2024, 2, 26))
        assert status['active_department'] == 'RESCHEDULE'
        assert status['is_reschedule'] is True
        assert status['window_end'] == 29
        assert status['days_remaining'] == 3
        assert status['month_name'] == 'February'

    def test_status_in_department_window(self):
        status = current_window_status("2024-07-06")
        assert status['active_department'] == 'HBM'
        assert status['window_start_date'] == '2024-07-06'
        assert status['window_end_date'] == '2024-07-12'


class TestWindowWarningMessage:
    """Tests for window_warning_message."""

    def test_no_warning_inside_own_window(self):
        assert window_warning_message("HBM", date(2024, 3, 8)) is None

    def test_no_warning_during_reschedule(self):
        assert window_warning_message("HSM", date(2024, 3, 28)) is None

    def test_warning_outside_window(self):
        message = window_warning_message("HBM", date(2024, 3, 2))
        assert "HBM" in message
        assert "March 6-12" in message
        assert "HSM window" in message


# ==============================================================================
# INPUT COERCION
# ==============================================================================

class TestInputCoercion:
    """Tests for as_date and normalize_status."""

    def test_as_date(self):
        assert as_date("2024-02-29") == date(2024, 2, 29)
        assert as_date(datetime(2024, 2, 29, 10, 30)) == date(2024, 2, 29)
        with pytest.raises(InvalidDateError):
            as_date("2023-02-29")

    @pytest.mark.parametrize("raw,expected", [
        ("completed", MaintenanceStatus.COMPLETED),
        (" Pending ", MaintenanceStatus.PENDING),
        ("re-scheduled", MaintenanceStatus.RESCHEDULED),
        ("RE_SCHEDULED", MaintenanceStatus.RESCHEDULED),
        ("missed", MaintenanceStatus.MISSED),
        (MaintenanceStatus.MISSED, MaintenanceStatus.MISSED),
    ])
    def test_normalize_status(self, raw, expected):
        assert normalize_status(raw) is expected

    @pytest.mark.parametrize("raw", ["OK", "NOT_OK", "", None, 1])
    def test_normalize_status_rejects_unknown(self, raw):
        with pytest.raises(InvalidStatusError):
            normalize_status(raw)
