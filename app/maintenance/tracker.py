"""
Service layer for per-crane monthly maintenance tracking.

Owns creation and status transitions of MonthlyCraneStatus rows:

    PENDING -> COMPLETED     inspection recorded on time (or first seen in reschedule)
    PENDING -> MISSED        department window passed without an inspection
    MISSED  -> RESCHEDULED   inspection recorded during the reschedule period

COMPLETED and RESCHEDULED are terminal for the automatic paths. Every
transition is a single conditional UPDATE on the current status, so
concurrent writers cannot move a row out of a terminal state.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy import func, or_, and_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from app.logging_config import MaintenanceRunContext, get_logger
from app.maintenance.config import (
    DEPARTMENT_COLORS,
    Department,
    MaintenanceStatus,
    ScheduleConfig,
    normalize_status,
)
from app.maintenance.errors import InvalidDepartmentError, NotFoundError
from app.maintenance.roster import CraneInfo, SqlAlchemyCraneRoster
from app.maintenance.windows import (
    all_department_windows,
    as_date,
    department_window,
    generate_month_schedule,
    has_window_passed,
    is_reschedule_period,
    is_within_or_past_window,
    month_name,
    normalize_department,
    resolve_department_by_date,
    validate_year_month,
    window_warning_message,
)
from app.models import MonthlyCraneStatus, db

logger = get_logger(__name__)

_UNIQUE_KEY = ["crane_id", "year", "month"]


def _empty_summary() -> Dict[str, int]:
    return {'total': 0, 'completed': 0, 'pending': 0, 'missed': 0, 'rescheduled': 0}


class ScheduleTracker:
    """Stateful maintenance tracking over the application database."""

    def __init__(self, roster=None, session=None):
        self.session = session or db.session
        self.roster = roster or SqlAlchemyCraneRoster(self.session)

    @contextmanager
    def _unit_of_work(self, commit: bool):
        """Commit on success when asked to; always roll back on failure and re-raise."""
        try:
            yield
            if commit:
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Month initialization
    # ------------------------------------------------------------------

    def initialize_month(self, year: int, month: int, commit: bool = True) -> Dict:
        """
        Ensure every active crane of HSM/HBM/PTM has a PENDING row for the month.

        Insert-if-absent per crane: existing rows are never overwritten, so the
        call is safe to repeat or run concurrently.

        Args:
            year: Calendar year
            month: 1-indexed month
            commit: Whether to commit the transaction (default: True)

        Returns:
            dict: created_count, total_cranes, skipped_cranes
        """
        validate_year_month(year, month)
        windows = {
            department: department_window(department, year, month)
            for department in ScheduleConfig.MAINTENANCE_DEPARTMENTS
        }

        with MaintenanceRunContext("initialize_month", year=year, month=month) as run:
            cranes = self.roster.list_active_cranes()
            created_count = 0
            skipped_count = 0

            with self._unit_of_work(commit):
                for crane in cranes:
                    department = self._maintenance_department(crane.department)
                    if department is None:
                        skipped_count += 1
                        logger.debug(
                            "Skipping crane without a maintenance window",
                            crane_id=crane.crane_id,
                            department=crane.department,
                        )
                        continue

                    if self._insert_if_absent(crane, windows[department], year, month):
                        created_count += 1

            run.logger.info(
                "Month tracking initialized",
                created_count=created_count,
                total_cranes=len(cranes),
                skipped_cranes=skipped_count,
            )

        return {
            'year': year,
            'month': month,
            'created_count': created_count,
            'total_cranes': len(cranes),
            'skipped_cranes': skipped_count,
        }

    @staticmethod
    def _maintenance_department(code) -> Optional[Department]:
        try:
            department = normalize_department(code)
        except InvalidDepartmentError:
            return None
        return department if department in ScheduleConfig.MAINTENANCE_DEPARTMENTS else None

    def _insert_if_absent(self, crane: CraneInfo, window, year: int, month: int) -> bool:
        """Insert a PENDING row unless (crane, year, month) exists. Returns True if inserted."""
        now = datetime.utcnow()
        values = {
            'crane_id': crane.crane_id,
            'department_code': window.department.value,
            'year': year,
            'month': month,
            'status': MaintenanceStatus.PENDING,
            'scheduled_start': window.start_date,
            'scheduled_end': window.end_date,
            'completed_in_reschedule': False,
            'manually_marked': False,
            'created_at': now,
            'updated_at': now,
        }

        dialect = self.session.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            dialect_insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = (
                dialect_insert(MonthlyCraneStatus.__table__)
                .values(**values)
                .on_conflict_do_nothing(index_elements=_UNIQUE_KEY)
            )
            return self.session.execute(stmt).rowcount == 1

        # Other backends: a savepoint turns the unique-constraint violation into a no-op
        try:
            with self.session.begin_nested():
                self.session.add(MonthlyCraneStatus(**values))
        except IntegrityError:
            return False
        return True

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def _summaries(self, year: int, month: int) -> Dict[str, Dict[str, int]]:
        rows = (
            self.session.query(
                MonthlyCraneStatus.department_code,
                MonthlyCraneStatus.status,
                func.count(MonthlyCraneStatus.id),
            )
            .filter(MonthlyCraneStatus.year == year, MonthlyCraneStatus.month == month)
            .group_by(MonthlyCraneStatus.department_code, MonthlyCraneStatus.status)
            .all()
        )

        summaries = {department.value: _empty_summary() for department in ScheduleConfig.MAINTENANCE_DEPARTMENTS}
        for department_code, status, count in rows:
            summary = summaries.setdefault(department_code, _empty_summary())
            summary[status.value.lower()] += count
            summary['total'] += count
        return summaries

    def get_calendar(self, year: int, month: int) -> Dict:
        """
        Month calendar with per-department progress.

        ``completed`` and ``rescheduled`` are reported separately; both count
        as done for progress purposes.
        """
        validate_year_month(year, month)
        windows = all_department_windows(year, month)
        return {
            'year': year,
            'month': month,
            'month_name': month_name(month),
            'schedule': [day.to_dict() for day in generate_month_schedule(year, month)],
            'department_windows': {department.value: window.to_dict() for department, window in windows.items()},
            'department_colors': DEPARTMENT_COLORS,
            'summaries': self._summaries(year, month),
        }

    def get_department_summary(self, department, year: int, month: int) -> Dict[str, int]:
        department = normalize_department(department)
        validate_year_month(year, month)
        return self._summaries(year, month).get(department.value, _empty_summary())

    def _active_cranes_by_id(self) -> Dict[int, CraneInfo]:
        return {crane.crane_id: crane for crane in self.roster.list_active_cranes()}

    @staticmethod
    def _status_row(record: MonthlyCraneStatus, crane: CraneInfo) -> Dict:
        row = record.to_dict()
        row.update({
            'crane_number': crane.crane_number,
            'shed_id': crane.shed_id,
            'shed_name': crane.shed_name,
        })
        return row

    def get_department_status(self, department, year: int, month: int) -> List[Dict]:
        """Status rows for the department's active cranes, ordered by shed then crane number."""
        department = normalize_department(department)
        if department.is_reschedule:
            raise InvalidDepartmentError(department.value)
        validate_year_month(year, month)

        cranes = self._active_cranes_by_id()
        records = (
            self.session.query(MonthlyCraneStatus)
            .filter(
                MonthlyCraneStatus.department_code == department.value,
                MonthlyCraneStatus.year == year,
                MonthlyCraneStatus.month == month,
            )
            .all()
        )

        rows = [self._status_row(r, cranes[r.crane_id]) for r in records if r.crane_id in cranes]
        rows.sort(key=lambda row: (row['shed_name'] or '', row['crane_number']))
        return rows

    def get_reschedule_cranes(self, year: int, month: int) -> Dict:
        """MISSED cranes of the month with their original windows, plus the reschedule window."""
        validate_year_month(year, month)
        reschedule_window = department_window(Department.RESCHEDULE, year, month)
        cranes = self._active_cranes_by_id()

        records = (
            self.session.query(MonthlyCraneStatus)
            .filter(
                MonthlyCraneStatus.year == year,
                MonthlyCraneStatus.month == month,
                MonthlyCraneStatus.status == MaintenanceStatus.MISSED,
            )
            .all()
        )

        department_order = {d.value: i for i, d in enumerate(ScheduleConfig.MAINTENANCE_DEPARTMENTS)}
        missed = []
        for record in records:
            crane = cranes.get(record.crane_id)
            if crane is None:
                continue
            missed.append({
                'tracking_id': record.id,
                'crane_id': record.crane_id,
                'crane_number': crane.crane_number,
                'department': record.department_code,
                'shed_name': crane.shed_name,
                'status': record.status.value,
                'original_window': {
                    'start_date': record.scheduled_start.isoformat(),
                    'end_date': record.scheduled_end.isoformat(),
                },
            })

        missed.sort(key=lambda row: (
            department_order.get(row['department'], len(department_order)),
            row['shed_name'] or '',
            row['crane_number'],
        ))

        return {
            'year': year,
            'month': month,
            'reschedule_window': reschedule_window.to_dict(),
            'missed_cranes': missed,
            'count': len(missed),
        }

    def _get_record(self, crane_id: int, year: int, month: int) -> MonthlyCraneStatus:
        record = (
            self.session.query(MonthlyCraneStatus)
            .filter_by(crane_id=crane_id, year=year, month=month)
            .first()
        )
        if record is None:
            raise NotFoundError(
                f"No maintenance tracking record for crane {crane_id} in {year}-{month:02d}. "
                f"Initialize the month first."
            )
        return record

    def _get_crane(self, crane_id: int) -> CraneInfo:
        crane = self.roster.get_crane(crane_id)
        if crane is None:
            raise NotFoundError(f"Crane {crane_id} not found")
        return crane

    def get_crane_status(self, crane_id: int, year: int, month: int) -> Dict:
        validate_year_month(year, month)
        crane = self._get_crane(crane_id)
        return self._status_row(self._get_record(crane_id, year, month), crane)

    def check_window(self, crane_id: int, inspection_date) -> Dict:
        """Whether an inspection on this date falls in the crane's window (or the reschedule period)."""
        d = as_date(inspection_date)
        crane = self._get_crane(crane_id)
        department = normalize_department(crane.department)
        window = department_window(department, d.year, d.month)

        return {
            'crane_id': crane.crane_id,
            'crane_department': department.value,
            'inspection_date': d.isoformat(),
            'active_department': resolve_department_by_date(d).value,
            'is_in_window': is_within_or_past_window(d, department),
            'is_reschedule_period': is_reschedule_period(d),
            'crane_window': window.to_dict(),
            'warning': window_warning_message(department, d),
        }

    def monthly_report_frame(self, year: int, month: int) -> pd.DataFrame:
        """Flat per-crane table of the month for report exports."""
        columns = [
            "Department", "Shed", "Crane #", "Status", "Window Start", "Window End",
            "Completed", "In Reschedule", "Manual", "Notes",
        ]
        records = []
        for department in ScheduleConfig.MAINTENANCE_DEPARTMENTS:
            for row in self.get_department_status(department, year, month):
                records.append({
                    "Department": row['department_code'],
                    "Shed": row['shed_name'],
                    "Crane #": row['crane_number'],
                    "Status": row['status'],
                    "Window Start": row['scheduled_start'],
                    "Window End": row['scheduled_end'],
                    "Completed": row['completed_date'],
                    "In Reschedule": row['completed_in_reschedule'],
                    "Manual": row['manually_marked'],
                    "Notes": row['notes'],
                })
        return pd.DataFrame(records, columns=columns)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _compare_and_set(self, record_id: int, expected: MaintenanceStatus, values: Dict) -> bool:
        """Apply ``values`` only if the row still has the expected status. Returns True if it did."""
        result = self.session.execute(
            update(MonthlyCraneStatus)
            .where(MonthlyCraneStatus.id == record_id, MonthlyCraneStatus.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_status(
        self,
        crane_id: int,
        year: int,
        month: int,
        status,
        notes: Optional[str] = None,
        *,
        now,
        marked_by: Optional[int] = None,
        commit: bool = True,
    ) -> MonthlyCraneStatus:
        """
        Administrative override of a crane's status for a month.

        Bypasses the automatic state machine: any of the four statuses may be
        set. The row is flagged manually_marked, and completion statuses get
        ``now`` as completed_date.

        Args:
            crane_id: Crane to update
            year: Calendar year
            month: 1-indexed month
            status: MaintenanceStatus or a status string
            notes: New notes; None keeps the existing notes
            now: Facility date of the override
            marked_by: Id of the admin making the change
            commit: Whether to commit the transaction (default: True)

        Raises:
            NotFoundError: if the month was never initialized for this crane
        """
        status = normalize_status(status)
        validate_year_month(year, month)
        today = as_date(now)

        with self._unit_of_work(commit):
            record = self._get_record(crane_id, year, month)
            old_status = record.status

            record.status = status
            record.manually_marked = True
            record.marked_by = marked_by
            if notes is not None:
                record.notes = str(notes).strip() or None

            if status.is_terminal:
                record.completed_date = today
                record.completed_in_reschedule = (
                    status is MaintenanceStatus.RESCHEDULED
                    or ((today.year, today.month) == (year, month) and is_reschedule_period(today))
                )
            else:
                record.completed_date = None
                record.completed_in_reschedule = False
            record.updated_at = datetime.utcnow()

        logger.info(
            "Maintenance status manually marked",
            crane_id=crane_id,
            year=year,
            month=month,
            old_status=old_status.value,
            new_status=status.value,
            marked_by=marked_by,
        )
        return record

    def update_expired_statuses(self, now, commit: bool = True) -> int:
        """
        Move PENDING rows to MISSED once their department window has passed.

        One UPDATE per department: rows of earlier months are always expired,
        rows of the current month only when has_window_passed() holds for
        ``now``. The status check is part of each UPDATE, so a completion that
        lands between scheduling and execution is never overwritten.

        Returns:
            int: number of rows transitioned to MISSED
        """
        today = as_date(now)
        updated_at = datetime.utcnow()
        transitioned = {}

        with MaintenanceRunContext("update_expired_statuses", date=today.isoformat()) as run:
            with self._unit_of_work(commit):
                for department in ScheduleConfig.MAINTENANCE_DEPARTMENTS:
                    earlier_month = or_(
                        MonthlyCraneStatus.year < today.year,
                        and_(MonthlyCraneStatus.year == today.year, MonthlyCraneStatus.month < today.month),
                    )
                    if has_window_passed(department, today):
                        period_filter = or_(
                            earlier_month,
                            and_(MonthlyCraneStatus.year == today.year, MonthlyCraneStatus.month == today.month),
                        )
                    else:
                        period_filter = earlier_month

                    result = self.session.execute(
                        update(MonthlyCraneStatus)
                        .where(
                            MonthlyCraneStatus.department_code == department.value,
                            MonthlyCraneStatus.status == MaintenanceStatus.PENDING,
                            period_filter,
                        )
                        .values(status=MaintenanceStatus.MISSED, updated_at=updated_at)
                        .execution_options(synchronize_session=False)
                    )
                    transitioned[department.value] = result.rowcount

            total = sum(transitioned.values())
            run.logger.info("Expired statuses updated", total=total, **transitioned)

        return total

    def record_completion(self, crane_id: int, inspection_date, commit: bool = True) -> MonthlyCraneStatus:
        """
        Apply an inspection to the crane's record for the inspection's month.

        - COMPLETED / RESCHEDULED rows are left untouched (first completion wins)
        - PENDING in or before the crane's window -> COMPLETED
        - PENDING during the reschedule period -> COMPLETED, completed_in_reschedule
        - PENDING after its window but before reschedule -> MISSED; the
          inspection has to be repeated in the reschedule period
        - MISSED during the reschedule period -> RESCHEDULED
        - MISSED on any other day -> unchanged

        Raises:
            NotFoundError: if the month was never initialized for this crane
        """
        d = as_date(inspection_date)

        with self._unit_of_work(commit):
            record = self._get_record(crane_id, d.year, d.month)
            prior = record.status

            if prior.is_terminal:
                logger.info(
                    "Completion ignored, record already closed",
                    crane_id=crane_id,
                    status=prior.value,
                    inspection_date=d.isoformat(),
                )
                return record

            in_reschedule = is_reschedule_period(d)
            if prior is MaintenanceStatus.PENDING:
                if in_reschedule or not has_window_passed(record.department_code, d):
                    target = MaintenanceStatus.COMPLETED
                else:
                    target = MaintenanceStatus.MISSED
            elif in_reschedule:
                target = MaintenanceStatus.RESCHEDULED
            else:
                logger.warning(
                    "Missed crane inspected outside the reschedule period",
                    crane_id=crane_id,
                    inspection_date=d.isoformat(),
                )
                return record

            values = {'status': target, 'updated_at': datetime.utcnow()}
            if target.is_terminal:
                values.update(completed_date=d, completed_in_reschedule=in_reschedule)

            if not self._compare_and_set(record.id, prior, values):
                logger.info(
                    "Completion lost a concurrent update",
                    crane_id=crane_id,
                    expected_status=prior.value,
                )

        self.session.refresh(record)
        logger.info(
            "Maintenance completion recorded",
            crane_id=crane_id,
            inspection_date=d.isoformat(),
            old_status=prior.value,
            new_status=record.status.value,
        )
        return record
