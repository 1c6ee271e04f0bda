"""
Maintenance schedule configuration.

Department windows follow a fixed monthly pattern:
- Days 1-5: HSM
- Days 6-12: HBM
- Days 13-23: PTM
- Days 24-end of month: RESCHEDULE period for missed maintenance
"""

import re
from enum import Enum
from typing import Dict, Tuple


class Department(Enum):
    HSM = "HSM"
    HBM = "HBM"
    PTM = "PTM"
    # Not a real department - the trailing catch-up period of every month
    RESCHEDULE = "RESCHEDULE"

    @property
    def is_reschedule(self) -> bool:
        return self is Department.RESCHEDULE


class MaintenanceStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    MISSED = "MISSED"
    RESCHEDULED = "RESCHEDULED"

    @property
    def is_terminal(self) -> bool:
        return self in (MaintenanceStatus.COMPLETED, MaintenanceStatus.RESCHEDULED)


class ScheduleConfig:
    """
    Fixed window boundaries. Only RESCHEDULE's end moves with month length.
    """

    DEPARTMENT_WINDOWS: Dict[Department, Tuple[int, int]] = {
        Department.HSM: (1, 5),
        Department.HBM: (6, 12),
        Department.PTM: (13, 23),
    }

    RESCHEDULE_START_DAY: int = 24

    # Departments whose cranes get a MonthlyCraneStatus row, in display order
    MAINTENANCE_DEPARTMENTS: Tuple[Department, ...] = (
        Department.HSM,
        Department.HBM,
        Department.PTM,
    )

    # All periods of a month in calendar order
    ALL_PERIODS: Tuple[Department, ...] = MAINTENANCE_DEPARTMENTS + (Department.RESCHEDULE,)


DEPARTMENT_COLORS = {
    'HSM': {'bg': 'bg-blue-100', 'text': 'text-blue-800', 'border': 'border-blue-300', 'hex': '#3B82F6'},
    'HBM': {'bg': 'bg-green-100', 'text': 'text-green-800', 'border': 'border-green-300', 'hex': '#10B981'},
    'PTM': {'bg': 'bg-orange-100', 'text': 'text-orange-800', 'border': 'border-orange-300', 'hex': '#F97316'},
    'RESCHEDULE': {'bg': 'bg-purple-100', 'text': 'text-purple-800', 'border': 'border-purple-300', 'hex': '#8B5CF6'},
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_status(value) -> MaintenanceStatus:
    """
    Convert free-form status input into a MaintenanceStatus.

    Accepts the enum itself or strings differing only in case and
    separators ("completed", " Re-Scheduled ", "re scheduled").

    Raises:
        InvalidStatusError: for anything that is not one of the four statuses
    """
    from app.maintenance.errors import InvalidStatusError

    if isinstance(value, MaintenanceStatus):
        return value
    if not isinstance(value, str):
        raise InvalidStatusError(value)

    # Separators inside a status name carry no meaning ("RE-SCHEDULED" == "RESCHEDULED")
    compact = _SEPARATORS.sub("", value).upper()
    for status in MaintenanceStatus:
        if status.value == compact:
            return status
    raise InvalidStatusError(value)
