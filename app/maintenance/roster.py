"""
Crane roster collaborator.

The tracker only needs to know which cranes are active and which department
owns them; anything that implements ``list_active_cranes`` / ``get_crane``
can stand in for the database-backed roster (tests use plain fakes).
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol

from app.models import Crane, Department, Shed, db


@dataclass(frozen=True)
class CraneInfo:
    crane_id: int
    department: str  # department code as stored, e.g. 'HBM'
    shed_id: int
    crane_number: str
    shed_name: Optional[str] = None


class CraneRoster(Protocol):
    def list_active_cranes(self) -> List[CraneInfo]:
        ...

    def get_crane(self, crane_id: int) -> Optional[CraneInfo]:
        ...


class SqlAlchemyCraneRoster:
    """Reads cranes -> sheds -> departments from the application database."""

    def __init__(self, session=None):
        self.session = session or db.session

    def _base_query(self):
        return (
            self.session.query(Crane, Shed, Department)
            .join(Shed, Crane.shed_id == Shed.id)
            .join(Department, Shed.department_id == Department.id)
        )

    @staticmethod
    def _to_info(crane, shed, department) -> CraneInfo:
        return CraneInfo(
            crane_id=crane.id,
            department=department.code,
            shed_id=shed.id,
            crane_number=crane.crane_number,
            shed_name=shed.name,
        )

    def list_active_cranes(self) -> List[CraneInfo]:
        rows = (
            self._base_query()
            .filter(Crane.is_active.is_(True))
            .order_by(Shed.name, Crane.crane_number)
            .all()
        )
        return [self._to_info(*row) for row in rows]

    def get_crane(self, crane_id: int) -> Optional[CraneInfo]:
        row = self._base_query().filter(Crane.id == crane_id).first()
        return self._to_info(*row) if row else None
