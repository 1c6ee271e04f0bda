from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
from enum import Enum
from app.maintenance.config import MaintenanceStatus

db = SQLAlchemy()


class UserRole(Enum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"


class User(db.Model):
    """Application user. Login/session handling lives in app.auth."""
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.OPERATOR)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role.value,
            'is_admin': self.is_admin,
        }

    def __repr__(self):
        return f"<User {self.username} ({self.role.value})>"


class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    # HSM / HBM / PTM for departments with a maintenance window
    code = db.Column(db.String(10), unique=True, nullable=False)
    name = db.Column(db.String(128), nullable=False)

    sheds = db.relationship("Shed", back_populates="department")

    def __repr__(self):
        return f"<Department {self.code}>"


class Shed(db.Model):
    __tablename__ = "sheds"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(32), unique=True, nullable=False)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False)

    department = db.relationship("Department", back_populates="sheds")
    cranes = db.relationship("Crane", back_populates="shed")

    def __repr__(self):
        return f"<Shed {self.code} - {self.name}>"


class Crane(db.Model):
    __tablename__ = "cranes"
    __table_args__ = (db.UniqueConstraint("shed_id", "crane_number", name="_shed_crane_number_uc"),)

    id = db.Column(db.Integer, primary_key=True)
    crane_number = db.Column(db.String(32), nullable=False)
    shed_id = db.Column(db.Integer, db.ForeignKey("sheds.id"), nullable=False)
    maintenance_frequency = db.Column(db.String(16), default="MONTHLY")  # Roster data only; windows are monthly regardless
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    shed = db.relationship("Shed", back_populates="cranes")

    def __repr__(self):
        return f"<Crane {self.crane_number} (shed {self.shed_id})>"


class MonthlyCraneStatus(db.Model):
    """Per-crane, per-month maintenance tracking record."""
    __tablename__ = "monthly_maintenance_tracking"

    id = db.Column(db.Integer, primary_key=True)
    crane_id = db.Column(db.Integer, db.ForeignKey("cranes.id", ondelete="CASCADE"), nullable=False)
    department_code = db.Column(db.String(10), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 1-indexed
    status = db.Column(db.Enum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.PENDING)

    # The department window for this month, frozen at creation
    scheduled_start = db.Column(db.Date, nullable=False)
    scheduled_end = db.Column(db.Date, nullable=False)

    completed_date = db.Column(db.Date, nullable=True)
    completed_in_reschedule = db.Column(db.Boolean, nullable=False, default=False)

    # Admin override tracking
    manually_marked = db.Column(db.Boolean, nullable=False, default=False)
    marked_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    crane = db.relationship("Crane")

    __table_args__ = (
        db.UniqueConstraint("crane_id", "year", "month", name="unique_crane_month"),
        db.CheckConstraint("month >= 1 AND month <= 12", name="ck_mmt_month_range"),
        db.Index("idx_mmt_department_month", "department_code", "year", "month"),
        db.Index("idx_mmt_status", "status"),
    )

    def __repr__(self):
        return f"<MonthlyCraneStatus crane={self.crane_id} {self.year}-{self.month:02d} {self.status.value}>"

    def to_dict(self):
        from app.datetime_utils import format_date_iso
        return {
            'id': self.id,
            'crane_id': self.crane_id,
            'department_code': self.department_code,
            'year': self.year,
            'month': self.month,
            'status': self.status.value,
            'scheduled_start': format_date_iso(self.scheduled_start),
            'scheduled_end': format_date_iso(self.scheduled_end),
            'completed_date': format_date_iso(self.completed_date),
            'completed_in_reschedule': bool(self.completed_in_reschedule),
            'manually_marked': bool(self.manually_marked),
            'marked_by': self.marked_by,
            'notes': self.notes,
        }
