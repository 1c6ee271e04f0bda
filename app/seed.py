"""
Seed the crane roster (departments, sheds, cranes) from a CSV export.

Expected columns (header row, case-insensitive):
    department_code, shed_code, shed_name, crane_number
Optional:
    department_name, maintenance_frequency, is_active

Re-running the seed is safe: departments and sheds are matched by code and
cranes by (shed, crane_number); existing rows are updated in place.

Usage:
    python -m app.seed cranes.csv
    python -m app.seed cranes.csv --admin-username admin --admin-password secret
"""
import argparse

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from app.auth.utils import hash_password
from app.logging_config import get_logger
from app.models import Crane, Department, Shed, User, UserRole, db

logger = get_logger(__name__)

REQUIRED_COLUMNS = ["department_code", "shed_code", "shed_name", "crane_number"]

DEFAULT_DEPARTMENT_NAMES = {
    "HSM": "Hot Strip Mill",
    "HBM": "Hot Bar Mill",
    "PTM": "Plate Mill",
}


def clean_str(val):
    """Strip a cell value, returning None for blanks and NaN."""
    if val is None or pd.isna(val):
        return None
    text = str(val).strip()
    return text or None


def to_bool(val, default=True):
    if val is None or pd.isna(val):
        return default
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("1", "true", "yes", "y", "active")


def load_roster_frame(path_or_buffer):
    """Read the roster CSV and normalize headers. Raises ValueError if required columns are missing."""
    df = pd.read_csv(path_or_buffer, dtype=str)
    df.columns = [c.strip().lower().replace(" ", "_") for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Roster is missing required columns: {', '.join(missing)}")

    df = df.dropna(subset=["department_code", "shed_code", "crane_number"])
    df["department_code"] = df["department_code"].str.strip().str.upper()
    return df


def seed_roster(df):
    """
    Upsert departments, sheds and cranes from a normalized roster frame.

    Returns:
        dict: counts of created/updated rows per table
    """
    counts = {"departments_created": 0, "sheds_created": 0, "cranes_created": 0, "cranes_updated": 0}
    departments = {d.code: d for d in Department.query.all()}
    sheds = {s.code: s for s in Shed.query.all()}

    try:
        for _, row in df.iterrows():
            code = clean_str(row.get("department_code"))
            department = departments.get(code)
            if department is None:
                department = Department(
                    code=code,
                    name=clean_str(row.get("department_name")) or DEFAULT_DEPARTMENT_NAMES.get(code, code),
                )
                db.session.add(department)
                db.session.flush()
                departments[code] = department
                counts["departments_created"] += 1

            shed_code = clean_str(row.get("shed_code"))
            shed = sheds.get(shed_code)
            if shed is None:
                shed = Shed(code=shed_code, name=clean_str(row.get("shed_name")) or shed_code,
                            department_id=department.id)
                db.session.add(shed)
                db.session.flush()
                sheds[shed_code] = shed
                counts["sheds_created"] += 1
            elif shed.department_id != department.id:
                logger.info("Moving shed to new department", shed=shed_code, department=code)
                shed.department_id = department.id

            crane_number = clean_str(row.get("crane_number"))
            crane = Crane.query.filter_by(shed_id=shed.id, crane_number=crane_number).first()
            frequency = (clean_str(row.get("maintenance_frequency")) or "MONTHLY").upper()
            is_active = to_bool(row.get("is_active"))

            if crane is None:
                db.session.add(Crane(
                    crane_number=crane_number,
                    shed_id=shed.id,
                    maintenance_frequency=frequency,
                    is_active=is_active,
                ))
                counts["cranes_created"] += 1
            elif crane.maintenance_frequency != frequency or crane.is_active != is_active:
                crane.maintenance_frequency = frequency
                crane.is_active = is_active
                counts["cranes_updated"] += 1

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Roster seed failed", error=str(e))
        raise

    logger.info("Roster seeded", **counts)
    return counts


def ensure_admin_user(username, password):
    """Create an admin user unless the username already exists. Returns True if created."""
    if User.query.filter_by(username=username).first():
        print(f"✓ User '{username}' already exists.")
        return False

    db.session.add(User(username=username, password_hash=hash_password(password), role=UserRole.ADMIN))
    db.session.commit()
    print(f"✓ Created admin user '{username}'.")
    return True


def main(argv=None):
    from app import create_app

    parser = argparse.ArgumentParser(description="Seed the crane roster from CSV")
    parser.add_argument("csv_path", help="Roster CSV file")
    parser.add_argument("--admin-username", help="Also create an admin user")
    parser.add_argument("--admin-password", help="Password for --admin-username")
    args = parser.parse_args(argv)

    if args.admin_username and not args.admin_password:
        parser.error("--admin-password is required with --admin-username")

    app = create_app({"MAINTENANCE_SCHEDULER_ENABLED": False})
    with app.app_context():
        db.create_all()
        counts = seed_roster(load_roster_frame(args.csv_path))
        print(f"✓ Roster seeded: {counts}")
        if args.admin_username:
            ensure_admin_user(args.admin_username, args.admin_password)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
