"""
Create the crane maintenance schema: users, departments, sheds, cranes and
monthly_maintenance_tracking.

Usage:
    python migrations/create_maintenance_schema.py
    python migrations/create_maintenance_schema.py --database-url postgresql://...

The script is idempotent and safe to run multiple times. It inspects the current
schema before creating anything.
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import OperationalError, ProgrammingError

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_SQLITE_PATH = os.path.join(ROOT_DIR, "instance", "maintenance.sqlite")

STATUS_VALUES = ("PENDING", "COMPLETED", "MISSED", "RESCHEDULED")
ROLE_VALUES = ("ADMIN", "OPERATOR")

# Load environment variables from a .env file if present
load_dotenv()


def normalize_sqlite_path(path: str) -> str:
    """Return a SQLAlchemy-friendly SQLite URL for the given path."""
    if not os.path.isabs(path):
        path = os.path.join(ROOT_DIR, path)
    return f"sqlite:///{path}"


def infer_database_url(cli_url: str = None) -> str:
    """Figure out which database to hit, honoring CLI and environment defaults."""
    candidates = [
        cli_url,
        os.environ.get("DATABASE_URL"),
        os.environ.get("SQLALCHEMY_DATABASE_URI"),
        os.environ.get("PRODUCTION_DATABASE_URL"),
        os.environ.get("SANDBOX_DATABASE_URL"),
        os.environ.get("LOCAL_DATABASE_URL"),
    ]

    for value in candidates:
        if not value:
            continue

        value = value.strip()
        if value.startswith("postgres://"):
            # SQLAlchemy expects postgresql://
            return value.replace("postgres://", "postgresql://", 1)

        if value.startswith(("postgresql://", "mysql://", "mariadb://", "sqlite://")):
            return value

        # Treat anything else as a filesystem path to a SQLite DB
        return normalize_sqlite_path(value)

    # Fall back to bundled SQLite file
    return normalize_sqlite_path(DEFAULT_SQLITE_PATH)


def table_exists(bind, table_name: str) -> bool:
    """Check if a given table exists."""
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def is_postgresql(engine) -> bool:
    """Check if the database is PostgreSQL."""
    return engine.dialect.name == "postgresql"


def _enum_column(is_pg: bool, type_name: str, values) -> str:
    if is_pg:
        return type_name
    longest = max(len(v) for v in values)
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"VARCHAR({longest}) CHECK ({{column}} IN ({quoted}))"


def _create_pg_enum(conn, type_name: str, values):
    quoted = ", ".join(f"'{v}'" for v in values)
    conn.execute(text(f"""
        DO $$ BEGIN
            CREATE TYPE {type_name} AS ENUM ({quoted});
        EXCEPTION WHEN duplicate_object THEN NULL;
        END $$;
    """))


def _table_ddl(is_pg: bool):
    """CREATE TABLE statements in dependency order."""
    pk = "SERIAL PRIMARY KEY" if is_pg else "INTEGER PRIMARY KEY AUTOINCREMENT"
    true_default = "TRUE" if is_pg else "1"
    false_default = "FALSE" if is_pg else "0"
    role_type = _enum_column(is_pg, "userrole", ROLE_VALUES).format(column="role")
    status_type = _enum_column(is_pg, "maintenancestatus", STATUS_VALUES).format(column="status")

    return [
        ("users", f"""
            CREATE TABLE users (
                id {pk},
                username VARCHAR(80) UNIQUE NOT NULL,
                password_hash VARCHAR(256) NOT NULL,
                role {role_type} NOT NULL DEFAULT 'OPERATOR',
                is_active BOOLEAN NOT NULL DEFAULT {true_default},
                last_login TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """, ["CREATE INDEX IF NOT EXISTS ix_users_username ON users (username)"]),
        ("departments", f"""
            CREATE TABLE departments (
                id {pk},
                code VARCHAR(10) UNIQUE NOT NULL,
                name VARCHAR(128) NOT NULL
            )
        """, []),
        ("sheds", f"""
            CREATE TABLE sheds (
                id {pk},
                name VARCHAR(128) NOT NULL,
                code VARCHAR(32) UNIQUE NOT NULL,
                department_id INTEGER NOT NULL REFERENCES departments(id)
            )
        """, []),
        ("cranes", f"""
            CREATE TABLE cranes (
                id {pk},
                crane_number VARCHAR(32) NOT NULL,
                shed_id INTEGER NOT NULL REFERENCES sheds(id),
                maintenance_frequency VARCHAR(16) DEFAULT 'MONTHLY',
                is_active BOOLEAN NOT NULL DEFAULT {true_default},
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                CONSTRAINT _shed_crane_number_uc UNIQUE (shed_id, crane_number)
            )
        """, []),
        ("monthly_maintenance_tracking", f"""
            CREATE TABLE monthly_maintenance_tracking (
                id {pk},
                crane_id INTEGER NOT NULL REFERENCES cranes(id) ON DELETE CASCADE,
                department_code VARCHAR(10) NOT NULL,
                year INTEGER NOT NULL,
                month INTEGER NOT NULL,
                status {status_type} NOT NULL DEFAULT 'PENDING',
                scheduled_start DATE NOT NULL,
                scheduled_end DATE NOT NULL,
                completed_date DATE,
                completed_in_reschedule BOOLEAN NOT NULL DEFAULT {false_default},
                manually_marked BOOLEAN NOT NULL DEFAULT {false_default},
                marked_by INTEGER REFERENCES users(id),
                notes TEXT,
                created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                CONSTRAINT unique_crane_month UNIQUE (crane_id, year, month),
                CONSTRAINT ck_mmt_month_range CHECK (month >= 1 AND month <= 12)
            )
        """, [
            "CREATE INDEX IF NOT EXISTS idx_mmt_department_month "
            "ON monthly_maintenance_tracking (department_code, year, month)",
            "CREATE INDEX IF NOT EXISTS idx_mmt_status ON monthly_maintenance_tracking (status)",
        ]),
    ]


def migrate(database_url: str = None) -> bool:
    """Create any missing maintenance tables and their indexes."""
    db_url = infer_database_url(database_url)
    print(f"Connecting to database: {db_url}")

    if db_url == normalize_sqlite_path(DEFAULT_SQLITE_PATH):
        os.makedirs(os.path.dirname(DEFAULT_SQLITE_PATH), exist_ok=True)

    engine = create_engine(db_url)
    is_pg = is_postgresql(engine)

    try:
        with engine.begin() as conn:
            if is_pg:
                _create_pg_enum(conn, "userrole", ROLE_VALUES)
                _create_pg_enum(conn, "maintenancestatus", STATUS_VALUES)

            for table_name, create_sql, index_sql in _table_ddl(is_pg):
                if not table_exists(conn, table_name):
                    print(f"Creating '{table_name}' table...")
                    conn.execute(text(create_sql))
                    print(f"✓ Successfully created '{table_name}' table.")
                else:
                    print(f"✓ Table '{table_name}' already exists.")

                for statement in index_sql:
                    conn.execute(text(statement))

        print("✓ Migration completed successfully.")
        return True

    except (OperationalError, ProgrammingError) as exc:
        print(f"✗ Database error during migration: {exc}")
        import traceback
        traceback.print_exc()
        return False
    except Exception as exc:
        print(f"✗ Unexpected error: {exc}")
        import traceback
        traceback.print_exc()
        return False
    finally:
        engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Create the crane maintenance schema (roster tables and monthly tracking)."
    )
    parser.add_argument(
        "--database-url",
        help="Override database URL (otherwise inferred from env or defaults).",
    )
    args = parser.parse_args()

    success = migrate(args.database_url)
    sys.exit(0 if success else 1)
