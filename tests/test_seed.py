"""
Tests for the CSV roster seed and admin user creation.
"""
import io

import pytest

from app import create_app
from app.models import Crane, Shed, User, db
from app.seed import ensure_admin_user, load_roster_frame, seed_roster

ROSTER_CSV = """Department Code,Shed Code,Shed Name,Crane Number,Maintenance Frequency,Is Active
hsm,HS-1,Strip Shed,HSM-01,monthly,yes
HBM,HB-1,Bar Shed,HBM-01,,
PTM,PT-1,Plate Shed,PTM-01,MONTHLY,no
"""


@pytest.fixture
def app():
    """Create Flask application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret-key',
        'AUTO_CREATE_TABLES': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def seeded(app):
    return seed_roster(load_roster_frame(io.StringIO(ROSTER_CSV)))


class TestSeedRoster:
    """Tests for the CSV roster seed."""

    def test_seed_creates_roster(self, seeded):
        assert seeded == {
            'departments_created': 3, 'sheds_created': 3, 'cranes_created': 3, 'cranes_updated': 0,
        }
        assert Shed.query.filter_by(code='HS-1').one().department.code == 'HSM'
        assert Crane.query.filter_by(crane_number='PTM-01').one().is_active is False
        assert Crane.query.filter_by(crane_number='HBM-01').one().maintenance_frequency == 'MONTHLY'

    def test_seed_is_idempotent(self, seeded):
        counts = seed_roster(load_roster_frame(io.StringIO(ROSTER_CSV)))

        assert counts['cranes_created'] == 0
        assert counts['departments_created'] == 0
        assert Crane.query.count() == 3

    def test_seed_updates_changed_cranes(self, seeded):
        changed = ROSTER_CSV.replace("PTM-01,MONTHLY,no", "PTM-01,WEEKLY,yes")

        counts = seed_roster(load_roster_frame(io.StringIO(changed)))

        assert counts['cranes_updated'] == 1
        crane = Crane.query.filter_by(crane_number='PTM-01').one()
        assert crane.is_active is True
        assert crane.maintenance_frequency == 'WEEKLY'

    def test_missing_columns(self):
        with pytest.raises(ValueError, match="crane_number"):
            load_roster_frame(io.StringIO("department_code,shed_code,shed_name\nHSM,A,B\n"))

    def test_admin_user(self, app):
        assert ensure_admin_user("admin", "secret") is True
        assert ensure_admin_user("admin", "other") is False
        assert User.query.filter_by(username="admin").one().is_admin is True
