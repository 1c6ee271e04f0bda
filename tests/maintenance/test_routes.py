"""
Tests for the maintenance schedule routes (Flask endpoints).
These tests verify HTTP request/response handling, authentication, and error mapping.
"""
from datetime import date, datetime, timezone
from unittest.mock import Mock, patch

import pytest

from app import create_app
from app.models import Crane, Department as DepartmentRow, MonthlyCraneStatus, Shed, db

BASE = "/api/maintenance-schedule"


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
def mock_admin_user():
    """Create a mock admin user for authentication."""
    user = Mock()
    user.id = 1
    user.username = "test_admin"
    user.is_admin = True
    user.is_active = True
    return user


@pytest.fixture
def mock_operator_user():
    """Create a mock non-admin user."""
    user = Mock()
    user.id = 2
    user.username = "test_operator"
    user.is_admin = False
    user.is_active = True
    return user


@pytest.fixture(autouse=True)
def setup_auth(mock_admin_user):
    """Automatically patch authentication for all tests."""
    with patch('app.auth.utils.get_current_user', return_value=mock_admin_user), \
            patch('app.maintenance.routes.get_current_user', return_value=mock_admin_user):
        yield


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def hbm_crane(app):
    """One HBM crane in the roster."""
    department = DepartmentRow(code='HBM', name='Hot Bar Mill')
    db.session.add(department)
    db.session.flush()
    shed = Shed(name='Bar Shed', code='BAR', department_id=department.id)
    db.session.add(shed)
    db.session.flush()
    crane = Crane(crane_number='HBM-01', shed_id=shed.id)
    db.session.add(crane)
    db.session.commit()
    return crane.id


@pytest.fixture
def initialized(client, hbm_crane):
    response = client.post(f"{BASE}/initialize", json={'year': 2024, 'month': 3})
    assert response.status_code == 200
    return hbm_crane


# ==============================================================================
# AUTHENTICATION TESTS
# ==============================================================================

class TestAuthentication:
    """Login and role checks on the maintenance routes."""

    def test_unauthenticated_is_rejected(self, client):
        """Test that requests without a user get 401."""
        with patch('app.auth.utils.get_current_user', return_value=None):
            response = client.get(f"{BASE}/calendar?year=2024&month=3")

        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_operator_cannot_mark_status(self, client, mock_operator_user):
        """Test that admin-only routes return 403 for operators."""
        with patch('app.auth.utils.get_current_user', return_value=mock_operator_user):
            response = client.post(f"{BASE}/mark-status", json={
                'crane_id': 1, 'year': 2024, 'month': 3, 'status': 'COMPLETED',
            })

        assert response.status_code == 403

    def test_operator_can_read(self, client, mock_operator_user):
        """Test that read routes only need a login."""
        with patch('app.auth.utils.get_current_user', return_value=mock_operator_user):
            response = client.get(f"{BASE}/active-window?date=2024-03-02")

        assert response.status_code == 200


# ==============================================================================
# READ ENDPOINT TESTS
# ==============================================================================

class TestCalendarEndpoints:
    """Tests for GET /calendar, /calendar-grid and /active-window."""

    def test_calendar(self, client, initialized):
        """Test calendar data with summaries."""
        response = client.get(f"{BASE}/calendar?year=2024&month=3")

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['summaries']['HBM']['pending'] == 1
        assert data['department_windows']['HBM']['start_day'] == 6

    def test_calendar_invalid_month(self, client):
        """Test that month=13 is a 400, not a 500."""
        response = client.get(f"{BASE}/calendar?year=2024&month=13")

        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_calendar_non_numeric_year(self, client):
        response = client.get(f"{BASE}/calendar?year=abc&month=3")
        assert response.status_code == 400

    def test_calendar_grid(self, client):
        """Test that every grid row has 7 cells."""
        response = client.get(f"{BASE}/calendar-grid?year=2024&month=2")

        assert response.status_code == 200
        weeks = response.get_json()['data']['weeks']
        assert all(len(week) == 7 for week in weeks)
        assert sum(1 for week in weeks for cell in week if cell['day']) == 29

    def test_active_window(self, client):
        response = client.get(f"{BASE}/active-window?date=2024-03-26")

        assert response.status_code == 200
        assert response.get_json()['data']['active_department'] == 'RESCHEDULE'

    def test_active_window_bad_date(self, client):
        response = client.get(f"{BASE}/active-window?date=26-03-2024")
        assert response.status_code == 400


class TestStatusEndpoints:
    """Tests for GET /status, /reschedule, /crane/<id> and /check-window."""

    def test_status_requires_department(self, client):
        response = client.get(f"{BASE}/status?year=2024&month=3")
        assert response.status_code == 400

    def test_status_rejects_reschedule(self, client):
        response = client.get(f"{BASE}/status?department_code=RESCHEDULE&year=2024&month=3")
        assert response.status_code == 400

    def test_status_invalid_department(self, client):
        response = client.get(f"{BASE}/status?department_code=XYZ&year=2024&month=3")

        assert response.status_code == 400
        assert 'Invalid department' in response.get_json()['error']

    def test_status(self, client, initialized):
        response = client.get(f"{BASE}/status?department_code=hbm&year=2024&month=3")

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['department'] == 'HBM'
        assert data['summary']['total'] == 1
        assert data['cranes'][0]['crane_number'] == 'HBM-01'
        assert data['cranes'][0]['shed_name'] == 'Bar Shed'

    def test_crane_status_not_found(self, client, initialized):
        """Test that an uninitialized month maps to 404."""
        response = client.get(f"{BASE}/crane/{initialized}?year=2024&month=4")
        assert response.status_code == 404

    def test_crane_status(self, client, initialized):
        response = client.get(f"{BASE}/crane/{initialized}?year=2024&month=3")

        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'PENDING'

    def test_check_window_requires_crane(self, client):
        response = client.get(f"{BASE}/check-window?inspection_date=2024-03-02")
        assert response.status_code == 400

    def test_check_window(self, client, initialized):
        response = client.get(f"{BASE}/check-window?crane_id={initialized}&inspection_date=2024-03-02")

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['is_in_window'] is False
        assert data['warning']

    def test_reschedule_empty(self, client, initialized):
        response = client.get(f"{BASE}/reschedule?year=2024&month=3")

        assert response.status_code == 200
        assert response.get_json()['data']['count'] == 0


# ==============================================================================
# WRITE ENDPOINT TESTS
# ==============================================================================

class TestWriteEndpoints:
    """Tests for POST /initialize, /mark-status, /update-expired and /inspection-recorded."""

    def test_initialize_is_idempotent(self, client, hbm_crane):
        first = client.post(f"{BASE}/initialize", json={'year': 2024, 'month': 3})
        second = client.post(f"{BASE}/initialize", json={'year': 2024, 'month': 3})

        assert first.get_json()['data']['created_count'] == 1
        assert second.get_json()['data']['created_count'] == 0
        assert MonthlyCraneStatus.query.count() == 1

    def test_mark_status_missing_fields(self, client):
        response = client.post(f"{BASE}/mark-status", json={'crane_id': 1})
        assert response.status_code == 400

    def test_mark_status_invalid_status(self, client, initialized):
        response = client.post(f"{BASE}/mark-status", json={
            'crane_id': initialized, 'year': 2024, 'month': 3, 'status': 'NOT_OK',
        })
        assert response.status_code == 400

    def test_mark_status_not_initialized(self, client, hbm_crane):
        response = client.post(f"{BASE}/mark-status", json={
            'crane_id': hbm_crane, 'year': 2024, 'month': 3, 'status': 'COMPLETED',
        })
        assert response.status_code == 404

    @patch('app.maintenance.routes.facility_today', return_value=date(2024, 3, 9))
    def test_mark_status(self, mock_today, client, initialized):
        """Test admin override records the caller and the date."""
        response = client.post(f"{BASE}/mark-status", json={
            'crane_id': initialized, 'year': 2024, 'month': 3, 'status': 'completed', 'notes': 'done',
        })

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['status'] == 'COMPLETED'
        assert data['manually_marked'] is True
        assert data['marked_by'] == 1
        assert data['completed_date'] == '2024-03-09'

    @patch('app.maintenance.routes.facility_today', return_value=date(2024, 3, 13))
    def test_update_expired(self, mock_today, client, initialized):
        response = client.post(f"{BASE}/update-expired")

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data == {'date': '2024-03-13', 'updated_count': 1}

    def test_inspection_recorded(self, client, initialized):
        response = client.post(f"{BASE}/inspection-recorded", json={
            'crane_id': initialized, 'inspection_date': '2024-03-08',
        })

        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'COMPLETED'

    def test_inspection_recorded_without_tracking(self, client, hbm_crane):
        response = client.post(f"{BASE}/inspection-recorded", json={
            'crane_id': hbm_crane, 'inspection_date': '2024-05-08',
        })
        assert response.status_code == 404

    def test_inspection_recorded_requires_crane(self, client):
        response = client.post(f"{BASE}/inspection-recorded", json={'inspection_date': '2024-05-08'})
        assert response.status_code == 400

    @patch('app.maintenance.routes.ScheduleTracker')
    def test_unexpected_error_is_500(self, mock_tracker, client):
        """Test that storage failures surface as 500 with the JSON envelope."""
        mock_tracker.return_value.initialize_month.side_effect = RuntimeError("database unavailable")

        response = client.post(f"{BASE}/initialize", json={'year': 2024, 'month': 3})

        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert 'database unavailable' in body['error']


# ==============================================================================
# FACILITY TIMEZONE
# ==============================================================================

class TestFacilityTimezone:
    """Routes resolve "today" in the app's configured FACILITY_TIMEZONE."""

    @pytest.fixture
    def kiritimati_client(self):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'SECRET_KEY': 'test-secret-key',
            'AUTO_CREATE_TABLES': False,
            'FACILITY_TIMEZONE': 'Pacific/Kiritimati',
        })
        with app.app_context():
            db.create_all()
            yield app.test_client()
            db.session.remove()
            db.drop_all()

    @patch('app.datetime_utils.datetime')
    def test_active_window_uses_configured_timezone(self, mock_datetime, kiritimati_client):
        """12:00 UTC on March 5 is already March 6 (UTC+14), which is an HBM day."""
        mock_datetime.now.return_value = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)

        response = kiritimati_client.get(f"{BASE}/active-window")

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['current_day'] == 6
        assert data['active_department'] == 'HBM'

    @patch('app.datetime_utils.datetime')
    def test_default_timezone_sees_the_utc_day(self, mock_datetime, client):
        """The same instant is still March 5 in Asia/Kolkata, an HSM day."""
        mock_datetime.now.return_value = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)

        response = client.get(f"{BASE}/active-window")

        data = response.get_json()['data']
        assert data['current_day'] == 5
        assert data['active_department'] == 'HSM'
