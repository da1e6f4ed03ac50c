"""
Pytest fixtures for reportflow backend tests.

Provides test database setup, a Jakarta location hierarchy, one user per
role, and report fixtures at each stage of review.
"""

from types import SimpleNamespace

import pytest
from reportflow import create_app
from reportflow.extensions import db
from reportflow.permissions import (
    ROLE_BRANCH_USER,
    ROLE_CITY_ADMIN,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_SUPER_ADMIN,
)
from reportflow.services import auth_service, location_service, session_service, workflow_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SCOPE_MATCH_MODE': 'name',
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def locations(db_session):
    """
    Jakarta with two subdistricts (Menteng, Kebayoran Baru), plus Bandung.
    """
    jakarta = location_service.create_city("Jakarta")
    menteng = location_service.create_subdistrict("Menteng", jakarta.id)
    kebayoran = location_service.create_subdistrict("Kebayoran Baru", jakarta.id)
    menteng_raya = location_service.create_branch("Menteng Raya", menteng.id, manager_name="Budi Santoso")
    senopati = location_service.create_branch("Senopati", kebayoran.id, manager_name="Siti Rahayu")

    bandung = location_service.create_city("Bandung")
    coblong = location_service.create_subdistrict("Coblong", bandung.id)
    dago = location_service.create_branch("Dago", coblong.id)

    return SimpleNamespace(
        jakarta=jakarta,
        menteng=menteng,
        kebayoran=kebayoran,
        menteng_raya=menteng_raya,
        senopati=senopati,
        bandung=bandung,
        coblong=coblong,
        dago=dago,
    )


@pytest.fixture(scope='function')
def users(locations):
    """One or more accounts per role."""
    def make(email, name, role, **assignment):
        return auth_service.create_user(email, name, PASSWORD, role, **assignment)

    return SimpleNamespace(
        branch_user=make("ani@menteng.test", "Ani", ROLE_BRANCH_USER, branch_id=locations.menteng_raya.id),
        colleague=make("rudi@menteng.test", "Rudi", ROLE_BRANCH_USER, branch_id=locations.menteng_raya.id),
        senopati_user=make("dewi@senopati.test", "Dewi", ROLE_BRANCH_USER, branch_id=locations.senopati.id),
        dago_user=make("asep@dago.test", "Asep", ROLE_BRANCH_USER, branch_id=locations.dago.id),
        menteng_admin=make("admin@menteng.test", "Menteng Admin", ROLE_SUBDISTRICT_ADMIN, subdistrict_id=locations.menteng.id),
        kebayoran_admin=make("admin@kebayoran.test", "Kebayoran Admin", ROLE_SUBDISTRICT_ADMIN, subdistrict_id=locations.kebayoran.id),
        jakarta_admin=make("admin@jakarta.test", "Jakarta Admin", ROLE_CITY_ADMIN, city_id=locations.jakarta.id),
        jakarta_admin_2=make("deputy@jakarta.test", "Jakarta Deputy", ROLE_CITY_ADMIN, city_id=locations.jakarta.id),
        bandung_admin=make("admin@bandung.test", "Bandung Admin", ROLE_CITY_ADMIN, city_id=locations.bandung.id),
        super_admin=make("root@reportflow.test", "Super Admin", ROLE_SUPER_ADMIN),
    )


@pytest.fixture(scope='function')
def actors(users):
    """Actor values for every fixture user, keyed the same way."""
    return SimpleNamespace(**{
        key: session_service.actor_for_user(user)
        for key, user in vars(users).items()
    })


def report_payload(**overrides) -> dict:
    """A complete report body, ready for submission."""
    data = {
        "title": "September sales",
        "content": "Monthly figures",
        "report_date": "2026-09-30",
        "total_sales": "1250000.50",
        "product_info": {"items": [{"sku": "RICE-5KG", "qty": 120}]},
        "expense_info": {"rent": 5000000, "salaries": 12000000},
        "income_info": {"cash": 800000, "transfer": 450000.5},
    }
    data.update(overrides)
    return data


@pytest.fixture(scope='function')
def draft_report(actors):
    return workflow_service.create(actors.branch_user, report_payload())


@pytest.fixture(scope='function')
def pending_subdistrict_report(actors):
    return workflow_service.create(actors.branch_user, report_payload(), submit=True)


@pytest.fixture(scope='function')
def pending_city_report(actors, pending_subdistrict_report):
    return workflow_service.approve(actors.menteng_admin, pending_subdistrict_report.id)


@pytest.fixture(scope='function')
def rejected_report(actors, pending_city_report):
    return workflow_service.reject(actors.jakarta_admin, pending_city_report.id, "incomplete data")


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def payload():
    """Builder for complete report bodies."""
    return report_payload


@pytest.fixture(scope='function')
def headers_for(client, users):
    """Log a fixture user in over HTTP and return their Authorization headers."""
    def _headers(key: str) -> dict:
        token = get_auth_token(client, getattr(users, key).email)
        assert token, f"login failed for {key}"
        return auth_headers(token)
    return _headers
