# Overview: Pytest coverage for accounts, role assignment, sessions and the auth routes.

"""
Authentication and Session Tests

Covers:
- Password strength and bcrypt hashing
- One role, one matching location assignment
- Session token lifecycle (create, validate, idle timeout, revoke)
- The Actor built from a session
- /api/auth login, logout and me
"""

from datetime import timedelta

import pytest

from reportflow.errors import NotFound, ValidationError
from reportflow.models import SecurityEvent, SessionToken
from reportflow.permissions import ROLE_BRANCH_USER, ROLE_CITY_ADMIN, ROLE_SUBDISTRICT_ADMIN, ROLE_SUPER_ADMIN
from reportflow.services import auth_service, session_service
from reportflow.services.auth_service import PasswordValidationError
from reportflow.time_utils import utcnow


PASSWORD = "Password123!"


class TestPasswords:

    @pytest.mark.parametrize("password", [
        "short1!",
        "alllowercase1!",
        "ALLUPPERCASE1!",
        "NoDigitsHere!",
        "NoSpecials123",
    ])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_round_trip(self, app):
        hashed = auth_service.hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed)
        assert not auth_service.verify_password("Wrong123!", hashed)

    def test_malformed_hash_never_verifies(self):
        assert not auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash")


class TestRoleAssignment:

    def test_branch_user_needs_a_branch(self, locations):
        with pytest.raises(ValidationError):
            auth_service.create_user("x@test.local", "X", PASSWORD, ROLE_BRANCH_USER)

    def test_assignment_must_match_role_level(self, locations):
        with pytest.raises(ValidationError):
            auth_service.create_user(
                "x@test.local", "X", PASSWORD, ROLE_SUBDISTRICT_ADMIN,
                city_id=locations.jakarta.id,
            )

    def test_only_one_assignment(self, locations):
        with pytest.raises(ValidationError):
            auth_service.create_user(
                "x@test.local", "X", PASSWORD, ROLE_CITY_ADMIN,
                city_id=locations.jakarta.id, subdistrict_id=locations.menteng.id,
            )

    def test_super_admin_has_no_location(self, locations):
        with pytest.raises(ValidationError):
            auth_service.create_user(
                "x@test.local", "X", PASSWORD, ROLE_SUPER_ADMIN,
                city_id=locations.jakarta.id,
            )

    def test_unknown_location(self, db_session):
        with pytest.raises(NotFound):
            auth_service.create_user("x@test.local", "X", PASSWORD, ROLE_CITY_ADMIN, city_id=999999)

    def test_unknown_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("x@test.local", "X", PASSWORD, "auditor")

    def test_email_is_normalized_and_unique(self, users, locations):
        with pytest.raises(ValidationError):
            auth_service.create_user(
                "  ANI@Menteng.TEST ", "Ani Again", PASSWORD, ROLE_BRANCH_USER,
                branch_id=locations.menteng_raya.id,
            )


class TestAuthenticate:

    def test_valid_credentials(self, users):
        user = auth_service.authenticate("Ani@Menteng.test", PASSWORD)
        assert user is not None
        assert user.id == users.branch_user.id
        assert user.last_login_at is not None

    def test_wrong_password(self, users):
        assert auth_service.authenticate(users.branch_user.email, "Wrong123!") is None

    def test_inactive_user(self, users):
        auth_service.deactivate_user(users.branch_user.id)
        assert auth_service.authenticate(users.branch_user.email, PASSWORD) is None


class TestSessions:

    def test_token_is_stored_hashed(self, users):
        session, token = session_service.create_session(users.branch_user.id)
        assert len(token) == 64
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_validate_yields_actor(self, users, locations):
        _, token = session_service.create_session(users.menteng_admin.id)
        context = session_service.validate_session(token)

        assert context is not None
        assert context.user.id == users.menteng_admin.id
        assert context.actor.role == ROLE_SUBDISTRICT_ADMIN
        assert context.actor.subdistrict_name == "Menteng"
        assert context.actor.city_name == "Jakarta"

    def test_unknown_token(self, users):
        assert session_service.validate_session("f" * 64) is None

    def test_expired_session(self, users, db_session):
        session, token = session_service.create_session(users.branch_user.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_session_is_revoked(self, users, db_session):
        session, token = session_service.create_session(users.branch_user.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        refreshed = db_session.get(SessionToken, session.id)
        assert refreshed.is_revoked
        assert refreshed.revoked_reason == "Idle timeout"

    def test_deactivated_user_loses_sessions(self, users):
        _, token = session_service.create_session(users.branch_user.id)
        auth_service.deactivate_user(users.branch_user.id)
        assert session_service.validate_session(token) is None

    def test_revoke_all(self, users):
        tokens = [session_service.create_session(users.branch_user.id)[1] for _ in range(3)]
        assert session_service.revoke_all_user_sessions(users.branch_user.id) == 3
        for token in tokens:
            assert session_service.validate_session(token) is None

    def test_load_actor_unknown_user(self, db_session):
        with pytest.raises(NotFound):
            session_service.load_actor(999999)


class TestAuthRoutes:

    def test_login_returns_token_and_actor(self, client, users):
        response = client.post("/api/auth/login", json={"email": users.jakarta_admin.email, "password": PASSWORD})

        assert response.status_code == 200
        assert response.json["token"]
        assert response.json["actor"]["role"] == ROLE_CITY_ADMIN
        assert response.json["actor"]["city_name"] == "Jakarta"

    def test_login_failure_is_audited(self, client, users, db_session):
        response = client.post("/api/auth/login", json={"email": users.jakarta_admin.email, "password": "Nope123!"})

        assert response.status_code == 401
        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.success is False

    def test_login_requires_both_fields(self, client, users):
        response = client.post("/api/auth/login", json={"email": users.jakarta_admin.email})
        assert response.status_code == 400

    def test_me(self, client, users, headers_for):
        response = client.get("/api/auth/me", headers=headers_for("senopati_user"))

        assert response.status_code == 200
        assert response.json["user"]["email"] == users.senopati_user.email
        assert response.json["actor"]["branch_name"] == "Senopati"
        assert response.json["actor"]["subdistrict_name"] == "Kebayoran Baru"

    def test_me_requires_token(self, client, users):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": "Bearer bogus"}).status_code == 401

    def test_logout_revokes_token(self, client, headers_for):
        headers = headers_for("branch_user")

        response = client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200

        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert client.post("/api/auth/logout", headers=headers).status_code == 401
