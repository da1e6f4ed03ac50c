# Overview: Service-layer operations for session tokens and the request actor.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

Each validated session also yields the request's Actor: the user's id,
role and resolved location assignment. Routes pass that value explicitly
into the workflow; nothing downstream reads the session.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout or security events
- Tracks client IP and user agent for security monitoring
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from reportflow.actor import Actor
from reportflow.errors import NotFound
from reportflow.models import SessionToken, User
from reportflow.services import location_service
from reportflow.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    """Everything require_auth puts on flask.g."""
    user: User
    session: SessionToken
    actor: Actor


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def actor_for_user(user: User) -> Actor:
    """Build the explicit identity value for a user."""
    assignment = location_service.resolve_assignment(user)
    return Actor(
        id=user.id,
        role=user.role,
        name=user.name,
        branch_id=assignment.branch_id,
        branch_name=assignment.branch_name,
        subdistrict_id=assignment.subdistrict_id,
        subdistrict_name=assignment.subdistrict_name,
        city_id=assignment.city_id,
        city_name=assignment.city_name,
    )


def load_actor(user_id: int) -> Actor:
    """
    Raises:
        NotFound: If the user does not exist
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", user_id=user_id)
    return actor_for_user(user)


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found", user_id=user_id)

    plaintext_token = generate_token()
    token_hash = hash_token(plaintext_token)

    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=token_hash,
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - User account is deactivated (is_active=False)

    Updates last_used_at on successful validation (activity tracking).
    """
    token_hash = hash_token(token)
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=token_hash,
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, actor=actor_for_user(user))


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke all active sessions for a user.

    Returns count of sessions revoked.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return len(sessions)
