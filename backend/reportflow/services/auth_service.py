# Overview: Service-layer operations for auth; passwords, user accounts, role assignments.

"""
Authentication Service

WHY: Every report action must be attributable to one account. Uses bcrypt
for password hashing and validates password strength.

ROLE ASSIGNMENT:
Each user has exactly one role, and the role decides which location column
is set:
- branch_user:       branch_id only
- subdistrict_admin: subdistrict_id only
- city_admin:        city_id only
- super_admin:       none

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from reportflow.errors import NotFound, ValidationError
from reportflow.models import Branch, City, Subdistrict, User
from reportflow.permissions import ROLE_ASSIGNMENT_LEVEL, VALID_ROLES
from reportflow.time_utils import utcnow


DEFAULT_BCRYPT_ROUNDS = 12


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including a
    malformed hash).
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def validate_role_assignment(
    role: str,
    *,
    branch_id: int | None = None,
    subdistrict_id: int | None = None,
    city_id: int | None = None,
) -> None:
    """
    Enforce one role, one matching location.

    Raises:
        ValidationError: Unknown role, missing assignment, or an assignment
            at the wrong level
        NotFound: The referenced location does not exist
    """
    if role not in VALID_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}",
            role=role,
        )

    level = ROLE_ASSIGNMENT_LEVEL[role]
    expected = f"{level}_id" if level else None

    supplied = {
        name: value
        for name, value in (
            ("branch_id", branch_id),
            ("subdistrict_id", subdistrict_id),
            ("city_id", city_id),
        )
        if value is not None
    }

    if expected is None:
        if supplied:
            raise ValidationError(f"Role '{role}' has no location assignment", role=role)
        return

    if set(supplied) != {expected}:
        raise ValidationError(f"Role '{role}' requires exactly {expected}", role=role)

    model = {"branch_id": Branch, "subdistrict_id": Subdistrict, "city_id": City}[expected]
    if db.session.get(model, supplied[expected]) is None:
        raise NotFound(f"{model.__name__} {supplied[expected]} not found")


def create_user(
    email: str,
    name: str,
    password: str,
    role: str,
    *,
    branch_id: int | None = None,
    subdistrict_id: int | None = None,
    city_id: int | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: Email taken, blank name, bad role assignment, or
            weak password (PasswordValidationError)
        NotFound: Assigned location does not exist
    """
    email = (email or "").strip().lower()
    name = (name or "").strip()
    if not email:
        raise ValidationError("Email is required")
    if not name:
        raise ValidationError("Name is required")

    validate_role_assignment(
        role,
        branch_id=branch_id,
        subdistrict_id=subdistrict_id,
        city_id=city_id,
    )

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ValidationError("Email already exists", email=email)

    password_hash = hash_password(password)

    user = User(
        email=email,
        name=name,
        password_hash=password_hash,
        role=role,
        branch_id=branch_id,
        subdistrict_id=subdistrict_id,
        city_id=city_id,
        is_active=True,
        created_at=utcnow(),
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def deactivate_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", user_id=user_id)
    user.is_active = False
    db.session.commit()
    return user
