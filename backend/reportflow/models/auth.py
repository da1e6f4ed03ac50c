from __future__ import annotations

from ..extensions import db
from reportflow.time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Every user has exactly one role. The location assignment depends on it:
    - branch_user:       branch_id set
    - subdistrict_admin: subdistrict_id set
    - city_admin:        city_id set
    - super_admin:       no location

    WHY: Every action must be attributable. No shared logins.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False)  # branch_user, subdistrict_admin, city_admin, super_admin

    # At most one of these is set, matching the role
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    subdistrict_id = db.Column(db.Integer, db.ForeignKey("subdistricts.id"), nullable=True, index=True)
    city_id = db.Column(db.Integer, db.ForeignKey("cities.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    branch = db.relationship("Branch", backref=db.backref("users", lazy=True))
    subdistrict = db.relationship("Subdistrict", backref=db.backref("admins", lazy=True))
    city = db.relationship("City", backref=db.backref("admins", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "branch_id": self.branch_id,
            "subdistrict_id": self.subdistrict_id,
            "city_id": self.city_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Authenticated session.

    SECURITY:
    - Only the SHA-256 hash of the token is stored
    - Sessions expire (absolute + idle timeout) and can be revoked
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
