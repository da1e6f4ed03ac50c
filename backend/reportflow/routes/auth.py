# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/reportflow/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login  - exchange email/password for a bearer token
- POST /api/auth/logout - revoke the presented token
- GET  /api/auth/me     - the authenticated user and their resolved actor

Accounts are created by administrators through the CLI; there is no
self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource="/api/auth/login",
                action="POST",
                reason=f"Invalid credentials for {email}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "actor": session_service.actor_for_user(user).to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        context = session_service.validate_session(token)
        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        permission_service.log_security_event(
            user_id=context.user.id if context else None,
            event_type="LOGOUT",
            success=True,
            resource="/api/auth/logout",
            action="POST",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """The authenticated user, with the assignment their scope is matched on."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "actor": g.actor.to_dict(),
    }), 200
