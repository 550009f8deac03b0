# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pos/routes/auth.py
"""
Authentication API routes

- Login issues an opaque bearer token (hashed at rest)
- Logout revokes it
- Accounts are created by administrators via the CLI: flask users create
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import bearer_token, require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Body: {"username": "...", "password": "..."} (username may be an email)

    Token must be sent as "Authorization: Bearer <token>" on protected routes.
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "username/email and password required"}), 400

    user = auth_service.authenticate(username, password)
    if not user:
        current_app.logger.warning("Failed login for %s from %s", username, request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return jsonify({
        "token": token,
        "token_type": "Bearer",
        "expires_in": int(session_service.session_ttl().total_seconds()),
        "user": user.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.get("/validate")
def validate_route():
    """
    Check whether a token is still usable.

    Accepts ?token=<token> or the Authorization header. Always 200; the
    answer is in "valid".
    """
    token = request.args.get("token") or bearer_token()
    if not token:
        return jsonify({"valid": False}), 200

    return jsonify({"valid": session_service.validate_session(token) is not None}), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(token):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
