# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user (the authenticated User) and g.token.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require the authenticated user to hold one of the given roles.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if user.role not in roles:
                current_app.logger.warning(
                    "Role denied: user=%s role=%s path=%s required=%s",
                    user.username, user.role, request.path, ",".join(roles),
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "message": f"Requires any of: {', '.join(roles)}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
