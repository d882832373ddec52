# Overview: Request and area decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .enums import Area
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
    Require a valid bearer session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing, the token is invalid or expired,
    or the user account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_area(*areas: Area):
    """
    Gate a route by area claim. Admin passes every gate.

    Use after @require_auth. The services re-check their own rules; this only
    rejects obviously misrouted requests early.
    """
    allowed = frozenset(Area(a) for a in areas)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if user.area != Area.ADMIN and user.area not in allowed:
                return jsonify({
                    "error": "Area not allowed",
                    "required_areas": sorted(a.value for a in allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
