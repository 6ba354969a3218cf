# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets g.current_user and g.session_token. Returns 401 when the header is
    missing, the token is unknown, expired or revoked, or the user has been
    deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def _denied(permission_code: str, message: str):
    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="PERMISSION_DENIED",
        resource=request.path,
        action=request.method,
        reason=message,
        ip_address=request.remote_addr,
    )
    return jsonify({
        "error": "Permission denied",
        "required_permission": permission_code,
        "message": message,
    }), 403


def require_permission(permission_code: str):
    """Require a specific permission. Must be applied after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(g.current_user, permission_code)
            except PermissionDeniedError as e:
                return _denied(permission_code, str(e))

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_agent_access(f):
    """
    Confine agent-role users to their own agent id.

    The wrapped view must take an `agent_id` URL parameter.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        agent_id = kwargs.get("agent_id")
        try:
            permission_service.ensure_agent_access(g.current_user, agent_id)
        except PermissionDeniedError as e:
            permission_service.log_security_event(
                user_id=g.current_user.id,
                event_type="AGENT_SCOPE_DENIED",
                resource=request.path,
                action=request.method,
                reason=str(e),
                ip_address=request.remote_addr,
            )
            return jsonify({"error": "Permission denied", "message": str(e)}), 403

        return f(*args, **kwargs)

    return decorated_function
