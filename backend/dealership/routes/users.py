# Overview: Flask API routes for user management; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import User
from ..permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCategory,
    get_permission_definition,
    get_permissions_by_category,
)
from ..services import auth_service, session_service
from ..services.auth_service import PasswordValidationError, UserError
from ..decorators import require_auth, require_permission


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    role = request.args.get("role")
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    users = query.order_by(User.username).all()
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Request body:
    {
        "username": str, "email": str, "password": str,
        "role": "super_admin" | "admin" | "showroom_user",
        "display_name": str (optional), "warehouse_id": int (optional)
    }

    Agent logins are created through POST /api/agents.
    """
    data = request.get_json(silent=True) or {}
    try:
        role = data.get("role", "admin")
        if role == "agent":
            return jsonify({"error": "Agent accounts are created with the agent profile"}), 400

        user = auth_service.create_user(
            username=data["username"],
            email=data["email"],
            password=data["password"],
            role=role,
            display_name=data.get("display_name"),
            phone=data.get("phone"),
            warehouse_id=data.get("warehouse_id"),
        )
        return jsonify({"user": user.to_dict()}), 201

    except KeyError as e:
        db.session.rollback()
        return jsonify({"error": f"Missing required field: {e.args[0]}"}), 400
    except (UserError, PasswordValidationError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>/active")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_active_route(user_id: int):
    """Activate or deactivate a login; deactivation revokes its sessions."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("is_active"), bool):
        return jsonify({"error": "is_active (bool) required"}), 400
    try:
        user = auth_service.set_user_active(user_id, data["is_active"])
        if not user.is_active:
            session_service.revoke_all_user_sessions(user.id, reason="User deactivated")
        return jsonify({"user": user.to_dict()}), 200
    except UserError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/permissions")
@require_auth
@require_permission("MANAGE_USERS")
def list_permissions_route():
    """Permission catalogue grouped by category, plus the codes each role holds."""
    categories = [
        value for key, value in vars(PermissionCategory).items()
        if not key.startswith("_")
    ]
    return jsonify({
        "categories": {
            category: [get_permission_definition(perm[0]) for perm in get_permissions_by_category(category)]
            for category in categories
        },
        "roles": {role: sorted(codes) for role, codes in DEFAULT_ROLE_PERMISSIONS.items()},
    }), 200
