# Overview: Flask API routes for agents; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import agent_service, permission_service
from ..services.auth_service import PasswordValidationError, UserError
from ..services.ledger_service import LedgerError
from ..validation import ConflictError, NotFoundError, ValidationError, require_amount_cents
from ..decorators import require_auth, require_permission, require_agent_access


agents_bp = Blueprint("agents", __name__, url_prefix="/api/agents")

AGENT_FIELDS = ("name", "phone", "address", "national_id", "commission_rate_bps", "notes")


def _create(data: dict, *, offline: bool):
    payload = {k: data[k] for k in AGENT_FIELDS if k in data}

    opening = data.get("opening_balance_cents")
    opening = 0 if opening is None else require_amount_cents(
        "opening_balance_cents", opening, allow_zero=True, allow_negative=True
    )

    account = None
    if not offline:
        account = data.get("account")
        if not isinstance(account, dict):
            raise ValidationError("account {username, email, password} is required; use /offline for agents without a login")

    return agent_service.create_agent(
        payload,
        opening_balance_cents=opening,
        account=account,
        created_by_user_id=g.current_user.id,
    )


def _create_route(offline: bool):
    data = request.get_json(silent=True) or {}
    try:
        agent = _create(data, offline=offline)
        return jsonify({"agent": agent.to_dict()}), 201

    except (ValidationError, UserError, PasswordValidationError, LedgerError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create agent")
        return jsonify({"error": "Internal server error"}), 500


@agents_bp.post("")
@require_auth
@require_permission("MANAGE_AGENTS")
def create_agent_route():
    """
    Create an agent with a login.

    Request body:
    {
        "name": str,
        "phone": str, "address": str, "national_id": str (optional),
        "commission_rate_bps": int (optional, default 1000),
        "opening_balance_cents": int (optional, signed),
        "account": {"username": str, "email": str, "password": str}
    }
    """
    return _create_route(offline=False)


@agents_bp.post("/offline")
@require_auth
@require_permission("MANAGE_AGENTS")
def create_offline_agent_route():
    """Create an agent without a login; managers record its sales."""
    return _create_route(offline=True)


@agents_bp.get("")
@require_auth
@require_permission("VIEW_AGENTS")
def list_agents_route():
    """
    Query params: search, status (active|inactive), account_type (online|offline),
    balance_type (debtors|creditors|balanced), sort_by (name|balance|created_at|total_sales),
    sort_order (asc|desc)
    """
    rows = agent_service.list_agents(
        search=request.args.get("search"),
        status=request.args.get("status"),
        account_type=request.args.get("account_type"),
        balance_type=request.args.get("balance_type"),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order"),
        scope_agent_id=permission_service.agent_scope_id(g.current_user),
    )
    return jsonify({"agents": rows, "count": len(rows)}), 200


@agents_bp.get("/<int:agent_id>")
@require_auth
@require_permission("VIEW_AGENTS")
@require_agent_access
def get_agent_route(agent_id: int):
    try:
        return jsonify({"agent": agent_service.agent_summary(agent_id)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@agents_bp.patch("/<int:agent_id>")
@require_auth
@require_permission("MANAGE_AGENTS")
def update_agent_route(agent_id: int):
    data = request.get_json(silent=True) or {}
    try:
        agent = agent_service.update_agent(agent_id, data)
        return jsonify({"agent": agent.to_dict()}), 200

    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update agent")
        return jsonify({"error": "Internal server error"}), 500
