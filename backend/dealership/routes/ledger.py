# Overview: Flask API routes for the agent ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import ledger_service, reporting_service, settlement_service
from ..services.ledger_service import LedgerError
from ..services.reporting_service import ReportError
from ..services.settlement_service import SettlementError
from ..validation import NotFoundError, ValidationError, coerce_int, require_amount_cents
from ..decorators import require_auth, require_permission, require_agent_access


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/agents")


@ledger_bp.get("/<int:agent_id>/transactions")
@require_auth
@require_permission("VIEW_AGENT_LEDGER")
@require_agent_access
def list_transactions_route(agent_id: int):
    """Query params: type, limit (default 100, max 500), offset."""
    limit = min(request.args.get("limit", 100, type=int), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = ledger_service.list_transactions(
        agent_id,
        tx_type=request.args.get("type"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "transactions": [t.to_dict() for t in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@ledger_bp.post("/<int:agent_id>/payments")
@require_auth
@require_permission("RECORD_AGENT_PAYMENTS")
def record_payment_route(agent_id: int):
    """
    Request body:
    {
        "amount_cents": int (> 0),
        "payment_method": "cash" | "bank_transfer" | "check" | "installments" (optional;
                          omitted records a plain credit),
        "description": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        amount = require_amount_cents("amount_cents", data.get("amount_cents"))
        entry = ledger_service.record_payment(
            agent_id,
            amount,
            payment_method=data.get("payment_method"),
            description=data.get("description"),
            user_id=g.current_user.id,
        )
        return jsonify({"transaction": entry.to_dict()}), 201

    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, LedgerError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record agent payment")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.post("/<int:agent_id>/debt")
@require_auth
@require_permission("ADJUST_AGENT_DEBT")
def change_debt_route(agent_id: int):
    """
    Request body:
    {
        "direction": "increase" | "decrease",
        "amount_cents": int (> 0),
        "description": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        amount = require_amount_cents("amount_cents", data.get("amount_cents"))
        entry = ledger_service.change_debt(
            agent_id,
            data.get("direction"),
            amount,
            description=data.get("description"),
            user_id=g.current_user.id,
        )
        return jsonify({"transaction": entry.to_dict()}), 201

    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, LedgerError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change agent debt")
        return jsonify({"error": "Internal server error"}), 500


def _settlement_args(data: dict) -> tuple[str, int | None]:
    settlement_type = data.get("settlement_type")
    if not settlement_type:
        raise ValidationError("settlement_type is required")
    raw = data.get("amount_cents")
    return settlement_type, (None if raw is None else coerce_int("amount_cents", raw))


@ledger_bp.post("/<int:agent_id>/settlements/preview")
@require_auth
@require_permission("SETTLE_AGENT_ACCOUNTS")
def preview_settlement_route(agent_id: int):
    data = request.get_json(silent=True) or {}
    try:
        settlement_type, amount = _settlement_args(data)
        preview = settlement_service.preview_settlement(agent_id, settlement_type, amount)
        return jsonify({"preview": preview}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SettlementError) as e:
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400


@ledger_bp.post("/<int:agent_id>/settlements")
@require_auth
@require_permission("SETTLE_AGENT_ACCOUNTS")
def settle_account_route(agent_id: int):
    """
    Request body:
    {
        "settlement_type": "full" | "partial" | "adjustment",
        "amount_cents": int (partial: amount to settle; adjustment: target balance),
        "description": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        settlement_type, amount = _settlement_args(data)
        settlement, entry = settlement_service.settle_account(
            agent_id,
            settlement_type,
            requested_cents=amount,
            description=data.get("description"),
            user_id=g.current_user.id,
        )
        return jsonify({"settlement": settlement.to_dict(), "transaction": entry.to_dict()}), 201

    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SettlementError, LedgerError) as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to settle agent account")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/<int:agent_id>/settlements")
@require_auth
@require_permission("VIEW_AGENT_LEDGER")
@require_agent_access
def list_settlements_route(agent_id: int):
    settlements = settlement_service.list_settlements(agent_id)
    return jsonify({"settlements": [s.to_dict() for s in settlements]}), 200


@ledger_bp.get("/<int:agent_id>/statement")
@require_auth
@require_permission("VIEW_AGENT_LEDGER")
@require_agent_access
def statement_route(agent_id: int):
    """Query params: date_from, date_to (YYYY-MM-DD, inclusive), type."""
    try:
        statement = reporting_service.agent_statement(
            agent_id,
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            tx_type=request.args.get("type"),
        )
        return jsonify(statement), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReportError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@ledger_bp.get("/<int:agent_id>/ledger/verify")
@require_auth
@require_permission("VERIFY_LEDGER")
def verify_ledger_route(agent_id: int):
    try:
        return jsonify(ledger_service.verify_agent_ledger(agent_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
