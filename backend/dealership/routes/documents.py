# Overview: Flask API routes for document tracking; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import document_tracking_service, permission_service
from ..services.document_tracking_service import DocumentTrackingError
from ..validation import NotFoundError
from ..decorators import require_auth, require_permission


documents_bp = Blueprint("documents", __name__, url_prefix="/api/documents")


@documents_bp.get("")
@require_auth
@require_permission("VIEW_DOCUMENTS")
def list_documents_route():
    """Query params: status, agent_id, search (customer name, motor fingerprint, chassis number)."""
    try:
        listing = document_tracking_service.list_documents(
            status=request.args.get("status") or None,
            agent_id=request.args.get("agent_id", type=int),
            search=request.args.get("search"),
            scope_agent_id=permission_service.agent_scope_id(g.current_user),
        )
        return jsonify(listing), 200
    except DocumentTrackingError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@documents_bp.get("/<int:document_id>")
@require_auth
@require_permission("VIEW_DOCUMENTS")
def get_document_route(document_id: int):
    try:
        document = document_tracking_service.get_document(document_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    scope = permission_service.agent_scope_id(g.current_user)
    if scope is not None and document.agent_id != scope:
        return jsonify({"error": "Permission denied"}), 403

    data = document.to_dict(include_stages=True)
    data["next_status"] = document_tracking_service.next_status(document.status)
    return jsonify({"document": data}), 200


@documents_bp.post("/<int:document_id>/advance")
@require_auth
@require_permission("ADVANCE_DOCUMENTS")
def advance_document_route(document_id: int):
    """
    Request body (optional):
    {
        "status": str (must equal the next status),
        "notes": str
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        document = document_tracking_service.advance_document(
            document_id,
            user_id=g.current_user.id,
            notes=data.get("notes"),
            target_status=data.get("status"),
        )
        return jsonify({"document": document.to_dict(include_stages=True)}), 200

    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except DocumentTrackingError as e:
        db.session.rollback()
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to advance document")
        return jsonify({"error": "Internal server error"}), 500
