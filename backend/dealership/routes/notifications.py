# Overview: Flask API routes for the signed-in user's notifications.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import notification_service
from ..services.notification_service import NotificationError
from ..validation import NotFoundError
from ..decorators import require_auth


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """Query params: status (unread | read), limit (default 100, max 500)."""
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    try:
        notifications = notification_service.list_notifications(
            g.current_user.id,
            status=request.args.get("status") or None,
            limit=limit,
        )
    except NotificationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    return jsonify({
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": notification_service.unread_count(g.current_user.id),
    }), 200


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.current_user.id)
        return jsonify({"notification": notification.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    try:
        updated = notification_service.mark_all_read(g.current_user.id)
        return jsonify({"updated": updated}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to mark notifications read")
        return jsonify({"error": "Internal server error"}), 500
