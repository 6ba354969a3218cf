# Overview: Flask API routes for CSV and printable HTML exports.

from flask import Blueprint, Response, request, jsonify, current_app

from ..services import export_service
from ..services.export_service import ExportError
from ..services.reporting_service import ReportError
from ..services.document_tracking_service import DocumentTrackingError
from ..validation import NotFoundError
from ..decorators import require_auth, require_permission


exports_bp = Blueprint("exports", __name__, url_prefix="/api/exports")

_LIST_PARAMS = {
    "agents": ("search", "status", "account_type", "balance_type", "sort_by", "sort_order"),
    "debt": ("search", "risk_level", "balance_type", "sort_by", "sort_order"),
    "statement": ("date_from", "date_to"),
    "documents": ("status", "search"),
}


def _filters(report: str) -> dict:
    filters = {key: request.args.get(key) for key in _LIST_PARAMS.get(report, ())}
    if report == "statement":
        filters["agent_id"] = request.args.get("agent_id", type=int)
        filters["tx_type"] = request.args.get("type")
    if report == "documents":
        filters["agent_id"] = request.args.get("agent_id", type=int)
    return filters


def _export(report: str, extension: str):
    try:
        dataset = export_service.build_dataset(report, **_filters(report))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ExportError, ReportError, DocumentTrackingError) as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to build %s export", report)
        return jsonify({"error": "Internal server error"}), 500

    filename = export_service.export_filename(report, extension)
    if extension == "csv":
        body = export_service.to_csv(dataset)
        mimetype = "text/csv"
    else:
        body = export_service.to_html(dataset)
        mimetype = "text/html"

    disposition = "attachment" if extension == "csv" else "inline"
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


@exports_bp.get("/<report>.csv")
@require_auth
@require_permission("EXPORT_REPORTS")
def export_csv_route(report: str):
    """Reports: agents, debt, statement (agent_id required), documents."""
    return _export(report, "csv")


@exports_bp.get("/<report>.html")
@require_auth
@require_permission("EXPORT_REPORTS")
def export_html_route(report: str):
    return _export(report, "html")
