# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import permission_service, reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


def _report_filters() -> dict:
    return {
        "search": request.args.get("search"),
        "risk_level": request.args.get("risk_level"),
        "balance_type": request.args.get("balance_type"),
        "sort_by": request.args.get("sort_by"),
        "sort_order": request.args.get("sort_order"),
        "include_inactive": request.args.get("include_inactive") == "true",
    }


@reports_bp.get("/reports/debt")
@require_auth
@require_permission("VIEW_REPORTS")
def debt_report_route():
    """
    Query params: search, risk_level (low|medium|high|critical), balance_type
    (debtors|creditors|balanced), sort_by (name|balance|net_balance|last_payment),
    sort_order (asc|desc), include_inactive
    """
    try:
        return jsonify(reporting_service.debt_report(**_report_filters())), 200
    except ReportError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@reports_bp.get("/reports/balances")
@require_auth
@require_permission("VIEW_REPORTS")
def balance_report_route():
    """Same parameters as the debt report; sort_by also accepts profitability."""
    try:
        return jsonify(reporting_service.balance_report(**_report_filters())), 200
    except ReportError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@reports_bp.get("/reports/dashboard")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_route():
    return jsonify(reporting_service.dashboard_stats()), 200


@reports_bp.get("/customers/inquiry")
@require_auth
@require_permission("CUSTOMER_INQUIRY")
def customer_inquiry_route():
    """
    Query params: search_type (name|phone|national_id|motor_fingerprint|
    chassis_number|invoice_number), term
    """
    user = g.current_user
    try:
        results = reporting_service.customer_inquiry(
            request.args.get("search_type", "name"),
            request.args.get("term"),
            scope_agent_id=permission_service.agent_scope_id(user),
            company_only=permission_service.is_company_scoped(user),
        )
        return jsonify({"results": results, "count": len(results)}), 200
    except ReportError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
