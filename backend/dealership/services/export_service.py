# Overview: CSV and printable HTML exports of report tables.

"""
Export helpers.

A dataset is {"title", "headers": [{"key", "label", "format"?}], "rows": [...],
"totals": {...} | None}. The same dataset renders to UTF-8 CSV (with BOM so
spreadsheet tools pick the encoding) or to a print-ready HTML page.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime

from flask import current_app, render_template

from dealership.time_utils import to_utc_z, utcnow
from . import document_tracking_service, reporting_service, agent_service


EXPORT_REPORTS = ("agents", "debt", "statement", "documents")

UTF8_BOM = "\ufeff"
TOTAL_LABEL = "Total"


class ExportError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def format_cents(value) -> str:
    if value is None:
        return ""
    sign = "-" if value < 0 else ""
    whole, cents = divmod(abs(int(value)), 100)
    return f"{sign}{whole}.{cents:02d}"


def _format(header: dict, value) -> str:
    if value is None:
        return ""
    if header.get("format") == "money":
        return format_cents(value)
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def to_csv(dataset: dict) -> str:
    """All fields quoted; totals row labelled in the first column."""
    headers = dataset["headers"]
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow([h["label"] for h in headers])
    for row in dataset["rows"]:
        writer.writerow([_format(h, row.get(h["key"])) for h in headers])

    totals = dataset.get("totals")
    if totals:
        buffer.write("\n")
        writer.writerow([TOTAL_LABEL] + [_format(h, totals.get(h["key"])) for h in headers[1:]])

    return UTF8_BOM + buffer.getvalue()


def to_html(dataset: dict) -> str:
    headers = dataset["headers"]
    rows = [[_format(h, row.get(h["key"])) for h in headers] for row in dataset["rows"]]
    totals = dataset.get("totals")
    total_cells = None
    if totals:
        total_cells = [TOTAL_LABEL] + [_format(h, totals.get(h["key"])) for h in headers[1:]]

    return render_template(
        "export/report.html",
        company_name=current_app.config.get("COMPANY_NAME", ""),
        title=dataset["title"],
        subtitle=dataset.get("subtitle"),
        headers=headers,
        rows=rows,
        totals=total_cells,
        summary=dataset.get("summary") or [],
        generated_at=to_utc_z(dataset.get("generated_at") or utcnow()),
    )


# =============================================================================
# Datasets
# =============================================================================

def agents_dataset(**filters) -> dict:
    rows = agent_service.list_agents(**filters)
    return {
        "title": "Agents",
        "headers": [
            {"key": "name", "label": "Agent"},
            {"key": "phone", "label": "Phone"},
            {"key": "account_type", "label": "Account"},
            {"key": "status", "label": "Status"},
            {"key": "current_balance_cents", "label": "Balance", "format": "money"},
            {"key": "total_sales_cents", "label": "Total sales", "format": "money"},
        ],
        "rows": rows,
        "totals": {
            "current_balance_cents": sum(r["current_balance_cents"] for r in rows),
            "total_sales_cents": sum(r["total_sales_cents"] for r in rows),
        },
    }


def debt_dataset(**filters) -> dict:
    report = reporting_service.debt_report(**filters)
    summary = report["summary"]
    rows = report["agents"]
    return {
        "title": "Debt report",
        "headers": [
            {"key": "name", "label": "Agent"},
            {"key": "phone", "label": "Phone"},
            {"key": "net_balance_cents", "label": "Net balance", "format": "money"},
            {"key": "risk_level", "label": "Risk"},
            {"key": "days_since_last_payment", "label": "Days since payment"},
            {"key": "last_payment_at", "label": "Last payment"},
        ],
        "rows": rows,
        "totals": {"net_balance_cents": sum(r["net_balance_cents"] for r in rows)},
        "summary": [
            ("Debtors", summary["debtor_count"]),
            ("Total debt", format_cents(summary["total_debt_cents"])),
            ("Creditors", summary["creditor_count"]),
            ("Total credit", format_cents(summary["total_credit_cents"])),
            ("High risk", summary["high_risk_count"]),
            ("Overdue", summary["overdue_count"]),
        ],
    }


def statement_dataset(agent_id: int | None = None, **filters) -> dict:
    if agent_id is None:
        raise ExportError("agent_id is required for the statement export")
    statement = reporting_service.agent_statement(agent_id, **filters)

    rows = []
    for entry in statement["entries"]:
        amount = entry["amount_cents"]
        rows.append({
            "created_at": entry["created_at"],
            "type": entry["type"],
            "description": entry["description"],
            "debit_cents": -amount if amount < 0 else None,
            "credit_cents": amount if amount > 0 else None,
            "new_balance_cents": entry["new_balance_cents"],
        })

    totals = statement["totals"]
    return {
        "title": f"Statement: {statement['agent']['name']}",
        "subtitle": f"{statement['date_from'] or 'start'} to {statement['date_to'] or 'now'}",
        "headers": [
            {"key": "created_at", "label": "Date"},
            {"key": "type", "label": "Type"},
            {"key": "description", "label": "Description"},
            {"key": "debit_cents", "label": "Debit", "format": "money"},
            {"key": "credit_cents", "label": "Credit", "format": "money"},
            {"key": "new_balance_cents", "label": "Balance", "format": "money"},
        ],
        "rows": rows,
        "totals": {
            "debit_cents": totals["total_debit_cents"],
            "credit_cents": totals["total_credit_cents"],
            "new_balance_cents": statement["closing_balance_cents"],
        },
        "summary": [
            ("Opening balance", format_cents(statement["opening_balance_cents"])),
            ("Closing balance", format_cents(statement["closing_balance_cents"])),
        ],
    }


def documents_dataset(**filters) -> dict:
    listing = document_tracking_service.list_documents(**filters)
    return {
        "title": "Document tracking",
        "headers": [
            {"key": "customer_name", "label": "Customer"},
            {"key": "vehicle_description", "label": "Vehicle"},
            {"key": "motor_fingerprint", "label": "Motor fingerprint"},
            {"key": "chassis_number", "label": "Chassis number"},
            {"key": "status", "label": "Status"},
            {"key": "progress_percent", "label": "Progress %"},
            {"key": "created_at", "label": "Created"},
        ],
        "rows": listing["documents"],
        "totals": None,
        "summary": [(status, count) for status, count in listing["counts"].items()],
    }


DATASET_BUILDERS = {
    "agents": agents_dataset,
    "debt": debt_dataset,
    "statement": statement_dataset,
    "documents": documents_dataset,
}


def build_dataset(report: str, **filters) -> dict:
    builder = DATASET_BUILDERS.get(report)
    if builder is None:
        raise ExportError(f"Unknown report: {report}", details={"allowed": list(EXPORT_REPORTS)})
    return builder(**filters)


def export_filename(report: str, extension: str, now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"{report}-{now:%Y%m%d}.{extension}"
