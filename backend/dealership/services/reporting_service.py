# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Read-only reports: debt and balance risk reports, agent statements, the
dashboard counters and customer inquiry.

All functions accept `now` so day counts are reproducible in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..models import Agent, AgentTransaction, DocumentTracking, InventoryItem, Sale
from ..models.agents import TRANSACTION_TYPES, TX_PAYMENT
from ..models.documents import DOC_PENDING_SUBMISSION, DOC_SUBMITTED
from ..models.inventory import ITEM_SOLD
from ..models.sales import SALE_TYPE_COMPANY
from ..validation import NotFoundError
from dealership.time_utils import (
    end_of_day,
    parse_iso_datetime,
    start_of_day,
    to_utc_z,
    utcnow,
    whole_days_between,
)
from . import balance_rules, list_filters


RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"
RISK_CRITICAL = "critical"
RISK_LEVELS = (RISK_LOW, RISK_MEDIUM, RISK_HIGH, RISK_CRITICAL)


class ReportError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class RiskPolicy:
    """Debt thresholds (cents, strictly greater than) and day limits."""
    name: str
    medium_above_cents: int
    high_above_cents: int
    critical_above_cents: int
    escalate_after_days: int
    overdue_after_days: int


DEBT_REPORT_POLICY = RiskPolicy(
    name="debt",
    medium_above_cents=2_000_000,
    high_above_cents=5_000_000,
    critical_above_cents=10_000_000,
    escalate_after_days=60,
    overdue_after_days=30,
)

BALANCE_REPORT_POLICY = RiskPolicy(
    name="balance",
    medium_above_cents=5_000_000,
    high_above_cents=10_000_000,
    critical_above_cents=20_000_000,
    escalate_after_days=90,
    overdue_after_days=60,
)


def classify_risk(net_balance_cents: int, days_since_last_payment: int | None, policy: RiskPolicy) -> str:
    """
    Risk level of an agent's position.

    Creditors and balanced agents are always low. A debtor whose last
    payment is older than the policy's escalation limit is raised to at
    least high, and high becomes critical. Agents that never paid are not
    escalated.
    """
    if net_balance_cents >= 0:
        return RISK_LOW

    debt = -net_balance_cents
    if debt > policy.critical_above_cents:
        level = RISK_CRITICAL
    elif debt > policy.high_above_cents:
        level = RISK_HIGH
    elif debt > policy.medium_above_cents:
        level = RISK_MEDIUM
    else:
        level = RISK_LOW

    if days_since_last_payment is not None and days_since_last_payment > policy.escalate_after_days:
        level = RISK_CRITICAL if level in (RISK_HIGH, RISK_CRITICAL) else RISK_HIGH

    return level


def _last_dates() -> tuple[dict[int, datetime], dict[int, datetime]]:
    """(last payment per agent, last transaction of any kind per agent)."""
    payments = dict(
        db.session.query(AgentTransaction.agent_id, db.func.max(AgentTransaction.created_at))
        .filter(AgentTransaction.type == TX_PAYMENT)
        .group_by(AgentTransaction.agent_id)
        .all()
    )
    any_tx = dict(
        db.session.query(AgentTransaction.agent_id, db.func.max(AgentTransaction.created_at))
        .group_by(AgentTransaction.agent_id)
        .all()
    )
    return payments, any_tx


def _commission_totals() -> dict[int, int]:
    rows = (
        db.session.query(Sale.agent_id, db.func.sum(Sale.agent_commission_cents))
        .filter(Sale.agent_id.isnot(None))
        .group_by(Sale.agent_id)
        .all()
    )
    return {agent_id: int(total or 0) for agent_id, total in rows}


def _agent_risk_rows(policy: RiskPolicy, now: datetime, include_inactive: bool) -> list[dict]:
    query = db.session.query(Agent)
    if not include_inactive:
        query = query.filter(Agent.is_active.is_(True))

    last_payments, last_transactions = _last_dates()
    commissions = _commission_totals()

    rows = []
    for agent in query.all():
        last_payment = last_payments.get(agent.id)
        last_tx = last_transactions.get(agent.id)
        days_payment = whole_days_between(last_payment, now)
        net = agent.current_balance_cents
        rows.append({
            "agent_id": agent.id,
            "name": agent.name,
            "phone": agent.phone,
            "account_type": "online" if agent.has_user_account else "offline",
            "net_balance_cents": net,
            "balance_type": balance_rules.balance_type(net),
            "last_payment_at": to_utc_z(last_payment),
            "days_since_last_payment": days_payment,
            "last_transaction_at": to_utc_z(last_tx),
            "days_since_last_transaction": whole_days_between(last_tx, now),
            "total_commission_cents": commissions.get(agent.id, 0),
            "risk_level": classify_risk(net, days_payment, policy),
            "is_overdue": net < 0 and days_payment is not None and days_payment > policy.overdue_after_days,
        })
    return rows


def _summarize(rows: list[dict]) -> dict:
    debtors = [r for r in rows if r["net_balance_cents"] < 0]
    creditors = [r for r in rows if r["net_balance_cents"] > 0]
    net_position = sum(r["net_balance_cents"] for r in rows)
    return {
        "total_agents": len(rows),
        "debtor_count": len(debtors),
        "creditor_count": len(creditors),
        "total_debt_cents": sum(-r["net_balance_cents"] for r in debtors),
        "total_credit_cents": sum(r["net_balance_cents"] for r in creditors),
        "net_position_cents": net_position,
        "average_balance_cents": round(net_position / len(rows)) if rows else 0,
        "high_risk_count": sum(1 for r in rows if r["risk_level"] in (RISK_HIGH, RISK_CRITICAL)),
        "overdue_count": sum(1 for r in rows if r["is_overdue"]),
        "active_recently_count": sum(
            1 for r in rows
            if r["days_since_last_transaction"] is not None and r["days_since_last_transaction"] <= 30
        ),
    }


REPORT_SORT_KEYS = {
    "name": lambda row: row["name"].casefold(),
    "balance": lambda row: abs(row["net_balance_cents"]),
    "net_balance": lambda row: row["net_balance_cents"],
    "last_payment": lambda row: row["last_payment_at"],
    "profitability": lambda row: row["total_commission_cents"],
}


def agent_risk_report(
    policy: RiskPolicy,
    *,
    search: str | None = None,
    risk_level: str | None = None,
    balance_type: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    include_inactive: bool = False,
    now: datetime | None = None,
) -> dict:
    """
    Shared body of the debt report and the advanced balance report.

    The summary covers every agent in the report; filters only narrow the
    returned rows.
    """
    if risk_level and risk_level not in RISK_LEVELS + ("all",):
        raise ReportError(f"Unknown risk level: {risk_level}", details={"allowed": list(RISK_LEVELS)})

    now = now or utcnow()
    rows = _agent_risk_rows(policy, now, include_inactive)
    summary = _summarize(rows)

    balance_filter = {"debtors": "debtor", "creditors": "creditor", "balanced": "balanced"}.get(
        balance_type or "", balance_type
    )
    filtered = list_filters.search_rows(rows, search, ("name", "phone"))
    filtered = list_filters.filter_equals(filtered, risk_level=risk_level, balance_type=balance_filter)
    filtered = list_filters.sort_rows(
        filtered, sort_by, sort_order, keys=REPORT_SORT_KEYS, default="net_balance"
    )

    return {
        "policy": policy.name,
        "generated_at": to_utc_z(now),
        "summary": summary,
        "agents": filtered,
    }


def debt_report(**kwargs) -> dict:
    return agent_risk_report(DEBT_REPORT_POLICY, **kwargs)


def balance_report(**kwargs) -> dict:
    return agent_risk_report(BALANCE_REPORT_POLICY, **kwargs)


# =============================================================================
# Agent statement
# =============================================================================

def _balance_before(agent_id: int, moment: datetime) -> int:
    entry = (
        db.session.query(AgentTransaction)
        .filter(AgentTransaction.agent_id == agent_id, AgentTransaction.created_at < moment)
        .order_by(AgentTransaction.sequence_number.desc())
        .first()
    )
    return entry.new_balance_cents if entry else 0


def _balance_at(agent_id: int, moment: datetime) -> int:
    entry = (
        db.session.query(AgentTransaction)
        .filter(AgentTransaction.agent_id == agent_id, AgentTransaction.created_at <= moment)
        .order_by(AgentTransaction.sequence_number.desc())
        .first()
    )
    return entry.new_balance_cents if entry else 0


def agent_statement(
    agent_id: int,
    *,
    date_from: str | None = None,
    date_to: str | None = None,
    tx_type: str | None = None,
) -> dict:
    """
    Ledger entries of one agent over a date range.

    date_to covers its whole day. Zero-amount entries are hidden. Opening
    and closing balances come from the full ledger, so they are unaffected
    by the type filter; the debit/credit totals cover the listed entries.
    """
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found")
    if tx_type and tx_type != "all" and tx_type not in TRANSACTION_TYPES:
        raise ReportError(f"Unknown transaction type: {tx_type}", details={"allowed": list(TRANSACTION_TYPES)})

    try:
        start = parse_iso_datetime(date_from)
        end = parse_iso_datetime(date_to)
    except ValueError:
        raise ReportError("Dates must be ISO-8601 (YYYY-MM-DD)")
    if start:
        start = start_of_day(start)
    if end:
        end = end_of_day(end)
    if start and end and start > end:
        raise ReportError("date_from must not be after date_to")

    query = db.session.query(AgentTransaction).filter(
        AgentTransaction.agent_id == agent_id,
        AgentTransaction.amount_cents != 0,
    )
    if start:
        query = query.filter(AgentTransaction.created_at >= start)
    if end:
        query = query.filter(AgentTransaction.created_at <= end)
    if tx_type and tx_type != "all":
        query = query.filter(AgentTransaction.type == tx_type)

    entries = query.order_by(AgentTransaction.sequence_number.asc()).all()

    total_debit = sum(-e.amount_cents for e in entries if e.amount_cents < 0)
    total_credit = sum(e.amount_cents for e in entries if e.amount_cents > 0)

    opening = _balance_before(agent_id, start) if start else 0
    closing = _balance_at(agent_id, end) if end else agent.current_balance_cents

    return {
        "agent": {"id": agent.id, "name": agent.name, "phone": agent.phone},
        "date_from": to_utc_z(start),
        "date_to": to_utc_z(end),
        "type": tx_type or "all",
        "entries": [e.to_dict() for e in entries],
        "totals": {
            "total_debit_cents": total_debit,
            "total_credit_cents": total_credit,
            "net_cents": total_credit - total_debit,
            "transaction_count": len(entries),
        },
        "opening_balance_cents": opening,
        "closing_balance_cents": closing,
    }


# =============================================================================
# Dashboard
# =============================================================================

def dashboard_stats(*, now: datetime | None = None) -> dict:
    now = now or utcnow()
    today = start_of_day(now)
    month_start = today.replace(day=1)

    inventory_count = db.session.query(InventoryItem).filter(InventoryItem.status != ITEM_SOLD).count()
    today_sales = db.session.query(Sale).filter(Sale.created_at >= today).count()
    agent_count = db.session.query(Agent).filter(Agent.is_active.is_(True)).count()
    pending_documents = (
        db.session.query(DocumentTracking)
        .filter(DocumentTracking.status.in_((DOC_PENDING_SUBMISSION, DOC_SUBMITTED)))
        .count()
    )
    month_revenue, month_profit = (
        db.session.query(
            db.func.coalesce(db.func.sum(Sale.sale_price_cents), 0),
            db.func.coalesce(db.func.sum(Sale.profit_cents), 0),
        )
        .filter(Sale.created_at >= month_start)
        .one()
    )
    recent = db.session.query(Sale).order_by(Sale.id.desc()).limit(5).all()

    return {
        "inventory_count": inventory_count,
        "today_sales": today_sales,
        "active_agents": agent_count,
        "pending_documents": pending_documents,
        "monthly_revenue_cents": int(month_revenue),
        "monthly_profit_cents": int(month_profit),
        "recent_sales": [sale.to_dict() for sale in recent],
        "generated_at": to_utc_z(now),
    }


# =============================================================================
# Customer inquiry
# =============================================================================

INQUIRY_FIELDS = {
    "name": "customer_name",
    "phone": "customer_phone",
    "national_id": "customer_national_id",
    "motor_fingerprint": "motor_fingerprint",
    "chassis_number": "chassis_number",
    "invoice_number": "document_number",
}


def customer_inquiry(
    search_type: str,
    term: str | None,
    *,
    scope_agent_id: int | None = None,
    company_only: bool = False,
    limit: int = 100,
) -> list[dict]:
    """Find sales by one customer or vehicle field (case-insensitive substring)."""
    field = INQUIRY_FIELDS.get(search_type)
    if field is None:
        raise ReportError(
            f"Unknown search type: {search_type}",
            details={"allowed": list(INQUIRY_FIELDS)},
        )

    query = db.session.query(Sale)
    if scope_agent_id is not None:
        query = query.filter(Sale.agent_id == scope_agent_id)
    if company_only:
        query = query.filter(Sale.sale_type == SALE_TYPE_COMPANY)

    documents = dict(db.session.query(DocumentTracking.sale_id, DocumentTracking.status).all())

    rows = []
    for sale in query.order_by(Sale.id.desc()).all():
        row = sale.to_dict()
        vehicle = row.get("vehicle") or {}
        row["motor_fingerprint"] = vehicle.get("motor_fingerprint")
        row["chassis_number"] = vehicle.get("chassis_number")
        row["document_status"] = documents.get(sale.id)
        rows.append(row)

    return list_filters.search_rows(rows, term, (field,))[:limit]
