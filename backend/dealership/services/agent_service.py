# Overview: Service-layer operations for agents; encapsulates business logic and database work.

"""
Agent onboarding and profile management.

Creating an agent also creates its consignment warehouse and, when a
starting balance is given, the opening ledger entry, all in one commit.
Offline agents have no login; managers record their sales for them.
"""

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import Agent, InventoryItem, Sale, Warehouse
from ..models.inventory import SELLABLE_STATUSES
from ..models.warehouses import WAREHOUSE_TYPE_AGENT
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_agent,
    validate_payload,
)
from . import auth_service, balance_rules, ledger_service, list_filters
from .concurrency import run_with_retry


logger = logging.getLogger(__name__)


AGENT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address", "national_id", "commission_rate_bps", "notes"},
    required_on_create={"name"},
)

AGENT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address", "national_id", "commission_rate_bps", "notes", "is_active"},
)

AGENT_SEARCH_FIELDS = ("name", "phone", "national_id")

AGENT_SORT_KEYS = {
    "name": lambda row: row["name"].casefold(),
    "balance": lambda row: row["current_balance_cents"],
    "created_at": lambda row: row["created_at"],
    "total_sales": lambda row: row["total_sales_cents"],
}


def _warehouse_name(agent: Agent) -> str:
    return f"Agent warehouse #{agent.id} - {agent.name}"[:120]


def create_agent(
    payload: dict,
    *,
    opening_balance_cents: int = 0,
    account: dict | None = None,
    created_by_user_id: int | None = None,
) -> Agent:
    """
    Create an agent with its own warehouse.

    account: {"username", "email", "password"} to give the agent a login;
    None creates an offline agent.

    Raises ValidationError for bad fields, UserError or PasswordValidationError for the login,
    LedgerError if the opening entry cannot be posted.
    """
    patch = validate_payload(model=Agent, payload=payload, policy=AGENT_CREATE_POLICY, partial=False)
    enforce_rules_agent(patch)
    patch.setdefault("commission_rate_bps", current_app.config.get("DEFAULT_COMMISSION_BPS", 1000))

    if account is not None:
        missing = sorted(k for k in ("username", "email", "password") if not account.get(k))
        if missing:
            raise ValidationError(f"Missing account fields: {', '.join(missing)}")

    def _op():
        user = None
        if account is not None:
            user = auth_service.create_user(
                username=account["username"],
                email=account["email"],
                password=account["password"],
                role="agent",
                display_name=patch["name"],
                phone=patch.get("phone"),
                commit=False,
            )

        agent = Agent(
            **patch,
            has_user_account=user is not None,
            user_id=user.id if user else None,
            current_balance_cents=0,
            created_by_user_id=created_by_user_id,
        )
        db.session.add(agent)
        db.session.flush()

        warehouse = Warehouse(
            name=_warehouse_name(agent),
            type=WAREHOUSE_TYPE_AGENT,
            location=agent.address,
            agent_id=agent.id,
        )
        db.session.add(warehouse)
        db.session.flush()

        agent.warehouse_id = warehouse.id
        if user is not None:
            user.warehouse_id = warehouse.id

        opening = balance_rules.opening_balance_entry(opening_balance_cents)
        if opening is not None:
            tx_type, amount = opening
            ledger_service.post_entry(
                agent,
                tx_type,
                amount,
                description="Opening balance",
                user_id=created_by_user_id,
            )

        db.session.commit()
        logger.info(
            "Agent %s created (%s), opening balance %s cents",
            agent.id, "online" if user else "offline", opening_balance_cents,
        )
        return agent

    return run_with_retry(_op)


def get_agent(agent_id: int) -> Agent:
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found")
    return agent


def update_agent(agent_id: int, payload: dict) -> Agent:
    """Profile edit. The balance is not writable here; it moves only through the ledger."""
    if payload and any(k in payload for k in ("current_balance_cents", "total_sales_cents")):
        raise ValidationError("Balances can only be changed through ledger operations")

    patch = validate_payload(model=Agent, payload=payload, policy=AGENT_UPDATE_POLICY, partial=True)
    enforce_rules_agent(patch)

    def _op():
        agent = get_agent(agent_id)
        for key, value in patch.items():
            setattr(agent, key, value)
        if "is_active" in patch and agent.warehouse_id:
            warehouse = db.session.get(Warehouse, agent.warehouse_id)
            if warehouse:
                warehouse.is_active = patch["is_active"]
        db.session.commit()
        return agent

    return run_with_retry(_op)


def list_agents(
    *,
    search: str | None = None,
    status: str | None = None,
    account_type: str | None = None,
    balance_type: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    scope_agent_id: int | None = None,
) -> list[dict]:
    """
    status: active | inactive
    account_type: online | offline
    balance_type: debtors | creditors | balanced
    """
    query = db.session.query(Agent)
    if scope_agent_id is not None:
        query = query.filter(Agent.id == scope_agent_id)

    rows = []
    for agent in query.all():
        row = agent.to_dict()
        row["status"] = "active" if agent.is_active else "inactive"
        row["account_type"] = "online" if agent.has_user_account else "offline"
        rows.append(row)

    balance_filter = {"debtors": "debtor", "creditors": "creditor", "balanced": "balanced"}.get(
        balance_type or "", balance_type
    )

    rows = list_filters.search_rows(rows, search, AGENT_SEARCH_FIELDS)
    rows = list_filters.filter_equals(
        rows,
        status=status,
        account_type=account_type,
        balance_type=balance_filter,
    )
    return list_filters.sort_rows(rows, sort_by, sort_order, keys=AGENT_SORT_KEYS, default="name")


def agent_summary(agent_id: int) -> dict:
    """Agent detail card: profile plus sales and stock counters."""
    agent = get_agent(agent_id)
    sales_count = db.session.query(Sale).filter(Sale.agent_id == agent.id).count()
    commission_total = (
        db.session.query(db.func.coalesce(db.func.sum(Sale.agent_commission_cents), 0))
        .filter(Sale.agent_id == agent.id)
        .scalar()
    )
    stock_count = 0
    if agent.warehouse_id:
        stock_count = (
            db.session.query(InventoryItem)
            .filter(
                InventoryItem.current_warehouse_id == agent.warehouse_id,
                InventoryItem.status.in_(SELLABLE_STATUSES),
            )
            .count()
        )

    data = agent.to_dict()
    data["sales_count"] = sales_count
    data["total_commission_cents"] = int(commission_total or 0)
    data["stock_count"] = stock_count
    return data
