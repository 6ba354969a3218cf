# Overview: Service-layer operations for account settlements; encapsulates business logic and database work.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import AccountSettlement, Agent
from ..models.agents import TX_SETTLEMENT
from ..validation import NotFoundError
from . import balance_rules
from .balance_rules import BalanceRuleError
from .concurrency import run_with_retry
from .ledger_service import get_locked_agent, post_entry


logger = logging.getLogger(__name__)


class SettlementError(Exception):
    """Raised for settlement errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def preview_settlement(agent_id: int, settlement_type: str, requested_cents: int | None = None) -> dict:
    """What a settlement would post, without writing anything."""
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found")
    try:
        outcome = balance_rules.settle(settlement_type, agent.current_balance_cents, requested_cents)
    except BalanceRuleError as e:
        raise SettlementError(str(e), details=e.details) from e

    return {
        "agent_id": agent.id,
        "settlement_type": outcome.settlement_type,
        "requested_amount_cents": requested_cents,
        "previous_balance_cents": outcome.previous_balance_cents,
        "settlement_amount_cents": outcome.amount_cents,
        "new_balance_cents": outcome.new_balance_cents,
    }


def settle_account(
    agent_id: int,
    settlement_type: str,
    *,
    requested_cents: int | None = None,
    description: str | None = None,
    user_id: int | None = None,
) -> tuple[AccountSettlement, object]:
    """
    Apply a settlement: the audit record and its ledger entry commit together.

    Returns (settlement, ledger_entry).
    """
    def _op():
        agent = get_locked_agent(agent_id)
        try:
            outcome = balance_rules.settle(settlement_type, agent.current_balance_cents, requested_cents)
        except BalanceRuleError as e:
            raise SettlementError(str(e), details=e.details) from e

        text = description or f"Account settlement ({settlement_type})"

        settlement = AccountSettlement(
            agent_id=agent.id,
            settlement_type=settlement_type,
            requested_amount_cents=requested_cents,
            previous_balance_cents=outcome.previous_balance_cents,
            settlement_amount_cents=outcome.amount_cents,
            new_balance_cents=outcome.new_balance_cents,
            description=text,
            created_by_user_id=user_id,
        )
        db.session.add(settlement)
        db.session.flush()

        entry = post_entry(
            agent,
            TX_SETTLEMENT,
            outcome.amount_cents,
            description=text,
            settlement_id=settlement.id,
            user_id=user_id,
        )

        db.session.commit()
        logger.info(
            "Agent %s %s settlement: %s -> %s",
            agent.id, settlement_type, outcome.previous_balance_cents, outcome.new_balance_cents,
        )
        return settlement, entry

    return run_with_retry(_op)


def list_settlements(agent_id: int) -> list[AccountSettlement]:
    return (
        db.session.query(AccountSettlement)
        .filter_by(agent_id=agent_id)
        .order_by(AccountSettlement.id.desc())
        .all()
    )
