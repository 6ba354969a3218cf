# Overview: Service-layer operations for the agent ledger; encapsulates business logic and database work.

"""
Agent ledger.

Every change to an agent's balance is an appended AgentTransaction written in
the same database transaction as the change itself. Agent.current_balance_cents
is a cached projection of the last entry's new_balance_cents.

INVARIANTS:
- new_balance_cents == previous_balance_cents + amount_cents
- entry n's previous_balance_cents == entry n-1's new_balance_cents
- amount sign matches the transaction type (balance_rules.check_entry_sign)
- entries are never updated or deleted
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Agent, AgentTransaction
from ..models.agents import TX_PAYMENT, TX_SALE_DEBT, TX_SETTLEMENT
from ..validation import MAX_AMOUNT_CENTS, NotFoundError
from . import balance_rules, notification_service
from .balance_rules import BalanceRuleError
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised for agent ledger errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def get_locked_agent(agent_id: int) -> Agent:
    agent = lock_for_update(db.session.query(Agent).filter_by(id=agent_id)).first()
    if not agent:
        raise NotFoundError("Agent not found")
    return agent


def _last_entry(agent_id: int) -> AgentTransaction | None:
    return (
        db.session.query(AgentTransaction)
        .filter_by(agent_id=agent_id)
        .order_by(AgentTransaction.sequence_number.desc())
        .first()
    )


def post_entry(
    agent: Agent,
    tx_type: str,
    amount_cents: int,
    *,
    description: str | None = None,
    sale_id: int | None = None,
    settlement_id: int | None = None,
    payment_method: str | None = None,
    user_id: int | None = None,
) -> AgentTransaction:
    """
    Append one entry and move the cached balance.

    The caller holds the agent row lock and owns the commit; nothing is
    committed here. Raises LedgerError if the cached balance no longer
    matches the ledger.
    """
    try:
        balance_rules.check_entry_sign(tx_type, amount_cents)
    except BalanceRuleError as e:
        raise LedgerError(str(e), details=e.details) from e

    if tx_type == TX_SALE_DEBT and sale_id is None:
        raise LedgerError("sale_debt entries require sale_id")
    if tx_type == TX_SETTLEMENT and settlement_id is None:
        raise LedgerError("settlement entries require settlement_id")
    if tx_type == TX_PAYMENT and not payment_method:
        raise LedgerError("payment entries require payment_method")

    last = _last_entry(agent.id)
    previous = last.new_balance_cents if last else 0
    if previous != agent.current_balance_cents:
        raise LedgerError(
            "Agent balance does not match ledger; run ledger repair",
            details={
                "agent_id": agent.id,
                "ledger_balance_cents": previous,
                "cached_balance_cents": agent.current_balance_cents,
            },
        )

    new_balance = previous + amount_cents
    if abs(new_balance) > MAX_AMOUNT_CENTS:
        raise LedgerError("Resulting balance exceeds the allowed range")

    entry = AgentTransaction(
        agent_id=agent.id,
        sequence_number=(last.sequence_number + 1) if last else 1,
        type=tx_type,
        amount_cents=amount_cents,
        description=description,
        previous_balance_cents=previous,
        new_balance_cents=new_balance,
        sale_id=sale_id,
        settlement_id=settlement_id,
        payment_method=payment_method,
        created_by_user_id=user_id,
    )
    db.session.add(entry)

    agent.current_balance_cents = new_balance
    db.session.flush()
    notification_service.notify_balance_change(agent, entry, user_id=user_id)
    return entry


def record_payment(
    agent_id: int,
    amount_cents: int,
    *,
    payment_method: str | None = None,
    description: str | None = None,
    user_id: int | None = None,
) -> AgentTransaction:
    """Money received from the agent (payment) or credited to it (credit)."""
    def _op():
        agent = get_locked_agent(agent_id)
        try:
            tx_type, amount = balance_rules.payment_entry(amount_cents, payment_method)
        except BalanceRuleError as e:
            raise LedgerError(str(e), details=e.details) from e

        entry = post_entry(
            agent,
            tx_type,
            amount,
            description=description or ("Payment received" if tx_type == TX_PAYMENT else "Credit"),
            payment_method=payment_method,
            user_id=user_id,
        )
        db.session.commit()
        logger.info("Agent %s %s of %s cents recorded", agent_id, tx_type, amount)
        return entry

    return run_with_retry(_op)


def change_debt(
    agent_id: int,
    direction: str,
    amount_cents: int,
    *,
    description: str | None = None,
    user_id: int | None = None,
    commit: bool = True,
) -> AgentTransaction:
    """Manual debt increase or decrease (e.g. damage charge, goodwill write-off)."""
    def _op():
        agent = get_locked_agent(agent_id)
        try:
            tx_type, amount = balance_rules.debt_change_entry(direction, amount_cents)
        except BalanceRuleError as e:
            raise LedgerError(str(e), details=e.details) from e

        entry = post_entry(
            agent,
            tx_type,
            amount,
            description=description or f"Manual debt {direction}",
            user_id=user_id,
        )
        if commit:
            db.session.commit()
        return entry

    if not commit:
        return _op()
    return run_with_retry(_op)


def list_transactions(
    agent_id: int,
    *,
    tx_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AgentTransaction], int]:
    """Newest first."""
    query = db.session.query(AgentTransaction).filter_by(agent_id=agent_id)
    if tx_type:
        query = query.filter(AgentTransaction.type == tx_type)

    total = query.count()
    items = (
        query.order_by(AgentTransaction.sequence_number.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


# =============================================================================
# Reconciliation
# =============================================================================

def verify_agent_ledger(agent_id: int) -> dict:
    """
    Re-walk an agent's ledger and report every broken invariant.

    Issue kinds: sequence_gap, chain_break, arithmetic, sign, balance_drift.
    """
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found")

    entries = (
        db.session.query(AgentTransaction)
        .filter_by(agent_id=agent_id)
        .order_by(AgentTransaction.sequence_number.asc())
        .all()
    )

    issues = []
    running = 0
    for expected_seq, entry in enumerate(entries, start=1):
        if entry.sequence_number != expected_seq:
            issues.append({
                "kind": "sequence_gap",
                "transaction_id": entry.id,
                "expected": expected_seq,
                "actual": entry.sequence_number,
            })
        if entry.previous_balance_cents != running:
            issues.append({
                "kind": "chain_break",
                "transaction_id": entry.id,
                "expected": running,
                "actual": entry.previous_balance_cents,
            })
        if entry.previous_balance_cents + entry.amount_cents != entry.new_balance_cents:
            issues.append({
                "kind": "arithmetic",
                "transaction_id": entry.id,
                "expected": entry.previous_balance_cents + entry.amount_cents,
                "actual": entry.new_balance_cents,
            })
        try:
            balance_rules.check_entry_sign(entry.type, entry.amount_cents)
        except BalanceRuleError as e:
            issues.append({"kind": "sign", "transaction_id": entry.id, "message": str(e)})
        running = entry.new_balance_cents

    if running != agent.current_balance_cents:
        issues.append({
            "kind": "balance_drift",
            "expected": running,
            "actual": agent.current_balance_cents,
        })

    return {
        "agent_id": agent.id,
        "agent_name": agent.name,
        "ok": not issues,
        "entry_count": len(entries),
        "ledger_balance_cents": running,
        "cached_balance_cents": agent.current_balance_cents,
        "issues": issues,
    }


def verify_all_ledgers() -> list[dict]:
    agent_ids = [row[0] for row in db.session.query(Agent.id).order_by(Agent.id).all()]
    return [verify_agent_ledger(agent_id) for agent_id in agent_ids]


def repair_agent_balance(agent_id: int) -> dict:
    """
    Reset the cached balance to the ledger's final balance.

    The ledger is authoritative; entries themselves are never rewritten.
    """
    def _op():
        agent = get_locked_agent(agent_id)
        last = _last_entry(agent_id)
        ledger_balance = last.new_balance_cents if last else 0
        before = agent.current_balance_cents
        if before != ledger_balance:
            agent.current_balance_cents = ledger_balance
            db.session.commit()
            logger.warning(
                "Agent %s cached balance repaired from %s to %s", agent_id, before, ledger_balance
            )
        return {
            "agent_id": agent_id,
            "previous_cached_balance_cents": before,
            "balance_cents": ledger_balance,
            "changed": before != ledger_balance,
        }

    return run_with_retry(_op)
