"""
Pure agent balance arithmetic.

No database access here: every function takes plain integers (cents, basis
points) and returns plain values, so sales, settlements and reports all
compute the same numbers the same way.

Sign convention: a positive balance means the company owes the agent
(creditor), a negative balance means the agent owes the company (debtor).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.agents import (
    PAYMENT_METHODS,
    SETTLEMENT_FULL,
    SETTLEMENT_PARTIAL,
    SETTLEMENT_TYPES,
    TX_CREDIT,
    TX_DEBIT,
    TX_DEBT_DECREASE,
    TX_DEBT_INCREASE,
    TX_PAYMENT,
    TX_SALE_DEBT,
    TX_SETTLEMENT,
    TRANSACTION_TYPES,
)


BPS_DENOMINATOR = 10_000


class BalanceRuleError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class CommissionSplit:
    profit_cents: int
    commission_rate_bps: int
    commission_cents: int
    company_share_cents: int


@dataclass(frozen=True)
class SettlementOutcome:
    settlement_type: str
    previous_balance_cents: int
    amount_cents: int
    new_balance_cents: int


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounding halves away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


def resolve_commission_bps(
    item_bps: int | None,
    agent_bps: int | None,
    default_bps: int,
) -> int:
    """Item override, then the agent's own rate, then the system default."""
    if item_bps is not None:
        return item_bps
    if agent_bps is not None:
        return agent_bps
    return default_bps


def split_profit(sale_price_cents: int, purchase_price_cents: int, rate_bps: int) -> CommissionSplit:
    """
    Divide a sale's profit between agent and company.

    commission + company_share == profit exactly; rounding only ever moves
    a cent between the two shares. A loss-making sale yields a negative
    commission and a negative company share in the same proportion.
    """
    profit = sale_price_cents - purchase_price_cents
    commission = round_half_up_div(profit * rate_bps, BPS_DENOMINATOR)
    return CommissionSplit(
        profit_cents=profit,
        commission_rate_bps=rate_bps,
        commission_cents=commission,
        company_share_cents=profit - commission,
    )


def sale_debt_amount(company_share_cents: int) -> int:
    """Ledger amount for an agent sale: the agent now owes the company share."""
    return -company_share_cents


def opening_balance_entry(amount_cents: int) -> tuple[str, int] | None:
    """(type, amount) for an agent's starting balance; nothing for zero."""
    if amount_cents > 0:
        return TX_CREDIT, amount_cents
    if amount_cents < 0:
        return TX_DEBIT, amount_cents
    return None


def payment_entry(amount_cents: int, payment_method: str | None = None) -> tuple[str, int]:
    """
    Money received from (or credited to) the agent always raises the balance.

    With a payment method the entry is a 'payment', otherwise a plain 'credit'.
    """
    if amount_cents == 0:
        raise BalanceRuleError("Payment amount must be non-zero")
    if payment_method is None:
        return TX_CREDIT, abs(amount_cents)
    if payment_method not in PAYMENT_METHODS:
        raise BalanceRuleError(
            f"Unknown payment method: {payment_method}",
            details={"allowed": list(PAYMENT_METHODS)},
        )
    return TX_PAYMENT, abs(amount_cents)


def debt_change_entry(direction: str, amount_cents: int) -> tuple[str, int]:
    if amount_cents <= 0:
        raise BalanceRuleError("Debt change amount must be positive")
    if direction == "increase":
        return TX_DEBT_INCREASE, -amount_cents
    if direction == "decrease":
        return TX_DEBT_DECREASE, amount_cents
    raise BalanceRuleError(
        f"Unknown debt change direction: {direction}",
        details={"allowed": ["increase", "decrease"]},
    )


def settle(settlement_type: str, balance_cents: int, requested_cents: int | None = None) -> SettlementOutcome:
    """
    Compute a settlement without touching the database.

    full        balance goes to zero
    partial     a debtor is paid down by the requested amount, clamped at
                zero; any other balance is credited the requested amount
    adjustment  balance is set to the requested (possibly negative) value
    """
    if settlement_type not in SETTLEMENT_TYPES:
        raise BalanceRuleError(
            f"Unknown settlement type: {settlement_type}",
            details={"allowed": list(SETTLEMENT_TYPES)},
        )

    if settlement_type == SETTLEMENT_FULL:
        if balance_cents == 0:
            raise BalanceRuleError("Account is already settled")
        amount = -balance_cents

    elif settlement_type == SETTLEMENT_PARTIAL:
        if requested_cents is None or requested_cents <= 0:
            raise BalanceRuleError("Partial settlement amount must be positive")
        if balance_cents < 0:
            amount = min(requested_cents, -balance_cents)
        else:
            amount = requested_cents

    else:
        if requested_cents is None:
            raise BalanceRuleError("Adjustment requires the target balance")
        amount = requested_cents - balance_cents
        if amount == 0:
            raise BalanceRuleError("Adjustment does not change the balance")

    return SettlementOutcome(
        settlement_type=settlement_type,
        previous_balance_cents=balance_cents,
        amount_cents=amount,
        new_balance_cents=balance_cents + amount,
    )


def check_entry_sign(tx_type: str, amount_cents: int) -> None:
    """Reject an amount whose sign contradicts its transaction type."""
    if tx_type not in TRANSACTION_TYPES:
        raise BalanceRuleError(
            f"Unknown transaction type: {tx_type}",
            details={"allowed": list(TRANSACTION_TYPES)},
        )

    ok = {
        TX_CREDIT: amount_cents > 0,
        TX_DEBIT: amount_cents < 0,
        TX_SALE_DEBT: amount_cents <= 0,
        TX_PAYMENT: amount_cents > 0,
        TX_SETTLEMENT: amount_cents != 0,
        TX_DEBT_INCREASE: amount_cents < 0,
        TX_DEBT_DECREASE: amount_cents > 0,
    }[tx_type]

    if not ok:
        raise BalanceRuleError(
            f"Amount {amount_cents} is not valid for a {tx_type} entry",
            details={"type": tx_type, "amount_cents": amount_cents},
        )


def balance_type(balance_cents: int) -> str:
    if balance_cents > 0:
        return "creditor"
    if balance_cents < 0:
        return "debtor"
    return "balanced"
