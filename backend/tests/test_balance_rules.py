"""
Pure balance arithmetic: commission split, settlements, entry signs, risk.

No database needed; these pin the numbers every service relies on.
"""

import pytest

from dealership.services import balance_rules
from dealership.services.balance_rules import BalanceRuleError
from dealership.services.reporting_service import (
    BALANCE_REPORT_POLICY,
    DEBT_REPORT_POLICY,
    RISK_LEVELS,
    classify_risk,
)


# =============================================================================
# COMMISSION SPLIT
# =============================================================================


class TestSplitProfit:

    def test_ten_percent_of_five_thousand(self):
        split = balance_rules.split_profit(15000, 10000, 1000)
        assert split.profit_cents == 5000
        assert split.commission_cents == 500
        assert split.company_share_cents == 4500
        assert balance_rules.sale_debt_amount(split.company_share_cents) == -4500

    @pytest.mark.parametrize(
        "sale,purchase,rate",
        [
            (15000, 10000, 1000),
            (10001, 10000, 3333),
            (99999, 12345, 1250),
            (20000, 20000, 1000),
            (12345, 10000, 10000),
            (12345, 10000, 0),
        ],
    )
    def test_shares_always_add_up_to_profit(self, sale, purchase, rate):
        split = balance_rules.split_profit(sale, purchase, rate)
        assert split.commission_cents + split.company_share_cents == split.profit_cents

    def test_half_cent_rounds_up(self):
        # 5 cents profit at 10% is 0.5 cents
        split = balance_rules.split_profit(10005, 10000, 1000)
        assert split.commission_cents == 1
        assert split.company_share_cents == 4

    def test_round_half_up_is_symmetric_for_negatives(self):
        assert balance_rules.round_half_up_div(5, 10) == 1
        assert balance_rules.round_half_up_div(-5, 10) == -1
        assert balance_rules.round_half_up_div(4, 10) == 0


class TestResolveCommission:

    def test_item_override_wins(self):
        assert balance_rules.resolve_commission_bps(500, 1500, 1000) == 500

    def test_zero_item_override_is_respected(self):
        assert balance_rules.resolve_commission_bps(0, 1500, 1000) == 0

    def test_agent_rate_then_default(self):
        assert balance_rules.resolve_commission_bps(None, 1500, 1000) == 1500
        assert balance_rules.resolve_commission_bps(None, None, 1000) == 1000


# =============================================================================
# SETTLEMENTS
# =============================================================================


class TestSettle:

    def test_full_settlement_zeroes_debtor(self):
        outcome = balance_rules.settle("full", -50000)
        assert outcome.amount_cents == 50000
        assert outcome.new_balance_cents == 0

    def test_full_settlement_zeroes_creditor(self):
        outcome = balance_rules.settle("full", 12000)
        assert outcome.amount_cents == -12000
        assert outcome.new_balance_cents == 0

    def test_full_settlement_of_settled_account_rejected(self):
        with pytest.raises(BalanceRuleError):
            balance_rules.settle("full", 0)

    def test_partial_on_debtor(self):
        outcome = balance_rules.settle("partial", -50000, 20000)
        assert outcome.amount_cents == 20000
        assert outcome.new_balance_cents == -30000

    def test_partial_never_overshoots_debtor(self):
        outcome = balance_rules.settle("partial", -5000, 20000)
        assert outcome.amount_cents == 5000
        assert outcome.new_balance_cents == 0

    def test_partial_on_creditor_credits_requested(self):
        outcome = balance_rules.settle("partial", 30000, 10000)
        assert outcome.amount_cents == 10000
        assert outcome.new_balance_cents == 40000

    def test_partial_on_balanced_account_credits_requested(self):
        outcome = balance_rules.settle("partial", 0, 2500)
        assert outcome.amount_cents == 2500
        assert outcome.new_balance_cents == 2500

    @pytest.mark.parametrize("requested", [None, 0, -100])
    def test_partial_requires_positive_amount(self, requested):
        with pytest.raises(BalanceRuleError):
            balance_rules.settle("partial", -5000, requested)

    def test_adjustment_sets_target(self):
        outcome = balance_rules.settle("adjustment", -50000, -10000)
        assert outcome.amount_cents == 40000
        assert outcome.new_balance_cents == -10000

    def test_adjustment_to_same_balance_rejected(self):
        with pytest.raises(BalanceRuleError):
            balance_rules.settle("adjustment", -500, -500)

    def test_unknown_type_rejected(self):
        with pytest.raises(BalanceRuleError):
            balance_rules.settle("write_off", -500)


# =============================================================================
# ENTRY SIGNS
# =============================================================================


class TestEntrySigns:

    @pytest.mark.parametrize(
        "tx_type,amount",
        [
            ("credit", 100),
            ("debit", -100),
            ("sale_debt", -100),
            ("sale_debt", 0),
            ("payment", 100),
            ("settlement", -100),
            ("settlement", 100),
            ("debt_increase", -100),
            ("debt_decrease", 100),
        ],
    )
    def test_valid_signs(self, tx_type, amount):
        balance_rules.check_entry_sign(tx_type, amount)

    @pytest.mark.parametrize(
        "tx_type,amount",
        [
            ("credit", -100),
            ("debit", 100),
            ("sale_debt", 100),
            ("payment", -100),
            ("settlement", 0),
            ("debt_increase", 100),
            ("debt_decrease", -100),
        ],
    )
    def test_invalid_signs(self, tx_type, amount):
        with pytest.raises(BalanceRuleError):
            balance_rules.check_entry_sign(tx_type, amount)

    def test_unknown_type(self):
        with pytest.raises(BalanceRuleError):
            balance_rules.check_entry_sign("bonus", 100)

    def test_payment_without_method_is_credit(self):
        assert balance_rules.payment_entry(2500) == ("credit", 2500)
        assert balance_rules.payment_entry(2500, "cash") == ("payment", 2500)

    def test_payment_unknown_method(self):
        with pytest.raises(BalanceRuleError):
            balance_rules.payment_entry(2500, "barter")

    def test_debt_change_directions(self):
        assert balance_rules.debt_change_entry("increase", 700) == ("debt_increase", -700)
        assert balance_rules.debt_change_entry("decrease", 700) == ("debt_decrease", 700)
        with pytest.raises(BalanceRuleError):
            balance_rules.debt_change_entry("sideways", 700)

    def test_opening_balance(self):
        assert balance_rules.opening_balance_entry(0) is None
        assert balance_rules.opening_balance_entry(500) == ("credit", 500)
        assert balance_rules.opening_balance_entry(-500) == ("debit", -500)


# =============================================================================
# RISK
# =============================================================================


class TestClassifyRisk:

    def test_creditors_and_balanced_are_low(self):
        assert classify_risk(0, 400, DEBT_REPORT_POLICY) == "low"
        assert classify_risk(5_000_000, 400, DEBT_REPORT_POLICY) == "low"

    def test_thresholds(self):
        assert classify_risk(-1_000_000, 1, DEBT_REPORT_POLICY) == "low"
        assert classify_risk(-3_000_000, 1, DEBT_REPORT_POLICY) == "medium"
        assert classify_risk(-6_000_000, 1, DEBT_REPORT_POLICY) == "high"
        assert classify_risk(-11_000_000, 1, DEBT_REPORT_POLICY) == "critical"

    def test_stale_payment_escalates(self):
        assert classify_risk(-1_000_000, 61, DEBT_REPORT_POLICY) == "high"
        assert classify_risk(-6_000_000, 61, DEBT_REPORT_POLICY) == "critical"

    def test_never_paid_is_not_escalated(self):
        assert classify_risk(-1_000_000, None, DEBT_REPORT_POLICY) == "low"

    def test_monotonic_in_debt_and_days(self):
        order = {level: i for i, level in enumerate(RISK_LEVELS)}
        debts = [0, 500_000, 2_500_000, 6_000_000, 12_000_000, 25_000_000]
        days = [0, 30, 61, 91, 365]
        for policy in (DEBT_REPORT_POLICY, BALANCE_REPORT_POLICY):
            for d in days:
                levels = [order[classify_risk(-debt, d, policy)] for debt in debts]
                assert levels == sorted(levels)
            for debt in debts:
                levels = [order[classify_risk(-debt, d, policy)] for d in days]
                assert levels == sorted(levels)
