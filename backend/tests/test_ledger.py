"""
Agent ledger: chained entries, cached balance, verification and repair.
"""

import pytest

from dealership.models import AgentTransaction
from dealership.services import ledger_service
from dealership.services.ledger_service import LedgerError
from dealership.validation import NotFoundError


def _entries(db_session, agent_id):
    return (
        db_session.query(AgentTransaction)
        .filter_by(agent_id=agent_id)
        .order_by(AgentTransaction.sequence_number)
        .all()
    )


def _assert_chain(db_session, agent):
    entries = _entries(db_session, agent.id)
    running = 0
    for seq, entry in enumerate(entries, start=1):
        assert entry.sequence_number == seq
        assert entry.previous_balance_cents == running
        assert entry.new_balance_cents == entry.previous_balance_cents + entry.amount_cents
        running = entry.new_balance_cents
    db_session.refresh(agent)
    assert agent.current_balance_cents == running


class TestOpeningBalance:

    def test_negative_opening_posts_debit(self, db_session, make_agent):
        agent = make_agent("Debtor", opening=-25000)
        entries = _entries(db_session, agent.id)
        assert len(entries) == 1
        assert entries[0].type == "debit"
        assert entries[0].amount_cents == -25000
        assert agent.current_balance_cents == -25000

    def test_positive_opening_posts_credit(self, db_session, make_agent):
        agent = make_agent("Creditor", opening=8000)
        entries = _entries(db_session, agent.id)
        assert [e.type for e in entries] == ["credit"]
        assert agent.current_balance_cents == 8000

    def test_zero_opening_posts_nothing(self, db_session, make_agent):
        agent = make_agent("Fresh")
        assert _entries(db_session, agent.id) == []
        assert agent.current_balance_cents == 0


class TestPaymentsAndDebt:

    def test_payment_raises_balance(self, db_session, make_agent):
        agent = make_agent("Payer", opening=-30000)
        entry = ledger_service.record_payment(agent.id, 12000, payment_method="cash")
        assert entry.type == "payment"
        assert entry.amount_cents == 12000
        assert entry.previous_balance_cents == -30000
        assert entry.new_balance_cents == -18000

    def test_payment_without_method_is_credit(self, db_session, make_agent):
        agent = make_agent("Credited")
        entry = ledger_service.record_payment(agent.id, 500)
        assert entry.type == "credit"
        assert entry.payment_method is None

    def test_unknown_payment_method(self, db_session, make_agent):
        agent = make_agent("Barter")
        with pytest.raises(LedgerError):
            ledger_service.record_payment(agent.id, 500, payment_method="barter")

    def test_debt_increase_and_decrease(self, db_session, make_agent):
        agent = make_agent("Adjusted")
        up = ledger_service.change_debt(agent.id, "increase", 4000, description="Damage")
        down = ledger_service.change_debt(agent.id, "decrease", 1500)
        assert up.type == "debt_increase" and up.amount_cents == -4000
        assert down.type == "debt_decrease" and down.amount_cents == 1500
        assert down.new_balance_cents == -2500

    def test_unknown_agent(self, db_session):
        with pytest.raises(NotFoundError):
            ledger_service.record_payment(999, 100, payment_method="cash")

    def test_chain_holds_after_mixed_operations(self, db_session, make_agent):
        agent = make_agent("Busy", opening=-10000)
        ledger_service.record_payment(agent.id, 3000, payment_method="bank_transfer")
        ledger_service.change_debt(agent.id, "increase", 2500)
        ledger_service.record_payment(agent.id, 700)
        ledger_service.change_debt(agent.id, "decrease", 100)
        _assert_chain(db_session, agent)
        assert agent.current_balance_cents == -10000 + 3000 - 2500 + 700 + 100


class TestListTransactions:

    def test_newest_first_with_total(self, db_session, make_agent):
        agent = make_agent("Listed", opening=-1000)
        ledger_service.record_payment(agent.id, 200, payment_method="cash")
        ledger_service.record_payment(agent.id, 300, payment_method="cash")

        items, total = ledger_service.list_transactions(agent.id, limit=2)
        assert total == 3
        assert [t.sequence_number for t in items] == [3, 2]

    def test_type_filter(self, db_session, make_agent):
        agent = make_agent("Filtered", opening=-1000)
        ledger_service.record_payment(agent.id, 200, payment_method="cash")
        items, total = ledger_service.list_transactions(agent.id, tx_type="payment")
        assert total == 1
        assert items[0].type == "payment"


class TestVerifyAndRepair:

    def test_clean_ledger_verifies(self, db_session, make_agent):
        agent = make_agent("Clean", opening=-5000)
        ledger_service.record_payment(agent.id, 1000, payment_method="cash")
        report = ledger_service.verify_agent_ledger(agent.id)
        assert report["ok"] is True
        assert report["entry_count"] == 2
        assert report["ledger_balance_cents"] == -4000

    def test_drift_is_reported_and_blocks_posting(self, db_session, make_agent):
        agent = make_agent("Drifted", opening=-5000)
        agent.current_balance_cents = -4000
        db_session.commit()

        report = ledger_service.verify_agent_ledger(agent.id)
        assert report["ok"] is False
        assert [i["kind"] for i in report["issues"]] == ["balance_drift"]

        with pytest.raises(LedgerError):
            ledger_service.record_payment(agent.id, 100, payment_method="cash")
        db_session.rollback()

    def test_repair_resets_cached_balance(self, db_session, make_agent):
        agent = make_agent("Repaired", opening=-5000)
        agent.current_balance_cents = 0
        db_session.commit()

        result = ledger_service.repair_agent_balance(agent.id)
        assert result["changed"] is True
        assert result["balance_cents"] == -5000
        assert ledger_service.verify_agent_ledger(agent.id)["ok"] is True

        # Posting works again after the repair
        entry = ledger_service.record_payment(agent.id, 1000, payment_method="cash")
        assert entry.new_balance_cents == -4000

    def test_verify_all(self, db_session, make_agent):
        make_agent("One", opening=-100)
        make_agent("Two", opening=200)
        reports = ledger_service.verify_all_ledgers()
        assert len(reports) == 2
        assert all(r["ok"] for r in reports)
