"""
Lost-update protection: version counters on agents and vehicles, and the
rollback-and-retry wrapper every multi-write operation runs under.
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from dealership.extensions import db
from dealership.models import Agent, InventoryItem, Warehouse
from dealership.services import concurrency


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)


class TestRunWithRetry:

    def test_retries_after_stale_data_and_rolls_back(self, db_session):
        calls = []

        def op():
            calls.append(1)
            if len(calls) == 1:
                db.session.add(Warehouse(name="Half written", type="branch"))
                db.session.flush()
                raise StaleDataError("version mismatch")
            return db.session.query(Warehouse).filter_by(name="Half written").count()

        assert concurrency.run_with_retry(op) == 0
        assert len(calls) == 2

    def test_reraises_after_last_attempt(self, db_session):
        calls = []

        def op():
            calls.append(1)
            raise OperationalError("UPDATE agents", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            concurrency.run_with_retry(op, attempts=3)
        assert len(calls) == 3

    def test_business_errors_are_not_retried(self, db_session):
        calls = []

        def op():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            concurrency.run_with_retry(op)
        assert len(calls) == 1


class TestVersionCounters:

    def test_stale_agent_write_is_rejected(self, db_session, make_agent):
        agent = make_agent("Versioned", opening=-1000)
        other = Session(bind=db.engine)
        try:
            stale = other.get(Agent, agent.id)
            stale_version = stale.version_id

            agent.current_balance_cents = -2000
            db_session.commit()
            assert agent.version_id == stale_version + 1

            stale.current_balance_cents = 0
            with pytest.raises(StaleDataError):
                other.commit()
            other.rollback()
        finally:
            other.close()

        db_session.refresh(agent)
        assert agent.current_balance_cents == -2000

    def test_stale_item_write_is_rejected(self, db_session, make_item):
        item = make_item()
        other = Session(bind=db.engine)
        try:
            stale = other.get(InventoryItem, item.id)

            item.status = "reserved"
            db_session.commit()

            stale.status = "sold"
            with pytest.raises(StaleDataError):
                other.commit()
            other.rollback()
        finally:
            other.close()

        db_session.refresh(item)
        assert item.status == "reserved"
