# Overview: Agent accounts, the append-only balance ledger and settlement audit records.

from __future__ import annotations

from ..extensions import db
from dealership.time_utils import to_utc_z, utcnow


TX_CREDIT = "credit"
TX_DEBIT = "debit"
TX_SALE_DEBT = "sale_debt"
TX_PAYMENT = "payment"
TX_SETTLEMENT = "settlement"
TX_DEBT_INCREASE = "debt_increase"
TX_DEBT_DECREASE = "debt_decrease"

TRANSACTION_TYPES = (
    TX_CREDIT,
    TX_DEBIT,
    TX_SALE_DEBT,
    TX_PAYMENT,
    TX_SETTLEMENT,
    TX_DEBT_INCREASE,
    TX_DEBT_DECREASE,
)

PAYMENT_METHODS = ("cash", "bank_transfer", "check", "installments")

SETTLEMENT_FULL = "full"
SETTLEMENT_PARTIAL = "partial"
SETTLEMENT_ADJUSTMENT = "adjustment"
SETTLEMENT_TYPES = (SETTLEMENT_FULL, SETTLEMENT_PARTIAL, SETTLEMENT_ADJUSTMENT)


class Agent(db.Model):
    """
    Sales agent account.

    current_balance_cents is signed: positive means the company owes the
    agent (creditor), negative means the agent owes the company (debtor).
    It is a cached projection of the ledger; every change goes through
    ledger_service which appends an AgentTransaction in the same commit.
    """
    __tablename__ = "agents"
    __table_args__ = (
        db.Index("ix_agents_active_balance", "is_active", "current_balance_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    national_id = db.Column(db.String(32), nullable=True, index=True)

    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)

    # Offline agents have no login and are operated by managers
    has_user_account = db.Column(db.Boolean, nullable=False, default=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, unique=True)

    commission_rate_bps = db.Column(db.Integer, nullable=False, default=1000)

    current_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    last_sale_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    warehouse = db.relationship("Warehouse", foreign_keys=[warehouse_id])
    user = db.relationship("User", foreign_keys=[user_id])

    def __repr__(self) -> str:
        return f"<Agent id={self.id} name={self.name!r} balance={self.current_balance_cents}>"

    @property
    def balance_type(self) -> str:
        if self.current_balance_cents > 0:
            return "creditor"
        if self.current_balance_cents < 0:
            return "debtor"
        return "balanced"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "national_id": self.national_id,
            "warehouse_id": self.warehouse_id,
            "has_user_account": self.has_user_account,
            "user_id": self.user_id,
            "commission_rate_bps": self.commission_rate_bps,
            "current_balance_cents": self.current_balance_cents,
            "balance_type": self.balance_type,
            "total_sales_cents": self.total_sales_cents,
            "last_sale_at": to_utc_z(self.last_sale_at) if self.last_sale_at else None,
            "is_active": self.is_active,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class AgentTransaction(db.Model):
    """
    Append-only agent ledger entry.

    INVARIANTS (enforced by ledger_service at write time):
    - new_balance_cents == previous_balance_cents + amount_cents
    - previous_balance_cents equals the prior entry's new_balance_cents
    - sequence_number is contiguous per agent starting at 1
    """
    __tablename__ = "agent_transactions"
    __table_args__ = (
        db.UniqueConstraint("agent_id", "sequence_number", name="uq_agent_transactions_agent_seq"),
        db.Index("ix_agent_transactions_agent_created", "agent_id", "created_at"),
        db.Index("ix_agent_transactions_type", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)
    sequence_number = db.Column(db.Integer, nullable=False)

    type = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    previous_balance_cents = db.Column(db.Integer, nullable=False)
    new_balance_cents = db.Column(db.Integer, nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    settlement_id = db.Column(db.Integer, db.ForeignKey("account_settlements.id"), nullable=True)
    payment_method = db.Column(db.String(16), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    agent = db.relationship("Agent", backref=db.backref("transactions", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "sequence_number": self.sequence_number,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "previous_balance_cents": self.previous_balance_cents,
            "new_balance_cents": self.new_balance_cents,
            "sale_id": self.sale_id,
            "settlement_id": self.settlement_id,
            "payment_method": self.payment_method,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class AccountSettlement(db.Model):
    __tablename__ = "account_settlements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)

    settlement_type = db.Column(db.String(16), nullable=False)
    requested_amount_cents = db.Column(db.Integer, nullable=True)
    previous_balance_cents = db.Column(db.Integer, nullable=False)
    settlement_amount_cents = db.Column(db.Integer, nullable=False)
    new_balance_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    agent = db.relationship("Agent", backref=db.backref("settlements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "settlement_type": self.settlement_type,
            "requested_amount_cents": self.requested_amount_cents,
            "previous_balance_cents": self.previous_balance_cents,
            "settlement_amount_cents": self.settlement_amount_cents,
            "new_balance_cents": self.new_balance_cents,
            "description": self.description,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
