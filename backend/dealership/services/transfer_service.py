# backend/dealership/services/transfer_service.py
"""
Warehouse transfers.

Moving vehicles to an agent's warehouse puts them on consignment: the
status becomes 'transferred' and the commission override is stamped on
each item. Nothing is posted to the agent's balance by the move itself;
the agent owes the company share only when a vehicle is sold. An
optional manual debt change can be recorded in the same commit.
"""
from __future__ import annotations

import logging

from ..extensions import db
from ..models import InventoryItem, Warehouse, WarehouseTransfer, WarehouseTransferLine
from ..models.inventory import ITEM_AVAILABLE, ITEM_TRANSFERRED, SELLABLE_STATUSES
from ..validation import MAX_COMMISSION_BPS, NotFoundError
from . import notification_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import TRANSFER_PREFIX, next_document_number
from .ledger_service import LedgerError, change_debt


logger = logging.getLogger(__name__)


class TransferError(Exception):
    """Raised when transfer operations fail."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _check_bps(value, label: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_COMMISSION_BPS:
        raise TransferError(f"{label} must be an integer between 0 and {MAX_COMMISSION_BPS}")


def create_transfer(
    *,
    from_warehouse_id: int,
    to_warehouse_id: int,
    item_ids: list[int],
    user_id: int | None = None,
    commission_bps: int | None = None,
    item_commissions: dict[int, int] | None = None,
    notes: str | None = None,
    debt_change: dict | None = None,
) -> WarehouseTransfer:
    """
    Move vehicles between warehouses in one commit.

    commission_bps applies to every item moved to an agent warehouse;
    item_commissions ({item_id: bps}) overrides it per item.
    debt_change: {"direction": "increase"|"decrease", "amount_cents": int,
    "description": str} posted against the receiving agent.
    """
    item_commissions = item_commissions or {}
    _check_bps(commission_bps, "commission_bps")
    for item_id, bps in item_commissions.items():
        _check_bps(bps, f"commission for item {item_id}")

    if not item_ids:
        raise TransferError("At least one vehicle is required")
    if len(set(item_ids)) != len(item_ids):
        raise TransferError("Duplicate vehicles in transfer")
    if from_warehouse_id == to_warehouse_id:
        raise TransferError("Cannot transfer to the same warehouse")

    def _op():
        source = db.session.get(Warehouse, from_warehouse_id)
        destination = db.session.get(Warehouse, to_warehouse_id)
        if not source or not destination:
            raise TransferError("Warehouse not found")
        if not destination.is_active:
            raise TransferError("Destination warehouse is not active")

        to_agent = destination.type == "agent"
        if debt_change and not to_agent:
            raise TransferError("Debt changes are only allowed on transfers to an agent warehouse")

        items = (
            lock_for_update(db.session.query(InventoryItem).filter(InventoryItem.id.in_(item_ids)))
            .order_by(InventoryItem.id)
            .all()
        )
        found = {item.id for item in items}
        missing = [i for i in item_ids if i not in found]
        if missing:
            raise TransferError("Vehicles not found", details={"item_ids": missing})

        wrong_place = [i.id for i in items if i.current_warehouse_id != source.id]
        if wrong_place:
            raise TransferError("Vehicles are not in the source warehouse", details={"item_ids": wrong_place})

        unavailable = [i.id for i in items if i.status not in SELLABLE_STATUSES]
        if unavailable:
            raise TransferError("Vehicles are not available for transfer", details={"item_ids": unavailable})

        transfer = WarehouseTransfer(
            document_number=next_document_number(document_type="TRANSFER", prefix=TRANSFER_PREFIX),
            from_warehouse_id=source.id,
            to_warehouse_id=destination.id,
            agent_id=destination.agent_id if to_agent else None,
            notes=notes,
            created_by_user_id=user_id,
        )
        db.session.add(transfer)
        db.session.flush()

        for item in items:
            bps = item_commissions.get(item.id, commission_bps) if to_agent else None
            item.current_warehouse_id = destination.id
            if to_agent:
                item.status = ITEM_TRANSFERRED
            else:
                item.status = ITEM_AVAILABLE
            item.agent_commission_bps = bps

            db.session.add(WarehouseTransferLine(
                transfer_id=transfer.id,
                inventory_item_id=item.id,
                purchase_price_cents=item.purchase_price_cents,
                commission_bps=item.agent_commission_bps,
            ))

        if debt_change:
            if not destination.agent_id:
                raise TransferError("Destination warehouse has no agent")
            try:
                change_debt(
                    destination.agent_id,
                    debt_change.get("direction"),
                    debt_change.get("amount_cents") or 0,
                    description=debt_change.get("description") or f"Transfer {transfer.document_number}",
                    user_id=user_id,
                    commit=False,
                )
            except LedgerError as e:
                raise TransferError(str(e), details=e.details) from e

        notification_service.notify_transfer(transfer, source, destination, len(items), user_id=user_id)

        db.session.commit()
        logger.info(
            "Transfer %s moved %s vehicles from warehouse %s to %s",
            transfer.document_number, len(items), source.id, destination.id,
        )
        return transfer

    return run_with_retry(_op)


def get_transfer(transfer_id: int) -> WarehouseTransfer:
    transfer = db.session.get(WarehouseTransfer, transfer_id)
    if not transfer:
        raise NotFoundError("Transfer not found")
    return transfer


def list_transfers(*, warehouse_id: int | None = None, agent_id: int | None = None, limit: int = 100) -> list[WarehouseTransfer]:
    query = db.session.query(WarehouseTransfer)
    if warehouse_id is not None:
        query = query.filter(
            db.or_(
                WarehouseTransfer.from_warehouse_id == warehouse_id,
                WarehouseTransfer.to_warehouse_id == warehouse_id,
            )
        )
    if agent_id is not None:
        query = query.filter(WarehouseTransfer.agent_id == agent_id)
    return query.order_by(WarehouseTransfer.id.desc()).limit(limit).all()
