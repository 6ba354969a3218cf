"""
Vehicle sales.

Three entry points share one write path:
- agent_direct: an agent with a login sells from its own warehouse
- manager_on_behalf: office staff record a sale for an offline agent
- company_direct: showroom staff sell from a company warehouse

Each sale commits, in one transaction: the Sale row, the sold vehicle, the
agent's sale_debt ledger entry (agent sales only) and the document
tracking record.
"""

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import InventoryItem, Sale, Warehouse
from ..models.agents import TX_SALE_DEBT
from ..models.inventory import ITEM_AVAILABLE, ITEM_SOLD, SELLABLE_STATUSES
from ..models.sales import AGENT_SALE_TYPES, SALE_TYPE_AGENT, SALE_TYPE_COMPANY, SALE_TYPE_ON_BEHALF, SALE_TYPES
from ..validation import MAX_AMOUNT_CENTS, NotFoundError
from dealership.time_utils import end_of_day, parse_iso_datetime, utcnow
from . import balance_rules, document_tracking_service, notification_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import SALE_PREFIX, next_document_number
from .ledger_service import get_locked_agent, post_entry


logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = (
    "customer_name",
    "customer_national_id",
    "customer_phone",
    "customer_address",
    "customer_id_card_image_url",
)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _clean_customer(customer: dict | None) -> dict:
    customer = customer or {}
    cleaned = {}
    for field in CUSTOMER_FIELDS:
        value = customer.get(field)
        if value is not None:
            value = str(value).strip() or None
        cleaned[field] = value
    if not cleaned["customer_name"]:
        raise SaleError("customer_name is required")
    return cleaned


def _resolve_price(item: InventoryItem, sale_price_cents: int | None) -> int:
    price = sale_price_cents if sale_price_cents is not None else item.sale_price_cents
    if price is None:
        raise SaleError("sale_price_cents is required")
    if isinstance(price, bool) or not isinstance(price, int):
        raise SaleError("sale_price_cents must be an integer")
    if price <= 0 or price > MAX_AMOUNT_CENTS:
        raise SaleError("sale_price_cents is out of range")
    if price < item.purchase_price_cents:
        raise SaleError(
            "Sale price cannot be below the purchase price",
            details={"sale_price_cents": price, "purchase_price_cents": item.purchase_price_cents},
        )
    return price


def _locked_item(item_id: int) -> InventoryItem:
    item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
    if not item:
        raise SaleError("Vehicle not found", details={"inventory_item_id": item_id})
    if item.status not in SELLABLE_STATUSES:
        raise SaleError(
            "Vehicle is not available for sale",
            details={"inventory_item_id": item_id, "status": item.status},
        )
    return item


def _mark_sold(item: InventoryItem, sale: Sale, now) -> None:
    item.status = ITEM_SOLD
    item.sold_at = now
    item.sale_id = sale.id


def _create_agent_sale(
    *,
    sale_type: str,
    agent_id: int,
    item_id: int,
    customer: dict,
    sale_price_cents: int | None,
    notes: str | None,
    user_id: int | None,
) -> Sale:
    customer_fields = _clean_customer(customer)

    def _op():
        agent = get_locked_agent(agent_id)
        if not agent.is_active:
            raise SaleError("Agent is not active")
        if sale_type == SALE_TYPE_AGENT and not agent.has_user_account:
            raise SaleError("Offline agents cannot record their own sales")
        if sale_type == SALE_TYPE_ON_BEHALF and agent.has_user_account:
            raise SaleError("Sales on behalf are only recorded for offline agents")

        item = _locked_item(item_id)
        if item.current_warehouse_id != agent.warehouse_id:
            raise SaleError(
                "Vehicle is not in the agent's warehouse",
                details={"inventory_item_id": item.id, "warehouse_id": item.current_warehouse_id},
            )

        price = _resolve_price(item, sale_price_cents)
        rate = balance_rules.resolve_commission_bps(
            item.agent_commission_bps,
            agent.commission_rate_bps,
            current_app.config.get("DEFAULT_COMMISSION_BPS", 1000),
        )
        split = balance_rules.split_profit(price, item.purchase_price_cents, rate)

        now = utcnow()
        sale = Sale(
            document_number=next_document_number(document_type="SALE", prefix=SALE_PREFIX),
            sale_type=sale_type,
            agent_id=agent.id,
            warehouse_id=item.current_warehouse_id,
            inventory_item_id=item.id,
            sale_price_cents=price,
            purchase_price_cents=item.purchase_price_cents,
            profit_cents=split.profit_cents,
            commission_rate_bps=split.commission_rate_bps,
            agent_commission_cents=split.commission_cents,
            company_share_cents=split.company_share_cents,
            notes=notes,
            created_by_user_id=user_id,
            created_at=now,
            **customer_fields,
        )
        db.session.add(sale)
        db.session.flush()

        _mark_sold(item, sale, now)

        post_entry(
            agent,
            TX_SALE_DEBT,
            balance_rules.sale_debt_amount(split.company_share_cents),
            description=f"Company share of sale {sale.document_number} ({item.display_name})",
            sale_id=sale.id,
            user_id=user_id,
        )
        agent.total_sales_cents += price
        agent.last_sale_at = now

        document_tracking_service.open_for_sale(sale, item, user_id)
        notification_service.notify_new_sale(sale, agent, user_id=user_id)

        db.session.commit()
        logger.info(
            "Sale %s (%s) agent=%s profit=%s commission=%s company_share=%s",
            sale.document_number, sale_type, agent.id,
            split.profit_cents, split.commission_cents, split.company_share_cents,
        )
        return sale

    return run_with_retry(_op)


def create_agent_direct_sale(
    *,
    agent_id: int,
    item_id: int,
    customer: dict,
    sale_price_cents: int | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> Sale:
    return _create_agent_sale(
        sale_type=SALE_TYPE_AGENT,
        agent_id=agent_id,
        item_id=item_id,
        customer=customer,
        sale_price_cents=sale_price_cents,
        notes=notes,
        user_id=user_id,
    )


def create_on_behalf_sale(
    *,
    agent_id: int,
    item_id: int,
    customer: dict,
    sale_price_cents: int | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> Sale:
    return _create_agent_sale(
        sale_type=SALE_TYPE_ON_BEHALF,
        agent_id=agent_id,
        item_id=item_id,
        customer=customer,
        sale_price_cents=sale_price_cents,
        notes=notes,
        user_id=user_id,
    )


def create_company_sale(
    *,
    item_id: int,
    customer: dict,
    sale_price_cents: int | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> Sale:
    """Direct sale from company stock; the company keeps the whole profit."""
    customer_fields = _clean_customer(customer)

    def _op():
        item = _locked_item(item_id)
        if item.status != ITEM_AVAILABLE:
            raise SaleError("Vehicle is on consignment to an agent")
        warehouse = db.session.get(Warehouse, item.current_warehouse_id)
        if not warehouse or not warehouse.is_company_stock:
            raise SaleError("Vehicle is not in a company warehouse")

        price = _resolve_price(item, sale_price_cents)
        profit = price - item.purchase_price_cents

        now = utcnow()
        sale = Sale(
            document_number=next_document_number(document_type="SALE", prefix=SALE_PREFIX),
            sale_type=SALE_TYPE_COMPANY,
            agent_id=None,
            warehouse_id=warehouse.id,
            inventory_item_id=item.id,
            sale_price_cents=price,
            purchase_price_cents=item.purchase_price_cents,
            profit_cents=profit,
            commission_rate_bps=0,
            agent_commission_cents=0,
            company_share_cents=profit,
            notes=notes,
            created_by_user_id=user_id,
            created_at=now,
            **customer_fields,
        )
        db.session.add(sale)
        db.session.flush()

        _mark_sold(item, sale, now)
        document_tracking_service.open_for_sale(sale, item, user_id)
        notification_service.notify_new_sale(sale, None, user_id=user_id)

        db.session.commit()
        logger.info("Company sale %s profit=%s", sale.document_number, profit)
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(
    *,
    sale_type: str | None = None,
    agent_id: int | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    scope_agent_id: int | None = None,
    company_only: bool = False,
    limit: int = 200,
) -> list[Sale]:
    """Newest first. date_to is inclusive to the end of that day."""
    if sale_type and sale_type not in SALE_TYPES:
        raise SaleError(f"Unknown sale type: {sale_type}", details={"allowed": list(SALE_TYPES)})

    query = db.session.query(Sale)
    if scope_agent_id is not None:
        query = query.filter(Sale.agent_id == scope_agent_id)
    if company_only:
        query = query.filter(Sale.sale_type == SALE_TYPE_COMPANY)
    if sale_type:
        query = query.filter(Sale.sale_type == sale_type)
    if agent_id is not None:
        query = query.filter(Sale.agent_id == agent_id)

    try:
        start = parse_iso_datetime(date_from)
        end = parse_iso_datetime(date_to)
    except ValueError:
        raise SaleError("Dates must be ISO-8601")
    if start:
        query = query.filter(Sale.created_at >= start)
    if end:
        query = query.filter(Sale.created_at <= end_of_day(end))

    return query.order_by(Sale.id.desc()).limit(limit).all()


def is_agent_sale(sale: Sale) -> bool:
    return sale.sale_type in AGENT_SALE_TYPES
