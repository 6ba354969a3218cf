"""
Sales: agent direct, on behalf of offline agents, and company direct.

Each sale must commit the sale, the sold vehicle, the agent's ledger entry
and the document tracking record together.
"""

import pytest

from dealership.models import AgentTransaction, DocumentTracking, InventoryItem, Sale
from dealership.services import sales_service, transfer_service
from dealership.services.sales_service import SaleError


CUSTOMER = {"customer_name": "Ali Mansour", "customer_phone": "01234567890", "customer_national_id": "29801011234567"}


def consign(item, agent, *, commission_bps=None):
    """Move a vehicle into the agent's warehouse."""
    transfer_service.create_transfer(
        from_warehouse_id=item.current_warehouse_id,
        to_warehouse_id=agent.warehouse_id,
        item_ids=[item.id],
        commission_bps=commission_bps,
    )
    return item


class TestAgentDirectSale:

    def test_commission_scenario(self, client, db_session, agent_headers, online_agent, make_item):
        item = consign(make_item(purchase=10000, sale=15000), online_agent)

        resp = client.post(
            "/api/sales/agent",
            json={"inventory_item_id": item.id, "customer": CUSTOMER},
            headers=agent_headers,
        )
        assert resp.status_code == 201, resp.json
        sale = resp.json["sale"]
        assert sale["sale_type"] == "agent_direct"
        assert sale["profit_cents"] == 5000
        assert sale["commission_rate_bps"] == 1000
        assert sale["agent_commission_cents"] == 500
        assert sale["company_share_cents"] == 4500
        assert sale["document_number"] == "S-0001"

        entry = db_session.query(AgentTransaction).filter_by(sale_id=sale["id"]).one()
        assert entry.type == "sale_debt"
        assert entry.amount_cents == -4500

        db_session.refresh(online_agent)
        assert online_agent.current_balance_cents == -4500
        assert online_agent.total_sales_cents == 15000
        assert online_agent.last_sale_at is not None

        vehicle = db_session.get(InventoryItem, item.id)
        assert vehicle.status == "sold"
        assert vehicle.sale_id == sale["id"]

        document = db_session.query(DocumentTracking).filter_by(sale_id=sale["id"]).one()
        assert document.status == "pending_submission"
        assert document.agent_id == online_agent.id

    def test_item_commission_override(self, db_session, online_agent, make_item):
        item = consign(make_item(purchase=10000, sale=20000), online_agent, commission_bps=2500)
        sale = sales_service.create_agent_direct_sale(
            agent_id=online_agent.id, item_id=item.id, customer=CUSTOMER
        )
        assert sale.commission_rate_bps == 2500
        assert sale.agent_commission_cents == 2500
        assert sale.company_share_cents == 7500

    def test_agent_rate_used_without_override(self, db_session, make_agent, make_item):
        agent = make_agent("High Rate", username="highrate", rate=3000)
        item = consign(make_item(purchase=10000, sale=20000), agent)
        sale = sales_service.create_agent_direct_sale(agent_id=agent.id, item_id=item.id, customer=CUSTOMER)
        assert sale.agent_commission_cents == 3000

    def test_explicit_price_overrides_list_price(self, db_session, online_agent, make_item):
        item = consign(make_item(purchase=10000, sale=15000), online_agent)
        sale = sales_service.create_agent_direct_sale(
            agent_id=online_agent.id, item_id=item.id, customer=CUSTOMER, sale_price_cents=12000
        )
        assert sale.sale_price_cents == 12000
        assert sale.profit_cents == 2000

    def test_vehicle_outside_agent_warehouse(self, client, db_session, agent_headers, make_item):
        item = make_item()
        resp = client.post(
            "/api/sales/agent",
            json={"inventory_item_id": item.id, "customer": CUSTOMER},
            headers=agent_headers,
        )
        assert resp.status_code == 400
        assert db_session.query(Sale).count() == 0

    def test_price_below_purchase_leaves_nothing_behind(self, db_session, online_agent, make_item):
        item = consign(make_item(purchase=10000, sale=15000), online_agent)
        with pytest.raises(SaleError):
            sales_service.create_agent_direct_sale(
                agent_id=online_agent.id, item_id=item.id, customer=CUSTOMER, sale_price_cents=9000
            )
        db_session.rollback()

        assert db_session.query(Sale).count() == 0
        assert db_session.query(DocumentTracking).count() == 0
        assert db_session.get(InventoryItem, item.id).status == "transferred"
        assert db_session.query(AgentTransaction).filter_by(agent_id=online_agent.id).count() == 0

    def test_vehicle_cannot_be_sold_twice(self, db_session, online_agent, make_item):
        item = consign(make_item(), online_agent)
        sales_service.create_agent_direct_sale(agent_id=online_agent.id, item_id=item.id, customer=CUSTOMER)
        with pytest.raises(SaleError):
            sales_service.create_agent_direct_sale(agent_id=online_agent.id, item_id=item.id, customer=CUSTOMER)
        db_session.rollback()

    def test_customer_name_required(self, client, agent_headers, online_agent, make_item):
        item = consign(make_item(), online_agent)
        resp = client.post(
            "/api/sales/agent",
            json={"inventory_item_id": item.id, "customer": {"customer_phone": "0100"}},
            headers=agent_headers,
        )
        assert resp.status_code == 400

    def test_offline_agent_cannot_self_sell(self, db_session, offline_agent, make_item):
        item = consign(make_item(), offline_agent)
        with pytest.raises(SaleError):
            sales_service.create_agent_direct_sale(agent_id=offline_agent.id, item_id=item.id, customer=CUSTOMER)
        db_session.rollback()

    def test_inactive_agent_cannot_sell(self, db_session, online_agent, make_item):
        item = consign(make_item(), online_agent)
        online_agent.is_active = False
        db_session.commit()
        with pytest.raises(SaleError):
            sales_service.create_agent_direct_sale(agent_id=online_agent.id, item_id=item.id, customer=CUSTOMER)
        db_session.rollback()


class TestOnBehalfSale:

    def test_manager_sells_for_offline_agent(self, client, db_session, admin_headers, offline_agent, make_item):
        item = consign(make_item(purchase=10000, sale=15000), offline_agent)
        resp = client.post(
            "/api/sales/on-behalf",
            json={"agent_id": offline_agent.id, "inventory_item_id": item.id, "customer": CUSTOMER},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.json
        assert resp.json["sale"]["sale_type"] == "manager_on_behalf"
        assert resp.json["sale"]["created_by_user_id"] is not None

        db_session.refresh(offline_agent)
        assert offline_agent.current_balance_cents == -4500

    def test_not_for_agents_with_login(self, client, admin_headers, online_agent, make_item):
        item = consign(make_item(), online_agent)
        resp = client.post(
            "/api/sales/on-behalf",
            json={"agent_id": online_agent.id, "inventory_item_id": item.id, "customer": CUSTOMER},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_agent_id_required(self, client, admin_headers, make_item):
        item = make_item()
        resp = client.post(
            "/api/sales/on-behalf",
            json={"inventory_item_id": item.id, "customer": CUSTOMER},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_agents_cannot_sell_on_behalf(self, client, agent_headers, offline_agent, make_item):
        item = consign(make_item(), offline_agent)
        resp = client.post(
            "/api/sales/on-behalf",
            json={"agent_id": offline_agent.id, "inventory_item_id": item.id, "customer": CUSTOMER},
            headers=agent_headers,
        )
        assert resp.status_code == 403


class TestCompanySale:

    def test_showroom_sale_keeps_whole_profit(self, client, db_session, showroom_headers, showroom, make_item):
        item = make_item(purchase=10000, sale=15000, warehouse_id=showroom.id)
        resp = client.post(
            "/api/sales/company",
            json={"inventory_item_id": item.id, "customer": CUSTOMER},
            headers=showroom_headers,
        )
        assert resp.status_code == 201, resp.json
        sale = resp.json["sale"]
        assert sale["sale_type"] == "company_direct"
        assert sale["agent_id"] is None
        assert sale["agent_commission_cents"] == 0
        assert sale["company_share_cents"] == 5000
        assert db_session.query(AgentTransaction).count() == 0
        assert db_session.query(DocumentTracking).filter_by(sale_id=sale["id"]).count() == 1

    def test_consigned_vehicle_rejected(self, db_session, online_agent, make_item):
        item = consign(make_item(), online_agent)
        with pytest.raises(SaleError):
            sales_service.create_company_sale(item_id=item.id, customer=CUSTOMER)
        db_session.rollback()

    def test_unknown_vehicle(self, client, showroom_headers):
        resp = client.post(
            "/api/sales/company",
            json={"inventory_item_id": 999, "customer": CUSTOMER},
            headers=showroom_headers,
        )
        assert resp.status_code == 400


class TestSaleListing:

    def test_scoping_by_role(self, client, db_session, admin_headers, agent_headers, showroom_headers,
                             online_agent, offline_agent, showroom, make_item):
        own = consign(make_item(), online_agent)
        other = consign(make_item(), offline_agent)
        company = make_item(warehouse_id=showroom.id)
        own_sale = sales_service.create_agent_direct_sale(agent_id=online_agent.id, item_id=own.id, customer=CUSTOMER)
        other_sale = sales_service.create_on_behalf_sale(agent_id=offline_agent.id, item_id=other.id, customer=CUSTOMER)
        company_sale = sales_service.create_company_sale(item_id=company.id, customer=CUSTOMER)

        all_sales = client.get("/api/sales", headers=admin_headers).json
        assert all_sales["count"] == 3
        assert all_sales["totals"]["sale_price_cents"] == 45000

        mine = client.get("/api/sales", headers=agent_headers).json
        assert [s["id"] for s in mine["sales"]] == [own_sale.id]

        shop = client.get("/api/sales", headers=showroom_headers).json
        assert [s["id"] for s in shop["sales"]] == [company_sale.id]

        assert client.get(f"/api/sales/{other_sale.id}", headers=agent_headers).status_code == 403
        assert client.get(f"/api/sales/{own_sale.id}", headers=showroom_headers).status_code == 403
        assert client.get(f"/api/sales/{own_sale.id}", headers=agent_headers).status_code == 200

    def test_type_filter_and_numbers(self, client, admin_headers, online_agent, showroom, make_item):
        agent_item = consign(make_item(), online_agent)
        first = sales_service.create_agent_direct_sale(agent_id=online_agent.id, item_id=agent_item.id, customer=CUSTOMER)
        second = sales_service.create_company_sale(item_id=make_item(warehouse_id=showroom.id).id, customer=CUSTOMER)
        assert (first.document_number, second.document_number) == ("S-0001", "S-0002")

        resp = client.get("/api/sales?sale_type=company_direct", headers=admin_headers)
        assert [s["id"] for s in resp.json["sales"]] == [second.id]

        assert client.get("/api/sales?sale_type=barter", headers=admin_headers).status_code == 400
