"""
Warehouse transfers: consignment to agents, returns to company stock,
and the optional debt change recorded in the same commit.
"""

import pytest

from dealership.models import AgentTransaction, InventoryItem, WarehouseTransfer
from dealership.services import transfer_service
from dealership.services.transfer_service import TransferError


class TestConsignment:

    def test_move_to_agent_warehouse(self, db_session, main_warehouse, online_agent, make_item):
        first, second = make_item(), make_item()

        transfer = transfer_service.create_transfer(
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=online_agent.warehouse_id,
            item_ids=[first.id, second.id],
            commission_bps=1500,
            item_commissions={second.id: 2000},
        )

        assert transfer.document_number == "TRF-0001"
        assert transfer.agent_id == online_agent.id
        assert [line.commission_bps for line in transfer.lines] == [1500, 2000]

        for item_id, bps in ((first.id, 1500), (second.id, 2000)):
            item = db_session.get(InventoryItem, item_id)
            assert item.status == "transferred"
            assert item.current_warehouse_id == online_agent.warehouse_id
            assert item.agent_commission_bps == bps

    def test_move_alone_does_not_touch_balance(self, db_session, main_warehouse, online_agent, make_item):
        transfer_service.create_transfer(
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=online_agent.warehouse_id,
            item_ids=[make_item(purchase=80000).id],
        )
        db_session.refresh(online_agent)
        assert online_agent.current_balance_cents == 0
        assert db_session.query(AgentTransaction).filter_by(agent_id=online_agent.id).count() == 0

    def test_debt_change_posted_with_transfer(self, db_session, main_warehouse, online_agent, make_item):
        transfer_service.create_transfer(
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=online_agent.warehouse_id,
            item_ids=[make_item().id],
            debt_change={"direction": "increase", "amount_cents": 2500, "description": "Delivery fee"},
        )
        db_session.refresh(online_agent)
        assert online_agent.current_balance_cents == -2500
        entry = db_session.query(AgentTransaction).filter_by(agent_id=online_agent.id).one()
        assert entry.type == "debt_increase"
        assert entry.description == "Delivery fee"

    def test_bad_debt_change_rolls_back_move(self, db_session, main_warehouse, online_agent, make_item):
        item = make_item()
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=online_agent.warehouse_id,
                item_ids=[item.id],
                debt_change={"direction": "sideways", "amount_cents": 100},
            )
        db_session.rollback()

        assert db_session.query(WarehouseTransfer).count() == 0
        refreshed = db_session.get(InventoryItem, item.id)
        assert refreshed.status == "available"
        assert refreshed.current_warehouse_id == main_warehouse.id

    def test_return_to_company_clears_override(self, db_session, main_warehouse, showroom, online_agent, make_item):
        item = make_item()
        transfer_service.create_transfer(
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=online_agent.warehouse_id,
            item_ids=[item.id],
            commission_bps=1200,
        )
        transfer = transfer_service.create_transfer(
            from_warehouse_id=online_agent.warehouse_id,
            to_warehouse_id=showroom.id,
            item_ids=[item.id],
        )
        assert transfer.agent_id is None

        refreshed = db_session.get(InventoryItem, item.id)
        assert refreshed.status == "available"
        assert refreshed.agent_commission_bps is None
        assert refreshed.current_warehouse_id == showroom.id


class TestTransferRejections:

    def test_same_warehouse(self, db_session, main_warehouse, make_item):
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=main_warehouse.id,
                item_ids=[make_item().id],
            )

    def test_empty_and_duplicate_items(self, db_session, main_warehouse, showroom, make_item):
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id, to_warehouse_id=showroom.id, item_ids=[]
            )
        item = make_item()
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id, to_warehouse_id=showroom.id, item_ids=[item.id, item.id]
            )

    def test_vehicle_not_in_source(self, db_session, main_warehouse, showroom, online_agent, make_item):
        item = make_item(warehouse_id=showroom.id)
        with pytest.raises(TransferError) as exc:
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=online_agent.warehouse_id,
                item_ids=[item.id],
            )
        assert exc.value.details["item_ids"] == [item.id]

    def test_commission_out_of_range(self, db_session, main_warehouse, online_agent, make_item):
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=online_agent.warehouse_id,
                item_ids=[make_item().id],
                commission_bps=20000,
            )

    def test_debt_change_needs_agent_destination(self, db_session, main_warehouse, showroom, make_item):
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=main_warehouse.id,
                to_warehouse_id=showroom.id,
                item_ids=[make_item().id],
                debt_change={"direction": "increase", "amount_cents": 100},
            )


class TestTransferApi:

    def test_create_and_fetch(self, client, db_session, admin_headers, main_warehouse, online_agent, make_item):
        item = make_item()
        resp = client.post(
            "/api/transfers",
            json={
                "from_warehouse_id": main_warehouse.id,
                "to_warehouse_id": online_agent.warehouse_id,
                "item_ids": [item.id],
                "item_commissions": {str(item.id): 1800},
                "notes": "Weekly restock",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.json
        transfer = resp.json["transfer"]
        assert transfer["lines"][0]["commission_bps"] == 1800
        assert transfer["total_purchase_value_cents"] == 10000

        fetched = client.get(f"/api/transfers/{transfer['id']}", headers=admin_headers)
        assert fetched.status_code == 200
        listed = client.get(f"/api/transfers?agent_id={online_agent.id}", headers=admin_headers)
        assert [t["id"] for t in listed.json["transfers"]] == [transfer["id"]]

    def test_missing_field(self, client, admin_headers, main_warehouse, make_item):
        resp = client.post(
            "/api/transfers",
            json={"from_warehouse_id": main_warehouse.id, "item_ids": [make_item().id]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "to_warehouse_id" in resp.json["error"]

    def test_unknown_transfer(self, client, admin_headers):
        assert client.get("/api/transfers/999", headers=admin_headers).status_code == 404

    def test_agents_cannot_transfer(self, client, agent_headers):
        resp = client.post("/api/transfers", json={}, headers=agent_headers)
        assert resp.status_code == 403
