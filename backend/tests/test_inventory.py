"""Warehouses and vehicle inventory."""

import pytest

from dealership.services import inventory_service, sales_service, transfer_service
from dealership.validation import ConflictError, ValidationError


VEHICLE = {
    "motor_fingerprint": "MF-NEW-1",
    "chassis_number": "CH-NEW-1",
    "brand": "Yamaha",
    "model": "YBR125",
    "vehicle_type": "motorcycle",
    "purchase_price_cents": 4500000,
    "sale_price_cents": 5200000,
}


class TestRegisterVehicle:

    def test_create_via_api(self, client, admin_headers, main_warehouse):
        resp = client.post(
            "/api/inventory",
            json={**VEHICLE, "current_warehouse_id": main_warehouse.id},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.json
        item = resp.json["item"]
        assert item["status"] == "available"
        assert item["agent_commission_bps"] is None

    def test_duplicate_chassis(self, client, admin_headers, main_warehouse, make_item):
        existing = make_item()
        resp = client.post(
            "/api/inventory",
            json={**VEHICLE, "chassis_number": existing.chassis_number, "current_warehouse_id": main_warehouse.id},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_agent_warehouse_rejected(self, db_session, online_agent):
        with pytest.raises(ValidationError):
            inventory_service.create_item({**VEHICLE, "current_warehouse_id": online_agent.warehouse_id})

    def test_unknown_vehicle_type(self, db_session, main_warehouse):
        with pytest.raises(ValidationError):
            inventory_service.create_item(
                {**VEHICLE, "vehicle_type": "truck", "current_warehouse_id": main_warehouse.id}
            )

    def test_missing_fields(self, client, admin_headers, main_warehouse):
        resp = client.post(
            "/api/inventory",
            json={"brand": "Yamaha", "current_warehouse_id": main_warehouse.id},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_warehouse(self, client, admin_headers):
        resp = client.post("/api/inventory", json={**VEHICLE, "current_warehouse_id": 999}, headers=admin_headers)
        assert resp.status_code == 404


class TestEditVehicle:

    def test_price_update(self, client, admin_headers, make_item):
        item = make_item()
        resp = client.patch(f"/api/inventory/{item.id}", json={"sale_price_cents": 18000}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["item"]["sale_price_cents"] == 18000

    def test_status_not_editable(self, client, admin_headers, make_item):
        item = make_item()
        resp = client.patch(f"/api/inventory/{item.id}", json={"status": "sold"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_sold_vehicle_locked(self, db_session, showroom, make_item):
        item = make_item(warehouse_id=showroom.id)
        sales_service.create_company_sale(item_id=item.id, customer={"customer_name": "Buyer"})
        with pytest.raises(ConflictError):
            inventory_service.update_item(item.id, {"color": "Blue"})


class TestListing:

    def test_filters(self, client, admin_headers, make_item):
        make_item(color="Black")
        make_item(vehicle_type="tricycle")

        resp = client.get("/api/inventory?search=black", headers=admin_headers)
        assert [i["color"] for i in resp.json["items"]] == ["Black"]

        resp = client.get("/api/inventory?vehicle_type=tricycle", headers=admin_headers)
        assert resp.json["count"] == 1

        assert client.get("/api/inventory?status=lost", headers=admin_headers).status_code == 400

    def test_stock_value(self, db_session, main_warehouse, online_agent, make_item):
        make_item(purchase=10000)
        consigned = make_item(purchase=20000)
        transfer_service.create_transfer(
            from_warehouse_id=main_warehouse.id,
            to_warehouse_id=online_agent.warehouse_id,
            item_ids=[consigned.id],
        )
        rows = {row["warehouse_id"]: row for row in inventory_service.stock_value_by_warehouse()}
        assert rows[main_warehouse.id]["item_count"] == 1
        assert rows[main_warehouse.id]["purchase_value_cents"] == 10000
        assert rows[online_agent.warehouse_id]["purchase_value_cents"] == 20000


class TestWarehouses:

    def test_create_branch(self, client, admin_headers):
        resp = client.post("/api/warehouses", json={"name": "Alexandria branch", "type": "branch"}, headers=admin_headers)
        assert resp.status_code == 201
        again = client.post("/api/warehouses", json={"name": "Alexandria branch", "type": "branch"}, headers=admin_headers)
        assert again.status_code == 409

    def test_agent_type_rejected(self, client, admin_headers):
        resp = client.post("/api/warehouses", json={"name": "Sneaky", "type": "agent"}, headers=admin_headers)
        assert resp.status_code == 400
