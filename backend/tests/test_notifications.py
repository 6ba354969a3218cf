"""
In-app notifications: written with sales, transfers, document moves and
ledger postings, and listed/marked read only by their recipient.
"""

import pytest

from dealership.models import DocumentTracking, Notification
from dealership.services import (
    document_tracking_service,
    ledger_service,
    notification_service,
    sales_service,
    settlement_service,
    transfer_service,
)
from dealership.services.transfer_service import TransferError


def consign(item, agent):
    transfer_service.create_transfer(
        from_warehouse_id=item.current_warehouse_id,
        to_warehouse_id=agent.warehouse_id,
        item_ids=[item.id],
    )
    return item


def inbox(db_session, user_id, notification_type=None):
    q = db_session.query(Notification).filter_by(recipient_user_id=user_id)
    if notification_type:
        q = q.filter_by(type=notification_type)
    return q.order_by(Notification.id).all()


class TestEventNotifications:

    def test_agent_sale_notifies_office_and_agent(self, db_session, super_admin, admin_user, online_agent, make_item):
        item = consign(make_item(purchase=10000, sale=15000), online_agent)
        sale = sales_service.create_agent_direct_sale(
            agent_id=online_agent.id, item_id=item.id, customer={"customer_name": "Mona Adel"},
        )

        for office in (super_admin, admin_user):
            [notice] = inbox(db_session, office.id, "new_sale")
            assert notice.priority == "high"
            assert notice.data["sale_id"] == sale.id
            assert notice.data["agent_id"] == online_agent.id
            assert "Mona Adel" in notice.message

        agent_user = online_agent.user_id
        assert [n.type for n in inbox(db_session, agent_user)] == ["inventory_transfer", "balance_deducted"]
        [debit] = inbox(db_session, agent_user, "balance_deducted")
        assert debit.data["amount_cents"] == -4500
        assert debit.data["new_balance_cents"] == -4500
        assert "45.00 deducted" in debit.message

    def test_company_sale_notifies_office(self, db_session, admin_user, make_item):
        item = make_item()
        sales_service.create_company_sale(item_id=item.id, customer={"customer_name": "Walk-in"})
        [notice] = inbox(db_session, admin_user.id, "new_sale")
        assert notice.data["agent_id"] is None
        assert notice.data["sale_type"] == "company_direct"

    def test_offline_agent_gets_nothing(self, db_session, offline_agent, make_item):
        item = consign(make_item(), offline_agent)
        sales_service.create_on_behalf_sale(agent_id=offline_agent.id, item_id=item.id, customer={"customer_name": "X"})
        assert db_session.query(Notification).filter(
            Notification.type.in_(["inventory_transfer", "balance_deducted", "balance_added"])
        ).count() == 0

    def test_inactive_agent_login_gets_nothing(self, db_session, online_agent, make_item):
        online_agent.user.is_active = False
        db_session.commit()
        consign(make_item(), online_agent)
        assert inbox(db_session, online_agent.user_id) == []

    def test_document_advance_notifies_agent(self, db_session, admin_user, online_agent, make_item):
        item = consign(make_item(), online_agent)
        sale = sales_service.create_agent_direct_sale(
            agent_id=online_agent.id, item_id=item.id, customer={"customer_name": "Mona Adel"},
        )
        document = db_session.query(DocumentTracking).filter_by(sale_id=sale.id).one()

        document_tracking_service.advance_document(document.id, user_id=admin_user.id)

        [notice] = inbox(db_session, online_agent.user_id, "document_status_update")
        assert notice.sender_user_id == admin_user.id
        assert notice.data == {
            "document_id": document.id,
            "old_status": "pending_submission",
            "new_status": "submitted_to_manufacturer",
            "customer_name": "Mona Adel",
        }

    def test_return_transfer_notifies_source_agent(self, db_session, online_agent, main_warehouse, make_item):
        item = consign(make_item(), online_agent)
        transfer_service.create_transfer(
            from_warehouse_id=online_agent.warehouse_id,
            to_warehouse_id=main_warehouse.id,
            item_ids=[item.id],
        )
        notices = inbox(db_session, online_agent.user_id, "inventory_transfer")
        assert len(notices) == 2
        assert notices[1].data["to_warehouse"] == main_warehouse.name

    def test_payment_and_creditor_settlement_credit_the_agent(self, db_session, make_agent):
        agent = make_agent("Nour Bikes", username="nour", opening=50000)
        ledger_service.record_payment(agent.id, 2500, payment_method="cash")
        settlement_service.settle_account(agent.id, "partial", requested_cents=1000)

        added = inbox(db_session, agent.user_id, "balance_added")
        assert [n.data["amount_cents"] for n in added] == [50000, 2500, 1000]
        assert added[-1].data["new_balance_cents"] == 53500

    def test_failed_transfer_leaves_no_notification(self, db_session, online_agent, make_item):
        item = make_item()
        with pytest.raises(TransferError):
            transfer_service.create_transfer(
                from_warehouse_id=item.current_warehouse_id,
                to_warehouse_id=online_agent.warehouse_id,
                item_ids=[item.id],
                debt_change={"direction": "sideways", "amount_cents": 100},
            )
        db_session.rollback()
        assert inbox(db_session, online_agent.user_id) == []


class TestInbox:

    def test_list_is_scoped_newest_first(self, db_session, online_agent, admin_user, make_item):
        consign(make_item(), online_agent)
        ledger_service.record_payment(online_agent.id, 700, payment_method="cash")

        mine = notification_service.list_notifications(online_agent.user_id)
        assert [n.type for n in mine] == ["balance_added", "inventory_transfer"]
        assert notification_service.list_notifications(admin_user.id) == []
        assert notification_service.unread_count(online_agent.user_id) == 2

    def test_mark_read_is_idempotent(self, db_session, online_agent, make_item):
        consign(make_item(), online_agent)
        [notice] = inbox(db_session, online_agent.user_id)

        first = notification_service.mark_read(notice.id, online_agent.user_id)
        read_at = first.read_at
        again = notification_service.mark_read(notice.id, online_agent.user_id)
        assert again.status == "read"
        assert again.read_at == read_at
        assert notification_service.unread_count(online_agent.user_id) == 0

    def test_unknown_status_filter(self, db_session, online_agent):
        with pytest.raises(notification_service.NotificationError):
            notification_service.list_notifications(online_agent.user_id, status="archived")


class TestNotificationEndpoints:

    def test_list_and_mark_read(self, client, db_session, agent_headers, online_agent, make_item):
        consign(make_item(), online_agent)
        ledger_service.record_payment(online_agent.id, 700, payment_method="cash")

        resp = client.get("/api/notifications", headers=agent_headers)
        assert resp.status_code == 200
        assert resp.json["unread_count"] == 2
        newest = resp.json["notifications"][0]
        assert newest["type"] == "balance_added"
        assert newest["status"] == "unread"

        resp = client.post(f"/api/notifications/{newest['id']}/read", headers=agent_headers)
        assert resp.status_code == 200
        assert resp.json["notification"]["status"] == "read"
        assert resp.json["notification"]["read_at"] is not None

        resp = client.get("/api/notifications?status=unread", headers=agent_headers)
        assert [n["type"] for n in resp.json["notifications"]] == ["inventory_transfer"]
        assert resp.json["unread_count"] == 1

    def test_cannot_read_someone_elses(self, client, db_session, admin_headers, online_agent, make_item):
        consign(make_item(), online_agent)
        [notice] = inbox(db_session, online_agent.user_id)
        resp = client.post(f"/api/notifications/{notice.id}/read", headers=admin_headers)
        assert resp.status_code == 404
        db_session.refresh(notice)
        assert notice.status == "unread"

    def test_read_all(self, client, db_session, agent_headers, online_agent, make_item):
        consign(make_item(), online_agent)
        consign(make_item(), online_agent)
        resp = client.post("/api/notifications/read-all", headers=agent_headers)
        assert resp.status_code == 200
        assert resp.json["updated"] == 2
        assert notification_service.unread_count(online_agent.user_id) == 0

    def test_bad_status(self, client, db_session, agent_headers):
        resp = client.get("/api/notifications?status=archived", headers=agent_headers)
        assert resp.status_code == 400
