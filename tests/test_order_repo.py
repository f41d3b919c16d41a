from datetime import datetime, timezone
from decimal import Decimal

import pytest
from conftest import new_order_input

from bookingdesk.enums import PaymentStatus, UserType, WorkStatus
from bookingdesk.repositories.order_repo import OrderRepository, build_update, extended_from_row
from bookingdesk.repositories.user_repo import UserRepository

NOW = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


def order_row(**overrides):
    row = {
        "so_id": 7,
        "s_customer_id": 1,
        "s_hostel_id": 2,
        "s_package_id": 3,
        "s_users_id": 4,
        "so_time_slot": "2024-01-01T10:00",
        "so_work_status": "in progress",
        "so_payment_status": "approve",
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def joined_row(**overrides):
    row = order_row()
    row.update(
        sc_id=1, sc_name="A", sc_email="a@x.com", sc_phone="123", sc_number_plate="ABC123", sc_brand_model="Civic",
        sp_id=3, sp_name="Daily Use Package", sp_price=25.5, sp_description=None,
        sh_id=2, sh_name="H1",
        su_id=4, su_email="staff@x.com", su_type="super admin", su_is_approve=True,
    )
    row.update(overrides)
    return row


class FakeCursor:
    def __init__(self, rows=(), rowcount=0):
        self.rows = list(rows)
        self.rowcount = rowcount

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return self.rows


class FakeConnection:
    def __init__(self, cursor):
        self.cursor = cursor
        self.calls = []

    def execute(self, sql, params=()):
        self.calls.append((" ".join(sql.split()), params))
        return self.cursor


def test_extended_row_builds_snapshots():
    order = extended_from_row(joined_row())

    assert order.so_work_status is WorkStatus.IN_PROGRESS
    assert order.so_payment_status is PaymentStatus.APPROVED
    assert order.customer.sc_number_plate == "ABC123"
    assert order.package.sp_price == Decimal("25.5")
    assert order.hostel.sh_name == "H1"
    assert order.user.su_type is UserType.SUPER_ADMIN


def test_extended_row_with_missing_references():
    row = joined_row(sc_id=None, sh_id=None)
    order = extended_from_row(row)
    assert order.customer is None
    assert order.hostel is None
    assert order.package is not None


def test_build_update_only_lists_given_columns():
    sql, params = build_update(5, {"so_payment_status": "decline"})

    assert "so_payment_status = %s" in sql
    assert "so_work_status" not in sql.split("RETURNING")[0]
    assert "so_time_slot" not in sql.split("RETURNING")[0]
    assert "updated_at = now()" in sql
    assert params == ("decline", 5)


def test_build_update_orders_params_by_column():
    _, params = build_update(9, {"so_time_slot": "t", "so_work_status": "completed"})
    assert params == ("completed", "t", 9)


@pytest.mark.parametrize("changes", [{}, {"created_at": "now"}])
def test_build_update_rejects_bad_changes(changes):
    with pytest.raises(ValueError):
        build_update(1, changes)


def test_create_writes_default_statuses():
    conn = FakeConnection(FakeCursor([order_row(so_work_status="waiting", so_payment_status="pending")]))

    order = OrderRepository().create(conn, new_order_input())

    _, params = conn.calls[0]
    assert params[-2:] == ("waiting", "pending")
    assert order.so_id == 7


def test_list_extended_filters_and_orders():
    conn = FakeConnection(FakeCursor([joined_row()]))

    orders = OrderRepository().list_extended(conn, payment_status=PaymentStatus.APPROVED)

    sql, params = conn.calls[0]
    assert "WHERE o.so_payment_status = %s" in sql
    assert sql.endswith("ORDER BY o.created_at DESC;")
    assert params == ("approve",)
    assert len(orders) == 1


def test_list_extended_without_filter_has_no_where():
    conn = FakeConnection(FakeCursor([]))
    assert OrderRepository().list_extended(conn) == []
    sql, params = conn.calls[0]
    assert "WHERE" not in sql
    assert params == ()


def test_get_extended_not_found():
    conn = FakeConnection(FakeCursor([]))
    assert OrderRepository().get_extended(conn, 3) is None


def test_delete_reports_rowcount():
    repo = OrderRepository()
    assert repo.delete(FakeConnection(FakeCursor(rowcount=1)), 1) is True
    assert repo.delete(FakeConnection(FakeCursor(rowcount=0)), 2) is False


def test_user_create_inserts_unapproved():
    created = {"su_id": 9, "su_email": "new@x.com", "su_type": "mechanic", "su_is_approve": False}
    conn = FakeConnection(FakeCursor([created]))

    row = UserRepository().create(conn, "new@x.com", "pbkdf2:hash")

    sql, params = conn.calls[0]
    assert sql.startswith("INSERT INTO service_users (su_email, su_password_hash, su_is_approve)")
    assert "VALUES (%s, %s, false)" in sql
    assert params == ("new@x.com", "pbkdf2:hash")
    assert row["su_is_approve"] is False
