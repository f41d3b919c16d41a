from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from bookingdesk.config import AppConfig, DbConfig, SecurityConfig, WebhookConfig
from bookingdesk.domain import CreateServiceOrderInput, ServiceOrder, ServiceOrderExtended
from bookingdesk.enums import PaymentStatus, WorkStatus
from bookingdesk.notifications import NotificationError
from bookingdesk.repositories.order_repo import ORDER_COLUMNS


class FakeDb:
    """Stands in for Db; counts how many connections were opened."""

    def __init__(self) -> None:
        self.sessions = 0
        self.transactions = 0

    @contextmanager
    def session(self):
        self.sessions += 1
        yield object()

    @contextmanager
    def transaction(self):
        self.transactions += 1
        yield object()


class InMemoryOrderRepository:
    def __init__(self) -> None:
        self.rows: dict[int, ServiceOrder] = {}
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    def create(self, conn, data: CreateServiceOrderInput) -> ServiceOrder:
        data = data.with_defaults()
        now = self._tick()
        order = ServiceOrder(
            so_id=self._next_id,
            s_customer_id=data.s_customer_id,
            s_hostel_id=data.s_hostel_id,
            s_package_id=data.s_package_id,
            s_users_id=data.s_users_id,
            so_time_slot=data.so_time_slot,
            so_work_status=data.so_work_status,
            so_payment_status=data.so_payment_status,
            created_at=now,
            updated_at=now,
        )
        self.rows[order.so_id] = order
        self._next_id += 1
        return order

    def _extend(self, order: ServiceOrder) -> ServiceOrderExtended:
        return ServiceOrderExtended(**{c: getattr(order, c) for c in ORDER_COLUMNS})

    def list_extended(self, conn, *, work_status=None, payment_status=None):
        rows = list(self.rows.values())
        if work_status is not None:
            rows = [r for r in rows if r.so_work_status is work_status]
        if payment_status is not None:
            rows = [r for r in rows if r.so_payment_status is payment_status]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [self._extend(r) for r in rows]

    def get_extended(self, conn, order_id):
        order = self.rows.get(order_id)
        return self._extend(order) if order else None

    def update(self, conn, order_id, changes):
        order = self.rows.get(order_id)
        if order is None:
            return None
        values = dict(changes)
        if "so_work_status" in values:
            values["so_work_status"] = WorkStatus.parse(values["so_work_status"])
        if "so_payment_status" in values:
            values["so_payment_status"] = PaymentStatus.parse(values["so_payment_status"])
        order = replace(order, **values, updated_at=self._tick())
        self.rows[order_id] = order
        return order

    def delete(self, conn, order_id):
        return self.rows.pop(order_id, None) is not None


class BrokenOrderRepository:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RuntimeError("connection reset by peer")

        return fail


class FakeNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent = []

    def send(self, request) -> None:
        self.sent.append(request)
        if self.fail:
            raise NotificationError("Failed to process request")


def make_config(**overrides) -> AppConfig:
    base = AppConfig(
        name="Booking Desk",
        log_level="INFO",
        secret_key="test-secret",
        data_source="fixture",
        db=DbConfig(host="localhost", port=5432, name="test", user="test", password="test"),
        webhook=WebhookConfig(url="https://discord.test/api/webhooks/1/abc", timeout=5.0),
        security=SecurityConfig(site_url="https://booking.test", allowed_origins=("https://partner.test",)),
    )
    return replace(base, **overrides)


def new_order_input(**overrides) -> CreateServiceOrderInput:
    values = dict(s_customer_id=1, s_hostel_id=2, s_package_id=3, s_users_id=4, so_time_slot="2024-01-01T10:00")
    values.update(overrides)
    return CreateServiceOrderInput(**values)


@pytest.fixture
def fake_db():
    return FakeDb()


@pytest.fixture
def repo():
    return InMemoryOrderRepository()


@pytest.fixture
def notifier():
    return FakeNotifier()
