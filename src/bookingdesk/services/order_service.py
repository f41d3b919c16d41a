from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from ..domain import CreateServiceOrderInput, ServiceOrder, ServiceOrderExtended, UpdateServiceOrderInput
from ..enums import PaymentStatus, WorkStatus
from ..repositories.order_repo import OrderRepository

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A store call failed; ``operation`` names the access-layer call."""

    def __init__(self, operation: str, reason: Exception | str) -> None:
        super().__init__(f"{operation} failed: {reason}")
        self.operation = operation
        self.reason = reason


@dataclass(frozen=True)
class OrderListResult:
    items: list[ServiceOrderExtended] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class StatusSummary:
    total: int
    by_payment: dict[PaymentStatus, int]
    by_work: dict[WorkStatus, int]


def status_summary(orders: Iterable[ServiceOrderExtended]) -> StatusSummary:
    orders = list(orders)
    pay = Counter(o.so_payment_status for o in orders)
    work = Counter(o.so_work_status for o in orders)
    return StatusSummary(
        total=len(orders),
        by_payment={s: pay.get(s, 0) for s in PaymentStatus},
        by_work={s: work.get(s, 0) for s in WorkStatus},
    )


def _valid_id(order_id: object) -> bool:
    return isinstance(order_id, int) and not isinstance(order_id, bool) and order_id > 0


class OrderService:
    """Boundary over the ``service_order`` table.

    Every call opens its own connection through the injected ``db`` and never
    raises: failures are logged and turned into ``None``, ``[]`` or ``False``.
    ``load_orders`` is the one read that reports failure explicitly.
    """

    def __init__(self, *, db, order_repo: OrderRepository) -> None:
        self.db = db
        self.order_repo = order_repo

    def _fail(self, operation: str, e: Exception) -> PersistenceError:
        err = PersistenceError(operation, e)
        logger.error("Error in %s: %s", operation, e, exc_info=e)
        return err

    def create_order(self, data: CreateServiceOrderInput) -> ServiceOrder | None:
        try:
            with self.db.transaction() as conn:
                order = self.order_repo.create(conn, data.with_defaults())
            logger.info("Created order #%s", order.so_id)
            return order
        except Exception as e:
            self._fail("create_order", e)
            return None

    def load_orders(
        self,
        *,
        work_status: WorkStatus | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> OrderListResult:
        try:
            with self.db.session() as conn:
                items = self.order_repo.list_extended(
                    conn, work_status=work_status, payment_status=payment_status
                )
            return OrderListResult(items=items)
        except Exception as e:
            err = self._fail("load_orders", e)
            return OrderListResult(error=str(err))

    def get_orders(self) -> list[ServiceOrderExtended]:
        return self.load_orders().items

    def get_orders_by_payment_status(self, status: PaymentStatus) -> list[ServiceOrderExtended]:
        try:
            status = PaymentStatus.parse(status)
        except ValueError as e:
            self._fail("get_orders_by_payment_status", e)
            return []
        return self.load_orders(payment_status=status).items

    def get_orders_by_work_status(self, status: WorkStatus) -> list[ServiceOrderExtended]:
        try:
            status = WorkStatus.parse(status)
        except ValueError as e:
            self._fail("get_orders_by_work_status", e)
            return []
        return self.load_orders(work_status=status).items

    def get_order_by_id(self, order_id: int) -> ServiceOrderExtended | None:
        if not _valid_id(order_id):
            logger.warning("get_order_by_id called with invalid id %r", order_id)
            return None
        try:
            with self.db.session() as conn:
                order = self.order_repo.get_extended(conn, order_id)
        except Exception as e:
            self._fail("get_order_by_id", e)
            return None
        if order is None:
            logger.info("Order #%s not found", order_id)
        return order

    def update_order(self, order_id: int, data: UpdateServiceOrderInput) -> ServiceOrder | None:
        changes = data.changes()
        if not _valid_id(order_id) or not changes:
            logger.warning("update_order ignored: id=%r changes=%r", order_id, changes)
            return None
        try:
            with self.db.transaction() as conn:
                order = self.order_repo.update(conn, order_id, changes)
        except Exception as e:
            self._fail("update_order", e)
            return None
        if order is None:
            logger.info("update_order: order #%s not found", order_id)
        return order

    def delete_order(self, order_id: int) -> bool:
        if not _valid_id(order_id):
            return False
        try:
            with self.db.transaction() as conn:
                deleted = self.order_repo.delete(conn, order_id)
        except Exception as e:
            self._fail("delete_order", e)
            return False
        if deleted:
            logger.info("Deleted order #%s", order_id)
        return deleted
