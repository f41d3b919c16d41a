from __future__ import annotations

from decimal import Decimal

from psycopg import Connection

from ..domain import (
    AssignedUserSnapshot,
    CreateServiceOrderInput,
    CustomerSnapshot,
    HostelSnapshot,
    PackageSnapshot,
    ServiceOrder,
    ServiceOrderExtended,
)
from ..enums import PaymentStatus, UserType, WorkStatus

ORDER_COLUMNS = (
    "so_id",
    "s_customer_id",
    "s_hostel_id",
    "s_package_id",
    "s_users_id",
    "so_time_slot",
    "so_work_status",
    "so_payment_status",
    "created_at",
    "updated_at",
)

# columns that may be written by a partial update
UPDATABLE_COLUMNS = ("so_work_status", "so_payment_status", "so_time_slot")

EXTENDED_SELECT = """
    SELECT
      o.so_id, o.s_customer_id, o.s_hostel_id, o.s_package_id, o.s_users_id,
      o.so_time_slot, o.so_work_status, o.so_payment_status, o.created_at, o.updated_at,
      c.sc_id, c.sc_name, c.sc_email, c.sc_phone, c.sc_number_plate, c.sc_brand_model,
      p.sp_id, p.sp_name, p.sp_price, p.sp_description,
      h.sh_id, h.sh_name,
      u.su_id, u.su_email, u.su_type, u.su_is_approve
    FROM service_order o
    LEFT JOIN service_customers c ON c.sc_id = o.s_customer_id
    LEFT JOIN service_packages p ON p.sp_id = o.s_package_id
    LEFT JOIN service_hostels h ON h.sh_id = o.s_hostel_id
    LEFT JOIN service_users u ON u.su_id = o.s_users_id
"""


def order_from_row(row: dict) -> ServiceOrder:
    return ServiceOrder(
        so_id=int(row["so_id"]),
        s_customer_id=int(row["s_customer_id"]),
        s_hostel_id=int(row["s_hostel_id"]),
        s_package_id=int(row["s_package_id"]),
        s_users_id=int(row["s_users_id"]),
        so_time_slot=str(row["so_time_slot"]),
        so_work_status=WorkStatus.parse(row["so_work_status"]),
        so_payment_status=PaymentStatus.parse(row["so_payment_status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def extended_from_row(row: dict) -> ServiceOrderExtended:
    base = order_from_row(row)

    customer = None
    if row.get("sc_id") is not None:
        customer = CustomerSnapshot(
            sc_id=int(row["sc_id"]),
            sc_name=row["sc_name"],
            sc_email=row.get("sc_email"),
            sc_phone=row.get("sc_phone"),
            sc_number_plate=row.get("sc_number_plate"),
            sc_brand_model=row.get("sc_brand_model"),
        )

    package = None
    if row.get("sp_id") is not None:
        package = PackageSnapshot(
            sp_id=int(row["sp_id"]),
            sp_name=row["sp_name"],
            sp_price=Decimal(str(row["sp_price"])),
            sp_description=row.get("sp_description"),
        )

    hostel = None
    if row.get("sh_id") is not None:
        hostel = HostelSnapshot(sh_id=int(row["sh_id"]), sh_name=row["sh_name"])

    user = None
    if row.get("su_id") is not None:
        user = AssignedUserSnapshot(
            su_id=int(row["su_id"]),
            su_email=row["su_email"],
            su_type=UserType.parse(row["su_type"]),
            su_is_approve=bool(row["su_is_approve"]),
        )

    return ServiceOrderExtended(
        **{col: getattr(base, col) for col in ORDER_COLUMNS},
        customer=customer,
        package=package,
        hostel=hostel,
        user=user,
    )


def build_update(order_id: int, changes: dict[str, object]) -> tuple[str, tuple]:
    unknown = set(changes) - set(UPDATABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Columns not updatable: {sorted(unknown)}")
    if not changes:
        raise ValueError("Nothing to update.")

    # fixed column order keeps the statement stable for a given set of fields
    cols = [c for c in UPDATABLE_COLUMNS if c in changes]
    assignments = ", ".join(f"{c} = %s" for c in cols)
    sql = (
        f"UPDATE service_order SET {assignments}, updated_at = now() "
        f"WHERE so_id = %s RETURNING {', '.join(ORDER_COLUMNS)};"
    )
    return sql, tuple(changes[c] for c in cols) + (order_id,)


class OrderRepository:
    def create(self, conn: Connection, data: CreateServiceOrderInput) -> ServiceOrder:
        data = data.with_defaults()
        cur = conn.execute(
            f"""
            INSERT INTO service_order(
              s_customer_id, s_hostel_id, s_package_id, s_users_id,
              so_time_slot, so_work_status, so_payment_status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {", ".join(ORDER_COLUMNS)};
            """,
            (
                data.s_customer_id,
                data.s_hostel_id,
                data.s_package_id,
                data.s_users_id,
                data.so_time_slot,
                data.so_work_status.value,
                data.so_payment_status.value,
            ),
        )
        return order_from_row(cur.fetchone())

    def list_extended(
        self,
        conn: Connection,
        *,
        work_status: WorkStatus | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> list[ServiceOrderExtended]:
        where: list[str] = []
        params: list[object] = []
        if work_status is not None:
            where.append("o.so_work_status = %s")
            params.append(work_status.value)
        if payment_status is not None:
            where.append("o.so_payment_status = %s")
            params.append(payment_status.value)

        sql = EXTENDED_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY o.created_at DESC;"

        cur = conn.execute(sql, tuple(params))
        return [extended_from_row(row) for row in cur.fetchall()]

    def get_extended(self, conn: Connection, order_id: int) -> ServiceOrderExtended | None:
        cur = conn.execute(EXTENDED_SELECT + " WHERE o.so_id = %s;", (order_id,))
        row = cur.fetchone()
        if not row:
            return None
        return extended_from_row(row)

    def update(self, conn: Connection, order_id: int, changes: dict[str, object]) -> ServiceOrder | None:
        sql, params = build_update(order_id, changes)
        cur = conn.execute(sql, params)
        row = cur.fetchone()
        if not row:
            return None
        return order_from_row(row)

    def delete(self, conn: Connection, order_id: int) -> bool:
        cur = conn.execute("DELETE FROM service_order WHERE so_id = %s;", (order_id,))
        return cur.rowcount == 1
