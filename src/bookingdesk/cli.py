from __future__ import annotations

from .db import Db
from .domain import CreateServiceOrderInput, ServiceOrderExtended, UpdateServiceOrderInput
from .enums import PaymentStatus, WorkStatus
from .repositories.order_repo import OrderRepository
from .services.order_service import OrderService, status_summary


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _optional_status(msg: str, enum_cls):
    raw = _prompt(msg)
    return enum_cls.parse(raw) if raw else None


def _print_order(o: ServiceOrderExtended) -> None:
    customer = o.customer.sc_name if o.customer else f"customer#{o.s_customer_id}"
    package = o.package.sp_name if o.package else f"package#{o.s_package_id}"
    hostel = o.hostel.sh_name if o.hostel else f"hostel#{o.s_hostel_id}"
    print(
        f"order#{o.so_id} slot={o.so_time_slot} work={o.so_work_status} pay={o.so_payment_status} "
        f"customer={customer} package={package} hostel={hostel} created={o.created_at:%Y-%m-%d %H:%M}"
    )


def run_cli(db: Db) -> None:
    service = OrderService(db=db, order_repo=OrderRepository())

    while True:
        print("\n=== Booking Desk CLI ===")
        print("1) List orders")
        print("2) List orders by payment status")
        print("3) List orders by work status")
        print("4) Show order")
        print("5) Create order")
        print("6) Update order")
        print("7) Delete order")
        print("8) Status summary")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                for o in service.get_orders():
                    _print_order(o)

            elif choice == "2":
                status = PaymentStatus.parse(_prompt(f"payment status {PaymentStatus.values()}: "))
                for o in service.get_orders_by_payment_status(status):
                    _print_order(o)

            elif choice == "3":
                status = WorkStatus.parse(_prompt(f"work status {WorkStatus.values()}: "))
                for o in service.get_orders_by_work_status(status):
                    _print_order(o)

            elif choice == "4":
                order = service.get_order_by_id(int(_prompt("order_id: ")))
                if order is None:
                    print("Order not found.")
                else:
                    _print_order(order)

            elif choice == "5":
                data = CreateServiceOrderInput(
                    s_customer_id=int(_prompt("customer_id: ")),
                    s_hostel_id=int(_prompt("hostel_id: ")),
                    s_package_id=int(_prompt("package_id: ")),
                    s_users_id=int(_prompt("assigned user_id: ")),
                    so_time_slot=_prompt("time slot (YYYY-MM-DDTHH:MM): "),
                    so_work_status=_optional_status("work status (blank = waiting): ", WorkStatus),
                    so_payment_status=_optional_status("payment status (blank = pending): ", PaymentStatus),
                )
                order = service.create_order(data)
                print("Create failed, see log." if order is None else f"Created order_id={order.so_id}")

            elif choice == "6":
                order_id = int(_prompt("order_id: "))
                # blank answers leave the column untouched
                data = UpdateServiceOrderInput(
                    so_work_status=_optional_status("new work status (blank = keep): ", WorkStatus),
                    so_payment_status=_optional_status("new payment status (blank = keep): ", PaymentStatus),
                    so_time_slot=_prompt("new time slot (blank = keep): ") or None,
                )
                order = service.update_order(order_id, data)
                print("Update failed, see log." if order is None else f"Updated order_id={order.so_id}")

            elif choice == "7":
                order_id = int(_prompt("order_id: "))
                if _prompt(f"Delete order #{order_id}? (y/n): ").lower() != "y":
                    continue
                print("Deleted." if service.delete_order(order_id) else "Nothing deleted.")

            elif choice == "8":
                result = service.load_orders()
                if not result.ok:
                    print(f"[ERROR] {result.error}")
                    continue
                summary = status_summary(result.items)
                print(f"Orders: {summary.total}")
                for s, n in summary.by_payment.items():
                    print(f"  payment {s}: {n}")
                for s, n in summary.by_work.items():
                    print(f"  work {s}: {n}")

            else:
                print("Unknown choice.")

        except ValueError as e:
            print(f"[INPUT ERROR] {e}")
