from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .enums import PaymentStatus, UserType, WorkStatus


@dataclass(frozen=True)
class ServiceOrder:
    so_id: int
    s_customer_id: int
    s_hostel_id: int
    s_package_id: int
    s_users_id: int
    so_time_slot: str
    so_work_status: WorkStatus
    so_payment_status: PaymentStatus
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CustomerSnapshot:
    sc_id: int
    sc_name: str
    sc_email: Optional[str]
    sc_phone: Optional[str]
    sc_number_plate: Optional[str]
    sc_brand_model: Optional[str]


@dataclass(frozen=True)
class PackageSnapshot:
    sp_id: int
    sp_name: str
    sp_price: Decimal
    sp_description: Optional[str]


@dataclass(frozen=True)
class HostelSnapshot:
    sh_id: int
    sh_name: str


@dataclass(frozen=True)
class AssignedUserSnapshot:
    su_id: int
    su_email: str
    su_type: UserType
    su_is_approve: bool


@dataclass(frozen=True)
class ServiceOrderExtended(ServiceOrder):
    """An order with the current state of every row it references.

    Rebuilt on each read; a reference may be missing when its row is gone.
    """

    customer: Optional[CustomerSnapshot] = None
    package: Optional[PackageSnapshot] = None
    hostel: Optional[HostelSnapshot] = None
    user: Optional[AssignedUserSnapshot] = None


@dataclass(frozen=True)
class CreateServiceOrderInput:
    s_customer_id: int
    s_hostel_id: int
    s_package_id: int
    s_users_id: int
    so_time_slot: str
    so_work_status: Optional[WorkStatus] = None
    so_payment_status: Optional[PaymentStatus] = None

    def with_defaults(self) -> CreateServiceOrderInput:
        return replace(
            self,
            so_work_status=self.so_work_status or WorkStatus.WAITING,
            so_payment_status=self.so_payment_status or PaymentStatus.PENDING,
        )


@dataclass(frozen=True)
class UpdateServiceOrderInput:
    """Partial update; ``None`` means leave the column alone."""

    so_work_status: Optional[WorkStatus] = None
    so_payment_status: Optional[PaymentStatus] = None
    so_time_slot: Optional[str] = None

    def changes(self) -> dict[str, object]:
        out: dict[str, object] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                out[f.name] = value.value if isinstance(value, (WorkStatus, PaymentStatus)) else value
        return out


@dataclass(frozen=True)
class Attachment:
    filename: str
    content_type: str
    data: bytes


BOOKING_FIELDS = (
    "name",
    "email",
    "phone",
    "hostel",
    "numberPlate",
    "brandModel",
    "productPackage",
    "timeslot",
)


@dataclass
class BookingFormData:
    name: str = ""
    email: str = ""
    phone: str = ""
    hostel: str = ""
    numberPlate: str = ""
    brandModel: str = ""
    productPackage: str = ""
    timeslot: str = ""
    receipt: Optional[Attachment] = None

    def payload(self) -> dict[str, str]:
        return {k: getattr(self, k) for k in BOOKING_FIELDS}
