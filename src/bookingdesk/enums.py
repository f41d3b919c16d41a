from __future__ import annotations

from enum import Enum
from typing import Literal

BadgeVariant = Literal["default", "secondary", "destructive", "outline"]


class _StoredEnum(str, Enum):
    """String enum whose values are exactly what the database stores."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | _StoredEnum):
        if isinstance(value, cls):
            return value
        raw = str(value).strip()
        for member in cls:
            if raw == member.value or raw.upper().replace(" ", "_") == member.name:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid {cls.__name__}: {value!r} (allowed: {allowed})")

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


class PaymentStatus(_StoredEnum):
    PENDING = "pending"
    APPROVED = "approve"
    DECLINED = "decline"


class WorkStatus(_StoredEnum):
    WAITING = "waiting"
    IN_PROGRESS = "in progress"
    COMPLETED = "completed"


class UserType(_StoredEnum):
    ADMIN = "admin"
    SUPER_ADMIN = "super admin"
    MECHANIC = "mechanic"


class ProductPackage(_StoredEnum):
    DAILY = "daily"
    PERFORMANCE = "performance"

    @property
    def label(self) -> str:
        match self:
            case ProductPackage.DAILY:
                return "Daily Use Package"
            case ProductPackage.PERFORMANCE:
                return "Performance Package"
        raise ValueError(f"Unhandled package: {self!r}")


def payment_badge(status: PaymentStatus) -> BadgeVariant:
    match status:
        case PaymentStatus.PENDING:
            return "outline"
        case PaymentStatus.APPROVED:
            return "default"
        case PaymentStatus.DECLINED:
            return "destructive"
    raise ValueError(f"Unhandled payment status: {status!r}")


def work_badge(status: WorkStatus) -> BadgeVariant:
    match status:
        case WorkStatus.WAITING:
            return "outline"
        case WorkStatus.IN_PROGRESS:
            return "secondary"
        case WorkStatus.COMPLETED:
            return "default"
    raise ValueError(f"Unhandled work status: {status!r}")
