import pytest

from bookingdesk.enums import PaymentStatus, ProductPackage, UserType, WorkStatus, payment_badge, work_badge


def test_stored_values():
    assert PaymentStatus.values() == ["pending", "approve", "decline"]
    assert WorkStatus.values() == ["waiting", "in progress", "completed"]
    assert UserType.SUPER_ADMIN.value == "super admin"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("in progress", WorkStatus.IN_PROGRESS),
        ("IN_PROGRESS", WorkStatus.IN_PROGRESS),
        ("in_progress", WorkStatus.IN_PROGRESS),
        (WorkStatus.COMPLETED, WorkStatus.COMPLETED),
    ],
)
def test_parse_accepts_value_or_name(raw, expected):
    assert WorkStatus.parse(raw) is expected


def test_parse_rejects_unknown():
    with pytest.raises(ValueError, match="allowed"):
        PaymentStatus.parse("refunded")


def test_every_status_has_a_badge():
    assert {payment_badge(s) for s in PaymentStatus} == {"outline", "default", "destructive"}
    assert [work_badge(s) for s in WorkStatus] == ["outline", "secondary", "default"]


def test_package_labels():
    assert ProductPackage.DAILY.label == "Daily Use Package"
    assert ProductPackage.parse("performance").label == "Performance Package"
