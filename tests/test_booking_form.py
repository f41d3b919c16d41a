import pytest
from conftest import FakeNotifier

from bookingdesk.booking_form import (
    BookingForm,
    FormEvent,
    FormStep,
    InvalidTransition,
    transition,
    validate_user_details,
    validate_vehicle_details,
)
from bookingdesk.domain import Attachment, BookingFormData

VALID = {
    "name": "A",
    "email": "a@x.com",
    "phone": "123",
    "hostel": "H1",
    "numberPlate": "ABC123",
    "brandModel": "Civic",
    "productPackage": "daily",
    "timeslot": "2024-01-01T10:00",
}


def filled_form() -> BookingForm:
    form = BookingForm()
    form.update(VALID)
    assert form.next()
    form.update(VALID)
    assert form.next()
    form.update(VALID)
    assert form.step is FormStep.APPOINTMENT_DETAILS
    return form


def test_transition_table():
    assert transition(FormStep.USER_DETAILS, FormEvent.NEXT) is FormStep.VEHICLE_DETAILS
    assert transition(FormStep.APPOINTMENT_DETAILS, FormEvent.BACK) is FormStep.VEHICLE_DETAILS
    assert transition(FormStep.VEHICLE_DETAILS, FormEvent.RESET) is FormStep.USER_DETAILS
    with pytest.raises(InvalidTransition):
        transition(FormStep.USER_DETAILS, FormEvent.BACK)
    with pytest.raises(InvalidTransition):
        transition(FormStep.APPOINTMENT_DETAILS, FormEvent.NEXT)


def test_vehicle_step_missing_number_plate():
    data = BookingFormData(numberPlate="", brandModel="Honda Civic", productPackage="daily")
    assert validate_vehicle_details(data) == {"numberPlate": "Number plate is required"}


def test_vehicle_step_blocks_next_and_keeps_values():
    form = BookingForm(step=FormStep.VEHICLE_DETAILS)
    form.update({"numberPlate": "   ", "brandModel": "Honda Civic", "productPackage": "daily"})

    assert form.next() is False
    assert form.step is FormStep.VEHICLE_DETAILS
    assert list(form.errors) == ["numberPlate"]
    assert form.data.brandModel == "Honda Civic"
    assert form.data.productPackage == "daily"


def test_vehicle_step_rejects_unknown_package():
    data = BookingFormData(numberPlate="X1", brandModel="Civic", productPackage="platinum")
    assert set(validate_vehicle_details(data)) == {"productPackage"}


def test_user_step_checks_email_shape():
    errors = validate_user_details(BookingFormData(name="A", email="not-an-email", phone="1"))
    assert set(errors) == {"email"}


def test_update_only_touches_current_step_fields():
    form = BookingForm()
    form.update(VALID)
    assert form.data.name == "A"
    assert form.data.numberPlate == ""


def test_back_keeps_data():
    form = filled_form()
    form.back()
    assert form.step is FormStep.VEHICLE_DETAILS
    assert form.data.hostel == "H1"


def test_back_from_first_step_is_invalid():
    with pytest.raises(InvalidTransition):
        BookingForm().back()


def test_submit_success_sends_once_and_resets():
    form = filled_form()
    notifier = FakeNotifier()

    assert form.submit(notifier) is True

    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    for key, value in VALID.items():
        assert getattr(sent, key) == value
    assert form.step is FormStep.USER_DETAILS
    assert form.data == BookingFormData()
    assert form.error == ""
    assert form.busy is False


def test_submit_failure_keeps_everything():
    form = filled_form()
    notifier = FakeNotifier(fail=True)

    assert form.submit(notifier) is False

    assert form.step is FormStep.APPOINTMENT_DETAILS
    assert form.data.payload() == VALID
    assert form.error
    assert form.busy is False


def test_submit_passes_receipt_separately():
    form = filled_form()
    receipt = Attachment(filename="r.png", content_type="image/png", data=b"\x89PNG")
    form.update_field("receipt", receipt)
    notifier = FakeNotifier()

    assert form.submit(notifier)

    assert notifier.sent[0].receipt == receipt
    assert "receipt" not in form.data.payload()


def test_submit_while_busy_is_ignored():
    form = filled_form()
    form.busy = True
    notifier = FakeNotifier()

    assert form.submit(notifier) is False
    assert notifier.sent == []


def test_submit_requires_last_step():
    with pytest.raises(InvalidTransition):
        BookingForm().submit(FakeNotifier())


def test_submit_with_missing_appointment_fields():
    form = filled_form()
    form.update_field("timeslot", "")
    notifier = FakeNotifier()

    assert form.submit(notifier) is False
    assert set(form.errors) == {"timeslot"}
    assert notifier.sent == []


def test_session_round_trip_drops_receipt():
    form = filled_form()
    form.update_field("receipt", Attachment("r.jpg", "image/jpeg", b"x"))

    restored = BookingForm.from_dict(form.to_dict())

    assert restored.step is FormStep.APPOINTMENT_DETAILS
    assert restored.data.payload() == VALID
    assert restored.data.receipt is None


def test_from_dict_handles_garbage():
    assert BookingForm.from_dict(None).step is FormStep.USER_DETAILS
    assert BookingForm.from_dict({"step": 99}).step is FormStep.USER_DETAILS


def test_unknown_field_rejected():
    with pytest.raises(KeyError):
        BookingForm().update_field("colour", "red")
