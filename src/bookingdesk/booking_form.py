"""Three-step booking form, kept apart from any rendering.

Steps collect disjoint fields; each step validates its own fields before the
form moves on. Submission hands the eight text fields (plus an optional
receipt) to a notifier and resets the form only when delivery succeeds.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Callable

from .domain import BOOKING_FIELDS, Attachment, BookingFormData
from .enums import ProductPackage
from .notifications import BookingRequest, NotificationError, Notifier

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SUBMIT_FAILED = "An error occurred. Please try again later."


class FormStep(IntEnum):
    USER_DETAILS = 1
    VEHICLE_DETAILS = 2
    APPOINTMENT_DETAILS = 3
    SUBMITTED = 4

    @property
    def title(self) -> str:
        return self.name.replace("_", " ").title()


class FormEvent(str, Enum):
    NEXT = "next"
    BACK = "back"
    SUBMIT_OK = "submit_ok"
    RESET = "reset"


TRANSITIONS: dict[tuple[FormStep, FormEvent], FormStep] = {
    (FormStep.USER_DETAILS, FormEvent.NEXT): FormStep.VEHICLE_DETAILS,
    (FormStep.VEHICLE_DETAILS, FormEvent.NEXT): FormStep.APPOINTMENT_DETAILS,
    (FormStep.VEHICLE_DETAILS, FormEvent.BACK): FormStep.USER_DETAILS,
    (FormStep.APPOINTMENT_DETAILS, FormEvent.BACK): FormStep.VEHICLE_DETAILS,
    (FormStep.APPOINTMENT_DETAILS, FormEvent.SUBMIT_OK): FormStep.SUBMITTED,
}


class InvalidTransition(Exception):
    def __init__(self, step: FormStep, event: FormEvent) -> None:
        super().__init__(f"Cannot {event.value} from step {step.value} ({step.title})")
        self.step = step
        self.event = event


def transition(step: FormStep, event: FormEvent) -> FormStep:
    if event is FormEvent.RESET:
        return FormStep.USER_DETAILS
    try:
        return TRANSITIONS[(step, event)]
    except KeyError:
        raise InvalidTransition(step, event) from None


def _required(data: BookingFormData, name: str, message: str, errors: dict[str, str]) -> None:
    if not getattr(data, name).strip():
        errors[name] = message


def validate_user_details(data: BookingFormData) -> dict[str, str]:
    errors: dict[str, str] = {}
    _required(data, "name", "Name is required", errors)
    if not data.email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_RE.match(data.email.strip()):
        errors["email"] = "Please enter a valid email"
    _required(data, "phone", "Phone number is required", errors)
    return errors


def validate_vehicle_details(data: BookingFormData) -> dict[str, str]:
    errors: dict[str, str] = {}
    _required(data, "numberPlate", "Number plate is required", errors)
    _required(data, "brandModel", "Brand model is required", errors)
    if data.productPackage not in ProductPackage.values():
        errors["productPackage"] = "Please select a package"
    return errors


def validate_appointment_details(data: BookingFormData) -> dict[str, str]:
    errors: dict[str, str] = {}
    _required(data, "hostel", "Hostel is required", errors)
    _required(data, "timeslot", "Please pick a timeslot", errors)
    return errors


STEP_FIELDS: dict[FormStep, tuple[str, ...]] = {
    FormStep.USER_DETAILS: ("name", "email", "phone"),
    FormStep.VEHICLE_DETAILS: ("numberPlate", "brandModel", "productPackage"),
    FormStep.APPOINTMENT_DETAILS: ("hostel", "timeslot", "receipt"),
}

VALIDATORS: dict[FormStep, Callable[[BookingFormData], dict[str, str]]] = {
    FormStep.USER_DETAILS: validate_user_details,
    FormStep.VEHICLE_DETAILS: validate_vehicle_details,
    FormStep.APPOINTMENT_DETAILS: validate_appointment_details,
}


@dataclass
class BookingForm:
    data: BookingFormData = field(default_factory=BookingFormData)
    step: FormStep = FormStep.USER_DETAILS
    errors: dict[str, str] = field(default_factory=dict)
    error: str = ""
    busy: bool = False

    def update_field(self, name: str, value: str | Attachment | None) -> None:
        if name == "receipt":
            if value is not None and not isinstance(value, Attachment):
                raise TypeError("receipt must be an Attachment or None")
            self.data.receipt = value
            return
        if name not in BOOKING_FIELDS:
            raise KeyError(f"Unknown booking field: {name}")
        setattr(self.data, name, "" if value is None else str(value))

    def update(self, values: dict[str, object]) -> None:
        """Apply the current step's fields from a submitted mapping."""
        for name in STEP_FIELDS.get(self.step, ()):
            if name != "receipt" and name in values:
                self.update_field(name, values[name])

    def validate(self) -> bool:
        validator = VALIDATORS.get(self.step)
        self.errors = validator(self.data) if validator else {}
        return not self.errors

    def next(self) -> bool:
        if not self.validate():
            return False
        self.step = transition(self.step, FormEvent.NEXT)
        return True

    def back(self) -> None:
        self.errors = {}
        self.step = transition(self.step, FormEvent.BACK)

    def reset(self) -> None:
        self.data = BookingFormData()
        self.step = transition(self.step, FormEvent.RESET)
        self.errors = {}
        self.error = ""
        self.busy = False

    def submit(self, notifier: Notifier) -> bool:
        if self.busy:
            logger.warning("Booking submit ignored: a submission is already in flight")
            return False
        if self.step is not FormStep.APPOINTMENT_DETAILS:
            raise InvalidTransition(self.step, FormEvent.SUBMIT_OK)
        if not self.validate():
            return False

        # every earlier step must still hold, e.g. after a session restore
        for step in (FormStep.USER_DETAILS, FormStep.VEHICLE_DETAILS):
            errors = VALIDATORS[step](self.data)
            if errors:
                self.errors = errors
                self.step = step
                return False

        self.error = ""
        self.busy = True
        try:
            request = BookingRequest.from_fields(self.data.payload(), receipt=self.data.receipt)
            notifier.send(request)
        except NotificationError as e:
            logger.error("Booking submission failed: %s", e)
            self.error = str(e) or SUBMIT_FAILED
            return False
        finally:
            self.busy = False

        self.step = transition(self.step, FormEvent.SUBMIT_OK)
        self.reset()
        return True

    def to_dict(self) -> dict:
        data = asdict(self.data)
        data.pop("receipt", None)
        return {"step": int(self.step), "data": data, "errors": dict(self.errors), "error": self.error}

    @classmethod
    def from_dict(cls, raw: dict | None) -> BookingForm:
        if not raw:
            return cls()
        values = raw.get("data") or {}
        data = BookingFormData(**{k: str(values.get(k, "")) for k in BOOKING_FIELDS})
        try:
            step = FormStep(int(raw.get("step", 1)))
        except ValueError:
            step = FormStep.USER_DETAILS
        if step is FormStep.SUBMITTED:
            step = FormStep.USER_DETAILS
        return cls(data=data, step=step, errors=dict(raw.get("errors") or {}), error=str(raw.get("error") or ""))
