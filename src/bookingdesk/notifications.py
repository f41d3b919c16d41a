from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Mapping, Protocol

import requests

from .domain import BOOKING_FIELDS, Attachment

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_RECEIPT_NAME = "receipt.jpg"
DEFAULT_RECEIPT_TYPE = "image/jpeg"

FIELD_LABELS = {
    "name": "Name",
    "email": "Email",
    "phone": "Phone",
    "hostel": "Hostel",
    "numberPlate": "Number Plate",
    "brandModel": "Brand/Model",
    "productPackage": "Package",
    "timeslot": "Timeslot",
}


class NotificationError(Exception):
    pass


class NotificationConfigError(NotificationError):
    pass


class MissingFieldsError(ValueError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__("Missing required fields")
        self.missing = missing


@dataclass(frozen=True)
class BookingRequest:
    name: str
    email: str
    phone: str
    hostel: str
    numberPlate: str
    brandModel: str
    productPackage: str
    timeslot: str
    receipt: Attachment | None = None

    @classmethod
    def from_fields(cls, fields: Mapping[str, object], receipt: Attachment | None = None) -> BookingRequest:
        values = {k: str(fields.get(k) or "").strip() for k in BOOKING_FIELDS}
        missing = [k for k, v in values.items() if not v]
        if missing:
            raise MissingFieldsError(missing)
        return cls(**values, receipt=receipt)


class Notifier(Protocol):
    def send(self, request: BookingRequest) -> None: ...


def decode_base64_receipt(raw: str, filename: str | None, content_type: str | None) -> Attachment | None:
    # accepts both "data:image/png;base64,AAAA" and plain "AAAA"
    encoded = raw.split(",", 1)[1] if "," in raw else raw
    # browsers may send url-safe or unpadded base64
    encoded = "".join(encoded.split()).replace("-", "+").replace("_", "/")
    encoded += "=" * (-len(encoded) % 4)
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error("Failed to parse base64 receipt: %s", e)
        return None
    return Attachment(
        filename=filename or DEFAULT_RECEIPT_NAME,
        content_type=content_type or DEFAULT_RECEIPT_TYPE,
        data=data,
    )


def parse_json_request(body: object) -> BookingRequest:
    # a JSON array, string or number carries no fields at all
    if not isinstance(body, Mapping):
        body = {}
    receipt = None
    raw = body.get("receipt")
    if isinstance(raw, str) and raw:
        receipt = decode_base64_receipt(
            raw,
            filename=str(body.get("receiptName") or "") or None,
            content_type=str(body.get("receiptType") or "") or None,
        )
    return BookingRequest.from_fields(body, receipt=receipt)


def attachment_from_upload(upload) -> Attachment | None:
    # werkzeug FileStorage; an empty file input still arrives with filename ""
    if upload is None or not getattr(upload, "filename", ""):
        return None
    return Attachment(
        filename=upload.filename,
        content_type=upload.mimetype or DEFAULT_RECEIPT_TYPE,
        data=upload.read(),
    )


def parse_form_request(form: Mapping[str, str], files: Mapping[str, object]) -> BookingRequest:
    receipt = attachment_from_upload(files.get("receipt"))
    fields = {k: v for k, v in form.items() if k != "receipt"}
    return BookingRequest.from_fields(fields, receipt=receipt)


def format_message(request: BookingRequest) -> str:
    lines = ["==============================", "\U0001f4cb **APPOINTMENT DETAILS**"]
    for key in BOOKING_FIELDS:
        lines.append(f"**{FIELD_LABELS[key]}:** {getattr(request, key)}")
    if request.receipt is not None:
        lines.append("**Receipt:** Attached below")
    else:
        lines.append("**Receipt:** Not provided")
    lines.append("==============================")
    return "\n".join(lines)


class DiscordNotifier:
    """Posts booking requests to a Discord-style webhook as multipart bodies."""

    def __init__(self, webhook_url: str, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.http = session or requests

    def send(self, request: BookingRequest) -> None:
        if not self.webhook_url:
            logger.error("Webhook URL is not configured")
            raise NotificationConfigError("Server configuration error")

        data = {"payload_json": json.dumps({"content": format_message(request)})}
        files = None
        if request.receipt is not None:
            r = request.receipt
            files = {"file": (r.filename, r.data, r.content_type)}

        try:
            resp = self.http.post(self.webhook_url, data=data, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Webhook delivery failed: %s", e)
            raise NotificationError("Failed to process request") from e

        if not resp.ok:
            logger.error("Webhook failed: %s %s", resp.status_code, resp.text)
            raise NotificationError("Failed to process request")

        logger.info("Booking request for %s delivered", request.email)
