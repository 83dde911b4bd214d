import base64
import hashlib
import hmac
import io
import json
import qrcode
from flask import current_app
from app.repositories.event_repository import EventRepository
from app.repositories.event_registration_repository import EventRegistrationRepository
from app.exceptions import (
    EventMismatchError,
    IneligibleError,
    MalformedTokenError,
    NotFoundError,
    UnknownRegistrationError,
)
from app.models import EventRegistration
from app.models.enums import EventStatus, RegistrationStatus
from app.sse_utils import publish
from app.utils.dates import utcnow
from app.utils.transactions import after_commit, transactional
from typing import Tuple

TOKEN_FIELDS = ("eventId", "userId", "regNo")


def _signing_key() -> bytes:
    secret = current_app.config.get("CHECKIN_TOKEN_SECRET") or current_app.config["JWT_SECRET_KEY"]
    return secret.encode("utf-8")


def _canonical(payload: dict) -> bytes:
    return json.dumps(
        {field: payload[field] for field in TOKEN_FIELDS},
        sort_keys=True,
        separators=(",", ":"),
    ).encode("utf-8")


def sign_payload(payload: dict) -> str:
    return hmac.new(_signing_key(), _canonical(payload), hashlib.sha256).hexdigest()


class AttendanceService:
    """QR proof-of-attendance: issue a token per registration, verify it at the door."""

    @staticmethod
    def issue_token(registration: EventRegistration) -> dict:
        """Deterministic QR payload for a registration; can be regenerated at any time."""
        payload = {
            "eventId": str(registration.event_id),
            "userId": str(registration.user_id),
            "regNo": registration.reg_no,
        }
        payload["sig"] = sign_payload(payload)
        return payload

    @staticmethod
    def render_qr_png(payload: dict) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(json.dumps(payload, separators=(",", ":")))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def render_qr_base64(payload: dict) -> str:
        return base64.b64encode(AttendanceService.render_qr_png(payload)).decode()

    @staticmethod
    def parse_token(presented) -> dict:
        """Accept the scanner's JSON text (or an already-decoded object) and validate its shape."""
        if isinstance(presented, (str, bytes)):
            try:
                presented = json.loads(presented)
            except (TypeError, ValueError):
                raise MalformedTokenError()
        if not isinstance(presented, dict):
            raise MalformedTokenError()

        payload = {}
        for field in TOKEN_FIELDS:
            value = presented.get(field)
            if isinstance(value, bool) or not isinstance(value, (str, int)):
                raise MalformedTokenError(f"Invalid QR code: missing {field}")
            value = str(value).strip()
            if not value:
                raise MalformedTokenError(f"Invalid QR code: missing {field}")
            payload[field] = value

        signature = presented.get("sig")
        if signature is not None:
            if not isinstance(signature, str) or not hmac.compare_digest(
                signature, sign_payload(payload)
            ):
                raise MalformedTokenError("Invalid QR code: signature mismatch")
        elif current_app.config.get("REQUIRE_SIGNED_TOKENS", False):
            raise MalformedTokenError("Invalid QR code: unsigned")
        return payload

    @staticmethod
    @transactional
    def verify(event_id: int, presented) -> Tuple[EventRegistration, bool]:
        """Check in the holder of ``presented`` at ``event_id``.

        Returns the registration and whether this call performed the
        check-in. Re-scanning an already attended registration succeeds
        without touching checked_in_at.
        """
        payload = AttendanceService.parse_token(presented)
        if payload["eventId"] != str(event_id):
            current_app.logger.warning(
                f"QR for event {payload['eventId']} scanned at event {event_id}"
            )
            raise EventMismatchError()

        event = EventRepository.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event with ID {event_id} not found")
        if event.status == EventStatus.CANCELLED.value:
            current_app.logger.warning(f"Check-in refused: event {event_id} is cancelled")
            raise IneligibleError("Event has been cancelled")

        try:
            user_id = int(payload["userId"])
        except ValueError:
            raise UnknownRegistrationError()

        registration = EventRegistrationRepository.find_by_event_and_user(event_id, user_id)
        if not registration or registration.status == RegistrationStatus.CANCELLED.value:
            current_app.logger.warning(
                f"Check-in rejected: no active registration for user {user_id}, event {event_id}"
            )
            raise UnknownRegistrationError()

        if registration.status == RegistrationStatus.ATTENDED.value:
            current_app.logger.info(f"Duplicate scan for user {user_id}, event {event_id}")
            return registration, False

        if EventRegistrationRepository.mark_attended(registration.id, utcnow()):
            registration = EventRegistrationRepository.find_by_event_and_user(
                event_id, user_id, fresh=True
            )
            current_app.logger.info(
                f"Attendance marked for Reg.No: {registration.reg_no} (user {user_id}, event {event_id})"
            )
            after_commit(
                publish,
                "registration.attended",
                {"eventId": str(event_id), "userId": str(user_id)},
            )
            return registration, True

        # Lost the race to another scanner, or the row changed underneath us
        registration = EventRegistrationRepository.find_by_event_and_user(
            event_id, user_id, fresh=True
        )
        if registration and registration.status == RegistrationStatus.ATTENDED.value:
            return registration, False
        raise UnknownRegistrationError()
