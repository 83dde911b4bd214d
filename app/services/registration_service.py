from flask import current_app
from sqlalchemy.exc import IntegrityError
from app.repositories.event_repository import EventRepository
from app.repositories.event_registration_repository import EventRegistrationRepository
from app.exceptions import (
    CapacityExceededError,
    DuplicateRegistrationError,
    IneligibleError,
    MissingFieldsError,
    NotFoundError,
)
from app.models import EventRegistration
from app.models.enums import ACTIVE_REGISTRATION_STATUSES, EventStatus, RegistrationStatus
from app.sse_utils import publish
from app.utils.dates import as_utc, utcnow
from app.utils.transactions import after_commit, transactional
from typing import List

# wire name -> column
PROFILE_FIELDS = {
    "regNo": "reg_no",
    "name": "name",
    "branch": "branch",
    "department": "department",
    "phone": "phone",
}


class RegistrationService:
    """Capacity-bounded registration ledger.

    At most one registration exists per (event, user); cancelling deletes
    it. ``Event.registered_count`` always equals the number of
    registered + attended rows for the event and never exceeds capacity.
    """

    @staticmethod
    def validate_profile(profile: dict) -> dict:
        profile = profile or {}
        missing = [
            field
            for field in PROFILE_FIELDS
            if not isinstance(profile.get(field), str) or not profile[field].strip()
        ]
        if missing:
            raise MissingFieldsError(missing)
        return {column: profile[field].strip() for field, column in PROFILE_FIELDS.items()}

    @staticmethod
    @transactional
    def register(event_id: int, user_id: int, profile: dict) -> EventRegistration:
        current_app.logger.info(f"Registration attempt: User {user_id} for event {event_id}")
        attrs = RegistrationService.validate_profile(profile)

        event = EventRepository.get_event(event_id)
        if not event:
            raise NotFoundError(f"Event with ID {event_id} not found")
        if event.status != EventStatus.APPROVED.value:
            raise IneligibleError("Event is not open for registration")
        if as_utc(event.ends_at) <= utcnow():
            raise IneligibleError("Event has already ended")

        if EventRegistrationRepository.find_by_event_and_user(event_id, user_id):
            current_app.logger.warning(f"User {user_id} already registered for event {event_id}")
            raise DuplicateRegistrationError()

        # Capacity is decided by the conditional write, not by the count read above
        if not EventRepository.reserve_slot(event_id):
            current = EventRepository.get_event(event_id, fresh=True)
            if current is None:
                raise NotFoundError(f"Event with ID {event_id} not found")
            if current.status != EventStatus.APPROVED.value:
                raise IneligibleError("Event is not open for registration")
            current_app.logger.warning(
                f"User {user_id} blocked from registering for event {event_id} - "
                f"event full ({current.registered_count}/{current.capacity})"
            )
            raise CapacityExceededError()

        try:
            registration = EventRegistrationRepository.add(
                {
                    "event_id": event_id,
                    "user_id": user_id,
                    "status": RegistrationStatus.REGISTERED.value,
                    "registered_at": utcnow(),
                    **attrs,
                }
            )
        except IntegrityError:
            # A concurrent registration for the same pair won the unique constraint
            current_app.logger.warning(
                f"Concurrent duplicate registration for user {user_id}, event {event_id}"
            )
            raise DuplicateRegistrationError()

        current_app.logger.info(f"Successfully registered user {user_id} for event {event_id}")
        after_commit(
            publish,
            "registration.created",
            {"eventId": str(event_id), "userId": str(user_id)},
        )
        return registration

    @staticmethod
    @transactional
    def cancel(event_id: int, user_id: int):
        registration = EventRegistrationRepository.find_by_event_and_user(event_id, user_id)
        if not registration:
            current_app.logger.warning(
                f"User {user_id} attempted to cancel non-existent registration for event {event_id}"
            )
            raise NotFoundError(
                "No registration found to cancel. You may have already cancelled your registration for this event."
            )

        held_slot = registration.status in [s.value for s in ACTIVE_REGISTRATION_STATUSES]
        EventRegistrationRepository.delete(registration)
        if held_slot and not EventRepository.release_slot(event_id):
            current_app.logger.warning(
                f"registeredCount for event {event_id} was already 0 when cancelling user {user_id}"
            )

        current_app.logger.info(f"User {user_id} cancelled registration for event {event_id}")
        after_commit(
            publish,
            "registration.cancelled",
            {"eventId": str(event_id), "userId": str(user_id)},
        )

    @staticmethod
    def get_registration(event_id: int, user_id: int) -> EventRegistration:
        registration = EventRegistrationRepository.find_by_event_and_user(event_id, user_id)
        if not registration:
            raise NotFoundError("You are not registered for this event")
        return registration

    @staticmethod
    def list_for_event(event_id: int) -> List[EventRegistration]:
        """Every registration for the event, any status, oldest first."""
        if not EventRepository.get_event(event_id):
            raise NotFoundError(f"Event with ID {event_id} not found")
        return EventRegistrationRepository.find_by_event_id(event_id)

    @staticmethod
    def attended_count(event_id: int) -> int:
        return EventRegistrationRepository.count_by_event_id_and_status(
            event_id, [RegistrationStatus.ATTENDED]
        )
