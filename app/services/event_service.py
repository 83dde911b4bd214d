from flask import current_app
from app.repositories.event_repository import EventRepository
from app.repositories.event_registration_repository import EventRegistrationRepository
from app.repositories.user_repository import UserRepository
from app.exceptions import (
    InvalidTransitionError,
    MissingFieldsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.models.enums import EventStatus, ORGANIZER_ROLES, RegistrationStatus, UserRole
from app.models import Event, User
from app.sse_utils import publish
from app.utils.dates import as_utc, parse_iso, utcnow
from app.utils.email import send_event_cancelled_email, send_event_status_email
from app.utils.transactions import after_commit, transactional
from typing import List


def _parse_instant(data: dict, field: str):
    value = data[field]
    try:
        return parse_iso(value)
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid date format for {field}")


def _parse_capacity(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Capacity must be a positive number")
    try:
        capacity = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Capacity must be a positive number")
    if capacity <= 0 or capacity != float(value):
        raise ValidationError("Capacity must be a positive number")
    return capacity


def _parse_tags(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ValidationError("Tags must be a list or comma-separated string")
    return [str(tag).strip() for tag in value if str(tag).strip()]


def _organizer_name(user: User) -> str:
    if user.role == UserRole.ADMIN.value:
        return "Campus Administration"
    return user.name


class EventService:
    """Event lifecycle: pending -> approved/rejected, approved -> cancelled."""

    REQUIRED_FIELDS = ["title", "description", "location", "startDate", "endDate"]
    UPDATABLE_FIELDS = {
        "title": "title",
        "description": "description",
        "location": "location",
        "startDate": "starts_at",
        "endDate": "ends_at",
        "capacity": "capacity",
        "tags": "tags",
        "image": "image",
    }

    @staticmethod
    def get_event(event_id: int) -> Event:
        event = EventRepository.get_event(event_id)
        if not event:
            raise NotFoundError(f"Event with ID {event_id} not found")
        return event

    @staticmethod
    def get_events(user_id: int = None, status: str = None) -> List[Event]:
        """Admins see every event; everyone else sees approved events and their own."""
        user = UserRepository.find_by_id(user_id) if user_id else None
        if user and user.is_admin:
            return EventRepository.get_events(status=status)
        visible_to = user.id if user else -1
        return EventRepository.get_events(status=status, visible_to=visible_to)

    @staticmethod
    def _require_user(user_id: int) -> User:
        user = UserRepository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _require_organizer_or_admin(event: Event, user: User):
        if not (user.is_admin or event.organizer_id == user.id):
            raise UnauthorizedError("You are not authorized to manage this event.")

    @staticmethod
    def authorize_manager(event_id: int, user_id: int) -> Event:
        """The event, if ``user_id`` is its organizer or an admin."""
        user = EventService._require_user(user_id)
        event = EventService.get_event(event_id)
        EventService._require_organizer_or_admin(event, user)
        return event

    @staticmethod
    @transactional
    def create_event(data: dict, user_id: int) -> Event:
        user = EventService._require_user(user_id)
        if user.role not in [role.value for role in ORGANIZER_ROLES]:
            raise UnauthorizedError("Unauthorized to create events")

        missing = [f for f in EventService.REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise MissingFieldsError(missing)

        starts_at = _parse_instant(data, "startDate")
        ends_at = _parse_instant(data, "endDate")
        if ends_at <= starts_at:
            raise ValidationError("End date/time must be after start date/time")

        # Admin-organized events skip moderation
        status = (
            EventStatus.APPROVED.value
            if user.role == UserRole.ADMIN.value
            else EventStatus.PENDING.value
        )

        event = EventRepository.create_event(
            {
                "title": str(data["title"]).strip(),
                "description": data["description"],
                "location": str(data["location"]).strip(),
                "starts_at": starts_at,
                "ends_at": ends_at,
                "organizer_id": user.id,
                "organizer_name": _organizer_name(user),
                "organizer_type": user.role,
                "status": status,
                "capacity": _parse_capacity(data.get("capacity")),
                "registered_count": 0,
                "image": data.get("image") or None,
                "tags": _parse_tags(data.get("tags")),
            }
        )
        current_app.logger.info(
            f"Event {event.id} created by user {user.id} ({user.role}) with status {status}"
        )
        after_commit(publish, "event.created", {"eventId": str(event.id), "status": status})
        return event

    @staticmethod
    def _transition(event_id: int, from_status: EventStatus, to_status: EventStatus) -> Event:
        event = EventRepository.get_event(event_id)
        if not event:
            raise NotFoundError(f"Event with ID {event_id} not found")
        if event.status != from_status.value:
            raise InvalidTransitionError(
                f"Cannot move event from {event.status} to {to_status.value}"
            )
        if not EventRepository.transition_status(event_id, from_status.value, to_status.value):
            # Someone else moved it between our read and write
            current = EventRepository.get_event(event_id, fresh=True)
            if current is None:
                raise NotFoundError(f"Event with ID {event_id} not found")
            raise InvalidTransitionError(
                f"Cannot move event from {current.status} to {to_status.value}"
            )
        return EventRepository.get_event(event_id, fresh=True)

    @staticmethod
    def _notify_organizer(organizer_id: int, event_title: str, rejected: bool):
        organizer = UserRepository.find_by_id(organizer_id)
        if not organizer:
            current_app.logger.warning(
                f"Organizer {organizer_id} of event '{event_title}' no longer exists, skipping email"
            )
            return
        send_event_status_email(organizer.email, organizer.name, event_title, rejected)

    @staticmethod
    @transactional
    def approve_event(event_id: int) -> Event:
        event = EventService._transition(event_id, EventStatus.PENDING, EventStatus.APPROVED)
        current_app.logger.info(f"Event {event_id} approved")
        after_commit(EventService._notify_organizer, event.organizer_id, event.title, False)
        after_commit(publish, "event.approved", {"eventId": str(event_id)})
        return event

    @staticmethod
    @transactional
    def reject_event(event_id: int):
        """Reject a pending event. Rejection is destructive: the event is deleted."""
        event = EventService._transition(event_id, EventStatus.PENDING, EventStatus.REJECTED)
        organizer_id, title = event.organizer_id, event.title
        EventRegistrationRepository.delete_by_event_id(event_id)
        EventRepository.delete_event(event)
        current_app.logger.info(f"Event {event_id} rejected and deleted")
        after_commit(EventService._notify_organizer, organizer_id, title, True)
        after_commit(publish, "event.rejected", {"eventId": str(event_id)})

    @staticmethod
    @transactional
    def cancel_event(event_id: int, user_id: int) -> Event:
        """Cancel an approved event.

        With CANCEL_CASCADES_REGISTRATIONS (the default) every registration not
        yet checked in is removed, its slot is released and the attendee is
        emailed. Attended records are kept. Otherwise registrations are left
        as they are.
        """
        user = EventService._require_user(user_id)
        event = EventService.get_event(event_id)
        EventService._require_organizer_or_admin(event, user)
        if event.effective_status() == EventStatus.COMPLETED.value:
            raise InvalidTransitionError("Cannot cancel an event that has already ended")

        event = EventService._transition(event_id, EventStatus.APPROVED, EventStatus.CANCELLED)

        if current_app.config.get("CANCEL_CASCADES_REGISTRATIONS", True):
            pending = [RegistrationStatus.REGISTERED]
            registrations = EventRegistrationRepository.find_by_event_id(event_id, statuses=pending)
            notify = [(r.user_id, r.name) for r in registrations]
            removed = EventRegistrationRepository.delete_by_event_id(event_id, statuses=pending)
            if removed and not EventRepository.release_slots(event_id, removed):
                current_app.logger.warning(
                    f"registered_count for event {event_id} was below {removed} while cancelling"
                )
            event = EventRepository.get_event(event_id, fresh=True)
            current_app.logger.info(
                f"Event {event_id} cancelled by user {user_id}; removed {removed} registrations"
            )
            for attendee_id, name in notify:
                after_commit(EventService._notify_attendee_cancelled, attendee_id, name, event.title)
        else:
            current_app.logger.info(
                f"Event {event_id} cancelled by user {user_id}; registrations retained"
            )

        after_commit(publish, "event.cancelled", {"eventId": str(event_id)})
        return event

    @staticmethod
    def _notify_attendee_cancelled(attendee_id: int, display_name: str, event_title: str):
        attendee = UserRepository.find_by_id(attendee_id)
        if attendee:
            send_event_cancelled_email(attendee.email, display_name, event_title)

    @staticmethod
    @transactional
    def update_event(event_id: int, data: dict, user_id: int) -> Event:
        user = EventService._require_user(user_id)
        event = EventService.get_event(event_id)
        EventService._require_organizer_or_admin(event, user)

        if event.status != EventStatus.APPROVED.value:
            raise InvalidTransitionError(f"Cannot edit an event that is {event.status}")
        if as_utc(event.starts_at) <= utcnow():
            raise InvalidTransitionError("Cannot edit an event that has already started")

        update_data = {}
        for field, attr in EventService.UPDATABLE_FIELDS.items():
            if field not in data:
                continue
            if field in ("startDate", "endDate"):
                update_data[attr] = _parse_instant(data, field)
            elif field == "capacity":
                update_data[attr] = _parse_capacity(data[field])
            elif field == "tags":
                update_data[attr] = _parse_tags(data[field])
            elif field in ("title", "description", "location"):
                if not data[field] or not str(data[field]).strip():
                    raise ValidationError(f"{field} cannot be empty")
                update_data[attr] = data[field]
            else:
                update_data[attr] = data[field]

        starts_at = as_utc(update_data.get("starts_at", event.starts_at))
        ends_at = as_utc(update_data.get("ends_at", event.ends_at))
        if ends_at <= starts_at:
            raise ValidationError("End date/time must be after start date/time")

        capacity = update_data.get("capacity", event.capacity)
        if capacity is not None and capacity < event.registered_count:
            raise ValidationError(
                f"Capacity cannot be lower than the {event.registered_count} current registrations"
            )

        if not update_data:
            return event

        event = EventRepository.update_event(event, update_data)
        current_app.logger.info(
            f"Event {event_id} updated by user {user_id}: {sorted(update_data)}"
        )
        after_commit(publish, "event.updated", {"eventId": str(event_id)})
        return event

    @staticmethod
    @transactional
    def delete_event(event_id: int, user_id: int):
        user = EventService._require_user(user_id)
        event = EventService.get_event(event_id)
        EventService._require_organizer_or_admin(event, user)

        removed = EventRegistrationRepository.delete_by_event_id(event_id)
        EventRepository.delete_event(event)
        current_app.logger.info(
            f"Event {event_id} deleted by user {user_id} along with {removed} registrations"
        )
        after_commit(publish, "event.deleted", {"eventId": str(event_id)})
