from typing import List, Optional
from sqlalchemy import or_, update
from app.extensions import db
from app.models import Event
from app.models.enums import EventStatus
from app.utils.dates import utcnow


class EventRepository:
    @staticmethod
    def get_events(status: str = None, visible_to: int = None) -> List[Event]:
        """All events, optionally narrowed to one stored status.

        ``visible_to`` restricts the listing to approved events plus the
        given user's own events (what non-admins may browse).
        """
        query = Event.query
        if status:
            query = query.filter(Event.status == status)
        if visible_to is not None:
            query = query.filter(
                or_(
                    Event.status == EventStatus.APPROVED.value,
                    Event.organizer_id == visible_to,
                )
            )
        return query.order_by(Event.starts_at.asc()).all()

    @staticmethod
    def get_event(event_id: int, fresh: bool = False) -> Optional[Event]:
        if fresh:
            return db.session.get(Event, event_id, populate_existing=True)
        return db.session.get(Event, event_id)

    @staticmethod
    def create_event(attrs) -> Event:
        event = Event(**attrs)
        db.session.add(event)
        db.session.flush()
        return event

    @staticmethod
    def update_event(event: Event, attrs: dict) -> Event:
        for key, value in attrs.items():
            if hasattr(event, key):
                setattr(event, key, value)
        db.session.flush()
        return event

    @staticmethod
    def transition_status(event_id: int, from_status: str, to_status: str) -> bool:
        """Compare-and-set on status; False when the stored status was not ``from_status``."""
        result = db.session.execute(
            update(Event)
            .where(Event.id == event_id, Event.status == from_status)
            .values(status=to_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def reserve_slot(event_id: int) -> bool:
        """Take one capacity slot if the event is approved and not full.

        The check and the increment are a single conditional UPDATE so two
        concurrent callers can never both take the last slot.
        """
        result = db.session.execute(
            update(Event)
            .where(
                Event.id == event_id,
                Event.status == EventStatus.APPROVED.value,
                or_(Event.capacity.is_(None), Event.registered_count < Event.capacity),
            )
            .values(registered_count=Event.registered_count + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release_slot(event_id: int) -> bool:
        result = db.session.execute(
            update(Event)
            .where(Event.id == event_id, Event.registered_count > 0)
            .values(registered_count=Event.registered_count - 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release_slots(event_id: int, count: int) -> bool:
        """Give back ``count`` slots at once; False (no change) if fewer are held."""
        result = db.session.execute(
            update(Event)
            .where(Event.id == event_id, Event.registered_count >= count)
            .values(registered_count=Event.registered_count - count, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def delete_event(event: Event):
        db.session.delete(event)
        db.session.flush()
