from typing import List, Optional
from sqlalchemy import delete, update
from app.extensions import db
from app.models import EventRegistration
from app.models.enums import RegistrationStatus


class EventRegistrationRepository:
    @staticmethod
    def find_by_event_and_user(event_id: int, user_id: int, fresh: bool = False) -> Optional[EventRegistration]:
        """Find a registration by event_id and user_id"""
        query = EventRegistration.query.filter_by(event_id=event_id, user_id=user_id)
        if fresh:
            query = query.populate_existing()
        return query.first()

    @staticmethod
    def find_by_event_id(event_id: int, statuses: List[RegistrationStatus] = None) -> List[EventRegistration]:
        query = EventRegistration.query.filter(EventRegistration.event_id == event_id)
        if statuses:
            query = query.filter(EventRegistration.status.in_([s.value for s in statuses]))
        return query.order_by(EventRegistration.registered_at.asc(), EventRegistration.id.asc()).all()

    @staticmethod
    def count_by_event_id_and_status(event_id: int, statuses: List[RegistrationStatus]) -> int:
        """Count registrations for an event with specific statuses."""
        return (
            EventRegistration.query.filter(EventRegistration.event_id == event_id)
            .filter(EventRegistration.status.in_([s.value for s in statuses]))
            .count()
        )

    @staticmethod
    def add(attrs) -> EventRegistration:
        registration = EventRegistration(**attrs)
        db.session.add(registration)
        db.session.flush()
        return registration

    @staticmethod
    def delete(registration: EventRegistration):
        db.session.delete(registration)
        db.session.flush()

    @staticmethod
    def delete_by_event_id(event_id: int, statuses: List[RegistrationStatus] = None) -> int:
        """Deletes registrations for a given event_id, optionally only those in ``statuses``."""
        stmt = delete(EventRegistration).where(EventRegistration.event_id == event_id)
        if statuses:
            stmt = stmt.where(EventRegistration.status.in_([s.value for s in statuses]))
        result = db.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount

    @staticmethod
    def mark_attended(registration_id: int, checked_in_at) -> bool:
        """Move registered -> attended; False when the row was not in ``registered``."""
        result = db.session.execute(
            update(EventRegistration)
            .where(
                EventRegistration.id == registration_id,
                EventRegistration.status == RegistrationStatus.REGISTERED.value,
            )
            .values(status=RegistrationStatus.ATTENDED.value, checked_in_at=checked_in_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
