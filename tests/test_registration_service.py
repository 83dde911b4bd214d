from datetime import timedelta

import pytest
from sqlalchemy import text

from app.exceptions import (
    CapacityExceededError,
    DuplicateRegistrationError,
    IneligibleError,
    MissingFieldsError,
    NotFoundError,
)
from app.extensions import db
from app.models import EventRegistration
from app.models.enums import EventStatus, RegistrationStatus
from app.repositories.event_registration_repository import EventRegistrationRepository
from app.repositories.event_repository import EventRepository
from app.services.registration_service import RegistrationService


def registered_count(event_id):
    return EventRepository.get_event(event_id, fresh=True).registered_count


def active_rows(event_id):
    return EventRegistrationRepository.count_by_event_id_and_status(
        event_id, [RegistrationStatus.REGISTERED, RegistrationStatus.ATTENDED]
    )


def test_register_creates_record(make_event, make_user, profile):
    event = make_event(capacity=10)
    user = make_user()

    registration = RegistrationService.register(event.id, user.id, profile("21CS001"))

    assert registration.status == RegistrationStatus.REGISTERED.value
    assert registration.reg_no == "21CS001"
    assert registration.registered_at is not None
    assert registration.checked_in_at is None
    assert registered_count(event.id) == 1


def test_capacity_scenario(make_event, make_user, profile):
    event = make_event(capacity=2)
    a, b, c = make_user(), make_user(), make_user()

    RegistrationService.register(event.id, a.id, profile("A"))
    assert registered_count(event.id) == 1
    RegistrationService.register(event.id, b.id, profile("B"))
    assert registered_count(event.id) == 2

    with pytest.raises(CapacityExceededError):
        RegistrationService.register(event.id, c.id, profile("C"))
    assert registered_count(event.id) == 2
    assert EventRegistrationRepository.find_by_event_and_user(event.id, c.id) is None

    RegistrationService.cancel(event.id, a.id)
    assert registered_count(event.id) == 1

    RegistrationService.register(event.id, c.id, profile("C"))
    assert registered_count(event.id) == 2
    assert active_rows(event.id) == 2


def test_unlimited_capacity(make_event, make_user, profile):
    event = make_event(capacity=None)
    for n in range(25):
        RegistrationService.register(event.id, make_user().id, profile(f"R{n}"))
    assert registered_count(event.id) == 25


def test_duplicate_registration_rejected(make_event, make_user, profile):
    event = make_event(capacity=5)
    user = make_user()
    RegistrationService.register(event.id, user.id, profile("R1"))

    with pytest.raises(DuplicateRegistrationError):
        RegistrationService.register(event.id, user.id, profile("R1"))
    assert registered_count(event.id) == 1


def test_duplicate_wins_over_full(make_event, make_user, profile):
    event = make_event(capacity=1)
    user = make_user()
    RegistrationService.register(event.id, user.id, profile("R1"))

    with pytest.raises(DuplicateRegistrationError):
        RegistrationService.register(event.id, user.id, profile("R1"))


def test_register_after_cancel_succeeds(make_event, make_user, profile):
    event = make_event(capacity=1)
    user = make_user()
    RegistrationService.register(event.id, user.id, profile("R1"))
    RegistrationService.cancel(event.id, user.id)

    registration = RegistrationService.register(event.id, user.id, profile("R1"))

    assert registration.status == RegistrationStatus.REGISTERED.value
    assert registered_count(event.id) == 1


@pytest.mark.parametrize(
    "status", [EventStatus.PENDING.value, EventStatus.CANCELLED.value]
)
def test_register_requires_approved_event(make_event, make_user, profile, status):
    event = make_event(status=status)
    with pytest.raises(IneligibleError):
        RegistrationService.register(event.id, make_user().id, profile("R1"))
    assert registered_count(event.id) == 0


def test_register_closed_after_end(make_event, make_user, profile):
    event = make_event(starts_in=timedelta(hours=-3), duration=timedelta(hours=1))
    with pytest.raises(IneligibleError):
        RegistrationService.register(event.id, make_user().id, profile("R1"))


def test_register_allowed_while_in_progress(make_event, make_user, profile):
    event = make_event(starts_in=timedelta(minutes=-30), duration=timedelta(hours=2))
    registration = RegistrationService.register(event.id, make_user().id, profile("R1"))
    assert registration.status == RegistrationStatus.REGISTERED.value


def test_register_unknown_event(make_user, profile):
    with pytest.raises(NotFoundError):
        RegistrationService.register(999, make_user().id, profile("R1"))


def test_register_requires_full_profile(make_event, make_user, profile):
    event = make_event()
    with pytest.raises(MissingFieldsError) as exc:
        RegistrationService.register(event.id, make_user().id, profile("  ", phone=""))
    assert set(exc.value.fields) == {"regNo", "phone"}
    assert registered_count(event.id) == 0


def test_capacity_decided_by_conditional_write(make_event, make_user, profile):
    event = make_event(capacity=1)
    # Load the event, then let "another writer" fill the last slot behind the
    # session's back; the identity map still shows registered_count == 0.
    assert EventRepository.get_event(event.id).registered_count == 0
    db.session.execute(
        text("UPDATE events SET registered_count = 1 WHERE id = :id"), {"id": event.id}
    )
    assert EventRepository.get_event(event.id).registered_count == 0

    with pytest.raises(CapacityExceededError):
        RegistrationService.register(event.id, make_user().id, profile("R1"))


def test_concurrent_duplicate_hits_unique_constraint(monkeypatch, make_event, make_user, profile):
    event = make_event(capacity=5)
    user = make_user()
    RegistrationService.register(event.id, user.id, profile("R1"))

    # Simulate the other request inserting between our existence check and our insert
    monkeypatch.setattr(
        EventRegistrationRepository,
        "find_by_event_and_user",
        staticmethod(lambda event_id, user_id, fresh=False: None),
    )
    with pytest.raises(DuplicateRegistrationError):
        RegistrationService.register(event.id, user.id, profile("R1"))

    monkeypatch.undo()
    # The slot taken before the failed insert was rolled back with it
    assert registered_count(event.id) == 1
    assert db.session.query(EventRegistration).filter_by(event_id=event.id).count() == 1


def test_cancel_without_registration(make_event, make_user):
    event = make_event()
    with pytest.raises(NotFoundError):
        RegistrationService.cancel(event.id, make_user().id)


def test_cancel_deletes_record(make_event, make_user, profile):
    event = make_event(capacity=3)
    user = make_user()
    RegistrationService.register(event.id, user.id, profile("R1"))

    RegistrationService.cancel(event.id, user.id)

    assert EventRegistrationRepository.find_by_event_and_user(event.id, user.id) is None
    assert registered_count(event.id) == 0


def test_cancel_floors_count_at_zero(make_event, make_user, profile):
    event = make_event(capacity=3)
    user = make_user()
    RegistrationService.register(event.id, user.id, profile("R1"))
    db.session.execute(
        text("UPDATE events SET registered_count = 0 WHERE id = :id"), {"id": event.id}
    )
    db.session.commit()

    RegistrationService.cancel(event.id, user.id)

    assert registered_count(event.id) == 0


def test_list_for_event_returns_every_status(make_event, make_user, profile):
    event = make_event()
    first = RegistrationService.register(event.id, make_user().id, profile("R1"))
    RegistrationService.register(event.id, make_user().id, profile("R2"))
    EventRegistrationRepository.mark_attended(first.id, first.registered_at)
    db.session.commit()

    registrations = RegistrationService.list_for_event(event.id)

    assert [r.reg_no for r in registrations] == ["R1", "R2"]
    assert {r.status for r in registrations} == {"attended", "registered"}


def test_list_for_missing_event(app):
    with pytest.raises(NotFoundError):
        RegistrationService.list_for_event(12345)
