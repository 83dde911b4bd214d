from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from app import create_app
from app.extensions import db
from app.models import Event, User
from app.models.enums import AccountStatus, EventStatus, UserRole
from app.utils.dates import utcnow

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "JWT_SECRET_KEY": "test-jwt-secret",
    "CHECKIN_TOKEN_SECRET": "test-checkin-secret",
    "RATELIMIT_ENABLED": False,
    "CANCEL_CASCADES_REGISTRATIONS": True,
    "REQUIRE_SIGNED_TOKENS": False,
}

PROFILE = {
    "regNo": "R1",
    "name": "Asha Rao",
    "branch": "CSE",
    "department": "Engineering",
    "phone": "9876543210",
}


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(role=UserRole.STUDENT.value, status=AccountStatus.APPROVED.value, name=None, password="secret"):
        counter["n"] += 1
        user = User(
            email=f"{role}{counter['n']}@campus.edu",
            password=generate_password_hash(password),
            name=name or f"{role.title()} {counter['n']}",
            role=role,
            status=status,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_event(app, make_user):
    def _make_event(organizer=None, status=EventStatus.APPROVED.value, capacity=None,
                    starts_in=timedelta(days=1), duration=timedelta(hours=2), title="Hack Night"):
        organizer = organizer or make_user(role=UserRole.CLUB.value)
        starts_at = utcnow() + starts_in
        event = Event(
            title=title,
            description="An evening of building things",
            location="Main Auditorium",
            starts_at=starts_at,
            ends_at=starts_at + duration,
            organizer_id=organizer.id,
            organizer_name=organizer.name,
            organizer_type=organizer.role,
            status=status,
            capacity=capacity,
            registered_count=0,
            tags=["tech"],
        )
        db.session.add(event)
        db.session.commit()
        return event

    return _make_event


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        token = create_access_token(identity=str(user.id))
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


def profile_for(reg_no, **overrides):
    profile = dict(PROFILE, regNo=reg_no)
    profile.update(overrides)
    return profile


@pytest.fixture
def profile():
    return profile_for
