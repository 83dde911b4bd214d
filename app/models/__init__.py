from app.models.event import Event
from app.models.event_registration import EventRegistration
from app.models.user import User
from app.models.enums import (
    AccountStatus,
    EventStatus,
    RegistrationStatus,
    UserRole,
)
