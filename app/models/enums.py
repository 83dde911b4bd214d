from enum import Enum


class EventStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RegistrationStatus(Enum):
    REGISTERED = "registered"
    ATTENDED = "attended"
    CANCELLED = "cancelled"


class UserRole(Enum):
    STUDENT = "student"
    CLUB = "club"
    FACULTY = "faculty"
    ADMIN = "admin"


class AccountStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"


# Roles allowed to organize events; an event's organizer type is its creator's role.
ORGANIZER_ROLES = (UserRole.CLUB, UserRole.FACULTY, UserRole.ADMIN)

# Registrations that hold a capacity slot.
ACTIVE_REGISTRATION_STATUSES = (RegistrationStatus.REGISTERED, RegistrationStatus.ATTENDED)
