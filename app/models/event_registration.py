from app.extensions import db
from app.utils.dates import isoformat, utcnow
from .enums import RegistrationStatus


class EventRegistration(db.Model):
    __tablename__ = "event_registrations"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status = db.Column(
        db.String(20), nullable=False, default=RegistrationStatus.REGISTERED.value
    )
    registered_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    checked_in_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    # Profile captured at registration time, never edited afterwards
    reg_no = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    branch = db.Column(db.String(100), nullable=False)
    department = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20), nullable=False)

    # Cancelled registrations are deleted, so one row per pair is one active registration
    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id", name="uq_event_registration_user"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "eventId": str(self.event_id),
            "userId": str(self.user_id),
            "status": self.status,
            "registeredAt": isoformat(self.registered_at),
            "checkedInAt": isoformat(self.checked_in_at),
            "regNo": self.reg_no,
            "name": self.name,
            "branch": self.branch,
            "department": self.department,
            "phone": self.phone,
        }

    def __repr__(self):
        return (
            f"EventRegistration("
            f"id={self.id}, "
            f"event_id={self.event_id}, "
            f"user_id={self.user_id}, "
            f"status={self.status}, "
            f"reg_no={self.reg_no}, "
            f"registered_at={self.registered_at}, "
            f"checked_in_at={self.checked_in_at}"
            f")"
        )
