from app.extensions import db
from app.utils.dates import as_utc, isoformat, utcnow
from .enums import EventStatus


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(255), nullable=False)
    starts_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    ends_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    organizer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    organizer_name = db.Column(db.String(255), nullable=True)
    organizer_type = db.Column(db.String(20), nullable=False)
    status = db.Column(
        db.String(20),
        nullable=False,
        default=EventStatus.PENDING.value,
    )
    capacity = db.Column(db.Integer, nullable=True)
    registered_count = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(500), nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        db.CheckConstraint("registered_count >= 0", name="ck_events_registered_count_nonneg"),
        db.CheckConstraint(
            "capacity IS NULL OR registered_count <= capacity",
            name="ck_events_registered_count_capacity",
        ),
    )

    def effective_status(self, now=None) -> str:
        """Stored status, except approved events past their end read as completed."""
        now = now or utcnow()
        if self.status == EventStatus.APPROVED.value and as_utc(self.ends_at) < now:
            return EventStatus.COMPLETED.value
        return self.status

    def to_dict(self):
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "startDate": isoformat(self.starts_at),
            "endDate": isoformat(self.ends_at),
            "organizerId": str(self.organizer_id),
            "organizerName": self.organizer_name,
            "organizerType": self.organizer_type,
            "status": self.effective_status(),
            "capacity": self.capacity,
            "registeredCount": self.registered_count,
            "image": self.image,
            "tags": list(self.tags or []),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):
        return (
            f"Event("
            f"id={self.id}, "
            f"title={self.title!r}, "
            f"status={self.status}, "
            f"registered_count={self.registered_count}, "
            f"capacity={self.capacity}"
            f")"
        )
