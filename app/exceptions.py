class EventsError(Exception):
    """Base for business-rule failures. Nothing is applied when one is raised."""

    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class UnauthorizedError(EventsError):
    status_code = 403
    default_message = "You are not authorized to perform this action"


class MissingFieldsError(EventsError):
    def __init__(self, fields):
        super().__init__("Missing required fields")
        self.fields = fields


class ValidationError(EventsError):
    default_message = "Invalid field value"


class NotFoundError(EventsError):
    status_code = 404
    default_message = "Not found"


class InvalidTransitionError(EventsError):
    status_code = 409
    default_message = "Event cannot make this transition from its current status"


class IneligibleError(EventsError):
    status_code = 409
    default_message = "Event is not open for registration"


class CapacityExceededError(EventsError):
    status_code = 409
    default_message = "Event is at capacity"


class DuplicateRegistrationError(EventsError):
    status_code = 409
    default_message = "You are already registered for this event"


class MalformedTokenError(EventsError):
    default_message = "Invalid QR code"


class EventMismatchError(EventsError):
    default_message = "QR code does not match this event"


class UnknownRegistrationError(EventsError):
    status_code = 404
    default_message = "Registration not found"
