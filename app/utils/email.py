from flask import current_app
from flask_mail import Message, Mail
from threading import Thread

mail = Mail()


def send_async_email(app, msg):
    with app.app_context():
        try:
            mail.send(msg)
        except Exception as e:
            app.logger.error(f"Failed to send email: {e}")


def _dispatch(recipient: str, subject: str, body: str):
    app = current_app._get_current_object()

    # If in testing mode, log the email instead of sending it
    if app.testing:
        app.logger.info("--- MOCK EMAIL ---")
        app.logger.info(f"To: {recipient}")
        app.logger.info(f"Subject: {subject}")
        app.logger.info(f"Body: {body}")
        app.logger.info("--- END MOCK EMAIL ---")
        return

    msg = Message(
        subject,
        sender=(app.config.get("MAIL_SENDER_NAME"), app.config.get("MAIL_USERNAME")),
        recipients=[recipient],
    )
    msg.body = body

    Thread(target=send_async_email, args=(app, msg)).start()


def send_status_email(address: str, display_name: str, rejected: bool):
    """Tell an account holder whether an admin approved or rejected their account."""
    subject = (
        "Your Account Has Been Rejected"
        if rejected
        else "Your Account Has Been Approved"
    )
    if rejected:
        body = (
            f"Hello {display_name},\n\n"
            "We regret to inform you that your account request has been rejected by the admin.\n\n"
            "Thank you!"
        )
    else:
        body = (
            f"Hello {display_name},\n\n"
            "Your account has been approved by the admin. You can now log in and use the portal.\n\n"
            "Thank you!"
        )
    _dispatch(address, subject, body)


def send_event_status_email(address: str, display_name: str, event_title: str, rejected: bool):
    """Tell an organizer the moderation outcome for their event."""
    if rejected:
        subject = f"Event Rejected - {event_title}"
        body = (
            f"Hello {display_name},\n\n"
            f'Your event "{event_title}" was rejected by the admin and has been removed.\n\n'
            "Thank you!"
        )
    else:
        subject = f"Event Approved - {event_title}"
        body = (
            f"Hello {display_name},\n\n"
            f'Your event "{event_title}" has been approved and is now open for registration.\n\n'
            f"View it at {current_app.config.get('CLIENT_URL')}/events\n\n"
            "Thank you!"
        )
    _dispatch(address, subject, body)


def send_event_cancelled_email(address: str, display_name: str, event_title: str):
    """Tell a registered attendee that the event they signed up for was cancelled."""
    body = (
        f"Hello {display_name},\n\n"
        f'The event "{event_title}" you registered for has been cancelled by its organizer. '
        "Your registration has been removed.\n\n"
        "Thank you!"
    )
    _dispatch(address, f"Event Cancelled - {event_title}", body)
