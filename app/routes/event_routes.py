from flask import Blueprint, Response, jsonify, request, send_file, stream_with_context
from flask_jwt_extended import jwt_required, get_jwt_identity, verify_jwt_in_request
from flask_cors import cross_origin
from flask import current_app
from app.extensions import db, limiter
from app.exceptions import EventsError, MissingFieldsError, UnauthorizedError
from app.models.enums import EventStatus
from app.repositories.user_repository import UserRepository
from app.services.event_service import EventService
from app.services.registration_service import RegistrationService
from app.services.attendance_service import AttendanceService
from app.services.report_service import ReportService, XLSX_MIMETYPE
from app.sse_utils import announcer
import io
import queue

event_bp = Blueprint("event", __name__)


def error_response(e: EventsError):
    body = {"error": str(e)}
    if isinstance(e, MissingFieldsError):
        body["missing_fields"] = e.fields
    return jsonify(body), e.status_code


def unexpected_error(action: str, e: Exception):
    db.session.rollback()
    current_app.logger.error(f"Unexpected error while trying to {action}: {str(e)}", exc_info=True)
    return jsonify({"error": f"Failed to {action}. Please try again."}), 500


def current_user_id() -> int:
    return int(get_jwt_identity())


@event_bp.route("/events", methods=["GET", "OPTIONS"])
@cross_origin(supports_credentials=True)
def get_all_events():
    if request.method == "OPTIONS":
        return "", 204

    # Anonymous callers are fine; a present but invalid token is still rejected
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()

    status = request.args.get("status")
    if status and status not in [s.value for s in EventStatus]:
        return jsonify({"error": f"Invalid status value: {status}"}), 400

    events = EventService.get_events(int(identity) if identity else None, status)
    return jsonify({"events": [event.to_dict() for event in events]}), 200


@event_bp.route("/events", methods=["POST", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def create_event():
    if request.method == "OPTIONS":
        return "", 204

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    try:
        event = EventService.create_event(data, current_user_id())
        return jsonify(event.to_dict()), 201
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("create event", e)


@event_bp.route("/events/stream", methods=["GET"])
def stream_events():
    """Server-sent stream of event and registration changes."""
    listener = announcer.listen()
    keepalive = current_app.config.get("SSE_KEEPALIVE_SECONDS", 15)

    def generate():
        try:
            while True:
                try:
                    yield listener.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
        finally:
            announcer.unlisten(listener)

    return Response(stream_with_context(generate()), mimetype="text/event-stream")


@event_bp.route("/events/<int:event_id>", methods=["GET", "OPTIONS"])
@cross_origin(supports_credentials=True)
def get_event(event_id):
    if request.method == "OPTIONS":
        return "", 204

    try:
        event = EventService.get_event(event_id)
    except EventsError as e:
        return error_response(e)
    return jsonify(event.to_dict()), 200


@event_bp.route("/events/<int:event_id>", methods=["PUT", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def update_event(event_id):
    if request.method == "OPTIONS":
        return "", 204

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    try:
        event = EventService.update_event(event_id, data, current_user_id())
        return jsonify({"message": "Event updated successfully", "event": event.to_dict()}), 200
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("update event", e)


@event_bp.route("/events/<int:event_id>", methods=["DELETE", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def delete_event(event_id):
    if request.method == "OPTIONS":
        return "", 204

    try:
        EventService.delete_event(event_id, current_user_id())
        return jsonify({"message": "Event deleted successfully"}), 200
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("delete event", e)


@event_bp.route("/events/<int:event_id>/status", methods=["PUT", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def update_event_status(event_id):
    """Moderation: admins approve or reject pending events; organizers or admins cancel."""
    if request.method == "OPTIONS":
        return "", 204

    data = request.get_json(silent=True) or {}
    new_status = data.get("status")
    user_id = current_user_id()

    try:
        if new_status in (EventStatus.APPROVED.value, EventStatus.REJECTED.value):
            user = UserRepository.find_by_id(user_id)
            if not user or not user.is_admin:
                raise UnauthorizedError("Admin privileges required")
            if new_status == EventStatus.APPROVED.value:
                event = EventService.approve_event(event_id)
                return jsonify({"message": "Event approved", "event": event.to_dict()}), 200
            EventService.reject_event(event_id)
            return jsonify({"message": "Event rejected and deleted"}), 200

        if new_status == EventStatus.CANCELLED.value:
            event = EventService.cancel_event(event_id, user_id)
            return jsonify({"message": "Event cancelled", "event": event.to_dict()}), 200

        return jsonify({"error": f"Invalid status value: {new_status}"}), 400
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("update event status", e)


@event_bp.route("/events/<int:event_id>/register", methods=["POST", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def register_for_event(event_id):
    if request.method == "OPTIONS":
        return "", 204

    data = request.get_json(silent=True) or {}
    try:
        registration = RegistrationService.register(event_id, current_user_id(), data)
        return (
            jsonify(
                {
                    "message": "Successfully registered for event",
                    "registration": registration.to_dict(),
                    "token": AttendanceService.issue_token(registration),
                }
            ),
            201,
        )
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("register", e)


@event_bp.route("/events/<int:event_id>/cancel-registration", methods=["POST", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def cancel_registration(event_id):
    if request.method == "OPTIONS":
        return "", 204

    try:
        RegistrationService.cancel(event_id, current_user_id())
        return jsonify({"message": "Registration cancelled"}), 200
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("cancel registration", e)


@event_bp.route("/events/<int:event_id>/registration", methods=["GET", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def get_my_registration(event_id):
    if request.method == "OPTIONS":
        return "", 204

    try:
        registration = RegistrationService.get_registration(event_id, current_user_id())
    except EventsError as e:
        return error_response(e)

    token = AttendanceService.issue_token(registration)
    return (
        jsonify(
            {
                "registration": registration.to_dict(),
                "token": token,
                "qrCode": f"data:image/png;base64,{AttendanceService.render_qr_base64(token)}",
            }
        ),
        200,
    )


@event_bp.route("/events/<int:event_id>/registration/qr", methods=["GET"])
@jwt_required()
def download_my_qr(event_id):
    user_id = current_user_id()
    try:
        registration = RegistrationService.get_registration(event_id, user_id)
    except EventsError as e:
        return error_response(e)

    png = AttendanceService.render_qr_png(AttendanceService.issue_token(registration))
    return send_file(
        io.BytesIO(png),
        mimetype="image/png",
        as_attachment=True,
        download_name=f"event-qr-{event_id}-{user_id}.png",
    )


@event_bp.route("/events/<int:event_id>/check-in", methods=["POST", "OPTIONS"])
@cross_origin(supports_credentials=True)
@limiter.limit("120 per minute")
@jwt_required()
def check_in(event_id):
    """Scan a registration QR code at the door (organizer or admin)."""
    if request.method == "OPTIONS":
        return "", 204

    data = request.get_json(silent=True)
    if not data or "token" not in data:
        return jsonify({"error": "QR token is required"}), 400

    try:
        EventService.authorize_manager(event_id, current_user_id())
        registration, checked_in_now = AttendanceService.verify(event_id, data["token"])
        message = (
            f"Attendance marked for Reg.No: {registration.reg_no}"
            if checked_in_now
            else f"Reg.No: {registration.reg_no} is already checked in"
        )
        return (
            jsonify(
                {
                    "message": message,
                    "alreadyCheckedIn": not checked_in_now,
                    "registration": registration.to_dict(),
                }
            ),
            200,
        )
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("check in", e)


@event_bp.route("/events/<int:event_id>/attendees", methods=["GET", "OPTIONS"])
@cross_origin(supports_credentials=True)
@jwt_required()
def get_event_attendees(event_id):
    if request.method == "OPTIONS":
        return "", 204

    try:
        EventService.authorize_manager(event_id, current_user_id())
        registrations = RegistrationService.list_for_event(event_id)
    except EventsError as e:
        return error_response(e)

    return (
        jsonify(
            {
                "registrations": [r.to_dict() for r in registrations],
                "attendedCount": RegistrationService.attended_count(event_id),
            }
        ),
        200,
    )


@event_bp.route("/events/<int:event_id>/export", methods=["GET"])
@jwt_required()
def export_event(event_id):
    kind = request.args.get("kind", "registrations")
    if kind not in ("registrations", "attendance"):
        return jsonify({"error": f"Invalid export kind: {kind}"}), 400

    try:
        EventService.authorize_manager(event_id, current_user_id())
        stream, filename = ReportService.export(event_id, kind)
    except EventsError as e:
        return error_response(e)

    return send_file(
        stream,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=filename,
    )
