from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from app.models.enums import AccountStatus
from app.repositories.user_repository import UserRepository
from app.exceptions import EventsError, UnauthorizedError
from app.routes.event_routes import error_response, unexpected_error
from app.services.user_service import UserService

admin_bp = Blueprint("admin", __name__)


def require_admin():
    user = UserRepository.find_by_id(int(get_jwt_identity()))
    if not user or not user.is_admin:
        raise UnauthorizedError("Admin privileges required")
    return user


@admin_bp.route("/admin/check", methods=["GET"])
@jwt_required()
def check_admin():
    """Check if current user is an admin"""
    try:
        require_admin()
    except UnauthorizedError:
        return jsonify({"is_admin": False}), 403
    return jsonify({"is_admin": True})


@admin_bp.route("/admin/users", methods=["GET"])
@jwt_required()
def get_all_users():
    """Get all users, optionally only those with a given account status (admin only)"""
    status = request.args.get("status")
    if status and status not in [s.value for s in AccountStatus]:
        return jsonify({"error": f"Invalid status value: {status}"}), 400

    try:
        require_admin()
    except EventsError as e:
        return error_response(e)

    return jsonify([user.to_dict() for user in UserService.get_users(status)])


@admin_bp.route("/admin/users/<int:user_id>/approve", methods=["POST"])
@jwt_required()
def approve_user(user_id):
    try:
        require_admin()
        user = UserService.approve_user(user_id)
        return jsonify({"message": "User approved", "user": user.to_dict()})
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("approve user", e)


@admin_bp.route("/admin/users/<int:user_id>/reject", methods=["POST"])
@jwt_required()
def reject_user(user_id):
    try:
        require_admin()
        UserService.reject_user(user_id)
        return jsonify({"message": "User rejected and removed"})
    except EventsError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("reject user", e)
