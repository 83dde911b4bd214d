from flask import Blueprint, current_app, request, jsonify, make_response
from app.services import UserService
from app.repositories import UserRepository
from flask_jwt_extended import jwt_required, get_jwt_identity
from app.extensions import limiter

user_bp = Blueprint("user", __name__)


@user_bp.route("/signup", methods=["POST"])
def sign_up():
    try:
        user_data = request.get_json(silent=True)
        if not user_data:
            return jsonify({"error": "No data provided"}), 400

        required_fields = ["email", "password", "name"]
        missing_fields = [field for field in required_fields if not user_data.get(field)]

        if missing_fields:
            return (
                jsonify(
                    {
                        "error": "Missing required fields",
                        "missing_fields": missing_fields,
                    }
                ),
                400,
            )

        result = UserService.sign_up(user_data)
        return make_response(jsonify(result), 201)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.error(f"Signup error: {str(e)}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred"}), 500


@user_bp.route("/signin", methods=["POST"])
@limiter.limit("10 per minute")
def sign_in():
    try:
        user_data = request.get_json(silent=True)
        if not user_data:
            return jsonify({"error": "No data provided"}), 400

        required_fields = ["email", "password"]
        missing_fields = [field for field in required_fields if field not in user_data]

        if missing_fields:
            return (
                jsonify(
                    {
                        "error": "Missing required fields",
                        "missing_fields": missing_fields,
                    }
                ),
                400,
            )

        result = UserService.sign_in(user_data["email"], user_data["password"])
        return make_response(jsonify(result), 200)
    except ValueError as e:
        return jsonify({"error": str(e)}), 401
    except Exception as e:
        current_app.logger.error(f"Login error: {str(e)}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred"}), 500


@user_bp.route("/validate-token", methods=["GET"])
@jwt_required()
def validate_token():
    current_user = UserRepository.find_by_id(int(get_jwt_identity()))
    if not current_user:
        return jsonify({"error": "User not found"}), 404

    return jsonify({"valid": True, "user": current_user.to_dict()})
