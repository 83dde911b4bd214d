from app.models import User
from app.models.enums import AccountStatus, UserRole
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token
from app.exceptions import NotFoundError, InvalidTransitionError
from app.repositories import UserRepository
from app.utils.email import send_status_email
from app.utils.transactions import after_commit, transactional
from datetime import timedelta
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Organizer accounts wait for an admin before they can sign in
MODERATED_ROLES = (UserRole.CLUB.value, UserRole.FACULTY.value)


class UserService:
    @staticmethod
    def sign_up(user_data):
        existing_user = UserRepository.find_by_email(user_data["email"])
        if existing_user:
            logger.warning(f"Signup attempt with existing email: {user_data['email']}")
            raise ValueError("User already exists")

        role = str(user_data.get("role", UserRole.STUDENT.value)).lower()
        # Admins are provisioned out of band (create_admin.py), never self-registered
        if role not in MODERATED_ROLES + (UserRole.STUDENT.value,):
            logger.warning(f"Invalid role value: {role}")
            raise ValueError("Invalid role. Must be one of student, club, faculty")

        status = (
            AccountStatus.PENDING.value
            if role in MODERATED_ROLES
            else AccountStatus.APPROVED.value
        )

        user = User(
            email=user_data["email"],
            password=generate_password_hash(user_data["password"]),
            name=user_data["name"],
            role=role,
            status=status,
            department=user_data.get("department"),
            year=user_data.get("year"),
        )
        created_user = UserRepository.sign_up(user)
        logger.info(f"User created successfully: {created_user.email} ({role}, {status})")

        result = {"user": created_user.to_dict()}
        # Only sign in right away if no approval is needed
        if created_user.is_approved:
            result["token"] = create_access_token(
                identity=str(created_user.id), expires_delta=timedelta(days=1)
            )
        return result

    @staticmethod
    def sign_in(email, password):
        user = UserRepository.find_by_email(email)
        if not user or not check_password_hash(user.password, password):
            logger.warning(f"Failed login attempt for: {email}")
            raise ValueError("Invalid email or password")

        if not user.is_approved:
            logger.warning(f"Login attempt by unapproved account: {email}")
            raise ValueError("Your account is awaiting admin approval")

        access_token = create_access_token(
            identity=str(user.id), expires_delta=timedelta(days=1)
        )
        logger.info(f"User logged in successfully: {email}")
        return {"token": access_token, "user": user.to_dict()}

    @staticmethod
    def get_users(status: str = None):
        return UserRepository.find_all(status=status)

    @staticmethod
    def _pending_user(user_id: int) -> User:
        user = UserRepository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.status != AccountStatus.PENDING.value:
            raise InvalidTransitionError(f"Account is already {user.status}")
        return user

    @staticmethod
    @transactional
    def approve_user(user_id: int) -> User:
        user = UserService._pending_user(user_id)
        user.status = AccountStatus.APPROVED.value
        logger.info(f"Account {user.email} approved")
        after_commit(send_status_email, user.email, user.name, False)
        return user

    @staticmethod
    @transactional
    def reject_user(user_id: int):
        """Rejected accounts are deleted, freeing the email for a new request."""
        user = UserService._pending_user(user_id)
        email, name = user.email, user.name
        UserRepository.delete(user)
        logger.info(f"Account {email} rejected and deleted")
        after_commit(send_status_email, email, name, True)
