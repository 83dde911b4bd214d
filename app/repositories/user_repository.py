from typing import List, Optional
from app.extensions import db
from app.models import User


class UserRepository:
    @staticmethod
    def sign_up(user):
        db.session.add(user)
        db.session.commit()
        return user

    @staticmethod
    def find_by_email(email) -> Optional[User]:
        return User.query.filter_by(email=email).first()

    @staticmethod
    def find_by_id(user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    @staticmethod
    def find_all(status: str = None) -> List[User]:
        query = User.query
        if status:
            query = query.filter_by(status=status)
        return query.order_by(User.created_at.asc()).all()

    @staticmethod
    def delete(user: User):
        db.session.delete(user)
        db.session.flush()
