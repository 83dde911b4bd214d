import argparse
import os
from app import create_app
from app.models import User
from app.models.enums import AccountStatus, UserRole
from app.extensions import db
from werkzeug.security import generate_password_hash


def create_admin_user(email, password, name="Campus Administration", update=False):
    app = create_app()
    with app.app_context():
        admin = User.query.filter_by(email=email).first()
        if not admin:
            admin = User(
                email=email,
                password=generate_password_hash(password),
                name=name,
                role=UserRole.ADMIN.value,
                status=AccountStatus.APPROVED.value,
            )
            db.session.add(admin)
            db.session.commit()
            print("Admin user created successfully!")
        elif update:
            admin.password = generate_password_hash(password)
            admin.role = UserRole.ADMIN.value
            admin.status = AccountStatus.APPROVED.value
            db.session.commit()
            print("Admin user updated successfully!")
        else:
            print("Admin user already exists!")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Create or reset the admin account")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@example.com"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD", "admin123"))
    parser.add_argument("--update", action="store_true", help="reset password and role if the account exists")
    args = parser.parse_args()
    create_admin_user(args.email, args.password, update=args.update)
