from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate(compare_type=True, render_as_batch=True)
jwt = JWTManager()

# Per-client ceilings; sign-in and check-in carry tighter limits on their routes
limiter = Limiter(
    get_remote_address,
    default_limits=["150 per minute", "10000 per hour", "100000 per day"],
    strategy="fixed-window",
)
