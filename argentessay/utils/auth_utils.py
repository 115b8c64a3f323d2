from flask_jwt_extended import get_jwt, get_jwt_identity

from argentessay.extensions import bcrypt, db
from argentessay.utils.exceptions import Forbidden, NotFound


def hash_password(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")

def check_password(password, hashed_password):
    if not hashed_password:
        return False
    return bcrypt.check_password_hash(hashed_password, password)


def current_user():
    """Load the authenticated actor from the JWT identity."""
    from argentessay.models.user import User

    uid = get_jwt_identity()
    user = db.session.get(User, uid) if uid else None
    if not user:
        raise NotFound("User not found")
    return user


def is_admin():
    return (get_jwt() or {}).get("role") == "admin"


def require_admin():
    user = current_user()
    if user.role != "admin" or not is_admin():
        raise Forbidden("Admin privileges required")
    return user
