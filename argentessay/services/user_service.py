import logging

from argentessay.extensions import db
from argentessay.models.user import User, USER_STATUSES
from argentessay.utils.db_utils import commit
from argentessay.utils.exceptions import NotFound, ValidationFailed

logger = logging.getLogger(__name__)


def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def list_writers(status=None, search=None):
    q = User.query.filter(User.role == "writer")
    if status:
        if status not in USER_STATUSES:
            raise ValidationFailed(f"Unknown status '{status}'")
        q = q.filter(User.status == status)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            db.or_(
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
            )
        )
    return q.order_by(User.created_at.desc())


def suspend_user(user, admin_id, reason=None):
    if user.role == "admin":
        raise ValidationFailed("Admin accounts cannot be suspended")
    user.status = "suspended"
    commit()
    logger.info("User %s suspended by %s: %s", user.id, admin_id, reason or "no reason given")
    return user


def reinstate_user(user, admin_id):
    if user.status != "suspended":
        raise ValidationFailed("User is not suspended", code="INVALID_STATUS")
    application = user.application
    user.status = "approved" if application and application.status == "approved" else "pending"
    commit()
    logger.info("User %s reinstated by %s", user.id, admin_id)
    return user


def update_profile(user, data):
    for field in ("first_name", "last_name", "phone", "country", "bio",
                  "degree", "field_of_study", "university", "graduation_year",
                  "subject_expertise", "writing_experience"):
        if field in data:
            setattr(user, field, data[field])
    commit()
    return user
