import logging

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token
from itsdangerous import BadSignature
from datetime import timedelta

from argentessay.extensions import db
from argentessay.models.user import User
from argentessay.models.application import Application
from argentessay.services.email_service import (
    send_verification_email,
    send_password_reset_email,
)
from argentessay.utils.db_utils import commit
from argentessay.utils.email_tokens import (
    generate_password_reset_token,
    decode_password_reset_token,
)
from argentessay.utils.exceptions import ServiceError, Forbidden, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


def register_writer(email, password, first_name, last_name, phone=None, country=None):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise ServiceError(
            code="USER_EXISTS",
            message="User already exists with this email",
            details={"field": "email"}
        )

    user = User(
        email=email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        country=country,
        role="writer",
        registration_step=1,
    )
    user.set_password(password)
    code = user.generate_email_verification_code(current_app.config["EMAIL_VERIFY_EXPIRES"])

    db.session.add(user)
    db.session.add(Application(writer=user, current_step=1, status="incomplete"))
    commit()

    logger.info("Registered writer %s", user.id)
    send_verification_email(user, code)
    return user


def authenticate_user(email, password):
    user = User.query.filter_by(email=(email or "").strip().lower()).first()
    if not user or not user.check_password(password):
        raise ServiceError(code="AUTH_FAILED", message="Invalid credentials", status=401)

    if user.status == "suspended":
        raise Forbidden("Your account has been suspended. Please contact support.")

    user.update_last_login()
    commit()
    return user


def generate_tokens_for_user(user):
    claims = {"role": user.role}
    access = create_access_token(
        identity=user.id,
        additional_claims=claims,
        expires_delta=timedelta(seconds=current_app.config.get("ACCESS_EXPIRES", 86400))
    )
    refresh = create_refresh_token(
        identity=user.id,
        additional_claims=claims,
        expires_delta=timedelta(seconds=current_app.config.get("REFRESH_EXPIRES", 86400))
    )
    return access, refresh


def verify_email(email, code):
    user = User.query.filter_by(email=(email or "").strip().lower()).first()
    if not user or not user.verify_email_code(code):
        raise ValidationFailed("Invalid or expired verification token", code="INVALID_TOKEN")
    commit()
    return user


def resend_verification(user):
    if user.email_verified:
        raise ValidationFailed("Email already verified", code="ALREADY_VERIFIED")
    code = user.generate_email_verification_code(current_app.config["EMAIL_VERIFY_EXPIRES"])
    commit()
    send_verification_email(user, code)
    return user


def forgot_password(email):
    user = User.query.filter_by(email=(email or "").strip().lower()).first()
    if not user:
        raise NotFound("No user found with this email")

    nonce = user.generate_password_reset_nonce(current_app.config["PASSWORD_RESET_EXPIRES"])
    commit()

    token = generate_password_reset_token(user.id, nonce)
    send_password_reset_email(user, token)
    return token


def reset_password(token, password):
    invalid = ValidationFailed("Invalid or expired reset token", code="INVALID_TOKEN")
    try:
        user_id, nonce = decode_password_reset_token(token)
    except BadSignature:
        raise invalid

    user = db.session.get(User, user_id)
    if not user or not user.consume_password_reset_nonce(nonce):
        raise invalid

    user.set_password(password)
    commit()
    logger.info("Password reset for %s", user.id)
    return user


def update_password(user, current_password, new_password):
    if not user.check_password(current_password):
        raise ServiceError(code="AUTH_FAILED", message="Current password is incorrect", status=401)
    user.set_password(new_password)
    commit()
    return user
