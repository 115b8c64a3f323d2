from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity, create_access_token

from argentessay.extensions import db
from argentessay.models.user import User
from argentessay.schemas.user_schema import (
    RegisterSchema,
    LoginSchema,
    VerifyEmailSchema,
    ForgotPasswordSchema,
    ResetPasswordSchema,
    UpdatePasswordSchema,
)
from argentessay.services.auth_service import (
    register_writer,
    authenticate_user,
    generate_tokens_for_user,
    verify_email as verify_email_code,
    resend_verification as resend_verification_code,
    forgot_password as request_password_reset,
    reset_password as apply_password_reset,
    update_password as change_password,
)
from argentessay.services.earning_service import get_earnings_stats
from argentessay.utils.auth_utils import current_user
from argentessay.utils.response_formatter import success_response, error_response

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _session_user(user):
    data = {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "email_verified": user.email_verified,
        "registration_step": user.registration_step,
        "application_status": None,
    }
    if user.role == "writer" and user.application:
        data["application_status"] = user.application.summary()
    return data


@bp.route("/register", methods=["POST"])
def register():
    data = RegisterSchema().load(request.get_json() or {})
    user = register_writer(**data)
    access, refresh = generate_tokens_for_user(user)
    return success_response({
        "user": _session_user(user),
        "access_token": access,
        "refresh_token": refresh,
    }, message="Registration successful. Please verify your email.", status=201)


@bp.route("/login", methods=["POST"])
def login():
    data = LoginSchema().load(request.get_json() or {})
    user = authenticate_user(data["email"], data["password"])
    access, refresh = generate_tokens_for_user(user)
    return success_response({
        "user": _session_user(user),
        "access_token": access,
        "refresh_token": refresh,
    }, message="Login successful")


@bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    user = db.session.get(User, get_jwt_identity())
    if not user:
        return error_response("NOT_FOUND", "User not found", status=404)
    access = create_access_token(identity=user.id, additional_claims={"role": user.role})
    return success_response({"access_token": access})


@bp.route("/verify-email", methods=["POST"])
def verify_email():
    data = VerifyEmailSchema().load(request.get_json() or {})
    verify_email_code(data["email"], data["token"])
    return success_response({"verified": True}, message="Email verified successfully")


@bp.route("/resend-verification", methods=["POST"])
@jwt_required()
def resend_verification():
    resend_verification_code(current_user())
    return success_response(message="Verification email sent")


@bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = ForgotPasswordSchema().load(request.get_json() or {})
    request_password_reset(data["email"])
    return success_response(message="Password reset email sent")


@bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = ResetPasswordSchema().load(request.get_json() or {})
    apply_password_reset(data["token"], data["password"])
    return success_response(message="Password reset successful")


@bp.route("/update-password", methods=["PUT"])
@jwt_required()
def update_password():
    data = UpdatePasswordSchema().load(request.get_json() or {})
    change_password(current_user(), data["current_password"], data["new_password"])
    return success_response(message="Password updated successfully")


@bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user = current_user()
    payload = {"user": user.to_dict()}
    if user.role == "writer":
        if user.application:
            payload["application"] = user.application.summary()
        payload["earnings"] = get_earnings_stats(user.id)
    return success_response(payload)


@bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    # tokens are stateless; the client discards them
    return success_response(message="Logged out successfully")
