"""
Authentication glue tests: registration, login, email verification and
password reset.
"""

import pytest

from argentessay.services import auth_service as svc
from argentessay.utils.exceptions import Forbidden, NotFound, ServiceError, ValidationFailed


def _register(**overrides):
    data = {
        "email": "  New.Writer@Example.com ",
        "password": "secret123",
        "first_name": "New",
        "last_name": "Writer",
        "phone": "+254711111111",
        "country": "Kenya",
    }
    data.update(overrides)
    return svc.register_writer(**data)


class TestRegister:

    def test_register_creates_application(self, db_session):
        user = _register()
        assert user.email == "new.writer@example.com"
        assert user.role == "writer"
        assert user.status == "pending"
        assert user.application.current_step == 1
        assert user.application.status == "incomplete"
        assert user.email_verification_token is not None

    def test_duplicate_email(self, db_session):
        _register()
        with pytest.raises(ServiceError) as exc:
            _register(email="new.writer@example.com")
        assert exc.value.code == "USER_EXISTS"


class TestLogin:

    def test_login(self, writer):
        user = svc.authenticate_user("JANE@writers.test", "Password123!")
        assert user.id == writer.id
        assert user.last_login is not None

    def test_wrong_password(self, writer):
        with pytest.raises(ServiceError) as exc:
            svc.authenticate_user(writer.email, "nope")
        assert exc.value.status == 401

    def test_suspended(self, db_session, writer):
        writer.status = "suspended"
        db_session.commit()
        with pytest.raises(Forbidden):
            svc.authenticate_user(writer.email, "Password123!")

    def test_tokens_carry_role(self, app, writer):
        from flask_jwt_extended import decode_token

        access, refresh = svc.generate_tokens_for_user(writer)
        claims = decode_token(access)
        assert claims["sub"] == writer.id
        assert claims["role"] == "writer"
        assert decode_token(refresh)["type"] == "refresh"


class TestEmailVerification:

    def test_verify_with_code(self, db_session, writer):
        code = writer.generate_email_verification_code()
        db_session.commit()
        svc.verify_email(writer.email, code)
        assert writer.email_verified is True
        assert writer.email_verification_token is None

    def test_wrong_code(self, db_session, writer):
        code = writer.generate_email_verification_code()
        db_session.commit()
        wrong = "111111" if code != "111111" else "222222"
        with pytest.raises(ValidationFailed):
            svc.verify_email(writer.email, wrong)
        assert writer.email_verified is False

    def test_resend_when_verified(self, db_session, writer):
        writer.email_verified = True
        db_session.commit()
        with pytest.raises(ValidationFailed) as exc:
            svc.resend_verification(writer)
        assert exc.value.code == "ALREADY_VERIFIED"


class TestPasswordReset:

    def test_reset_flow(self, writer):
        token = svc.forgot_password(writer.email)
        svc.reset_password(token, "brand-new-pass")
        assert writer.check_password("brand-new-pass")
        assert writer.reset_password_token is None

    def test_token_is_single_use(self, writer):
        token = svc.forgot_password(writer.email)
        svc.reset_password(token, "brand-new-pass")
        with pytest.raises(ValidationFailed):
            svc.reset_password(token, "another-pass")

    def test_older_token_is_invalidated(self, writer):
        old = svc.forgot_password(writer.email)
        svc.forgot_password(writer.email)
        with pytest.raises(ValidationFailed):
            svc.reset_password(old, "brand-new-pass")

    def test_garbage_token(self, writer):
        with pytest.raises(ValidationFailed):
            svc.reset_password("not-a-token", "brand-new-pass")

    def test_unknown_email(self, db_session):
        with pytest.raises(NotFound):
            svc.forgot_password("ghost@nowhere.test")

    def test_update_password(self, writer):
        svc.update_password(writer, "Password123!", "changed-pass")
        assert writer.check_password("changed-pass")
        with pytest.raises(ServiceError):
            svc.update_password(writer, "wrong", "again-pass")
