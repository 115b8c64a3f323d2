from itsdangerous import URLSafeTimedSerializer
from flask import current_app

def _serializer():
    return URLSafeTimedSerializer(current_app.config["JWT_SECRET_KEY"])

def generate_password_reset_token(user_id: str, nonce: str) -> str:
    return _serializer().dumps({"user_id": user_id, "nonce": nonce}, salt="password-reset")

def decode_password_reset_token(token: str) -> tuple[str, str]:
    data = _serializer().loads(
        token,
        salt="password-reset",
        max_age=current_app.config["PASSWORD_RESET_EXPIRES"]
    )
    return data["user_id"], data["nonce"]
