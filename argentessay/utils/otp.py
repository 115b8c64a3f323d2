import secrets
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta

def generate_otp():
    # six digits, never a leading zero
    return str(100000 + secrets.randbelow(900000))

def hash_otp(otp: str):
    return generate_password_hash(otp)

def verify_otp(otp: str, otp_hash: str):
    if not otp or not otp_hash:
        return False
    return check_password_hash(otp_hash, otp)

def otp_expiry(seconds=24 * 3600):
    return datetime.utcnow() + timedelta(seconds=seconds)
