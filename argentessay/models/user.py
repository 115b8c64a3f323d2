from argentessay.extensions import db
from argentessay.utils.auth_utils import hash_password, check_password
from argentessay.utils.otp import generate_otp, hash_otp, verify_otp, otp_expiry
from datetime import datetime, timedelta
import secrets
import uuid

ROLES = ("writer", "admin")
USER_STATUSES = ("pending", "approved", "rejected", "suspended")
WRITING_TEST_RESULTS = ("pending", "passed", "failed")


def gen_uuid(prefix=None):
    uid = str(uuid.uuid4())
    return f"{prefix}-{uid}" if prefix else uid

class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        db.Index("idx_users_role_status", "role", "status"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("usr"))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(50))
    country = db.Column(db.String(100))
    role = db.Column(db.String(20), nullable=False, default="writer")

    # writer background
    degree = db.Column(db.String(50))
    field_of_study = db.Column(db.String(255))
    university = db.Column(db.String(255))
    graduation_year = db.Column(db.Integer)
    subject_expertise = db.Column(db.JSON, default=list)
    writing_experience = db.Column(db.Integer, default=0)
    bio = db.Column(db.String(500))

    cv = db.Column(db.JSON, nullable=True)
    sample_work = db.Column(db.JSON, default=list)

    writing_test_score = db.Column(db.Float, nullable=True)
    writing_test_completed_at = db.Column(db.DateTime, nullable=True)
    writing_test_status = db.Column(db.String(20), default="pending")

    status = db.Column(db.String(20), nullable=False, default="pending")
    email_verified = db.Column(db.Boolean, default=False)
    email_verification_token = db.Column(db.String(255))
    email_verification_expire = db.Column(db.DateTime)
    reset_password_token = db.Column(db.String(255))
    reset_password_expire = db.Column(db.DateTime)

    rating = db.Column(db.Float, default=0.0)
    completed_jobs = db.Column(db.Integer, default=0)
    total_earnings = db.Column(db.Numeric(12, 2), default=0)

    last_login = db.Column(db.DateTime)
    registration_step = db.Column(db.Integer, default=1)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self):
        return self.role == "admin"

    def set_password(self, password):
        self.password_hash = hash_password(password)

    def check_password(self, password):
        return check_password(password, self.password_hash)

    def generate_email_verification_code(self, ttl_seconds=24 * 3600):
        """Store a hashed six-digit code and return the plain one for delivery."""
        code = generate_otp()
        self.email_verification_token = hash_otp(code)
        self.email_verification_expire = otp_expiry(ttl_seconds)
        return code

    def verify_email_code(self, code):
        if not self.email_verification_expire or datetime.utcnow() > self.email_verification_expire:
            return False
        if not verify_otp(code, self.email_verification_token):
            return False
        self.email_verified = True
        self.email_verification_token = None
        self.email_verification_expire = None
        return True

    def generate_password_reset_nonce(self, ttl_seconds=3600):
        nonce = secrets.token_hex(16)
        self.reset_password_token = hash_otp(nonce)
        self.reset_password_expire = datetime.utcnow() + timedelta(seconds=ttl_seconds)
        return nonce

    def consume_password_reset_nonce(self, nonce):
        if not self.reset_password_expire or datetime.utcnow() > self.reset_password_expire:
            return False
        if not verify_otp(nonce, self.reset_password_token):
            return False
        self.reset_password_token = None
        self.reset_password_expire = None
        return True

    def update_last_login(self):
        self.last_login = datetime.utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone": self.phone,
            "country": self.country,
            "role": self.role,
            "status": self.status,
            "email_verified": self.email_verified,
            "registration_step": self.registration_step,
            "educational_background": {
                "degree": self.degree,
                "field_of_study": self.field_of_study,
                "university": self.university,
                "graduation_year": self.graduation_year,
            },
            "subject_expertise": self.subject_expertise or [],
            "writing_experience": self.writing_experience,
            "bio": self.bio,
            "writing_test": {
                "score": self.writing_test_score,
                "status": self.writing_test_status,
                "completed_at": self.writing_test_completed_at.isoformat() + "Z" if self.writing_test_completed_at else None,
            },
            "rating": self.rating,
            "completed_jobs": self.completed_jobs,
            "total_earnings": float(self.total_earnings or 0),
            "last_login": self.last_login.isoformat() + "Z" if self.last_login else None,
            "created_at": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
