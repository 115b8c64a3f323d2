import os
from dotenv import load_dotenv

load_dotenv()


def _database_uri():
    uri = os.getenv("DATABASE_URL", "sqlite:///argentessay.sqlite3")
    root_cert = os.getenv("DB_SSLROOTCERT")
    if root_cert:
        uri = f"{uri}?sslmode=verify-full&sslrootcert={root_cert}"
    return uri


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = _database_uri()
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-change-me")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    ACCESS_EXPIRES = int(os.getenv("ACCESS_EXPIRES", 86400))
    REFRESH_EXPIRES = int(os.getenv("REFRESH_EXPIRES", 86400))
    EMAIL_VERIFY_EXPIRES = int(os.getenv("EMAIL_VERIFY_EXPIRES", 24 * 3600))
    PASSWORD_RESET_EXPIRES = int(os.getenv("PASSWORD_RESET_EXPIRES", 3600))

    basedir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(basedir, "uploads"))
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024
    TEMP_UPLOAD_RETENTION_DAYS = 1

    INVOICE_DUE_DAYS = 30
    WRITING_TEST_PASS_SCORE = 70

    MAIL_ENABLED = os.getenv("MAIL_ENABLED", "false").lower() == "true"
    EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "ArgentEssay")
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "no-reply@argentessay.com")
    SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 465))
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    BCRYPT_LOG_ROUNDS = 4
    MAIL_ENABLED = False


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
