import os

from flask import Flask
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .config import CONFIGS, DevelopmentConfig
from .extensions import db, migrate, jwt, ma, cors, bcrypt


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, DevelopmentConfig))

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    bcrypt.init_app(app)

    # models must be imported before create_all / migrations see them
    from argentessay.models import user, application, earning, message  # noqa: F401

    # register blueprints
    from argentessay.routes.auth_routes import bp as auth_bp
    from argentessay.routes.application_routes import bp as application_bp
    from argentessay.routes.earning_routes import bp as earning_bp
    from argentessay.routes.message_routes import bp as message_bp
    from argentessay.routes.user_routes import bp as user_bp
    from argentessay.routes.file_routes import bp as file_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(application_bp)
    app.register_blueprint(earning_bp)
    app.register_blueprint(message_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(file_bp)

    from argentessay.cli import uploads_cli
    app.cli.add_command(uploads_cli)

    register_error_handlers(app)

    return app


def register_error_handlers(app):
    from argentessay.utils.response_formatter import error_response
    from argentessay.utils.exceptions import ServiceError

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response("TOKEN_EXPIRED", "Token has expired", status=401)

    @app.errorhandler(ServiceError)
    def service_error(e):
        return error_response(e.code, e.message, details=e.details, status=e.status)

    @app.errorhandler(ValidationError)
    def validation_error(e):
        return error_response(
            "VALIDATION_ERROR", "Invalid request data", details=e.messages, status=400
        )

    @app.errorhandler(StaleDataError)
    def stale_data(e):
        db.session.rollback()
        app.logger.warning("Concurrent update rejected: %s", e)
        return error_response(
            "CONFLICT", "Record was modified by another request, reload and retry", status=409
        )

    @app.errorhandler(SQLAlchemyError)
    def persistence_error(e):
        db.session.rollback()
        app.logger.error("Persistence failure: %s", e)
        return error_response("PERSISTENCE_ERROR", "Could not save changes", status=500)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", str(e), status=400)

    @app.errorhandler(401)
    def unauthorized(e):
        return error_response("UNAUTHORIZED", str(e), status=401)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", str(e), status=405)

    @app.errorhandler(413)
    def too_large(e):
        return error_response("FILE_TOO_LARGE", "File size too large", status=413)

    @app.errorhandler(500)
    def server_error(e):
        return error_response("SERVER_ERROR", "Internal server error", status=500)
