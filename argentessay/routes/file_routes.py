from flask import Blueprint, request, send_file, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from argentessay.extensions import db
from argentessay.models.user import User
from argentessay.services.upload_service import resolve_upload_path, guess_mimetype
from argentessay.utils.response_formatter import error_response

bp = Blueprint("files", __name__, url_prefix="/api/v1/files")


@bp.route("/<path:filename>", methods=["GET"])
@jwt_required(optional=True)
def serve_file(filename):
    """
    Serve uploaded files for admin preview/download.
    Supports both Authorization header and ?token= query param.
    """
    uid = get_jwt_identity()

    # Support access via ?token= if no JWT header is provided
    if not uid and "token" in request.args:
        try:
            decoded = decode_token(request.args["token"])
            uid = decoded.get("sub")
        except (PyJWTError, JWTExtendedException) as e:
            current_app.logger.info("Token decode failed: %s", e)
            return error_response("UNAUTHORIZED", "Invalid or expired token", status=401)

    user = db.session.get(User, uid) if uid else None
    if not user:
        return error_response("UNAUTHORIZED", "Authentication required", status=401)

    if user.role != "admin":
        return error_response("FORBIDDEN", "Admin privileges required", status=403)

    safe_path = resolve_upload_path(filename)
    return send_file(safe_path, mimetype=guess_mimetype(safe_path), as_attachment=False)
