from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from argentessay.schemas.user_schema import ProfileUpdateSchema, WriterFilterSchema, SuspendSchema
from argentessay.services import user_service as svc
from argentessay.utils.auth_utils import current_user, require_admin
from argentessay.utils.pagination import paginate_query
from argentessay.utils.response_formatter import success_response, error_response

bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@bp.route("/me", methods=["PATCH"])
@jwt_required()
def update_me():
    data = ProfileUpdateSchema().load(request.get_json() or {})
    user = svc.update_profile(current_user(), data)
    return success_response({"user": user.to_dict()})


@bp.route("/search", methods=["GET"])
@jwt_required()
def search_user():
    """
    Search writers by name or email (case-insensitive, partial match)
    Example: /api/v1/users/search?q=john
    """
    require_admin()
    query = request.args.get("q", "").strip()
    if not query:
        return error_response("VALIDATION_ERROR", "Missing query parameter", status=400)

    writers = svc.list_writers(search=query).limit(10).all()

    results = [
        {
            "id": u.id,
            "name": u.full_name,
            "email": u.email,
            "status": u.status,
        }
        for u in writers
    ]

    return success_response({"results": results})


@bp.route("/writers", methods=["GET"])
@jwt_required()
def list_writers():
    require_admin()
    args = WriterFilterSchema().load(request.args)
    items, pagination = paginate_query(
        svc.list_writers(args.get("status"), args.get("search")), args["page"], args["limit"]
    )

    data = [
        {
            "id": w.id,
            "email": w.email,
            "full_name": w.full_name,
            "country": w.country,
            "status": w.status,
            "rating": w.rating,
            "completed_jobs": w.completed_jobs,
            "total_earnings": float(w.total_earnings or 0),
            "joined_at": w.created_at.isoformat() + "Z" if w.created_at else None,
        }
        for w in items
    ]

    return success_response({"writers": data, "pagination": pagination})


@bp.route("/<string:user_id>", methods=["GET"])
@jwt_required()
def get_user(user_id):
    require_admin()
    return success_response({"user": svc.get_user(user_id).to_dict()})


@bp.route("/<string:user_id>/suspend", methods=["PATCH"])
@jwt_required()
def suspend(user_id):
    admin = require_admin()
    data = SuspendSchema().load(request.get_json() or {})
    user = svc.suspend_user(svc.get_user(user_id), admin.id, data.get("reason"))
    return success_response({"user_id": user.id, "status": user.status}, message="User suspended")


@bp.route("/<string:user_id>/reinstate", methods=["PATCH"])
@jwt_required()
def reinstate(user_id):
    admin = require_admin()
    user = svc.reinstate_user(svc.get_user(user_id), admin.id)
    return success_response({"user_id": user.id, "status": user.status}, message="User reinstated")
