from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from argentessay.schemas.earning_schema import (
    CreateEarningSchema,
    BonusSchema,
    DeductionSchema,
    PaySchema,
    QualitySchema,
    ReasonSchema,
    DateRangeSchema,
    MonthlySchema,
)
from argentessay.services import earning_service as svc
from argentessay.services.user_service import get_user
from argentessay.utils.auth_utils import current_user, require_admin
from argentessay.utils.exceptions import Forbidden
from argentessay.utils.pagination import paginate_query
from argentessay.utils.response_formatter import success_response

bp = Blueprint("earnings", __name__, url_prefix="/api/v1/earnings")


# ==========================================================
#  WRITER
# ==========================================================

@bp.route("/me", methods=["GET"])
@jwt_required()
def my_earnings():
    user = current_user()
    args = DateRangeSchema().load(request.args)
    query = svc.get_writer_earnings(user.id, args.get("start_date"), args.get("end_date"))
    items, pagination = paginate_query(query, args["page"], args["limit"])
    return success_response({
        "earnings": [e.to_dict() for e in items],
        "pagination": pagination,
    })


@bp.route("/me/stats", methods=["GET"])
@jwt_required()
def my_stats():
    user = current_user()
    args = DateRangeSchema().load(request.args)
    return success_response({
        "stats": svc.get_earnings_stats(user.id, args.get("start_date"), args.get("end_date"))
    })


@bp.route("/me/monthly", methods=["GET"])
@jwt_required()
def my_monthly():
    user = current_user()
    args = MonthlySchema().load(request.args)
    return success_response({
        "year": args["year"],
        "months": svc.get_monthly_earnings(user.id, args["year"]),
    })


@bp.route("/<string:earning_id>", methods=["GET"])
@jwt_required()
def get_earning(earning_id):
    user = current_user()
    earning = svc.get_earning(earning_id)
    if user.role != "admin" and earning.writer_id != user.id:
        raise Forbidden("You do not have access to this earning")
    return success_response({"earning": earning.to_dict()})


# ==========================================================
#  ADMIN
# ==========================================================

@bp.route("", methods=["POST"])
@jwt_required()
def create_earning():
    require_admin()
    data = CreateEarningSchema().load(request.get_json() or {})
    earning = svc.create_earning(**data)
    return success_response({"earning": earning.to_dict()}, status=201)


@bp.route("/pending", methods=["GET"])
@jwt_required()
def pending_payments():
    require_admin()
    return success_response({
        "earnings": [
            {
                **e.to_dict(),
                "writer": {"id": e.writer.id, "name": e.writer.full_name, "email": e.writer.email},
            }
            for e in svc.get_pending_payments()
        ]
    })


@bp.route("/writers/<string:writer_id>/stats", methods=["GET"])
@jwt_required()
def writer_stats(writer_id):
    require_admin()
    writer = get_user(writer_id)
    args = DateRangeSchema().load(request.args)
    return success_response({
        "writer_id": writer.id,
        "stats": svc.get_earnings_stats(writer.id, args.get("start_date"), args.get("end_date")),
    })


@bp.route("/<string:earning_id>/bonus", methods=["POST"])
@jwt_required()
def add_bonus(earning_id):
    admin = require_admin()
    data = BonusSchema().load(request.get_json() or {})
    earning = svc.add_bonus(svc.get_earning(earning_id), data["amount"], data["reason"], admin.id)
    return success_response({"earning": earning.to_dict()})


@bp.route("/<string:earning_id>/deductions", methods=["POST"])
@jwt_required()
def add_deduction(earning_id):
    admin = require_admin()
    data = DeductionSchema().load(request.get_json() or {})
    earning = svc.add_deduction(svc.get_earning(earning_id), data["amount"], data["reason"], admin.id)
    return success_response({"earning": earning.to_dict()}, status=201)


@bp.route("/<string:earning_id>/pay", methods=["POST"])
@jwt_required()
def mark_paid(earning_id):
    require_admin()
    data = PaySchema().load(request.get_json() or {})
    earning = svc.mark_earning_paid(
        svc.get_earning(earning_id),
        data["payment_method"],
        data["transaction_id"],
        data["processing_fee"],
    )
    return success_response({"earning": earning.to_dict()}, message="Earning marked as paid")


@bp.route("/<string:earning_id>/processing", methods=["POST"])
@jwt_required()
def mark_processing(earning_id):
    require_admin()
    earning = svc.mark_processing(svc.get_earning(earning_id))
    return success_response({"earning": earning.to_dict()})


@bp.route("/<string:earning_id>/fail", methods=["POST"])
@jwt_required()
def mark_failed(earning_id):
    require_admin()
    data = ReasonSchema().load(request.get_json() or {})
    earning = svc.mark_failed(svc.get_earning(earning_id), data.get("reason"))
    return success_response({"earning": earning.to_dict()})


@bp.route("/<string:earning_id>/retry", methods=["POST"])
@jwt_required()
def retry(earning_id):
    require_admin()
    earning = svc.retry_payment(svc.get_earning(earning_id))
    return success_response({"earning": earning.to_dict()})


@bp.route("/<string:earning_id>/refund", methods=["POST"])
@jwt_required()
def refund(earning_id):
    require_admin()
    data = ReasonSchema().load(request.get_json() or {})
    earning = svc.refund_earning(svc.get_earning(earning_id), data.get("reason"))
    return success_response({"earning": earning.to_dict()})


@bp.route("/<string:earning_id>/invoice", methods=["POST"])
@jwt_required()
def generate_invoice(earning_id):
    require_admin()
    earning = svc.generate_invoice(svc.get_earning(earning_id))
    return success_response({"invoice": earning.to_dict()["invoice"]}, status=201)


@bp.route("/<string:earning_id>/quality", methods=["PATCH"])
@jwt_required()
def update_quality(earning_id):
    require_admin()
    data = QualitySchema().load(request.get_json() or {})
    earning = svc.update_quality(svc.get_earning(earning_id), **data)
    return success_response({"earning": earning.to_dict()})
