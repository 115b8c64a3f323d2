from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from argentessay.schemas.application_schema import (
    PersonalDetailsSchema,
    EducationSchema,
    ExpertiseSchema,
    StartTestSchema,
    CompleteTestSchema,
    GradeTestSchema,
    ApproveSchema,
    RejectSchema,
    HoldSchema,
    NoteSchema,
    VerifyDocumentSchema,
    ApplicationFilterSchema,
)
from argentessay.services import application_service as svc
from argentessay.utils.auth_utils import current_user, require_admin
from argentessay.utils.exceptions import Forbidden
from argentessay.utils.pagination import paginate_query
from argentessay.utils.response_formatter import success_response

bp = Blueprint("applications", __name__, url_prefix="/api/v1/applications")


def _my_application():
    user = current_user()
    if user.role != "writer":
        raise Forbidden("Only writers have applications")
    return svc.get_application_for_writer(user.id)


# ------------------------------------------
# WRITER: OWN APPLICATION
# ------------------------------------------

@bp.route("/me", methods=["GET"])
@jwt_required()
def get_my_application():
    return success_response({"application": _my_application().to_dict()})


@bp.route("/me/validation", methods=["GET"])
@jwt_required()
def get_my_validation():
    app = _my_application()
    report = app.validation_report()
    return success_response({
        "current_step": app.current_step,
        "missing": {str(step): fields for step, fields in report.items()},
        "can_advance": not app.missing_fields(),
    })


@bp.route("/me/personal", methods=["PUT"])
@jwt_required()
def update_personal():
    data = PersonalDetailsSchema().load(request.get_json() or {})
    app = svc.update_personal_details(_my_application(), data)
    return success_response({"application": app.to_dict()})


@bp.route("/me/education", methods=["PUT"])
@jwt_required()
def update_education():
    data = EducationSchema().load(request.get_json() or {})
    app = svc.update_education(_my_application(), data)
    return success_response({"application": app.to_dict()})


@bp.route("/me/expertise", methods=["PUT"])
@jwt_required()
def update_expertise():
    data = ExpertiseSchema().load(request.get_json() or {})
    app = svc.update_expertise(_my_application(), data)
    return success_response({"application": app.to_dict()})


@bp.route("/me/documents/<string:kind>", methods=["POST"])
@jwt_required()
def upload_documents(kind):
    app = _my_application()
    records = svc.upload_documents(app, kind, request.files.getlist("files"))
    return success_response({"documents": records, "application": app.to_dict()}, status=201)


@bp.route("/me/advance", methods=["POST"])
@jwt_required()
def advance_step():
    app = svc.advance_application_step(_my_application())
    return success_response({"application": app.summary()}, message=f"Now on step {app.current_step}")


@bp.route("/me/writing-test/start", methods=["POST"])
@jwt_required()
def start_writing_test():
    data = StartTestSchema().load(request.get_json() or {})
    app = svc.start_writing_test(_my_application(), data["test_id"])
    return success_response({"writing_test": app.writing_test})


@bp.route("/me/writing-test/complete", methods=["POST"])
@jwt_required()
def complete_writing_test():
    data = CompleteTestSchema().load(request.get_json() or {})
    app = svc.complete_writing_test(_my_application(), data["answers"], data.get("time_spent"))
    return success_response({"writing_test": app.writing_test})


@bp.route("/me/submit", methods=["POST"])
@jwt_required()
def submit():
    app = svc.submit_application(_my_application())
    return success_response({"application": app.summary()}, message="Application submitted successfully")


@bp.route("/me/notes", methods=["POST"])
@jwt_required()
def add_my_note():
    data = NoteSchema().load(request.get_json() or {})
    app = _my_application()
    svc.add_note(app, app.writer_id, data["content"], is_internal=False)
    return success_response({"notes": app.to_dict()["notes"]}, status=201)


# ------------------------------------------
# ADMIN: REVIEW
# ------------------------------------------

@bp.route("", methods=["GET"])
@jwt_required()
def list_applications():
    require_admin()
    args = ApplicationFilterSchema().load(request.args)
    query = svc.list_applications(args.get("status"), args.get("search"))
    items, pagination = paginate_query(query, args["page"], args["limit"])
    return success_response({
        "applications": [
            {
                **a.summary(),
                "writer_id": a.writer_id,
                "writer_name": a.writer.full_name,
                "submitted_at": a.submitted_at.isoformat() + "Z" if a.submitted_at else None,
            }
            for a in items
        ],
        "pagination": pagination,
    })


@bp.route("/pending", methods=["GET"])
@jwt_required()
def pending_reviews():
    require_admin()
    return success_response({
        "applications": [
            {
                **a.summary(),
                "writer": {
                    "id": a.writer.id,
                    "first_name": a.writer.first_name,
                    "last_name": a.writer.last_name,
                    "email": a.writer.email,
                },
                "submitted_at": a.submitted_at.isoformat() + "Z" if a.submitted_at else None,
            }
            for a in svc.get_pending_reviews()
        ]
    })


@bp.route("/stats", methods=["GET"])
@jwt_required()
def application_stats():
    require_admin()
    return success_response({"stats": svc.get_application_stats()})


@bp.route("/<string:application_id>", methods=["GET"])
@jwt_required()
def get_application(application_id):
    require_admin()
    app = svc.get_application(application_id)
    return success_response({
        "application": app.to_dict(include_internal=True),
        "writer": app.writer.to_dict(),
    })


@bp.route("/<string:application_id>/review", methods=["POST"])
@jwt_required()
def start_review(application_id):
    admin = require_admin()
    app = svc.start_review(svc.get_application(application_id), admin.id)
    return success_response({"application": app.summary()})


@bp.route("/<string:application_id>/hold", methods=["POST"])
@jwt_required()
def hold(application_id):
    admin = require_admin()
    data = HoldSchema().load(request.get_json() or {})
    app = svc.put_on_hold(svc.get_application(application_id), admin.id, data.get("notes"))
    return success_response({"application": app.summary()})


@bp.route("/<string:application_id>/approve", methods=["POST"])
@jwt_required()
def approve(application_id):
    admin = require_admin()
    data = ApproveSchema().load(request.get_json() or {})
    notes = data.pop("notes", None)
    app = svc.approve_application(svc.get_application(application_id), admin.id, notes, **data)
    return success_response({
        "application": app.summary(),
        "approved_at": app.approved_at.isoformat() + "Z",
    }, message="Application approved successfully")


@bp.route("/<string:application_id>/reject", methods=["POST"])
@jwt_required()
def reject(application_id):
    admin = require_admin()
    data = RejectSchema().load(request.get_json() or {})
    app = svc.reject_application(
        svc.get_application(application_id),
        admin.id,
        data["reason"],
        data.get("details"),
        reapply_after=data.get("reapply_after"),
        can_reapply=data["can_reapply"],
    )
    return success_response({
        "application": app.summary(),
        "rejected_at": app.rejected_at.isoformat() + "Z",
    }, message="Application rejected")


@bp.route("/<string:application_id>/notes", methods=["POST"])
@jwt_required()
def add_note(application_id):
    admin = require_admin()
    data = NoteSchema().load(request.get_json() or {})
    app = svc.add_note(svc.get_application(application_id), admin.id, data["content"], data["is_internal"])
    return success_response({"notes": app.notes}, status=201)


@bp.route("/<string:application_id>/writing-test/grade", methods=["POST"])
@jwt_required()
def grade_writing_test(application_id):
    require_admin()
    data = GradeTestSchema().load(request.get_json() or {})
    app = svc.grade_writing_test(svc.get_application(application_id), data["score"], data.get("feedback"))
    return success_response({"writing_test": app.writing_test})


@bp.route("/<string:application_id>/documents/verify", methods=["PATCH"])
@jwt_required()
def verify_document(application_id):
    require_admin()
    data = VerifyDocumentSchema().load(request.get_json() or {})
    app = svc.verify_document(
        svc.get_application(application_id),
        data["kind"],
        index=data.get("index"),
        verified=data["verified"],
    )
    return success_response({"documents": app.documents})
