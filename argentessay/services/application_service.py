import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm.exc import StaleDataError

from argentessay.extensions import db
from argentessay.models.application import Application, APPLICATION_STATUSES, TOTAL_STEPS
from argentessay.models.user import User
from argentessay.services.email_service import (
    send_application_submitted_email,
    send_application_approved_email,
    send_application_rejected_email,
)
from argentessay.services.upload_service import delete_file, discard_files, save_uploaded_files
from argentessay.utils.db_utils import commit
from argentessay.utils.exceptions import NotFound, PersistenceError, ValidationFailed

logger = logging.getLogger(__name__)


def get_application(application_id):
    app = db.session.get(Application, application_id)
    if not app:
        raise NotFound("Application not found")
    return app


def get_application_for_writer(writer_id):
    app = Application.query.filter_by(writer_id=writer_id).first()
    if not app:
        raise NotFound("Application not found for this user")
    return app


def update_personal_details(application, data):
    application.ensure_editable()
    writer = application.writer
    for field in ("first_name", "last_name", "phone", "country"):
        if field in data:
            setattr(writer, field, data[field])
    commit()
    return application


def update_education(application, data):
    application.update_education(data)
    commit()
    return application


def update_expertise(application, data):
    application.update_expertise(data)
    commit()
    return application


def advance_application_step(application, validate=True):
    """Complete the current step and move to the next one.

    With ``validate`` the current step's required fields are checked first
    and a ``ValidationFailed`` listing the gaps is raised instead of
    advancing. At the final step this is a no-op.
    """
    if application.current_step >= TOTAL_STEPS:
        return application

    if validate:
        missing = application.missing_fields()
        if missing:
            raise ValidationFailed(
                f"Step {application.current_step} is incomplete",
                details={"step": application.current_step, "missing": missing},
                code="STEP_INCOMPLETE",
            )

    application.advance_step()
    application.writer.registration_step = application.current_step
    commit()
    logger.info("Application %s advanced to step %s", application.id, application.current_step)
    return application


def upload_documents(application, kind, files):
    application.ensure_editable()
    owner = application.writer_id
    previous_cv = (application.documents or {}).get("cv")
    if kind == "cv":
        records = save_uploaded_files(files or [], "cv", owner)
    elif kind == "sample_works":
        records = save_uploaded_files(files, "samples", owner)
    elif kind == "certificates":
        records = save_uploaded_files(files, "certificates", owner)
    else:
        raise ValidationFailed(f"Unknown document kind '{kind}'")

    for record in records:
        application.attach_document(kind, record)

    if kind == "cv":
        application.writer.cv = records[0]
    elif kind == "sample_works":
        application.writer.sample_work = list(application.writer.sample_work or []) + records
    try:
        commit()
    except (PersistenceError, StaleDataError):
        discard_files(records)
        raise

    if kind == "cv" and previous_cv:
        delete_file(previous_cv["stored_path"])
    return records


def verify_document(application, kind, index=None, verified=True):
    application.verify_document(kind, index=index, verified=verified)
    commit()
    return application


def start_writing_test(application, test_id):
    application.start_writing_test(test_id)
    commit()
    return application


def complete_writing_test(application, answers, time_spent=None):
    application.complete_writing_test(answers, time_spent=time_spent)
    commit()
    return application


def grade_writing_test(application, score, feedback=None):
    application.grade_writing_test(score, feedback)

    writer = application.writer
    pass_score = current_app.config.get("WRITING_TEST_PASS_SCORE", 70)
    writer.writing_test_score = score
    writer.writing_test_completed_at = datetime.utcnow()
    writer.writing_test_status = "passed" if score >= pass_score else "failed"
    commit()
    return application


def submit_application(application):
    application.ensure_submittable()
    resubmission = application.status == "rejected"
    report = application.validation_report(TOTAL_STEPS - 1)
    if report:
        raise ValidationFailed(
            "Application is not complete",
            details={"missing": {str(k): v for k, v in report.items()}},
            code="APPLICATION_INCOMPLETE",
        )
    application.submit()
    if resubmission:
        application.writer.status = "pending"
    commit()
    logger.info("Application %s %s", application.id, "resubmitted" if resubmission else "submitted")
    send_application_submitted_email(application.writer)
    return application


def start_review(application, reviewer_id):
    application.start_review(reviewer_id)
    commit()
    logger.info("Application %s under review by %s", application.id, reviewer_id)
    return application


def put_on_hold(application, reviewer_id, notes=None):
    application.put_on_hold(reviewer_id, notes)
    commit()
    logger.info("Application %s put on hold by %s", application.id, reviewer_id)
    return application


def approve_application(application, reviewer_id, notes=None, **review):
    application.approve(reviewer_id, notes, **review)
    application.writer.status = "approved"
    commit()
    logger.info("Application %s approved by %s", application.id, reviewer_id)
    send_application_approved_email(application.writer, notes)
    return application


def reject_application(application, reviewer_id, reason, details=None, reapply_after=None, can_reapply=True):
    application.reject(
        reviewer_id,
        reason,
        details,
        reapply_after=reapply_after,
        can_reapply=can_reapply,
    )
    application.writer.status = "rejected"
    commit()
    logger.info("Application %s rejected by %s (%s)", application.id, reviewer_id, reason)
    send_application_rejected_email(application.writer, details, reapply_after)
    return application


def add_note(application, author_id, content, is_internal=True):
    application.add_note(author_id, content, is_internal)
    commit()
    return application


def get_pending_reviews():
    """Submitted applications, oldest submission first."""
    return (
        Application.query
        .filter(Application.status == "submitted")
        .join(User, Application.writer_id == User.id)
        .order_by(Application.submitted_at.asc())
        .all()
    )


def get_application_stats():
    rows = (
        db.session.query(Application.status, func.count(Application.id))
        .group_by(Application.status)
        .all()
    )
    counts = {status: 0 for status in APPLICATION_STATUSES}
    counts.update({status: count for status, count in rows})
    return counts


def list_applications(status=None, search=None):
    query = Application.query.join(User, Application.writer_id == User.id).order_by(
        Application.created_at.desc()
    )
    if status and status != "all":
        query = query.filter(Application.status == status)
    if search:
        like = f"%{search.strip().lower()}%"
        query = query.filter(
            db.or_(
                func.lower(User.first_name).like(like),
                func.lower(User.last_name).like(like),
                func.lower(User.email).like(like),
            )
        )
    return query
