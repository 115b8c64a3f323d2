"""Writer onboarding application.

An application walks a writer through five linear steps:

1. personal details (stored on the ``User``)
2. educational background
3. subject expertise
4. document uploads
5. writing test

``current_step`` only moves forward, one step per ``advance_step`` call.
Per-step payloads live in JSON columns; every mutation reassigns the column
with a fresh copy so SQLAlchemy sees the change.

Methods mutate the instance and leave persistence to the caller, so a failed
precondition never leaves a half-applied change behind.
"""
import copy
from datetime import datetime

from argentessay.extensions import db
from argentessay.models.user import gen_uuid
from argentessay.utils.exceptions import ValidationFailed

TOTAL_STEPS = 5
MAX_TEST_ATTEMPTS = 3

APPLICATION_STATUSES = (
    "incomplete",
    "submitted",
    "under_review",
    "approved",
    "rejected",
    "on_hold",
)

REJECTION_REASONS = (
    "incomplete_application",
    "insufficient_qualifications",
    "poor_test_performance",
    "inadequate_samples",
    "failed_verification",
    "other",
)

DEGREES = ("high_school", "associate", "bachelor", "master", "doctorate")
LANGUAGE_LEVELS = ("basic", "intermediate", "advanced", "native")
WRITING_TEST_STATUSES = ("not_started", "in_progress", "completed", "graded")
DOCUMENT_KINDS = ("cv", "sample_works", "certificates")

# target status -> statuses it may be entered from.
# approve/reject are deliberately open to every status.
STATUS_TRANSITIONS = {
    "under_review": ("submitted", "on_hold"),
    "on_hold": ("submitted", "under_review"),
    "approved": APPLICATION_STATUSES,
    "rejected": APPLICATION_STATUSES,
}

# statuses in which the writer may still edit step payloads;
# "rejected" only while the reapply window is open
EDITABLE_STATUSES = ("incomplete", "on_hold")
SUBMITTABLE_STATUSES = ("incomplete", "on_hold", "rejected")


def _now_iso():
    return datetime.utcnow().isoformat() + "Z"


def default_education():
    return {
        "highest_degree": None,
        "field_of_study": None,
        "university": None,
        "graduation_year": None,
        "gpa": None,
        "additional_certifications": [],
    }


def default_expertise():
    return {
        "primary_subjects": [],
        "secondary_subjects": [],
        "writing_experience": None,
        "specializations": [],
        "language_proficiency": [],
    }


def default_documents():
    return {"cv": None, "sample_works": [], "certificates": []}


def default_writing_test():
    return {
        "test_id": None,
        "started_at": None,
        "completed_at": None,
        "time_spent": None,
        "answers": [],
        "score": None,
        "feedback": None,
        "status": "not_started",
        "attempts": 0,
    }


class Application(db.Model):
    __tablename__ = "applications"

    __table_args__ = (
        db.Index("idx_applications_status_created", "status", "created_at"),
        db.Index("idx_applications_current_step", "current_step"),
    )

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("app"))
    writer_id = db.Column(
        db.String(50),
        db.ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True
    )

    current_step = db.Column(db.Integer, nullable=False, default=1)
    completed_steps = db.Column(db.JSON, default=list)

    education = db.Column(db.JSON, default=default_education)
    expertise = db.Column(db.JSON, default=default_expertise)
    documents = db.Column(db.JSON, default=default_documents)
    writing_test = db.Column(db.JSON, default=default_writing_test)

    status = db.Column(db.String(20), nullable=False, default="incomplete")
    review = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.JSON, default=list)

    submitted_at = db.Column(db.DateTime)
    approved_at = db.Column(db.DateTime)
    rejected_at = db.Column(db.DateTime)

    rejection_reason = db.Column(db.String(50))
    rejection_details = db.Column(db.Text)
    can_reapply = db.Column(db.Boolean, default=True)
    reapply_after = db.Column(db.DateTime)

    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    writer = db.relationship("User", backref=db.backref("application", uselist=False))

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs):
        kwargs.setdefault("current_step", 1)
        kwargs.setdefault("status", "incomplete")
        kwargs.setdefault("completed_steps", [])
        kwargs.setdefault("education", default_education())
        kwargs.setdefault("expertise", default_expertise())
        kwargs.setdefault("documents", default_documents())
        kwargs.setdefault("writing_test", default_writing_test())
        kwargs.setdefault("notes", [])
        super().__init__(**kwargs)

    # ---- derived ----

    @property
    def completion_percentage(self):
        return round(self.current_step / TOTAL_STEPS * 100)

    @property
    def is_complete(self):
        return (
            self.current_step == TOTAL_STEPS
            and (self.writing_test or {}).get("status") == "completed"
        )

    # ---- per-step validation ----

    def step_payload(self, step):
        if step == 1:
            w = self.writer
            if not w:
                return {}
            return {
                "first_name": w.first_name,
                "last_name": w.last_name,
                "phone": w.phone,
                "country": w.country,
            }
        if step == 2:
            return copy.deepcopy(self.education or {})
        if step == 3:
            return copy.deepcopy(self.expertise or {})
        if step == 4:
            return copy.deepcopy(self.documents or {})
        if step == 5:
            return copy.deepcopy(self.writing_test or {})
        raise ValueError(f"Unknown application step {step}")

    def missing_fields(self, step=None):
        """Return the names of required fields still empty for ``step``.

        Defaults to the current step. An empty list means the step is ready
        to be completed.
        """
        step = step or self.current_step
        payload = self.step_payload(step)

        if step == 1:
            required = ("first_name", "last_name", "phone", "country")
            return [f for f in required if not payload.get(f)]
        if step == 2:
            required = ("highest_degree", "field_of_study", "university", "graduation_year")
            return [f"education.{f}" for f in required if payload.get(f) in (None, "")]
        if step == 3:
            missing = []
            if not payload.get("primary_subjects"):
                missing.append("expertise.primary_subjects")
            if payload.get("writing_experience") is None:
                missing.append("expertise.writing_experience")
            return missing
        if step == 4:
            return [] if payload.get("cv") else ["documents.cv"]
        if payload.get("status") not in ("completed", "graded"):
            return ["writing_test"]
        return []

    def validation_report(self, through_step=None):
        """Missing fields keyed by step for steps 1..through_step."""
        through_step = through_step or self.current_step
        report = {}
        for step in range(1, through_step + 1):
            missing = self.missing_fields(step)
            if missing:
                report[step] = missing
        return report

    # ---- step progress ----

    def advance_step(self):
        if self.current_step < TOTAL_STEPS:
            self.completed_steps = list(self.completed_steps or []) + [{
                "step": self.current_step,
                "completed_at": _now_iso(),
                "data": self.step_payload(self.current_step),
            }]
            self.current_step += 1
        return self

    def ensure_submittable(self):
        if self.status not in SUBMITTABLE_STATUSES:
            raise ValidationFailed(
                f"Application cannot be submitted while {self.status}",
                details={"status": self.status},
                code="INVALID_STATUS",
            )
        self.ensure_editable()

    def submit(self):
        self.ensure_submittable()
        if not self.is_complete:
            raise ValidationFailed(
                "Application is not complete",
                details={
                    "current_step": self.current_step,
                    "writing_test_status": (self.writing_test or {}).get("status"),
                },
                code="APPLICATION_INCOMPLETE",
            )
        self.status = "submitted"
        self.submitted_at = datetime.utcnow()
        return self

    # ---- step payloads ----

    def ensure_can_reapply(self):
        if not self.can_reapply:
            raise ValidationFailed(
                "This application may not be resubmitted",
                code="REAPPLY_NOT_ALLOWED",
            )
        if self.reapply_after and datetime.utcnow() < self.reapply_after:
            raise ValidationFailed(
                "Reapplication is not open yet",
                details={"reapply_after": self.reapply_after.isoformat() + "Z"},
                code="REAPPLY_NOT_ALLOWED",
            )

    def ensure_editable(self):
        if self.status == "rejected":
            self.ensure_can_reapply()
            return
        if self.status not in EDITABLE_STATUSES:
            raise ValidationFailed(
                f"Application can no longer be edited while {self.status}",
                code="APPLICATION_LOCKED",
            )

    def update_education(self, data):
        self.ensure_editable()
        education = {**default_education(), **(self.education or {})}
        education.update(data)
        self.education = education
        return self

    def update_expertise(self, data):
        self.ensure_editable()
        expertise = {**default_expertise(), **(self.expertise or {})}
        expertise.update(data)
        self.expertise = expertise
        return self

    def attach_document(self, kind, record):
        if kind not in DOCUMENT_KINDS:
            raise ValidationFailed(f"Unknown document kind '{kind}'")
        self.ensure_editable()
        documents = {**default_documents(), **copy.deepcopy(self.documents or {})}
        if kind == "cv":
            documents["cv"] = record
        else:
            documents[kind] = list(documents.get(kind) or []) + [record]
        self.documents = documents
        return self

    def verify_document(self, kind, index=None, verified=True):
        if kind not in DOCUMENT_KINDS:
            raise ValidationFailed(f"Unknown document kind '{kind}'")
        documents = copy.deepcopy(self.documents or default_documents())
        if kind == "cv":
            target = documents.get("cv")
        else:
            items = documents.get(kind) or []
            if index is None or not 0 <= index < len(items):
                raise ValidationFailed(f"No {kind} document at index {index}")
            target = items[index]
        if not target:
            raise ValidationFailed(f"No {kind} document uploaded")
        target["verified"] = bool(verified)
        self.documents = documents
        return self

    # ---- writing test ----

    def start_writing_test(self, test_id):
        self.ensure_editable()
        if self.current_step < TOTAL_STEPS:
            raise ValidationFailed(
                "Writing test is only available at the final step",
                code="STEP_NOT_REACHED",
            )
        test = {**default_writing_test(), **(self.writing_test or {})}
        if test["status"] == "in_progress":
            raise ValidationFailed("Writing test already in progress", code="TEST_IN_PROGRESS")
        if test["attempts"] >= MAX_TEST_ATTEMPTS:
            raise ValidationFailed(
                "Maximum writing test attempts reached",
                details={"max_attempts": MAX_TEST_ATTEMPTS},
                code="TEST_ATTEMPTS_EXCEEDED",
            )
        test.update({
            "test_id": test_id,
            "started_at": _now_iso(),
            "completed_at": None,
            "time_spent": None,
            "answers": [],
            "score": None,
            "feedback": None,
            "status": "in_progress",
            "attempts": test["attempts"] + 1,
        })
        self.writing_test = test
        return self

    def complete_writing_test(self, answers, time_spent=None):
        self.ensure_editable()
        test = {**default_writing_test(), **(self.writing_test or {})}
        if test["status"] != "in_progress":
            raise ValidationFailed("Writing test has not been started", code="TEST_NOT_STARTED")
        test.update({
            "answers": list(answers or []),
            "time_spent": time_spent,
            "completed_at": _now_iso(),
            "status": "completed",
        })
        self.writing_test = test
        return self

    def grade_writing_test(self, score, feedback=None):
        if score is None or not 0 <= score <= 100:
            raise ValidationFailed("Score must be between 0 and 100")
        test = {**default_writing_test(), **(self.writing_test or {})}
        if test["status"] not in ("completed", "graded"):
            raise ValidationFailed("Writing test has not been completed", code="TEST_NOT_COMPLETED")
        test.update({"score": score, "feedback": feedback, "status": "graded"})
        self.writing_test = test
        return self

    # ---- review ----

    def can_transition(self, target):
        return self.status in STATUS_TRANSITIONS.get(target, ())

    def _transition(self, target):
        if not self.can_transition(target):
            raise ValidationFailed(
                f"Cannot move application from {self.status} to {target}",
                details={"from": self.status, "to": target},
                code="INVALID_STATUS",
            )
        self.status = target

    def _stamp_review(self, reviewer_id, notes, **extra):
        review = {
            "reviewed_by": reviewer_id,
            "reviewed_at": _now_iso(),
            "review_notes": notes,
        }
        review.update({k: v for k, v in extra.items() if v is not None})
        self.review = review

    def start_review(self, reviewer_id):
        self._transition("under_review")
        self._stamp_review(reviewer_id, None)
        return self

    def put_on_hold(self, reviewer_id, notes=None):
        self._transition("on_hold")
        self._stamp_review(reviewer_id, notes)
        return self

    def approve(self, reviewer_id, notes=None, rating=None, strengths=None,
                weaknesses=None, recommendations=None):
        self._transition("approved")
        self.approved_at = datetime.utcnow()
        self._stamp_review(
            reviewer_id,
            notes,
            rating=rating,
            strengths=strengths,
            weaknesses=weaknesses,
            recommendations=recommendations,
        )
        return self

    def reject(self, reviewer_id, reason, details=None, reapply_after=None, can_reapply=True):
        if reason not in REJECTION_REASONS:
            raise ValidationFailed(
                f"Invalid rejection reason '{reason}'",
                details={"allowed": list(REJECTION_REASONS)},
            )
        self._transition("rejected")
        self.rejected_at = datetime.utcnow()
        self.rejection_reason = reason
        self.rejection_details = details
        self.can_reapply = can_reapply
        self.reapply_after = reapply_after
        self._stamp_review(reviewer_id, details)
        return self

    def add_note(self, author_id, content, is_internal=True):
        self.notes = list(self.notes or []) + [{
            "author_id": author_id,
            "content": content,
            "is_internal": is_internal,
            "created_at": _now_iso(),
        }]
        return self

    def summary(self):
        return {
            "id": self.id,
            "current_step": self.current_step,
            "status": self.status,
            "completion_percentage": self.completion_percentage,
        }

    def to_dict(self, include_internal=False):
        notes = self.notes or []
        if not include_internal:
            notes = [n for n in notes if not n.get("is_internal")]
        return {
            "id": self.id,
            "writer_id": self.writer_id,
            "current_step": self.current_step,
            "completion_percentage": self.completion_percentage,
            "is_complete": self.is_complete,
            "completed_steps": self.completed_steps or [],
            "education": self.education,
            "expertise": self.expertise,
            "documents": self.documents,
            "writing_test": self.writing_test,
            "status": self.status,
            "review": self.review,
            "notes": notes,
            "submitted_at": self.submitted_at.isoformat() + "Z" if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() + "Z" if self.approved_at else None,
            "rejected_at": self.rejected_at.isoformat() + "Z" if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "rejection_details": self.rejection_details,
            "can_reapply": self.can_reapply,
            "reapply_after": self.reapply_after.isoformat() + "Z" if self.reapply_after else None,
            "created_at": self.created_at.isoformat() + "Z" if self.created_at else None,
            "updated_at": self.updated_at.isoformat() + "Z" if self.updated_at else None,
        }
