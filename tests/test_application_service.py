"""
Application service tests: validated step advance, submission, review
decisions mirrored onto the writer, and the admin queues.
"""

import io
import os
from datetime import datetime, timedelta

import pytest
from werkzeug.datastructures import FileStorage

from argentessay.models.application import APPLICATION_STATUSES
from argentessay.services import application_service as svc
from argentessay.utils.exceptions import NotFound, PersistenceError, ValidationFailed


class TestAdvance:

    def test_advance_with_valid_step(self, writer):
        app = svc.advance_application_step(writer.application)
        assert app.current_step == 2
        assert writer.registration_step == 2

    def test_advance_rejects_incomplete_step(self, writer):
        app = svc.advance_application_step(writer.application)
        with pytest.raises(ValidationFailed) as exc:
            svc.advance_application_step(app)
        assert exc.value.code == "STEP_INCOMPLETE"
        assert exc.value.details["step"] == 2
        assert "education.highest_degree" in exc.value.details["missing"]
        assert app.current_step == 2

    def test_advance_without_validation(self, writer):
        app = writer.application
        svc.advance_application_step(app)
        svc.advance_application_step(app, validate=False)
        assert app.current_step == 3

    def test_advance_at_final_step_is_noop(self, finished_application):
        svc.advance_application_step(finished_application)
        assert finished_application.current_step == 5
        assert len(finished_application.completed_steps) == 4


class TestSubmit:

    def test_submit(self, finished_application):
        app = svc.submit_application(finished_application)
        assert app.status == "submitted"
        assert app.submitted_at is not None

    def test_submit_reports_missing_steps(self, writer):
        app = writer.application
        for _ in range(4):
            app.advance_step()
        app.start_writing_test("t1")
        app.complete_writing_test([])
        with pytest.raises(ValidationFailed) as exc:
            svc.submit_application(app)
        assert exc.value.code == "APPLICATION_INCOMPLETE"
        assert set(exc.value.details["missing"]) == {"2", "3", "4"}
        assert app.status == "incomplete"

    def test_approved_application_cannot_be_resubmitted(self, finished_application, admin):
        svc.submit_application(finished_application)
        svc.approve_application(finished_application, admin.id)
        with pytest.raises(ValidationFailed) as exc:
            svc.submit_application(finished_application)
        assert exc.value.code == "INVALID_STATUS"
        assert finished_application.status == "approved"
        assert finished_application.writer.status == "approved"

    def test_rejected_without_reapply_cannot_resubmit(self, finished_application, admin):
        svc.reject_application(finished_application, admin.id, "other", can_reapply=False)
        with pytest.raises(ValidationFailed) as exc:
            svc.submit_application(finished_application)
        assert exc.value.code == "REAPPLY_NOT_ALLOWED"
        assert finished_application.status == "rejected"
        assert finished_application.writer.status == "rejected"

    def test_resubmission_reopens_writer(self, finished_application, admin):
        svc.reject_application(
            finished_application, admin.id, "other",
            reapply_after=datetime.utcnow() - timedelta(minutes=1),
        )
        app = svc.submit_application(finished_application)
        assert app.status == "submitted"
        assert app.writer.status == "pending"


class TestPersonalDetails:

    def test_update(self, writer):
        svc.update_personal_details(writer.application, {"first_name": "Janet", "phone": "+254700000001"})
        assert writer.first_name == "Janet"
        assert writer.phone == "+254700000001"

    def test_locked_after_approval(self, finished_application, admin):
        svc.submit_application(finished_application)
        svc.approve_application(finished_application, admin.id)
        with pytest.raises(ValidationFailed) as exc:
            svc.update_personal_details(finished_application, {"first_name": "Changed"})
        assert exc.value.code == "APPLICATION_LOCKED"
        assert finished_application.writer.first_name == "Jane"


class TestDecisions:

    def test_approve_mirrors_user_status(self, finished_application, admin):
        svc.submit_application(finished_application)
        app = svc.approve_application(finished_application, admin.id, "Welcome aboard", rating=5)
        assert app.status == "approved"
        assert app.writer.status == "approved"
        assert app.review["rating"] == 5

    def test_reject_mirrors_user_status(self, finished_application, admin):
        reapply = datetime.utcnow() + timedelta(days=90)
        app = svc.reject_application(
            finished_application, admin.id, "inadequate_samples", "Samples too short",
            reapply_after=reapply,
        )
        assert app.status == "rejected"
        assert app.writer.status == "rejected"
        assert app.reapply_after == reapply

    def test_grade_sets_writer_result(self, finished_application):
        svc.grade_writing_test(finished_application, 82, "Good")
        writer = finished_application.writer
        assert writer.writing_test_score == 82
        assert writer.writing_test_status == "passed"

    def test_grade_below_threshold_fails(self, finished_application):
        svc.grade_writing_test(finished_application, 40)
        assert finished_application.writer.writing_test_status == "failed"


class TestQueries:

    def test_get_application_not_found(self, db_session):
        with pytest.raises(NotFound):
            svc.get_application("app-missing")

    def test_pending_reviews_fifo(self, db_session, writer, other_writer, fill_application):
        first = fill_application(other_writer.application)
        second = fill_application(writer.application)
        first.submit()
        second.submit()
        first.submitted_at = datetime.utcnow() - timedelta(days=2)
        second.submitted_at = datetime.utcnow() - timedelta(days=5)
        db_session.commit()

        pending = svc.get_pending_reviews()
        assert [a.id for a in pending] == [second.id, first.id]

    def test_stats_zero_filled(self, db_session, writer, other_writer, admin):
        svc.reject_application(other_writer.application, admin.id, "other")
        stats = svc.get_application_stats()
        assert set(stats) == set(APPLICATION_STATUSES)
        assert stats["incomplete"] == 1
        assert stats["rejected"] == 1
        assert stats["approved"] == 0

    def test_list_applications_search(self, db_session, writer, other_writer):
        results = svc.list_applications(search="smith").all()
        assert [a.writer_id for a in results] == [other_writer.id]


class TestDocuments:

    def _pdf(self, name):
        return FileStorage(stream=io.BytesIO(b"%PDF-1.4"), filename=name)

    def test_cv_upload_mirrors_onto_writer(self, writer):
        records = svc.upload_documents(writer.application, "cv", [self._pdf("cv.pdf")])
        assert writer.application.documents["cv"]["stored_path"] == records[0]["stored_path"]
        assert writer.cv["filename"] == "cv.pdf"

    def test_new_cv_replaces_old_file(self, app, writer):
        old = svc.upload_documents(writer.application, "cv", [self._pdf("old.pdf")])[0]
        svc.upload_documents(writer.application, "cv", [self._pdf("new.pdf")])
        assert not os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], old["stored_path"]))
        assert writer.application.documents["cv"]["filename"] == "new.pdf"

    def test_upload_refused_once_submitted(self, app, finished_application):
        svc.submit_application(finished_application)
        before = set(os.listdir(app.config["UPLOAD_FOLDER"]))
        with pytest.raises(ValidationFailed) as exc:
            svc.upload_documents(finished_application, "sample_works", [self._pdf("s.pdf")])
        assert exc.value.code == "APPLICATION_LOCKED"
        assert set(os.listdir(app.config["UPLOAD_FOLDER"])) == before

    def test_single_cv_only(self, writer):
        with pytest.raises(ValidationFailed) as exc:
            svc.upload_documents(writer.application, "cv", [self._pdf("a.pdf"), self._pdf("b.pdf")])
        assert exc.value.code == "TOO_MANY_FILES"
        assert writer.application.documents["cv"] is None

    def test_files_removed_when_save_fails(self, app, db_session, writer, monkeypatch):
        def failing_commit():
            raise PersistenceError()

        monkeypatch.setattr(svc, "commit", failing_commit)
        with pytest.raises(PersistenceError):
            svc.upload_documents(writer.application, "sample_works", [self._pdf("s.pdf")])

        folder = os.path.join(app.config["UPLOAD_FOLDER"], "samples", writer.id)
        assert not os.path.isdir(folder) or os.listdir(folder) == []
