"""
Pytest fixtures for ArgentEssay backend tests.

Provides the app with an in-memory database, a clean schema per test,
writer/admin users and JWT auth headers.
"""

import pytest
from flask_jwt_extended import create_access_token

from argentessay.main import create_app
from argentessay.extensions import db
from argentessay.models.user import User
from argentessay.models.application import Application


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app("testing")
    app.config.update({
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(session, email, role="writer", **kwargs):
    kwargs.setdefault("first_name", "Test")
    kwargs.setdefault("last_name", "User")
    user = User(email=email, role=role, **kwargs)
    user.set_password("Password123!")
    session.add(user)
    if role == "writer":
        session.add(Application(writer=user))
    session.commit()
    return user


@pytest.fixture(scope='function')
def writer(db_session):
    """Writer with a fresh step-1 application."""
    return make_user(
        db_session,
        "jane@writers.test",
        first_name="Jane",
        last_name="Doe",
        phone="+254700000001",
        country="Kenya",
    )


@pytest.fixture(scope='function')
def other_writer(db_session):
    return make_user(
        db_session,
        "john@writers.test",
        first_name="John",
        last_name="Smith",
        phone="+254700000002",
        country="Kenya",
    )


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(db_session, "admin@argentessay.test", role="admin",
                     first_name="Ada", last_name="Admin", status="approved")


def auth_headers(user):
    token = create_access_token(identity=user.id, additional_claims={"role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def writer_headers(writer):
    return auth_headers(writer)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


CV_RECORD = {
    "filename": "cv.pdf",
    "stored_path": "cv/usr-test/cv.pdf",
    "size": 1024,
    "uploaded_at": "2024-01-01T00:00:00Z",
    "verified": False,
}


def _fill_application(application, through_test=True):
    # step 1 data lives on the writer fixture already
    application.advance_step()
    application.update_education({
        "highest_degree": "master",
        "field_of_study": "English Literature",
        "university": "University of Nairobi",
        "graduation_year": 2018,
    })
    application.advance_step()
    application.update_expertise({
        "primary_subjects": ["literature", "history"],
        "writing_experience": 4,
    })
    application.advance_step()
    application.attach_document("cv", dict(CV_RECORD))
    application.advance_step()
    if through_test:
        application.start_writing_test("test-001")
        application.complete_writing_test(
            [{"question_id": "q1", "answer": "An essay.", "time_spent": 600}],
            time_spent=600,
        )
    return application


@pytest.fixture(scope='function')
def fill_application():
    """Walk an application through steps 1-4 and, by default, a completed test."""
    return _fill_application


@pytest.fixture(scope='function')
def user_factory(db_session):
    """Create extra users: ``user_factory(email, role="writer", **fields)``."""
    def _make(email, role="writer", **kwargs):
        return make_user(db_session, email, role=role, **kwargs)
    return _make


@pytest.fixture(scope='function')
def finished_application(db_session, writer):
    """Writer application at step 5 with a completed writing test."""
    application = _fill_application(writer.application)
    db_session.commit()
    return application
