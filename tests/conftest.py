"""Pytest configuration and fixtures."""
from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from schooldesk import create_app
from schooldesk.config import TestConfig
from schooldesk.extensions import db
from schooldesk.models import AcademicSession, Role, School, Staff, Term, User


@pytest.fixture(autouse=True)
def audit_log(tmp_path, monkeypatch):
    path = tmp_path / "audit.log"
    monkeypatch.setenv("AUDIT_LOG_FILE", str(path))
    return path


@pytest.fixture
def app():
    """Fresh app on an in-memory database; the app context stays pushed for the test."""
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_school(app):
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        school = School(name=name or f"School {counter['n']}")
        db.session.add(school)
        db.session.commit()
        return school
    return _make


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role="admin", school=None, username=None, password="secret123"):
        counter["n"] += 1
        role_obj = Role.query.filter_by(name=role).first()
        if role_obj is None:
            role_obj = Role(name=role)
            db.session.add(role_obj)
        user = User(
            username=username or f"{role}_{counter['n']}",
            role=role_obj,
            school_id=school.id if school else None,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


def auth_headers(user, school_id=None):
    headers = {
        "Authorization": f"Bearer {create_access_token(identity=str(user.id))}",
        "Accept": "application/json",
    }
    if school_id is not None:
        headers["X-School-Id"] = str(school_id)
    return headers


@pytest.fixture
def school(make_school):
    return make_school("Greenfield High")


@pytest.fixture
def admin(make_user, school):
    return make_user("admin", school)


@pytest.fixture
def headers(admin):
    return auth_headers(admin)


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def make_session(school):
    def _make(name="2025", start=date(2025, 1, 10), end=date(2025, 12, 5), is_current=False, owner=None):
        session = AcademicSession(
            school_id=(owner or school).id, name=name, start_date=start, end_date=end, is_current=is_current
        )
        db.session.add(session)
        db.session.commit()
        return session
    return _make


@pytest.fixture
def make_term(school):
    def _make(session, name="Term 1", start=date(2025, 1, 10), end=date(2025, 3, 28), status="pending"):
        term = Term(
            school_id=session.school_id, academic_session_id=session.id, name=name,
            start_date=start, end_date=end, status=status,
        )
        db.session.add(term)
        db.session.commit()
        return term
    return _make


@pytest.fixture
def make_staff(school):
    def _make(first_name="Grace", last_name="Ndlovu", department_role="teacher", user=None, owner=None):
        staff = Staff(
            school_id=(owner or school).id, first_name=first_name, last_name=last_name,
            department_role=department_role, user_id=user.id if user else None,
        )
        db.session.add(staff)
        db.session.commit()
        return staff
    return _make
