import os
from datetime import date
from schooldesk.extensions import db
from schooldesk.models import (
    AcademicSession, ClassLevel, ClassSection, Role, School, Staff, Term, User,
)
from utils.permissions import ROLE_PERMISSIONS


def _role(name):
    role = Role.query.filter_by(name=name).first()
    if role is None:
        role = Role(name=name)
        db.session.add(role)
    return role


def _user(username, password, role_name, school=None):
    user = User.query.filter_by(username=username).first()
    if user is None:
        user = User(username=username, role=_role(role_name), school=school)
        user.set_password(password)
        db.session.add(user)
    return user


def seed_data(reset=False):
    if reset:
        db.drop_all()
        db.create_all()

    for role_name in ROLE_PERMISSIONS:
        _role(role_name)
    db.session.commit()

    school = School.query.filter_by(name="Greenfield High School").first()
    if school is None:
        school = School(name="Greenfield High School", address="12 Acacia Road", email="office@greenfield.test")
        db.session.add(school)
        db.session.commit()

    _user("superuser", os.getenv("ADMIN_PASSWORD", "change-me-now"), "superuser")
    _user("greenfield_admin", "adminpass", "admin", school)
    principal = _user("greenfield_principal", "principalpass", "principal", school)
    _user("greenfield_accountant", "accountantpass", "accountant", school)
    db.session.commit()

    if not Staff.query.filter_by(school_id=school.id).first():
        db.session.add(Staff(
            school_id=school.id, user_id=principal.id,
            first_name="Grace", last_name="Ndlovu", department_role="principal",
        ))

    if not ClassLevel.query.filter_by(school_id=school.id).first():
        for sequence in range(1, 6):
            level = ClassLevel(school_id=school.id, name=f"Grade {sequence + 7}", sequence=sequence)
            db.session.add(level)
            for section in ("A", "B"):
                db.session.add(ClassSection(school_id=school.id, class_level=level, name=section))

    year = date.today().year
    if not AcademicSession.query.filter_by(school_id=school.id).first():
        session = AcademicSession(
            school_id=school.id, name=f"{year}", start_date=date(year, 1, 10),
            end_date=date(year, 12, 5), is_current=True,
        )
        db.session.add(session)
        terms = [
            ("Term 1", date(year, 1, 10), date(year, 3, 28)),
            ("Term 2", date(year, 4, 14), date(year, 6, 27)),
            ("Term 3", date(year, 7, 21), date(year, 9, 26)),
            ("Term 4", date(year, 10, 6), date(year, 12, 5)),
        ]
        for index, (name, start, end) in enumerate(terms):
            db.session.add(Term(
                school_id=school.id, academic_session=session, name=name,
                start_date=start, end_date=end, status="active" if index == 0 else "pending",
            ))

    db.session.commit()
