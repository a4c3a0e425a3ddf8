"""
Academic calendar rules.

Each school has at most one current session, each session at most one active
term and each term at most one active timetable.  Every toggle locks the
school row first and demotes the other records with a single conditional
UPDATE inside the caller's transaction, so concurrent toggles serialize.
"""
from datetime import datetime

from schooldesk.extensions import db
from schooldesk.models import AcademicSession, School, Term, TimeTable
from utils.errors import ValidationFailed


def lock_school(school_id):
    """Row lock on the tenant; a no-op on backends without FOR UPDATE."""
    db.session.query(School.id).filter(School.id == school_id).with_for_update().first()


def current_session(school_id):
    return AcademicSession.query.filter(
        AcademicSession.school_id == school_id,
        AcademicSession.is_current.is_(True),
        AcademicSession.deleted.is_(False),
    ).first()


def set_current_session(session):
    lock_school(session.school_id)
    AcademicSession.query.filter(
        AcademicSession.school_id == session.school_id,
        AcademicSession.id != session.id,
        AcademicSession.is_current.is_(True),
    ).update({AcademicSession.is_current: False}, synchronize_session="fetch")
    session.is_current = True
    db.session.flush()
    return session


def set_active_term(term):
    if term.status == "closed":
        raise ValidationFailed({"status": "Closed terms can only be reactivated through reopen."})
    return _activate_term(term)


def _activate_term(term):
    lock_school(term.school_id)
    Term.query.filter(
        Term.academic_session_id == term.academic_session_id,
        Term.id != term.id,
        Term.status == "active",
    ).update({Term.status: "pending"}, synchronize_session="fetch")
    term.status = "active"
    term.closed_at = None
    db.session.flush()
    return term


def close_term(term):
    """Close an active term. Returns True when the whole session is now closed."""
    if not term.is_active:
        raise ValidationFailed({"status": "Only active terms can be closed."})

    term.status = "closed"
    term.closed_at = datetime.utcnow()
    db.session.flush()

    open_terms = Term.query.filter(
        Term.academic_session_id == term.academic_session_id,
        Term.deleted.is_(False),
        Term.status != "closed",
    ).count()
    return open_terms == 0


def reopen_term(term, new_end_date):
    if term.status != "closed":
        raise ValidationFailed({"status": "This term is not closed and cannot be reopened."})

    session = term.academic_session
    if new_end_date > session.end_date:
        raise ValidationFailed({
            "new_end_date": f"New end date cannot exceed the session end date ({session.end_date.isoformat()})."
        })
    if new_end_date < term.start_date:
        raise ValidationFailed({"new_end_date": "New end date must be on or after the term's start date."})

    last_closed = Term.query.filter(
        Term.academic_session_id == term.academic_session_id,
        Term.deleted.is_(False),
        Term.status == "closed",
    ).order_by(Term.closed_at.desc(), Term.id.desc()).first()
    if not last_closed or last_closed.id != term.id:
        raise ValidationFailed({"term": "Only the most recently closed term can be reopened."})

    term.end_date = new_end_date
    return _activate_term(term)


def set_active_timetable(timetable):
    lock_school(timetable.school_id)
    TimeTable.query.filter(
        TimeTable.term_id == timetable.term_id,
        TimeTable.id != timetable.id,
        TimeTable.status == "active",
    ).update({TimeTable.status: "inactive"}, synchronize_session="fetch")
    timetable.status = "active"
    db.session.flush()
    return timetable
