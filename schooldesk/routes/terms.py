from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import AcademicSession, Term, TERM_STATUSES
from schooldesk.schemas.academic import TermCreate, TermPatch, TermReopen
from schooldesk.services.academic import (
    current_session, set_active_term, close_term, reopen_term,
)
from schooldesk.services.promotion import create_promotion_batch
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.audit import log_event
from utils.bulk import school_ids, soft_delete_many, restore_many, force_delete_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.notify import notify, users_with_roles
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

terms_bp = Blueprint("terms", __name__)

TERM_COLUMNS = [
    {"field": "academic_session_name", "relation": "academic_session", "related_field": "name",
     "header": "Session"},
    {"field": "status", "filter_type": "in", "options": list(TERM_STATUSES)},
]


def _session_in_school(session_id):
    session = scoped(AcademicSession).filter(
        AcademicSession.id == session_id, AcademicSession.deleted.is_(False)
    ).first()
    if session is None:
        raise ValidationFailed({"academic_session_id": "The selected academic session is invalid."})
    return session


@terms_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("term.view_any")
@guarded("Failed to load terms")
def index():
    if "academic_session_id" in request.args:
        session_id = request.args.get("academic_session_id", type=int)
        session = scoped(AcademicSession).filter(AcademicSession.id == session_id).first_or_404()
    else:
        session = current_session(current_school_id())

    query = scoped(Term)
    if session is not None:
        query = query.filter(Term.academic_session_id == session.id)

    payload = table_query(query, Term, request.args, TERM_COLUMNS).to_dict()
    payload["academic_session"] = session.to_dict() if session else None
    if wants_json():
        return jsonify(payload), 200
    return render_page("Academic/Terms", {"terms": payload, "filters": request.args.to_dict()})


@terms_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("term.create")
@guarded("Failed to create term", redirect_to="terms.index")
def store():
    data = validate(TermCreate, request_data())
    session = _session_in_school(data.academic_session_id)

    term = Term(
        school_id=current_school_id(),
        academic_session_id=session.id,
        name=data.name,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        status="pending" if data.status == "active" else data.status,
        color=data.color,
    )
    db.session.add(term)
    db.session.flush()
    if data.status == "active":
        set_active_term(term)
    db.session.commit()

    return respond("Term created successfully", 201, "terms.index", term=term.to_dict())


@terms_bp.route("/<int:term_id>", methods=["GET"])
@jwt_required()
@permission_required("term.view")
def show(term_id):
    term = get_scoped_or_404(Term, term_id, with_trashed=True)
    data = term.to_dict()
    data["timetables"] = [t.to_dict() for t in term.timetables if not t.deleted]
    if wants_json():
        return jsonify(data), 200
    return render_page("Academic/Term", {"term": data})


@terms_bp.route("/<int:term_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("term.update")
@guarded("Failed to update term", redirect_to="terms.index")
def update(term_id):
    term = get_scoped_or_404(Term, term_id)
    data = validate(TermPatch, request_data()).model_dump(exclude_unset=True)
    status = data.pop("status", None)
    if status is not None and term.status == "closed":
        raise ValidationFailed({"status": "This term is closed. Use reopen to change its status."})

    for field, value in data.items():
        setattr(term, field, value)
    if term.end_date <= term.start_date:
        raise ValidationFailed({"end_date": "The end date must be after the start date."})

    if status == "active":
        set_active_term(term)
    elif status is not None:
        term.status = status
    db.session.commit()

    return respond("Term updated successfully", 200, "terms.index", term=term.to_dict())


@terms_bp.route("/<int:term_id>/set-active", methods=["POST"])
@jwt_required()
@permission_required("term.update")
@guarded("Failed to activate term", redirect_to="terms.index")
def set_active(term_id):
    term = get_scoped_or_404(Term, term_id)
    set_active_term(term)
    db.session.commit()
    return respond(f"Term '{term.name}' is now active", 200, "terms.index", term=term.to_dict())


@terms_bp.route("/<int:term_id>/close", methods=["POST"])
@jwt_required()
@permission_required("term.close")
@guarded("Failed to close term", redirect_to="terms.index")
def close(term_id):
    term = get_scoped_or_404(Term, term_id)
    session_finished = close_term(term)

    batch = None
    if session_finished:
        batch, _ = create_promotion_batch(term.academic_session)

    notify(
        users_with_roles(term.school_id, "admin", "principal", "teacher"),
        "term_closed",
        {"term_id": term.id, "term": term.name, "session": term.academic_session.name},
        school_id=term.school_id,
    )
    db.session.commit()

    log_event(
        "TERM_CLOSED", user_id=g.current_user.id, ip=request.remote_addr,
        description=f"Term {term.id} closed in session {term.academic_session_id}",
    )
    return respond(
        f"Term '{term.name}' closed successfully", 200, "terms.index",
        term=term.to_dict(), promotion_batch=batch.to_dict() if batch else None,
    )


@terms_bp.route("/<int:term_id>/reopen", methods=["POST"])
@jwt_required()
@permission_required("term.reopen")
@guarded("Failed to reopen term", redirect_to="terms.index")
def reopen(term_id):
    term = get_scoped_or_404(Term, term_id)
    data = validate(TermReopen, request_data())
    reopen_term(term, data.new_end_date)
    db.session.commit()

    current_app.logger.warning(
        "Term %s reopened by user %s: %s", term.id, g.current_user.id, data.reason
    )
    log_event(
        "TERM_REOPENED", user_id=g.current_user.id, ip=request.remote_addr,
        description=f"Term {term.id} reopened: {data.reason}", level="WARNING",
    )
    return respond(f"Term '{term.name}' reopened successfully", 200, "terms.index", term=term.to_dict())


@terms_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("term.delete")
@guarded("Failed to delete terms", redirect_to="terms.index")
def destroy():
    payload = school_ids(Term, request_data(), force_allowed=True)
    if payload.force:
        records = force_delete_many(Term, payload.ids)
        message = f"{len(records)} term(s) permanently deleted"
    else:
        records = soft_delete_many(Term, payload.ids)
        message = f"{len(records)} term(s) deleted successfully"
    db.session.commit()
    return respond(message, 200, "terms.index")


@terms_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("term.restore")
@guarded("Failed to restore terms", redirect_to="terms.index")
def restore():
    payload = school_ids(Term, request_data())
    records = restore_many(Term, payload.ids)
    for term in records:
        if term.status == "active":
            term.status = "pending"
    db.session.commit()
    return respond(f"{len(records)} term(s) restored successfully", 200, "terms.index")
