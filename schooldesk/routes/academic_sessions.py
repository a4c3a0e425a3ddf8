from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import AcademicSession, PromotionBatch, StudentEnrollment
from schooldesk.schemas.academic import AcademicSessionCreate, AcademicSessionPatch
from schooldesk.services.academic import set_current_session
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.bulk import school_ids, soft_delete_many, restore_many, force_delete_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

academic_sessions_bp = Blueprint("academic_sessions", __name__)

SESSION_COLUMNS = [
    {"field": "term_count", "relation": "terms", "aggregate": "count", "header": "Terms"},
]


def _ensure_unreferenced(ids):
    """Sessions with enrollments or promotion batches can only be soft deleted."""
    used = {row.academic_session_id for row in StudentEnrollment.query.filter(
        StudentEnrollment.academic_session_id.in_(ids)).with_entities(StudentEnrollment.academic_session_id)}
    used |= {row.academic_session_id for row in PromotionBatch.query.filter(
        PromotionBatch.academic_session_id.in_(ids)).with_entities(PromotionBatch.academic_session_id)}
    if used:
        raise ValidationFailed({"ids": f"Sessions still in use: {', '.join(map(str, sorted(used)))}"})


@academic_sessions_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("academic_session.view_any")
@guarded("Failed to load academic sessions")
def index():
    page = table_query(scoped(AcademicSession), AcademicSession, request.args, SESSION_COLUMNS)
    payload = page.to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Academic/AcademicSessions", {
        "academicSessions": payload,
        "filters": request.args.to_dict(),
    })


@academic_sessions_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("academic_session.create")
@guarded("Failed to create academic session", redirect_to="academic_sessions.index")
def store():
    data = validate(AcademicSessionCreate, request_data())

    session = AcademicSession(
        school_id=current_school_id(),
        name=data.name,
        start_date=data.start_date,
        end_date=data.end_date,
        is_current=False,
    )
    db.session.add(session)
    db.session.flush()
    if data.is_current:
        set_current_session(session)
    db.session.commit()

    current_app.logger.info("Academic session %s created by user %s", session.id, g.current_user.id)
    return respond(
        "Academic session created successfully", 201, "academic_sessions.index",
        academic_session=session.to_dict(),
    )


@academic_sessions_bp.route("/<int:session_id>", methods=["GET"])
@jwt_required()
@permission_required("academic_session.view")
def show(session_id):
    session = get_scoped_or_404(AcademicSession, session_id, with_trashed=True)
    data = session.to_dict()
    data["terms"] = [term.to_dict() for term in session.terms if not term.deleted]
    if wants_json():
        return jsonify(data), 200
    return render_page("Academic/AcademicSession", {"academicSession": data})


@academic_sessions_bp.route("/<int:session_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("academic_session.update")
@guarded("Failed to update academic session", redirect_to="academic_sessions.index")
def update(session_id):
    session = get_scoped_or_404(AcademicSession, session_id)
    data = validate(AcademicSessionPatch, request_data()).model_dump(exclude_unset=True)
    make_current = data.pop("is_current", None)

    for field, value in data.items():
        setattr(session, field, value)
    if session.end_date <= session.start_date:
        raise ValidationFailed({"end_date": "The end date must be after the start date."})

    if make_current:
        set_current_session(session)
    elif make_current is False:
        session.is_current = False
    db.session.commit()

    return respond(
        "Academic session updated successfully", 200, "academic_sessions.index",
        academic_session=session.to_dict(),
    )


@academic_sessions_bp.route("/<int:session_id>/set-current", methods=["POST"])
@jwt_required()
@permission_required("academic_session.update")
@guarded("Failed to set current academic session", redirect_to="academic_sessions.index")
def set_current(session_id):
    session = get_scoped_or_404(AcademicSession, session_id)
    set_current_session(session)
    db.session.commit()

    current_app.logger.info("Academic session %s set as current for school %s", session.id, session.school_id)
    return respond(
        f"Academic session '{session.name}' is now the current session", 200, "academic_sessions.index",
        academic_session=session.to_dict(),
    )


@academic_sessions_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("academic_session.delete")
@guarded("Failed to delete academic sessions", redirect_to="academic_sessions.index")
def destroy():
    payload = school_ids(AcademicSession, request_data(), force_allowed=True)
    if payload.force:
        _ensure_unreferenced(payload.ids)
        records = force_delete_many(AcademicSession, payload.ids)
    else:
        records = soft_delete_many(AcademicSession, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} academic session(s) deleted successfully", 200, "academic_sessions.index")


@academic_sessions_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("academic_session.restore")
@guarded("Failed to restore academic sessions", redirect_to="academic_sessions.index")
def restore():
    payload = school_ids(AcademicSession, request_data())
    records = restore_many(AcademicSession, payload.ids)
    for session in records:
        session.is_current = False
    db.session.commit()
    return respond(f"{len(records)} academic session(s) restored successfully", 200, "academic_sessions.index")
