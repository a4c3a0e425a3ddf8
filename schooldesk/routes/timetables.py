from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import ClassSection, Term, TimeTable, TIMETABLE_STATUSES
from schooldesk.schemas.academic import TimeTableCreate, TimeTablePatch
from schooldesk.services.academic import set_active_timetable
from utils.access_control import scoped, get_scoped_or_404, current_school_id, ids_in_school
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

timetables_bp = Blueprint("timetables", __name__)

TIMETABLE_COLUMNS = [
    {"field": "term_name", "relation": "term", "related_field": "name", "header": "Term"},
    {"field": "status", "filter_type": "in", "options": list(TIMETABLE_STATUSES)},
]


def _sections(section_ids):
    if not section_ids:
        return []
    owned = ids_in_school(ClassSection, section_ids, with_trashed=False)
    foreign = sorted(set(section_ids) - owned)
    if foreign:
        raise ValidationFailed({"section_ids": f"Unknown class sections: {', '.join(map(str, foreign))}"})
    return ClassSection.query.filter(ClassSection.id.in_(section_ids)).all()


@timetables_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("timetable.view_any")
@guarded("Failed to load timetables")
def index():
    query = scoped(TimeTable)
    term_id = request.args.get("term_id", type=int)
    if term_id:
        query = query.filter(TimeTable.term_id == term_id)

    payload = table_query(query, TimeTable, request.args, TIMETABLE_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Academic/TimeTables", {"timetables": payload, "filters": request.args.to_dict()})


@timetables_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("timetable.create")
@guarded("Failed to create timetable", redirect_to="timetables.index")
def store():
    data = validate(TimeTableCreate, request_data())
    term = scoped(Term).filter(Term.id == data.term_id, Term.deleted.is_(False)).first()
    if term is None:
        raise ValidationFailed({"term_id": "The selected term is invalid."})

    timetable = TimeTable(
        school_id=current_school_id(),
        term_id=term.id,
        title=data.title,
        description=data.description,
        effective_date=data.effective_date,
        status="inactive",
    )
    timetable.sections = _sections(data.section_ids)
    db.session.add(timetable)
    db.session.flush()
    if data.status == "active":
        set_active_timetable(timetable)
    db.session.commit()

    return respond("Timetable created successfully", 201, "timetables.index", timetable=timetable.to_dict())


@timetables_bp.route("/<int:timetable_id>", methods=["GET"])
@jwt_required()
@permission_required("timetable.view")
def show(timetable_id):
    timetable = get_scoped_or_404(TimeTable, timetable_id, with_trashed=True)
    data = timetable.to_dict()
    data["sections"] = [section.to_dict() for section in timetable.sections]
    if wants_json():
        return jsonify(data), 200
    return render_page("Academic/TimeTable", {"timetable": data})


@timetables_bp.route("/<int:timetable_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("timetable.update")
@guarded("Failed to update timetable", redirect_to="timetables.index")
def update(timetable_id):
    timetable = get_scoped_or_404(TimeTable, timetable_id)
    data = validate(TimeTablePatch, request_data()).model_dump(exclude_unset=True)
    status = data.pop("status", None)
    section_ids = data.pop("section_ids", None)

    for field, value in data.items():
        setattr(timetable, field, value)
    if section_ids is not None:
        timetable.sections = _sections(section_ids)

    if status == "active":
        set_active_timetable(timetable)
    elif status == "inactive":
        timetable.status = "inactive"
    db.session.commit()

    return respond("Timetable updated successfully", 200, "timetables.index", timetable=timetable.to_dict())


@timetables_bp.route("/<int:timetable_id>/set-active", methods=["POST"])
@jwt_required()
@permission_required("timetable.update")
@guarded("Failed to activate timetable", redirect_to="timetables.index")
def set_active(timetable_id):
    timetable = get_scoped_or_404(TimeTable, timetable_id)
    set_active_timetable(timetable)
    db.session.commit()
    return respond(
        f"Timetable '{timetable.title}' is now active", 200, "timetables.index", timetable=timetable.to_dict()
    )


@timetables_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("timetable.delete")
@guarded("Failed to delete timetables", redirect_to="timetables.index")
def destroy():
    payload = school_ids(TimeTable, request_data())
    records = soft_delete_many(TimeTable, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} timetable(s) deleted successfully", 200, "timetables.index")


@timetables_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("timetable.restore")
@guarded("Failed to restore timetables", redirect_to="timetables.index")
def restore():
    payload = school_ids(TimeTable, request_data())
    records = restore_many(TimeTable, payload.ids)
    for timetable in records:
        timetable.status = "inactive"
    db.session.commit()
    return respond(f"{len(records)} timetable(s) restored successfully", 200, "timetables.index")
