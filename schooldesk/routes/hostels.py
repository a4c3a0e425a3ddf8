from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import Hostel, Staff
from schooldesk.schemas.housing import HostelCreate, HostelPatch
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.notify import notify, users_with_roles
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

hostels_bp = Blueprint("hostels", __name__)

HOSTEL_COLUMNS = [
    {"field": "warden_name", "relation": "warden", "related_field": "last_name", "header": "Warden"},
    {"field": "type", "filter_type": "in", "options": ["boys", "girls", "mixed"]},
]


def _warden(warden_id):
    if warden_id is None:
        return None
    staff = scoped(Staff).filter(Staff.id == warden_id, Staff.deleted.is_(False)).first()
    if staff is None:
        raise ValidationFailed({"warden_id": "The selected warden is invalid."})
    return staff


def _notify_hostel_change(hostels, action):
    """Admins and the wardens of the affected hostels hear about every change."""
    recipients = users_with_roles(current_school_id(), "admin")
    recipients += [h.warden.user for h in hostels if h.warden and h.warden.user]
    for hostel in hostels:
        notify(recipients, f"hostel_{action}", {
            "hostel_id": hostel.id,
            "name": hostel.name,
            "by": g.current_user.username,
        })


@hostels_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("hostel.view_any")
@guarded("Failed to load hostels")
def index():
    payload = table_query(scoped(Hostel), Hostel, request.args, HOSTEL_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Hostels/Index", {"hostels": payload, "filters": request.args.to_dict()})


@hostels_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("hostel.create")
@guarded("Failed to create hostel", redirect_to="hostels.index")
def store():
    data = validate(HostelCreate, request_data())
    _warden(data.warden_id)

    hostel = Hostel(school_id=current_school_id(), **data.model_dump())
    db.session.add(hostel)
    db.session.flush()
    _notify_hostel_change([hostel], "created")
    db.session.commit()
    return respond("Hostel created successfully", 201, "hostels.index", hostel=hostel.to_dict())


@hostels_bp.route("/<int:hostel_id>", methods=["GET"])
@jwt_required()
@permission_required("hostel.view")
def show(hostel_id):
    hostel = get_scoped_or_404(Hostel, hostel_id, with_trashed=True)
    data = hostel.to_dict()
    if wants_json():
        return jsonify(data), 200
    return render_page("Hostels/Show", {"hostel": data})


@hostels_bp.route("/<int:hostel_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("hostel.update")
@guarded("Failed to update hostel", redirect_to="hostels.index")
def update(hostel_id):
    hostel = get_scoped_or_404(Hostel, hostel_id)
    data = validate(HostelPatch, request_data()).model_dump(exclude_unset=True)
    if "warden_id" in data:
        _warden(data["warden_id"])

    for field, value in data.items():
        setattr(hostel, field, value)
    db.session.flush()
    db.session.expire(hostel, ["warden"])
    _notify_hostel_change([hostel], "updated")
    db.session.commit()
    return respond("Hostel updated successfully", 200, "hostels.index", hostel=hostel.to_dict())


@hostels_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("hostel.delete")
@guarded("Failed to delete hostels", redirect_to="hostels.index")
def destroy():
    payload = school_ids(Hostel, request_data())
    records = soft_delete_many(Hostel, payload.ids)
    _notify_hostel_change(records, "deleted")
    db.session.commit()
    return respond(f"{len(records)} hostel(s) deleted successfully", 200, "hostels.index")


@hostels_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("hostel.restore")
@guarded("Failed to restore hostels", redirect_to="hostels.index")
def restore():
    payload = school_ids(Hostel, request_data())
    records = restore_many(Hostel, payload.ids)
    _notify_hostel_change(records, "restored")
    db.session.commit()
    return respond(f"{len(records)} hostel(s) restored successfully", 200, "hostels.index")
