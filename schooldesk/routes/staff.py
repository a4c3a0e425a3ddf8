from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import Staff, User
from schooldesk.schemas.people import StaffCreate, StaffPatch
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

staff_bp = Blueprint("staff", __name__)


def _check_user(user_id):
    if user_id is None:
        return
    if not scoped(User).filter(User.id == user_id, User.deleted.is_(False)).first():
        raise ValidationFailed({"user_id": "The selected user is invalid."})


@staff_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("staff.view_any")
@guarded("Failed to load staff")
def index():
    payload = table_query(scoped(Staff), Staff, request.args).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Staff/Index", {"staff": payload, "filters": request.args.to_dict()})


@staff_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("staff.create")
@guarded("Failed to create staff member", redirect_to="staff.index")
def store():
    data = validate(StaffCreate, request_data())
    _check_user(data.user_id)

    staff = Staff(school_id=current_school_id(), **data.model_dump())
    db.session.add(staff)
    db.session.commit()
    return respond("Staff member created successfully", 201, "staff.index", staff=staff.to_dict())


@staff_bp.route("/<int:staff_id>", methods=["GET"])
@jwt_required()
@permission_required("staff.view")
def show(staff_id):
    staff = get_scoped_or_404(Staff, staff_id, with_trashed=True)
    data = staff.to_dict()
    if wants_json():
        return jsonify(data), 200
    return render_page("Staff/Show", {"staff": data})


@staff_bp.route("/<int:staff_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("staff.update")
@guarded("Failed to update staff member", redirect_to="staff.index")
def update(staff_id):
    staff = get_scoped_or_404(Staff, staff_id)
    data = validate(StaffPatch, request_data()).model_dump(exclude_unset=True)
    if "user_id" in data:
        _check_user(data["user_id"])

    for field, value in data.items():
        setattr(staff, field, value)
    db.session.commit()
    return respond("Staff member updated successfully", 200, "staff.index", staff=staff.to_dict())


@staff_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("staff.delete")
@guarded("Failed to delete staff", redirect_to="staff.index")
def destroy():
    payload = school_ids(Staff, request_data())
    records = soft_delete_many(Staff, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} staff member(s) deleted successfully", 200, "staff.index")


@staff_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("staff.restore")
@guarded("Failed to restore staff", redirect_to="staff.index")
def restore():
    payload = school_ids(Staff, request_data())
    records = restore_many(Staff, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} staff member(s) restored successfully", 200, "staff.index")
