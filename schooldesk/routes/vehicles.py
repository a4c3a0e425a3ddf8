from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import Staff, Vehicle
from schooldesk.schemas.transport import VehicleCreate, VehiclePatch, DriverAssign
from schooldesk.services.transport import assign_driver
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

vehicles_bp = Blueprint("vehicles", __name__)

VEHICLE_COLUMNS = [
    {"field": "route_count", "relation": "routes", "aggregate": "count", "header": "Routes"},
    {"field": "driver_name", "relation": "open_driver_assignments.staff", "related_field": "last_name",
     "sortable": False, "header": "Driver"},
]


def _driver(staff_id):
    staff = scoped(Staff).filter(Staff.id == staff_id, Staff.deleted.is_(False)).first()
    if staff is None:
        raise ValidationFailed({"staff_id": "The selected driver is invalid."})
    return staff


@vehicles_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("vehicle.view_any")
@guarded("Failed to load vehicles")
def index():
    payload = table_query(scoped(Vehicle), Vehicle, request.args, VEHICLE_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Transport/Vehicles", {"vehicles": payload, "filters": request.args.to_dict()})


@vehicles_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("vehicle.create")
@guarded("Failed to create vehicle", redirect_to="vehicles.index")
def store():
    data = validate(VehicleCreate, request_data())
    staff = _driver(data.staff_id) if data.staff_id else None

    vehicle = Vehicle(school_id=current_school_id(), **data.model_dump(exclude={"staff_id"}))
    db.session.add(vehicle)
    db.session.flush()
    if staff:
        assign_driver(vehicle, staff)
    db.session.commit()

    current_app.logger.info("Vehicle %s created by user %s", vehicle.id, g.current_user.id)
    return respond("Vehicle created successfully", 201, "vehicles.index", vehicle=vehicle.to_dict())


@vehicles_bp.route("/<int:vehicle_id>", methods=["GET"])
@jwt_required()
@permission_required("vehicle.view")
def show(vehicle_id):
    vehicle = get_scoped_or_404(Vehicle, vehicle_id, with_trashed=True)
    data = vehicle.to_dict(include_history=True)
    data["routes"] = [{"id": route.id, "name": route.name} for route in vehicle.routes]
    if wants_json():
        return jsonify(data), 200
    return render_page("Transport/Vehicle", {"vehicle": data})


@vehicles_bp.route("/<int:vehicle_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("vehicle.update")
@guarded("Failed to update vehicle", redirect_to="vehicles.index")
def update(vehicle_id):
    vehicle = get_scoped_or_404(Vehicle, vehicle_id)
    data = validate(VehiclePatch, request_data()).model_dump(exclude_unset=True)
    staff_id = data.pop("staff_id", None)

    for field, value in data.items():
        setattr(vehicle, field, value)
    if staff_id:
        assign_driver(vehicle, _driver(staff_id))
    db.session.commit()

    return respond("Vehicle updated successfully", 200, "vehicles.index", vehicle=vehicle.to_dict())


@vehicles_bp.route("/<int:vehicle_id>/assign-driver", methods=["POST"])
@jwt_required()
@permission_required("vehicle.assign_driver")
@guarded("Failed to assign driver", redirect_to="vehicles.index")
def assign(vehicle_id):
    vehicle = get_scoped_or_404(Vehicle, vehicle_id)
    data = validate(DriverAssign, request_data())
    staff = _driver(data.staff_id)

    assignment, changed = assign_driver(vehicle, staff, data.options)
    db.session.commit()

    message = "Driver assigned successfully" if changed else "Driver is already assigned to this vehicle"
    return respond(
        message, 200, "vehicles.show", {"vehicle_id": vehicle.id},
        assignment=assignment.to_dict(), changed=changed,
    )


@vehicles_bp.route("/<int:vehicle_id>/drivers", methods=["GET"])
@jwt_required()
@permission_required("vehicle.view")
def driver_history(vehicle_id):
    vehicle = get_scoped_or_404(Vehicle, vehicle_id, with_trashed=True)
    history = sorted(vehicle.driver_assignments, key=lambda a: (a.effective_date, a.id), reverse=True)
    return jsonify({"data": [assignment.to_dict() for assignment in history]}), 200


@vehicles_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("vehicle.delete")
@guarded("Failed to delete vehicles", redirect_to="vehicles.index")
def destroy():
    payload = school_ids(Vehicle, request_data())
    records = soft_delete_many(Vehicle, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} vehicle(s) deleted successfully", 200, "vehicles.index")


@vehicles_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("vehicle.restore")
@guarded("Failed to restore vehicles", redirect_to="vehicles.index")
def restore():
    payload = school_ids(Vehicle, request_data())
    records = restore_many(Vehicle, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} vehicle(s) restored successfully", 200, "vehicles.index")
