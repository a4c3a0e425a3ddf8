from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import TransportRoute, Vehicle
from schooldesk.schemas.transport import RouteCreate, RoutePatch
from utils.access_control import scoped, get_scoped_or_404, current_school_id, ids_in_school
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

transport_routes_bp = Blueprint("transport_routes", __name__)

ROUTE_COLUMNS = [
    {"field": "vehicle_count", "relation": "vehicles", "aggregate": "count", "header": "Vehicles"},
]


def _vehicles(vehicle_ids):
    if not vehicle_ids:
        return []
    owned = ids_in_school(Vehicle, vehicle_ids, with_trashed=False)
    foreign = sorted(set(vehicle_ids) - owned)
    if foreign:
        raise ValidationFailed({"vehicle_ids": f"Unknown vehicles: {', '.join(map(str, foreign))}"})
    return Vehicle.query.filter(Vehicle.id.in_(vehicle_ids)).all()


@transport_routes_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("route.view_any")
@guarded("Failed to load routes")
def index():
    payload = table_query(scoped(TransportRoute), TransportRoute, request.args, ROUTE_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Transport/Routes", {"routes": payload, "filters": request.args.to_dict()})


@transport_routes_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("route.create")
@guarded("Failed to create route", redirect_to="transport_routes.index")
def store():
    data = validate(RouteCreate, request_data())
    route = TransportRoute(
        school_id=current_school_id(),
        name=data.name,
        description=data.description,
        fee=data.fee,
    )
    route.vehicles = _vehicles(data.vehicle_ids)
    db.session.add(route)
    db.session.commit()
    return respond("Route created successfully", 201, "transport_routes.index", route=route.to_dict())


@transport_routes_bp.route("/<int:route_id>", methods=["GET"])
@jwt_required()
@permission_required("route.view")
def show(route_id):
    route = get_scoped_or_404(TransportRoute, route_id, with_trashed=True)
    data = route.to_dict()
    data["vehicles"] = [vehicle.to_dict() for vehicle in route.vehicles]
    if wants_json():
        return jsonify(data), 200
    return render_page("Transport/Route", {"route": data})


@transport_routes_bp.route("/<int:route_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("route.update")
@guarded("Failed to update route", redirect_to="transport_routes.index")
def update(route_id):
    route = get_scoped_or_404(TransportRoute, route_id)
    data = validate(RoutePatch, request_data()).model_dump(exclude_unset=True)
    vehicle_ids = data.pop("vehicle_ids", None)

    for field, value in data.items():
        setattr(route, field, value)
    if vehicle_ids is not None:
        route.vehicles = _vehicles(vehicle_ids)
    db.session.commit()
    return respond("Route updated successfully", 200, "transport_routes.index", route=route.to_dict())


@transport_routes_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("route.delete")
@guarded("Failed to delete routes", redirect_to="transport_routes.index")
def destroy():
    payload = school_ids(TransportRoute, request_data())
    records = soft_delete_many(TransportRoute, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} route(s) deleted successfully", 200, "transport_routes.index")


@transport_routes_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("route.restore")
@guarded("Failed to restore routes", redirect_to="transport_routes.index")
def restore():
    payload = school_ids(TransportRoute, request_data())
    records = restore_many(TransportRoute, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} route(s) restored successfully", 200, "transport_routes.index")
