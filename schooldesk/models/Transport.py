from datetime import datetime
from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


route_vehicles = db.Table(
    "route_vehicles",
    db.Column("route_id", db.Integer, db.ForeignKey("transport_routes.id"), primary_key=True),
    db.Column("vehicle_id", db.Integer, db.ForeignKey("vehicles.id"), primary_key=True),
)


class Vehicle(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "vehicles"
    __search_fields__ = ("name", "registration_number", "fuel_type")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    registration_number = db.Column(db.String(40), nullable=False)
    capacity = db.Column(db.Integer)
    fuel_type = db.Column(db.String(40))

    driver_assignments = db.relationship(
        "DriverAssignment", back_populates="vehicle", lazy=True,
        order_by="DriverAssignment.id"
    )
    open_driver_assignments = db.relationship(
        "DriverAssignment", viewonly=True, lazy=True,
        primaryjoin="and_(Vehicle.id == DriverAssignment.vehicle_id, DriverAssignment.unassigned_at.is_(None))",
    )
    routes = db.relationship("TransportRoute", secondary=route_vehicles, back_populates="vehicles", lazy=True)

    @property
    def current_assignment(self):
        for assignment in reversed(self.driver_assignments):
            if assignment.unassigned_at is None:
                return assignment
        return None

    @property
    def current_driver(self):
        assignment = self.current_assignment
        return assignment.staff if assignment else None

    def to_dict(self, include_history=False):
        data = to_dict(self)
        driver = self.current_driver
        data["current_driver"] = {"id": driver.id, "name": driver.full_name} if driver else None
        if hasattr(self, "route_count"):
            data["route_count"] = self.route_count
        if include_history:
            data["driver_history"] = [a.to_dict() for a in self.driver_assignments]
        return data


class DriverAssignment(db.Model, TimestampMixin):
    __tablename__ = "driver_assignments"

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False)
    effective_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    unassigned_at = db.Column(db.DateTime)
    options = db.Column(db.JSON)

    vehicle = db.relationship("Vehicle", back_populates="driver_assignments")
    staff = db.relationship("Staff")

    def to_dict(self):
        data = to_dict(self)
        data["staff_name"] = self.staff.full_name if self.staff else None
        return data


class TransportRoute(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "transport_routes"
    __search_fields__ = ("name", "description")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    fee = db.Column(db.Numeric(12, 2), default=0)

    vehicles = db.relationship("Vehicle", secondary=route_vehicles, back_populates="routes", lazy=True)

    def to_dict(self):
        data = to_dict(self)
        data["vehicle_ids"] = [vehicle.id for vehicle in self.vehicles]
        if hasattr(self, "vehicle_count"):
            data["vehicle_count"] = self.vehicle_count
        return data
