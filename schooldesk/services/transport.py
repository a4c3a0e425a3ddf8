from datetime import datetime

from schooldesk.extensions import db
from schooldesk.models import DriverAssignment, Vehicle


def assign_driver(vehicle, staff, options=None):
    """
    Make ``staff`` the vehicle's current driver.

    Returns ``(assignment, changed)``.  Re-assigning the current driver is a
    no-op; otherwise the open assignment is closed and a new one is opened.
    """
    db.session.query(Vehicle.id).filter(Vehicle.id == vehicle.id).with_for_update().first()

    current = vehicle.current_assignment
    if current and current.staff_id == staff.id:
        return current, False

    now = datetime.utcnow()
    if current:
        current.unassigned_at = now

    assignment = DriverAssignment(
        vehicle=vehicle,
        staff_id=staff.id,
        effective_date=now,
        options=options or {},
    )
    db.session.add(assignment)
    db.session.flush()
    return assignment, True
