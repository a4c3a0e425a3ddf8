from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import MaintenanceLock, School
from schooldesk.schemas.auth import MaintenanceToggle
from utils.audit import log_event
from utils.decorators import role_required
from utils.errors import validate


maintenance_bp = Blueprint("maintenance", __name__)


@maintenance_bp.route("/update-lock", methods=["POST"])
@jwt_required()
@role_required("superuser", "admin")
def update_lock():
    data = validate(MaintenanceToggle, request.get_json(silent=True) or {})
    user = g.current_user

    if user.role_name != "superuser" and data.school_id != user.school_id:
        return jsonify({"error": "Access denied to the requested school"}), 403
    if not db.session.get(School, data.school_id):
        return jsonify({"error": "School not found"}), 404

    lock = MaintenanceLock.query.filter_by(school_id=data.school_id).first()
    if not lock:
        lock = MaintenanceLock(school_id=data.school_id)

    lock.locked = data.locked
    lock.locked_by_id = user.id
    lock.reason = data.reason
    db.session.add(lock)
    db.session.commit()

    log_event("MAINTENANCE_LOCK", user_id=user.id, ip=request.remote_addr,
              description=f"School {data.school_id} {'locked' if data.locked else 'unlocked'}")
    return jsonify({
        "message": f"School {data.school_id} {'locked' if data.locked else 'unlocked'}",
        "school_id": data.school_id,
        "locked": data.locked
    }), 200
