from functools import wraps
from flask_jwt_extended import get_jwt_identity
from flask import jsonify, request, g
from schooldesk.extensions import db
from schooldesk.models import User, School
from utils.access_control import resolve_school_id
from utils.maintenance import is_school_locked, MAINTENANCE_ROLES
from utils.permissions import user_can

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


def _load_user():
    user_id = get_jwt_identity()
    if not user_id:
        return None, (jsonify({"error": "Missing or invalid JWT token"}), 401)

    user = db.session.get(User, int(user_id))
    if not user or user.deleted:
        return None, (jsonify({"error": "User not found"}), 401)
    return user, None


def role_required(*allowed_roles):
    """
    Restrict access to users with specific roles.
    Usage: @role_required("admin", "superuser")
    """
    allowed_roles = set(role.lower() for role in allowed_roles)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user, error = _load_user()
            if error:
                return error

            if user.role_name not in allowed_roles:
                return jsonify({"error": "Access forbidden: insufficient permissions"}), 403

            g.current_user = user
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def permission_required(*permissions, school_scoped=True):
    """
    Restrict access to users whose role grants every permission, then bind the
    request to a school.
    Usage: @permission_required("payroll.create")

    The school comes from the user, or for superusers from the ``X-School-Id``
    header or ``school_id`` query parameter.  Writes are refused while the
    school is under maintenance.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user, error = _load_user()
            if error:
                return error

            if not user_can(user, *permissions):
                return jsonify({"error": "Access forbidden: insufficient permissions"}), 403

            g.current_user = user
            if not school_scoped:
                return fn(*args, **kwargs)

            requested = request.headers.get("X-School-Id") or request.args.get("school_id")
            try:
                school_id = resolve_school_id(user, requested)
            except (ValueError, PermissionError) as e:
                return jsonify({"error": str(e)}), 403

            if not school_id:
                return jsonify({"error": "No active school found"}), 400

            g.school = db.session.get(School, school_id)
            if request.method not in SAFE_METHODS and user.role_name not in MAINTENANCE_ROLES:
                if is_school_locked(school_id):
                    return jsonify({"error": f"School {school_id} is under maintenance"}), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
