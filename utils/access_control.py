from flask import g, abort
from schooldesk.extensions import db
from schooldesk.models import School

ELEVATED_ROLES = {"superuser"}


def resolve_school_id(user, requested_id=None):
    """
    Returns the school the request acts on.
    - Elevated roles (superuser) may act on any requested school.
    - Every other role is pinned to its own school.
    - Raises PermissionError when another school is requested.
    """
    if not user:
        raise ValueError("No user provided")

    if requested_id in ("", None):
        requested_id = None
    else:
        try:
            requested_id = int(requested_id)
        except (TypeError, ValueError):
            raise PermissionError("Invalid school identifier")

    if user.role_name in ELEVATED_ROLES:
        school_id = requested_id or user.school_id
        if school_id and not db.session.get(School, school_id):
            raise PermissionError("Requested school does not exist")
        return school_id

    if requested_id and requested_id != user.school_id:
        raise PermissionError("Access denied to the requested school")

    return user.school_id


def current_school_id():
    return g.school.id


def scoped(model):
    """Base query for ``model`` limited to the current school."""
    return model.query.filter(model.school_id == current_school_id())


def get_scoped_or_404(model, record_id, with_trashed=False):
    query = scoped(model).filter(model.id == record_id)
    if not with_trashed and hasattr(model, "deleted"):
        query = query.filter(model.deleted.is_(False))
    record = query.first()
    if record is None:
        abort(404)
    return record


def ids_in_school(model, ids, with_trashed=True):
    """Returns the subset of ``ids`` that belong to the current school."""
    if not ids:
        return set()
    query = scoped(model).filter(model.id.in_(ids))
    if not with_trashed and hasattr(model, "deleted"):
        query = query.filter(model.deleted.is_(False))
    return {record.id for record in query.with_entities(model.id)}
