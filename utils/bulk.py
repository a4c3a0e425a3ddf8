from schooldesk.extensions import db
from schooldesk.schemas.base import BulkDelete, IdList
from utils.access_control import ids_in_school, scoped
from utils.errors import ValidationFailed, validate


def school_ids(model, data, force_allowed=False):
    """Validate an ``ids`` payload; every id must belong to the current school."""
    payload = validate(BulkDelete if force_allowed else IdList, data)
    owned = ids_in_school(model, payload.ids)
    foreign = sorted(set(payload.ids) - owned)
    if foreign:
        raise ValidationFailed({"ids": f"Records not found in this school: {', '.join(map(str, foreign))}"})
    return payload


def soft_delete_many(model, ids):
    records = scoped(model).filter(model.id.in_(ids), model.deleted.is_(False)).all()
    for record in records:
        record.soft_delete()
    return records


def restore_many(model, ids):
    records = scoped(model).filter(model.id.in_(ids), model.deleted.is_(True)).all()
    for record in records:
        record.restore()
    return records


def force_delete_many(model, ids):
    records = scoped(model).filter(model.id.in_(ids)).all()
    for record in records:
        db.session.delete(record)
    return records
