from enum import Enum
from decimal import Decimal
from datetime import datetime, date
from sqlalchemy.inspection import inspect


def serialize_value(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value.quantize(Decimal("0.01")))
    return value


def to_dict(model_instance, include_relationships=False, include_hidden=False, exclude=()):
    output = {}
    mapper = inspect(model_instance.__class__)

    for column in mapper.columns:
        key = column.key
        if key in exclude:
            continue
        if not include_hidden and key in ("deleted", "deleted_at", "password_hash"):
            continue
        output[key] = serialize_value(getattr(model_instance, key))

    if include_relationships:
        for rel in mapper.relationships:
            rel_value = getattr(model_instance, rel.key)
            if rel_value is None:
                output[rel.key] = None
            elif isinstance(rel_value, list):
                output[rel.key] = [to_dict(item) for item in rel_value]
            else:
                output[rel.key] = to_dict(rel_value)

    return output
