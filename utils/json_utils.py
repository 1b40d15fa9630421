# utils/json_utils.py
import dataclasses
import datetime


def to_jsonable(value):
    """Datetimes become ISO strings; everything else passes through."""
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


def as_dict(obj):
    """Dataclass (nested lists/dataclasses included) -> plain JSON-safe structure."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: as_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, (list, tuple)):
        return [as_dict(v) for v in obj]
    if isinstance(obj, dict):
        return {k: as_dict(v) for k, v in obj.items()}
    return to_jsonable(obj)
