from datetime import date, datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from flask.json.provider import DefaultJSONProvider


def utcnow():
    return datetime.now(timezone.utc)


def to_object_id(value):
    """Return an ObjectId for ``value`` or None when it is not a valid id"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def isoformat(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class APIJSONProvider(DefaultJSONProvider):
    """JSON provider that writes ISO dates and string ObjectIds"""

    @staticmethod
    def default(o):
        if isinstance(o, datetime):
            return isoformat(o)
        if isinstance(o, date):
            return o.isoformat()
        if isinstance(o, ObjectId):
            return str(o)
        return DefaultJSONProvider.default(o)
