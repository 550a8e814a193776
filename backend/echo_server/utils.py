from datetime import datetime
from typing import Any, Dict, Optional
import logging

from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parses a path id, None when it is not a valid ObjectId."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def format_datetime(value: datetime) -> str:
    # Mongo hands back naive datetimes that are already UTC
    if value.tzinfo is None:
        return value.isoformat() + "Z"
    return value.isoformat()


def json_serializer_for_mongo_types(obj):
    """
    JSON serializer for objects not serializable by default json code
    """
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, datetime):
        return format_datetime(obj)
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Turns a Mongo document into an API-safe dict with a string `id`."""
    if doc is None:
        return None
    result = {}
    for key, value in doc.items():
        if key == "_id":
            key = "id"
        if isinstance(value, (ObjectId, datetime)):
            value = json_serializer_for_mongo_types(value)
        result[key] = value
    return result
