from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId


def as_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a string id; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None
