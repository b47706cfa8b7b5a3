"""
Small helpers shared by services and routes.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId

from .error_handling import ValidationFailed


def utcnow() -> datetime:
    """Naive UTC timestamp, the form PyMongo hands back by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value: Any, name: str = "id") -> ObjectId:
    """
    Convert a path/body identifier to ObjectId.

    Raises:
        ValidationFailed: If the value is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationFailed(f"Invalid {name}: {value}")


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a stored or submitted date into a naive UTC datetime.

    Accepts datetime, date, and ISO strings (YYYY-MM-DD or full timestamps,
    with or without a trailing Z). Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        # fromisoformat on older interpreters rejects odd fraction lengths
        match = re.match(r"^(\d{4}-\d{2}-\d{2})", text)
        if not match:
            return None
        parsed = datetime.fromisoformat(match.group(1))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def serialize_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Serialize a MongoDB document for a JSON response.

    ObjectIds become strings and datetimes ISO strings, recursively.
    """
    def convert(value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [convert(v) for v in value]
        return value

    result = convert(doc)
    if "_id" in result:
        result["id"] = result["_id"]
    return result
