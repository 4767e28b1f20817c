"""Helpers shared by the record services: build, merge and serve records."""
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from models import CamelModel, utc_now_iso
from utils.errors import RecordValidationError

# Envelope fields a client can never change through an update
PROTECTED_FIELDS = frozenset({"id", "user_id", "organization_id", "created_at", "_id"})


def validation_error_from(exc: ValidationError, message: str = "Invalid input") -> RecordValidationError:
    """Convert a pydantic error into the structured 400 listing every field."""
    fields = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return RecordValidationError(message, details={"fields": fields})


def build_record(model: Type[CamelModel], data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate ``data`` as ``model`` and return the storage document.

    Absent optional fields take the model defaults ("" for text, False for flags).
    """
    try:
        return model.model_validate(data).to_document()
    except ValidationError as e:
        raise validation_error_from(e) from e


def merge_update(
    model: Type[CamelModel],
    stored: Dict[str, Any],
    changes: Dict[str, Any],
    keep_on_null: Iterable[str] = (),
) -> Dict[str, Any]:
    """Apply a partial update on top of a stored record.

    Omitted fields keep their stored value. An explicit null clears a text
    field to "" (or a flag to False), except for ``keep_on_null`` fields which
    keep their stored value.
    """
    keep = set(keep_on_null)
    merged = {k: v for k, v in stored.items() if k != "_id"}
    for key, value in changes.items():
        if key in PROTECTED_FIELDS:
            continue
        if value is None:
            if key in keep:
                continue
            value = _blank_for(model, key)
        merged[key] = value
    merged["updated_at"] = utc_now_iso()
    return build_record(model, merged)


def _blank_for(model: Type[CamelModel], key: str) -> Optional[Any]:
    info = model.model_fields.get(key)
    if info is None or info.is_required():
        return None
    return info.get_default(call_default_factory=True)


def to_response(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """camelCase view of a stored document."""
    if document is None:
        return None
    return {to_camel(key): value for key, value in document.items() if key != "_id"}


def to_responses(documents: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [to_response(doc) for doc in documents]
