"""
StoreHub Backend: Store Input Validation
=========================================

What:  Turns a raw store submission (form values) into `StoreFields`.
How:   `validate_store_fields()` never raises for bad input. It returns a
       `ValidationResult` holding either the validated value or the list of
       field errors, and the caller decides what a failure means (the store
       repository raises ValidationError with the first message).

Rules:
    - name:        required on create, trimmed, non-empty, max 255 chars
    - description: trimmed
    - tags:        trimmed, empty entries dropped, duplicates removed (first
                   occurrence wins), each max 100 chars
    - lng / lat:   both or neither; floats within [-180, 180] / [-90, 90]
    - address:     trimmed; empty means no address
"""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from storehub.schemas.store import StoreFields

T = TypeVar("T")

MAX_NAME_LENGTH = 255
MAX_TAG_LENGTH = 100


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult(Generic[T]):
    """Either a validated value or the errors that prevented one."""

    value: Optional[T] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def first_error(self) -> Optional[FieldError]:
        return self.errors[0] if self.errors else None


def _clean_text(raw: Any) -> str:
    return str(raw).strip() if raw is not None else ""


def _clean_tags(raw: Any) -> List[str]:
    if raw is None:
        return []
    values = [raw] if isinstance(raw, str) else list(raw)
    tags: List[str] = []
    for value in values:
        tag = _clean_text(value)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _parse_coordinate(raw: Any) -> Optional[float]:
    """Float from a form value; None for blanks, NaN for garbage."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return math.nan


def validate_store_fields(
    data: Mapping[str, Any],
    partial: bool = False,
) -> ValidationResult[StoreFields]:
    """
    Validate a store submission.

    Args:
        data:    Raw values keyed by name, description, tags, lng, lat,
                 address, photo. Missing keys are left out of the result.
        partial: True for updates. The name is then only checked when it is
                 present.
    """
    errors: List[FieldError] = []
    values: dict = {}

    # ── Name ──────────────────────────────────────────────────────────────
    if "name" in data or not partial:
        name = _clean_text(data.get("name"))
        if not name:
            errors.append(FieldError("name", "Please enter a store name!"))
        elif len(name) > MAX_NAME_LENGTH:
            errors.append(
                FieldError("name", f"Store names are limited to {MAX_NAME_LENGTH} characters.")
            )
        else:
            values["name"] = name

    if "description" in data:
        values["description"] = _clean_text(data.get("description"))

    # ── Tags ──────────────────────────────────────────────────────────────
    if "tags" in data:
        tags = _clean_tags(data.get("tags"))
        too_long = [tag for tag in tags if len(tag) > MAX_TAG_LENGTH]
        if too_long:
            errors.append(
                FieldError("tags", f"Tags are limited to {MAX_TAG_LENGTH} characters.")
            )
        else:
            values["tags"] = tags

    # ── Location ──────────────────────────────────────────────────────────
    if "lng" in data or "lat" in data:
        lng = _parse_coordinate(data.get("lng"))
        lat = _parse_coordinate(data.get("lat"))
        if (lng is None) != (lat is None):
            errors.append(FieldError("location", "You must supply coordinates!"))
        elif lng is not None and lat is not None:
            if math.isnan(lng) or not -180.0 <= lng <= 180.0:
                errors.append(
                    FieldError("lng", "Longitude must be a number between -180 and 180.")
                )
            if math.isnan(lat) or not -90.0 <= lat <= 90.0:
                errors.append(
                    FieldError("lat", "Latitude must be a number between -90 and 90.")
                )
            if not errors:
                values["longitude"] = lng
                values["latitude"] = lat
        else:
            values["longitude"] = None
            values["latitude"] = None

    if "address" in data:
        values["address"] = _clean_text(data.get("address")) or None

    if data.get("photo"):
        values["photo"] = _clean_text(data.get("photo"))

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=StoreFields(**values))
