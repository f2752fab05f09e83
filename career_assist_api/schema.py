"""Schema descriptors and the total normalizer that coerces decoded JSON to them.

A ``Schema`` is an ordered tuple of ``FieldSpec`` entries. ``normalize`` never
raises: whatever the model returned, the result holds exactly the declared
keys with values of the declared container type. Normalizing an already
normalized record returns an equal record.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FieldKind(str, Enum):
    STRING = "string"
    STRING_LIST = "string_list"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    OBJECT_LIST = "object_list"


# Historical names models use for canonical fields. Consulted once per field,
# canonical name first.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "accomplishments": ("achievements", "bullets", "highlights", "responsibilities"),
    "achievements": ("accomplishments", "bullets", "highlights", "responsibilities"),
    "role": ("title", "position", "job_title"),
    "title": ("role", "position", "job_title", "name"),
    "date_range": ("dates", "period", "duration"),
    "dates": ("date_range", "period", "duration"),
    "institution": ("school", "university"),
    "graduation_date": ("dates", "date", "year"),
    "company": ("employer", "organization"),
    "name": ("full_name", "fullName"),
    "phone": ("phone_number", "phoneNumber", "telephone"),
    "linkedin": ("linkedin_url", "linkedIn"),
    "github": ("github_url", "gitHub"),
    "location": ("city", "address"),
}


@dataclass(frozen=True)
class FieldSpec:
    """One declared field of a record."""

    name: str
    kind: FieldKind
    children: "Schema | None" = None
    default: float = 0
    minimum: float | None = None
    maximum: float | None = None

    @property
    def candidates(self) -> tuple[str, ...]:
        return (self.name,) + FIELD_ALIASES.get(self.name, ())


@dataclass(frozen=True)
class Schema:
    """An ordered set of fields describing one record shape."""

    name: str
    fields: tuple[FieldSpec, ...]

    def keys(self) -> list[str]:
        return [field.name for field in self.fields]

    def field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


def string_field(name: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.STRING)


def string_list_field(name: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.STRING_LIST)


def number_field(
    name: str, default: float = 0, minimum: float | None = None, maximum: float | None = None
) -> FieldSpec:
    return FieldSpec(name, FieldKind.NUMBER, default=default, minimum=minimum, maximum=maximum)


def boolean_field(name: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.BOOLEAN)


def object_field(name: str, children: Schema) -> FieldSpec:
    return FieldSpec(name, FieldKind.OBJECT, children=children)


def object_list_field(name: str, children: Schema) -> FieldSpec:
    return FieldSpec(name, FieldKind.OBJECT_LIST, children=children)


def _coerce_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _coerce_string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _coerce_number(value: Any, spec: FieldSpec) -> float:
    if isinstance(value, bool):
        number = None
    elif isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            number = None
        else:
            if number.is_integer():
                number = int(number)
    else:
        number = None

    if number is None:
        return spec.default
    try:
        finite = math.isfinite(number)
    except OverflowError:
        # An int too large for a float is only usable against a bound
        finite = (spec.maximum if number > 0 else spec.minimum) is not None
    if not finite:
        return spec.default
    if spec.minimum is not None and number < spec.minimum:
        number = spec.minimum
    if spec.maximum is not None and number > spec.maximum:
        number = spec.maximum
    return number


def _coerce_boolean(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _coerce_object_list(value: Any, children: Schema) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [normalize(item, children) for item in value if isinstance(item, dict)]


def _coerce(value: Any, spec: FieldSpec) -> Any:
    if spec.kind is FieldKind.STRING:
        return _coerce_string(value)
    if spec.kind is FieldKind.STRING_LIST:
        return _coerce_string_list(value)
    if spec.kind is FieldKind.NUMBER:
        return _coerce_number(value, spec)
    if spec.kind is FieldKind.BOOLEAN:
        return _coerce_boolean(value)
    if spec.kind is FieldKind.OBJECT:
        return normalize(value, spec.children)
    return _coerce_object_list(value, spec.children)


def _is_empty(value: Any) -> bool:
    return value in ("", [], {}, None)


def _resolve(source: dict[str, Any], spec: FieldSpec) -> Any:
    """Pick the first candidate key whose coerced value is non-empty."""
    fallback = None
    for key in spec.candidates:
        if key not in source:
            continue
        coerced = _coerce(source[key], spec)
        if not _is_empty(coerced):
            return coerced
        if fallback is None:
            fallback = coerced
    return fallback if fallback is not None else _coerce(None, spec)


def normalize(value: Any, schema: Schema) -> dict[str, Any]:
    """Coerce ``value`` into a record with exactly ``schema``'s keys."""
    source = value if isinstance(value, dict) else {}
    return {spec.name: _resolve(source, spec) for spec in schema.fields}
