"""Explicit validation helpers.

Routers whose input must be pre-filtered before it reaches a schema call
``validate_model`` and get back a ``ValidationResult`` instead of an exception.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

SchemaType = TypeVar("SchemaType", bound=BaseModel)

# Location prefixes FastAPI adds to request validation errors
_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


class FieldError(BaseModel):
    field: str
    message: str


@dataclass
class ValidationResult(Generic[SchemaType]):
    value: Optional[SchemaType] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def field_errors_from_pydantic(errors: Iterable[Mapping[str, Any]]) -> List[FieldError]:
    """Flatten pydantic error dicts into ``FieldError`` entries."""
    field_errors = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in _REQUEST_LOCATIONS]
        field_errors.append(FieldError(field=".".join(location) or "__root__", message=error.get("msg", "Invalid value")))
    return field_errors


def validate_model(
    schema: Type[SchemaType],
    data: Any,
    allowed_fields: Optional[Sequence[str]] = None,
) -> ValidationResult[SchemaType]:
    """Validate ``data`` against ``schema``.

    When ``allowed_fields`` is given, every other key is dropped first.
    """
    if not isinstance(data, dict):
        return ValidationResult(errors=[FieldError(field="__root__", message="Expected a JSON object")])

    payload: Dict[str, Any] = dict(data)
    if allowed_fields is not None:
        payload = {key: value for key, value in payload.items() if key in allowed_fields}

    try:
        return ValidationResult(value=schema.model_validate(payload))
    except ValidationError as e:
        return ValidationResult(errors=field_errors_from_pydantic(e.errors()))
