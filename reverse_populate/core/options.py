"""Reverse populate call options.

PopulateOptions is a Pydantic model for the type-safe call contract.
Mandatory fields are checked for presence before field validation so a
missing field always surfaces as MissingFieldError naming that field.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)

from reverse_populate.core.exceptions import InvalidOptionError, MissingFieldError

REQUIRED_FIELDS: tuple[str, ...] = (
    "model_array",
    "store_where",
    "array_pop",
    "related_model",
    "id_field",
)

# Original option names accepted as aliases of the snake_case fields
OPTION_ALIASES: dict[str, str] = {
    "modelArray": "model_array",
    "storeWhere": "store_where",
    "arrayPop": "array_pop",
    "mongooseModel": "related_model",
    "idField": "id_field",
}


class PopulateOptions(BaseModel):
    """Options for a single reverse populate call."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="forbid",
        frozen=True,
        protected_namespaces=(),
    )

    model_array: Any
    store_where: str = Field(min_length=1)
    array_pop: StrictBool
    related_model: Any
    id_field: str = Field(min_length=1)
    filters: dict[str, Any] | None = None
    select: str | None = None
    populate: str | None = None
    sort: Any = None
    lean: StrictBool = False

    @field_validator("model_array")
    @classmethod
    def check_model_array(cls, value: Any) -> Any:
        # Not copied: the caller gets its own sequence back
        if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
            raise ValueError("model_array must be a sequence of parent entities")
        if not hasattr(value, "__len__"):
            raise ValueError("model_array must be a sized sequence, not an iterator")
        return value

    @field_validator("related_model")
    @classmethod
    def check_related_model(cls, value: Any) -> Any:
        if not callable(getattr(value, "find", None)):
            raise ValueError("related_model must expose a callable find(filter, projection)")
        return value

    @model_validator(mode="before")
    @classmethod
    def check_required(cls, data: Any) -> Any:
        # Runs before field validation so absence is never reported as invalid
        if not isinstance(data, Mapping):
            return data
        normalized = {OPTION_ALIASES.get(key, key): value for key, value in data.items()}
        for field_name in REQUIRED_FIELDS:
            # Presence, not truthiness: array_pop=False is valid
            if normalized.get(field_name) is None:
                raise MissingFieldError(field_name)
        return normalized

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidOptionError(str(e)) from e

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PopulateOptions:
        """Validate a raw option mapping.

        Keyword construction (``PopulateOptions(**raw)``) behaves the same.

        Args:
            raw: Options keyed by snake_case names or their original aliases.

        Returns:
            PopulateOptions instance.

        Raises:
            MissingFieldError: A mandatory field is absent or None.
            InvalidOptionError: A field has an unusable value or is unknown.
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise InvalidOptionError(str(e)) from e

    @property
    def related_name(self) -> str:
        """Human-readable name of the related model, for logs and errors."""
        name = getattr(self.related_model, "name", None)
        if isinstance(name, str):
            return name
        return type(self.related_model).__name__


def coerce_options(
    options: PopulateOptions | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
) -> PopulateOptions:
    """Normalize the (options, **kwargs) call forms into PopulateOptions."""
    if isinstance(options, PopulateOptions):
        if not overrides:
            return options
        # model_dump would copy model_array
        options = {name: getattr(options, name) for name in PopulateOptions.model_fields}
    merged: dict[str, Any] = dict(options or {})
    merged.update(overrides)
    return PopulateOptions.from_mapping(merged)
