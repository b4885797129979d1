"""reverse-populate exception hierarchy.

All exceptions are reverse-populate specific. Raw driver exceptions are
never exposed to callers; they are chained as ``__cause__``.
"""

from __future__ import annotations


class ReversePopulateError(Exception):
    """Base exception for all reverse-populate errors."""


# --- Options ---


class OptionsError(ReversePopulateError):
    """Base for invalid call options."""


class MissingFieldError(OptionsError):
    """Raised when a mandatory option is absent or None."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Missing mandatory field '{field_name}'.")


class InvalidOptionError(OptionsError):
    """Raised when an option is present but has an unusable value."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid reverse populate options: {detail}")


# --- Query ---


class QueryError(ReversePopulateError):
    """Raised when the related-model query fails to build or execute."""

    def __init__(self, model_name: str, original: BaseException) -> None:
        self.model_name = model_name
        self.original = original
        super().__init__(f"Query against '{model_name}' failed: {original}")


# --- Mapping ---


class MappingError(ReversePopulateError):
    """Base for mapping errors."""


class AttachmentError(MappingError):
    """Raised when a result cannot be written onto a parent entity."""

    def __init__(self, store_where: str, target_class: str, detail: str) -> None:
        self.store_where = store_where
        self.target_class = target_class
        super().__init__(f"Cannot attach '{store_where}' to {target_class}: {detail}")


class DocumentMappingError(MappingError):
    """Raised when a raw document cannot be hydrated into its model class."""

    def __init__(self, target_class: str, detail: str) -> None:
        self.target_class = target_class
        super().__init__(f"Cannot map document to {target_class}: {detail}")


# --- Adapter ---


class AdapterError(ReversePopulateError):
    """Base for query adapter errors."""
