"""reverse-populate - attach related documents onto the parents they reference."""

from __future__ import annotations

import logging

from reverse_populate.adapters.mongo import AsyncMongoModel, MongoModel
from reverse_populate.core.exceptions import (
    AdapterError,
    AttachmentError,
    DocumentMappingError,
    InvalidOptionError,
    MappingError,
    MissingFieldError,
    OptionsError,
    QueryError,
    ReversePopulateError,
)
from reverse_populate.core.keys import identities_match, identity_matches
from reverse_populate.core.options import PopulateOptions
from reverse_populate.core.params import build_select_spec
from reverse_populate.core.populate import reverse_populate, reverse_populate_async
from reverse_populate.mapping.document import Document
from reverse_populate.mapping.grouping import group_by_key, key_by

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Populate
    "reverse_populate",
    "reverse_populate_async",
    "PopulateOptions",
    # Adapters
    "MongoModel",
    "AsyncMongoModel",
    "Document",
    # Utilities
    "build_select_spec",
    "group_by_key",
    "key_by",
    "identity_matches",
    "identities_match",
    # Exceptions
    "ReversePopulateError",
    "OptionsError",
    "MissingFieldError",
    "InvalidOptionError",
    "QueryError",
    "MappingError",
    "AttachmentError",
    "DocumentMappingError",
    "AdapterError",
]
