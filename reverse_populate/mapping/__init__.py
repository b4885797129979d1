"""Mapping layer - group related records and attach them onto parents."""

from __future__ import annotations

from reverse_populate.mapping.document import Document
from reverse_populate.mapping.grouping import attach_groups, group_by_key, key_by
from reverse_populate.mapping.model import DocumentMapper

__all__ = [
    "Document",
    "DocumentMapper",
    "attach_groups",
    "group_by_key",
    "key_by",
]
