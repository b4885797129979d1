"""Base model for hydrated documents."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """A stored document with behavior, as returned outside lean mode.

    Undeclared fields are kept as extras, so projected or populated fields
    and reverse populated results can be read and assigned as attributes.
    """

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Any = Field(default=None, alias="_id")

    def to_plain(self) -> dict[str, Any]:
        """Shallow plain-data view keyed by stored field names."""
        data = {"_id": self.id}
        for name in type(self).model_fields:
            if name != "id":
                data[name] = getattr(self, name)
        data.update(self.__pydantic_extra__ or {})
        return data
