from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictInt

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class HandleState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class BlobLocator(BaseModel):
    """Address of a single blob cell: ``schema.table.column`` at ``row_id``."""

    model_config = ConfigDict(frozen=True)

    table: str = Field(min_length=1)
    column: str = Field(min_length=1)
    row_id: StrictInt = Field(ge=INT64_MIN, le=INT64_MAX)
    schema_name: str = Field(default="main", min_length=1)

    def __str__(self) -> str:
        return f"{self.schema_name}.{self.table}.{self.column}[{self.row_id}]"
