from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SourceStatus(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class SourceContextEntry(BaseModel):
    """Source snippet attached to a single stack frame."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    thread_id: str
    frame_number: int | None = None
    function: str = ""
    module: str = ""
    source_file: str | None = None
    source_url: str | None = None
    source_raw_url: str | None = None
    line_number: int | None = None
    status: SourceStatus
    start_line: int | None = None
    end_line: int | None = None
    lines: list[str] | None = None
    error: str | None = None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WhereClause(BaseModel):
    """Single equality predicate applied to the elements of an array section."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    field: str
    equals: str | int | float | bool
    case_insensitive: bool = Field(default=True, alias="caseInsensitive")
