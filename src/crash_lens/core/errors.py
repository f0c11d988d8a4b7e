from typing import ClassVar


class SectionQueryError(ValueError):
    """Base class for request errors reported in the section error envelope."""

    code: ClassVar[str] = "invalid_argument"


class InvalidPathError(SectionQueryError):
    code = "invalid_path"


class InvalidArgumentError(SectionQueryError):
    code = "invalid_argument"


class InvalidCursorError(SectionQueryError):
    """Raised when a cursor string cannot be decoded or does not fit the request."""

    code = "invalid_cursor"
