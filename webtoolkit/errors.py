"""Error taxonomy for the toolkit.

Every failure surfaced by the helpers is a ToolkitError subclass. Each carries
the HTTP status a handler should answer with, so callers can pass any of them
straight to error_json(exc, status_code=exc.status_code).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .uploads import UploadedFile


class ToolkitError(Exception):
    """Base class for all toolkit errors."""

    status_code = 400


class TooLargeError(ToolkitError):
    """Raised when a request body exceeds its configured byte cap."""

    status_code = 413

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


class MultipartParseError(ToolkitError):
    """Raised when a request cannot be decoded as multipart/form-data."""


class UploadError(ToolkitError):
    """Base class for failures while storing uploaded files.

    uploaded_files holds the files already written before the failure; they
    are not rolled back.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.uploaded_files: list[UploadedFile] = []


class TypeNotAllowedError(UploadError):
    """Raised when a sniffed content type is not in the allow-list."""

    status_code = 415

    def __init__(self, content_type: str) -> None:
        super().__init__("the uploaded file type is not permitted")
        self.content_type = content_type


class IOFailureError(UploadError):
    """Raised when reading an upload or writing its destination fails."""

    status_code = 500


class NoFileProvidedError(UploadError):
    """Raised when a single-file upload carries no file part."""


class TooManyFilesError(UploadError):
    """Raised when a single-file upload carries more than one file part."""


class JSONDecodeFailure(ToolkitError):
    """Base class for request-body JSON decoding failures."""


class MalformedJSONError(JSONDecodeFailure):
    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class UnexpectedEOFError(MalformedJSONError):
    """Raised when the body ends in the middle of a JSON value."""


class EmptyBodyError(JSONDecodeFailure):
    pass


class JSONTypeMismatchError(JSONDecodeFailure):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UnknownFieldError(JSONDecodeFailure):
    def __init__(self, field: str) -> None:
        super().__init__(f'body contains unknown key "{field}"')
        self.field = field


class MultipleValuesError(JSONDecodeFailure):
    def __init__(self) -> None:
        super().__init__("body must contain only one JSON value")


class SlugifyError(ToolkitError):
    pass


class EmptyInputError(SlugifyError):
    def __init__(self) -> None:
        super().__init__("empty string not permitted")


class EmptyResultError(SlugifyError):
    def __init__(self) -> None:
        super().__init__("after removing characters, slug is zero length")
