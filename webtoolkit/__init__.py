"""Helpers for common web-backend chores on the FastAPI / Starlette stack.

Route handlers stay thin; the chores live here:
- multipart uploads with content sniffing, allow-list and safe renaming
- forced-download file responses
- strict JSON request decoding and {error, message, data} envelope responses
- slugs, random tokens, directory creation
- pushing JSON to a remote endpoint

Configuration is an immutable ToolkitConfig owned by the caller. Errors are
ToolkitError subclasses carrying the HTTP status to answer with.
"""
from __future__ import annotations

from .config import Limits, ToolkitConfig, resolve_limits
from .downloads import download_static_file
from .errors import (
    EmptyBodyError,
    EmptyInputError,
    EmptyResultError,
    IOFailureError,
    JSONDecodeFailure,
    JSONTypeMismatchError,
    MalformedJSONError,
    MultipartParseError,
    MultipleValuesError,
    NoFileProvidedError,
    SlugifyError,
    ToolkitError,
    TooLargeError,
    TooManyFilesError,
    TypeNotAllowedError,
    UnexpectedEOFError,
    UnknownFieldError,
    UploadError,
)
from .filesystem import ensure_dir
from .jsonio import JSONEnvelope, decode_json, error_json, read_json, write_json
from .remote import push_json, push_json_async
from .security import random_string
from .sniff import detect_content_type
from .text import slugify
from .uploads import UploadedFile, upload_files, upload_one_file

__all__ = [
    "EmptyBodyError",
    "EmptyInputError",
    "EmptyResultError",
    "IOFailureError",
    "JSONDecodeFailure",
    "JSONEnvelope",
    "JSONTypeMismatchError",
    "Limits",
    "MalformedJSONError",
    "MultipartParseError",
    "MultipleValuesError",
    "NoFileProvidedError",
    "SlugifyError",
    "ToolkitConfig",
    "ToolkitError",
    "TooLargeError",
    "TooManyFilesError",
    "TypeNotAllowedError",
    "UnexpectedEOFError",
    "UnknownFieldError",
    "UploadError",
    "UploadedFile",
    "decode_json",
    "detect_content_type",
    "download_static_file",
    "ensure_dir",
    "error_json",
    "push_json",
    "push_json_async",
    "random_string",
    "read_json",
    "resolve_limits",
    "slugify",
    "upload_files",
    "upload_one_file",
    "write_json",
]
