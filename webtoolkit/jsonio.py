"""Strict JSON request decoding and envelope responses.

read_json() accepts exactly one JSON value per body, capped in size, and
rejects keys the target model does not declare unless told otherwise. Parser
and validation failures are mapped onto the JSONDecodeFailure subclasses so
handlers never see raw json/pydantic errors.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Generic, Mapping, Optional, Sequence, TypeVar, Union

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, RootModel, ValidationError, model_serializer
from starlette.requests import Request
from starlette.responses import JSONResponse

from .config import ToolkitConfig, resolve_limits
from .errors import (
    EmptyBodyError,
    JSONTypeMismatchError,
    MalformedJSONError,
    MultipleValuesError,
    TooLargeError,
    UnexpectedEOFError,
    UnknownFieldError,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
DataT = TypeVar("DataT")

HeaderValues = Union[str, Sequence[str]]

_JSON_WS = " \t\n\r"
_JSON_LITERALS = ("true", "false", "null")
_NUMBER_CHARS = "+-.eE0123456789"
# A number the input ended in the middle of: "-", "1.", "1e", "1e+".
_PARTIAL_NUMBER_RE = re.compile(r"-|-?\d+(?:\.\d*)?(?:[eE][-+]?\d*)?")


class JSONEnvelope(BaseModel, Generic[DataT]):
    """Standard response wrapper: {"error", "message", "data"?}.

    data is left out of the serialized form when it is None.
    """

    error: bool = False
    message: str = ""
    data: Optional[DataT] = None

    @model_serializer(mode="wrap")
    def omit_missing_data(self, handler):
        out = handler(self)
        if self.data is None:
            out.pop("data", None)
        return out


def _reject_constant(name: str) -> Any:
    raise MalformedJSONError(f"body contains badly-formed JSON (invalid literal {name})")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


@lru_cache(maxsize=None)
def _target_model(model: type[ModelT], extra: str) -> type[ModelT]:
    """model with its extra-keys policy replaced for the top-level object."""
    if issubclass(model, RootModel) or model.model_config.get("extra") == extra:
        return model

    class _Target(model):  # type: ignore[valid-type, misc]
        model_config = ConfigDict(extra=extra)

    _Target.__name__ = model.__name__
    _Target.__qualname__ = model.__qualname__
    return _Target


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _JSON_WS:
        pos += 1
    return pos


def _ends_mid_value(text: str, exc: json.JSONDecodeError) -> bool:
    """True when the syntax error only means the input stopped too early."""
    if exc.pos >= len(text) or exc.msg.startswith("Unterminated string"):
        return True
    rest = text[exc.pos:]
    if any(lit.startswith(rest) for lit in _JSON_LITERALS):
        return True
    start = exc.pos
    while start > 0 and text[start - 1] in _NUMBER_CHARS:
        start -= 1
    return _PARTIAL_NUMBER_RE.fullmatch(text[start:]) is not None


def _field_name(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def _map_validation_error(exc: ValidationError, offset: int) -> Exception:
    error = exc.errors()[0]
    kind = error["type"]
    field = _field_name(error["loc"])
    if kind == "json_invalid":
        return MalformedJSONError(f"body contains badly-formed JSON ({error['msg']})")
    if kind == "extra_forbidden":
        return UnknownFieldError(field)
    if kind == "missing":
        return JSONTypeMismatchError(f'body is missing required field "{field}"', field=field)
    if field:
        return JSONTypeMismatchError(f'body contains incorrect JSON type for field "{field}"', field=field)
    return JSONTypeMismatchError(f"body contains incorrect JSON type (at character {offset + 1})")


def decode_json(body: bytes, model: type[ModelT], *, allow_unknown_fields: bool = False) -> ModelT:
    """Decode body as a single JSON value validated against model.

    Raises:
        EmptyBodyError: body is empty or only whitespace.
        UnexpectedEOFError: body ends in the middle of a value.
        MalformedJSONError: syntax error, offset holds the 1-based character.
        JSONTypeMismatchError: a value has the wrong type (or is missing).
        UnknownFieldError: a key the model does not declare.
        MultipleValuesError: anything but whitespace after the first value.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedJSONError("body contains badly-formed JSON (invalid UTF-8)", offset=exc.start + 1) from exc

    start = _skip_ws(text, 0)
    if start == len(text):
        raise EmptyBodyError("body must not be empty")

    try:
        _, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        if _ends_mid_value(text, exc):
            raise UnexpectedEOFError("body contains badly-formed JSON") from exc
        raise MalformedJSONError(
            f"body contains badly-formed JSON (at character {exc.pos + 1})", offset=exc.pos + 1
        ) from exc

    target = _target_model(model, "ignore" if allow_unknown_fields else "forbid")
    try:
        result = target.model_validate_json(text[start:end], strict=True)
    except ValidationError as exc:
        logger.debug("JSON validation failed for %s: %s", model.__name__, exc)
        raise _map_validation_error(exc, start) from exc

    if _skip_ws(text, end) != len(text):
        raise MultipleValuesError()
    return result


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise TooLargeError(f"body must not be larger than {limit} bytes", limit=limit)

    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise TooLargeError(f"body must not be larger than {limit} bytes", limit=limit)
        chunks.append(chunk)
    return b"".join(chunks)


async def read_json(
    request: Request,
    model: type[ModelT],
    *,
    config: ToolkitConfig | None = None,
    max_size: int | None = None,
    allow_unknown_fields: bool | None = None,
) -> ModelT:
    """Read the request body (at most max_size bytes) into an instance of model.

    max_size defaults to the config's effective max_json_size (1MiB) and
    allow_unknown_fields to config.allow_unknown_json_fields.
    """
    config = config or ToolkitConfig()
    limit = max_size if max_size and max_size > 0 else resolve_limits(config).max_json_size
    if allow_unknown_fields is None:
        allow_unknown_fields = config.allow_unknown_json_fields

    body = await _read_body(request, limit)
    return decode_json(body, model, allow_unknown_fields=allow_unknown_fields)


def write_json(
    status_code: int,
    payload: Any,
    *,
    headers: Mapping[str, HeaderValues] | None = None,
) -> JSONResponse:
    """Serialize payload into an application/json response.

    Each header in headers replaces any existing header of that name; a
    sequence value sets several values. Content-Type is always
    application/json, whatever headers says.
    """
    response = JSONResponse(jsonable_encoder(payload), status_code=status_code)
    for name, value in (headers or {}).items():
        del response.headers[name]
        for item in [value] if isinstance(value, str) else value:
            response.headers.append(name, item)
    response.headers["content-type"] = "application/json"
    return response


def error_json(error: BaseException | str, *, status_code: int = 400) -> JSONResponse:
    """Wrap an error message in the envelope with error=true."""
    return write_json(status_code, JSONEnvelope(error=True, message=str(error)))
