"""Multipart upload pipeline.

For every file part of a multipart/form-data request:
- sniff the content type from the first 512 bytes
- enforce the configured allow-list (case-insensitive)
- pick the destination name (random + original extension, or the original)
- stream the part into the destination directory, counting bytes written

The whole request body is capped at the effective max_file_size. Processing
stops at the first failing file; files already written stay on disk and are
reported on the raised error's uploaded_files.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import Request

from .config import RENAMED_FILE_LENGTH, SNIFF_LEN, ToolkitConfig, resolve_limits
from .errors import (
    IOFailureError,
    MultipartParseError,
    NoFileProvidedError,
    TooLargeError,
    TooManyFilesError,
    TypeNotAllowedError,
    UploadError,
)
from .filesystem import ensure_dir
from .security import random_string
from .sniff import detect_content_type

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class UploadedFile:
    new_file_name: str
    original_file_name: str
    # Bytes actually written to disk, not the size claimed by the client.
    file_size: int


def _too_large(limit: int) -> TooLargeError:
    return TooLargeError(f"the uploaded file is too big (limit is {limit} bytes)", limit=limit)


class _BodyTooLarge(MultiPartException):
    """Raised from inside the parser so it closes its spooled files first."""


async def _capped_stream(request: Request, limit: int) -> AsyncIterator[bytes]:
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise _BodyTooLarge("request body too large")
        yield chunk


async def _parse_form(request: Request, limit: int) -> FormData:
    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != "multipart/form-data" or "boundary=" not in content_type.lower():
        raise MultipartParseError("request is not multipart/form-data")

    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise _too_large(limit)

    parser = MultiPartParser(request.headers, _capped_stream(request, limit))
    try:
        return await parser.parse()
    except _BodyTooLarge:
        raise _too_large(limit) from None
    except MultiPartException as exc:
        raise MultipartParseError(f"unable to parse multipart form: {exc.message}") from exc


def _file_parts(form: FormData) -> list[UploadFile]:
    # Empty file inputs arrive as parts with an empty filename.
    return [value for _, value in form.multi_items() if isinstance(value, UploadFile) and value.filename]


def _extension(name: str) -> str:
    # Everything from the last dot, so ".env" keeps ".env" and "a.tar.gz" keeps ".gz".
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _destination_name(original: str, rename: bool) -> str:
    if not rename:
        return original
    return f"{random_string(RENAMED_FILE_LENGTH)}{_extension(original)}"


async def _store_part(part: UploadFile, upload_dir: Path, rename: bool, config: ToolkitConfig) -> UploadedFile:
    # Directory components sent by the client are dropped.
    original = os.path.basename(part.filename or "")
    try:
        head = await part.read(SNIFF_LEN)
    except OSError as exc:
        raise IOFailureError(f"unable to read uploaded file {original!r}: {exc}") from exc

    content_type = detect_content_type(head)
    if not config.allows_type(content_type):
        logger.warning("Rejected upload %r: type %s not permitted", original, content_type)
        raise TypeNotAllowedError(content_type)

    new_name = _destination_name(original, rename)
    dest = upload_dir / new_name
    written = 0
    try:
        await part.seek(0)
        with open(dest, "wb") as out:
            while True:
                chunk = await part.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                written += len(chunk)
    except OSError as exc:
        raise IOFailureError(f"unable to store uploaded file {original!r}: {exc}") from exc

    logger.info("Stored upload %r as %s (%d bytes, %s)", original, dest, written, content_type)
    return UploadedFile(new_file_name=new_name, original_file_name=original, file_size=written)


async def _store_parts(
    parts: list[UploadFile], upload_dir: Path, rename: bool, config: ToolkitConfig
) -> list[UploadedFile]:
    uploaded: list[UploadedFile] = []
    try:
        for part in parts:
            uploaded.append(await _store_part(part, upload_dir, rename, config))
    except UploadError as exc:
        exc.uploaded_files = list(uploaded)
        raise
    return uploaded


async def upload_files(
    request: Request,
    upload_dir: str | os.PathLike[str],
    *,
    rename: bool = True,
    config: ToolkitConfig | None = None,
) -> list[UploadedFile]:
    """Validate and persist every file part of a multipart request.

    Args:
        request: Incoming multipart/form-data request; its body is consumed.
        upload_dir: Destination directory, created (with parents) if missing.
        rename: Store under a random 25 character name keeping the original
            extension. When False the client-supplied filename is used as is.
        config: Size cap and allow-list; defaults apply when omitted.

    Returns:
        One UploadedFile per stored part, in multipart order.

    Raises:
        TooLargeError: The request body exceeds max_file_size.
        MultipartParseError: The body is not valid multipart/form-data.
        TypeNotAllowedError: A part's sniffed type is not allowed.
        IOFailureError: Reading a part or writing its destination failed.
    """
    config = config or ToolkitConfig()
    limits = resolve_limits(config)
    upload_path = Path(upload_dir)
    ensure_dir(upload_path)

    form = await _parse_form(request, limits.max_file_size)
    try:
        return await _store_parts(_file_parts(form), upload_path, rename, config)
    finally:
        await form.close()


async def upload_one_file(
    request: Request,
    upload_dir: str | os.PathLike[str],
    *,
    rename: bool = True,
    config: ToolkitConfig | None = None,
) -> UploadedFile:
    """Like upload_files(), for requests carrying exactly one file part.

    Raises NoFileProvidedError / TooManyFilesError before anything is written
    when the request holds zero or several file parts.
    """
    config = config or ToolkitConfig()
    limits = resolve_limits(config)
    upload_path = Path(upload_dir)
    ensure_dir(upload_path)

    form = await _parse_form(request, limits.max_file_size)
    try:
        parts = _file_parts(form)
        if not parts:
            raise NoFileProvidedError("no file was provided")
        if len(parts) > 1:
            raise TooManyFilesError(f"expected exactly one file, got {len(parts)}")
        uploaded = await _store_parts(parts, upload_path, rename, config)
    finally:
        await form.close()
    return uploaded[0]
