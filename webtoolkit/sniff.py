"""Content-type sniffing from a byte prefix.

Implements the signature-matching part of the WHATWG MIME Sniffing standard:
at most the first SNIFF_LEN bytes are inspected and classified into a fixed
set of well-known types, falling back to "text/plain; charset=utf-8" for
binary-free data and "application/octet-stream" otherwise.
"""

from __future__ import annotations

from typing import Callable, Optional

from .config import SNIFF_LEN

DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"

# Whitespace bytes skipped before markup signatures.
_WS = frozenset(b"\t\n\x0c\r ")

# Bytes that make data "binary" (never found in text).
_BINARY = frozenset(list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20)))

Matcher = Callable[[bytes, int], Optional[str]]


def _first_non_ws(data: bytes) -> int:
    for i, b in enumerate(data):
        if b not in _WS:
            return i
    return len(data)


def _exact(prefix: bytes, content_type: str) -> Matcher:
    def match(data: bytes, _first: int) -> str | None:
        return content_type if data.startswith(prefix) else None

    return match


def _masked(mask: bytes, pattern: bytes, content_type: str, skip_ws: bool = False) -> Matcher:
    def match(data: bytes, first: int) -> str | None:
        if skip_ws:
            data = data[first:]
        if len(data) < len(pattern):
            return None
        for i, p in enumerate(pattern):
            if data[i] & mask[i] != p:
                return None
        return content_type

    return match


def _html(tag: bytes) -> Matcher:
    """Case-insensitive tag match followed by a tag-terminating byte."""

    def match(data: bytes, first: int) -> str | None:
        data = data[first:]
        if len(data) < len(tag) + 1:
            return None
        for i, t in enumerate(tag):
            b = data[i]
            if ord("A") <= t <= ord("Z"):
                b &= 0xDF
            if b != t:
                return None
        if data[len(tag)] not in (ord(" "), ord(">")):
            return None
        return "text/html; charset=utf-8"

    return match


def _mp4(data: bytes, _first: int) -> str | None:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            # Bytes 12..15 hold the minor version, not a brand.
            continue
        if data[start : start + 3] == b"mp4":
            return "video/mp4"
    return None


def _text(data: bytes, first: int) -> str | None:
    for b in data[first:]:
        if b in _BINARY:
            return None
    return TEXT_PLAIN


_SIGNATURES: tuple[Matcher, ...] = (
    *(
        _html(tag)
        for tag in (
            b"<!DOCTYPE HTML",
            b"<HTML",
            b"<HEAD",
            b"<SCRIPT",
            b"<IFRAME",
            b"<H1",
            b"<DIV",
            b"<FONT",
            b"<TABLE",
            b"<A",
            b"<STYLE",
            b"<TITLE",
            b"<B",
            b"<BODY",
            b"<BR",
            b"<P",
            b"<!--",
        )
    ),
    _masked(b"\xFF\xFF\xFF\xFF\xFF", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),
    _exact(b"%PDF-", "application/pdf"),
    _exact(b"%!PS-Adobe-", "application/postscript"),
    # UTF BOMs
    _masked(b"\xFF\xFF\x00\x00", b"\xFE\xFF\x00\x00", "text/plain; charset=utf-16be"),
    _masked(b"\xFF\xFF\x00\x00", b"\xFF\xFE\x00\x00", "text/plain; charset=utf-16le"),
    _masked(b"\xFF\xFF\xFF\x00", b"\xEF\xBB\xBF\x00", TEXT_PLAIN),
    # Images
    _exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _exact(b"BM", "image/bmp"),
    _exact(b"GIF87a", "image/gif"),
    _exact(b"GIF89a", "image/gif"),
    _masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF\xFF\xFF",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ),
    _exact(b"\x89PNG\x0D\x0A\x1A\x0A", "image/png"),
    _exact(b"\xFF\xD8\xFF", "image/jpeg"),
    # Audio and video
    _masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        b"FORM\x00\x00\x00\x00AIFF",
        "audio/aiff",
    ),
    _masked(b"\xFF\xFF\xFF", b"ID3", "audio/mpeg"),
    _masked(b"\xFF\xFF\xFF\xFF\xFF", b"OggS\x00", "application/ogg"),
    _masked(b"\xFF\xFF\xFF\xFF\xFF\xFF\xFF\xFF", b"MThd\x00\x00\x00\x06", "audio/midi"),
    _masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        b"RIFF\x00\x00\x00\x00AVI ",
        "video/avi",
    ),
    _masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
    ),
    _mp4,
    _exact(b"\x1A\x45\xDF\xA3", "video/webm"),
    # Fonts
    _exact(b"\x00\x01\x00\x00", "font/ttf"),
    _exact(b"OTTO", "font/otf"),
    _exact(b"ttcf", "font/collection"),
    _exact(b"wOFF", "font/woff"),
    _exact(b"wOF2", "font/woff2"),
    # Archives
    _exact(b"\x1F\x8B\x08", "application/x-gzip"),
    _exact(b"PK\x03\x04", "application/zip"),
    _exact(b"Rar!\x1A\x07\x00", "application/x-rar-compressed"),
    _exact(b"Rar!\x1A\x07\x01\x00", "application/x-rar-compressed"),
    _exact(b"\x00\x61\x73\x6D", "application/wasm"),
    _text,
)


def detect_content_type(data: bytes) -> str:
    """Return the sniffed MIME type of data (only the first 512 bytes count)."""
    data = bytes(data[:SNIFF_LEN])
    first = _first_non_ws(data)
    for signature in _SIGNATURES:
        content_type = signature(data, first)
        if content_type is not None:
            return content_type
    return DEFAULT_CONTENT_TYPE

