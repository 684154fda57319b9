from __future__ import annotations

import re

from .errors import EmptyInputError, EmptyResultError


_NON_SLUG_RE = re.compile(r"[^a-z\d]+", re.ASCII)


def slugify(text: str) -> str:
    """Lower-case text and collapse every run of non [a-z0-9] characters to "-".

    Non-ASCII letters are dropped, not transliterated:
    "hello world こんにちは世界" -> "hello-world".
    """
    if text == "":
        raise EmptyInputError()
    slug = _NON_SLUG_RE.sub("-", text.lower()).strip("-")
    if not slug:
        raise EmptyResultError()
    return slug
