from __future__ import annotations

import secrets
from pathlib import Path


RANDOM_STRING_SOURCE = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_+"


def random_string(n: int) -> str:
    """Return n characters drawn uniformly from RANDOM_STRING_SOURCE.

    Uses the OS CSPRNG (secrets); generated names double as anti-collision
    identifiers for files in a shared directory, so there is no fallback to a
    predictable generator.
    """
    if n < 0:
        raise ValueError("length must not be negative")
    return "".join(secrets.choice(RANDOM_STRING_SOURCE) for _ in range(n))


def is_safe_basename(name: str) -> bool:
    """Whether name can only ever refer to an entry directly inside a directory.

    Rejects the empty name, "." and "..", and anything holding a path
    separator (either flavour) or a NUL byte.
    """
    if name in ("", ".", ".."):
        return False
    return not any(ch in name for ch in ("/", "\\", "\x00"))


def safe_join(base_dir: Path, name: str) -> Path:
    """Resolve base_dir / name, raising ValueError if it lands outside base_dir.

    Symlinks are followed before the check, so a link pointing out of the
    upload directory is refused as well.
    """
    base = base_dir.resolve()
    target = (base / name).resolve()
    if not target.is_relative_to(base):
        raise ValueError(f"path traversal attempt: {name!r}")
    return target
