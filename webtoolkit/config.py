from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_MAX_FILE_SIZE = 1024 * 1024 * 1024  # 1GiB
DEFAULT_MAX_JSON_SIZE = 1024 * 1024  # 1MiB

# Number of leading bytes inspected when sniffing an upload's content type.
SNIFF_LEN = 512

# Length of the random part of a renamed upload.
RENAMED_FILE_LENGTH = 25

DIR_MODE = 0o755

# Reference app upload directory.
# Default: project-local ./uploads. Override with env var WEBTOOLKIT_UPLOAD_DIR.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
UPLOAD_DIR = Path(os.environ.get("WEBTOOLKIT_UPLOAD_DIR") or _PROJECT_ROOT / "uploads")


def _env_int(name: str, default: int = 0) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return int(raw)


def _env_bool(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ToolkitConfig:
    """Caller-owned limits and policies shared by the helpers.

    Size fields left at 0 fall back to their defaults through resolve_limits();
    the config itself is never modified.
    """

    max_file_size: int = 0
    # The ONLY content types accepted for upload; empty means any type.
    allowed_file_types: frozenset[str] = field(default_factory=frozenset)
    max_json_size: int = 0
    allow_unknown_json_fields: bool = False

    @classmethod
    def from_env(cls) -> "ToolkitConfig":
        raw_types = os.environ.get("WEBTOOLKIT_ALLOWED_FILE_TYPES", "")
        return cls(
            max_file_size=_env_int("WEBTOOLKIT_MAX_FILE_SIZE"),
            allowed_file_types=frozenset(t.strip() for t in raw_types.split(",") if t.strip()),
            max_json_size=_env_int("WEBTOOLKIT_MAX_JSON_SIZE"),
            allow_unknown_json_fields=_env_bool("WEBTOOLKIT_ALLOW_UNKNOWN_JSON_FIELDS"),
        )

    def allows_type(self, content_type: str) -> bool:
        if not self.allowed_file_types:
            return True
        wanted = content_type.lower()
        return any(t.lower() == wanted for t in self.allowed_file_types)


@dataclass(frozen=True)
class Limits:
    max_file_size: int
    max_json_size: int


def resolve_limits(config: ToolkitConfig | None = None) -> Limits:
    """Effective byte caps for a config snapshot (defaults for unset sizes)."""
    config = config or ToolkitConfig()
    return Limits(
        max_file_size=config.max_file_size if config.max_file_size > 0 else DEFAULT_MAX_FILE_SIZE,
        max_json_size=config.max_json_size if config.max_json_size > 0 else DEFAULT_MAX_JSON_SIZE,
    )
