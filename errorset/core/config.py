"""Library configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_SORT_FIELDS = False
DEFAULT_JSON_CODE_MODE = "omit_zero"
DEFAULT_STATUS_CODE = 400

JSON_CODE_MODES = ("omit_zero", "never")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {raw!r}")


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _get_choice_env(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized not in choices:
        raise ValueError(f"Invalid value for {name}: {raw!r} (expected one of {', '.join(choices)})")
    return normalized


@dataclass(frozen=True)
class ErrorSetSettings:
    """Runtime settings for rendering and HTTP responses."""

    sort_fields: bool
    json_code_mode: str
    default_status_code: int

    def as_log_dict(self) -> dict[str, str | int | bool]:
        """Return settings in a form suitable for log lines."""
        return {
            "sort_fields": self.sort_fields,
            "json_code_mode": self.json_code_mode,
            "default_status_code": self.default_status_code,
        }


@lru_cache(maxsize=1)
def get_settings() -> ErrorSetSettings:
    """Load settings from the environment."""
    return ErrorSetSettings(
        sort_fields=_get_bool_env("ERRORSET_SORT_FIELDS", DEFAULT_SORT_FIELDS),
        json_code_mode=_get_choice_env("ERRORSET_JSON_CODE_MODE", DEFAULT_JSON_CODE_MODE, JSON_CODE_MODES),
        default_status_code=_get_int_env("ERRORSET_DEFAULT_STATUS_CODE", DEFAULT_STATUS_CODE),
    )
