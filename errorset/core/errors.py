"""Error set collecting meta and field-level problems from one operation."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
import logging
from typing import Any

from fastapi import status

from errorset.core.config import get_settings
from errorset.core.xml_codec import parse_xml
from errorset.core.xml_codec import render_xml
from errorset.schemas.error import ErrorPayload

logger = logging.getLogger(__name__)

MESSAGE_SEPARATOR = "; "


def format_message(msg: str, *args: Any) -> str:
    """Apply printf-style substitution to ``msg``.

    Templates without arguments collapse ``%%`` escapes; those that still hold
    placeholders are kept verbatim. A single mapping argument feeds named
    placeholders, and a template that does not match its arguments falls back
    to the template followed by the argument reprs.
    """
    if not args:
        try:
            return msg % ()
        except (TypeError, ValueError):
            return msg

    values: Any = args
    if len(args) == 1 and isinstance(args[0], Mapping) and args[0]:
        values = args[0]

    try:
        return msg % values
    except (TypeError, ValueError, KeyError):
        logger.warning("Message template %r does not match arguments %r", msg, args)
        return " ".join([msg, *(repr(arg) for arg in args)])


class ErrorSet(Exception):
    """Flat collection of problems with an optional HTTP-style status code.

    ``meta`` holds freestanding messages in the order they were added and
    ``fields`` keeps at most one message per field name. A ``code`` of 0 means
    no status was set and is left out of every rendering.
    """

    def __init__(
        self,
        code: int = 0,
        meta: Sequence[str] | None = None,
        fields: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__()
        self.code = code
        if isinstance(meta, str):
            meta = [meta]
        self.meta: list[str] = list(meta) if meta else []
        self.fields: dict[str, str] = dict(fields) if fields else {}

    def add_meta(self, msg: str, *args: Any) -> None:
        """Append a formatted meta message."""
        self.meta.append(format_message(msg, *args))

    def add(self, msg: str, *args: Any) -> None:
        """Alias for :meth:`add_meta`."""
        self.add_meta(msg, *args)

    def set_field(self, field: str, msg: str, *args: Any) -> None:
        """Set the message for ``field``, replacing any earlier one."""
        self.fields[field] = format_message(msg, *args)

    def set(self, field: str, msg: str, *args: Any) -> None:
        """Alias for :meth:`set_field`."""
        self.set_field(field, msg, *args)

    def exists(self) -> bool:
        """Return True when there is at least one meta or field error."""
        return len(self.meta) > 0 or len(self.fields) > 0

    def is_empty(self) -> bool:
        return not self.exists()

    def in_field(self, field: str) -> bool:
        """Return True when ``field`` has an error, whatever its message."""
        return field in self.fields

    def ordered_fields(self) -> list[tuple[str, str]]:
        """Field entries in rendering order (insertion order unless sorting is enabled)."""
        if get_settings().sort_fields:
            return sorted(self.fields.items())
        return list(self.fields.items())

    def messages(self) -> list[str]:
        """Meta messages followed by ``"<message> (<field>)"`` for every field."""
        output = list(self.meta)
        for field, msg in self.ordered_fields():
            output.append(f"{msg} ({field})")
        return output

    def error(self) -> str:
        return str(self)

    def __str__(self) -> str:
        joined = MESSAGE_SEPARATOR.join(self.messages())
        if self.code == 0:
            return joined
        return f"{self.code}: {joined}"

    def __repr__(self) -> str:
        return f"ErrorSet(code={self.code!r}, meta={self.meta!r}, fields={self.fields!r})"

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(code=self.code, meta=list(self.meta), fields=dict(self.ordered_fields()))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping; ``meta`` and ``fields`` are always present."""
        return self.to_payload().model_dump(exclude=_json_exclude(self.code))

    def to_json(self) -> str:
        return self.to_payload().model_dump_json(exclude=_json_exclude(self.code))

    def to_xml(self) -> str:
        return render_xml(self.to_payload())

    @classmethod
    def from_payload(cls, payload: ErrorPayload) -> ErrorSet:
        return cls(code=payload.code, meta=payload.meta, fields=payload.fields)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ErrorSet:
        return cls.from_payload(ErrorPayload.model_validate(data))

    @classmethod
    def from_json(cls, document: str | bytes) -> ErrorSet:
        return cls.from_payload(ErrorPayload.model_validate_json(document))

    @classmethod
    def from_xml(cls, document: str | bytes) -> ErrorSet:
        return cls.from_payload(parse_xml(document))


def _json_exclude(code: int) -> set[str] | None:
    mode = get_settings().json_code_mode
    if mode == "never" or code == 0:
        return {"code"}
    return None


def new() -> ErrorSet:
    """Create an empty error set."""
    return ErrorSet()


def message(msg: str, *args: Any) -> ErrorSet:
    """Create an uncoded error set holding one meta message."""
    return meta_with_code(0, msg, *args)


def meta_with_code(code: int, msg: str, *args: Any) -> ErrorSet:
    """Create an error set with ``code`` and one meta message."""
    errs = new()
    errs.code = code
    errs.meta = [format_message(msg, *args)]
    return errs


def bad_request() -> ErrorSet:
    """Create an empty error set with a 400 status code."""
    errs = new()
    errs.code = status.HTTP_400_BAD_REQUEST
    return errs
