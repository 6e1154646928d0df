"""Wire format of daemon requests.

A request is one record: the fields below, in this order, joined with
``FIELD_SEPARATOR`` and terminated by ``RECORD_SEPARATOR``. Name lists are
``;``-joined; regex lists use ``PATTERN_SEPARATOR`` because a pattern may
contain ``;``. Flags are ``1``/``0``, and empty optional fields mean "unset".
"""

from __future__ import annotations

from pathlib import Path

from callslice.core.exceptions import ConfigError
from callslice.core.models import Direction, ExtractionRequest

PROTOCOL_TAG = "callslice/1"
FIELD_SEPARATOR = "\x1f"
RECORD_SEPARATOR = "\x1e"
LIST_SEPARATOR = ";"
PATTERN_SEPARATOR = "\x1d"

FIELDS = (
    "roots",
    "root_patterns",
    "direction",
    "max_depth",
    "ignore",
    "ignore_patterns",
    "show",
    "show_patterns",
    "trim",
    "no_extern",
    "all_locations",
    "end_function",
    "output",
    "output_format",
    "font",
    "size",
    "rankdir",
    "keep_intermediate",
)

_NAME_FIELDS = {"roots", "ignore", "show"}
_PATTERN_FIELDS = {"root_patterns", "ignore_patterns", "show_patterns"}
_RESERVED = (FIELD_SEPARATOR, RECORD_SEPARATOR, PATTERN_SEPARATOR)
_FLAG_FIELDS = {"trim", "no_extern", "all_locations", "keep_intermediate"}
_OPTIONAL_FIELDS = {"end_function", "size"}


def split_list(value: str) -> list[str]:
    """Split a ``;``-separated parameter, dropping empty items."""
    return [item.strip() for item in value.split(LIST_SEPARATOR) if item.strip()]


def encode_request(request: ExtractionRequest) -> str:
    """Serialize a request into one channel record."""
    values = [PROTOCOL_TAG]
    for name in FIELDS:
        value = getattr(request, name)
        if name in _NAME_FIELDS:
            if any(LIST_SEPARATOR in item for item in value):
                raise ConfigError(f"Field '{name}' contains a name with '{LIST_SEPARATOR}'")
            text = LIST_SEPARATOR.join(value)
        elif name in _PATTERN_FIELDS:
            if any(sep in item for item in value for sep in _RESERVED):
                raise ConfigError(f"Field '{name}' contains a reserved separator character")
            text = PATTERN_SEPARATOR.join(value)
        elif name in _FLAG_FIELDS:
            text = "1" if value else "0"
        elif name == "direction":
            text = value.value
        elif value is None:
            text = ""
        else:
            text = str(value)
        if FIELD_SEPARATOR in text or RECORD_SEPARATOR in text:
            raise ConfigError(f"Field '{name}' contains a reserved separator character")
        values.append(text)
    return FIELD_SEPARATOR.join(values) + RECORD_SEPARATOR


def decode_request(record: str) -> ExtractionRequest:
    """Parse one channel record (with or without its terminator)."""
    values = record.strip("\r\n" + RECORD_SEPARATOR).split(FIELD_SEPARATOR)
    if not values or values[0] != PROTOCOL_TAG:
        raise ConfigError(f"Not a {PROTOCOL_TAG} request record")
    if len(values) != len(FIELDS) + 1:
        raise ConfigError(f"Expected {len(FIELDS)} request fields, got {len(values) - 1}")

    kwargs: dict[str, object] = {}
    for name, text in zip(FIELDS, values[1:]):
        if name in _NAME_FIELDS:
            kwargs[name] = split_list(text)
        elif name in _PATTERN_FIELDS:
            kwargs[name] = [item for item in text.split(PATTERN_SEPARATOR) if item]
        elif name in _FLAG_FIELDS:
            if text not in ("0", "1"):
                raise ConfigError(f"Field '{name}' must be 0 or 1, got '{text}'")
            kwargs[name] = text == "1"
        elif name in _OPTIONAL_FIELDS:
            kwargs[name] = text or None
        elif name == "direction":
            try:
                kwargs[name] = Direction(text)
            except ValueError:
                raise ConfigError(f"Unknown direction '{text}'") from None
        elif name == "max_depth":
            try:
                kwargs[name] = int(text) if text else None
            except ValueError:
                raise ConfigError(f"Max depth must be an integer, got '{text}'") from None
        elif name == "output":
            kwargs[name] = Path(text)
        else:
            kwargs[name] = text

    return ExtractionRequest(**kwargs)  # type: ignore[arg-type]
