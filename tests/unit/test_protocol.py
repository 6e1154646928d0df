"""Unit tests for the daemon request wire format."""

from pathlib import Path

import pytest

from callslice.core.exceptions import ConfigError
from callslice.core.models import Direction, ExtractionRequest
from callslice.server import decode_request, encode_request
from callslice.server.protocol import (
    FIELD_SEPARATOR,
    FIELDS,
    PATTERN_SEPARATOR,
    PROTOCOL_TAG,
    RECORD_SEPARATOR,
    split_list,
)


@pytest.fixture
def request_record() -> str:
    """Create an encoded request with every field set."""
    request = ExtractionRequest(
        roots=["vfs_read", "vfs_write"],
        root_patterns=["^sys_"],
        direction=Direction.REVERSE,
        max_depth=4,
        ignore=["printk"],
        ignore_patterns=["^__"],
        show=["kmalloc"],
        show_patterns=["_ops$"],
        trim=True,
        no_extern=True,
        all_locations=True,
        end_function="do_sync_read",
        output=Path("/tmp/out.svg"),
        output_format="svg",
        font="Courier",
        size="7.5,10",
        rankdir="TB",
        keep_intermediate=True,
    )
    return encode_request(request)


def make_fields(**overrides: str) -> list[str]:
    """Helper to build raw field values for a minimal request."""
    values = {name: "" for name in FIELDS}
    values.update(
        roots="main",
        direction="forward",
        trim="0",
        no_extern="0",
        all_locations="0",
        output="-",
        output_format="plain",
        font="Helvetica",
        rankdir="LR",
        keep_intermediate="0",
    )
    values.update(overrides)
    return [PROTOCOL_TAG] + [values[name] for name in FIELDS]


def join(fields: list[str]) -> str:
    return FIELD_SEPARATOR.join(fields) + RECORD_SEPARATOR


class TestEncodeDecode:
    """Tests for request encoding and decoding."""

    def test_record_shape(self, request_record: str) -> None:
        assert request_record.startswith(PROTOCOL_TAG + FIELD_SEPARATOR)
        assert request_record.endswith(RECORD_SEPARATOR)
        assert request_record.count(RECORD_SEPARATOR) == 1

    def test_decode_restores_request(self, request_record: str) -> None:
        request = decode_request(request_record)
        assert request.roots == ["vfs_read", "vfs_write"]
        assert request.root_patterns == ["^sys_"]
        assert request.direction is Direction.REVERSE
        assert request.max_depth == 4
        assert request.ignore_patterns == ["^__"]
        assert request.trim and request.no_extern and request.all_locations
        assert request.end_function == "do_sync_read"
        assert request.output == Path("/tmp/out.svg")
        assert request.size == "7.5,10"
        assert request.keep_intermediate

    def test_unset_fields(self) -> None:
        request = decode_request(join(make_fields()))
        assert request.max_depth is None
        assert request.end_function is None
        assert request.size is None
        assert request.ignore == []

    def test_trailing_newline_tolerated(self) -> None:
        request = decode_request(join(make_fields()) + "\n")
        assert request.roots == ["main"]

    def test_patterns_keep_semicolons(self) -> None:
        request = ExtractionRequest(
            roots=["main"],
            root_patterns=["^sys_(read;write)$"],
            ignore_patterns=["^(foo;bar)$", "baz"],
            show_patterns=["a;b"],
        )
        decoded = decode_request(encode_request(request))
        assert decoded.root_patterns == ["^sys_(read;write)$"]
        assert decoded.ignore_patterns == ["^(foo;bar)$", "baz"]
        assert decoded.show_patterns == ["a;b"]

    def test_split_list(self) -> None:
        assert split_list("a; b;;c;") == ["a", "b", "c"]
        assert split_list("") == []


class TestDecodeErrors:
    """Tests for malformed records."""

    def test_wrong_tag(self) -> None:
        fields = make_fields()
        fields[0] = "other/9"
        with pytest.raises(ConfigError):
            decode_request(join(fields))

    def test_wrong_field_count(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            decode_request(join(make_fields()[:-1]))
        assert "fields" in str(exc_info.value)

    def test_bad_flag(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            decode_request(join(make_fields(trim="yes")))
        assert "trim" in str(exc_info.value)

    def test_bad_direction(self) -> None:
        with pytest.raises(ConfigError):
            decode_request(join(make_fields(direction="sideways")))

    def test_bad_depth(self) -> None:
        with pytest.raises(ConfigError):
            decode_request(join(make_fields(max_depth="deep")))

    def test_reserved_character_rejected(self) -> None:
        request = ExtractionRequest(roots=["a" + FIELD_SEPARATOR + "b"])
        with pytest.raises(ConfigError):
            encode_request(request)

    def test_semicolon_in_name_rejected(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            encode_request(ExtractionRequest(roots=["main"], ignore=["a;b"]))
        assert "ignore" in str(exc_info.value)

    def test_pattern_separator_in_pattern_rejected(self) -> None:
        request = ExtractionRequest(roots=["main"], show_patterns=["a" + PATTERN_SEPARATOR])
        with pytest.raises(ConfigError):
            encode_request(request)
