"""Unit tests for extraction filters."""

import pytest

from callslice.core.exceptions import ConfigError
from callslice.core.graph import TRIM_SET, FilterRegistry, Verdict
from callslice.core.graph.filters import compile_patterns
from callslice.core.models import ExtractionRequest, Node


def make_node(name: str, defined: bool = True) -> Node:
    """Helper to create a node with or without a known definition."""
    return Node(name=name, file="k.c" if defined else None, defined=defined)


class TestClassify:
    """Tests for the exclusion precedence."""

    def test_no_filters_includes_everything(self) -> None:
        filters = FilterRegistry()
        assert filters.classify(make_node("foo")) is Verdict.INCLUDED
        assert filters.classify(make_node("memcpy", defined=False)) is Verdict.INCLUDED
        assert filters.classify(make_node("spin_lock")) is Verdict.INCLUDED

    def test_exact_ignore(self) -> None:
        filters = FilterRegistry(ignore=["foo"])
        assert filters.classify(make_node("foo")) is Verdict.IGNORED
        assert filters.classify(make_node("foobar")) is Verdict.INCLUDED

    def test_pattern_ignore(self) -> None:
        filters = FilterRegistry(ignore_patterns=["^debug_"])
        assert filters.classify(make_node("debug_dump")) is Verdict.IGNORED_PATTERN
        assert filters.classify(make_node("do_debug_dump")) is Verdict.INCLUDED

    def test_exact_ignore_before_pattern(self) -> None:
        filters = FilterRegistry(ignore=["debug_dump"], ignore_patterns=["^debug_"])
        assert filters.classify(make_node("debug_dump")) is Verdict.IGNORED

    def test_trim_only_when_enabled(self) -> None:
        assert "spin_lock" in TRIM_SET
        assert FilterRegistry(trim=True).classify(make_node("spin_lock")) is Verdict.TRIMMED
        assert FilterRegistry(trim=False).classify(make_node("spin_lock")) is Verdict.INCLUDED

    def test_extern_checked_first(self) -> None:
        filters = FilterRegistry(ignore=["memcpy"], trim=True, no_extern=True)
        assert filters.classify(make_node("memcpy", defined=False)) is Verdict.EXTERN

    def test_extern_added_to_dynamic_ignore(self) -> None:
        filters = FilterRegistry(no_extern=True)
        filters.classify(make_node("ext_fn", defined=False))
        assert filters.dynamic_ignore == {"ext_fn"}

    def test_defined_node_not_extern(self) -> None:
        filters = FilterRegistry(no_extern=True)
        assert filters.classify(make_node("foo")) is Verdict.INCLUDED
        assert filters.dynamic_ignore == set()

    def test_excluded_property(self) -> None:
        assert not Verdict.INCLUDED.excluded
        assert all(v.excluded for v in Verdict if v is not Verdict.INCLUDED)


class TestShow:
    """Tests for show membership."""

    def test_show_exact_and_pattern(self) -> None:
        filters = FilterRegistry(show=["foo"], show_patterns=["_ops$"])
        assert filters.is_shown(make_node("foo"))
        assert filters.is_shown(make_node("file_ops"))
        assert not filters.is_shown(make_node("bar"))

    def test_ignore_wins_over_show(self) -> None:
        filters = FilterRegistry(ignore=["foo"], show=["foo"])
        assert filters.classify(make_node("foo")) is Verdict.IGNORED


class TestFromRequest:
    """Tests for building filters from a request."""

    def test_from_request(self) -> None:
        request = ExtractionRequest(
            roots=["main"],
            ignore=["a"],
            ignore_patterns=["^b"],
            show=["c"],
            trim=True,
            no_extern=True,
        )
        filters = FilterRegistry.from_request(request)
        assert filters.ignore == {"a"}
        assert filters.show == {"c"}
        assert filters.trim_set is TRIM_SET
        assert filters.no_extern

    def test_invalid_pattern_raises(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            FilterRegistry(ignore_patterns=["(unclosed"])
        assert "(unclosed" in str(exc_info.value)

    def test_compile_patterns(self) -> None:
        compiled = compile_patterns(["^a", "b$"])
        assert [p.pattern for p in compiled] == ["^a", "b$"]
