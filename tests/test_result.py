"""Tests for success/failure result values."""

import pytest
from tscheme.result import (
    Ok, Failure, make_ok, make_failure, is_ok, is_failure,
    bind, mapv, either, map_result, zip_with_result, unwrap,
)
from tscheme.errors import TypeCheckError, ErrorKind


def half(n):
    if n % 2:
        return make_failure(f"odd: {n}")
    return make_ok(n // 2)


class TestCombinators:
    """Test the result combinators."""

    def test_bind_success(self):
        """bind feeds the value on."""
        assert bind(make_ok(8), half) == Ok(4)

    def test_bind_short_circuits(self):
        """A failure skips the continuation."""
        calls = []

        def record(v):
            calls.append(v)
            return make_ok(v)

        failure = make_failure("boom")
        assert bind(failure, record) is failure
        assert calls == []

    def test_mapv(self):
        """mapv transforms values and keeps failures."""
        assert mapv(make_ok(2), lambda x: x + 1) == Ok(3)
        assert is_failure(mapv(make_failure("no"), lambda x: x + 1))

    def test_either(self):
        """either picks the branch for the outcome."""
        assert either(make_ok(1), lambda v: f"ok {v}", lambda m: f"fail {m}") == "ok 1"
        assert either(make_failure("x"), lambda v: f"ok {v}", lambda m: f"fail {m}") == "fail x"

    def test_predicates(self):
        """is_ok and is_failure tell outcomes apart."""
        assert is_ok(make_ok(None))
        assert not is_ok(make_failure("x"))
        assert is_failure(make_failure("x"))


class TestSequences:
    """Test mapping over sequences."""

    def test_map_result_all_succeed(self):
        """All values are collected in order."""
        assert map_result(half, [2, 4, 6]) == Ok([1, 2, 3])

    def test_map_result_first_failure_wins(self):
        """The first failure is returned."""
        result = map_result(half, [2, 3, 5])
        assert isinstance(result, Failure)
        assert result.message == "odd: 3"

    def test_map_result_empty(self):
        """An empty sequence succeeds."""
        assert map_result(half, []) == Ok([])

    def test_zip_with_result(self):
        """Pairs are combined in order."""
        assert zip_with_result(lambda x, y: make_ok(x + y), [1, 2], [10, 20]) == Ok([11, 22])

    def test_zip_with_result_failure(self):
        """A failing pair stops the zip."""
        result = zip_with_result(lambda x, y: half(x + y), [1, 2], [1, 1])
        assert result == Failure("odd: 3")


class TestUnwrap:
    """Test the boundary to exceptions."""

    def test_unwrap_ok(self):
        """A success gives its value."""
        assert unwrap(make_ok("number")) == "number"

    def test_unwrap_failure_raises(self):
        """A failure raises with its message and kind."""
        with pytest.raises(TypeCheckError) as exc_info:
            unwrap(make_failure("Invalid UDT", ErrorKind.INVALID_UDT))
        assert str(exc_info.value) == "Invalid UDT"
        assert exc_info.value.kind == ErrorKind.INVALID_UDT
