"""Tests for type environments."""

import pytest
from tscheme.tenv import make_empty_tenv, make_extend_tenv, apply_tenv, tenv_bindings
from tscheme.texp import make_num_texp, make_bool_texp, make_str_texp
from tscheme.result import Ok, Failure
from tscheme.errors import ErrorKind


def test_lookup_in_empty():
    """Every lookup in the empty environment fails."""
    result = apply_tenv(make_empty_tenv(), "x")
    assert isinstance(result, Failure)
    assert result.message == "Unbound variable: x"
    assert result.kind == ErrorKind.UNBOUND_VARIABLE


def test_lookup_innermost_first():
    """Inner frames shadow outer ones."""
    outer = make_extend_tenv(["x", "y"], [make_num_texp(), make_bool_texp()], make_empty_tenv())
    inner = make_extend_tenv(["x"], [make_str_texp()], outer)
    assert apply_tenv(inner, "x") == Ok(make_str_texp())
    assert apply_tenv(inner, "y") == Ok(make_bool_texp())
    # The outer frame is unchanged
    assert apply_tenv(outer, "x") == Ok(make_num_texp())


def test_first_occurrence_in_frame_wins():
    """Within a frame the first binding of a name wins."""
    tenv = make_extend_tenv(["x", "x"], [make_num_texp(), make_bool_texp()], make_empty_tenv())
    assert apply_tenv(tenv, "x") == Ok(make_num_texp())


def test_frame_length_mismatch():
    """Names and types must pair up."""
    with pytest.raises(ValueError):
        make_extend_tenv(["x", "y"], [make_num_texp()], make_empty_tenv())


def test_bindings_hide_shadowed_names():
    """Listing bindings shows only visible names."""
    outer = make_extend_tenv(["x", "y"], [make_num_texp(), make_bool_texp()], make_empty_tenv())
    inner = make_extend_tenv(["x"], [make_str_texp()], outer)
    assert tenv_bindings(inner) == [("x", make_str_texp()), ("y", make_bool_texp())]
