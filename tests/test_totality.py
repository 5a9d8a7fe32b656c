"""Tests for totality checking: well-formed type definitions and exhaustive type-case."""

import pytest
from tscheme.parser import parse, parse_exp
from tscheme.totality import (
    check_user_defined_types, check_type_case, has_base_case, same_fields,
    records_are_consistent,
)
from tscheme.hierarchy import get_user_defined_type_by_name
from tscheme.texp import Field, Record, make_num_texp, make_str_texp
from tscheme.result import Ok, Failure
from tscheme.errors import ErrorKind


SHAPES = """
(define-type Shape (Circle (radius : number)) (Square (side : number)))
(define-type Other (Triangle (a : number) (b : number) (c : number)))
"""


def udt(source, name):
    return get_user_defined_type_by_name(name, parse(source)).value


class TestWellFormedness:
    """Test define-type well-formedness."""

    def test_simple_types_are_valid(self):
        """Non-recursive types are always valid."""
        assert check_user_defined_types(parse(SHAPES)) == Ok(True)

    def test_recursive_type_without_base_case(self):
        """A recursive type needs a non-recursive record."""
        program = parse("(define-type Stream (Cons (head : number) (tail : Stream)))")
        result = check_user_defined_types(program)
        assert isinstance(result, Failure)
        assert result.message == "Invalid UDT"
        assert result.kind == ErrorKind.INVALID_UDT

    def test_recursive_type_with_base_case(self):
        """A recursive type with a base case is valid."""
        source = "(define-type IntList (Nil) (Cons (head : number) (tail : IntList)))"
        assert has_base_case(udt(source, "IntList"))
        assert check_user_defined_types(parse(source)) == Ok(True)

    def test_every_case_recursive(self):
        """No base case when every record mentions the type."""
        source = """
        (define-type Tree
          (Leaf (next : Tree))
          (Node (left : Tree) (right : Tree)))
        """
        assert not has_base_case(udt(source, "Tree"))

    def test_non_recursive_type_needs_no_base_case(self):
        """Non-recursive types trivially have a base case."""
        assert has_base_case(udt(SHAPES, "Other"))

    def test_shared_record_with_same_fields(self):
        """A record may appear in several types with the same fields."""
        program = parse("""
        (define-type Shape (Circle (radius : number)) (Square (side : number)))
        (define-type Round (Circle (radius : number)))
        """)
        assert records_are_consistent(program)
        assert check_user_defined_types(program) == Ok(True)

    def test_shared_record_with_conflicting_fields(self):
        """A shared record must not change its fields."""
        program = parse("""
        (define-type Shape (Circle (radius : number)) (Square (side : number)))
        (define-type Round (Circle (radius : string)))
        """)
        assert not records_are_consistent(program)
        assert check_user_defined_types(program).message == "Invalid UDT"

    def test_undeclared_field_type(self):
        """Field types must name declared types or records."""
        result = check_user_defined_types(parse("(define-type T (R (f : Nope)))"))
        assert result.message == "Nope not found"
        assert result.kind == ErrorKind.UNRESOLVED_NAME

    def test_same_fields_ignores_order(self):
        """Field comparison is order-insensitive."""
        r1 = Record("P", (Field("x", make_num_texp()), Field("label", make_str_texp())))
        r2 = Record("P", (Field("label", make_str_texp()), Field("x", make_num_texp())))
        r3 = Record("P", (Field("x", make_num_texp()),))
        assert same_fields(r1, r2)
        assert not same_fields(r1, r3)


class TestTypeCase:
    """Test type-case coverage."""

    @pytest.fixture
    def program(self):
        return parse(SHAPES)

    def test_exhaustive(self, program):
        """One clause per record is exhaustive."""
        tc = parse_exp("(type-case Shape s (Circle (r) r) (Square (x) x))")
        assert check_type_case(tc, program) == Ok(True)

    def test_any_clause_order(self, program):
        """Clause order does not matter."""
        tc = parse_exp("(type-case Shape s (Square (x) x) (Circle (r) r))")
        assert check_type_case(tc, program) == Ok(True)

    def test_missing_clause(self, program):
        """A missing record is rejected."""
        tc = parse_exp("(type-case Shape s (Circle (r) r))")
        result = check_type_case(tc, program)
        assert result.message == "Invalid type-case"
        assert result.kind == ErrorKind.INVALID_TYPE_CASE

    def test_duplicate_clause(self, program):
        """A repeated clause is rejected."""
        tc = parse_exp("(type-case Shape s (Circle (r) r) (Circle (r) r))")
        assert check_type_case(tc, program).message == "Invalid type-case"

    def test_wrong_variable_count(self, program):
        """Clause variables must match the record fields."""
        tc = parse_exp("(type-case Shape s (Circle (r extra) r) (Square (x) x))")
        assert check_type_case(tc, program).message == "Invalid type-case"

    def test_foreign_clause(self, program):
        """Records of other types are rejected."""
        tc = parse_exp("(type-case Shape s (Circle (r) r) (Square (x) x) (Triangle (a b c) a))")
        assert isinstance(check_type_case(tc, program), Failure)

    def test_undeclared_clause(self, program):
        """Undeclared records are rejected."""
        tc = parse_exp("(type-case Shape s (Circle (r) r) (Square (x) x) (Hexagon (a) a))")
        assert isinstance(check_type_case(tc, program), Failure)
