"""Tests for program introspection, subtyping and coverage."""

import pytest
from tscheme.parser import parse
from tscheme.hierarchy import *
from tscheme.texp import (
    Field, Record, UserDefinedTExp, make_num_texp, make_str_texp, make_bool_texp,
    make_any_texp, make_proc_texp, make_user_defined_name_texp as name,
)
from tscheme.syntax import NumExp
from tscheme.result import Ok, Failure
from tscheme.errors import ErrorKind


SHAPES = """
(define-type Shape
  (Circle (radius : number))
  (Rectangle (width : number) (height : number)))
(define-type Round
  (Circle (radius : number))
  (Ellipse (a : number) (b : number)))
(define (unit : number) 1)
"""

CIRCLE = Record("Circle", (Field("radius", make_num_texp()),))
RECTANGLE = Record("Rectangle", (Field("width", make_num_texp()), Field("height", make_num_texp())))


@pytest.fixture
def program():
    return parse(SHAPES)


class TestIntrospection:
    """Test queries over a program's declarations."""

    def test_type_definitions(self, program):
        """define-types come back in program order."""
        assert [ud.type_name for ud in get_type_definitions(program)] == ["Shape", "Round"]

    def test_definitions(self, program):
        """Only defines are returned."""
        assert [d.var.var for d in get_definitions(program)] == ["unit"]

    def test_records_flattened_in_order(self, program):
        """Records of all types, shared ones repeated."""
        assert [r.type_name for r in get_records(program)] == \
            ["Circle", "Rectangle", "Circle", "Ellipse"]

    def test_lookup_by_name(self, program):
        """Records and types can be found by name."""
        assert get_record_by_name("Rectangle", program) == Ok(RECTANGLE)
        assert get_user_defined_type_by_name("Shape", program).value.records == (CIRCLE, RECTANGLE)

    def test_lookup_missing(self, program):
        """A missing name is an unresolved-name failure."""
        result = get_user_defined_type_by_name("Circle", program)
        assert result.message == "Circle not found"
        assert result.kind == ErrorKind.UNRESOLVED_NAME

    def test_type_by_name_prefers_user_defined_type(self, program):
        """get_type_by_name tries types before records."""
        assert isinstance(get_type_by_name("Shape", program).value, UserDefinedTExp)
        assert get_type_by_name("Circle", program) == Ok(CIRCLE)
        assert isinstance(get_type_by_name("Triangle", program), Failure)

    def test_record_parents(self, program):
        """A record's parents are the types listing it."""
        assert [ud.type_name for ud in get_record_parents("Circle", program)] == ["Shape", "Round"]
        assert [ud.type_name for ud in get_record_parents("Ellipse", program)] == ["Round"]
        assert get_record_parents("Nope", program) == []


class TestResolution:
    """Test that annotation names refer to declarations."""

    def test_atomic_and_declared_names(self, program):
        """Atomic types and declared names resolve unchanged."""
        for te in [make_num_texp(), name("Shape"), name("Ellipse"),
                   make_proc_texp([name("Circle")], name("Round"))]:
            assert check_texp_resolves(te, program) == Ok(te)

    def test_undeclared_name(self, program):
        """An undeclared name fails."""
        result = check_texp_resolves(name("Triangle"), program)
        assert result.message == "Triangle not found"
        assert result.kind == ErrorKind.UNRESOLVED_NAME

    def test_names_inside_procedure_types(self, program):
        """Parameter and return types are both checked."""
        assert isinstance(check_texp_resolves(make_proc_texp([name("Foo")], make_num_texp()), program),
                          Failure)
        assert isinstance(check_texp_resolves(make_proc_texp([], make_proc_texp([], name("Foo"))),
                                              program), Failure)

    def test_first_unresolved_reported(self, program):
        """A list of annotations stops at the first unknown name."""
        result = check_texps_resolve([name("Shape"), name("A"), name("B")], program)
        assert result.message == "A not found"


class TestSubtype:
    """Test the subtype relation."""

    def test_any_is_top(self, program):
        """Everything is a subtype of any."""
        for te in [make_num_texp(), CIRCLE, name("Shape"), make_proc_texp([], make_str_texp())]:
            assert is_subtype(te, make_any_texp(), program)

    def test_record_below_its_types(self, program):
        """A record is a subtype of every type listing it."""
        shape = get_user_defined_type_by_name("Shape", program).value
        assert is_subtype(CIRCLE, shape, program)
        assert is_subtype(CIRCLE, name("Round"), program)
        assert is_subtype(name("Rectangle"), name("Shape"), program)

    def test_not_subtype(self, program):
        """Subtyping is not reflexive and not upward-closed."""
        assert not is_subtype(name("Rectangle"), name("Round"), program)
        assert not is_subtype(name("Shape"), name("Circle"), program)
        assert not is_subtype(make_num_texp(), make_bool_texp(), program)
        assert not is_subtype(make_num_texp(), make_num_texp(), program)


class TestCheckEqualType:
    """Test the compatibility check used by every typing rule."""

    def test_equal(self, program):
        """Equal types are compatible."""
        assert check_equal_type(make_num_texp(), make_num_texp(), NumExp(1), program) == \
            Ok(make_num_texp())

    def test_name_matches_structure(self, program):
        """A name is compatible with the structure it names, both ways."""
        assert check_equal_type(name("Circle"), CIRCLE, NumExp(1), program) == Ok(CIRCLE)
        assert check_equal_type(CIRCLE, name("Circle"), NumExp(1), program) == Ok(name("Circle"))

    def test_subtype_accepted(self, program):
        """A record is accepted where its type is expected."""
        assert check_equal_type(CIRCLE, name("Shape"), NumExp(1), program) == Ok(name("Shape"))

    def test_supertype_rejected(self, program):
        """A type is not accepted where one of its records is expected."""
        result = check_equal_type(name("Shape"), CIRCLE, NumExp(1), program)
        assert result.message == "Incompatible types: Shape and Circle in 1"
        assert result.kind == ErrorKind.TYPE_MISMATCH


class TestCover:
    """Test finding a common type for several types."""

    def test_parents(self, program):
        """Parent chains for atomic types, records, types and unknown names."""
        assert get_parents_type(make_num_texp(), program) == [make_num_texp()]
        assert get_parents_type(CIRCLE, program) == [name("Circle"), name("Shape"), name("Round")]
        assert get_parents_type(name("Shape"), program) == [name("Shape")]
        assert get_parents_type(name("Unknown"), program) == []

    def test_cover_of_siblings(self, program):
        """Sibling records are covered by their type."""
        assert cover_types([CIRCLE, RECTANGLE], program) == [name("Shape")]
        assert check_cover_type([CIRCLE, RECTANGLE], program) == Ok(name("Shape"))

    def test_cover_of_record_and_type(self, program):
        """A record and its type are covered by the type."""
        assert check_cover_type([name("Circle"), name("Shape")], program) == Ok(name("Shape"))

    def test_cover_of_same_record_is_record(self, program):
        """A record covers itself most specifically."""
        assert cover_types([CIRCLE, CIRCLE], program) == [name("Circle"), name("Shape"), name("Round")]
        assert check_cover_type([CIRCLE, CIRCLE], program) == Ok(name("Circle"))

    def test_cover_of_atomic(self, program):
        """Equal atomic types cover themselves."""
        assert check_cover_type([make_num_texp(), make_num_texp()], program) == Ok(make_num_texp())

    def test_no_cover(self, program):
        """Different atomic types have no cover."""
        result = check_cover_type([make_num_texp(), make_str_texp()], program)
        assert result.message == "No type found to cover number string"
        assert result.kind == ErrorKind.NO_COVER

    def test_no_cover_across_types(self, program):
        """Records of unrelated types have no cover."""
        assert isinstance(check_cover_type([name("Rectangle"), name("Ellipse")], program), Failure)


class TestMostSpecific:
    """Test choosing the most specific type."""

    def test_record_beats_its_type(self, program):
        """A record is more specific than its type."""
        assert most_specific_type([CIRCLE, RECTANGLE, name("Shape")], program) == CIRCLE

    def test_incomparable_first_wins(self, program):
        """Among incomparable types the first one wins."""
        assert most_specific_type([CIRCLE, make_num_texp()], program) == CIRCLE
        assert most_specific_type([make_num_texp(), make_str_texp()], program) == make_num_texp()

    def test_empty_is_any(self, program):
        """No candidates gives any."""
        assert most_specific_type([], program) == make_any_texp()


class TestProperties:
    """Algebraic properties of compatibility and coverage."""

    TYPES = [
        make_num_texp(), make_str_texp(), make_bool_texp(), make_any_texp(), CIRCLE, RECTANGLE,
        name("Shape"), name("Round"), make_proc_texp([make_num_texp()], name("Shape")),
    ]

    def test_reflexive(self, program):
        """Every type is compatible with itself."""
        for te in self.TYPES:
            assert check_equal_type(te, te, NumExp(1), program) == Ok(te)

    def test_any_absorbs(self, program):
        """Every type is accepted where any is expected."""
        for te in self.TYPES:
            assert check_equal_type(te, make_any_texp(), NumExp(1), program) == Ok(make_any_texp())

    def test_subtype_directional(self, program):
        """Record to type succeeds; type to record fails."""
        shape = get_user_defined_type_by_name("Shape", program).value
        for record in shape.records:
            assert isinstance(check_equal_type(record, shape, NumExp(1), program), Ok)
            assert isinstance(check_equal_type(shape, record, NumExp(1), program), Failure)

    def test_cover_commutative(self, program):
        """The cover of two types does not depend on their order."""
        for a in self.TYPES:
            for b in self.TYPES:
                assert set(cover_types([a, b], program)) == set(cover_types([b, a], program))
