"""The user-defined type hierarchy of a program.

Program introspection (which types, records and global definitions a
program declares) and the subtype and coverage rules built on top of it.
The hierarchy is one level deep: a record is a subtype of every
user-defined type that lists it as a case, and ``any`` is a supertype of
everything.

All queries scan the program; nothing is cached, since a program is never
mutated while it is being checked.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, TypeVar

from .syntax import Program, DefineExp, DefineTypeExp, Exp
from .texp import (
    TExp, Record, UserDefinedTExp, UserDefinedNameTExp, UDTExp, ProcTExp, AnyTExp,
    make_any_texp, make_user_defined_name_texp, is_atomic_texp, unparse_texp,
)
from .result import Result, Ok, make_ok, make_failure, is_ok, bind, mapv, map_result
from .error_reporting import ErrorKind
from .parser import unparse

Named = TypeVar('Named', Record, UserDefinedTExp)


# Program introspection
# =====================

def get_type_definitions(p: Program) -> List[UserDefinedTExp]:
    """All define-type declarations, in program order."""
    return [exp.ud_type for exp in p.exps if isinstance(exp, DefineTypeExp)]


def get_definitions(p: Program) -> List[DefineExp]:
    """All top-level defines, in program order."""
    return [exp for exp in p.exps if isinstance(exp, DefineExp)]


def get_records(p: Program) -> List[Record]:
    """Every record of every define-type, flattened."""
    return [record for ud in get_type_definitions(p) for record in ud.records]


def get_item_by_name(type_name: str, items: Sequence[Named]) -> Result[Named]:
    for item in items:
        if item.type_name == type_name:
            return make_ok(item)
    return make_failure(f"{type_name} not found", ErrorKind.UNRESOLVED_NAME)


def get_user_defined_type_by_name(type_name: str, p: Program) -> Result[UserDefinedTExp]:
    return get_item_by_name(type_name, get_type_definitions(p))


def get_record_by_name(type_name: str, p: Program) -> Result[Record]:
    return get_item_by_name(type_name, get_records(p))


def get_record_parents(type_name: str, p: Program) -> List[UserDefinedTExp]:
    """The user-defined types that list the named record as one of their cases."""
    return [ud for ud in get_type_definitions(p)
            if type_name in [record.type_name for record in ud.records]]


def get_type_by_name(type_name: str, p: Program) -> Result[UDTExp]:
    """The user-defined type, or failing that the record, with this name."""
    ud = get_user_defined_type_by_name(type_name, p)
    if is_ok(ud):
        return ud
    return get_record_by_name(type_name, p)


def check_texp_resolves(te: TExp, p: Program) -> Result[TExp]:
    """Check that every name inside an annotation is a declared type or record."""
    if isinstance(te, UserDefinedNameTExp):
        return mapv(get_type_by_name(te.type_name, p), lambda _: te)
    if isinstance(te, ProcTExp):
        params = check_texps_resolve(te.param_tes, p)
        return bind(params, lambda _: mapv(check_texp_resolves(te.return_te, p), lambda _: te))
    return make_ok(te)


def check_texps_resolve(tes: Sequence[TExp], p: Program) -> Result[List[TExp]]:
    return map_result(lambda te: check_texp_resolves(te, p), tes)


# Subtyping
# =========

def _resolve_user_defined_type(te: TExp, p: Program) -> Optional[UserDefinedTExp]:
    if isinstance(te, UserDefinedTExp):
        return te
    if isinstance(te, UserDefinedNameTExp):
        ud = get_user_defined_type_by_name(te.type_name, p)
        return ud.value if isinstance(ud, Ok) else None
    return None


def is_subtype(te1: TExp, te2: TExp, p: Program) -> bool:
    """Is ``te1`` a subtype of ``te2``?

    True when ``te2`` is ``any``, or when ``te1`` is (or names) a record
    listed among the cases of the user-defined type ``te2`` (or names).
    """
    if isinstance(te2, AnyTExp):
        return True

    ud = _resolve_user_defined_type(te2, p)
    if ud is None:
        return False
    if isinstance(te1, Record):
        return te1 in ud.records
    if isinstance(te1, UserDefinedNameTExp):
        return any(record.type_name == te1.type_name for record in ud.records)
    return False


def _check_deep_equal_type(te1: TExp, te2: TExp, p: Program) -> bool:
    # A bare name on one side may stand for the exact structure on the other.
    # Only one name is resolved: a name naming a name is not followed.
    if not isinstance(te1, UserDefinedNameTExp) or not isinstance(te2, (UserDefinedTExp, Record)):
        return False
    resolved = get_type_by_name(te1.type_name, p)
    return isinstance(resolved, Ok) and resolved.value == te2


def check_equal_type(te1: TExp, te2: TExp, exp: Exp, p: Program) -> Result[TExp]:
    """Check that a computed type ``te1`` is accepted where ``te2`` is expected.

    Succeeds with ``te2`` when the two are structurally equal, when one is a
    name for the other's structure, or when ``te1`` is a subtype of ``te2``.
    ``exp`` is only used to describe the failure.
    """
    if te1 == te2:
        return make_ok(te2)
    if _check_deep_equal_type(te1, te2, p) or _check_deep_equal_type(te2, te1, p):
        return make_ok(te2)
    if is_subtype(te1, te2, p):
        return make_ok(te2)

    return make_failure(
        f"Incompatible types: {unparse_texp(te1)} and {unparse_texp(te2)} in {unparse(exp)}",
        ErrorKind.TYPE_MISMATCH)


# Coverage
# ========

def get_parents_type(te: TExp, p: Program) -> List[TExp]:
    """``te`` and its ancestors in the type hierarchy, as name references.

    Atomic, procedure and user-defined type values are their own only
    ancestor. A record name yields itself followed by every user-defined
    type containing it. Names that resolve to nothing have no ancestors.
    """
    if is_atomic_texp(te) or isinstance(te, (ProcTExp, UserDefinedTExp)):
        return [te]
    if isinstance(te, Record):
        return get_parents_type(make_user_defined_name_texp(te.type_name), p)
    if isinstance(te, UserDefinedNameTExp):
        ud = get_user_defined_type_by_name(te.type_name, p)
        if isinstance(ud, Ok):
            return [make_user_defined_name_texp(ud.value.type_name)]
        record = get_record_by_name(te.type_name, p)
        if isinstance(record, Ok):
            return [make_user_defined_name_texp(record.value.type_name)] + \
                [make_user_defined_name_texp(parent.type_name)
                 for parent in get_record_parents(record.value.type_name, p)]
        return []
    return []


def cover_types(types: Sequence[TExp], p: Program) -> List[TExp]:
    """The types that are ancestors of every type in ``types``.

    Order follows the parents of the first type.
    """
    if not types:
        return []
    parents_list = [get_parents_type(te, p) for te in types]
    cover = parents_list[0]
    for parents in parents_list[1:]:
        cover = [te for te in cover if te in parents]
    # Drop duplicates, keeping first occurrences
    unique: List[TExp] = []
    for te in cover:
        if te not in unique:
            unique.append(te)
    return unique


def most_specific_type(types: Sequence[TExp], p: Program) -> TExp:
    """The most specific type in ``types``.

    Starting from ``any``, a candidate replaces the current choice only if it
    is a subtype of it; among incomparable candidates the first one wins.
    For a type UD with records R1 and R2:
    - most_specific_type([R1, R2, UD]) is R1
    - most_specific_type([R1, number]) is R1
    """
    current: TExp = make_any_texp()
    for te in types:
        if is_subtype(te, current, p):
            current = te
    return current


def check_cover_type(types: Sequence[TExp], p: Program) -> Result[TExp]:
    """Find the most specific type covering all of ``types`` (``any`` never counts)."""
    cover = cover_types(types, p)
    if not cover:
        rendered = ' '.join(unparse_texp(te) for te in types)
        return make_failure(f"No type found to cover {rendered}", ErrorKind.NO_COVER)
    return make_ok(most_specific_type(cover, p))
