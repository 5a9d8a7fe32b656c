"""Totality checking for user-defined types.

This module implements:
1. Well-formedness of define-type declarations (consistent records, base cases)
2. Coverage checking for type-case expressions
"""

from __future__ import annotations
from typing import List

from .syntax import Program, TypeCaseExp
from .texp import (
    Field, Record, UserDefinedTExp, UserDefinedNameTExp, TExp,
    make_user_defined_name_texp, equivalent_texps,
)
from .hierarchy import (
    get_records, get_type_definitions, get_user_defined_type_by_name, check_cover_type,
    check_texps_resolve,
)
from .result import Result, make_ok, make_failure, bind
from .error_reporting import ErrorKind


# Well-formedness
# ===============

def compare_fields(f1: Field, f2: Field) -> bool:
    return (f1.field_name == f2.field_name
            and type(f1.te) is type(f2.te)
            and equivalent_texps(f1.te, f2.te))


def same_fields(r1: Record, r2: Record) -> bool:
    """Do two records declare the same fields, in any order?"""
    return (len(r1.fields) == len(r2.fields)
            and all(any(compare_fields(f1, f2) for f1 in r1.fields) for f2 in r2.fields)
            and all(any(compare_fields(f1, f2) for f2 in r2.fields) for f1 in r1.fields))


def records_are_consistent(p: Program) -> bool:
    """Every record name has one shape wherever it is declared."""
    records = get_records(p)
    return all(same_fields(r1, r2)
               for r1 in records
               for r2 in records
               if r1.type_name == r2.type_name)


def refers_to(te: TExp, type_name: str) -> bool:
    """Does a field type directly name the given user-defined type?"""
    return isinstance(te, (UserDefinedTExp, UserDefinedNameTExp)) and te.type_name == type_name


def has_base_case(ud: UserDefinedTExp) -> bool:
    """A recursive type must have a case that does not refer back to it."""
    recursive = any(refers_to(f.te, ud.type_name) for r in ud.records for f in r.fields)
    if not recursive:
        return True
    return any(all(not refers_to(f.te, ud.type_name) for f in r.fields) for r in ud.records)


def check_user_defined_types(p: Program) -> Result[bool]:
    """Reject redeclared records with conflicting fields and uninhabited recursive types.

    Field types must name declared types or records.
    """
    def check_shapes(_) -> Result[bool]:
        if records_are_consistent(p) and all(has_base_case(ud) for ud in get_type_definitions(p)):
            return make_ok(True)
        return make_failure('Invalid UDT', ErrorKind.INVALID_UDT)

    field_tes = [f.te for record in get_records(p) for f in record.fields]
    return bind(check_texps_resolve(field_tes, p), check_shapes)


# Type-case coverage
# ==================

def check_type_case(tc: TypeCaseExp, p: Program) -> Result[bool]:
    """Check a type-case has exactly one clause per record of its type.

    Clauses may come in any order; each must bind one variable per field of
    its record.
    """
    names = [make_user_defined_name_texp(tc.type_name)] + \
        [make_user_defined_name_texp(c.type_name) for c in tc.cases]

    def check_clauses(ud: UserDefinedTExp) -> Result[bool]:
        cases = sorted(tc.cases, key=lambda c: c.type_name)
        records: List[Record] = sorted(ud.records, key=lambda r: r.type_name)
        if len(records) == len(cases) and all(
                record.type_name == case.type_name and len(record.fields) == len(case.variables)
                for record, case in zip(records, cases)):
            return make_ok(True)
        return make_failure('Invalid type-case', ErrorKind.INVALID_TYPE_CASE)

    return bind(check_cover_type(names, p),
                lambda cover: bind(get_user_defined_type_by_name(cover.type_name, p), check_clauses))
