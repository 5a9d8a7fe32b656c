"""Type expressions.

A type expression is one of a closed set of frozen dataclasses:

    number | boolean | string | void | literal | any
    (t1 * ... * tn -> t)          procedure types, (Empty -> t) for no parameters
    Record(name, fields)          one case of a user-defined type
    UserDefinedTExp(name, records)
    UserDefinedNameTExp(name)     a by-name reference resolved against the program

Consumers dispatch with ``isinstance``. Equality is structural.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple, Union

from .syntax import SExp, SList, SSymbol
from .reader import read_one
from .errors import ParseError


@dataclass(frozen=True)
class NumTExp:
    pass


@dataclass(frozen=True)
class BoolTExp:
    pass


@dataclass(frozen=True)
class StrTExp:
    pass


@dataclass(frozen=True)
class VoidTExp:
    pass


@dataclass(frozen=True)
class LitTExp:
    pass


@dataclass(frozen=True)
class AnyTExp:
    pass


@dataclass(frozen=True)
class ProcTExp:
    param_tes: Tuple['TExp', ...]
    return_te: 'TExp'


@dataclass(frozen=True)
class Field:
    field_name: str
    te: 'TExp'


@dataclass(frozen=True)
class Record:
    type_name: str
    fields: Tuple[Field, ...]


@dataclass(frozen=True)
class UserDefinedTExp:
    type_name: str
    records: Tuple[Record, ...]


@dataclass(frozen=True)
class UserDefinedNameTExp:
    type_name: str


AtomicTExp = Union[NumTExp, BoolTExp, StrTExp, VoidTExp, LitTExp, AnyTExp]
UDTExp = Union[UserDefinedTExp, Record]
TExp = Union[AtomicTExp, ProcTExp, UserDefinedTExp, Record, UserDefinedNameTExp]


def make_num_texp() -> NumTExp:
    return NumTExp()


def make_bool_texp() -> BoolTExp:
    return BoolTExp()


def make_str_texp() -> StrTExp:
    return StrTExp()


def make_void_texp() -> VoidTExp:
    return VoidTExp()


def make_lit_texp() -> LitTExp:
    return LitTExp()


def make_any_texp() -> AnyTExp:
    return AnyTExp()


def make_proc_texp(param_tes, return_te: TExp) -> ProcTExp:
    return ProcTExp(tuple(param_tes), return_te)


def make_user_defined_name_texp(type_name: str) -> UserDefinedNameTExp:
    return UserDefinedNameTExp(type_name)


def is_atomic_texp(te: TExp) -> bool:
    return isinstance(te, (NumTExp, BoolTExp, StrTExp, VoidTExp, LitTExp, AnyTExp))


ATOMIC_NAMES = {
    'number': NumTExp(),
    'boolean': BoolTExp(),
    'string': StrTExp(),
    'void': VoidTExp(),
    'literal': LitTExp(),
    'any': AnyTExp(),
}

EMPTY_PARAMS = 'Empty'


# Parsing
# =======

def parse_texp(text: str) -> TExp:
    """Parse the textual form of a type expression."""
    return parse_texp_sexp(read_one(text))


def parse_texp_sexp(sexp: SExp) -> TExp:
    """Parse a type expression already read as an S-expression."""
    if isinstance(sexp, SSymbol):
        if sexp.name in ATOMIC_NAMES:
            return ATOMIC_NAMES[sexp.name]
        if sexp.name in ('->', '*', EMPTY_PARAMS):
            raise ParseError(f"Unexpected '{sexp.name}' in type expression", sexp.location)
        return UserDefinedNameTExp(sexp.name)

    if isinstance(sexp, SList):
        return parse_proc_texp(sexp)

    raise ParseError(f"Bad type expression: {unparse_sexp_brief(sexp)}",
                     getattr(sexp, 'location', None))


def parse_proc_texp(sexp: SList) -> ProcTExp:
    """Parse ``(t1 * ... * tn -> t)``."""
    items = sexp.items
    arrows = [i for i, item in enumerate(items)
              if isinstance(item, SSymbol) and item.name == '->']
    if len(arrows) != 1:
        raise ParseError("Procedure type must contain exactly one '->'", sexp.location)
    arrow = arrows[0]
    if arrow != len(items) - 2:
        raise ParseError("Procedure type must end with '-> <type>'", sexp.location)

    return_te = parse_texp_sexp(items[-1])
    params = items[:arrow]
    if len(params) == 1 and isinstance(params[0], SSymbol) and params[0].name == EMPTY_PARAMS:
        return ProcTExp((), return_te)
    if not params:
        raise ParseError("Procedure type needs parameter types (use 'Empty' for none)", sexp.location)

    # Parameters alternate with '*' separators
    param_tes = []
    for i, item in enumerate(params):
        is_star = isinstance(item, SSymbol) and item.name == '*'
        if i % 2 == 1:
            if not is_star:
                raise ParseError("Expected '*' between parameter types", sexp.location)
        elif is_star:
            raise ParseError("Unexpected '*' in procedure type", sexp.location)
        else:
            param_tes.append(parse_texp_sexp(item))
    if len(params) % 2 == 0:
        raise ParseError("Dangling '*' in procedure type", sexp.location)
    return ProcTExp(tuple(param_tes), return_te)


def unparse_sexp_brief(sexp: SExp) -> str:
    value = getattr(sexp, 'value', None)
    return repr(value) if value is not None else str(sexp)


# Unparsing
# =========

def unparse_texp(te: TExp) -> str:
    """Render a type expression in its textual form."""
    if isinstance(te, NumTExp):
        return 'number'
    elif isinstance(te, BoolTExp):
        return 'boolean'
    elif isinstance(te, StrTExp):
        return 'string'
    elif isinstance(te, VoidTExp):
        return 'void'
    elif isinstance(te, LitTExp):
        return 'literal'
    elif isinstance(te, AnyTExp):
        return 'any'
    elif isinstance(te, ProcTExp):
        params = ' * '.join(unparse_texp(p) for p in te.param_tes) if te.param_tes else EMPTY_PARAMS
        return f"({params} -> {unparse_texp(te.return_te)})"
    elif isinstance(te, (Record, UserDefinedTExp, UserDefinedNameTExp)):
        return te.type_name
    raise TypeError(f"Not a type expression: {te!r}")


def unparse_record(record: Record) -> str:
    """Render a record declaration, as it appears inside define-type."""
    fields = ''.join(f" ({f.field_name} : {unparse_texp(f.te)})" for f in record.fields)
    return f"({record.type_name}{fields})"


def equivalent_texps(te1: TExp, te2: TExp) -> bool:
    """Structural equivalence of two type expressions."""
    return te1 == te2
