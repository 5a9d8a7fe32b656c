"""Abstract syntax for tscheme.

Two layers live here: the S-expressions produced by the reader, and the
AST produced from them by the parser. Both are immutable; source locations
are carried along but never take part in equality.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .texp import TExp, UserDefinedTExp


@dataclass(frozen=True)
class SourceLocation:
    """Source code location information."""
    line: int
    column: int
    filename: Optional[str] = None


# S-expressions
# =============

@dataclass(frozen=True)
class SNumber:
    value: Union[int, float]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class SString:
    value: str
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class SBool:
    value: bool
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class SSymbol:
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class SList:
    items: Tuple['SExp', ...]
    location: Optional[SourceLocation] = field(default=None, compare=False)

    def head_symbol(self) -> Optional[str]:
        """Name of the leading symbol, if the list starts with one."""
        if self.items and isinstance(self.items[0], SSymbol):
            return self.items[0].name
        return None


SExp = Union[SNumber, SString, SBool, SSymbol, SList]


# Expressions
# ===========

@dataclass(frozen=True)
class NumExp:
    """Number literal."""
    value: Union[int, float]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class BoolExp:
    """Boolean literal."""
    value: bool
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class StrExp:
    """String literal."""
    value: str
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class PrimOp:
    """Primitive operator such as ``+`` or ``eq?``."""
    op: str
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class VarRef:
    """Variable reference."""
    var: str
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class VarDecl:
    """An annotated binding occurrence ``(x : t)``."""
    var: str
    texp: 'TExp'


@dataclass(frozen=True)
class IfExp:
    test: 'Exp'
    then: 'Exp'
    alt: 'Exp'
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class ProcExp:
    """``(lambda ((x : t) ...) : t body ...)``."""
    args: Tuple[VarDecl, ...]
    body: Tuple['Exp', ...]
    return_te: 'TExp'
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class AppExp:
    rator: 'Exp'
    rands: Tuple['Exp', ...]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class Binding:
    var: VarDecl
    val: 'Exp'


@dataclass(frozen=True)
class LetExp:
    bindings: Tuple[Binding, ...]
    body: Tuple['Exp', ...]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class LetrecExp:
    bindings: Tuple[Binding, ...]
    body: Tuple['Exp', ...]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class SetExp:
    var: VarRef
    val: 'Exp'
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class LitExp:
    """Quoted datum."""
    val: SExp
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class CaseExp:
    """One clause of a type-case: record name, bound variables, body."""
    type_name: str
    variables: Tuple[str, ...]
    body: Tuple['Exp', ...]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class TypeCaseExp:
    type_name: str
    val: 'Exp'
    cases: Tuple[CaseExp, ...]
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class DefineExp:
    """Top-level ``(define (x : t) val)``."""
    var: VarDecl
    val: 'Exp'
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class DefineTypeExp:
    """Top-level ``(define-type Name (Record (field : t) ...) ...)``."""
    type_name: str
    ud_type: 'UserDefinedTExp'
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass(frozen=True)
class Program:
    exps: Tuple['Exp', ...]


CExp = Union[NumExp, BoolExp, StrExp, PrimOp, VarRef, IfExp, ProcExp, AppExp,
             LetExp, LetrecExp, SetExp, LitExp, TypeCaseExp]
Exp = Union[CExp, DefineExp, DefineTypeExp]
Parsed = Union[Exp, Program]
