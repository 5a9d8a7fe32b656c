"""Type environments: persistent chains of frames mapping names to types."""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from .texp import TExp
from .result import Result, make_ok, make_failure
from .error_reporting import ErrorKind


@dataclass(frozen=True)
class EmptyTEnv:
    pass


@dataclass(frozen=True)
class ExtendTEnv:
    """One frame of bindings on top of an enclosing environment."""
    vars: Tuple[str, ...]
    texps: Tuple[TExp, ...]
    tenv: 'TEnv'


TEnv = Union[EmptyTEnv, ExtendTEnv]


def make_empty_tenv() -> EmptyTEnv:
    return EmptyTEnv()


def make_extend_tenv(vars: Sequence[str], texps: Sequence[TExp], tenv: TEnv) -> ExtendTEnv:
    if len(vars) != len(texps):
        raise ValueError(f"Frame needs one type per name: {len(vars)} names, {len(texps)} types")
    return ExtendTEnv(tuple(vars), tuple(texps), tenv)


def apply_tenv(tenv: TEnv, var: str) -> Result[TExp]:
    """Look ``var`` up, innermost frame first."""
    while isinstance(tenv, ExtendTEnv):
        for name, te in zip(tenv.vars, tenv.texps):
            if name == var:
                return make_ok(te)
        tenv = tenv.tenv
    return make_failure(f"Unbound variable: {var}", ErrorKind.UNBOUND_VARIABLE)


def tenv_bindings(tenv: TEnv) -> List[Tuple[str, TExp]]:
    """Visible bindings, innermost first, shadowed names omitted."""
    seen = set()
    bindings = []
    while isinstance(tenv, ExtendTEnv):
        for name, te in zip(tenv.vars, tenv.texps):
            if name not in seen:
                seen.add(name)
                bindings.append((name, te))
        tenv = tenv.tenv
    return bindings
