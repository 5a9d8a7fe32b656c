"""Success/failure values used to thread type errors without exceptions.

Every fallible operation of the checker returns either ``Ok(value)`` or
``Failure(message, kind)``. The combinators below short-circuit at the
first failure, so a chain of ``bind`` calls reports only the first error.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar, Union

from .error_reporting import ErrorKind

T = TypeVar('T')
U = TypeVar('U')
V = TypeVar('V')


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful result."""
    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Failure:
    """A failed result carrying a human-readable message."""
    message: str
    kind: Optional[ErrorKind] = None

    def __repr__(self) -> str:
        return f"Failure({self.message!r})"


Result = Union[Ok[T], Failure]


def make_ok(value: T) -> Ok[T]:
    return Ok(value)


def make_failure(message: str, kind: Optional[ErrorKind] = None) -> Failure:
    return Failure(message, kind)


def is_ok(r: Result) -> bool:
    return isinstance(r, Ok)


def is_failure(r: Result) -> bool:
    return isinstance(r, Failure)


def bind(r: Result[T], f: Callable[[T], Result[U]]) -> Result[U]:
    """Feed the value of a successful result to ``f``; pass failures through."""
    if isinstance(r, Ok):
        return f(r.value)
    return r


def mapv(r: Result[T], f: Callable[[T], U]) -> Result[U]:
    """Apply a plain function to the value of a successful result."""
    if isinstance(r, Ok):
        return Ok(f(r.value))
    return r


def either(r: Result[T], on_ok: Callable[[T], U], on_fail: Callable[[str], U]) -> U:
    """Collapse a result into a plain value."""
    if isinstance(r, Ok):
        return on_ok(r.value)
    return on_fail(r.message)


def map_result(f: Callable[[T], Result[U]], items: Sequence[T]) -> Result[List[U]]:
    """Apply ``f`` to each item left to right, stopping at the first failure."""
    values: List[U] = []
    for item in items:
        r = f(item)
        if isinstance(r, Failure):
            return r
        values.append(r.value)
    return Ok(values)


def zip_with_result(f: Callable[[T, U], Result[V]], xs: Sequence[T],
                    ys: Sequence[U]) -> Result[List[V]]:
    """Pairwise version of ``map_result``; extra items of the longer list are ignored."""
    values: List[V] = []
    for x, y in zip(xs, ys):
        r = f(x, y)
        if isinstance(r, Failure):
            return r
        values.append(r.value)
    return Ok(values)


def unwrap(r: Result[T]) -> T:
    """Return the value of a successful result, raising ``TypeCheckError`` otherwise.

    The error carries the failure's kind but no source context; to report
    against source text use ``typechecker.failure_to_error`` instead.
    """
    if isinstance(r, Ok):
        return r.value
    from .errors import TypeCheckError
    raise TypeCheckError(r.message, kind=r.kind)
