"""Error types for tscheme.

Type errors travel through the checker as ``Failure`` values; these
exceptions are raised only at the boundary (parser, command line, REPL).
"""

from typing import Optional
from .syntax import SourceLocation
from .error_reporting import (
    TschemeError,
    ErrorContext,
    ErrorKind,
    get_trace,
    enable_trace,
    disable_trace,
    clear_trace,
)


class TypeCheckError(TschemeError):
    """A program was rejected by the type checker."""
    def __init__(self, message: str, kind: Optional[ErrorKind] = None,
                 context: Optional[ErrorContext] = None):
        if context is None:
            context = ErrorContext(kind=kind)
        elif kind is not None:
            context.kind = kind
        super().__init__(message, context)
        self.kind = kind


class ParseError(TschemeError):
    """Concrete syntax could not be read or parsed."""
    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        if location is not None:
            super().__init__(f"Parse error at {location.line}:{location.column}: {message}",
                             ErrorContext(location=location, kind=ErrorKind.PARSE_ERROR))
        else:
            super().__init__(f"Parse error: {message}", ErrorContext(kind=ErrorKind.PARSE_ERROR))
        self.location = location
