"""Error reporting for tscheme.

This module provides:
- The error taxonomy shared by failure values and exceptions
- Source context display with a caret under the error position
- Hints for common mistakes
- A type derivation trace for verbose mode
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Dict
from enum import Enum, auto

from .syntax import SourceLocation


class ErrorKind(Enum):
    """Categories of errors, used to pick hints."""
    UNBOUND_VARIABLE = auto()
    TYPE_MISMATCH = auto()
    WRONG_ARITY = auto()
    NON_PROCEDURE = auto()
    UNRESOLVED_NAME = auto()
    NO_COVER = auto()
    INVALID_UDT = auto()
    INVALID_TYPE_CASE = auto()
    UNKNOWN_PRIMITIVE = auto()
    INVALID_LETREC = auto()
    EMPTY_SEQUENCE = auto()
    PARSE_ERROR = auto()


@dataclass
class ErrorContext:
    """Context information for an error."""
    source_code: Optional[str] = None
    filename: Optional[str] = None
    location: Optional[SourceLocation] = None
    kind: Optional[ErrorKind] = None
    # Names in scope, used to suggest a spelling for unbound variables
    available_names: Optional[List[str]] = None
    name: Optional[str] = None


@dataclass
class TypeDerivation:
    """A step in type derivation for verbose output."""
    rule: str
    expression: str
    result: Optional[str]
    depth: int = 0


@dataclass
class TypeDerivationTrace:
    """Accumulates type derivation steps for verbose output."""
    steps: List[TypeDerivation] = field(default_factory=list)
    enabled: bool = False
    depth: int = 0

    def add_step(self, rule: str, expression: str, result: Optional[str] = None,
                 depth: int = 0) -> None:
        """Add a derivation step."""
        if self.enabled:
            self.steps.append(TypeDerivation(rule, expression, result, depth))

    def format(self) -> str:
        """Format the trace for display."""
        if not self.steps:
            return ""

        lines = ["Type Derivation Trace:"]
        for i, step in enumerate(self.steps, 1):
            indent = "  " * step.depth
            result = step.result if step.result is not None else "?"
            lines.append(f"{i:4d}. {indent}[{step.rule}] {step.expression} : {result}")
        return "\n".join(lines)


# Global trace instance
_trace = TypeDerivationTrace()


def get_trace() -> TypeDerivationTrace:
    """Get the global type derivation trace."""
    return _trace


def enable_trace() -> None:
    """Enable type derivation tracing."""
    _trace.enabled = True


def disable_trace() -> None:
    """Disable type derivation tracing."""
    _trace.enabled = False


def clear_trace() -> None:
    """Clear the type derivation trace."""
    _trace.steps = []
    _trace.depth = 0


def format_location(location: Optional[SourceLocation]) -> str:
    """Format a source location for display."""
    if not location:
        return "<unknown location>"

    parts = []
    if location.filename:
        parts.append(location.filename)
    parts.append(f"{location.line}:{location.column}")

    return ":".join(parts)


def show_source_context(source_code: str, location: SourceLocation,
                        error_message: str = "", context_lines: int = 2) -> str:
    """Display source code context around an error location."""
    lines = source_code.split('\n')

    if not (0 < location.line <= len(lines)):
        return ""

    output = []

    if error_message:
        output.append(f"Error: {error_message}")

    output.append(f"at {format_location(location)}")
    output.append("")

    start_line = max(0, location.line - context_lines - 1)
    end_line = min(len(lines), location.line + context_lines)

    for i in range(start_line, end_line):
        line_num = i + 1
        line_content = lines[i]

        if line_num == location.line:
            output.append(f"> {line_num:4d} | {line_content}")
            if location.column > 0:
                spaces = ' ' * (location.column - 1)
                output.append(f"       | {spaces}^")
        else:
            output.append(f"  {line_num:4d} | {line_content}")

    return '\n'.join(output)


def suggest_similar_names(name: str, available_names: List[str], max_suggestions: int = 3) -> List[str]:
    """Find similar names using edit distance."""
    suggestions = []

    for available in available_names:
        distance = edit_distance(name, available)
        if distance <= 2:
            suggestions.append((distance, available))

    suggestions.sort(key=lambda x: x[0])
    return [name for _, name in suggestions[:max_suggestions]]


def edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        return edit_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


HINTS: Dict[ErrorKind, List[str]] = {
    ErrorKind.TYPE_MISMATCH: [
        "The first type must equal the second, or be a subtype of it",
    ],
    ErrorKind.UNRESOLVED_NAME: [
        "Type annotations may only name types and records declared with define-type",
    ],
    ErrorKind.WRONG_ARITY: [
        "Check the number of arguments against the procedure's annotated type",
    ],
    ErrorKind.NON_PROCEDURE: [
        "Only values of procedure type can be applied",
    ],
    ErrorKind.NO_COVER: [
        "Both branches must share a common type, such as the union type of two records",
    ],
    ErrorKind.INVALID_UDT: [
        "A record name must have the same fields everywhere it is declared",
        "A recursive type needs at least one case that does not refer to itself",
    ],
    ErrorKind.INVALID_TYPE_CASE: [
        "A type-case needs exactly one clause per record of the type, "
        "each binding one variable per field",
    ],
    ErrorKind.INVALID_LETREC: [
        "letrec only binds lambda expressions",
    ],
}


def generate_suggestion(error_context: ErrorContext) -> Optional[str]:
    """Generate a helpful suggestion based on the error context."""
    if not error_context.kind:
        return None

    suggestions = list(HINTS.get(error_context.kind, []))

    if (error_context.kind == ErrorKind.UNBOUND_VARIABLE
            and error_context.name and error_context.available_names):
        similar = suggest_similar_names(error_context.name, error_context.available_names)
        if similar:
            names = ", ".join(f"'{name}'" for name in similar)
            suggestions.append(f"Did you mean: {names}?")

    if suggestions:
        return "\n".join(f"Hint: {s}" for s in suggestions)

    return None


class TschemeError(Exception):
    """Base class for all tscheme errors with enhanced reporting."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.context = context or ErrorContext()

    def format_error(self) -> str:
        """Format the error with context and suggestions."""
        parts = []

        if self.context.source_code and self.context.location:
            parts.append(show_source_context(
                self.context.source_code,
                self.context.location,
                str(self)
            ))
        else:
            parts.append(f"Error: {self}")
            if self.context.location:
                parts.append(f"at {format_location(self.context.location)}")

        suggestion = generate_suggestion(self.context)
        if suggestion:
            parts.append("")
            parts.append(suggestion)

        trace_output = get_trace().format()
        if trace_output:
            parts.append("")
            parts.append(trace_output)

        return '\n'.join(parts)
