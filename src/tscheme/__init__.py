"""tscheme - a type checker for a Scheme dialect with user-defined types."""

from .result import Ok, Failure, Result
from .typechecker import typeof, typeof_program, typeof_parsed_program, type_check
from .parser import parse
from .errors import TschemeError, TypeCheckError, ParseError

__all__ = [
    "Ok", "Failure", "Result",
    "typeof", "typeof_program", "typeof_parsed_program", "type_check",
    "parse",
    "TschemeError", "TypeCheckError", "ParseError",
]
