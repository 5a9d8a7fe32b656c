"""S-expression reader for tscheme, built on lark."""

from typing import List, Optional

from lark import Lark, Transformer, Token, v_args
from lark.exceptions import UnexpectedInput, UnexpectedCharacters, UnexpectedToken, VisitError

from .syntax import SExp, SList, SNumber, SString, SBool, SSymbol, SourceLocation
from .errors import ParseError


GRAMMAR = r"""
start: _datum*

_datum: list
      | quoted
      | STRING
      | BOOL
      | NUMBER
      | SYMBOL

list: "(" _datum* ")"
quoted: "'" _datum

BOOL.3: /#[tf](?![^\s()'";])/
NUMBER.2: /[+-]?(\d+(\.\d*)?|\.\d+)(?![^\s()'";])/
STRING: /"(\\.|[^"\\])*"/
SYMBOL: /[^\s()'";#][^\s()'";]*/

COMMENT: /;[^\n]*/

%import common.WS
%ignore WS
%ignore COMMENT
"""

ESCAPES = {'n': '\n', 'r': '\r', 't': '\t', '"': '"', '\\': '\\'}

_parser = Lark(GRAMMAR, parser='lalr', propagate_positions=True)


def unescape(body: str, location: Optional[SourceLocation] = None) -> str:
    """Resolve backslash escapes inside a string literal."""
    value = ""
    chars = iter(body)
    for ch in chars:
        if ch == '\\':
            escaped = next(chars, '')
            if escaped not in ESCAPES:
                raise ParseError(f"Invalid escape sequence \\{escaped}", location)
            value += ESCAPES[escaped]
        else:
            value += ch
    return value


class SExpBuilder(Transformer):
    """Turn the lark parse tree into S-expression values."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__()
        self.filename = filename

    def _location(self, line: int, column: int) -> SourceLocation:
        return SourceLocation(line, column, self.filename)

    def start(self, children) -> List[SExp]:
        return list(children)

    @v_args(meta=True)
    def list(self, meta, children) -> SList:
        location = self._location(meta.line, meta.column) if not meta.empty else None
        return SList(tuple(children), location)

    @v_args(meta=True)
    def quoted(self, meta, children) -> SList:
        location = self._location(meta.line, meta.column) if not meta.empty else None
        return SList((SSymbol('quote', location), children[0]), location)

    def STRING(self, token: Token) -> SString:
        location = self._location(token.line, token.column)
        return SString(unescape(token.value[1:-1], location), location)

    def BOOL(self, token: Token) -> SBool:
        return SBool(token.value == '#t', self._location(token.line, token.column))

    def NUMBER(self, token: Token) -> SNumber:
        text = token.value
        value = float(text) if '.' in text else int(text)
        return SNumber(value, self._location(token.line, token.column))

    def SYMBOL(self, token: Token) -> SSymbol:
        return SSymbol(token.value, self._location(token.line, token.column))


def _describe(error: UnexpectedInput) -> str:
    if isinstance(error, UnexpectedCharacters):
        return f"Unexpected character {error.char!r}"
    if isinstance(error, UnexpectedToken):
        if error.token.type == '$END':
            return "Unexpected end of input (unbalanced parentheses?)"
        return f"Unexpected {error.token.value!r}"
    return "Unexpected end of input (unbalanced parentheses?)"


def read(source: str, filename: Optional[str] = None) -> List[SExp]:
    """Read all S-expressions in ``source``."""
    try:
        tree = _parser.parse(source)
    except UnexpectedInput as e:
        line = getattr(e, 'line', -1)
        column = getattr(e, 'column', -1)
        location = SourceLocation(line, column, filename) if line and line > 0 else None
        raise ParseError(_describe(e), location) from None

    try:
        return SExpBuilder(filename).transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ParseError):
            raise e.orig_exc from None
        raise


def read_one(source: str) -> SExp:
    """Read exactly one S-expression."""
    sexps = read(source)
    if len(sexps) != 1:
        raise ParseError(f"Expected a single expression, found {len(sexps)}")
    return sexps[0]
