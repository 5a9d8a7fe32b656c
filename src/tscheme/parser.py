"""Parser for tscheme: S-expressions to AST, by recursive descent."""

from typing import Optional, Sequence

from .reader import read
from .syntax import *
from .texp import (
    TExp, Field, Record, UserDefinedTExp,
    parse_texp_sexp, unparse_texp, unparse_record,
)
from .errors import ParseError


PROGRAM_KEYWORD = 'L51'

PRIMITIVE_OPS = frozenset([
    '+', '-', '*', '/', '>', '<', '=', 'not', 'and', 'or',
    'eq?', 'string=?', 'cons', 'car', 'cdr', 'list',
    'pair?', 'list?', 'number?', 'boolean?', 'symbol?', 'string?',
    'display', 'newline',
])

SPECIAL_FORMS = frozenset([
    'define', 'define-type', 'lambda', 'if', 'let', 'letrec',
    'set!', 'quote', 'type-case', PROGRAM_KEYWORD,
])


class Parser:
    """Recursive descent parser from S-expressions to expressions."""

    def __init__(self, filename: Optional[str] = None):
        self.filename = filename

    # Programs

    def parse_program(self, sexps: Sequence[SExp]) -> Program:
        """Parse a whole program.

        Either a single ``(L51 form ...)`` wrapper or a bare sequence of
        top-level forms is accepted.
        """
        forms = list(sexps)
        if len(forms) == 1 and isinstance(forms[0], SList) and \
                forms[0].head_symbol() == PROGRAM_KEYWORD:
            forms = list(forms[0].items[1:])
        return Program(tuple(self.parse_top(form) for form in forms))

    def parse_top(self, sexp: SExp) -> Exp:
        """Parse a form that may appear at the top level."""
        if isinstance(sexp, SList):
            head = sexp.head_symbol()
            if head == 'define':
                return self.parse_define(sexp)
            if head == 'define-type':
                return self.parse_define_type(sexp)
        return self.parse_cexp(sexp)

    def parse_define(self, sexp: SList) -> DefineExp:
        if len(sexp.items) != 3:
            raise ParseError("define expects (define (var : type) value)", sexp.location)
        var = self.parse_var_decl(sexp.items[1])
        return DefineExp(var, self.parse_cexp(sexp.items[2]), sexp.location)

    def parse_define_type(self, sexp: SList) -> DefineTypeExp:
        items = sexp.items
        if len(items) < 3:
            raise ParseError("define-type expects a name and at least one record", sexp.location)
        type_name = self.parse_identifier(items[1], "type name")
        records = tuple(self.parse_record(item) for item in items[2:])
        names = [record.type_name for record in records]
        if len(set(names)) != len(names):
            raise ParseError(f"Duplicate record in define-type {type_name}", sexp.location)
        return DefineTypeExp(type_name, UserDefinedTExp(type_name, records), sexp.location)

    def parse_record(self, sexp: SExp) -> Record:
        if not isinstance(sexp, SList) or not sexp.items:
            raise ParseError("Record expects (Name (field : type) ...)", self.location_of(sexp))
        type_name = self.parse_identifier(sexp.items[0], "record name")
        fields = []
        for item in sexp.items[1:]:
            decl = self.parse_var_decl(item)
            fields.append(Field(decl.var, decl.texp))
        field_names = [f.field_name for f in fields]
        if len(set(field_names)) != len(field_names):
            raise ParseError(f"Duplicate field in record {type_name}", sexp.location)
        return Record(type_name, tuple(fields))

    # Expressions

    def parse_cexp(self, sexp: SExp) -> CExp:
        """Parse an expression that is not a top-level definition."""
        if isinstance(sexp, SNumber):
            return NumExp(sexp.value, sexp.location)
        if isinstance(sexp, SBool):
            return BoolExp(sexp.value, sexp.location)
        if isinstance(sexp, SString):
            return StrExp(sexp.value, sexp.location)
        if isinstance(sexp, SSymbol):
            if sexp.name in PRIMITIVE_OPS:
                return PrimOp(sexp.name, sexp.location)
            if sexp.name in SPECIAL_FORMS:
                raise ParseError(f"Unexpected keyword '{sexp.name}'", sexp.location)
            return VarRef(sexp.name, sexp.location)
        if not sexp.items:
            raise ParseError("Empty combination ()", sexp.location)

        head = sexp.head_symbol()
        if head == 'if':
            return self.parse_if(sexp)
        elif head == 'lambda':
            return self.parse_proc(sexp)
        elif head == 'let':
            return LetExp(self.parse_bindings(sexp), self.parse_body(sexp.items[2:], sexp), sexp.location)
        elif head == 'letrec':
            return LetrecExp(self.parse_bindings(sexp), self.parse_body(sexp.items[2:], sexp), sexp.location)
        elif head == 'set!':
            return self.parse_set(sexp)
        elif head == 'quote':
            if len(sexp.items) != 2:
                raise ParseError("quote expects exactly one datum", sexp.location)
            return LitExp(sexp.items[1], sexp.location)
        elif head == 'type-case':
            return self.parse_type_case(sexp)
        elif head in ('define', 'define-type'):
            raise ParseError(f"{head} is only allowed at the top level", sexp.location)
        elif head == PROGRAM_KEYWORD:
            raise ParseError(f"{PROGRAM_KEYWORD} must wrap the whole program", sexp.location)

        rator = self.parse_cexp(sexp.items[0])
        rands = tuple(self.parse_cexp(item) for item in sexp.items[1:])
        return AppExp(rator, rands, sexp.location)

    def parse_if(self, sexp: SList) -> IfExp:
        if len(sexp.items) != 4:
            raise ParseError("if expects (if test then else)", sexp.location)
        test, then, alt = (self.parse_cexp(item) for item in sexp.items[1:])
        return IfExp(test, then, alt, sexp.location)

    def parse_proc(self, sexp: SList) -> ProcExp:
        # (lambda ((x : t) ...) : t body ...)
        items = sexp.items
        if len(items) < 5 or not isinstance(items[1], SList):
            raise ParseError("lambda expects (lambda ((var : type) ...) : type body ...)", sexp.location)
        if not self.is_symbol(items[2], ':'):
            raise ParseError("Missing return type annotation in lambda", sexp.location)
        args = tuple(self.parse_var_decl(item) for item in items[1].items)
        names = [arg.var for arg in args]
        if len(set(names)) != len(names):
            raise ParseError("Duplicate parameter in lambda", sexp.location)
        return_te = self.parse_type(items[3])
        return ProcExp(args, self.parse_body(items[4:], sexp), return_te, sexp.location)

    def parse_bindings(self, sexp: SList) -> tuple:
        # (let (((x : t) val) ...) body ...)
        if len(sexp.items) < 3 or not isinstance(sexp.items[1], SList):
            raise ParseError(f"{sexp.head_symbol()} expects a list of bindings and a body", sexp.location)
        bindings = []
        for item in sexp.items[1].items:
            if not isinstance(item, SList) or len(item.items) != 2:
                raise ParseError("Binding expects ((var : type) value)", self.location_of(item))
            bindings.append(Binding(self.parse_var_decl(item.items[0]), self.parse_cexp(item.items[1])))
        names = [b.var.var for b in bindings]
        if len(set(names)) != len(names):
            raise ParseError("Duplicate variable in bindings", sexp.location)
        return tuple(bindings)

    def parse_set(self, sexp: SList) -> SetExp:
        if len(sexp.items) != 3 or not isinstance(sexp.items[1], SSymbol):
            raise ParseError("set! expects (set! var value)", sexp.location)
        target = self.parse_cexp(sexp.items[1])
        if not isinstance(target, VarRef):
            raise ParseError("set! target must be a variable", sexp.location)
        return SetExp(target, self.parse_cexp(sexp.items[2]), sexp.location)

    def parse_type_case(self, sexp: SList) -> TypeCaseExp:
        # (type-case Name val (Record (x ...) body ...) ...)
        items = sexp.items
        if len(items) < 4:
            raise ParseError("type-case expects a type name, a value and at least one clause", sexp.location)
        type_name = self.parse_identifier(items[1], "type name")
        val = self.parse_cexp(items[2])
        cases = tuple(self.parse_case(item) for item in items[3:])
        return TypeCaseExp(type_name, val, cases, sexp.location)

    def parse_case(self, sexp: SExp) -> CaseExp:
        if not isinstance(sexp, SList) or len(sexp.items) < 3 or not isinstance(sexp.items[1], SList):
            raise ParseError("type-case clause expects (Record (var ...) body ...)", self.location_of(sexp))
        type_name = self.parse_identifier(sexp.items[0], "record name")
        variables = tuple(self.parse_identifier(item, "variable") for item in sexp.items[1].items)
        if len(set(variables)) != len(variables):
            raise ParseError(f"Duplicate variable in clause {type_name}", sexp.location)
        return CaseExp(type_name, variables, self.parse_body(sexp.items[2:], sexp), sexp.location)

    # Pieces

    def parse_body(self, items: Sequence[SExp], parent: SList) -> tuple:
        if not items:
            raise ParseError("Empty body", parent.location)
        return tuple(self.parse_cexp(item) for item in items)

    def parse_var_decl(self, sexp: SExp) -> VarDecl:
        if isinstance(sexp, SSymbol):
            raise ParseError(f"Missing type annotation for '{sexp.name}'", sexp.location)
        if not isinstance(sexp, SList) or len(sexp.items) != 3 or not self.is_symbol(sexp.items[1], ':'):
            raise ParseError("Expected (var : type)", self.location_of(sexp))
        var = self.parse_identifier(sexp.items[0], "variable")
        return VarDecl(var, self.parse_type(sexp.items[2]))

    def parse_type(self, sexp: SExp) -> TExp:
        return parse_texp_sexp(sexp)

    def parse_identifier(self, sexp: SExp, what: str) -> str:
        if not isinstance(sexp, SSymbol) or sexp.name in SPECIAL_FORMS or sexp.name == ':':
            raise ParseError(f"Expected {what}", self.location_of(sexp))
        return sexp.name

    @staticmethod
    def is_symbol(sexp: SExp, name: str) -> bool:
        return isinstance(sexp, SSymbol) and sexp.name == name

    @staticmethod
    def location_of(sexp: SExp) -> Optional[SourceLocation]:
        return getattr(sexp, 'location', None)


def parse(source: str, filename: Optional[str] = None) -> Program:
    """Parse source code into a program."""
    return Parser(filename).parse_program(read(source, filename))


def parse_exp(source: str) -> Exp:
    """Parse a single form, which may be a top-level definition."""
    sexps = read(source)
    if len(sexps) != 1:
        raise ParseError(f"Expected a single expression, found {len(sexps)}")
    return Parser().parse_top(sexps[0])


# Unparsing
# =========

def unparse_sexp(sexp: SExp) -> str:
    """Render a datum in concrete syntax."""
    if isinstance(sexp, SBool):
        return '#t' if sexp.value else '#f'
    if isinstance(sexp, SNumber):
        return str(sexp.value)
    if isinstance(sexp, SString):
        return unparse_string(sexp.value)
    if isinstance(sexp, SSymbol):
        return sexp.name
    return '(' + ' '.join(unparse_sexp(item) for item in sexp.items) + ')'


def unparse_string(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n').replace('\t', '\\t')
    return f'"{escaped}"'


def unparse_var_decl(decl: VarDecl) -> str:
    return f"({decl.var} : {unparse_texp(decl.texp)})"


def unparse_exps(exps: Sequence[Exp]) -> str:
    return ' '.join(unparse(e) for e in exps)


def unparse_bindings(bindings: Sequence[Binding]) -> str:
    return ' '.join(f"({unparse_var_decl(b.var)} {unparse(b.val)})" for b in bindings)


def unparse(exp: Parsed) -> str:
    """Render an expression in concrete syntax."""
    if isinstance(exp, BoolExp):
        return '#t' if exp.value else '#f'
    elif isinstance(exp, NumExp):
        return str(exp.value)
    elif isinstance(exp, StrExp):
        return unparse_string(exp.value)
    elif isinstance(exp, PrimOp):
        return exp.op
    elif isinstance(exp, VarRef):
        return exp.var
    elif isinstance(exp, IfExp):
        return f"(if {unparse(exp.test)} {unparse(exp.then)} {unparse(exp.alt)})"
    elif isinstance(exp, ProcExp):
        args = ' '.join(unparse_var_decl(arg) for arg in exp.args)
        return f"(lambda ({args}) : {unparse_texp(exp.return_te)} {unparse_exps(exp.body)})"
    elif isinstance(exp, AppExp):
        return f"({unparse_exps((exp.rator,) + exp.rands)})"
    elif isinstance(exp, LetExp):
        return f"(let ({unparse_bindings(exp.bindings)}) {unparse_exps(exp.body)})"
    elif isinstance(exp, LetrecExp):
        return f"(letrec ({unparse_bindings(exp.bindings)}) {unparse_exps(exp.body)})"
    elif isinstance(exp, SetExp):
        return f"(set! {exp.var.var} {unparse(exp.val)})"
    elif isinstance(exp, LitExp):
        return f"(quote {unparse_sexp(exp.val)})"
    elif isinstance(exp, TypeCaseExp):
        cases = ' '.join(
            f"({c.type_name} ({' '.join(c.variables)}) {unparse_exps(c.body)})" for c in exp.cases)
        return f"(type-case {exp.type_name} {unparse(exp.val)} {cases})"
    elif isinstance(exp, DefineExp):
        return f"(define {unparse_var_decl(exp.var)} {unparse(exp.val)})"
    elif isinstance(exp, DefineTypeExp):
        records = ' '.join(unparse_record(r) for r in exp.ud_type.records)
        return f"(define-type {exp.type_name} {records})"
    elif isinstance(exp, Program):
        return f"({PROGRAM_KEYWORD} {unparse_exps(exp.exps)})"
    raise TypeError(f"Not an expression: {exp!r}")
