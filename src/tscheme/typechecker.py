"""Type checker for tscheme.

Computes the type of every expression of a fully annotated program from
its structure and annotations. Every rule returns a result value: the type
of the expression, or a failure describing the first incompatibility
found. User-defined types take part through the hierarchy module (subtype
and coverage rules) and the totality module (well-formed definitions and
exhaustive type-case).
"""

from __future__ import annotations
from typing import Dict, Optional, Sequence

from .syntax import *
from .texp import (
    TExp, ProcTExp, Record,
    make_num_texp, make_bool_texp, make_str_texp, make_void_texp, make_lit_texp,
    make_any_texp, make_proc_texp, parse_texp, unparse_texp,
)
from .tenv import TEnv, make_empty_tenv, make_extend_tenv, apply_tenv, tenv_bindings
from .result import (
    Result, Ok, Failure, make_ok, make_failure, bind, mapv, map_result, zip_with_result,
)
from .hierarchy import (
    get_definitions, get_type_definitions, get_records, get_type_by_name, get_record_by_name,
    check_equal_type, check_cover_type, check_texp_resolves, check_texps_resolve,
)
from .totality import check_user_defined_types, check_type_case
from .parser import parse, unparse, PROGRAM_KEYWORD
from .errors import TypeCheckError, ParseError, ErrorContext, ErrorKind, get_trace


# Initial type environment
# ========================

def predicate_texp() -> ProcTExp:
    return make_proc_texp([make_any_texp()], make_bool_texp())


def extend_define_env(p: Program, tenv: TEnv) -> TEnv:
    """Bind every top-level define to its declared type."""
    definitions = get_definitions(p)
    return make_extend_tenv([d.var.var for d in definitions],
                            [d.var.texp for d in definitions], tenv)


def extend_define_types_env(p: Program, tenv: TEnv) -> TEnv:
    """Bind each user-defined type name to itself, plus its predicate ``name?``."""
    uds = get_type_definitions(p)
    names = [ud.type_name for ud in uds]
    predicates = [f"{name}?" for name in names]
    return make_extend_tenv(names + predicates,
                            uds + [predicate_texp() for _ in predicates], tenv)


def extend_records_env(p: Program, tenv: TEnv) -> TEnv:
    """Bind each record name to itself, plus ``name?`` and ``make-name``."""
    records = get_records(p)
    names = [r.type_name for r in records]
    predicates = [f"{name}?" for name in names]
    constructors = [f"make-{name}" for name in names]
    constructor_tes = [make_proc_texp([f.te for f in r.fields], r) for r in records]
    return make_extend_tenv(names + predicates + constructors,
                            records + [predicate_texp() for _ in predicates] + constructor_tes,
                            tenv)


def init_tenv(p: Program) -> TEnv:
    """The environment a program is checked in: globals, then types, then records."""
    return extend_records_env(p, extend_define_types_env(p, extend_define_env(p, make_empty_tenv())))


# Primitive operators
# ===================

NUM_OP_TEXP = parse_texp('(number * number -> number)')
NUM_COMP_TEXP = parse_texp('(number * number -> boolean)')
BOOL_OP_TEXP = parse_texp('(boolean * boolean -> boolean)')
PREDICATE_TEXP = parse_texp('(any -> boolean)')
EQUALITY_TEXP = parse_texp('(any * any -> boolean)')

PRIMITIVE_TEXPS: Dict[str, TExp] = {
    '+': NUM_OP_TEXP,
    '-': NUM_OP_TEXP,
    '*': NUM_OP_TEXP,
    '/': NUM_OP_TEXP,
    'and': BOOL_OP_TEXP,
    'or': BOOL_OP_TEXP,
    '>': NUM_COMP_TEXP,
    '<': NUM_COMP_TEXP,
    '=': NUM_COMP_TEXP,
    'number?': PREDICATE_TEXP,
    'boolean?': PREDICATE_TEXP,
    'string?': PREDICATE_TEXP,
    'list?': PREDICATE_TEXP,
    'pair?': PREDICATE_TEXP,
    'symbol?': PREDICATE_TEXP,
    'not': parse_texp('(boolean -> boolean)'),
    'eq?': EQUALITY_TEXP,
    'string=?': EQUALITY_TEXP,
    'display': parse_texp('(any -> void)'),
    'newline': parse_texp('(Empty -> void)'),
}


def typeof_prim(exp: PrimOp) -> Result[TExp]:
    if exp.op in PRIMITIVE_TEXPS:
        return make_ok(PRIMITIVE_TEXPS[exp.op])
    return make_failure(f"Primitive not yet implemented: {exp.op}", ErrorKind.UNKNOWN_PRIMITIVE)


# Typing rules
# ============

def typeof_exp(exp: Parsed, tenv: TEnv, p: Program) -> Result[TExp]:
    """Compute the type of an expression in a type environment."""
    trace = get_trace()
    if not trace.enabled:
        return _typeof_exp(exp, tenv, p)

    trace.depth += 1
    try:
        result = _typeof_exp(exp, tenv, p)
    finally:
        trace.depth -= 1
    rendered = unparse_texp(result.value) if isinstance(result, Ok) else f"error: {result.message}"
    trace.add_step(type(exp).__name__, unparse(exp), rendered, trace.depth)
    return result


def _typeof_exp(exp: Parsed, tenv: TEnv, p: Program) -> Result[TExp]:
    if isinstance(exp, NumExp):
        return make_ok(make_num_texp())
    elif isinstance(exp, BoolExp):
        return make_ok(make_bool_texp())
    elif isinstance(exp, StrExp):
        return make_ok(make_str_texp())
    elif isinstance(exp, PrimOp):
        return typeof_prim(exp)
    elif isinstance(exp, VarRef):
        return apply_tenv(tenv, exp.var)
    elif isinstance(exp, IfExp):
        return typeof_if(exp, tenv, p)
    elif isinstance(exp, ProcExp):
        return typeof_proc(exp, tenv, p)
    elif isinstance(exp, AppExp):
        return typeof_app(exp, tenv, p)
    elif isinstance(exp, LetExp):
        return typeof_let(exp, tenv, p)
    elif isinstance(exp, LetrecExp):
        return typeof_letrec(exp, tenv, p)
    elif isinstance(exp, DefineExp):
        return typeof_define(exp, tenv, p)
    elif isinstance(exp, Program):
        return typeof_exps(exp.exps, tenv, p)
    elif isinstance(exp, SetExp):
        return typeof_set(exp, tenv, p)
    elif isinstance(exp, LitExp):
        return make_ok(make_lit_texp())
    elif isinstance(exp, DefineTypeExp):
        return typeof_define_type(exp, tenv, p)
    elif isinstance(exp, TypeCaseExp):
        return typeof_type_case(exp, tenv, p)
    raise TypeError(f"Unknown expression: {exp!r}")


def typeof_exps(exps: Sequence[Exp], tenv: TEnv, p: Program) -> Result[TExp]:
    """Check a non-empty sequence in order; its type is the type of the last one."""
    if not exps:
        return make_failure("Empty sequence of expressions", ErrorKind.EMPTY_SEQUENCE)
    for exp in exps[:-1]:
        result = typeof_exp(exp, tenv, p)
        if isinstance(result, Failure):
            return result
    return typeof_exp(exps[-1], tenv, p)


def typeof_if(exp: IfExp, tenv: TEnv, p: Program) -> Result[TExp]:
    # The branches need a common cover; the result is its most specific member
    test = bind(typeof_exp(exp.test, tenv, p),
                lambda test_te: check_equal_type(test_te, make_bool_texp(), exp, p))
    return bind(test, lambda _: bind(
        typeof_exp(exp.then, tenv, p), lambda then_te: bind(
            typeof_exp(exp.alt, tenv, p), lambda alt_te:
                check_cover_type([then_te, alt_te], p))))


def typeof_proc(exp: ProcExp, tenv: TEnv, p: Program) -> Result[TExp]:
    arg_tes = [arg.texp for arg in exp.args]

    def typeof_body(_) -> Result[TExp]:
        ext_tenv = make_extend_tenv([arg.var for arg in exp.args], arg_tes, tenv)
        body = bind(typeof_exps(exp.body, ext_tenv, p),
                    lambda body_te: check_equal_type(body_te, exp.return_te, exp, p))
        return mapv(body, lambda return_te: make_proc_texp(arg_tes, return_te))

    return bind(check_texps_resolve(arg_tes + [exp.return_te], p), typeof_body)


def typeof_app(exp: AppExp, tenv: TEnv, p: Program) -> Result[TExp]:
    def check_rands(rator_te: TExp) -> Result[TExp]:
        if not isinstance(rator_te, ProcTExp):
            return make_failure(
                f"Application of non-procedure: {unparse_texp(rator_te)} in {unparse(exp)}",
                ErrorKind.NON_PROCEDURE)
        if len(exp.rands) != len(rator_te.param_tes):
            return make_failure(f"Wrong parameter numbers passed to proc: {unparse(exp)}",
                                ErrorKind.WRONG_ARITY)
        constraints = zip_with_result(
            lambda rand, param_te: bind(typeof_exp(rand, tenv, p),
                                        lambda rand_te: check_equal_type(rand_te, param_te, exp, p)),
            exp.rands, rator_te.param_tes)
        return mapv(constraints, lambda _: rator_te.return_te)

    return bind(typeof_exp(exp.rator, tenv, p), check_rands)


def typeof_let(exp: LetExp, tenv: TEnv, p: Program) -> Result[TExp]:
    # Initializers see only the enclosing environment
    variables = [b.var.var for b in exp.bindings]
    var_tes = [b.var.texp for b in exp.bindings]
    constraints = bind(check_texps_resolve(var_tes, p), lambda _: map_result(
        lambda b: bind(typeof_exp(b.val, tenv, p),
                       lambda val_te: check_equal_type(val_te, b.var.texp, exp, p)),
        exp.bindings))
    return bind(constraints,
                lambda _: typeof_exps(exp.body, make_extend_tenv(variables, var_tes, tenv), p))


def typeof_letrec(exp: LetrecExp, tenv: TEnv, p: Program) -> Result[TExp]:
    """Type a letrec of procedures.

    All the procedures are bound in one frame before any body is checked,
    so they may call each other. Each body is checked in that frame
    extended with its own parameters.
    """
    procs = [b.val for b in exp.bindings]
    if not all(isinstance(proc, ProcExp) for proc in procs):
        return make_failure(f"letrec - only support binding of procedures - {unparse(exp)}",
                            ErrorKind.INVALID_LETREC)

    names = [b.var.var for b in exp.bindings]
    param_tes = [[arg.texp for arg in proc.args] for proc in procs]
    return_tes = [proc.return_te for proc in procs]
    annotations = [b.var.texp for b in exp.bindings] + \
        [te for tes in param_tes for te in tes] + return_tes

    def typeof_bodies(_) -> Result[TExp]:
        tenv_body = make_extend_tenv(
            names, [make_proc_texp(tes, rte) for tes, rte in zip(param_tes, return_tes)], tenv)
        tenv_procs = [make_extend_tenv([arg.var for arg in proc.args], tes, tenv_body)
                      for proc, tes in zip(procs, param_tes)]

        body_tes = zip_with_result(lambda proc, tenv_i: typeof_exps(proc.body, tenv_i, p),
                                   procs, tenv_procs)
        constraints = bind(body_tes, lambda tes: zip_with_result(
            lambda te, return_te: check_equal_type(te, return_te, exp, p), tes, return_tes))
        return bind(constraints, lambda _: typeof_exps(exp.body, tenv_body, p))

    return bind(check_texps_resolve(annotations, p), typeof_bodies)


def typeof_define(exp: DefineExp, tenv: TEnv, p: Program) -> Result[TExp]:
    # The name is visible in its own value, for recursive procedures
    val_tenv = make_extend_tenv([exp.var.var], [exp.var.texp], tenv)
    constraint = bind(check_texp_resolves(exp.var.texp, p), lambda _: bind(
        typeof_exp(exp.val, val_tenv, p),
        lambda val_te: check_equal_type(val_te, exp.var.texp, exp, p)))
    return mapv(constraint, lambda _: make_void_texp())


def typeof_set(exp: SetExp, tenv: TEnv, p: Program) -> Result[TExp]:
    constraint = bind(typeof_exp(exp.var, tenv, p), lambda var_te: bind(
        typeof_exp(exp.val, tenv, p), lambda val_te: check_equal_type(val_te, var_te, exp, p)))
    return mapv(constraint, lambda _: make_void_texp())


def typeof_define_type(exp: DefineTypeExp, tenv: TEnv, p: Program) -> Result[TExp]:
    return mapv(check_user_defined_types(p), lambda _: make_void_texp())


def typeof_type_case(exp: TypeCaseExp, tenv: TEnv, p: Program) -> Result[TExp]:
    """Type a type-case.

    The value must belong to the dispatched type and the clauses must cover
    its records exactly. Each clause body is checked with its variables bound
    to the field types of its record; the result covers all clause types.
    """
    def typeof_case(case: CaseExp) -> Result[TExp]:
        def typeof_body(record: Record) -> Result[TExp]:
            if len(record.fields) != len(case.variables):
                return make_failure('Invalid type-case', ErrorKind.INVALID_TYPE_CASE)
            case_tenv = make_extend_tenv(case.variables, [f.te for f in record.fields], tenv)
            return typeof_exps(case.body, case_tenv, p)
        return bind(get_record_by_name(case.type_name, p), typeof_body)

    constraints = bind(get_type_by_name(exp.type_name, p), lambda ud_te: bind(
        typeof_exp(exp.val, tenv, p), lambda val_te: bind(
            check_equal_type(val_te, ud_te, exp, p), lambda _:
                check_type_case(exp, p))))

    return bind(constraints, lambda _: bind(
        map_result(typeof_case, exp.cases), lambda case_tes: check_cover_type(case_tes, p)))


# Entry points
# ============

def typeof_parsed_program(p: Program) -> Result[TExp]:
    """Type a whole program; its type definitions must be well formed too."""
    return bind(typeof_exp(p, init_tenv(p), p),
                lambda te: mapv(check_user_defined_types(p), lambda _: te))


def typeof_program(source: str) -> Result[str]:
    """Type a program given in concrete syntax and render its type."""
    try:
        p = parse(source)
    except ParseError as e:
        return make_failure(str(e), ErrorKind.PARSE_ERROR)
    return mapv(typeof_parsed_program(p), unparse_texp)


def typeof(source: str) -> Result[str]:
    """Type a single expression, checked as a one-form program."""
    return typeof_program(f"({PROGRAM_KEYWORD} {source})")


def type_check(source: str, filename: Optional[str] = None) -> TExp:
    """Type a program, raising ``TypeCheckError`` (or ``ParseError``) on failure."""
    p = parse(source, filename)
    result = typeof_parsed_program(p)
    if isinstance(result, Failure):
        raise failure_to_error(result, p, source, filename)
    return result.value


def failure_to_error(failure: Failure, p: Program, source: Optional[str] = None,
                     filename: Optional[str] = None) -> TypeCheckError:
    """Turn a failure value into an exception with context for reporting."""
    context = ErrorContext(source_code=source, filename=filename, kind=failure.kind)
    if failure.kind == ErrorKind.UNBOUND_VARIABLE:
        context.name = failure.message.split(': ', 1)[-1]
        context.available_names = [name for name, _ in tenv_bindings(init_tenv(p))]
    return TypeCheckError(failure.message, failure.kind, context)
