"""Command-line interface for tscheme."""

import click
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

# Version information
__version__ = "0.1.0"

console = Console()
err_console = Console(stderr=True)


def echo(text: str, style: Optional[str] = None, err: bool = False) -> None:
    """Print plain text, without rich markup or line wrapping."""
    target = err_console if err else console
    target.print(text, style=style, markup=False, emoji=False, highlight=False,
                 soft_wrap=True)


def environment_table(tenv) -> Table:
    """Render a type environment as a table, innermost bindings first."""
    from tscheme.tenv import tenv_bindings
    from tscheme.texp import unparse_texp

    table = Table(title="Type environment")
    table.add_column("Name", style="bold")
    table.add_column("Type", style="cyan")
    for name, te in tenv_bindings(tenv):
        table.add_row(name, unparse_texp(te))
    return table


@click.command()
@click.argument('filename', required=False, type=click.Path(exists=True, dir_okay=False))
@click.option('--expr', '-e', help='Type check a single expression instead of a file')
@click.option('--ast', is_flag=True, help='Print the abstract syntax tree')
@click.option('--env', 'show_env', is_flag=True, help='Print the initial type environment')
@click.option('--verbose', '-v', is_flag=True, help='Show the type derivation trace')
@click.option('--version', is_flag=True, help='Show version information')
def main(filename: Optional[str] = None,
         expr: Optional[str] = None,
         ast: bool = False,
         show_env: bool = False,
         verbose: bool = False,
         version: bool = False) -> None:
    """tscheme - a type checker for Scheme with user-defined types.

    If FILENAME or --expr is given, type check it and print its type.
    Otherwise, start an interactive REPL.

    Examples:

      tscheme                          # Start REPL

      tscheme shapes.scm               # Type check a program

      tscheme -e '(+ 1 2)'             # Type check an expression

      tscheme --env shapes.scm         # Show the initial environment
    """
    if version:
        echo(f"tscheme version {__version__}")
        sys.exit(0)

    if filename is None and expr is None:
        from tscheme.repl import Repl
        repl = Repl(verbose=verbose)
        try:
            repl.run()
        except KeyboardInterrupt:
            echo("\nGoodbye!")
        return

    from tscheme.parser import parse, PROGRAM_KEYWORD
    from tscheme.typechecker import init_tenv, typeof_parsed_program, failure_to_error
    from tscheme.texp import unparse_texp
    from tscheme.result import Failure
    from tscheme.errors import ParseError, enable_trace, disable_trace, clear_trace, get_trace

    if filename:
        with open(filename, 'r') as f:
            source = f.read()
    else:
        source = f"({PROGRAM_KEYWORD} {expr})"

    try:
        program = parse(source, filename)
    except ParseError as e:
        e.context.source_code = source
        e.context.filename = filename
        echo(e.format_error(), style="red", err=True)
        sys.exit(1)

    if ast:
        echo(f"Abstract Syntax Tree:\n{program}")
        return

    if show_env:
        console.print(environment_table(init_tenv(program)))

    if verbose:
        clear_trace()
        enable_trace()
    try:
        result = typeof_parsed_program(program)
        if isinstance(result, Failure):
            error = failure_to_error(result, program, source, filename)
            echo(error.format_error(), style="red", err=True)
            sys.exit(1)
        if verbose:
            echo(get_trace().format(), style="dim")
            echo(f"Type checked successfully ({len(program.exps)} top-level forms)", style="green")
        echo(unparse_texp(result.value))
    finally:
        if verbose:
            disable_trace()
            clear_trace()


if __name__ == "__main__":
    main()
