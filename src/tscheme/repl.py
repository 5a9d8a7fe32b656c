"""REPL (Read-Eval-Print Loop) for tscheme.

Each input is type checked together with the forms accepted so far, so
definitions and define-types entered earlier stay visible. Rejected input
leaves the session unchanged.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
import os

from .reader import read
from .parser import Parser
from .syntax import Exp, Program, DefineExp, DefineTypeExp
from .texp import unparse_texp
from .tenv import apply_tenv, tenv_bindings
from .result import Ok, either
from .typechecker import init_tenv, typeof_parsed_program, failure_to_error
from .errors import ParseError, TypeCheckError, enable_trace, disable_trace, clear_trace, get_trace
from .cli import echo, console, environment_table, __version__


def paren_depth(text: str) -> int:
    """Open minus close parentheses, ignoring strings and comments."""
    depth = 0
    in_string = False
    escaped = False
    in_comment = False
    for ch in text:
        if in_comment:
            in_comment = ch != '\n'
        elif in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ';':
            in_comment = True
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
    return depth


@dataclass
class ReplState:
    """State of the REPL session."""
    forms: List[Exp] = field(default_factory=list)

    def program(self, extra: Optional[List[Exp]] = None) -> Program:
        return Program(tuple(self.forms + (extra or [])))

    def add_forms(self, source: str) -> str:
        """Type check new forms against the session and keep them if they pass.

        Returns the rendered type of the last form. Raises ``ParseError`` or
        ``TypeCheckError``.
        """
        new_forms = list(Parser().parse_program(read(source)).exps)
        candidate = self.program(new_forms)
        result = typeof_parsed_program(candidate)
        if not isinstance(result, Ok):
            raise failure_to_error(result, candidate, source)
        self.forms.extend(new_forms)
        return unparse_texp(result.value)

    def get_type(self, name: str) -> Optional[str]:
        """The type of a name in the session's environment."""
        return either(apply_tenv(init_tenv(self.program()), name), unparse_texp, lambda _: None)


class Repl:
    """The REPL interface."""

    def __init__(self, verbose: bool = False):
        self.state = ReplState()
        self.verbose = verbose
        self.buffer: List[str] = []

    def _setup_readline(self) -> None:
        """Setup readline with history and completion."""
        import readline
        import atexit

        histfile = os.path.expanduser("~/.tscheme_history")
        try:
            readline.read_history_file(histfile)
        except FileNotFoundError:
            pass
        atexit.register(readline.write_history_file, histfile)

        readline.set_completer(self._completer)
        readline.parse_and_bind("tab: complete")

    def _completer(self, text: str, state: int) -> Optional[str]:
        """Tab completion for names in scope and keywords."""
        names = [name for name, _ in tenv_bindings(init_tenv(self.state.program()))]
        names.extend(["define", "define-type", "lambda", "let", "letrec", "if",
                      "set!", "quote", "type-case"])
        matches = [name for name in names if name.startswith(text)]
        if state < len(matches):
            return matches[state]
        return None

    def run(self) -> None:
        """Run the REPL."""
        self._setup_readline()
        echo(f"tscheme REPL v{__version__}", style="bold")
        echo("Type :help for help, :quit to exit")
        echo("")

        while True:
            try:
                prompt = "...      " if self.buffer else "tscheme> "
                line = input(prompt)
            except EOFError:
                echo("\nGoodbye!")
                break
            except KeyboardInterrupt:
                echo("\nUse :quit to exit")
                self.buffer = []
                continue

            if not self.buffer and line.strip().startswith(":"):
                if not self.handle_command(line.strip()):
                    break
                continue

            self.buffer.append(line)
            text = "\n".join(self.buffer)
            if paren_depth(text) > 0:
                continue
            self.buffer = []
            self.process_input(text)

    def handle_command(self, command: str) -> bool:
        """Handle a REPL command. Returns False when the session should end."""
        parts = command.split()
        cmd = parts[0]

        if cmd in [":quit", ":q"]:
            echo("Goodbye!")
            return False

        elif cmd in [":help", ":h"]:
            self.show_help()

        elif cmd in [":type", ":t"]:
            if len(parts) < 2:
                echo("Usage: :type <name>")
            else:
                name = parts[1]
                type_str = self.state.get_type(name)
                if type_str:
                    echo(f"{name} : {type_str}")
                else:
                    echo(f"Unknown name: {name}")

        elif cmd in [":env", ":e"]:
            console.print(environment_table(init_tenv(self.state.program())))

        elif cmd in [":list", ":l"]:
            self.list_definitions()

        elif cmd in [":clear", ":c"]:
            self.state = ReplState()
            echo("State cleared")

        elif cmd == ":load":
            if len(parts) < 2:
                echo("Usage: :load <filename>")
            else:
                self.load_file(parts[1])

        else:
            echo(f"Unknown command: {cmd}")
            echo("Type :help for help")

        return True

    def show_help(self) -> None:
        """Show help message."""
        help_text = """
tscheme REPL Commands:

  :help, :h           Show this help message
  :quit, :q           Exit the REPL
  :type, :t <name>    Show the type of a name
  :env, :e            Show the type environment
  :list, :l           List all definitions
  :clear, :c          Clear all definitions
  :load <file>        Load definitions from a file

Language:

  42  #t  "hi"  'sym                      Literals
  (lambda ((x : number)) : number x)      Procedure
  (let (((x : number) 1)) x)              Let (also letrec)
  (define (x : number) 1)                 Global definition
  (define-type Shape (Circle (r : number)) (Square (s : number)))
  (type-case Shape v (Circle (r) r) (Square (s) s))

Types:

  number boolean string void literal any
  (number * string -> boolean)            Procedure type
  (Empty -> void)                         No parameters
"""
        echo(help_text)

    def list_definitions(self) -> None:
        """List all definitions in the current session."""
        definitions = [form for form in self.state.forms
                       if isinstance(form, (DefineExp, DefineTypeExp))]
        if not definitions:
            echo("No definitions")
            return

        echo("Definitions:")
        for form in definitions:
            if isinstance(form, DefineTypeExp):
                records = " ".join(r.type_name for r in form.ud_type.records)
                echo(f"  define-type {form.type_name}: {records}")
            else:
                echo(f"  {form.var.var} : {unparse_texp(form.var.texp)}")

    def load_file(self, filename: str) -> None:
        """Load definitions from a file."""
        try:
            with open(filename, 'r') as f:
                content = f.read()
        except FileNotFoundError:
            echo(f"File not found: {filename}", style="red")
            return
        if self.process_input(content, quiet=True):
            echo(f"Loaded {filename}", style="green")

    def process_input(self, input_str: str, quiet: bool = False) -> bool:
        """Type check input and print its type. Returns whether it was accepted."""
        if not input_str.strip():
            return False

        if self.verbose:
            clear_trace()
            enable_trace()
        try:
            type_str = self.state.add_forms(input_str)
        except ParseError as e:
            echo(str(e), style="red")
            return False
        except TypeCheckError as e:
            # format_error includes the trace
            echo(e.format_error(), style="red")
            return False
        else:
            if self.verbose and get_trace().steps:
                echo(get_trace().format(), style="dim")
        finally:
            if self.verbose:
                disable_trace()
                clear_trace()

        if not quiet:
            echo(type_str)
        return True


def main():
    """Entry point for the REPL."""
    repl = Repl()
    repl.run()


if __name__ == "__main__":
    main()
