"""Error handling for the PukiMO language. Every problem a script can cause is a ScriptError carrying a category, a
source line and optional notes; if another type of error makes it all the way to ErrorHandler, it is assumed to be an
internal issue.

Reported errors have the format

```
[line <N>] <Category> error: <message>
  Note: <hint>
```

where <Category> is one of Lexical, Parse, Runtime, Type, Name, Argument or Property.
"""

import logging
import sys
from dataclasses import dataclass, field

from termcolor import colored

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """A single reported problem, detached from the exception that produced it."""
    line: int
    category: str
    message: str
    hints: list = field(default_factory=list)
    lexeme: str = None  # lexeme of the token the problem was found at, if any

    @property
    def header(self):
        return f"[line {self.line}] " if self.line else ""

    def __str__(self):
        lines = [f"{self.header}{self.category} error: {self.message}"]
        lines.extend(f"  Note: {hint}" for hint in self.hints)
        return "\n".join(lines)


class ScriptError(Exception):
    """Base class of every error a PukiMO script can raise. token (if any) locates the error in the source."""
    category = "Runtime"

    def __init__(self, msg, token=None, line=None, hints=None, internal=False):
        super().__init__(msg)
        self.msg = msg
        self.token = token
        self.line = line if line is not None else getattr(token, "line", 0)
        self.hints = list(hints) if hints else []
        self.internal = internal

    @property
    def message(self):
        """Message as reported to the user."""
        return self.msg

    def diagnostic(self):
        return Diagnostic(self.line, self.category, self.message, list(self.hints), getattr(self.token, "lexeme", None))


class LexicalError(ScriptError):
    category = "Lexical"


class ParseError(ScriptError):
    category = "Parse"

    @property
    def message(self):
        if self.token is None:
            return self.msg
        if self.token.lexeme == "":
            return f"{self.msg} at end"
        return f"{self.msg} at '{self.token.lexeme}'"


class ScriptRuntimeError(ScriptError):
    category = "Runtime"


class ScriptTypeError(ScriptRuntimeError):
    category = "Type"


class ScriptNameError(ScriptRuntimeError):
    category = "Name"


class ArgumentError(ScriptRuntimeError):
    category = "Argument"


class PropertyError(ScriptRuntimeError):
    category = "Property"


class PhaseError(ScriptError):
    """Raised when scanning or parsing a chunk failed. Carries every diagnostic the phase collected."""

    def __init__(self, phase, diagnostics):
        super().__init__(f"{phase} failed with {len(diagnostics)} error(s)")
        self.phase = phase
        self.diagnostics = list(diagnostics)


class Diagnostics:
    """Collects the errors of a phase that keeps going after the first one (scanning and parsing)."""

    def __init__(self):
        self.records = []

    def record(self, error):
        """Records error (a ScriptError) and returns it."""
        logger.debug("recorded %s error on line %s: %s", error.category.lower(), error.line, error.msg)
        self.records.append(error.diagnostic())
        return error

    def attach_hint(self, token, hint):
        """Adds hint to the latest record found at token (same line and lexeme). Does nothing if there is none."""
        for diagnostic in reversed(self.records):
            if diagnostic.line == token.line and diagnostic.lexeme == token.lexeme:
                diagnostic.hints.append(hint)
                return

    def has_errors(self):
        return bool(self.records)

    def clear(self):
        self.records = []

    def __iter__(self):
        return iter(self.records)

    def __len__(self):
        return len(self.records)


class ErrorHandler:
    """Context manager that will silently suppress Python errors and report PukiMO errors instead."""
    ERROR = "red"
    NOTE = "magenta"

    def __init__(self, fatal=True, stream=None, color=None):
        """color=None lets termcolor decide (tty and NO_COLOR/FORCE_COLOR aware); True or False force it."""
        self.fatal = fatal
        self.stream = stream if stream is not None else sys.stdout
        self.color = color
        self.history = []  # every Diagnostic reported through this handler

    def _paint(self, text, color):
        if self.color is False:
            return text
        return colored(text, color, attrs=["bold"], force_color=self.color or None)

    def format(self, diagnostic, internal=False):
        """Returns diagnostic as printable text, colored if enabled."""
        result = self._paint("[internal] ", ErrorHandler.ERROR) if internal else ""
        result += diagnostic.header
        result += self._paint(f"{diagnostic.category} error: ", ErrorHandler.ERROR) + diagnostic.message
        for hint in diagnostic.hints:
            result += "\n  " + self._paint("Note: ", ErrorHandler.NOTE) + hint
        return result

    def report(self, diagnostic, internal=False):
        """Prints diagnostic without raising or exiting."""
        self.history.append(diagnostic)
        print(self.format(diagnostic, internal), file=self.stream)

    def throw(self, error):
        """Reports error (a ScriptError). Exits the process with status 1 if this handler is fatal."""
        if isinstance(error, PhaseError):
            for diagnostic in error.diagnostics:
                self.report(diagnostic)
        else:
            self.report(error.diagnostic(), internal=error.internal)

        if self.fatal:
            sys.exit(1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(ScriptRuntimeError("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(ScriptRuntimeError("Maximum recursion depth exceeded"))
        elif exc_type is not None and issubclass(exc_type, ScriptError):
            self.throw(exc_val)
        elif exc_type is not None:
            logger.debug("internal error", exc_info=(exc_type, exc_val, exc_tb))
            self.throw(ScriptError(f"unknown error: '{exc_type.__name__}: {exc_val}'", internal=True))
            do_exit = True

        return not do_exit
