"""Session control for the PukiMO language. Drives the scanner, parser and evaluator over a file, or over the chunks
typed into the interactive shell.

Each chunk goes through the phases in order and stops at the first phase that reports errors:

```
scan  -> lexical errors  -> no parse
parse -> parse errors    -> no evaluation
run   -> first runtime error aborts the rest of the chunk
```
"""

import logging
import random

from pukimo.lang.error import Diagnostics, PhaseError, ScriptRuntimeError
from pukimo.lang.lexical import Scanner
from pukimo.lang.parser import Parser
from pukimo.runtime.evaluator import Evaluator
from pukimo.runtime.objects import CatchRates, SafariContext

logger = logging.getLogger(__name__)


def read_source(path):
    try:
        with open(path, "r", encoding="utf-8") as file:
            return file.read()
    except OSError:
        raise ScriptRuntimeError(f"'{path}' could not be opened") from None


def parse_source(source, line=1, repl_mode=False):
    """Scans and parses source, raising a PhaseError with every diagnostic if either phase fails. line is the line
    number of the first line of source.
    """
    diagnostics = Diagnostics()

    tokens = Scanner(diagnostics, line).scan(source)
    if diagnostics.has_errors():
        raise PhaseError("scan", diagnostics)

    program = Parser(tokens, diagnostics, repl_mode).parse()
    if diagnostics.has_errors():
        raise PhaseError("parse", diagnostics)
    return program


class Session:
    """Governs a PukiMO session: global scope and built-in objects persist across every chunk added to it."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path, cmd_line, out=None, inp=None, seed=None, catch_rate=CatchRates.rate):
        self.error_handler = error_handler
        self.path = path            # used for log messages
        self.cmd_line = cmd_line    # whether or not in command-line mode

        self.context = SafariContext(random.Random(seed), CatchRates(catch_rate), out, inp)
        self.evaluator = Evaluator(self.context)
        self.to_run = []  # parsed Programs waiting to be run

        if self.cmd_line:
            self.error_handler.fatal = False

        if path != Session.SH_FILE:
            self.add(read_source(path))

        elif not cmd_line:
            raise ScriptRuntimeError("'<in>' is a reserved filename")

    @staticmethod
    def preprocess_line(line, depth=0):
        """Preprocesses a line from the command line. depth is the brace depth of the lines before it. Returns the
        updated depth and whether a line continuation is necessary.
        """
        for char in line:
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
        return depth, depth > 0

    def add(self, source, line=1):
        """Adds source to the current session. Evaluation is delayed until run is called."""
        program = parse_source(source, line, repl_mode=self.cmd_line)
        logger.debug("%s: queued %d statement(s) from line %d", self.path, len(program.statements), line)
        self.to_run.append(program)
        return program

    def run(self):
        """Runs every queued program in order. Will raise the first runtime error encountered. In command-line mode,
        expression statement values are echoed.
        """
        while self.to_run:
            program = self.to_run.pop(0)
            self.evaluator.interpret(program, echo=self.cmd_line)
