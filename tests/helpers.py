"""Helpers shared by the test suites."""

import io
import random

from pukimo.lang.lexical import Token, TokenType
from pukimo.lang.session import parse_source
from pukimo.runtime.evaluator import Evaluator
from pukimo.runtime.objects import CatchRates, SafariContext

TOKEN = Token(TokenType.IDENTIFIER, "test", None, 1)


def make_context(seed=0, inp="", catch_rate=50):
    return SafariContext(random.Random(seed), CatchRates(catch_rate), io.StringIO(), io.StringIO(inp))


def run_script(source, seed=0, inp="", echo=False):
    """Runs source in a fresh interpreter and returns everything it printed."""
    context = make_context(seed, inp)
    Evaluator(context).interpret(parse_source(source), echo)
    return context.out.getvalue()
