"""PukiMO language interpreter.

Basic program flow:
    1. Scanner: turns source text into tokens (pukimo/lang/lexical.py)
    2. Parser: builds an AST by recursive descent, recovering from errors statement by statement
        - For the grammar rules, see pukimo/lang/grammar.py
    3. Evaluator: walks the AST directly, no bytecode (pukimo/runtime/evaluator.py)
        - Built-in objects (SafariZone, Team, PokemonCollection) live in pukimo/runtime/objects.py

pukimo/lang/session.py ties the phases together; pukimo/main.py is the command-line entry point.
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
