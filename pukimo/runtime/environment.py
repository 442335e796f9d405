"""Lexical scopes. Each Environment maps names to values and links to the scope enclosing it; closures keep a reference
to the Environment they were defined in.
"""

from pukimo.lang.error import ScriptNameError


class Environment:
    """A single scope. Declaring a name twice in one scope is an error, shadowing an outer name is not."""

    def __init__(self, enclosing=None):
        self.values = {}
        self.enclosing = enclosing

    def define(self, name, value):
        """Declares name (a Token) in this scope."""
        if name.lexeme in self.values:
            raise ScriptNameError(f"Variable '{name.lexeme}' already declared in this scope", name,
                                  hints=["Variables can only be declared once per scope"])
        self.values[name.lexeme] = value

    def get(self, name):
        """Returns the value of name from the innermost scope declaring it."""
        scope = self._resolve(name.lexeme)
        if scope is None:
            raise ScriptNameError(f"Undefined variable '{name.lexeme}'", name,
                                  hints=["Did you forget to declare this variable with 'var'?"])
        return scope.values[name.lexeme]

    def assign(self, name, value):
        """Rebinds name in the innermost scope declaring it."""
        scope = self._resolve(name.lexeme)
        if scope is None:
            raise ScriptNameError(f"Cannot assign to undefined variable '{name.lexeme}'", name,
                                  hints=["Variable must be declared with 'var' before assignment"])
        scope.values[name.lexeme] = value

    def _resolve(self, lexeme):
        scope = self
        while scope is not None:
            if lexeme in scope.values:
                return scope
            scope = scope.enclosing
        return None

    def __contains__(self, lexeme):
        return self._resolve(lexeme) is not None
