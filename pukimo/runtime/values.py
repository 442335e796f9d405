"""Runtime values of the PukiMO language and the operations every value supports.

```
null     -> None
Boolean  -> bool
Int      -> int       (never a bool, even though Python's bool subclasses int)
String   -> str
Array    -> list
Function -> FunctionObject
objects  -> SafariObject subclasses (see pukimo/runtime/objects.py)
```
"""

from abc import ABC, abstractmethod


class SafariObject(ABC):
    """Capability interface of the built-in object types: the evaluator reads, writes and calls members of an object
    only through these methods. token locates errors raised by them.
    """
    type_name = None

    @abstractmethod
    def get_property(self, name, token):
        """Returns the value of property name."""

    @abstractmethod
    def set_property(self, name, value, token):
        """Sets property name to value."""

    @abstractmethod
    def call_method(self, name, args, token):
        """Calls method name with positional args and returns its result."""

    def same_as(self, other):
        """Object equality used by == and !=."""
        return self is other


class FunctionObject:
    """User-defined function. closure is the Environment the function was defined in."""

    def __init__(self, declaration, closure):
        self.declaration = declaration
        self.closure = closure

    @property
    def name(self):
        return self.declaration.name.lexeme

    @property
    def arity(self):
        return len(self.declaration.params)

    def __str__(self):
        return f"<fn {self.name}>"


def is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def is_truthy(value):
    """null and false are falsy, everything else (including 0 and "") is truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def stringify(value):
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return "[" + ", ".join(stringify(item) for item in value) + "]"
    return str(value)


def type_name(value):
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Int"
    if isinstance(value, str):
        return "String"
    if isinstance(value, list):
        return "Array"
    if isinstance(value, FunctionObject):
        return "Function"
    if isinstance(value, SafariObject):
        return value.type_name
    return type(value).__name__


def values_equal(left, right):
    """Structural equality for plain values, identity for functions and objects. Values of different types are never
    equal, so 1 == true is false.
    """
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, SafariObject):
        return left.same_as(right)
    if isinstance(left, FunctionObject) or isinstance(right, (FunctionObject, SafariObject)):
        return left is right
    return type(left) is type(right) and left == right
