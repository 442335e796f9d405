"""Built-in functions of the PukiMO language. A call whose callee is one of these names is dispatched here before
user-defined functions are looked up; built-ins take positional arguments only.
"""

from collections import namedtuple

from pukimo.lang.error import ArgumentError, ScriptRuntimeError, ScriptTypeError
from pukimo.runtime.objects import PokemonCollection, SafariZone, Team
from pukimo.runtime.values import type_name, values_equal

Builtin = namedtuple("Builtin", ["name", "arity", "function"])


def _read_string(context, args, token):
    context.say("> ", end="")
    line = context.read_line()
    if not line:
        raise ScriptRuntimeError("Input for readString() cannot be empty", token)
    return line


def _read_int(context, args, token):
    context.say("> ", end="")
    line = context.read_line()
    if not line:
        raise ScriptRuntimeError("Input for readInt() cannot be empty", token)
    try:
        return int(line.strip())
    except ValueError:
        raise ScriptRuntimeError(f"Input '{line}' is not a valid integer for readInt()", token) from None


def _length(context, args, token):
    value = args[0]
    if isinstance(value, (str, list)):
        return len(value)
    if isinstance(value, (SafariZone, Team)):
        return len(value.pokemon)
    if isinstance(value, PokemonCollection):
        return len(value.names)
    raise ScriptTypeError(f"length() only works for strings, arrays, or collections - not {type_name(value)}", token)


def _push(context, args, token):
    array, item = args
    if not isinstance(array, list):
        raise ScriptTypeError("First argument to push() must be an array", token)
    array.append(item)


def _contains(context, args, token):
    array, item = args
    if not isinstance(array, list):
        raise ScriptTypeError("First argument to contains() must be an array", token)
    return any(values_equal(element, item) for element in array)


def _concat(context, args, token):
    first, second = args
    if not isinstance(first, list) or not isinstance(second, list):
        raise ScriptTypeError("concat() requires two arrays", token)
    return first + second


BUILTINS = {builtin.name: builtin for builtin in (
    Builtin("readString", 0, _read_string),
    Builtin("readInt", 0, _read_int),
    Builtin("length", 1, _length),
    Builtin("push", 2, _push),
    Builtin("contains", 2, _contains),
    Builtin("concat", 2, _concat),
)}


def call_builtin(builtin, context, args, token):
    """Checks arity and calls builtin with already-evaluated args."""
    if len(args) != builtin.arity:
        raise ArgumentError(f"{builtin.name}() expects {builtin.arity} argument(s), got {len(args)}", token)
    return builtin.function(context, args, token)
