"""Built-in object types of the PukiMO language: SafariZone, Team and the PokemonCollection view over either one's
Pokemon. Scripts reach them only through the SafariObject capability interface:

```
zone.balls              ; get_property
zone.balls = 5          ; set_property
zone.pokemon->add("X")  ; call_method (on the collection returned by get_property)
```

Objects never print or roll dice on their own: output and randomness come from the SafariContext the interpreter hands
to every object it constructs, so that a seeded interpreter is fully reproducible.
"""

import logging
import random
import sys
from dataclasses import dataclass, field

from pukimo.lang.error import ArgumentError, PropertyError, ScriptRuntimeError, ScriptTypeError
from pukimo.runtime.values import SafariObject, is_int, type_name

logger = logging.getLogger(__name__)


@dataclass
class CatchRates:
    """Percent chance that attemptCatch succeeds. A species rate takes precedence over the overall rate."""
    rate: int = 50
    species: dict = field(default_factory=dict)

    def chance_for(self, name):
        return self.species.get(name.lower(), self.rate)


@dataclass
class SafariContext:
    """Interpreter state shared by every built-in object."""
    rng: random.Random = field(default_factory=random.Random)
    catch_rates: CatchRates = field(default_factory=CatchRates)
    out: object = None  # text stream, None for sys.stdout
    inp: object = None  # text stream, None for sys.stdin

    def say(self, text, end="\n"):
        print(text, end=end, file=self.out, flush=True)

    def read_line(self):
        """Returns the next input line without its line break, or None at end of input."""
        line = (self.inp if self.inp is not None else sys.stdin).readline()
        return line.rstrip("\r\n") if line else None


def check_arity(method, args, token, minimum, maximum=None):
    """Raises an argument error unless minimum <= len(args) <= maximum (maximum defaults to minimum)."""
    maximum = minimum if maximum is None else maximum
    if not minimum <= len(args) <= maximum:
        expected = minimum if minimum == maximum else f"{minimum} to {maximum}"
        raise ArgumentError(f"Method '{method}' expects {expected} argument(s), got {len(args)}", token)


def string_arg(method, value, token):
    if not isinstance(value, str):
        raise ScriptTypeError(f"Method '{method}' requires a string argument.", token)
    return value


def percent_arg(method, value, token):
    if not is_int(value):
        raise ScriptTypeError(f"Method '{method}' requires an integer catch rate, got {type_name(value)}", token)
    if not 0 <= value <= 100:
        raise ArgumentError(f"Catch rate must be between 0 and 100, got {value}", token)
    return value


class BuiltinObject(SafariObject):
    """Method dispatch shared by the built-in objects. Subclasses register their members in self.properties
    (name: getter) and self.methods (name: callable taking args and token).
    """

    def __init__(self, context):
        self.context = context
        self.properties = {}
        self.methods = {}

    def call_method(self, name, args, token):
        method = self.methods.get(name)
        if method is None:
            raise ScriptRuntimeError(self.unknown_method(name), token)
        return method(args, token)

    def unknown_method(self, name):
        return f"{self.type_name} has no method '{name}'. Available methods: {', '.join(self.methods)}"

    def get_property(self, name, token):
        getter = self.properties.get(name)
        if getter is None:
            raise PropertyError(f"{self.type_name} has no property '{name}'", token)
        return getter()


class SafariZone(BuiltinObject):
    """Area with a limited number of Safari Balls and turns. balls and turns never drop below zero."""
    type_name = "SafariZone"

    def __init__(self, balls, turns, context):
        super().__init__(context)
        self.initial_balls = self.balls = balls
        self.initial_turns = self.turns = turns
        self.pokemon = []

        self.properties = {
            "initialBalls": lambda: self.initial_balls,
            "initialTurns": lambda: self.initial_turns,
            "balls": lambda: self.balls,
            "turns": lambda: self.turns,
            "pokemonCount": lambda: len(self.pokemon),
            "pokemon": self.collection,
        }
        self.methods = {
            "useBall": self._use_ball,
            "useTurn": self._use_turn,
            "reset": self._reset,
            "isGameOver": self._is_game_over,
        }

    def collection(self):
        return PokemonCollection(self, self.pokemon, self.context)

    def spend_ball(self, token):
        if self.balls <= 0:
            raise ScriptRuntimeError("No Safari Balls remaining!", token)
        self.balls -= 1

    def spend_turn(self, token):
        if self.turns <= 0:
            raise ScriptRuntimeError("No turns remaining!", token)
        self.turns -= 1

    def is_game_over(self):
        return self.balls <= 0 or self.turns <= 0

    def set_property(self, name, value, token):
        if name in ("balls", "turns"):
            if not is_int(value):
                raise ScriptTypeError(f"{name} must be an integer.", token)
            if value < 0:
                raise ArgumentError(f"{name} cannot be negative.", token)
            setattr(self, name, value)
        elif name in self.properties:
            raise PropertyError(f"Cannot modify property '{name}'.", token)
        else:
            raise PropertyError(f"SafariZone has no property '{name}'", token)

    def unknown_method(self, name):
        return (f"SafariZone has no method '{name}'. Use .pokemon-> for Pokemon management. "
                f"Available methods: {', '.join(self.methods)}")

    def _use_ball(self, args, token):
        check_arity("useBall", args, token, 0)
        self.spend_ball(token)

    def _use_turn(self, args, token):
        check_arity("useTurn", args, token, 0)
        self.spend_turn(token)

    def _reset(self, args, token):
        check_arity("reset", args, token, 0)
        self.balls = self.initial_balls
        self.turns = self.initial_turns

    def _is_game_over(self, args, token):
        check_arity("isGameOver", args, token, 0)
        return self.is_game_over()

    def __str__(self):
        return (f"SafariZone(balls={self.balls}/{self.initial_balls}, turns={self.turns}/{self.initial_turns}, "
                f"pokemon={len(self.pokemon)})")


class Team(BuiltinObject):
    """A trainer's team, holding at most max_size Pokemon."""
    type_name = "Team"

    def __init__(self, trainer_name, max_size, context):
        super().__init__(context)
        self.trainer_name = trainer_name
        self.max_size = max_size
        self.pokemon = []

        self.properties = {
            "trainerName": lambda: self.trainer_name,
            "maxSize": lambda: self.max_size,
            "pokemonCount": lambda: len(self.pokemon),
            "pokemon": self.collection,
        }
        self.methods = {
            "isFull": self._is_full,
            "isEmpty": self._is_empty,
            "has": self._has,
        }

    def collection(self):
        return PokemonCollection(self, self.pokemon, self.context)

    def is_full(self):
        return len(self.pokemon) >= self.max_size

    def set_property(self, name, value, token):
        raise PropertyError("Team properties are read-only.", token)

    def unknown_method(self, name):
        return (f"Team has no method '{name}'. Use .pokemon-> for Pokemon management. "
                f"Available methods: {', '.join(self.methods)}")

    def _is_full(self, args, token):
        check_arity("isFull", args, token, 0)
        return self.is_full()

    def _is_empty(self, args, token):
        check_arity("isEmpty", args, token, 0)
        return not self.pokemon

    def _has(self, args, token):
        check_arity("has", args, token, 1)
        wanted = string_arg("has", args[0], token).lower()
        return any(name.lower() == wanted for name in self.pokemon)

    def __str__(self):
        return f"Team({self.trainer_name}, {len(self.pokemon)}/{self.max_size} Pokemon)"


class PokemonCollection(BuiltinObject):
    """View over the Pokemon list of a SafariZone or Team. Holds no state of its own: two views of the same owner are
    equal, and changes through either are visible in the owner.
    """
    type_name = "PokemonCollection"

    def __init__(self, owner, names, context):
        super().__init__(context)
        self.owner = owner
        self.names = names
        self.capacity = owner.max_size if isinstance(owner, Team) else None

        self.methods = {
            "add": self._add,
            "remove": self._remove,
            "list": self._list,
            "find": self._find,
            "random": self._random,
            "count": self._count,
            "clear": self._clear,
            "isEmpty": self._is_empty,
            "addAll": self._add_all,
            "removeAll": self._remove_all,
            "attemptCatch": self._attempt_catch,
            "setCatchRate": self._set_catch_rate,
            "setSpeciesCatchRate": self._set_species_catch_rate,
        }

    def same_as(self, other):
        return isinstance(other, PokemonCollection) and other.names is self.names

    def get_property(self, name, token):
        raise PropertyError("PokemonCollection has no properties. Use methods with '->' operator.", token)

    def set_property(self, name, value, token):
        raise PropertyError("Cannot set properties on PokemonCollection.", token)

    def _make_room(self, count, token):
        if self.capacity is not None and len(self.names) + count > self.capacity:
            raise ScriptRuntimeError(f"Team is full (max {self.capacity} Pokemon).", token)

    def _add(self, args, token):
        check_arity("add", args, token, 1)
        name = string_arg("add", args[0], token)
        self._make_room(1, token)
        self.names.append(name)

    def _remove(self, args, token):
        check_arity("remove", args, token, 1)
        name = string_arg("remove", args[0], token)
        if name in self.names:
            self.names.remove(name)
            return True
        return False

    def _list(self, args, token):
        check_arity("list", args, token, 0)
        return str(self)

    def _find(self, args, token):
        check_arity("find", args, token, 1)
        wanted = string_arg("find", args[0], token).lower()
        return next((name for name in self.names if name.lower() == wanted), None)

    def _random(self, args, token):
        check_arity("random", args, token, 0)
        if not self.names:
            raise ScriptRuntimeError(f"{self.owner.type_name} has no Pokemon.", token)
        return self.context.rng.choice(self.names)

    def _count(self, args, token):
        check_arity("count", args, token, 0)
        return len(self.names)

    def _clear(self, args, token):
        check_arity("clear", args, token, 0)
        self.names.clear()

    def _is_empty(self, args, token):
        check_arity("isEmpty", args, token, 0)
        return not self.names

    def _names_arg(self, method, value, token):
        if not isinstance(value, list):
            raise ScriptTypeError(f"Method '{method}' requires an array argument, got {type_name(value)}", token)
        return [string_arg(method, item, token) for item in value]

    def _add_all(self, args, token):
        check_arity("addAll", args, token, 1)
        names = self._names_arg("addAll", args[0], token)
        self._make_room(len(names), token)
        self.names.extend(names)

    def _remove_all(self, args, token):
        check_arity("removeAll", args, token, 1)
        removed = 0
        for name in self._names_arg("removeAll", args[0], token):
            if name in self.names:
                self.names.remove(name)
                removed += 1
        return removed

    def _attempt_catch(self, args, token):
        """attemptCatch(name, [chance | zone]): spends a ball of zone (or of the owning zone) and catches name with
        the given percent chance, falling back to the configured catch rates.
        """
        check_arity("attemptCatch", args, token, 1, 2)
        name = string_arg("attemptCatch", args[0], token)

        chance, zone = None, None
        if len(args) == 2:
            if isinstance(args[1], SafariZone):
                zone = args[1]
            elif is_int(args[1]):
                chance = percent_arg("attemptCatch", args[1], token)
            else:
                raise ScriptTypeError("Second argument to attemptCatch must be a SafariZone or a catch chance, "
                                      f"got {type_name(args[1])}", token)
        if zone is None and isinstance(self.owner, SafariZone):
            zone = self.owner

        if zone is not None:
            zone.spend_ball(token)
        if name not in self.names:
            raise ScriptRuntimeError(f"{name} is not in the {self.owner.type_name.lower()}.", token)

        if chance is None:
            chance = self.context.catch_rates.chance_for(name)
        caught = self.context.rng.randrange(100) < chance
        logger.debug("catch attempt on %s with %d%% chance: %s", name, chance, "caught" if caught else "escaped")

        if caught:
            self.names.remove(name)
            self.context.say(f"Caught a {name}!")
        else:
            self.context.say(f"{name} escaped!")
        return caught

    def _set_catch_rate(self, args, token):
        check_arity("setCatchRate", args, token, 1)
        self.context.catch_rates.rate = percent_arg("setCatchRate", args[0], token)

    def _set_species_catch_rate(self, args, token):
        check_arity("setSpeciesCatchRate", args, token, 2)
        name = string_arg("setSpeciesCatchRate", args[0], token)
        self.context.catch_rates.species[name.lower()] = percent_arg("setSpeciesCatchRate", args[1], token)

    def __str__(self):
        return ", ".join(self.names)


def resolve_arguments(token, param_names, positional, named, defaults):
    """Merges positional and named (a list of (name Token, value)) arguments into a dict of param name: value.
    Positional arguments fill param_names left to right; missing params fall back to defaults.
    """
    if len(positional) > len(param_names):
        raise ArgumentError(f"Expected at most {len(param_names)} arguments, got {len(positional)}", token)

    params = dict(zip(param_names, positional))
    for name, value in named:
        if name.lexeme not in param_names:
            raise ArgumentError(f"Unknown parameter '{name.lexeme}'", name)
        if name.lexeme in params:
            raise ArgumentError(f"Parameter '{name.lexeme}' already specified", name)
        params[name.lexeme] = value

    for param in param_names:
        if param not in params:
            if param not in defaults:
                raise ArgumentError(f"Missing required parameter '{param}'", token)
            params[param] = defaults[param]
    return params


def create_safari_zone(token, positional, named, context):
    """SafariZone(balls=10, turns=10)"""
    params = resolve_arguments(token, ["balls", "turns"], positional, named, {"balls": 10, "turns": 10})
    for param in ("balls", "turns"):
        if not is_int(params[param]):
            raise ScriptTypeError(f"Parameter '{param}' must be Int, got {type_name(params[param])}", token)
        if params[param] < 0:
            raise ArgumentError(f"{param} cannot be negative", token)
    return SafariZone(params["balls"], params["turns"], context)


def create_team(token, positional, named, context):
    """Team(trainerName, maxSize=6)"""
    params = resolve_arguments(token, ["trainerName", "maxSize"], positional, named, {"maxSize": 6})
    if not isinstance(params["trainerName"], str):
        raise ScriptTypeError(f"Parameter 'trainerName' must be String, got {type_name(params['trainerName'])}", token)
    if not is_int(params["maxSize"]):
        raise ScriptTypeError(f"Parameter 'maxSize' must be Int, got {type_name(params['maxSize'])}", token)
    if params["maxSize"] < 1:
        raise ArgumentError("maxSize must be at least 1", token)
    return Team(params["trainerName"], params["maxSize"], context)


CONSTRUCTORS = {
    "SafariZone": create_safari_zone,
    "Team": create_team,
}
