import unittest

from pukimo.lang.error import ArgumentError, PropertyError, ScriptRuntimeError, ScriptTypeError
from pukimo.lang.lexical import Token, TokenType
from pukimo.runtime.objects import (CatchRates, PokemonCollection, SafariZone, Team, create_safari_zone, create_team,
                                    resolve_arguments)
from tests.helpers import TOKEN, make_context, run_script


def named(**kwargs):
    return [(Token(TokenType.IDENTIFIER, name, None, 1), value) for name, value in kwargs.items()]


class SafariZoneTestCase(unittest.TestCase):

    def setUp(self):
        self.context = make_context()
        self.zone = SafariZone(2, 1, self.context)

    def call(self, method, *args):
        return self.zone.call_method(method, list(args), TOKEN)

    def test_spending(self):
        self.call("useBall")
        self.call("useBall")
        self.assertEqual(0, self.zone.get_property("balls", TOKEN))
        self.assertTrue(self.call("isGameOver"))

        with self.assertRaises(ScriptRuntimeError) as context:
            self.call("useBall")
        self.assertEqual("No Safari Balls remaining!", context.exception.msg)
        self.assertEqual(0, self.zone.balls)

        self.call("useTurn")
        with self.assertRaises(ScriptRuntimeError) as context:
            self.call("useTurn")
        self.assertEqual("No turns remaining!", context.exception.msg)

        self.call("reset")
        self.assertEqual((2, 1), (self.zone.balls, self.zone.turns))
        self.assertFalse(self.call("isGameOver"))

    def test_properties(self):
        self.zone.pokemon.append("Mew")
        cases = {
            "initialBalls": 2,
            "initialTurns": 1,
            "balls": 2,
            "turns": 1,
            "pokemonCount": 1,
        }
        for case, expected in cases.items():
            self.assertEqual(expected, self.zone.get_property(case, TOKEN), case)
        self.assertIsInstance(self.zone.get_property("pokemon", TOKEN), PokemonCollection)

        with self.assertRaises(PropertyError) as context:
            self.zone.get_property("size", TOKEN)
        self.assertEqual("SafariZone has no property 'size'", context.exception.msg)

    def test_set_property(self):
        self.zone.set_property("balls", 0, TOKEN)
        self.zone.set_property("turns", 30, TOKEN)
        self.assertEqual((0, 30), (self.zone.balls, self.zone.turns))

        cases = [
            (("balls", "3"), ScriptTypeError, "balls must be an integer."),
            (("turns", True), ScriptTypeError, "turns must be an integer."),
            (("balls", -1), ArgumentError, "balls cannot be negative."),
            (("initialBalls", 4), PropertyError, "Cannot modify property 'initialBalls'."),
            (("size", 4), PropertyError, "SafariZone has no property 'size'"),
        ]
        for case, error, message in cases:
            with self.assertRaises(error, msg=case) as context:
                self.zone.set_property(*case, TOKEN)
            self.assertEqual(message, context.exception.msg, case)
        self.assertEqual((0, 30), (self.zone.balls, self.zone.turns))

    def test_method_errors(self):
        with self.assertRaises(ScriptRuntimeError) as context:
            self.call("add", "Mew")
        self.assertEqual("SafariZone has no method 'add'. Use .pokemon-> for Pokemon management. Available methods: "
                         "useBall, useTurn, reset, isGameOver", context.exception.msg)

        with self.assertRaises(ArgumentError) as context:
            self.call("useBall", 1)
        self.assertEqual("Method 'useBall' expects 0 argument(s), got 1", context.exception.msg)

    def test_str(self):
        self.zone.pokemon.extend(["Mew", "Onix"])
        self.zone.balls = 1
        self.assertEqual("SafariZone(balls=1/2, turns=1/1, pokemon=2)", str(self.zone))


class TeamTestCase(unittest.TestCase):

    def setUp(self):
        self.team = Team("Misty", 2, make_context())

    def call(self, method, *args):
        return self.team.call_method(method, list(args), TOKEN)

    def test_team(self):
        self.assertTrue(self.call("isEmpty"))
        self.assertFalse(self.call("isFull"))

        collection = self.team.get_property("pokemon", TOKEN)
        collection.call_method("addAll", [["Staryu", "Starmie"]], TOKEN)

        self.assertTrue(self.call("isFull"))
        self.assertFalse(self.call("isEmpty"))
        self.assertTrue(self.call("has", "STARYU"))
        self.assertFalse(self.call("has", "Psyduck"))
        self.assertEqual("Misty", self.team.get_property("trainerName", TOKEN))
        self.assertEqual(2, self.team.get_property("maxSize", TOKEN))
        self.assertEqual(2, self.team.get_property("pokemonCount", TOKEN))
        self.assertEqual("Team(Misty, 2/2 Pokemon)", str(self.team))

    def test_errors(self):
        cases = [
            (lambda: self.team.set_property("maxSize", 3, TOKEN), PropertyError, "Team properties are read-only."),
            (lambda: self.team.set_property("other", 3, TOKEN), PropertyError, "Team properties are read-only."),
            (lambda: self.call("has", 1), ScriptTypeError, "Method 'has' requires a string argument."),
            (lambda: self.call("has"), ArgumentError, "Method 'has' expects 1 argument(s), got 0"),
            (lambda: self.call("fly"), ScriptRuntimeError,
             "Team has no method 'fly'. Use .pokemon-> for Pokemon management. Available methods: isFull, isEmpty, "
             "has"),
        ]
        for action, error, message in cases:
            with self.assertRaises(error) as context:
                action()
            self.assertEqual(message, context.exception.msg)

    def test_capacity(self):
        collection = self.team.get_property("pokemon", TOKEN)
        collection.call_method("add", ["Staryu"], TOKEN)
        with self.assertRaises(ScriptRuntimeError) as context:
            collection.call_method("addAll", [["Starmie", "Psyduck"]], TOKEN)
        self.assertEqual("Team is full (max 2 Pokemon).", context.exception.msg)
        self.assertEqual(["Staryu"], self.team.pokemon)

        collection.call_method("add", ["Starmie"], TOKEN)
        with self.assertRaises(ScriptRuntimeError):
            collection.call_method("add", ["Psyduck"], TOKEN)


class ConstructorTestCase(unittest.TestCase):

    def test_resolve_arguments(self):
        params = ["balls", "turns"]
        defaults = {"balls": 10, "turns": 10}
        cases = [
            (([], []), {"balls": 10, "turns": 10}),
            (([5], []), {"balls": 5, "turns": 10}),
            (([5, 3], []), {"balls": 5, "turns": 3}),
            (([], named(turns=3)), {"balls": 10, "turns": 3}),
            (([1], named(turns=3)), {"balls": 1, "turns": 3}),
        ]
        for (positional, named_args), expected in cases:
            self.assertEqual(expected, resolve_arguments(TOKEN, params, positional, named_args, defaults))

        should_fail = [
            (([1, 2, 3], []), "Expected at most 2 arguments, got 3"),
            (([], named(size=3)), "Unknown parameter 'size'"),
            (([1], named(balls=3)), "Parameter 'balls' already specified"),
        ]
        for (positional, named_args), message in should_fail:
            with self.assertRaises(ArgumentError) as context:
                resolve_arguments(TOKEN, params, positional, named_args, defaults)
            self.assertEqual(message, context.exception.msg)

        with self.assertRaises(ArgumentError) as context:
            resolve_arguments(TOKEN, ["trainerName"], [], [], {})
        self.assertEqual("Missing required parameter 'trainerName'", context.exception.msg)

    def test_constructors(self):
        context = make_context()
        zone = create_safari_zone(TOKEN, [3], named(turns=4), context)
        self.assertEqual((3, 4, []), (zone.balls, zone.turns, zone.pokemon))
        self.assertIs(context, zone.context)

        team = create_team(TOKEN, ["Brock"], [], context)
        self.assertEqual(("Brock", 6), (team.trainer_name, team.max_size))

    def test_constructor_errors(self):
        context = make_context()
        cases = [
            (create_safari_zone, (["10"], []), ScriptTypeError, "Parameter 'balls' must be Int, got String"),
            (create_safari_zone, ([], named(turns=None)), ScriptTypeError, "Parameter 'turns' must be Int, got null"),
            (create_safari_zone, ([-1], []), ArgumentError, "balls cannot be negative"),
            (create_team, ([1], []), ScriptTypeError, "Parameter 'trainerName' must be String, got Int"),
            (create_team, (["Ash", "6"], []), ScriptTypeError, "Parameter 'maxSize' must be Int, got String"),
            (create_team, (["Ash"], named(maxSize=0)), ArgumentError, "maxSize must be at least 1"),
            (create_team, ([], []), ArgumentError, "Missing required parameter 'trainerName'"),
        ]
        for constructor, (positional, named_args), error, message in cases:
            with self.assertRaises(error, msg=message) as raised:
                constructor(TOKEN, positional, named_args, context)
            self.assertEqual(message, raised.exception.msg)


class PokemonCollectionTestCase(unittest.TestCase):

    def setUp(self):
        self.context = make_context()
        self.zone = SafariZone(3, 3, self.context)
        self.collection = self.zone.get_property("pokemon", TOKEN)

    def call(self, method, *args):
        return self.collection.call_method(method, list(args), TOKEN)

    def test_is_a_view(self):
        self.call("add", "Pikachu")
        self.assertEqual(["Pikachu"], self.zone.pokemon)
        self.assertEqual(1, self.zone.get_property("pokemon", TOKEN).call_method("count", [], TOKEN))
        self.assertTrue(self.collection.same_as(self.zone.get_property("pokemon", TOKEN)))
        self.assertFalse(self.collection.same_as(SafariZone(3, 3, self.context).get_property("pokemon", TOKEN)))

    def test_methods(self):
        self.assertTrue(self.call("isEmpty"))
        self.assertIsNone(self.call("addAll", ["Pikachu", "Eevee", "Mew"]))
        self.assertEqual("Pikachu, Eevee, Mew", self.call("list"))
        self.assertEqual("Eevee", self.call("find", "eEVEE"))
        self.assertIsNone(self.call("find", "Onix"))
        self.assertIn(self.call("random"), ["Pikachu", "Eevee", "Mew"])
        self.assertTrue(self.call("remove", "Mew"))
        self.assertFalse(self.call("remove", "Mew"))
        self.assertEqual(1, self.call("removeAll", ["Eevee", "Onix"]))
        self.assertEqual(1, self.call("count"))
        self.call("clear")
        self.assertEqual(0, self.call("count"))
        self.assertEqual("", self.call("list"))

    def test_errors(self):
        cases = [
            (lambda: self.call("random"), ScriptRuntimeError, "SafariZone has no Pokemon."),
            (lambda: self.call("add", 1), ScriptTypeError, "Method 'add' requires a string argument."),
            (lambda: self.call("addAll", "Mew"), ScriptTypeError, "Method 'addAll' requires an array argument, got "
                                                                  "String"),
            (lambda: self.call("addAll", ["Mew", 1]), ScriptTypeError, "Method 'addAll' requires a string argument."),
            (lambda: self.call("list", 1), ArgumentError, "Method 'list' expects 0 argument(s), got 1"),
            (lambda: self.call("attemptCatch"), ArgumentError, "Method 'attemptCatch' expects 1 to 2 argument(s), "
                                                               "got 0"),
            (lambda: self.collection.get_property("count", TOKEN), PropertyError,
             "PokemonCollection has no properties. Use methods with '->' operator."),
            (lambda: self.collection.set_property("count", 1, TOKEN), PropertyError,
             "Cannot set properties on PokemonCollection."),
        ]
        for action, error, message in cases:
            with self.assertRaises(error, msg=message) as context:
                action()
            self.assertEqual(message, context.exception.msg)

    def test_attempt_catch(self):
        self.call("addAll", ["Mew", "Onix"])

        self.assertFalse(self.call("attemptCatch", "Mew", 0))
        self.assertTrue(self.call("attemptCatch", "Onix", 100))
        self.assertEqual(["Mew"], self.zone.pokemon)
        self.assertEqual(1, self.zone.balls)
        self.assertEqual("Mew escaped!\nCaught a Onix!\n", self.context.out.getvalue())

        with self.assertRaises(ScriptRuntimeError) as context:
            self.call("attemptCatch", "Onix", 100)
        self.assertEqual("Onix is not in the safarizone.", context.exception.msg)
        self.assertEqual(0, self.zone.balls)

        with self.assertRaises(ScriptRuntimeError) as context:
            self.call("attemptCatch", "Mew", 100)
        self.assertEqual("No Safari Balls remaining!", context.exception.msg)
        self.assertEqual(["Mew"], self.zone.pokemon)

    def test_catch_rates(self):
        self.call("addAll", ["Mew", "Onix", "Abra"])
        self.call("setCatchRate", 0)
        self.call("setSpeciesCatchRate", "ONIX", 100)
        self.assertEqual(CatchRates(0, {"onix": 100}), self.context.catch_rates)

        self.assertFalse(self.call("attemptCatch", "Mew"))
        self.assertTrue(self.call("attemptCatch", "Onix"))

        cases = [
            (lambda: self.call("setCatchRate", 101), ArgumentError, "Catch rate must be between 0 and 100, got 101"),
            (lambda: self.call("setCatchRate", "50"), ScriptTypeError,
             "Method 'setCatchRate' requires an integer catch rate, got String"),
            (lambda: self.call("attemptCatch", "Abra", -1), ArgumentError,
             "Catch rate must be between 0 and 100, got -1"),
            (lambda: self.call("attemptCatch", "Abra", "x"), ScriptTypeError,
             "Second argument to attemptCatch must be a SafariZone or a catch chance, got String"),
        ]
        for action, error, message in cases:
            with self.assertRaises(error, msg=message) as context:
                action()
            self.assertEqual(message, context.exception.msg)

    def test_catch_into_team(self):
        team = Team("Ash", 6, self.context)
        wild = team.get_property("pokemon", TOKEN)
        wild.call_method("add", ["Mew"], TOKEN)
        self.context.catch_rates.rate = 100

        self.assertTrue(wild.call_method("attemptCatch", ["Mew", self.zone], TOKEN))
        self.assertEqual(2, self.zone.balls)

        with self.assertRaises(ScriptRuntimeError) as context:
            wild.call_method("attemptCatch", ["Mew", 100], TOKEN)
        self.assertEqual("Mew is not in the team.", context.exception.msg)
        self.assertEqual(2, self.zone.balls)

    def test_seeded_catches_repeat(self):
        source = ("var zone = SafariZone(20, 20);\n"
                  "zone.pokemon->addAll([\"A\", \"B\", \"C\", \"D\", \"E\", \"F\"]);\n"
                  "explore(zone) { zone.pokemon->attemptCatch(encounter); }")
        self.assertEqual(run_script(source, seed=7), run_script(source, seed=7))


class BuiltinTestCase(unittest.TestCase):

    def test_input(self):
        self.assertEqual("> Hello, Ash\n", run_script("print(\"Hello, \" + readString());", inp="Ash\n"))
        self.assertEqual("> 43\n", run_script("print(readInt() + 1);", inp=" 42\n"))

        cases = [
            ("readString();", "", "Input for readString() cannot be empty"),
            ("readString();", "\n", "Input for readString() cannot be empty"),
            ("readInt();", "", "Input for readInt() cannot be empty"),
            ("readInt();", "abc\n", "Input 'abc' is not a valid integer for readInt()"),
        ]
        for source, inp, message in cases:
            with self.assertRaises(ScriptRuntimeError, msg=message) as context:
                run_script(source, inp=inp)
            self.assertEqual(message, context.exception.msg)

    def test_arrays(self):
        source = ("var a = [1, 2];\n"
                  "print(push(a, [3]));\n"
                  "print(a);\n"
                  "print(contains(a, [3]));\n"
                  "print(contains(a, \"1\"));\n"
                  "print(concat(a, [4]));\n"
                  "print(length(a));")
        self.assertEqual("null\n[1, 2, [3]]\ntrue\nfalse\n[1, 2, [3], 4]\n3\n", run_script(source))

    def test_length(self):
        source = ("var zone = SafariZone();\nzone.pokemon->add(\"Mew\");\nvar team = Team(\"Ash\");\n"
                  "print(length(\"abc\"));\nprint(length(zone));\nprint(length(zone.pokemon));\nprint(length(team));")
        self.assertEqual("3\n1\n1\n0\n", run_script(source))

    def test_errors(self):
        cases = [
            ("length(1);", ScriptTypeError, "length() only works for strings, arrays, or collections - not Int"),
            ("length();", ArgumentError, "length() expects 1 argument(s), got 0"),
            ("push(1, 2);", ScriptTypeError, "First argument to push() must be an array"),
            ("contains(\"ab\", \"a\");", ScriptTypeError, "First argument to contains() must be an array"),
            ("concat([1], 2);", ScriptTypeError, "concat() requires two arrays"),
            ("readString(1);", ArgumentError, "readString() expects 0 argument(s), got 1"),
        ]
        for case, error, message in cases:
            with self.assertRaises(error, msg=case) as context:
                run_script(case)
            self.assertEqual(message, context.exception.msg, case)

    def test_builtins_shadow_functions(self):
        self.assertEqual("2\n", run_script("define length(x) { return 99; }\nprint(length([1, 2]));"))


if __name__ == '__main__':
    unittest.main()
