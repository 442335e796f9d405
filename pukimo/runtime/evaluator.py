"""Tree-walking evaluator for the PukiMO language.

Statements are executed and expressions evaluated by dispatching on the node class. break, continue, return and run
unwind the Python stack as signal exceptions, caught by the construct they transfer control out of:

```
BreakSignal     -> nearest while/for/explore
ContinueSignal  -> nearest while/for/explore, which moves on to its next pass
ReturnSignal    -> nearest function call, carrying the returned value
RunSignal       -> nearest while/for/explore or function call; at top level it silently ends the program
```

Runtime errors are ScriptRuntimeErrors and abort evaluation of the whole program.
"""

import logging
import operator

from pukimo.lang.error import ArgumentError, ScriptNameError, ScriptRuntimeError, ScriptTypeError
from pukimo.lang.grammar import (ArrayAccessExpr, ArrayAssignExpr, ArrayLiteralExpr, AssignExpr, BinaryExpr, Block,
                                 BreakStmt, CallExpr, ContinueStmt, DefineStmt, ExploreStmt, ExprStmt, ForStmt, IfStmt,
                                 LiteralExpr, PrintStmt, PropertyAccessExpr, ReturnStmt, RunStmt, ThrowBallStmt,
                                 UnaryExpr, VarDeclStmt, VariableExpr, WhileStmt)
from pukimo.lang.lexical import Token, TokenType as T
from pukimo.runtime.builtins import BUILTINS, call_builtin
from pukimo.runtime.environment import Environment
from pukimo.runtime.objects import CONSTRUCTORS, SafariContext, SafariZone
from pukimo.runtime.values import (FunctionObject, SafariObject, is_int, is_truthy, stringify, type_name,
                                   values_equal)

logger = logging.getLogger(__name__)

ENCOUNTER = Token.synthetic("encounter")


class BreakSignal(Exception):
    pass


class ContinueSignal(Exception):
    pass


class RunSignal(Exception):
    pass


class ReturnSignal(Exception):

    def __init__(self, value):
        super().__init__()
        self.value = value


def truncated_div(left, right):
    """Integer division rounding toward zero: -7 / 2 == -3."""
    quotient = abs(left) // abs(right)
    return quotient if (left >= 0) == (right > 0) else -quotient


def truncated_mod(left, right):
    """Remainder taking the sign of left: -7 % 2 == -1."""
    return left - right * truncated_div(left, right)


INT_OPERATORS = {
    T.MINUS: operator.sub,
    T.STAR: operator.mul,
    T.SLASH: truncated_div,
    T.PERCENT: truncated_mod,
    T.LESS: operator.lt,
    T.LESS_EQUAL: operator.le,
    T.GREATER: operator.gt,
    T.GREATER_EQUAL: operator.ge,
}


class Evaluator:
    """Runs Programs against a persistent global Environment, so consecutive programs (e.g. REPL chunks) share state.
    context supplies output, input, randomness and catch rates.
    """

    def __init__(self, context=None):
        self.context = context if context is not None else SafariContext()
        self.globals = Environment()
        self.environment = self.globals
        self.function_depth = 0

        self._statements = {
            ExprStmt: lambda stmt: self.evaluate(stmt.expression),
            PrintStmt: lambda stmt: self.context.say(stringify(self.evaluate(stmt.expression))),
            VarDeclStmt: self._var_decl,
            Block: lambda stmt: self.execute_block(stmt.statements, Environment(self.environment)),
            IfStmt: self._if,
            WhileStmt: self._while,
            ForStmt: self._for,
            BreakStmt: self._raise(BreakSignal),
            ContinueStmt: self._raise(ContinueSignal),
            RunStmt: self._raise(RunSignal),
            DefineStmt: lambda stmt: self.environment.define(stmt.name, FunctionObject(stmt, self.environment)),
            ReturnStmt: self._return,
            ExploreStmt: self._explore,
            ThrowBallStmt: self._throw_ball,
        }
        self._expressions = {
            LiteralExpr: lambda expr: expr.value,
            VariableExpr: lambda expr: self.environment.get(expr.name),
            UnaryExpr: self._unary,
            BinaryExpr: self._binary,
            AssignExpr: self._assign,
            CallExpr: self._call,
            PropertyAccessExpr: self._property_access,
            ArrayLiteralExpr: lambda expr: [self.evaluate(element) for element in expr.elements],
            ArrayAccessExpr: self._array_access,
            ArrayAssignExpr: self._array_assign,
        }

    def interpret(self, program, echo=False):
        """Executes program. If echo, the value of every expression statement that is not null is printed."""
        try:
            for stmt in program.statements:
                if echo and isinstance(stmt, ExprStmt):
                    value = self.evaluate(stmt.expression)
                    if value is not None:
                        self.context.say(stringify(value))
                else:
                    self.execute(stmt)
        except RunSignal:
            logger.debug("'run' reached top level, rest of program skipped")
        except RecursionError:
            raise ScriptRuntimeError("Maximum recursion depth exceeded") from None

    def execute(self, stmt):
        self._statements[type(stmt)](stmt)

    def evaluate(self, expr):
        return self._expressions[type(expr)](expr)

    def execute_block(self, statements, environment):
        """Executes statements in environment, restoring the current environment afterwards."""
        previous = self.environment
        try:
            self.environment = environment
            for stmt in statements:
                self.execute(stmt)
        finally:
            self.environment = previous

    # statements

    @staticmethod
    def _raise(signal):
        def raise_signal(stmt):
            raise signal()
        return raise_signal

    def _var_decl(self, stmt):
        value = self.evaluate(stmt.initializer) if stmt.initializer is not None else None
        self.environment.define(stmt.name, value)

    def _if(self, stmt):
        if is_truthy(self.evaluate(stmt.condition)):
            self.execute(stmt.then_branch)
        elif stmt.else_branch is not None:
            self.execute(stmt.else_branch)

    def _loop_body(self, body):
        """Executes one pass of a loop body. Returns False if the loop must stop."""
        try:
            self.execute(body)
        except (BreakSignal, RunSignal):
            return False
        except ContinueSignal:
            pass
        return True

    def _while(self, stmt):
        while is_truthy(self.evaluate(stmt.condition)):
            if not self._loop_body(stmt.body):
                break

    def _for(self, stmt):
        start = self.evaluate(stmt.start)
        if stmt.end is not None:
            end = self.evaluate(stmt.end)
            if not is_int(start):
                raise ScriptTypeError(f"Range loop start must be an integer, got {type_name(start)}", stmt.keyword)
            if not is_int(end):
                raise ScriptTypeError(f"Range loop end must be an integer, got {type_name(end)}", stmt.keyword)
            items = range(start, end + 1)
        elif isinstance(start, (str, list)):
            items = list(start)  # arrays are iterated as they were when the loop started
        else:
            raise ScriptTypeError(f"Can only iterate over strings or arrays, got {type_name(start)}", stmt.keyword)

        loop_environment = Environment(self.environment)
        loop_environment.define(stmt.variable, None)

        previous = self.environment
        try:
            self.environment = loop_environment
            for item in items:
                loop_environment.assign(stmt.variable, item)
                if not self._loop_body(stmt.body):
                    break
        finally:
            self.environment = previous

    def _return(self, stmt):
        if not self.function_depth:
            raise ScriptRuntimeError("Return statement not allowed outside function", stmt.keyword)
        raise ReturnSignal(self.evaluate(stmt.value) if stmt.value is not None else None)

    def _explore(self, stmt):
        zone = self.environment.get(stmt.zone)
        if not isinstance(zone, SafariZone):
            raise ScriptTypeError(f"Explore expects a SafariZone object for '{stmt.zone.lexeme}'", stmt.zone)

        explore_environment = Environment(self.environment)
        explore_environment.define(ENCOUNTER, None)

        previous = self.environment
        try:
            self.environment = explore_environment
            while zone.turns > 0:
                zone.turns -= 1
                if not zone.pokemon:
                    self.context.say("No Pokemon left to encounter!")
                    return

                encounter = self.context.rng.choice(zone.pokemon)
                logger.debug("explore turn on line %d: encountered %s, %d turn(s) left", stmt.keyword.line,
                             encounter, zone.turns)
                explore_environment.assign(ENCOUNTER, encounter)
                try:
                    self.execute(stmt.body)
                except RunSignal:
                    return
                except BreakSignal:
                    break
                except ContinueSignal:
                    pass
            if zone.turns == 0:
                self.context.say("Explore: Out of turns!")
        finally:
            self.environment = previous

    def _throw_ball(self, stmt):
        zone = self.evaluate(stmt.target)
        if not isinstance(zone, SafariZone):
            raise ScriptTypeError("throwBall target must be a SafariZone object", stmt.keyword)
        if not zone.pokemon:
            raise ScriptRuntimeError("No Pokemon in this Safari Zone!", stmt.keyword)

        caught = self.context.rng.choice(zone.pokemon)
        zone.pokemon.remove(caught)
        self.context.say(f"Caught a {caught}!")

    # expressions

    def _unary(self, expr):
        operand = self.evaluate(expr.operand)
        if expr.operator.type is T.BANG:
            return not is_truthy(operand)
        if not is_int(operand):
            raise ScriptTypeError("Operand must be a number", expr.operator)
        return -operand

    def _binary(self, expr):
        op = expr.operator

        if op.type is T.AND:
            return is_truthy(self.evaluate(expr.left)) and is_truthy(self.evaluate(expr.right))
        if op.type is T.OR:
            return is_truthy(self.evaluate(expr.left)) or is_truthy(self.evaluate(expr.right))

        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)

        if op.type is T.EQUAL_EQUAL:
            return values_equal(left, right)
        if op.type is T.BANG_EQUAL:
            return not values_equal(left, right)

        if op.type is T.PLUS:
            if isinstance(left, str) or isinstance(right, str):
                return stringify(left) + stringify(right)
            if is_int(left) and is_int(right):
                return left + right
            raise ScriptTypeError("Operands must be two numbers or at least one string. "
                                  f"Got {type_name(left)} + {type_name(right)}", op)

        if not is_int(left) or not is_int(right):
            raise ScriptTypeError(f"Operands must be numbers. Got {type_name(left)} {op.lexeme} {type_name(right)}", op)
        if right == 0 and op.type is T.SLASH:
            raise ScriptRuntimeError("Division by zero", op)
        if right == 0 and op.type is T.PERCENT:
            raise ScriptRuntimeError("Modulo by zero", op)
        return INT_OPERATORS[op.type](left, right)

    def _assign(self, expr):
        value = self.evaluate(expr.value)
        if isinstance(expr.target, VariableExpr):
            self.environment.assign(expr.target.name, value)
        else:
            self._object(expr.target).set_property(expr.target.name.lexeme, value, expr.target.name)
        return value

    def _object(self, expr):
        """Evaluates the object of a property access."""
        obj = self.evaluate(expr.obj)
        if not isinstance(obj, SafariObject):
            raise ScriptTypeError(f"Only objects have properties, got {type_name(obj)}", expr.name)
        return obj

    def _property_access(self, expr):
        return self._object(expr).get_property(expr.name.lexeme, expr.name)

    def _positional_only(self, expr, what):
        if expr.named_arguments:
            raise ArgumentError(f"Named arguments are only supported for built-in constructors, not {what}",
                                expr.named_arguments[0].name)
        return [self.evaluate(argument) for argument in expr.arguments]

    def _call(self, expr):
        callee = expr.callee

        if isinstance(callee, PropertyAccessExpr) and callee.arrow:
            obj = self.evaluate(callee.obj)
            if not isinstance(obj, SafariObject):
                raise ScriptTypeError(f"Cannot call method '{callee.name.lexeme}' on {type_name(obj)}", callee.name)
            return obj.call_method(callee.name.lexeme, self._positional_only(expr, "methods"), callee.name)

        if isinstance(callee, VariableExpr):
            name = callee.name
            if name.type in (T.SAFARI_ZONE, T.TEAM):
                positional = [self.evaluate(argument) for argument in expr.arguments]
                named = [(argument.name, self.evaluate(argument.value)) for argument in expr.named_arguments]
                return CONSTRUCTORS[name.lexeme](name, positional, named, self.context)

            if name.lexeme in BUILTINS:
                args = self._positional_only(expr, "built-in functions")
                return call_builtin(BUILTINS[name.lexeme], self.context, args, name)

            if name.lexeme not in self.environment:
                raise ScriptNameError(f"Undefined function '{name.lexeme}'", name)
            function = self.environment.get(name)
            if not isinstance(function, FunctionObject):
                raise ScriptTypeError(f"'{name.lexeme}' is not a function", name)
            token = name
        else:
            function = self.evaluate(callee)
            if not isinstance(function, FunctionObject):
                raise ScriptTypeError(f"Can only call functions, got {type_name(function)}", expr.paren)
            token = expr.paren

        return self.call_function(function, self._positional_only(expr, "functions"), token)

    def call_function(self, function, args, token):
        """Calls a user-defined function in a new scope enclosed by its closure."""
        if len(args) != function.arity:
            raise ArgumentError(f"Expected {function.arity} arguments but got {len(args)}", token)

        environment = Environment(function.closure)
        for param, arg in zip(function.declaration.params, args):
            environment.define(param, arg)

        self.function_depth += 1
        try:
            self.execute_block(function.declaration.body.statements, environment)
        except ReturnSignal as signal:
            return signal.value
        except RunSignal:
            return None
        except RecursionError:
            raise ScriptRuntimeError("Maximum recursion depth exceeded", token) from None
        finally:
            self.function_depth -= 1
        return None

    def _index(self, container, index, token):
        """Validates index into container (a list or str)."""
        kind, size = ("Array", "size") if isinstance(container, list) else ("String", "length")
        if not is_int(index):
            raise ScriptTypeError(f"{kind} index must be an integer", token)
        if not 0 <= index < len(container):
            raise ScriptRuntimeError(f"{kind} index {index} out of bounds ({size} {len(container)})", token)
        return index

    def _array_access(self, expr):
        container = self.evaluate(expr.array)
        index = self.evaluate(expr.index)
        if not isinstance(container, (list, str)):
            raise ScriptTypeError(f"Can only index arrays and strings, got {type_name(container)}", expr.bracket)
        return container[self._index(container, index, expr.bracket)]

    def _array_assign(self, expr):
        container = self.evaluate(expr.array)
        index = self.evaluate(expr.index)
        value = self.evaluate(expr.value)
        if isinstance(container, str):
            raise ScriptRuntimeError("Strings are immutable and cannot be modified. Use string concatenation instead.",
                                     expr.bracket)
        if not isinstance(container, list):
            raise ScriptTypeError(f"Can only index arrays and strings, got {type_name(container)}", expr.bracket)
        container[self._index(container, index, expr.bracket)] = value
        return value
