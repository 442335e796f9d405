"""Recursive-descent parser for the PukiMO language. Grammar rules are listed in pukimo/lang/grammar.py.

The parser never stops at the first mistake: a statement that fails to parse is recorded in the diagnostics collector,
the token stream is resynchronized at the next likely statement boundary and parsing resumes, both at top level and
inside every block. A program with parse errors is still returned, but it must not be evaluated.
"""

import logging
from contextlib import contextmanager

from pukimo.lang.error import ParseError
from pukimo.lang.grammar import (ArrayAccessExpr, ArrayAssignExpr, ArrayLiteralExpr, AssignExpr, BinaryExpr, Block,
                                 BreakStmt, CallExpr, ContinueStmt, DefineStmt, ExploreStmt, ExprStmt, ForStmt, IfStmt,
                                 LiteralExpr, NamedArg, PrintStmt, Program, PropertyAccessExpr, ReturnStmt, RunStmt,
                                 ThrowBallStmt, UnaryExpr, VarDeclStmt, VariableExpr, WhileStmt)
from pukimo.lang.lexical import TokenType as T

logger = logging.getLogger(__name__)

# notes attached to recorded parse errors whose message starts with the key
HINTS = {
    "Expected ')'": ["Missing ')' to close the expression.", "Missing ';' at the end of the statement."],
    "Expected '}'": ["Missing '}' to close the block."],
    "Expected ';'": ["Try adding a ';' at the end of the previous expression or statement."],
}

STATEMENT_STARTS = {T.VAR, T.IF, T.WHILE, T.FOR, T.BREAK, T.CONTINUE, T.RUN, T.DEFINE, T.RETURN, T.PRINT, T.EXPLORE,
                    T.THROW_BALL}


class TokenBuffer:
    """Cursor over a list of tokens ending in EOF."""

    def __init__(self, tokens):
        self.tokens = tokens
        self.current = 0

    def peek(self):
        return self.tokens[self.current]

    def peek_next(self):
        return self.tokens[min(self.current + 1, len(self.tokens) - 1)]

    def previous(self):
        return self.tokens[self.current - 1]

    def is_at_end(self):
        return self.peek().type is T.EOF

    def advance(self):
        if not self.is_at_end():
            self.current += 1
        return self.previous()

    def check(self, *types):
        return self.peek().type in types

    def match(self, *types):
        """Consumes the next token if it is one of types."""
        if self.check(*types):
            self.advance()
            return True
        return False


class ParsingContext:
    """Tracks how deeply the parser is nested in loops, control blocks and blocks."""

    def __init__(self):
        self.loop_depth = 0
        self.control_depth = 0
        self.block_depth = 0

    @contextmanager
    def loop(self):
        self.loop_depth += 1
        self.control_depth += 1
        try:
            yield
        finally:
            self.loop_depth -= 1
            self.control_depth -= 1

    @contextmanager
    def control(self):
        self.control_depth += 1
        try:
            yield
        finally:
            self.control_depth -= 1

    @contextmanager
    def block(self):
        self.block_depth += 1
        try:
            yield
        finally:
            self.block_depth -= 1

    @contextmanager
    def function(self):
        """A function body does not inherit the loops around its definition."""
        saved = self.loop_depth, self.control_depth
        self.loop_depth = self.control_depth = 0
        try:
            yield
        finally:
            self.loop_depth, self.control_depth = saved


class Parser:
    """Builds a Program from tokens. In repl_mode, a top-level statement may omit its terminating ';' when nothing else
    follows it on the same line.
    """

    def __init__(self, tokens, diagnostics, repl_mode=False):
        self.tokens = TokenBuffer(tokens)
        self.diagnostics = diagnostics
        self.repl_mode = repl_mode
        self.context = ParsingContext()

    def parse(self):
        """Parses every statement, recovering from errors. Check diagnostics before evaluating the result."""
        statements = []
        while not self.tokens.is_at_end():
            stmt = self._recoverable_declaration(in_block=False)
            if stmt is not None:
                statements.append(stmt)

        logger.debug("parsed %d top-level statement(s)", len(statements))
        return Program(tuple(statements))

    # error handling

    def _error(self, token, msg):
        return ParseError(msg, token)

    def _consume(self, token_type, msg):
        if self.tokens.check(token_type):
            return self.tokens.advance()
        raise self._error(self.tokens.peek(), msg)

    def _terminate(self, msg):
        """Consumes the ';' ending a simple statement."""
        if self.tokens.match(T.SEMICOLON):
            return
        if self.repl_mode and self.context.block_depth == 0:
            following = self.tokens.peek()
            if following.type is T.EOF or following.line > self.tokens.previous().line:
                return
        raise self._error(self.tokens.peek(), msg)

    def _recoverable_declaration(self, in_block):
        start = self.tokens.current
        try:
            return self._declaration()
        except ParseError as error:
            self.diagnostics.record(error)
            for prefix, hints in HINTS.items():
                if error.msg.startswith(prefix):
                    for hint in hints:
                        self.diagnostics.attach_hint(error.token, hint)
            self._synchronize(start, in_block)
            return None

    def _synchronize(self, start, in_block):
        """Discards tokens up to a likely statement boundary: just after a ';' or a balanced '{...}' group, or just
        before a statement keyword or (in a block) the '}' closing it. Always discards at least one token.
        """
        progressed = self.tokens.current > start
        while not self.tokens.is_at_end():
            token = self.tokens.peek()
            if progressed and (token.type in STATEMENT_STARTS or (in_block and token.type is T.RIGHT_BRACE)):
                return

            self.tokens.advance()
            progressed = True
            if token.type is T.SEMICOLON:
                return
            if token.type is T.LEFT_BRACE:
                self._skip_group()
                return

    def _skip_group(self):
        depth = 1
        while depth and not self.tokens.is_at_end():
            token = self.tokens.advance()
            if token.type is T.LEFT_BRACE:
                depth += 1
            elif token.type is T.RIGHT_BRACE:
                depth -= 1

    # statements

    def _declaration(self):
        if self.tokens.match(T.VAR):
            return self._var_declaration()
        if self.tokens.match(T.DEFINE):
            return self._define()
        return self._statement()

    def _var_declaration(self):
        name = self._consume(T.IDENTIFIER, "Expected variable name.")
        initializer = self._expression() if self.tokens.match(T.EQUAL) else None
        self._terminate("Expected ';' after variable declaration.")
        return VarDeclStmt(name, initializer)

    def _define(self):
        name = self._consume(T.IDENTIFIER, "Expected function name after 'define'")
        self._consume(T.LEFT_PAREN, "Expected '(' after function name")

        params = []
        if not self.tokens.check(T.RIGHT_PAREN):
            params.append(self._consume(T.IDENTIFIER, "Expected parameter name"))
            while self.tokens.match(T.COMMA):
                params.append(self._consume(T.IDENTIFIER, "Expected parameter name"))
        self._consume(T.RIGHT_PAREN, "Expected ')' after function parameters")

        self._consume(T.LEFT_BRACE, "Expected '{' before function body")
        with self.context.function():
            body = self._block()
        return DefineStmt(name, tuple(params), body)

    def _statement(self):
        handlers = {
            T.PRINT: self._print,
            T.IF: self._if,
            T.WHILE: self._while,
            T.FOR: self._for,
            T.BREAK: self._break,
            T.CONTINUE: self._continue,
            T.RUN: self._run,
            T.RETURN: self._return,
            T.EXPLORE: self._explore,
            T.THROW_BALL: self._throw_ball,
        }
        handler = handlers.get(self.tokens.peek().type)
        if handler is not None:
            return handler(self.tokens.advance())

        if self.tokens.match(T.LEFT_BRACE):
            return self._block()

        expression = self._expression()
        self._terminate("Expected ';' after expression.")
        return ExprStmt(expression)

    def _block(self):
        """Parses statements up to the closing '}'. The opening '{' must already be consumed."""
        statements = []
        with self.context.block():
            while not self.tokens.check(T.RIGHT_BRACE) and not self.tokens.is_at_end():
                stmt = self._recoverable_declaration(in_block=True)
                if stmt is not None:
                    statements.append(stmt)
        self._consume(T.RIGHT_BRACE, "Expected '}' after block")
        return Block(tuple(statements))

    def _print(self, keyword):
        self._consume(T.LEFT_PAREN, "Expected '(' after 'print'")
        expression = self._expression()
        self._consume(T.RIGHT_PAREN, "Expected ')' after print expression")
        self._terminate("Expected ';' after print statement")
        return PrintStmt(keyword, expression)

    def _if(self, keyword):
        self._consume(T.LEFT_PAREN, "Expected '(' after 'if'")
        condition = self._expression()
        self._consume(T.RIGHT_PAREN, "Expected ')' after if condition")
        self._consume(T.LEFT_BRACE, "Expected '{' to start 'if' block")
        with self.context.control():
            then_branch = self._block()

            else_branch = None
            if self.tokens.match(T.ELSE):
                if self.tokens.check(T.IF):
                    else_branch = self._if(self.tokens.advance())
                else:
                    self._consume(T.LEFT_BRACE, "Expected '{' to start 'else' block")
                    else_branch = self._block()
        return IfStmt(keyword, condition, then_branch, else_branch)

    def _while(self, keyword):
        self._consume(T.LEFT_PAREN, "Expected '(' after 'while'")
        condition = self._expression()
        self._consume(T.RIGHT_PAREN, "Expected ')' after while condition")
        self._consume(T.LEFT_BRACE, "Expected '{' to start 'while' block")
        with self.context.loop():
            body = self._block()
        return WhileStmt(keyword, condition, body)

    def _for(self, keyword):
        variable = self._consume(T.IDENTIFIER, "Expected loop variable name after 'for'")
        self._consume(T.IN, "Expected 'in' after loop variable")
        start = self._expression()
        end = self._expression() if self.tokens.match(T.TO) else None
        self._consume(T.LEFT_BRACE, "Expected '{' to start 'for' block")
        with self.context.loop():
            body = self._block()
        return ForStmt(keyword, variable, start, end, body)

    def _break(self, keyword):
        self._terminate("Expected ';' after 'break'")
        if not self.context.loop_depth:
            self.diagnostics.record(self._error(keyword, "'break' can only be used inside a loop"))
        return BreakStmt(keyword)

    def _continue(self, keyword):
        self._terminate("Expected ';' after 'continue'")
        if not self.context.loop_depth:
            self.diagnostics.record(self._error(keyword, "'continue' can only be used inside a loop"))
        return ContinueStmt(keyword)

    def _run(self, keyword):
        self._terminate("Expected ';' after 'run'")
        if not self.context.control_depth:
            self.diagnostics.record(self._error(keyword, "'run' statement is only allowed inside control blocks"))
        return RunStmt(keyword)

    def _return(self, keyword):
        value = None if self.tokens.check(T.SEMICOLON) else self._expression()
        self._terminate("Expected ';' after return statement.")
        return ReturnStmt(keyword, value)

    def _explore(self, keyword):
        self._consume(T.LEFT_PAREN, "Expected '(' after 'explore'")
        zone = self._consume(T.IDENTIFIER, "Expected Safari Zone variable name")
        self._consume(T.RIGHT_PAREN, "Expected ')' after Safari Zone name")
        self._consume(T.LEFT_BRACE, "Expected '{' to start 'explore' block")
        with self.context.loop():
            body = self._block()
        return ExploreStmt(keyword, zone, body)

    def _throw_ball(self, keyword):
        self._consume(T.LEFT_PAREN, "Expected '(' after 'throwBall'")
        target = self._expression()
        self._consume(T.RIGHT_PAREN, "Expected ')' after throwBall target")
        self._terminate("Expected ';' after throwBall statement")
        return ThrowBallStmt(keyword, target)

    # expressions

    def _expression(self):
        return self._assignment()

    def _assignment(self):
        expr = self._or()
        if not self.tokens.match(T.EQUAL):
            return expr

        equals = self.tokens.previous()
        value = self._assignment()

        if isinstance(expr, VariableExpr) and expr.name.type is T.IDENTIFIER:
            return AssignExpr(expr, equals, value)
        if isinstance(expr, PropertyAccessExpr) and not expr.arrow:
            return AssignExpr(expr, equals, value)
        if isinstance(expr, ArrayAccessExpr):
            return ArrayAssignExpr(expr.array, expr.bracket, expr.index, value)

        self.diagnostics.record(self._error(equals, "Invalid assignment target"))
        return expr

    def _binary(self, operand, *operators):
        expr = operand()
        while self.tokens.match(*operators):
            operator = self.tokens.previous()
            expr = BinaryExpr(expr, operator, operand())
        return expr

    def _or(self):
        return self._binary(self._and, T.OR)

    def _and(self):
        return self._binary(self._equality, T.AND)

    def _equality(self):
        return self._binary(self._comparison, T.EQUAL_EQUAL, T.BANG_EQUAL)

    def _comparison(self):
        return self._binary(self._term, T.LESS, T.LESS_EQUAL, T.GREATER, T.GREATER_EQUAL)

    def _term(self):
        return self._binary(self._factor, T.PLUS, T.MINUS)

    def _factor(self):
        return self._binary(self._unary, T.STAR, T.SLASH, T.PERCENT)

    def _unary(self):
        if self.tokens.match(T.BANG, T.MINUS):
            operator = self.tokens.previous()
            return UnaryExpr(operator, self._unary())
        return self._call()

    def _call(self):
        expr = self._primary()
        while True:
            if self.tokens.match(T.LEFT_PAREN):
                expr = self._finish_call(expr)

            elif self.tokens.match(T.DOT):
                name = self._consume(T.IDENTIFIER, "Expected property name after '.'")
                if self.tokens.check(T.LEFT_PAREN):
                    msg = f"Cannot call method with '.' operator. Use '->' for methods: {name.lexeme}()"
                    raise self._error(name, msg)
                expr = PropertyAccessExpr(expr, name)

            elif self.tokens.match(T.ARROW):
                name = self._consume(T.IDENTIFIER, "Expected method name after '->'")
                if not self.tokens.match(T.LEFT_PAREN):
                    msg = f"Arrow operator '->' is for method calls only. Use '.' for properties: .{name.lexeme}"
                    raise self._error(name, msg)
                expr = self._finish_call(PropertyAccessExpr(expr, name, arrow=True))

            elif self.tokens.match(T.LEFT_BRACKET):
                index = self._expression()
                bracket = self._consume(T.RIGHT_BRACKET, "Expected ']' after index")
                expr = ArrayAccessExpr(expr, bracket, index)

            else:
                return expr

    def _finish_call(self, callee):
        """Parses an argument list. The opening '(' must already be consumed."""
        arguments, named_arguments = [], []
        if not self.tokens.check(T.RIGHT_PAREN):
            while True:
                if self.tokens.check(T.IDENTIFIER) and self.tokens.peek_next().type is T.EQUAL:
                    name = self.tokens.advance()
                    self.tokens.advance()  # '='
                    named_arguments.append(NamedArg(name, self._expression()))
                else:
                    arguments.append(self._expression())
                if not self.tokens.match(T.COMMA):
                    break

        paren = self._consume(T.RIGHT_PAREN, "Expected ')' after arguments")
        return CallExpr(callee, paren, tuple(arguments), tuple(named_arguments))

    def _primary(self):
        token = self.tokens.peek()
        literals = {T.TRUE: True, T.FALSE: False, T.NULL: None}

        if token.type in literals:
            self.tokens.advance()
            return LiteralExpr(literals[token.type])

        if self.tokens.match(T.NUMBER, T.STRING):
            return LiteralExpr(token.literal)

        if self.tokens.match(T.IDENTIFIER):
            return VariableExpr(token)

        if self.tokens.match(T.SAFARI_ZONE, T.TEAM):
            self._consume(T.LEFT_PAREN, f"Expected '(' after '{token.lexeme}'")
            return self._finish_call(VariableExpr(token))

        if self.tokens.match(T.LEFT_PAREN):
            expr = self._expression()
            self._consume(T.RIGHT_PAREN, "Expected ')' after expression")
            return expr

        if self.tokens.match(T.LEFT_BRACKET):
            elements = []
            if not self.tokens.check(T.RIGHT_BRACKET):
                elements.append(self._expression())
                while self.tokens.match(T.COMMA):
                    elements.append(self._expression())
            self._consume(T.RIGHT_BRACKET, "Expected ']' after array elements")
            return ArrayLiteralExpr(token, tuple(elements))

        raise self._error(token, "Expected primary expression")
