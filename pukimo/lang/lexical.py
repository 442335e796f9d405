"""Tokens and scanner for the PukiMO language.

Lexically, a PukiMO source file is a sequence of

```
<token> ::= <identifier>        ; [A-Za-z_][A-Za-z0-9_]*, longest match
                                ; - keywords are identifiers found in KEYWORDS
          | <number>            ; [0-9]+, must fit in a signed 32-bit int
          | <string>            ; "..." with escapes \n \t \\ \", may span lines
          | <operator>          ; two-character operators are matched before one-character ones
<comment> ::= ":>" ...          ; until end of line
            | "/*" ... "*/"     ; may span lines, not nested
```

Whitespace separates tokens and is otherwise ignored. Unknown characters are recorded and skipped, so one scan reports
every one of them; an unterminated string or block comment ends the scan.
"""

import logging
import string
from dataclasses import dataclass
from enum import Enum, auto

from pukimo.lang.error import LexicalError

logger = logging.getLogger(__name__)

INT_MAX = 2 ** 31 - 1


class TokenType(Enum):
    # punctuation
    LEFT_PAREN = auto()
    RIGHT_PAREN = auto()
    LEFT_BRACE = auto()
    RIGHT_BRACE = auto()
    LEFT_BRACKET = auto()
    RIGHT_BRACKET = auto()
    COMMA = auto()
    DOT = auto()
    SEMICOLON = auto()

    # operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    BANG = auto()
    BANG_EQUAL = auto()
    EQUAL = auto()
    EQUAL_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    AND = auto()
    OR = auto()
    ARROW = auto()

    # literals
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()

    # keywords
    VAR = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    IN = auto()
    TO = auto()
    BREAK = auto()
    CONTINUE = auto()
    RUN = auto()
    DEFINE = auto()
    RETURN = auto()
    PRINT = auto()
    EXPLORE = auto()
    THROW_BALL = auto()
    SAFARI_ZONE = auto()
    TEAM = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    EOF = auto()


KEYWORDS = {
    "var": TokenType.VAR,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "to": TokenType.TO,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "run": TokenType.RUN,
    "define": TokenType.DEFINE,
    "return": TokenType.RETURN,
    "print": TokenType.PRINT,
    "explore": TokenType.EXPLORE,
    "throwBall": TokenType.THROW_BALL,
    "SafariZone": TokenType.SAFARI_ZONE,
    "Team": TokenType.TEAM,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

TWO_CHAR_OPERATORS = {
    "==": TokenType.EQUAL_EQUAL,
    "!=": TokenType.BANG_EQUAL,
    "<=": TokenType.LESS_EQUAL,
    ">=": TokenType.GREATER_EQUAL,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "->": TokenType.ARROW,
}

ONE_CHAR_OPERATORS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "=": TokenType.EQUAL,
    "<": TokenType.LESS,
    ">": TokenType.GREATER,
    "!": TokenType.BANG,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ";": TokenType.SEMICOLON,
}

ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", "\"": "\""}

IDENT_START = set(string.ascii_letters + "_")
IDENT_CHARS = IDENT_START | set(string.digits)


@dataclass(frozen=True)
class Token:
    """Smallest meaningful unit of PukiMO source. line is 0 for tokens the interpreter makes up itself."""
    type: TokenType
    lexeme: str
    literal: object = None
    line: int = 0

    @staticmethod
    def synthetic(lexeme, token_type=TokenType.IDENTIFIER):
        """Makes a token that does not come from the source, e.g. the name of the 'encounter' binding."""
        return Token(token_type, lexeme)

    def __str__(self):
        return f"{self.type.name} '{self.lexeme}'" + (f" {self.literal!r}" if self.literal is not None else "")


class Scanner:
    """Turns PukiMO source text into a list of Tokens terminated by EOF. Errors go to diagnostics."""

    def __init__(self, diagnostics, line=1):
        self.diagnostics = diagnostics
        self.first_line = line

        self.source = ""
        self.tokens = []
        self.start = 0
        self.current = 0
        self.line = line

    def scan(self, source):
        """Scans source and returns its tokens. Always ends with an EOF token, even if errors were recorded."""
        self.source = source
        self.tokens = []
        self.start = self.current = 0
        self.line = self.first_line

        while not self._is_at_end():
            self.start = self.current
            self._scan_token()

        self.tokens.append(Token(TokenType.EOF, "", None, self.line))
        logger.debug("scanned %d token(s) over lines %d-%d", len(self.tokens), self.first_line, self.line)
        return self.tokens

    def _scan_token(self):
        char = self._advance()

        if char == "\n":
            self.line += 1
        elif char in " \r\t":
            pass
        elif char == ":" and self._peek() == ">":
            while self._peek() != "\n" and not self._is_at_end():
                self._advance()
        elif char == "/" and self._peek() == "*":
            self._block_comment()
        elif char == "\"":
            self._string()
        elif char in string.digits:
            self._number()
        elif char in IDENT_START:
            self._identifier()
        elif char + self._peek() in TWO_CHAR_OPERATORS:
            self._add_token(TWO_CHAR_OPERATORS[char + self._advance()])
        elif char in ONE_CHAR_OPERATORS:
            self._add_token(ONE_CHAR_OPERATORS[char])
        else:
            self._error(f"Unexpected character ('{char}')")

    def _block_comment(self):
        self._advance()  # '*'
        while not self._is_at_end():
            if self._peek() == "*" and self._peek_next() == "/":
                self._advance()
                self._advance()
                return
            if self._advance() == "\n":
                self.line += 1
        self._error("Unterminated multi-line comment")

    def _string(self):
        start_line = self.line
        chars = []
        while not self._is_at_end() and self._peek() != "\"":
            char = self._advance()
            if char == "\n":
                self.line += 1
            elif char == "\\" and not self._is_at_end():
                escaped = self._advance()
                if escaped == "\n":
                    self.line += 1
                char = ESCAPES.get(escaped, escaped)
            chars.append(char)

        if self._is_at_end():
            self._error("Unterminated string", line=start_line)
            return

        self._advance()  # closing quote
        self._add_token(TokenType.STRING, "".join(chars), line=start_line)

    def _number(self):
        while self._peek() in string.digits and not self._is_at_end():
            self._advance()

        digits = self.source[self.start:self.current]
        value = int(digits)
        if value > INT_MAX:
            self._error(f"Number too large: {digits}")
            return
        self._add_token(TokenType.NUMBER, value)

    def _identifier(self):
        while not self._is_at_end() and self._peek() in IDENT_CHARS:
            self._advance()

        text = self.source[self.start:self.current]
        self._add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    def _add_token(self, token_type, literal=None, line=None):
        lexeme = self.source[self.start:self.current]
        self.tokens.append(Token(token_type, lexeme, literal, self.line if line is None else line))

    def _error(self, msg, line=None):
        self.diagnostics.record(LexicalError(msg, line=self.line if line is None else line))

    def _advance(self):
        self.current += 1
        return self.source[self.current - 1]

    def _peek(self):
        return char_at(self.source, self.current)

    def _peek_next(self):
        return char_at(self.source, self.current + 1)

    def _is_at_end(self):
        return self.current >= len(self.source)


def char_at(text, index):
    """Returns text[index], or "" past the end of text."""
    return text[index] if index < len(text) else ""
