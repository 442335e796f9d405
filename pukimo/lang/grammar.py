"""Abstract syntax tree of the PukiMO language.

Formally, a PukiMO program is

```
<program>    ::= <stmt>*
<stmt>       ::= "var" IDENT ( "=" <expr> )? ";"
               | "print" "(" <expr> ")" ";"
               | "if" "(" <expr> ")" <block> ( "else" ( <block> | <if-stmt> ) )?
               | "while" "(" <expr> ")" <block>
               | "for" IDENT "in" <expr> ( "to" <expr> )? <block>
               | "break" ";" | "continue" ";" | "run" ";"
               | "define" IDENT "(" ( IDENT ( "," IDENT )* )? ")" <block>
               | "return" <expr>? ";"
               | "explore" "(" IDENT ")" <block>
               | "throwBall" "(" <expr> ")" ";"
               | <block>
               | <expr> ";"
<block>      ::= "{" <stmt>* "}"
<expr>       ::= <assignment>
<assignment> ::= <call> "=" <assignment> | <or>       ; target must be a variable, property or array element
<or>         ::= <and> ( "||" <and> )*
<and>        ::= <equality> ( "&&" <equality> )*
<equality>   ::= <comparison> ( ( "==" | "!=" ) <comparison> )*
<comparison> ::= <term> ( ( "<" | "<=" | ">" | ">=" ) <term> )*
<term>       ::= <factor> ( ( "+" | "-" ) <factor> )*
<factor>     ::= <unary> ( ( "*" | "/" | "%" ) <unary> )*
<unary>      ::= ( "!" | "-" ) <unary> | <call>
<call>       ::= <primary> ( "(" <args>? ")" | "." IDENT | "->" IDENT "(" <args>? ")" | "[" <expr> "]" )*
<args>       ::= <arg> ( "," <arg> )*
<arg>        ::= IDENT "=" <expr>                      ; named argument
               | <expr>
<primary>    ::= NUMBER | STRING | "true" | "false" | "null" | IDENT
               | ( "SafariZone" | "Team" ) "(" <args>? ")"
               | "(" <expr> ")" | "[" ( <expr> ( "," <expr> )* )? "]"
```

Nodes are immutable once the parser builds them. Fields holding a Token keep the token that best locates runtime errors
raised while evaluating that node.
"""

from dataclasses import dataclass, fields

from pukimo.lang.lexical import Token


class Node:
    """Superclass of every AST node."""

    def display(self, indents=0):
        return display(self, indents)


class Stmt(Node):
    pass


class Expr(Node):
    pass


@dataclass(frozen=True)
class Program(Node):
    statements: tuple


# statements

@dataclass(frozen=True)
class ExprStmt(Stmt):
    expression: Expr


@dataclass(frozen=True)
class PrintStmt(Stmt):
    keyword: Token
    expression: Expr


@dataclass(frozen=True)
class VarDeclStmt(Stmt):
    name: Token
    initializer: Expr = None


@dataclass(frozen=True)
class Block(Stmt):
    statements: tuple


@dataclass(frozen=True)
class IfStmt(Stmt):
    keyword: Token
    condition: Expr
    then_branch: Block
    else_branch: Stmt = None  # Block or a chained IfStmt


@dataclass(frozen=True)
class WhileStmt(Stmt):
    keyword: Token
    condition: Expr
    body: Block


@dataclass(frozen=True)
class ForStmt(Stmt):
    keyword: Token
    variable: Token
    start: Expr  # iterable, or range start if end is set
    end: Expr
    body: Block


@dataclass(frozen=True)
class BreakStmt(Stmt):
    keyword: Token


@dataclass(frozen=True)
class ContinueStmt(Stmt):
    keyword: Token


@dataclass(frozen=True)
class RunStmt(Stmt):
    keyword: Token


@dataclass(frozen=True)
class DefineStmt(Stmt):
    name: Token
    params: tuple
    body: Block


@dataclass(frozen=True)
class ReturnStmt(Stmt):
    keyword: Token
    value: Expr = None


@dataclass(frozen=True)
class ExploreStmt(Stmt):
    keyword: Token
    zone: Token
    body: Block


@dataclass(frozen=True)
class ThrowBallStmt(Stmt):
    keyword: Token
    target: Expr


# expressions

@dataclass(frozen=True)
class LiteralExpr(Expr):
    value: object


@dataclass(frozen=True)
class VariableExpr(Expr):
    name: Token


@dataclass(frozen=True)
class UnaryExpr(Expr):
    operator: Token
    operand: Expr


@dataclass(frozen=True)
class BinaryExpr(Expr):
    left: Expr
    operator: Token
    right: Expr


@dataclass(frozen=True)
class AssignExpr(Expr):
    target: Expr  # VariableExpr or PropertyAccessExpr
    equals: Token
    value: Expr


@dataclass(frozen=True)
class NamedArg(Node):
    name: Token
    value: Expr


@dataclass(frozen=True)
class CallExpr(Expr):
    callee: Expr  # a PropertyAccessExpr with arrow=True makes this a method call
    paren: Token
    arguments: tuple
    named_arguments: tuple = ()


@dataclass(frozen=True)
class PropertyAccessExpr(Expr):
    obj: Expr
    name: Token
    arrow: bool = False


@dataclass(frozen=True)
class ArrayLiteralExpr(Expr):
    bracket: Token
    elements: tuple


@dataclass(frozen=True)
class ArrayAccessExpr(Expr):
    array: Expr
    bracket: Token
    index: Expr


@dataclass(frozen=True)
class ArrayAssignExpr(Expr):
    array: Expr
    bracket: Token
    index: Expr
    value: Expr


def _is_subtree(value):
    return isinstance(value, Node) or (isinstance(value, tuple) and any(isinstance(item, Node) for item in value))


def _summarize(value):
    if isinstance(value, Token):
        return repr(value.lexeme)
    if isinstance(value, tuple):
        return "[" + ", ".join(_summarize(item) for item in value) + "]"
    return repr(value)


def display(node, indents=0):
    """Recursively displays an AST with readable format. Fields that are not nodes are shown inline.

    Format:
    <Node>(<field>=<value>, <field>=[
        <Node>(...),
        <Node>(<field>=<value>)
    ])
    """
    inline, nested = [], []
    for node_field in fields(node):
        value = getattr(node, node_field.name)
        if (value is None and node_field.default is None) or value == ():
            continue
        if _is_subtree(value):
            nested.append((node_field.name, value if isinstance(value, tuple) else (value,)))
        else:
            inline.append(f"{node_field.name}={_summarize(value)}")

    result = f"{'    ' * indents}{type(node).__name__}(" + ", ".join(inline)
    for name, children in nested:
        result += (", " if result[-1] != "(" else "") + f"{name}=["
        for child in children:
            result += "\n" + display(child, indents + 1) + ","
        result = result[:-1] + f"\n{'    ' * indents}]"
    return result + ")"
