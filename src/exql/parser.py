"""Parser for EXQL.

Converts a stream of tokens into an Abstract Syntax Tree (AST).
Uses recursive descent parsing with operator precedence.

Operator Precedence (lowest to highest):
1. or
2. and
3. in, not in
4. = == !=
5. < <= > >=
6. + -
7. * /
8. not, - (unary)
9. . (field access, namespace call) [] (index) () (function call)

All binary operators are left-associative; unary operators nest to the right.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from exql.errors import LexerError, ParseError
from exql.lexer import Lexer, Token, TokenType
from exql.values import ValueType, format_number, type_of

if TYPE_CHECKING:
    from exql.types import Context


# -----------------------------------------------------------------------------
# AST Node Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ASTNode:
    """Base class for AST nodes.

    Nodes are immutable; the same tree may be evaluated against any number
    of contexts.
    """

    def evaluate(self, context: Context, strict_functions: bool = False) -> Any:
        """Evaluate this node under ``context``."""
        from exql.evaluator import Evaluator

        return Evaluator(context, strict_functions=strict_functions).evaluate(self)

    def __str__(self) -> str:
        return to_source(self)


@dataclass(frozen=True)
class Literal(ASTNode):
    """A literal value (number, string, boolean)."""
    value: Any


@dataclass(frozen=True)
class Variable(ASTNode):
    """A variable reference resolved through the context."""
    name: str


@dataclass(frozen=True)
class FieldAccess(ASTNode):
    """Dot notation field access (e.g., user.age, users.name)."""
    object: ASTNode
    field: str


@dataclass(frozen=True)
class IndexAccess(ASTNode):
    """Bracket notation index access (e.g., items[0], user['name'])."""
    object: ASTNode
    index: ASTNode


@dataclass(frozen=True)
class BinaryOp(ASTNode):
    """Binary operation (e.g., a + b, x == y, a not in b)."""
    operator: str
    left: ASTNode
    right: ASTNode


@dataclass(frozen=True)
class UnaryOp(ASTNode):
    """Unary operation (e.g., not x, -y)."""
    operator: str
    operand: ASTNode


@dataclass(frozen=True)
class FunctionCall(ASTNode):
    """Function call, optionally qualified by a namespace (e.g., string.upper(name))."""
    name: str
    arguments: tuple[ASTNode, ...] = ()
    namespace: ASTNode | None = None


@dataclass(frozen=True)
class ListLiteral(ASTNode):
    """List literal (e.g., [1, 2, 3], ['a', 'b'])."""
    elements: tuple[ASTNode, ...] = ()


@dataclass(frozen=True)
class EachLiteral(ASTNode):
    """Evaluates to the EACH sentinel. No source syntax produces it yet."""
    pass


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------


class Parser:
    """Recursive descent parser for the expression language.

    Usage:
        parser = Parser("user.age > 18 and user.active")
        ast = parser.parse()
    """

    def __init__(self, source: str):
        self.source = source
        self.lexer = Lexer(source)
        self.tokens = self.lexer.tokenize()
        self.position = 0

    def parse(self) -> ASTNode:
        """Parse the expression and return the AST root."""
        if self._is_at_end():
            raise self._error("empty expression", self._current())

        ast = self._parse_or()

        if not self._is_at_end():
            raise self._error(
                f"unexpected token '{self._current().text}'", self._current()
            )

        return ast

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def _current(self) -> Token:
        """Get current token."""
        return self._peek(0)

    def _peek(self, offset: int = 0) -> Token:
        """Peek at a token without consuming it."""
        pos = self.position + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _is_at_end(self) -> bool:
        """Check if we've consumed all tokens."""
        return self._current().type == TokenType.EOF

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.position += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self._current().type in types

    def _consume(self, token_type: TokenType, message: str) -> Token:
        """Consume a token of the expected type, or raise error."""
        if self._current().type == token_type:
            return self._advance()
        raise self._error(message, self._current())

    def _error(self, message: str, token: Token) -> ParseError:
        return ParseError.at(message, self.source, token.position)

    # -------------------------------------------------------------------------
    # Parsing methods (in order of precedence, lowest to highest)
    # -------------------------------------------------------------------------

    def _parse_or(self) -> ASTNode:
        """Parse OR expression (lowest precedence)."""
        left = self._parse_and()

        while self._match(TokenType.OR):
            self._advance()
            right = self._parse_and()
            left = BinaryOp("or", left, right)

        return left

    def _parse_and(self) -> ASTNode:
        """Parse AND expression."""
        left = self._parse_membership()

        while self._match(TokenType.AND):
            self._advance()
            right = self._parse_membership()
            left = BinaryOp("and", left, right)

        return left

    def _parse_membership(self) -> ASTNode:
        """Parse membership expression (in, not in)."""
        left = self._parse_equality()

        while True:
            if self._match(TokenType.IN):
                self._advance()
                left = BinaryOp("in", left, self._parse_equality())
            elif self._match(TokenType.NOT) and self._peek(1).type == TokenType.IN:
                self._advance()
                self._advance()
                left = BinaryOp("not in", left, self._parse_equality())
            else:
                break

        return left

    def _parse_equality(self) -> ASTNode:
        """Parse equality expression (=, ==, !=)."""
        left = self._parse_relational()

        while self._match(TokenType.EQ, TokenType.NEQ):
            op_token = self._advance()
            right = self._parse_relational()
            left = BinaryOp(op_token.text, left, right)

        return left

    def _parse_relational(self) -> ASTNode:
        """Parse relational expression (<, <=, >, >=)."""
        left = self._parse_additive()

        while self._match(TokenType.LT, TokenType.LTE, TokenType.GT, TokenType.GTE):
            op_token = self._advance()
            right = self._parse_additive()
            left = BinaryOp(op_token.text, left, right)

        return left

    def _parse_additive(self) -> ASTNode:
        """Parse additive expression (+, -)."""
        left = self._parse_multiplicative()

        while self._match(TokenType.PLUS, TokenType.MINUS):
            op_token = self._advance()
            right = self._parse_multiplicative()
            left = BinaryOp(op_token.text, left, right)

        return left

    def _parse_multiplicative(self) -> ASTNode:
        """Parse multiplicative expression (*, /)."""
        left = self._parse_unary()

        while self._match(TokenType.MULTIPLY, TokenType.DIVIDE):
            op_token = self._advance()
            right = self._parse_unary()
            left = BinaryOp(op_token.text, left, right)

        return left

    def _parse_unary(self) -> ASTNode:
        """Parse unary expression (not, -)."""
        if self._match(TokenType.NOT):
            self._advance()
            return UnaryOp("not", self._parse_unary())

        if self._match(TokenType.MINUS):
            self._advance()
            return UnaryOp("-", self._parse_unary())

        return self._parse_postfix()

    def _parse_postfix(self) -> ASTNode:
        """Parse postfix expressions (field access, namespace call, index)."""
        expr = self._parse_primary()

        while True:
            if self._match(TokenType.DOT):
                self._advance()
                name_token = self._consume(
                    TokenType.IDENTIFIER, "expected identifier after '.'"
                )
                if self._match(TokenType.LPAREN):
                    arguments = self._parse_arguments()
                    expr = FunctionCall(str(name_token.value), arguments, namespace=expr)
                else:
                    expr = FieldAccess(expr, str(name_token.value))

            elif self._match(TokenType.LBRACKET):
                self._advance()
                index = self._parse_or()
                self._consume(TokenType.RBRACKET, "expected ']' after index")
                expr = IndexAccess(expr, index)

            else:
                break

        return expr

    def _parse_primary(self) -> ASTNode:
        """Parse primary expression (literals, variables, calls, groups, lists)."""
        token = self._current()

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.BOOLEAN):
            self._advance()
            return Literal(token.value)

        # Variable or function name
        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._match(TokenType.LPAREN):
                return FunctionCall(str(token.value), self._parse_arguments())
            return Variable(str(token.value))

        # Grouped expression
        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_or()
            self._consume(TokenType.RPAREN, "expected ')' after expression")
            return expr

        if token.type == TokenType.LBRACKET:
            return self._parse_list_literal()

        if token.type == TokenType.EOF:
            raise self._error("unexpected end of input", token)

        raise self._error(f"unexpected token '{token.text}'", token)

    def _parse_arguments(self) -> tuple[ASTNode, ...]:
        """Parse a parenthesized, comma separated argument list."""
        self._consume(TokenType.LPAREN, "expected '(' after function name")
        arguments = self._parse_expressions(TokenType.RPAREN)
        self._consume(TokenType.RPAREN, "expected ')' after arguments")
        return arguments

    def _parse_list_literal(self) -> ListLiteral:
        """Parse a list literal [a, b, c]."""
        self._consume(TokenType.LBRACKET, "expected '['")
        elements = self._parse_expressions(TokenType.RBRACKET)
        self._consume(TokenType.RBRACKET, "expected ']' after list elements")
        return ListLiteral(elements)

    def _parse_expressions(self, closing: TokenType) -> tuple[ASTNode, ...]:
        items: list[ASTNode] = []

        if not self._match(closing):
            items.append(self._parse_or())

            while self._match(TokenType.COMMA):
                self._advance()
                items.append(self._parse_or())

        return tuple(items)


# -----------------------------------------------------------------------------
# Canonical form
# -----------------------------------------------------------------------------


def to_source(node: ASTNode) -> str:
    """Render an AST back into fully parenthesized expression source.

    The result re-parses to a tree that evaluates identically.

    Raises:
        ValueError: For nodes that have no source form (EachLiteral, or
            literals the grammar cannot express)
    """
    if isinstance(node, Literal):
        return _literal_source(node.value)
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, BinaryOp):
        return f"({to_source(node.left)} {node.operator} {to_source(node.right)})"
    if isinstance(node, UnaryOp):
        if node.operator == "not":
            return f"(not {to_source(node.operand)})"
        return f"({node.operator}{to_source(node.operand)})"
    if isinstance(node, FieldAccess):
        return f"{to_source(node.object)}.{node.field}"
    if isinstance(node, IndexAccess):
        return f"{to_source(node.object)}[{to_source(node.index)}]"
    if isinstance(node, FunctionCall):
        arguments = ", ".join(to_source(arg) for arg in node.arguments)
        if node.namespace is not None:
            return f"{to_source(node.namespace)}.{node.name}({arguments})"
        return f"{node.name}({arguments})"
    if isinstance(node, ListLiteral):
        return "[" + ", ".join(to_source(elem) for elem in node.elements) + "]"
    raise ValueError(f"{type(node).__name__} has no source form")


def _literal_source(value: Any) -> str:
    value_type = type_of(value)
    if value_type is ValueType.BOOL:
        return "true" if value else "false"
    if value_type is ValueType.NUMBER and math.isfinite(value):
        text = format(Decimal(format_number(value)), "f")
        return f"(-{text[1:]})" if text.startswith("-") else text
    if value_type is ValueType.STRING:
        if "'" not in value:
            return f"'{value}'"
        if '"' not in value:
            return f'"{value}"'
    raise ValueError(f"literal {value!r} has no source form")


def parse(source: str) -> ASTNode:
    """Parse an expression string into an AST.

    Raises:
        LexerError: If the source contains an unterminated string or an
            unknown character
        ParseError: If the token stream does not match the grammar
    """
    return Parser(source).parse()


__all__ = [
    "ASTNode",
    "BinaryOp",
    "EachLiteral",
    "FieldAccess",
    "FunctionCall",
    "IndexAccess",
    "LexerError",
    "ListLiteral",
    "Literal",
    "ParseError",
    "Parser",
    "UnaryOp",
    "Variable",
    "parse",
    "to_source",
]
