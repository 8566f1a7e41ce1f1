"""Lexer/tokenizer for EXQL.

Converts expression strings into a stream of tokens for the parser.

Token types:
- Literals: NUMBER, STRING, BOOLEAN
- Identifiers: IDENTIFIER (variable, field, namespace and function names)
- Keywords: and, or, not, in, true, false (lowercase, whole words only)
- Operators: comparison, arithmetic
- Punctuation: LPAREN, RPAREN, LBRACKET, RBRACKET, DOT, COMMA, QUESTION, COLON

Strings are taken verbatim between matching quotes; there are no escape
sequences. Positions are byte offsets into the UTF-8 encoded source.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

from exql.errors import LexerError


class TokenType(Enum):
    """Types of tokens in the expression language."""

    # Literals
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Comparison operators
    EQ = auto()          # == or =
    NEQ = auto()         # !=
    LT = auto()          # <
    LTE = auto()         # <=
    GT = auto()          # >
    GTE = auto()         # >=

    # Keyword operators
    AND = auto()         # and
    OR = auto()          # or
    NOT = auto()         # not
    IN = auto()          # in

    # Arithmetic operators
    PLUS = auto()        # +
    MINUS = auto()       # -
    MULTIPLY = auto()    # *
    DIVIDE = auto()      # /

    # Punctuation
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    LBRACKET = auto()    # [
    RBRACKET = auto()    # ]
    DOT = auto()         # .
    COMMA = auto()       # ,
    QUESTION = auto()    # ?
    COLON = auto()       # :

    # End of input
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    Attributes:
        type: The token type
        value: Decoded value (float for numbers, bool for booleans, the raw
            body for strings, the text otherwise)
        position: Byte offset of the token in the UTF-8 encoded source
        text: The exact source text of the token
    """

    type: TokenType
    value: str | float | bool | None
    position: int
    text: str = ""

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, pos={self.position})"


# Token patterns (order matters - longer matches first)
TOKEN_PATTERNS = [
    # Whitespace (skip)
    (r"[ \t\n\r]+", None),

    # Two-character operators (before single character)
    (r"==", TokenType.EQ),
    (r"!=", TokenType.NEQ),
    (r"<=", TokenType.LTE),
    (r">=", TokenType.GTE),

    # Single character operators
    (r"=", TokenType.EQ),
    (r"<", TokenType.LT),
    (r">", TokenType.GT),
    (r"\+", TokenType.PLUS),
    (r"-", TokenType.MINUS),
    (r"\*", TokenType.MULTIPLY),
    (r"/", TokenType.DIVIDE),

    # Punctuation
    (r"\(", TokenType.LPAREN),
    (r"\)", TokenType.RPAREN),
    (r"\[", TokenType.LBRACKET),
    (r"\]", TokenType.RBRACKET),
    (r"\.", TokenType.DOT),
    (r",", TokenType.COMMA),
    (r"\?", TokenType.QUESTION),
    (r":", TokenType.COLON),

    # Numbers (integer or decimal, no sign, no exponent)
    (r"[0-9]+(?:\.[0-9]+)?", TokenType.NUMBER),

    # Strings (single or double quoted, raw body)
    (r"'[^']*'", TokenType.STRING),
    (r'"[^"]*"', TokenType.STRING),

    # Keywords and identifiers; a keyword only matches a whole word
    (r"[A-Za-z_][A-Za-z0-9_]*", TokenType.IDENTIFIER),
]

# Keywords that map to specific token types
KEYWORDS = {
    "true": (TokenType.BOOLEAN, True),
    "false": (TokenType.BOOLEAN, False),
    "and": (TokenType.AND, "and"),
    "or": (TokenType.OR, "or"),
    "not": (TokenType.NOT, "not"),
    "in": (TokenType.IN, "in"),
}

_COMPILED_PATTERNS = [
    (re.compile(pattern), token_type) for pattern, token_type in TOKEN_PATTERNS
]


class Lexer:
    """Tokenizer for the expression language.

    Tokens are produced on demand by next_token(); iterating the lexer
    yields every token up to and including EOF.

    Usage:
        lexer = Lexer("user.age > 18 and user.active")
        for token in lexer:
            print(token)
    """

    def __init__(self, source: str):
        self.source = source
        self.position = 0
        self.offset = 0

    def __iter__(self) -> Iterator[Token]:
        """Iterate over all tokens in the source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break

    def next_token(self) -> Token:
        """Get the next token from the source.

        Raises:
            LexerError: On an unterminated string or an unknown character
        """
        while True:
            if self.position >= len(self.source):
                return Token(TokenType.EOF, None, self.offset, "")

            for pattern, token_type in _COMPILED_PATTERNS:
                match = pattern.match(self.source, self.position)
                if match:
                    break
            else:
                raise self._error()

            text = match.group()
            start = self.offset
            self.position = match.end()
            self.offset += len(text.encode("utf-8", errors="surrogatepass"))

            if token_type is None:
                continue

            return self._make_token(token_type, text, start)

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source and return list of tokens."""
        return list(self)

    def _make_token(self, token_type: TokenType, text: str, start: int) -> Token:
        if token_type == TokenType.NUMBER:
            return Token(token_type, float(text), start, text)

        if token_type == TokenType.STRING:
            return Token(token_type, text[1:-1], start, text)

        if token_type == TokenType.IDENTIFIER and text in KEYWORDS:
            keyword_type, keyword_value = KEYWORDS[text]
            return Token(keyword_type, keyword_value, start, text)

        return Token(token_type, text, start, text)

    def _error(self) -> LexerError:
        ch = self.source[self.position]
        if ch in "'\"":
            return LexerError.at("unterminated string", self.source, self.offset)
        return LexerError.at(f"unexpected character '{ch}'", self.source, self.offset)


def tokenize(source: str) -> list[Token]:
    """Tokenize ``source`` into a list ending with an EOF token."""
    return Lexer(source).tokenize()
