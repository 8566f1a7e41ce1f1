"""Property-based tests for the EXQL core.

Tests cover:
- Lexer: any whitespace-separated token sequence lexes back to the same
  tokens, with byte offset positions
- Canonical form: rendering a parsed canonical form reproduces it
- Evaluation: an AST and the re-parse of its canonical form evaluate to the
  same value (or fail with the same error) in the same context
"""

import math

from hypothesis import given, settings
from hypothesis import strategies as st

from exql import (
    BinaryOp,
    DefaultContext,
    ExqlError,
    FieldAccess,
    FunctionCall,
    IndexAccess,
    ListLiteral,
    Literal,
    Token,
    TokenType,
    UnaryOp,
    Variable,
    evaluate,
    parse,
    to_source,
    tokenize,
    with_builtin_library,
)
from exql.lexer import KEYWORDS

VARIABLES = {
    "a": 2,
    "b": "x",
    "items": [1, 2, 3],
    "user": {"name": "ada", "tags": ["x", "y"]},
    "missing": None,
}

BINARY_OPERATORS = [
    "or", "and", "in", "not in", "=", "==", "!=",
    "<", "<=", ">", ">=", "+", "-", "*", "/",
]

FUNCTION_NAMES = ["len", "upper", "contains", "nope"]

PUNCTUATION = [
    (TokenType.EQ, "=="),
    (TokenType.EQ, "="),
    (TokenType.NEQ, "!="),
    (TokenType.LT, "<"),
    (TokenType.LTE, "<="),
    (TokenType.GT, ">"),
    (TokenType.GTE, ">="),
    (TokenType.PLUS, "+"),
    (TokenType.MINUS, "-"),
    (TokenType.MULTIPLY, "*"),
    (TokenType.DIVIDE, "/"),
    (TokenType.LPAREN, "("),
    (TokenType.RPAREN, ")"),
    (TokenType.LBRACKET, "["),
    (TokenType.RBRACKET, "]"),
    (TokenType.DOT, "."),
    (TokenType.COMMA, ","),
    (TokenType.QUESTION, "?"),
    (TokenType.COLON, ":"),
]


def context():
    return DefaultContext(with_builtin_library(), variables=VARIABLES)


def outcome(node, ctx):
    """The value of ``node``, or the type and message of the error it raises."""
    try:
        return "value", evaluate(node, ctx)
    except ExqlError as e:
        return "error", type(e), str(e)


def same(left, right):
    """Equality that also matches nan with nan and keeps bools apart from numbers."""
    if type(left) is not type(right):
        return False
    if isinstance(left, float) and math.isnan(left):
        return math.isnan(right)
    if isinstance(left, (list, tuple)):
        return len(left) == len(right) and all(same(a, b) for a, b in zip(left, right))
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(same(left[k], right[k]) for k in left)
    return left == right


# =============================================================================
# Strategies
# =============================================================================

identifiers = st.from_regex(r"[a-z_][a-z0-9_]{0,5}", fullmatch=True).filter(
    lambda name: name not in KEYWORDS
)

# x + 0.0 turns -0.0 into 0.0, which is the only literal the grammar reads back
numbers = st.one_of(
    st.integers(min_value=-1000, max_value=1000).map(float),
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
).map(lambda x: x + 0.0)

strings = st.text(max_size=8).filter(lambda s: not ("'" in s and '"' in s))

leaves = st.one_of(
    st.builds(Literal, st.booleans()),
    st.builds(Literal, numbers),
    st.builds(Literal, strings),
    st.builds(Variable, st.sampled_from(sorted(VARIABLES) + ["string", "nothing"])),
)


def _compound(children):
    arguments = st.lists(children, max_size=3).map(tuple)
    return st.one_of(
        st.builds(BinaryOp, st.sampled_from(BINARY_OPERATORS), children, children),
        st.builds(UnaryOp, st.sampled_from(["not", "-"]), children),
        st.builds(FieldAccess, children, identifiers),
        st.builds(IndexAccess, children, children),
        st.builds(
            FunctionCall,
            st.sampled_from(FUNCTION_NAMES),
            arguments,
            st.one_of(st.none(), st.just(Variable("string"))),
        ),
        st.builds(ListLiteral, arguments),
    )


expressions = st.recursive(leaves, _compound, max_leaves=12)

word_tokens = st.one_of(
    st.from_regex(r"[0-9]{1,4}(\.[0-9]{1,3})?", fullmatch=True).map(
        lambda text: (TokenType.NUMBER, float(text), text)
    ),
    st.text(max_size=6).filter(lambda s: "'" not in s).map(
        lambda body: (TokenType.STRING, body, f"'{body}'")
    ),
    st.text(max_size=6).filter(lambda s: '"' not in s).map(
        lambda body: (TokenType.STRING, body, f'"{body}"')
    ),
    identifiers.map(lambda name: (TokenType.IDENTIFIER, name, name)),
    st.sampled_from(sorted(KEYWORDS)).map(
        lambda word: (KEYWORDS[word][0], KEYWORDS[word][1], word)
    ),
    st.sampled_from(PUNCTUATION).map(lambda pair: (pair[0], pair[1], pair[1])),
)

separators = st.sampled_from([" ", "  ", "\t", "\n", "\r\n"])


# =============================================================================
# Lexer Tests
# =============================================================================


class TestLexerProperties:
    @settings(deadline=None)
    @given(st.lists(st.tuples(word_tokens, separators), max_size=12))
    def test_token_sequence_round_trips(self, pieces):
        source = ""
        expected = []
        for (token_type, value, text), separator in pieces:
            offset = len(source.encode("utf-8"))
            expected.append(Token(token_type, value, offset, text))
            source += text + separator
        expected.append(Token(TokenType.EOF, None, len(source.encode("utf-8")), ""))

        assert tokenize(source) == expected

    @settings(deadline=None)
    @given(expressions)
    def test_canonical_form_relexes_identically(self, node):
        canonical = to_source(node)
        reparsed = to_source(parse(canonical))

        assert [(t.type, t.value) for t in tokenize(reparsed)] == [
            (t.type, t.value) for t in tokenize(canonical)
        ]


# =============================================================================
# Parser Stability Tests
# =============================================================================


class TestParserProperties:
    @settings(deadline=None)
    @given(expressions)
    def test_canonical_form_is_stable(self, node):
        canonical = to_source(node)

        assert to_source(parse(canonical)) == canonical

    @settings(deadline=None)
    @given(expressions)
    def test_reparse_evaluates_identically(self, node):
        ctx = context()

        expected = outcome(node, ctx)
        actual = outcome(parse(to_source(node)), ctx)

        assert expected[0] == actual[0]
        if expected[0] == "value":
            assert same(expected[1], actual[1])
        else:
            assert expected[1:] == actual[1:]
