"""EXQL: an embeddable expression language for filtering and querying data.

This package provides:
- Lexer: Tokenizes expression strings
- Parser: Produces an AST from tokens
- Evaluator: Evaluates an AST against a Context
- DefaultContext: Dictionary-backed context with the built-in libraries
"""

from exql.context import (
    ContextOption,
    DefaultContext,
    with_builtin_library,
    with_functions,
    with_variables,
)
from exql.errors import (
    AccessError,
    CoercionError,
    DispatchError,
    EvaluationError,
    ExqlError,
    FunctionError,
    LexerError,
    OperatorError,
    ParseError,
)
from exql.evaluator import Evaluator, eval_expression, evaluate
from exql.functions import (
    FunctionCategory,
    FunctionDefinition,
    FunctionParameter,
    FunctionRegistry,
)
from exql.lexer import Lexer, Token, TokenType, tokenize
from exql.parser import (
    ASTNode,
    BinaryOp,
    EachLiteral,
    FieldAccess,
    FunctionCall,
    IndexAccess,
    ListLiteral,
    Literal,
    Parser,
    UnaryOp,
    Variable,
    parse,
    to_source,
)
from exql.types import EACH, Context, Each, Function, Value
from exql.values import ValueType, format_value, to_plain, to_value, type_of

__version__ = "0.1.0"

__all__ = [
    # Context
    "Context",
    "ContextOption",
    "DefaultContext",
    "with_builtin_library",
    "with_functions",
    "with_variables",
    # Errors
    "AccessError",
    "CoercionError",
    "DispatchError",
    "EvaluationError",
    "ExqlError",
    "FunctionError",
    "LexerError",
    "OperatorError",
    "ParseError",
    # Evaluator
    "Evaluator",
    "eval_expression",
    "evaluate",
    # Functions
    "FunctionCategory",
    "FunctionDefinition",
    "FunctionParameter",
    "FunctionRegistry",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    # Parser
    "ASTNode",
    "BinaryOp",
    "EachLiteral",
    "FieldAccess",
    "FunctionCall",
    "IndexAccess",
    "ListLiteral",
    "Literal",
    "Parser",
    "UnaryOp",
    "Variable",
    "parse",
    "to_source",
    # Values
    "EACH",
    "Each",
    "Function",
    "Value",
    "ValueType",
    "format_value",
    "to_plain",
    "to_value",
    "type_of",
]
