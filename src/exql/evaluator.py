"""Evaluator for EXQL.

Walks the AST and computes the result against a Context that resolves
variables and functions. Namespace values (contexts bound as variables)
resolve qualified calls such as ``string.upper(name)``.
"""

import logging
import math
from typing import Any

from exql.errors import AccessError, DispatchError, EvaluationError, OperatorError
from exql.parser import (
    ASTNode,
    BinaryOp,
    EachLiteral,
    FieldAccess,
    FunctionCall,
    IndexAccess,
    ListLiteral,
    Literal,
    UnaryOp,
    Variable,
    parse,
)
from exql.types import EACH, Context
from exql.values import (
    ValueType,
    contains,
    equals,
    format_value,
    greater_equal,
    greater_than,
    less_equal,
    less_than,
    to_bool,
    to_number,
    type_of,
)

logger = logging.getLogger(__name__)


class Evaluator:
    """Evaluates expression AST against a context.

    Usage:
        ctx = DefaultContext(variables={"user": {"age": 25.0}})
        evaluator = Evaluator(ctx)
        result = evaluator.evaluate(parse("user.age > 18"))

    Args:
        context: Resolves variables and unqualified function names
        strict_functions: Raise DispatchError for unknown functions instead
            of evaluating the call to False
    """

    def __init__(self, context: Context, strict_functions: bool = False):
        self.context = context
        self.strict_functions = strict_functions

    def evaluate(self, node: ASTNode) -> Any:
        """Evaluate an AST node and return the result."""
        method_name = f"_eval_{type(node).__name__.lower()}"
        method = getattr(self, method_name, None)

        if method is None:
            raise EvaluationError(f"Unknown node type: {type(node).__name__}")

        return method(node)

    # -------------------------------------------------------------------------
    # Node type evaluators
    # -------------------------------------------------------------------------

    def _eval_literal(self, node: Literal) -> Any:
        """Evaluate a literal value."""
        return node.value

    def _eval_variable(self, node: Variable) -> Any:
        """Evaluate a variable; undefined names resolve to None."""
        return self.context.lookup_variable(node.name)

    def _eval_eachliteral(self, node: EachLiteral) -> Any:
        return EACH

    def _eval_listliteral(self, node: ListLiteral) -> list[Any]:
        """Evaluate a list literal, left to right."""
        return [self.evaluate(elem) for elem in node.elements]

    def _eval_fieldaccess(self, node: FieldAccess) -> Any:
        """Evaluate field access (a.b)."""
        obj = self.evaluate(node.object)
        return self._field(obj, node.field)

    def _eval_indexaccess(self, node: IndexAccess) -> Any:
        """Evaluate index access (a[b])."""
        obj = self.evaluate(node.object)
        index = self.evaluate(node.index)

        obj_type = type_of(obj)
        index_type = type_of(index)

        if obj_type is ValueType.MAP:
            if index_type is ValueType.STRING:
                return self._field(obj, index)
            raise AccessError(f"unsupported index type {index_type.value} for map")

        if obj_type is ValueType.LIST:
            if index_type is ValueType.NUMBER:
                number = float(index)
                if math.isfinite(number):
                    position = int(number)
                    if 0 <= position < len(obj):
                        return obj[position]
                raise AccessError(f"index {format_value(index)} is out of range")
            if index_type is ValueType.STRING:
                return self._field(obj, index)
            if index_type is ValueType.EACH:
                return obj
            raise AccessError(f"unsupported index type {index_type.value} for list")

        raise AccessError(f"cannot index {obj_type.value}")

    def _eval_binaryop(self, node: BinaryOp) -> Any:
        """Evaluate a binary operation.

        Both operands are always evaluated, left first.
        """
        left = self.evaluate(node.left)
        right = self.evaluate(node.right)
        op = node.operator

        # Logical operators
        if op == "and":
            return to_bool(left) and to_bool(right)
        if op == "or":
            return to_bool(left) or to_bool(right)

        # Comparison operators
        if op in ("=", "=="):
            return equals(left, right)
        if op == "!=":
            return not equals(left, right)
        if op == "<":
            return less_than(left, right)
        if op == "<=":
            return less_equal(left, right)
        if op == ">":
            return greater_than(left, right)
        if op == ">=":
            return greater_equal(left, right)

        # Membership operators
        if op == "in":
            return contains(right, left)
        if op == "not in":
            return not contains(right, left)

        # Arithmetic operators
        if op == "+":
            return to_number(left) + to_number(right)
        if op == "-":
            return to_number(left) - to_number(right)
        if op == "*":
            return to_number(left) * to_number(right)
        if op == "/":
            return self._divide(to_number(left), to_number(right))

        raise OperatorError(f"operator {op} not supported")

    def _eval_unaryop(self, node: UnaryOp) -> Any:
        """Evaluate a unary operation."""
        operand = self.evaluate(node.operand)

        if node.operator == "not":
            return not to_bool(operand)
        if node.operator == "-":
            return -to_number(operand)

        raise OperatorError(f"operator {node.operator} not supported")

    def _eval_functioncall(self, node: FunctionCall) -> Any:
        """Evaluate a function call, resolving through the namespace if present."""
        resolver = self.context
        if node.namespace is not None:
            namespace = self.evaluate(node.namespace)
            if not isinstance(namespace, Context):
                raise DispatchError(f"unexpected identifier {format_value(namespace)}")
            resolver = namespace

        function = resolver.lookup_function(node.name)
        if function is None:
            if self.strict_functions:
                raise DispatchError(f"function {node.name} not found")
            logger.debug("Function %s not found, evaluating to false", node.name)
            return False

        args = [self.evaluate(arg) for arg in node.arguments]
        return function(args)

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def _field(self, obj: Any, name: str) -> Any:
        """Field access with broadcast over lists."""
        if isinstance(obj, dict):
            return obj.get(name)
        if isinstance(obj, list):
            return [self._field(item, name) for item in obj]
        return None

    def _divide(self, left: float, right: float) -> float:
        """IEEE division: x/0 is +-inf, 0/0 is nan."""
        if right == 0:
            if left == 0 or math.isnan(left):
                return math.nan
            return math.copysign(math.inf, left) * math.copysign(1.0, right)
        return left / right


# -----------------------------------------------------------------------------
# Convenience functions
# -----------------------------------------------------------------------------


def evaluate(ast: ASTNode, context: Context, strict_functions: bool = False) -> Any:
    """Evaluate a parsed expression against a context.

    Args:
        ast: Tree returned by parse()
        context: Variable and function resolver
        strict_functions: Raise on unknown functions instead of returning False

    Returns:
        The resulting value

    Raises:
        EvaluationError: On access, dispatch or operator failures. Errors
            raised by bound functions propagate unchanged.
    """
    return Evaluator(context, strict_functions=strict_functions).evaluate(ast)


def eval_expression(source: str, context: Context, strict_functions: bool = False) -> Any:
    """Parse and evaluate an expression string.

    Example:
        ctx = DefaultContext(variables={"x": 10})
        eval_expression("(x + 5) * 2", ctx)
        # result = 30.0
    """
    return evaluate(parse(source), context, strict_functions=strict_functions)
