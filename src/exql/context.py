"""Default context implementation.

DefaultContext keeps variables and functions in two dictionaries and is
configured with option callables at construction time:

    ctx = DefaultContext(
        with_builtin_library(),
        with_functions({"add": lambda args: args[0] + args[1]}),
        variables={"user": {"age": 25}},
    )

A DefaultContext is also what the built-in libraries use as namespace
values, so ``ctx.lookup_variable("string")`` returns a context whose
functions are the string library.
"""

from typing import Any, Callable, Mapping

from exql.types import Context, Function, Value
from exql.values import to_value

ContextOption = Callable[["DefaultContext"], None]


class DefaultContext(Context):
    """Dictionary-backed context.

    Host values are normalized on the way in (ints become floats, tuples
    become lists). Concurrent mutation of one instance is not supported.
    """

    def __init__(
        self,
        *options: ContextOption,
        variables: Mapping[str, Any] | None = None,
        functions: Mapping[str, Function] | None = None,
    ):
        self.variables: dict[str, Value] = {}
        self.functions: dict[str, Function] = {}

        for name, value in (variables or {}).items():
            self.set_variable(name, value)
        for name, function in (functions or {}).items():
            self.set_function(name, function)
        for option in options:
            option(self)

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = to_value(value)

    def set_function(self, name: str, function: Function) -> None:
        self.functions[name] = function

    def lookup_variable(self, name: str) -> Value:
        return self.variables.get(name)

    def lookup_function(self, name: str) -> Function | None:
        return self.functions.get(name)

    def __repr__(self) -> str:
        return (
            f"DefaultContext(variables={sorted(self.variables)}, "
            f"functions={len(self.functions)})"
        )


# -----------------------------------------------------------------------------
# Options
# -----------------------------------------------------------------------------


def with_functions(functions: Mapping[str, Function]) -> ContextOption:
    """Install every function of ``functions``."""

    def apply(ctx: DefaultContext) -> None:
        for name, function in functions.items():
            ctx.set_function(name, function)

    return apply


def with_variables(variables: Mapping[str, Any]) -> ContextOption:
    """Bind every entry of ``variables``."""

    def apply(ctx: DefaultContext) -> None:
        for name, value in variables.items():
            ctx.set_variable(name, value)

    return apply


def with_builtin_library() -> ContextOption:
    """Bind the built-in namespaces (string, list, map, ...) as variables."""
    from exql.lib import export_namespaces

    def apply(ctx: DefaultContext) -> None:
        for name, namespace in export_namespaces().items():
            ctx.set_variable(name, namespace)

    return apply
