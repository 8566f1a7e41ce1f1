"""Function registry for the EXQL built-in libraries.

Each library namespace (string, list, map, ...) owns one FunctionRegistry.
Functions are registered with metadata for documentation, and the
definitions are themselves callable with an argument list, so a registry
can be exported straight into a context.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from exql.errors import FunctionError
from exql.types import Value


class FunctionCategory(Enum):
    """Library namespaces, used to organize documentation."""

    CRYPT = "crypt"
    HTTP = "http"
    IP = "ip"
    JSON = "json"
    LIST = "list"
    MAP = "map"
    STRING = "string"
    TIME = "time"
    URL = "url"
    UTIL = "util"


@dataclass
class FunctionParameter:
    """Definition of a function parameter.

    Attributes:
        name: Parameter name
        type: Expected type ("string", "number", "list", "map", "any", etc.)
        description: Human-readable description
        required: Whether this parameter is required
        variadic: If True, this parameter accepts any number of values
    """

    name: str
    type: str
    description: str = ""
    required: bool = True
    variadic: bool = False


@dataclass
class FunctionDefinition:
    """Complete definition of a library function.

    Calling a definition with an argument list checks the argument count
    against the parameters, then calls the implementation positionally.

    Attributes:
        name: Function name as used in expressions
        description: Human-readable description
        category: Namespace the function belongs to
        parameters: List of parameter definitions
        return_type: Type of the return value
        examples: Example expressions using this function
        implementation: The Python callable
    """

    name: str
    description: str
    category: FunctionCategory
    parameters: list[FunctionParameter]
    return_type: str
    examples: list[str] = field(default_factory=list)
    implementation: Callable[..., Any] | None = None

    @property
    def min_args(self) -> int:
        return sum(1 for p in self.parameters if p.required and not p.variadic)

    @property
    def max_args(self) -> int | None:
        """Maximum argument count, or None when the last parameter is variadic."""
        if any(p.variadic for p in self.parameters):
            return None
        return len(self.parameters)

    def check_arity(self, count: int) -> None:
        """Raise FunctionError when ``count`` arguments do not fit the parameters."""
        low, high = self.min_args, self.max_args
        if high is None:
            if count < low:
                raise FunctionError(f"{self.name}: expected at least {low} argument(s)")
        elif not low <= count <= high:
            if low == high:
                raise FunctionError(f"{self.name}: expected {low} arguments")
            raise FunctionError(f"{self.name}: expected {low} to {high} arguments")

    def __call__(self, args: list[Value]) -> Value:
        if self.implementation is None:
            raise FunctionError(f"{self.name}: no implementation")
        self.check_arity(len(args))
        return self.implementation(*args)

    @property
    def signature(self) -> str:
        parts = []
        for p in self.parameters:
            if p.variadic:
                parts.append(f"...{p.name}")
            elif p.required:
                parts.append(p.name)
            else:
                parts.append(f"[{p.name}]")
        return f"{self.category.value}.{self.name}({', '.join(parts)}) -> {self.return_type}"

    def to_dict(self) -> dict[str, Any]:
        """Export for documentation."""
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "description": p.description,
                    "required": p.required,
                    "variadic": p.variadic,
                }
                for p in self.parameters
            ],
            "returnType": self.return_type,
            "examples": self.examples,
        }


def param(
    name: str,
    type: str = "any",
    description: str = "",
    required: bool = True,
    variadic: bool = False,
) -> FunctionParameter:
    """Shorthand for FunctionParameter."""
    return FunctionParameter(name, type, description, required, variadic)


def optional(name: str, type: str = "any", description: str = "") -> FunctionParameter:
    return FunctionParameter(name, type, description, required=False)


def variadic(name: str, type: str = "any", description: str = "") -> FunctionParameter:
    return FunctionParameter(name, type, description, required=False, variadic=True)


class FunctionRegistry:
    """Registry for the functions of one library namespace.

    Functions are registered with full metadata including:
    - Parameter definitions (which drive arity checking)
    - Documentation and examples
    - The actual implementation

    Example:
        registry = FunctionRegistry(FunctionCategory.STRING)

        @registry.function("upper", "Converts to upper case", [param("value", "string")], "string")
        def _upper(value):
            return to_string("upper", value).upper()

        registry.get("upper")(["abc"])  # Returns "ABC"
    """

    def __init__(self, category: FunctionCategory):
        self.category = category
        self._functions: dict[str, FunctionDefinition] = {}

    def register(self, func_def: FunctionDefinition) -> None:
        """Register a function definition.

        Args:
            func_def: Complete function definition with implementation
        """
        self._functions[func_def.name] = func_def

    def function(
        self,
        name: str,
        description: str,
        parameters: list[FunctionParameter],
        return_type: str = "any",
        examples: list[str] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of register(); the decorated callable is returned as-is."""

        def decorator(implementation: Callable[..., Any]) -> Callable[..., Any]:
            self.register(
                FunctionDefinition(
                    name=name,
                    description=description,
                    category=self.category,
                    parameters=parameters,
                    return_type=return_type,
                    examples=examples or [],
                    implementation=implementation,
                )
            )
            return implementation

        return decorator

    def alias(self, name: str, target: str) -> None:
        """Register ``name`` as another name for the ``target`` function."""
        original = self.get(target)
        self.register(
            FunctionDefinition(
                name=name,
                description=f"Alias of {target}. {original.description}",
                category=original.category,
                parameters=original.parameters,
                return_type=original.return_type,
                examples=[],
                implementation=original.implementation,
            )
        )

    def get(self, name: str) -> FunctionDefinition:
        """Get a function definition by name.

        Raises:
            ValueError: If function is not registered
        """
        if name not in self._functions:
            raise ValueError(f"Unknown function: {self.category.value}.{name}")
        return self._functions[name]

    def is_registered(self, name: str) -> bool:
        """Check if a function is registered."""
        return name in self._functions

    def call(self, name: str, *args: Value) -> Value:
        """Call a registered function with positional arguments."""
        return self.get(name)(list(args))

    def list_all(self) -> list[FunctionDefinition]:
        """List all registered functions, sorted by name."""
        return [self._functions[name] for name in sorted(self._functions)]

    def export(self) -> dict[str, FunctionDefinition]:
        """Export a name -> function mapping for a context."""
        return dict(self._functions)

    def export_documentation(self) -> dict[str, Any]:
        """Export full registry for documentation."""
        return {
            "namespace": self.category.value,
            "functions": {f.name: f.to_dict() for f in self.list_all()},
        }

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions
