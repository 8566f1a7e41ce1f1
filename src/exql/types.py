"""Shared types for the EXQL core.

Value is any of: None, bool, float, str, list, dict[str, Value],
a Context (namespace) or the EACH sentinel. Plain Python objects are used
as carriers so host data can be bound without wrapping.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

Value = Any

# A host or library function: takes the ordered argument values, returns a value.
Function = Callable[[list[Value]], Value]


class Context(ABC):
    """Resolves variables and functions during evaluation.

    A Context bound as a variable is a namespace value: ``string.upper(x)``
    evaluates ``string`` to a Context and resolves ``upper`` inside it.
    """

    @abstractmethod
    def lookup_variable(self, name: str) -> Value:
        """Return the variable's value, or None when it is not defined."""

    @abstractmethod
    def lookup_function(self, name: str) -> Function | None:
        """Return the named function, or None when it is not defined."""


class Each:
    """Marker value meaning "every element" in an index position."""

    _instance: "Each | None" = None

    def __new__(cls) -> "Each":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EACH"


EACH = Each()
