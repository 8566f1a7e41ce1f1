"""CLI configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class ExqlConfig:
    """Settings the command line tool starts from.

    Command line flags override these values.
    """

    log_level: str = "WARNING"
    strict_functions: bool = False
    builtin_library: bool = True

    @classmethod
    def from_env(cls) -> ExqlConfig:
        """Create config from environment variables.

        - EXQL_LOG_LEVEL: logging level name (default WARNING)
        - EXQL_STRICT_FUNCTIONS: unknown functions raise instead of evaluating to false
        - EXQL_BUILTIN_LIBRARY: install the built-in namespaces (default on)
        """
        return cls(
            log_level=os.environ.get("EXQL_LOG_LEVEL", "WARNING").upper(),
            strict_functions=_env_flag("EXQL_STRICT_FUNCTIONS", False),
            builtin_library=_env_flag("EXQL_BUILTIN_LIBRARY", True),
        )
