"""Built-in function libraries.

Each module owns one FunctionRegistry. A library is exposed to expressions
as a namespace value, a DefaultContext holding the library's functions,
so ``string.upper(name)`` looks up the variable ``string`` and calls its
``upper`` function.
"""

from typing import Any

from exql.context import DefaultContext, with_functions
from exql.functions import FunctionRegistry
from exql.lib import crypt as crypt_lib
from exql.lib import http as http_lib
from exql.lib import ip as ip_lib
from exql.lib import json as json_lib
from exql.lib import list as list_lib
from exql.lib import map as map_lib
from exql.lib import string as string_lib
from exql.lib import time as time_lib
from exql.lib import url as url_lib
from exql.lib import util as util_lib
from exql.lib.http import HttpMessage, from_request, from_response

LIBRARIES: dict[str, FunctionRegistry] = {
    module.registry.category.value: module.registry
    for module in (
        crypt_lib,
        http_lib,
        ip_lib,
        json_lib,
        list_lib,
        map_lib,
        string_lib,
        time_lib,
        url_lib,
        util_lib,
    )
}


def export_namespaces() -> dict[str, DefaultContext]:
    """Return a fresh namespace context per library, keyed by namespace name."""
    return {
        name: DefaultContext(with_functions(registry.export()))
        for name, registry in LIBRARIES.items()
    }


def export_documentation() -> dict[str, Any]:
    """Documentation for every library, keyed by namespace name."""
    return {name: registry.export_documentation() for name, registry in sorted(LIBRARIES.items())}


__all__ = [
    "LIBRARIES",
    "HttpMessage",
    "export_documentation",
    "export_namespaces",
    "from_request",
    "from_response",
]
