"""Expression CLI commands: eval, parse, tokens."""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any

import click
import yaml

from exql.config import ExqlConfig
from exql.context import DefaultContext, with_builtin_library, with_variables
from exql.errors import ExqlError
from exql.evaluator import eval_expression
from exql.lexer import tokenize
from exql.parser import parse, to_source
from exql.values import format_value, to_plain


def _fail(error: Exception):
    click.echo(click.style(f"Error: {error}", fg="red"), err=True)
    raise SystemExit(1)


def _normalize(data: Any) -> Any:
    """YAML timestamps become ISO strings; everything else is left to to_value()."""
    if isinstance(data, (date, datetime)):
        return data.isoformat()
    if isinstance(data, list):
        return [_normalize(item) for item in data]
    if isinstance(data, dict):
        return {str(key): _normalize(item) for key, item in data.items()}
    return data


def _parse_var(item: str) -> tuple[str, Any]:
    name, sep, raw = item.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME=VALUE, got '{item}'", param_hint="--var")
    try:
        value = yaml.safe_load(raw) if raw else ""
    except yaml.YAMLError as e:
        raise click.BadParameter(f"invalid value for '{name}': {e}", param_hint="--var") from e
    return name, _normalize(value)


def _load_vars_file(path: Path) -> dict[str, Any]:
    """Load variables from a YAML or JSON file (JSON is valid YAML)."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise click.ClickException(f"Cannot read {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a mapping of variable names to values")
    return _normalize(data)


@click.command("eval")
@click.argument("expression")
@click.option(
    "--var",
    "var_items",
    multiple=True,
    metavar="NAME=VALUE",
    help="Bind a variable; VALUE is parsed as YAML (42, true, [1, 2], {a: 1}).",
)
@click.option(
    "--vars",
    "vars_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML or JSON file with a mapping of variables.",
)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Raise on unknown functions instead of evaluating them to false.",
)
@click.option(
    "--library/--no-library",
    default=None,
    help="Install the built-in namespaces (string, list, map, ...).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format for the result.",
)
@click.pass_obj
def eval_cmd(
    config: ExqlConfig | None,
    expression: str,
    var_items: tuple[str, ...],
    vars_file: Path | None,
    strict: bool | None,
    library: bool | None,
    output_format: str,
):
    """Evaluate EXPRESSION and print the result.

    Examples:

        exql eval "user.age >= 18" --var 'user={age: 21}'

        exql eval "string.upper(name)" --var name=ada --format json
    """
    config = config or ExqlConfig.from_env()
    strict = config.strict_functions if strict is None else strict
    library = config.builtin_library if library is None else library

    variables = _load_vars_file(vars_file) if vars_file else {}
    variables.update(_parse_var(item) for item in var_items)

    options = [with_builtin_library()] if library else []
    context = DefaultContext(*options, with_variables(variables))

    try:
        result = eval_expression(expression, context, strict_functions=strict)
    except ExqlError as e:
        _fail(e)

    if output_format == "json":
        click.echo(json.dumps(to_plain(result)))
    else:
        click.echo(format_value(result))


@click.command("parse")
@click.argument("expression")
def parse_cmd(expression: str):
    """Print the fully parenthesized form of EXPRESSION."""
    try:
        ast = parse(expression)
    except ExqlError as e:
        _fail(e)
    click.echo(to_source(ast))


@click.command("tokens")
@click.argument("expression")
def tokens_cmd(expression: str):
    """Print the tokens of EXPRESSION, one per line."""
    try:
        tokens = tokenize(expression)
    except ExqlError as e:
        _fail(e)
    for token in tokens:
        click.echo(f"{token.position:>4}  {token.type.name:<10} {token.text}")
