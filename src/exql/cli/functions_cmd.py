"""Library documentation command."""

import json

import click
import yaml

from exql.lib import LIBRARIES, export_documentation


@click.command()
@click.argument("namespace", required=False)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "yaml"]),
    default="text",
    help="Output format.",
)
def functions(namespace: str | None, output_format: str):
    """List the built-in library functions, optionally for one NAMESPACE."""
    if namespace is not None and namespace not in LIBRARIES:
        click.echo(
            click.style(
                f"Error: unknown namespace '{namespace}'. "
                f"Expected one of: {', '.join(sorted(LIBRARIES))}.",
                fg="red",
            ),
            err=True,
        )
        raise SystemExit(1)

    if output_format != "text":
        docs = export_documentation()
        if namespace is not None:
            docs = {namespace: docs[namespace]}
        if output_format == "json":
            click.echo(json.dumps(docs, indent=2))
        else:
            click.echo(yaml.safe_dump(docs, sort_keys=False), nl=False)
        return

    names = [namespace] if namespace else sorted(LIBRARIES)
    for name in names:
        registry = LIBRARIES[name]
        click.echo(click.style(f"{name} ({len(registry)} functions)", bold=True))
        for definition in registry.list_all():
            click.echo(f"  {definition.signature}")
            click.echo(f"      {definition.description}")
        click.echo()
