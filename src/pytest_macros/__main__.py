"""CLI utilities for browsing registered macros.

Lists builtin and plugin macros, prints the resource actions table used
by `should_perform` and generates the JSON Schema of macro options.
"""

from pathlib import Path

from click import Path as PathParam
from click import echo, group, option

from pytest_macros.builtins.controllers import resource_actions
from pytest_macros.jsonschema import SchemaGenerator

OutputFilepath = PathParam(
    dir_okay=False,
    writable=True,
    path_type=Path,
)


@group(help='Command-line utilities for pytest-macros.')
def cli() -> None:
    """Root CLI group for pytest-macros tools."""
    return None


@cli.command(
    name='macros',
    help='List registered macros with their target kind and title.',
)
@option(
    '-v', '--verbose',
    is_flag=True,
    default=False,
    help='Print macro descriptions and recognized options.',
)
def list_macros(verbose: bool) -> None:
    """Print registered macros.

    Args:
        verbose: Whether to print descriptions and options.
    """
    registry = SchemaGenerator.get_registry()

    for name, macro in sorted(registry.macros.items()):
        echo(f'{name} ({macro.target}): {macro.title or ''}')
        if not verbose:
            continue

        if macro.description:
            echo(f'    {macro.description}')
        for field in macro.options.model_fields:
            echo(f'    --{field}')


@cli.command(
    name='actions',
    help='Print resource actions and the macros they expand into.',
)
def list_actions() -> None:
    """Print the resource actions table."""
    for action, macros in resource_actions().items():
        echo(f'{action}: {', '.join(macros)}')


@cli.command(
    name='schema',
    help='Print the JSON Schema of macro options or write it to a file.',
)
@option(
    '-o', '--output',
    type=OutputFilepath,
    default=None,
    help='Output path for the generated JSON Schema file.',
)
def print_schema(output: Path | None) -> None:
    """Generate the JSON Schema.

    Args:
        output: Output path, standard output if omitted.
    """
    if output is None:
        echo(SchemaGenerator.make_schema())
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open('wt') as stream:
        stream.write(SchemaGenerator.make_schema())
        stream.write('\n')


if __name__ == '__main__':
    cli()
