"""Names primitive types and validation rules.

This module defines name patterns and strongly-typed aliases used to
validate macro names and target symbols.

Target symbols double as keys of the per-example collaborator table and
of captured assigns, and are embedded into generated test names, so they
are restricted to ASCII Python identifiers.
"""

from re import ASCII, sub
from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Base pattern for all identifiers.
_NAME_PATTERN = r'[a-zA-Z_][\w]*'

#: Compiled pattern for macro names and target symbols.
SYMBOL_PATTERN = regexp(
    rf'^(?P<name>{_NAME_PATTERN})$',
    flags=ASCII,
)


MacroName = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Macro name',
        description=(
            'Name under which a macro is registered and invoked, '
            'for example `should_find_and_assign`.'
        ),
        examples=[
            'should_find',
            'should_render_template',
        ],
    ),
]

Symbol = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Target symbol',
        description=(
            'Name of the collection or instance a macro is about. '
            'The symbol identifies the mock collaborator registered for '
            'an example and the key under which the action under test '
            'assigns its result.'
        ),
        examples=[
            'items',
            'item',
        ],
    ),
]


def slugify(value: object) -> str:
    """Turn an arbitrary value into a fragment of a test function name.

    Args:
        value: Value to embed (a symbol, template name, location).

    Returns:
        Lower-case identifier fragment, possibly empty.
    """
    return sub(r'[^0-9a-zA-Z]+', '_', f'{value}').strip('_').lower()
