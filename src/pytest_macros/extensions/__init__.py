"""Declarative plugin definition.

A plugin groups macros contributed by a third-party package under a
namespace. The plugin model contains no execution logic; it is consumed
by the registry, which discovers plugins through the `pytest_macros`
entry point group and registers their macros.
"""

from pydantic import Field

from pytest_macros.models import SchemaModel
from pytest_macros.names import MacroName  # noqa: TC001

from .macros import Macro, MacroExpander, TargetKind

__all__ = (
    'Macro',
    'MacroExpander',
    'Plugin',
    'TargetKind',
)


class Plugin(SchemaModel):
    """Declarative container for macro extensions."""

    name: MacroName = Field(
        title='Plugin namespace',
        description=(
            'Logical namespace of the plugin. '
            'Used for identification and diagnostics.'
        ),
    )

    version: int = Field(
        default=1,
        title='Macro contract version',
        description=(
            'Version of the macro contract the plugin targets. '
            'This is not a semantic version of the plugin implementation.'
        ),
    )

    macros: list[Macro] = Field(
        default_factory=list,
        title='Macros',
        description='Macro definitions provided by the plugin.',
    )
