"""Macro registry and plugin loading.

This package defines the registration side of the library: the explicit
table mapping macro names to definitions, discovery of third-party
macro plugins, and the `it` namespace bound to the default registry.
"""

from .registry import MacroNamespace, MacroRegistry, get_registry, it

__all__ = (
    'MacroNamespace',
    'MacroRegistry',
    'get_registry',
    'it',
)
