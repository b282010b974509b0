"""Pytest plugin with example-group macros for MVC web application tests.

The `pytest_macros` package turns one-line group-level declarations such
as `it.should_find_and_assign('items')` into ordinary pytest tests that
stub model collaborators, fire the action under test once per example
and assert on what it did.

Key features:
- macro expansion into collected test functions at class creation;
- a shared request memoised per example and inherited by nested groups;
- convenience wrappers creating autospecced collaborator doubles;
- an explicit macro registry extensible through entry point plugins.
"""

from pytest_macros.core import MacroRegistry, get_registry, it
from pytest_macros.extensions import Macro, Plugin
from pytest_macros.plugin import Example, ExampleGroup, before, trigger
from pytest_macros.rendering import Renderer

__all__ = (
    'Example',
    'ExampleGroup',
    'Macro',
    'MacroRegistry',
    'Plugin',
    'Renderer',
    'before',
    'get_registry',
    'it',
    'trigger',
)
