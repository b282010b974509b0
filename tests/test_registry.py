"""Tests for macro registration and plugin loading."""

from typing import TYPE_CHECKING

import pytest

from pytest_macros.builtins import BUILTINS
from pytest_macros.core import MacroNamespace, MacroRegistry
from pytest_macros.errors import MacroDefinitionError, PluginError, PluginWarning
from pytest_macros.extensions import Macro, Plugin
from pytest_macros.schema import ExpectationSet, MacroInvocation
from tests.examples.plugins import example, should_paginate

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_mock import MockType


def _noop(invocation: MacroInvocation) -> tuple[ExpectationSet, ...]:
    return (ExpectationSet(title=f'noop {invocation.target}', invocation=invocation),)


def test_builtins_registered(registry: MacroRegistry) -> None:
    """Verify every builtin macro is registered under its name."""
    assert set(registry.macros) == {macro.name for macro in BUILTINS}
    assert {
        'should_find',
        'should_assign',
        'should_find_and_assign',
        'should_initialize_and_save',
        'should_perform',
        'should_render_template',
        'should_redirect_to',
        'should_belong_to',
        'should_validate_presence_of',
    } <= set(registry.macros)


def test_register_macro(registry: MacroRegistry) -> None:
    """Verify explicit registration and expansion of a custom macro."""
    macro = registry.register('noop', _noop, title='Does nothing')

    assert isinstance(macro, Macro)
    assert registry.get('noop') is macro

    invocation = registry.invoke('noop', 'items')

    assert invocation == MacroInvocation(macro='noop', target='items')
    assert [item.title for item in registry.expand(invocation)] == ['noop items']


def test_register_macro_decorator(registry: MacroRegistry) -> None:
    """Verify the decorator form returns the expander unchanged."""
    expander = registry.macro('noop', target='value')(_noop)

    assert expander is _noop
    assert registry.get('noop').target == 'value'


def test_expand_all_keeps_declaration_order(registry: MacroRegistry) -> None:
    """Verify expansion concatenates invocations in declaration order."""
    registry.register('noop', _noop)

    titles = [
        item.title
        for item in registry.expand_all((
            registry.invoke('noop', 'first'),
            registry.invoke('should_assign', 'items'),
            registry.invoke('noop', 'second'),
        ))
    ]

    assert titles == ['noop first', 'should assign items', 'noop second']


def test_shadowing_warns(registry: MacroRegistry) -> None:
    """Verify shadowing an existing macro warns and replaces it."""
    with pytest.warns(PluginWarning, match=r"^Macro 'should_find' from .+ is shadowing"):
        macro = registry.register('should_find', _noop)

    assert registry.get('should_find') is macro


def test_shadowing_fails_on_strict() -> None:
    """Verify shadowing an existing macro fails in strict mode."""
    registry = MacroRegistry(strict=True, auto_load=False)

    with pytest.raises(PluginError, match=r"^Macro 'should_find' from .+ is shadowing"):
        registry.register('should_find', _noop)


@pytest.mark.parametrize('name, expect_message', (
    pytest.param('should_fnd', r"^Unknown macro 'should_fnd', did you mean 'should_find'", id='typo'),
    pytest.param('unrelated', r"(?m)^Unknown macro 'unrelated'$", id='no suggestions'),
))
def test_unknown_macro(registry: MacroRegistry, name: str, expect_message: str) -> None:
    """Verify unknown macro names fail with suggestions."""
    with pytest.raises(MacroDefinitionError, match=expect_message):
        registry.get(name)


def test_namespace(registry: MacroRegistry) -> None:
    """Verify attribute access on a namespace invokes registry macros."""
    namespace = MacroNamespace(lambda: registry)

    invocation = namespace.should_find('items', limit=2)

    assert invocation == MacroInvocation(macro='should_find', target='items', options={'limit': 2})
    assert 'should_find' in dir(namespace)

    with pytest.raises(MacroDefinitionError, match=r"^Unknown macro 'should_fly'"):
        namespace.should_fly  # noqa: B018

    with pytest.raises(AttributeError):
        namespace._private  # noqa: B018, SLF001


def test_loading_plugin(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Verify macros of entry point plugins are registered."""
    patch_entrypoints(example)

    registry = MacroRegistry()

    assert registry.get('should_paginate') is should_paginate
    assert registry.invoke('should_paginate', 'items', per_page=5).options == {'per_page': 5}


def test_loading_with_empty_plugin(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Verify plugins without macros change nothing."""
    patch_entrypoints(Plugin(name='empty'))

    assert set(MacroRegistry().macros) == {macro.name for macro in BUILTINS}


def test_loading_skip_with_failed_entrypoint(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Verify skipping of plugins that fail during loading."""
    patch_entrypoints(None, raises=SyntaxError)

    with pytest.warns(PluginWarning, match=r'^Failed to load entrypoint'):
        MacroRegistry()


def test_loading_fail_with_failed_entrypoint(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Verify failing of plugins that fail during loading with strict mode."""
    patch_entrypoints(None, raises=SyntaxError)

    with pytest.raises(PluginError, match=r'^Failed to load entrypoint'):
        MacroRegistry(strict=True)


@pytest.mark.parametrize('strict', (
    pytest.param(False, id='relaxed'),
    pytest.param(True, id='strict'),
))
def test_loading_not_a_plugin(patch_entrypoints: 'Callable[..., MockType]', strict: bool) -> None:
    """Verify entry points loading foreign objects are rejected."""
    patch_entrypoints(object())

    message = r"^Loaded from entrypoint 'tests' object is not a plugin"
    if strict:
        with pytest.raises(PluginError, match=message):
            MacroRegistry(strict=True)
    else:
        with pytest.warns(PluginWarning, match=message):
            MacroRegistry()


def test_reset_drops_custom_macros(registry: MacroRegistry) -> None:
    """Verify reset restores builtins and applies strictness."""
    registry.register('noop', _noop)

    registry.reset(strict=True, auto_load=False)

    assert 'noop' not in registry.macros
    assert registry.strict_mode is True


def test_set_strict_mode_keeps_custom_macros(registry: MacroRegistry) -> None:
    """Verify switching strictness keeps registered macros and builtins."""
    macro = registry.register('noop', _noop)

    registry.set_strict_mode(True, auto_load=False)

    assert registry.strict_mode is True
    assert registry.get('noop') is macro
    assert {builtin.name for builtin in BUILTINS} <= set(registry.macros)


@pytest.mark.parametrize('returned', (
    pytest.param(None, id='nothing'),
    pytest.param(['noop'], id='not expectation sets'),
    pytest.param((item for item in ()), id='generator'),
))
def test_expander_output_checked(registry: MacroRegistry, returned: object) -> None:
    """Verify expanders returning anything but expectation sets are rejected."""
    registry.register('broken', lambda invocation: returned)

    with pytest.raises(MacroDefinitionError, match=r'^Macro expander must return a sequence of expectation sets'):
        registry.expand(registry.invoke('broken', 'items'))
