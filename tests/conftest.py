"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING

import pytest

from pytest_macros.core import MacroRegistry
from pytest_macros.plugin import Example

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType

if TYPE_CHECKING:
    from pytest_macros.extensions import Plugin


@pytest.fixture
def registry() -> MacroRegistry:
    """Provide an isolated registry with builtin macros only.

    Entry point plugins are not loaded, and macros registered during
    a test do not leak into the default registry used by groups.
    """
    return MacroRegistry(strict=False, auto_load=False)


@pytest.fixture
def make_example(mocker: 'MockerFixture') -> 'Callable[..., Example]':
    """Provide a factory of example contexts not bound to the `example` fixture.

    Contexts created this way are not verified automatically after the
    test body, so tests may leave expectations unsatisfied on purpose.
    """
    def make(group: type | None = None, name: str = 'test_example') -> Example:
        return Example(mocker, group=group, name=name)

    return make


@pytest.fixture
def run_example(make_example: 'Callable[..., Example]') -> 'Callable[[type, str], Example]':
    """Provide a runner of generated examples outside of pytest collection.

    The runner builds a fresh context for the group, enters it (running
    setup hooks) and calls the generated test method.
    """
    def run(group: type, name: str, **params: 'Any') -> Example:
        context = make_example(group, name)
        context.params.update(params)

        with context.running():
            getattr(group, name)(group(), context)

        return context

    return run


@pytest.fixture
def shop(pytester: pytest.Pytester) -> None:
    """Copy the example shop application into the pytester directory."""
    pytester.copy_example('shop.py')


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory faking plugins found through entry points.

    Every object passed to the factory is returned by `load()` of one
    fake entry point in the `pytest_macros` group; with `raises`, every
    `load()` raises instead.
    """
    def patch(*plugins: 'Plugin | object', raises: type[Exception] | None = None) -> 'MockType':
        entrypoints = []
        for plugin in plugins:
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'pytest_macros'
            ep.name = 'tests'
            ep.value = 'tests.examples.plugins:example'
            ep.load.return_value = plugin
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
