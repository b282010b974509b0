"""Pytest plugin integrating example-group macros.

This module integrates `pytest-macros` with pytest by:
- registering custom command-line options;
- configuring the default `MacroRegistry` and logging;
- providing the `example` fixture with a fresh per-example context;
- verifying armed call expectations after every test body.

Example groups themselves are plain `Test*` classes: their macros are
expanded when the class is created, so pytest collects the generated
examples like hand-written test methods.
"""

from typing import TYPE_CHECKING

import pytest

from pytest_macros.core import get_registry
from pytest_macros.logs import get_logger, setup_logging
from pytest_macros.settings import MacroSettings

from .example import Example
from .groups import ExampleGroup, before, trigger

if TYPE_CHECKING:
    from collections.abc import Generator, Iterator

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.fixtures import FixtureRequest
    from _pytest.python import Function
    from pytest_mock import MockerFixture

__all__ = (
    'Example',
    'ExampleGroup',
    'before',
    'trigger',
)

logger = get_logger(__name__)


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-macros.

    Args:
        parser: Pytest argument parser.
    """
    parser.addoption(
        '--macros-strict',
        action='store_true',
        dest='macros_strict',
        default=False,
        help=(
            'Enable strict macro registration. '
            'Macro shadowing and third-party plugin loading errors '
            'will cause test collection to fail.'
        ),
    )
    parser.addoption(
        '--macros-no-verify',
        action='store_true',
        dest='macros_no_verify',
        default=False,
        help=(
            'Do not verify armed call expectations after tests using '
            'the `example` fixture. Generated examples still verify '
            'their own expectations.'
        ),
    )


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-macros integration.

    This hook resolves settings, applies the log level and attaches the
    default registry to the pytest configuration object as
    `config.macro_registry`.

    Args:
        config: Pytest configuration object.
    """
    settings = MacroSettings()

    setup_logging(settings.log_level)

    registry = get_registry()

    strict = settings.strict or config.getoption('--macros-strict', default=False)
    if strict != registry.strict_mode:
        registry.set_strict_mode(strict)

    config.macro_registry = registry  # type: ignore[attr-defined]
    config.macro_verify = (  # type: ignore[attr-defined]
        settings.verify and not config.getoption('--macros-no-verify', default=False)
    )

    logger.debug('plugin configured', strict=strict, macros=len(registry.macros))


@pytest.fixture
def example(request: 'FixtureRequest', mocker: 'MockerFixture') -> 'Iterator[Example]':
    """Per-example macro context.

    Setup hooks of the requesting group run before the test body; the
    shared-request memo is reset on entry and on every exit path.

    Yields:
        Fresh `Example` bound to the requesting test.
    """
    context = Example(mocker, group=request.cls, name=request.node.name)

    with context.running():
        yield context


@pytest.hookimpl(wrapper=True)
def pytest_pyfunc_call(pyfuncitem: 'Function') -> 'Generator[None, object, object]':
    """Verify leftover call expectations after a passed test body.

    Args:
        pyfuncitem: Test function item being run.

    Returns:
        Result of the inner hook implementations.
    """
    result = yield

    context = pyfuncitem.funcargs.get('example')
    if isinstance(context, Example) and getattr(pyfuncitem.config, 'macro_verify', True):
        context.verify()

    return result
