"""Macro registry: the explicit table of known macros.

The registry maps macro names to declarative `Macro` definitions. It is
populated once (builtin macros, then entry point plugins, then any
`register` calls made by the test suite) and consulted by name whenever
a group declares an invocation or gets expanded.
"""

from difflib import get_close_matches
from functools import cache, partial
from typing import TYPE_CHECKING, Any

from pytest_macros.builtins import BUILTINS
from pytest_macros.errors import ErrorContext, MacroDefinitionError
from pytest_macros.extensions import Macro
from pytest_macros.models import OptionsModel
from pytest_macros.settings import MacroSettings

from .loader import MacroTableMixin

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

if TYPE_CHECKING:
    from pytest_macros.extensions import MacroExpander, TargetKind
    from pytest_macros.schema import ExpectationSet, MacroInvocation


class MacroRegistry(MacroTableMixin):
    """Registry of macros available to example groups.

    The registry is stateful. Registration happens up front, before
    groups are defined; lookups afterwards are plain dictionary reads.
    """

    def __init__(self, strict: bool = False, auto_load: bool = True) -> None:
        """Initialize the registry.

        During initialization, the registry:
        - resets internal state;
        - registers all builtin macros;
        - optionally loads plugin-provided macros.

        Args:
            strict: Whether to raise errors on plugin loading failures
                and macro shadowing instead of emitting warnings.
            auto_load: Whether to load entry point plugins immediately.
        """
        self.reset(strict=strict, auto_load=auto_load)

    def reset(self, strict: bool = False, auto_load: bool = True) -> None:
        """Drop all registrations and register builtins again.

        Args:
            strict: Whether to raise errors on plugin loading failures
                and macro shadowing instead of emitting warnings.
            auto_load: Whether to load entry point plugins immediately.
        """
        self.strict_mode = strict

        self.clear_plugins()

        for macro in BUILTINS:
            self.add_macro(macro)

        if auto_load:
            self.load_plugins()

    def set_strict_mode(self, strict: bool, auto_load: bool = True) -> None:
        """Switch strictness, reloading plugins under the new policy.

        Unlike `reset`, macros registered by the test suite (for example
        from a `conftest.py` imported before pytest is configured) are
        kept; they are added back after builtins and plugins.

        Args:
            strict: Whether to raise errors on plugin loading failures
                and macro shadowing instead of emitting warnings.
            auto_load: Whether to load entry point plugins again.
        """
        registered = self.macros

        self.reset(strict=strict, auto_load=auto_load)

        for macro in registered.values():
            if self.macros.get(macro.name) is not macro:
                self.add_macro(macro)

    def register(self, name: str, expander: 'MacroExpander', *,  # noqa: PLR0913
                 options: type[OptionsModel] = OptionsModel,
                 target: 'TargetKind' = 'symbol',
                 title: str | None = None,
                 description: str | None = None) -> Macro:
        """Register a macro from its expander.

        Args:
            name: Macro name.
            expander: Callable turning an invocation into expectation sets.
            options: Model describing the recognized options.
            target: Target kind of the macro.
            title: Short human-readable title.
            description: Longer description.

        Returns:
            The registered macro definition.

        Raises:
            PluginError: If the name is taken and strict mode is on.
        """
        macro = Macro(
            name=name,
            expander=expander,
            options=options,
            target=target,
            title=title,
            description=description,
        )

        self.add_macro(macro)

        return macro

    def macro(self, name: str, **fields: Any) -> 'Callable[[MacroExpander], MacroExpander]':  # noqa: ANN401
        """Decorator form of `register`.

        Args:
            name: Macro name.
            **fields: Remaining `register` keyword arguments.

        Returns:
            Decorator registering the wrapped expander and returning it unchanged.
        """
        def decorator(expander: 'MacroExpander') -> 'MacroExpander':
            self.register(name, expander, **fields)
            return expander

        return decorator

    def get(self, name: str) -> Macro:
        """Look up a macro by name.

        Args:
            name: Macro name.

        Returns:
            The macro definition.

        Raises:
            MacroDefinitionError: If no macro is registered under the name.
        """
        if macro := self.macros.get(name):
            return macro

        message = f'Unknown macro {name!r}'
        if matches := get_close_matches(name, self.macros, n=3):
            message += f', did you mean {', '.join(map(repr, matches))}?'

        raise MacroDefinitionError(message, context=ErrorContext(macro=name))

    def invoke(self, name: str, target: Any = None, /, **options: Any) -> 'MacroInvocation':  # noqa: ANN401
        """Validate a declaration and build an invocation.

        Args:
            name: Macro name.
            target: Target symbol or value.
            **options: Macro options.

        Returns:
            Immutable macro invocation.

        Raises:
            MacroDefinitionError: On unknown macro or invalid arguments.
        """
        return self.get(name).invoke(target, **options)

    def expand(self, invocation: 'MacroInvocation') -> tuple['ExpectationSet', ...]:
        """Expand a single invocation.

        Args:
            invocation: Invocation declared by a group.

        Returns:
            Expectation sets in declaration order.
        """
        return self.get(invocation.macro).expand(invocation)

    def expand_all(self, invocations: 'Iterable[MacroInvocation]') -> tuple['ExpectationSet', ...]:
        """Expand invocations in declaration order and concatenate the results."""
        return tuple(
            expectations
            for invocation in invocations
            for expectations in self.expand(invocation)
        )


class MacroNamespace:
    """Attribute-style access to registry macros.

    `it.should_find('items', limit=2)` is `registry.invoke('should_find',
    'items', limit=2)`. Attribute names are looked up in the registry
    table; nothing is synthesized.
    """

    def __init__(self, registry: 'Callable[[], MacroRegistry]') -> None:
        """Initialize the namespace.

        Args:
            registry: Factory returning the registry to invoke macros on.
        """
        self._registry = registry

    def __getattr__(self, name: str) -> 'Callable[..., MacroInvocation]':
        """Return an invoker for the named macro."""
        if name.startswith('_'):
            raise AttributeError(name)

        registry = self._registry()
        registry.get(name)

        return partial(registry.invoke, name)

    def __dir__(self) -> list[str]:
        """List registered macro names."""
        return sorted(self._registry().macros)


@cache
def get_registry() -> MacroRegistry:
    """Return the process-wide default registry.

    The registry is created on first use, reading strictness from the
    environment, and reused by every group afterwards.

    Returns:
        Registry with builtin and plugin macros.
    """
    settings = MacroSettings()

    return MacroRegistry(strict=settings.strict)


#: Namespace over the default registry.
it = MacroNamespace(get_registry)
