"""Example groups: macro expansion into pytest test functions.

An example group is a `Test*` class deriving from `ExampleGroup`. Its
body declares macro invocations in `macros`, an optional `@trigger`
(the shared request), optional `@before` setup hooks and, for model
tests, the `model` under test. Group classes may nest; nested groups
look up triggers, hooks and the model through their enclosing groups.

Expansion happens once, when the class is created: every expectation
set becomes a `test_*` function on the class, collected by pytest like a
hand-written one.
"""

from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar

from pytest_macros.core import get_registry
from pytest_macros.errors import AssertionMismatch, ErrorContext, ExpectationError, MacroDefinitionError
from pytest_macros.logs import get_logger
from pytest_macros.names import slugify

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

if TYPE_CHECKING:
    from pytest_macros.core import MacroRegistry
    from pytest_macros.schema import Assertion, ExpectationSet, MacroInvocation

    from .example import Example

#: Attribute linking a nested group to its lexically enclosing group.
LEXICAL_PARENT = '__macros_parent__'

logger = get_logger(__name__)


class Trigger:
    """The shared request of a group: the action under test."""

    __slots__ = ('func',)

    def __init__(self, func: 'Callable[[Example], Any]') -> None:
        """Wrap the action.

        Args:
            func: Callable receiving the running example.
        """
        self.func = func

    def __call__(self, example: 'Example') -> Any:  # noqa: ANN401
        """Run the action."""
        return self.func(example)

    def __repr__(self) -> str:
        """String represenatation."""
        return f'<Trigger {getattr(self.func, '__qualname__', self.func)!r}>'


class Hook:
    """A setup hook run before every example of a group."""

    __slots__ = ('func',)

    def __init__(self, func: 'Callable[[Example], None]') -> None:
        """Wrap the hook.

        Args:
            func: Callable receiving the running example.
        """
        self.func = func

    def __call__(self, example: 'Example') -> None:
        """Run the hook."""
        self.func(example)


def trigger(func: 'Callable[[Example], Any]') -> Trigger:
    """Declare the shared request of a group.

    Args:
        func: Callable performing the action under test. A mapping it
            returns is captured as assigns.

    Returns:
        Trigger to keep in the group body.
    """
    return Trigger(func)


def before(func: 'Callable[[Example], None]') -> Hook:
    """Declare a setup hook of a group.

    Args:
        func: Callable preparing the example (stubs, params).

    Returns:
        Hook to keep in the group body.
    """
    return Hook(func)


def lexical_chain(group: type | None) -> 'Iterator[type]':
    """Iterate a group and its enclosing groups, innermost first."""
    while group is not None:
        yield group
        group = group.__dict__.get(LEXICAL_PARENT)


def _declared[T](klass: type, kind: type[T]) -> list[T]:
    """Values of a given type declared directly in a class body."""
    return [
        value
        for value in vars(klass).values()
        if isinstance(value, kind)
    ]


def resolve_trigger(group: type | None) -> Trigger | None:
    """Find the trigger visible from a group.

    The group's own body wins, then its base classes, then the
    enclosing group and so on outwards.

    Args:
        group: Group class of the running example.

    Returns:
        The nearest trigger, or `None` if no group declares one.
    """
    for scope in lexical_chain(group):
        for klass in scope.__mro__:
            if triggers := _declared(klass, Trigger):
                return triggers[0]

    return None


def resolve_hooks(group: type | None) -> list[Hook]:
    """Collect setup hooks visible from a group.

    Returns:
        Hooks ordered outermost group first, base classes before
        subclasses, declaration order within a class body.
    """
    hooks: list[Hook] = []
    for scope in reversed(list(lexical_chain(group))):
        for klass in reversed(scope.__mro__):
            hooks.extend(
                hook
                for hook in _declared(klass, Hook)
                if hook not in hooks
            )

    return hooks


def resolve_model(group: type | None) -> Any:  # noqa: ANN401
    """Find the model under test declared by a group or its enclosing groups."""
    for scope in lexical_chain(group):
        if (model := getattr(scope, 'model', None)) is not None:
            return model

    return None


class ExamplePlan:
    """Runtime plan of one generated example.

    Runs the `before` assertions, fires the shared request, verifies
    armed call expectations and finally runs the `after` assertions.
    """

    __test__ = False

    def __init__(self, example: 'Example', expectations: 'ExpectationSet') -> None:
        """Initialize the plan.

        Args:
            example: Running example.
            expectations: Expectation set the example was generated from.
        """
        self.example = example
        self.expectations = expectations

    @property
    def invocation(self) -> 'MacroInvocation':
        """Invocation the example was generated from."""
        return self.expectations.invocation

    def run_assertion(self, assertion: 'Assertion') -> None:
        """Run a single assertion with macro-aware error reporting.

        Raises:
            ExpectationError: Propagated as-is for pytest handling.
            AssertionMismatch: A bare `AssertionError` raised by the runner,
                enriched with the macro context.
            MacroRuntimeError: Any other exception, wrapped.
        """
        context = self.invocation.error_context(self.example)

        try:
            self.example.run_callable(
                partial(assertion.runner, self.example, self.invocation),
                context=context,
            )

        except ExpectationError:
            raise

        except AssertionError as base:
            message = f'Expectation fail: {self.expectations.title}'
            if text := f'{base}':
                message += f' ({text})'
            raise AssertionMismatch(message, context=context) from base

    def run(self) -> None:
        """Run the example."""
        for assertion in self.expectations.phase('before'):
            self.run_assertion(assertion)

        if self.expectations.uses_trigger:
            self.example.do_request()

        self.example.verify()

        for assertion in self.expectations.phase('after'):
            self.run_assertion(assertion)


def _unique_name(group: type, title: str) -> str:
    """Pick a test function name not yet taken on the group."""
    base = f'test_{slugify(title) or 'example'}'

    name, index = base, 1
    while hasattr(group, name):
        index += 1
        name = f'{base}_{index}'

    return name


def make_example(group: type, name: str, expectations: 'ExpectationSet') -> 'Callable[..., None]':
    """Build the test function for an expectation set.

    Args:
        group: Group class the function is attached to.
        name: Function name.
        expectations: Expectation set to run.

    Returns:
        Test method requesting the `example` fixture.
    """
    def generated(self: object, example: 'Example') -> None:  # noqa: ARG001
        ExamplePlan(example, expectations).run()

    generated.__name__ = name
    generated.__qualname__ = f'{group.__qualname__}.{name}'
    generated.__doc__ = expectations.title
    generated.expectations = expectations  # type: ignore[attr-defined]

    return generated


def expand_group(group: type, invocations: 'Iterable[MacroInvocation]',
                 registry: 'MacroRegistry | None' = None) -> tuple[str, ...]:
    """Expand macro invocations into test functions on a group.

    Expansion is additive: existing attributes, hand-written tests and
    previously generated ones are never replaced; a clashing name gets
    a numeric suffix.

    Args:
        group: Group class.
        invocations: Invocations in declaration order.
        registry: Registry to expand with, the default one if omitted.

    Returns:
        Names of the generated functions, in order.
    """
    registry = registry or get_registry()

    names = []
    for expectations in registry.expand_all(invocations):
        name = _unique_name(group, expectations.title)
        setattr(group, name, make_example(group, name, expectations))
        names.append(name)

    logger.debug('group expanded', group=group.__qualname__, examples=names)

    return tuple(names)


def link_nested_groups(group: type) -> None:
    """Link example groups nested in a class body to it."""
    for value in vars(group).values():
        if (
            isinstance(value, type)
            and issubclass(value, ExampleGroup)
            and LEXICAL_PARENT not in value.__dict__
        ):
            setattr(value, LEXICAL_PARENT, group)


class ExampleGroup:
    """Base class of example groups.

    Subclasses declare:
        macros: Invocations to expand, e.g. `it.should_find('items')`.
        model: Domain type for model macros.
        registry: Registry to expand with, the default one if `None`.

    and, anywhere in the body, at most one `@trigger` and any number of
    `@before` hooks.
    """

    macros: ClassVar['Sequence[MacroInvocation]'] = ()
    model: ClassVar[Any] = None
    registry: ClassVar['MacroRegistry | None'] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:  # noqa: ANN401
        """Expand the subclass when it is created."""
        super().__init_subclass__(**kwargs)

        if len(_declared(cls, Trigger)) > 1:
            raise MacroDefinitionError(
                'A group may declare a single trigger',
                context=ErrorContext(group=cls.__qualname__),
            )

        link_nested_groups(cls)

        expand_group(cls, cls.__dict__.get('macros', ()), cls.registry)
