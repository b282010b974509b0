"""Per-example runtime state.

An `Example` is created fresh for every test requesting the `example`
fixture. It owns the collaborator table, the armed call expectations,
the renderer stand-in, request parameters and the memo of the shared
request, and offers the convenience wrappers creating mock collaborators.
"""

from contextlib import contextmanager
from itertools import count
from typing import TYPE_CHECKING, Any

from pytest_macros.collaborators import Collaborator, Record
from pytest_macros.errors import (
    ErrorContext,
    MacroDefinitionError,
    MacroRuntimeError,
    MissingCollaborator,
    MissingTrigger,
)
from pytest_macros.logs import get_logger
from pytest_macros.rendering import Renderer
from pytest_macros.schema import Expectation

from .groups import resolve_hooks, resolve_model, resolve_trigger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from typing import Self

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from pytest_macros.collaborators import CollaboratorKind

logger = get_logger(__name__)


class Example:
    """Runtime context of a single example.

    Nothing here survives the example: doubles are undone by `mocker`
    and the shared-request memo is reset on entry and on exit.
    """

    __test__ = False

    def __init__(self, mocker: 'MockerFixture', *,
                 group: type | None = None,
                 name: str | None = None) -> None:
        """Initialize the example context.

        Args:
            mocker: `pytest-mock` fixture creating and undoing doubles.
            group: Group class of the running test, if any.
            name: Name of the running test.
        """
        self.mocker = mocker
        self.group = group
        self.name = name

        self.params: dict[str, Any] = {}
        self.renderer = Renderer()

        self.collaborators: dict[str, Collaborator] = {}
        self.expectations: dict[tuple[str, str], Expectation] = {}
        self.verified: list[Expectation] = []

        self.captured: dict[str, Any] = {}
        self.response: Any = None

        self._triggered = False
        self._ids = count(1)

    @property
    def triggered(self) -> bool:
        """Whether the shared request has fired in this example."""
        return self._triggered

    @property
    def assigns(self) -> dict[str, Any]:
        """Values captured by the action under test.

        Template contexts recorded by the renderer, overridden by values
        captured explicitly or returned as a mapping by the trigger.
        """
        return {
            **self.renderer.assigns,
            **self.captured,
        }

    @property
    def model(self) -> Any:  # noqa: ANN401
        """Model under test declared by the group."""
        return resolve_model(self.group)

    def assign(self, name: str, value: Any) -> None:  # noqa: ANN401
        """Capture a value produced by the action under test."""
        self.captured[name] = value

    def error_context(self) -> ErrorContext:
        """Location of this example for error messages."""
        return ErrorContext(
            group=self.group.__qualname__ if self.group else None,
            example=self.name,
        )

    def reset(self) -> None:
        """Reset the shared-request memo."""
        self._triggered = False
        self.response = None

    @contextmanager
    def running(self) -> 'Iterator[Self]':
        """Scope of the example.

        Resets the memo, runs the setup hooks of the group chain and
        guarantees the memo is reset again on every exit path.

        Yields:
            This example.
        """
        self.reset()
        try:
            for hook in resolve_hooks(self.group):
                self.run_callable(
                    lambda hook=hook: hook(self),
                    context=self.error_context(),
                )
            yield self
        finally:
            self.reset()

    def run_callable[T](self, executor: 'Callable[[], T]', *,
                        context: ErrorContext | None = None) -> T:
        """Execute a callable with unified error handling.

        Args:
            executor: Callable performing the actual work.
            context: Location used when wrapping errors.

        Returns:
            Result of the callable.

        Raises:
            AssertionError: Propagated as-is for pytest handling.
            MacroRuntimeError: Wrapped runtime exception with context.
        """
        try:
            return executor()

        except AssertionError:
            raise

        except MacroRuntimeError:
            raise

        except Exception as base:
            raise MacroRuntimeError.from_exception(base, context=context) from base

    def do_request(self) -> Any:  # noqa: ANN401
        """Fire the shared request at most once per example.

        Returns:
            Result of the trigger, memoised for the rest of the example.

        Raises:
            MissingTrigger: If no group in the chain declares a trigger.
        """
        if self._triggered:
            return self.response

        action = resolve_trigger(self.group)
        if action is None:
            raise MissingTrigger(
                'No trigger defined for the group or its enclosing groups',
                context=self.error_context(),
            )

        self._triggered = True

        logger.debug('trigger fired', **self.error_context())

        self.response = self.run_callable(
            lambda: action(self),
            context=self.error_context(),
        )

        if isinstance(self.response, dict):
            self.captured.update(self.response)

        return self.response

    def register(self, collaborator: Collaborator) -> Collaborator:
        """Register a collaborator under its symbol.

        A collaborator already registered for the symbol is replaced,
        together with every expectation armed for the symbol.

        Returns:
            The registered collaborator.
        """
        if collaborator.symbol in self.collaborators:
            logger.debug('collaborator replaced', symbol=collaborator.symbol, **self.error_context())
            self.expectations = {
                key: expectation
                for key, expectation in self.expectations.items()
                if key[0] != collaborator.symbol
            }

        self.collaborators[collaborator.symbol] = collaborator

        return collaborator

    def collaborator(self, symbol: str, *, macro: str | None = None) -> Collaborator:
        """Look up the collaborator registered for a symbol.

        Args:
            symbol: Target symbol.
            macro: Macro asking, for the failure message.

        Returns:
            Registered collaborator.

        Raises:
            MissingCollaborator: If nothing is registered for the symbol.
        """
        if collaborator := self.collaborators.get(symbol):
            return collaborator

        raise MissingCollaborator(
            f'No collaborator registered for {symbol!r}',
            context=ErrorContext(
                **self.error_context(),
                macro=macro,
                symbol=symbol,
                details={'registered': sorted(self.collaborators)},
            ),
        )

    def expect(self, expectation: Expectation) -> Expectation:
        """Arm a call expectation.

        An expectation armed for the same symbol and operation is
        replaced.

        Returns:
            The armed expectation.
        """
        self.expectations[expectation.key] = expectation

        logger.debug(
            'expectation armed',
            macro=expectation.macro,
            symbol=expectation.symbol,
            operation=expectation.operation,
        )

        return expectation

    def verify(self) -> None:
        """Verify all armed expectations not verified yet.

        Raises:
            UnsatisfiedExpectation: If an operation was not called as expected.
            AssertionMismatch: If it was called with other arguments.
        """
        while self.expectations:
            _, expectation = self.expectations.popitem()
            self.verified.append(expectation)
            expectation.verify(self)

    def mock_model(self, model: Any, /, **attrs: Any) -> Any:  # noqa: ANN401
        """Create a record double.

        The double implements the `Record` contract: `save`, `update`
        and `destroy` succeed, `valid` passes and `errors` is empty
        unless overridden through `attrs`.

        Args:
            model: Domain type the record belongs to.
            **attrs: Attribute readers of the record.

        Returns:
            Autospecced record double.
        """
        record = self.mocker.create_autospec(Record, instance=True)
        record.configure_mock(**{
            'id': next(self._ids),
            'errors': {},
            **attrs,
        })
        record.model = model

        record.save.return_value = True
        record.update.return_value = True
        record.destroy.return_value = True
        record.valid.return_value = not record.errors

        return record

    def stub_find_all(self, symbol: str, model: Any, records: 'Iterable[Any] | None' = None, *,  # noqa: ANN401
                      count: int = 1, expect: bool = True, **attrs: Any) -> list[Any]:  # noqa: ANN401
        """Stub `model.find_all` and register the collection for a symbol.

        Args:
            symbol: Target symbol, e.g. `items`.
            model: Domain type.
            records: Records to return; `count` fresh doubles if omitted.
            count: Number of doubles to create when `records` is omitted.
            expect: Whether to arm the expectation that `find_all` is called.
            **attrs: Attribute readers of created doubles.

        Returns:
            The stubbed collection.
        """
        if records is None:
            records = [self.mock_model(model, **attrs) for _ in range(count)]

        return self._stub(symbol, model, 'collection', list(records), expect=expect).value

    def stub_find_one(self, symbol: str, model: Any, record: Any = None, *,  # noqa: ANN401
                      expect: bool = True, **attrs: Any) -> Any:  # noqa: ANN401
        """Stub `model.find_one` and register the record for a symbol.

        Args:
            symbol: Target symbol, e.g. `item`.
            model: Domain type.
            record: Record to return; a fresh double if omitted.
            expect: Whether to arm the expectation that `find_one` is called.
            **attrs: Attribute readers of a created double.

        Returns:
            The stubbed record.
        """
        if record is None:
            record = self.mock_model(model, **attrs)

        return self._stub(symbol, model, 'record', record, expect=expect).value

    def stub_initialize(self, symbol: str, model: Any, record: Any = None, *,  # noqa: ANN401, PLR0913
                        save: bool = True, expect: bool = True, **attrs: Any) -> Any:  # noqa: ANN401
        """Stub `model.initialize` and register the new record for a symbol.

        Args:
            symbol: Target symbol, e.g. `item`.
            model: Domain type.
            record: Record to return; a fresh double if omitted.
            save: Value the record's `save` returns.
            expect: Whether to arm the expectation that `initialize` is called.
            **attrs: Attribute readers of a created double.

        Returns:
            The stubbed record.
        """
        if record is None:
            record = self.mock_model(model, **attrs)
            record.save.return_value = save

        return self._stub(symbol, model, 'new', record, expect=expect).value

    def _stub(self, symbol: str, model: Any, kind: 'CollaboratorKind',  # noqa: ANN401
              value: Any, *, expect: bool) -> Collaborator:  # noqa: ANN401
        """Patch a class-level operation and register the collaborator."""
        collaborator = Collaborator(
            symbol=symbol,
            model=model,
            kind=kind,
            value=value,
            finder=None,
        )

        operation = collaborator.operation
        if not hasattr(model, operation):
            raise MacroDefinitionError(
                f'{model!r} does not implement {operation!r}',
                context=ErrorContext(**self.error_context(), symbol=symbol, operation=operation),
            )

        finder = self.mocker.patch.object(model, operation, return_value=value)
        collaborator = self.register(collaborator.model_copy(update={'finder': finder}))

        if expect:
            self.expect(Expectation.arm(
                finder,
                macro=f'stub_{operation}',
                symbol=symbol,
                operation=operation,
            ))

        return collaborator
