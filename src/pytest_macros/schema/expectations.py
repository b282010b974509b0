"""Call expectations armed on collaborator doubles.

An expectation is armed before the shared request fires and verified
after it. Only calls recorded after arming count, so calls made while
preparing an example never satisfy an expectation by accident.
"""

from typing import TYPE_CHECKING, Any, Literal
from unittest.mock import call

from pydantic import Field

from pytest_macros.errors import AssertionMismatch, ErrorContext, UnsatisfiedExpectation
from pytest_macros.models import SchemaModel
from pytest_macros.values import resolve

if TYPE_CHECKING:
    from typing import Self
    from unittest.mock import Mock

if TYPE_CHECKING:
    from pytest_macros.plugin.example import Example

#: Collaborator operations an expectation can be armed on.
type Operation = Literal[
    'find_all',
    'find_one',
    'initialize',
    'save',
    'update',
    'destroy',
]


class Expectation(SchemaModel):
    """An expectation that a collaborator operation is called.

    When `args` and `kwargs` are both `None` any arguments are accepted.
    Otherwise every counted call must match them exactly; deferred
    values are resolved against the running example at verification.
    """

    macro: str = Field(
        title='Macro name',
        description='Macro (or convenience wrapper) that armed the expectation.',
    )

    symbol: str = Field(
        title='Target symbol',
        description='Symbol of the collaborator the expectation is armed on.',
    )

    operation: Operation = Field(
        title='Operation',
        description='Name of the expected collaborator operation.',
    )

    double: Any = Field(
        title='Test double',
        description='Mock standing in for the operation.',
    )

    args: tuple[Any, ...] | None = Field(
        default=None,
        title='Expected positional arguments',
    )

    kwargs: dict[str, Any] | None = Field(
        default=None,
        title='Expected keyword arguments',
    )

    times: int = Field(
        default=1,
        ge=0,
        title='Expected number of calls',
    )

    baseline: int = Field(
        default=0,
        ge=0,
        title='Calls recorded before arming',
    )

    @classmethod
    def arm(cls, double: 'Mock', **fields: Any) -> 'Self':  # noqa: ANN401
        """Create an expectation counting calls from now on.

        Args:
            double: Mock standing in for the operation.
            **fields: Remaining expectation fields.

        Returns:
            Armed expectation.
        """
        return cls(double=double, baseline=len(double.call_args_list), **fields)

    @property
    def key(self) -> tuple[str, str]:
        """Key under which the expectation is armed on an example."""
        return self.symbol, self.operation

    def describe(self, example: 'Example') -> str:
        """Render the expected call for messages."""
        if self.args is None and self.kwargs is None:
            return f'{self.operation}(...)'

        return repr(self.expected_call(example)).replace('call', self.operation, 1)

    def expected_call(self, example: 'Example') -> Any:  # noqa: ANN401
        """Build the expected `unittest.mock.call` object.

        Args:
            example: Running example used to resolve deferred arguments.

        Returns:
            The expected call.
        """
        return call(
            *resolve(self.args or (), example),
            **resolve(self.kwargs or {}, example),
        )

    def verify(self, example: 'Example') -> None:
        """Verify the expectation against recorded calls.

        Args:
            example: Running example.

        Raises:
            UnsatisfiedExpectation: If the call count differs.
            AssertionMismatch: If a call was made with other arguments.
        """
        calls = list(self.double.call_args_list[self.baseline:])

        context = ErrorContext(
            **example.error_context(),
            macro=self.macro,
            symbol=self.symbol,
            operation=self.operation,
        )

        if len(calls) != self.times:
            raise UnsatisfiedExpectation(
                f'Expected {self.describe(example)} on {self.symbol!r} '
                f'to be called {self.times} time(s), but it was called {len(calls)} time(s)',
                context=ErrorContext(**context, details={
                    'expected': self.describe(example),
                    'calls': [repr(item) for item in calls],
                }),
            )

        if self.args is None and self.kwargs is None:
            return

        expected = self.expected_call(example)
        for actual in calls:
            if actual != expected:
                raise AssertionMismatch(
                    f'Unexpected arguments for {self.operation!r} on {self.symbol!r}',
                    context=ErrorContext(**context, details={
                        'expected': repr(expected),
                        'actual': repr(actual),
                    }),
                )
