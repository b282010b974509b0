"""Macro invocations and the expectation sets they expand into.

An invocation is what a group body declares (`it.should_find('items')`).
Expanding it yields one or more expectation sets; each set becomes one
generated example and is an ordered list of assertions bound to a
lifecycle phase relative to the shared request.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from pytest_macros.errors import ErrorContext
from pytest_macros.models import DescribedMixin, SchemaModel
from pytest_macros.names import MacroName  # noqa: TC001

if TYPE_CHECKING:
    from pytest_macros.plugin.example import Example

#: Lifecycle phase of an assertion. `before` assertions arm expectations
#: on collaborators prior to the shared request; `after` assertions check
#: outcomes once it has fired.
type Phase = Literal['before', 'after']

#: The runner receives the running example (`Example`) and the invocation
#: it was expanded from. It raises `AssertionError` on failure.
type AssertionRunner = Callable[..., None]


class MacroInvocation(SchemaModel):
    """A single macro call declared in a group body.

    Invocations are immutable. Their options are already validated
    against the macro's options schema and stored as a plain mapping of
    the values that were explicitly given.
    """

    macro: MacroName = Field(
        title='Macro name',
        description='Name of the invoked macro.',
    )

    target: Any = Field(
        default=None,
        title='Target',
        description=(
            'Symbol (or template name, location, association name) '
            'the macro is about.'
        ),
    )

    options: Mapping[str, Any] = Field(
        default_factory=dict,
        title='Options',
        description='Explicitly given, validated macro options.',
    )

    def derive(self, macro: str, **options: Any) -> 'MacroInvocation':  # noqa: ANN401
        """Build an invocation of another macro on the same target.

        Used by composite macros to delegate to their simple parts.

        Args:
            macro: Name of the simple macro.
            **options: Options for the simple macro.

        Returns:
            A new invocation.
        """
        return MacroInvocation(macro=macro, target=self.target, options=options)

    def describe(self) -> dict[str, Any]:
        """Return a plain mapping used in error snippets."""
        return {
            'macro': self.macro,
            'target': self.target,
            'options': dict(self.options),
        }

    def error_context(self, example: 'Example', **context: Any) -> ErrorContext:  # noqa: ANN401
        """Build the failure context of a check generated from this invocation.

        Args:
            example: Running example.
            **context: Extra context fields (`operation`, `details`).

        Returns:
            Error context naming the example, the macro and its target.
        """
        return ErrorContext(
            **example.error_context(),
            macro=self.macro,
            symbol=self.target if isinstance(self.target, str) else None,
            element=self.describe(),
            **context,
        )


class Assertion(SchemaModel):
    """An assertion bound to a lifecycle phase."""

    phase: Phase = Field(
        title='Lifecycle phase',
        description='Whether the assertion runs before or after the shared request.',
    )

    runner: AssertionRunner = Field(
        title='Assertion runner',
        description='Callable performing the check against a running example.',
    )


class ExpectationSet(DescribedMixin):
    """Ordered assertions generated from one invocation.

    Each expectation set becomes exactly one example on the group.
    """

    title: str = Field(  # type: ignore[assignment]
        title='Example title',
        description='Human-readable title, also used to name the test function.',
    )

    invocation: MacroInvocation = Field(
        title='Source invocation',
        description='Invocation this set was expanded from.',
    )

    assertions: tuple[Assertion, ...] = Field(
        default=(),
        title='Assertions',
        description='Assertions in declaration order.',
    )

    uses_trigger: bool = Field(
        default=True,
        title='Uses shared request',
        description=(
            'Whether the shared request fires between the `before` '
            'and `after` assertions.'
        ),
    )

    def phase(self, phase: Phase) -> tuple[Assertion, ...]:
        """Return the assertions of one phase, in declaration order."""
        return tuple(
            assertion
            for assertion in self.assertions
            if assertion.phase == phase
        )
