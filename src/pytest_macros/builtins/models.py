"""Built-in model macros.

Model macros check declarations of the group's `model` directly and
never fire the shared request. Association macros rely on the
`Reflective` contract; validation macros build a record through
`initialize` and run its validations.
"""

from typing import TYPE_CHECKING, Any

from pydantic import Field

from pytest_macros.collaborators import Reflective
from pytest_macros.errors import AssertionMismatch
from pytest_macros.extensions import Macro
from pytest_macros.models import OptionsModel
from pytest_macros.schema import Assertion, ExpectationSet

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

if TYPE_CHECKING:
    from pytest_macros.plugin.example import Example
    from pytest_macros.schema import MacroInvocation


class PresenceOptions(OptionsModel):
    """Options of `should_validate_presence_of`."""

    blank: Any = Field(
        default=None,
        title='Blank value',
        description='Value the attribute is initialized with.',
    )


def _model(example: 'Example', invocation: 'MacroInvocation') -> Any:  # noqa: ANN401
    """Model under test, failing the example if the group declares none."""
    if (model := example.model) is None:
        raise AssertionMismatch(
            'No model declared by the group or its enclosing groups',
            context=invocation.error_context(example),
        )

    return model


def _association_check(kind: str) -> 'Callable[[Example, MacroInvocation], None]':
    """Build a check that the model declares an association of a kind."""
    def check(example: 'Example', invocation: 'MacroInvocation') -> None:
        model = _model(example, invocation)

        if not isinstance(model, Reflective):
            raise AssertionMismatch(
                f'{model!r} can not reflect on its associations',
                context=invocation.error_context(example),
            )

        association = model.reflect_on_association(invocation.target)
        actual = association.macro if association is not None else None

        if actual != kind:
            raise AssertionMismatch(
                f'Expected {getattr(model, '__name__', model)} to declare {invocation.target!r} as {kind}',
                context=invocation.error_context(example, details={
                    'expected': kind,
                    'actual': actual,
                }),
            )

    return check


def _check_presence(example: 'Example', invocation: 'MacroInvocation') -> None:
    model = _model(example, invocation)
    attribute = invocation.target
    blank = invocation.options.get('blank')

    record = model.initialize({attribute: blank})

    if record.valid():
        raise AssertionMismatch(
            f'Expected a record with blank {attribute!r} to be invalid',
            context=invocation.error_context(example, details={'blank': blank}),
        )

    if not record.errors.get(attribute):
        raise AssertionMismatch(
            f'Expected an error on {attribute!r}',
            context=invocation.error_context(example, details={
                'errors': dict(record.errors),
            }),
        )


def _without_trigger(title: str, invocation: 'MacroInvocation',
                     runner: 'Callable[[Example, MacroInvocation], None]') -> tuple[ExpectationSet, ...]:
    """Expectation set tuple of a model check."""
    return (ExpectationSet(
        title=f'{title} {invocation.target}',
        invocation=invocation,
        assertions=(Assertion(phase='after', runner=runner),),
        uses_trigger=False,
    ),)


def _should_belong_to(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _without_trigger('should belong to', invocation, _association_check('belongs_to'))


def _should_have_many(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _without_trigger('should have many', invocation, _association_check('has_many'))


def _should_validate_presence_of(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _without_trigger('should validate presence of', invocation, _check_presence)


should_belong_to = Macro(
    name='should_belong_to',
    expander=_should_belong_to,
    title='Belongs to association',
    description='Expects the model to declare a `belongs_to` association under the name.',
)

should_have_many = Macro(
    name='should_have_many',
    expander=_should_have_many,
    title='Has many association',
    description='Expects the model to declare a `has_many` association under the name.',
)

should_validate_presence_of = Macro(
    name='should_validate_presence_of',
    expander=_should_validate_presence_of,
    options=PresenceOptions,
    title='Presence validation',
    description=(
        'Expects a record initialized with the attribute blank to be '
        'invalid and to report an error on it.'
    ),
)

#: Model macros, in documentation order.
MACROS: tuple[Macro, ...] = (
    should_belong_to,
    should_have_many,
    should_validate_presence_of,
)
