"""Built-in controller macros.

Controller macros arm call expectations on the collaborators registered
for a symbol (`before` phase) and check what the action assigned once
the shared request has fired (`after` phase). Composite macros are plain
concatenations of the simple ones.

Conventional resource actions map to simple macros through the
`RESOURCE_ACTIONS` table used by `should_perform`.
"""

# ruff: noqa: S101

from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from pytest_macros.errors import AssertionMismatch
from pytest_macros.extensions import Macro
from pytest_macros.models import OptionsModel
from pytest_macros.schema import Assertion, Expectation, ExpectationSet

if TYPE_CHECKING:
    from collections.abc import Sequence

if TYPE_CHECKING:
    from pytest_macros.collaborators import Collaborator
    from pytest_macros.plugin.example import Example
    from pytest_macros.schema import MacroInvocation

#: Conventional resource action.
type ResourceAction = Literal['index', 'show', 'new', 'create', 'edit', 'update', 'destroy']

#: Options of `should_find` restricting the expected `find_all` call.
CRITERIA = ('limit', 'offset', 'order', 'conditions')


class FindOptions(OptionsModel):
    """Options of `should_find`."""

    limit: int | None = Field(
        default=None,
        ge=0,
        title='Limit',
        description='Expected `limit` criterion of `find_all`.',
    )

    offset: int | None = Field(
        default=None,
        ge=0,
        title='Offset',
        description='Expected `offset` criterion of `find_all`.',
    )

    order: str | None = Field(
        default=None,
        title='Order',
        description='Expected `order` criterion of `find_all`.',
    )

    conditions: Any = Field(
        default=None,
        title='Conditions',
        description=(
            'Expected `conditions` criterion of `find_all`. '
            'May be deferred: a callable receiving the running example.'
        ),
    )

    id_param: str = Field(
        default='id',
        title='Identifier parameter',
        description='Request parameter passed to `find_one` for a single record.',
    )


class ParamsOptions(OptionsModel):
    """Options of macros passing request parameters to the model."""

    params_key: str | None = Field(
        default=None,
        title='Parameters key',
        description='Request parameter holding the attributes, the target symbol if omitted.',
    )


class PerformOptions(FindOptions, ParamsOptions):
    """Options of `should_perform`."""

    action: ResourceAction = Field(
        title='Resource action',
        description='Conventional action whose macros to expand.',
    )


def _finder_operation(collaborator: 'Collaborator') -> str:
    """Operation `should_find` expects on a collaborator."""
    assert collaborator.kind in ('collection', 'record'), (
        f'{collaborator.symbol!r} is registered as a new record, not found by a finder'
    )

    return collaborator.operation


def _params_value(example: 'Example', invocation: 'MacroInvocation') -> Any:  # noqa: ANN401
    """Submitted attributes the model is expected to receive."""
    key = invocation.options.get('params_key') or invocation.target

    return example.params.get(key)


def _expect_find(example: 'Example', invocation: 'MacroInvocation') -> None:
    symbol = invocation.target
    collaborator = example.collaborator(symbol, macro=invocation.macro)

    operation = _finder_operation(collaborator)
    if operation == 'find_all':
        args, kwargs = (), {
            key: value
            for key, value in invocation.options.items()
            if key in CRITERIA
        }
    else:
        id_param = invocation.options.get('id_param', 'id')
        args, kwargs = (example.params.get(id_param),), {}

    example.expect(Expectation.arm(
        collaborator.finder,
        macro=invocation.macro,
        symbol=symbol,
        operation=operation,
        args=args,
        kwargs=kwargs,
    ))


def _check_assigned(example: 'Example', invocation: 'MacroInvocation') -> None:
    symbol = invocation.target
    collaborator = example.collaborator(symbol, macro=invocation.macro)

    assigns = example.assigns
    if symbol not in assigns:
        raise AssertionMismatch(
            f'Expected {symbol!r} to be assigned, but it was not',
            context=invocation.error_context(example, details={
                'assigned': sorted(assigns),
            }),
        )

    if assigns[symbol] != collaborator.value:
        raise AssertionMismatch(
            f'Expected {symbol!r} to be assigned the stubbed {collaborator.kind}',
            context=invocation.error_context(example, details={
                'expected': collaborator.value,
                'actual': assigns[symbol],
            }),
        )


def _expect_initialize(example: 'Example', invocation: 'MacroInvocation') -> None:
    symbol = invocation.target
    collaborator = example.collaborator(symbol, macro=invocation.macro)

    assert collaborator.kind == 'new', (
        f'{symbol!r} is registered as a {collaborator.kind}, not a new record'
    )

    example.expect(Expectation.arm(
        collaborator.finder,
        macro=invocation.macro,
        symbol=symbol,
        operation='initialize',
        args=(_params_value(example, invocation),),
        kwargs={},
    ))


def _record(example: 'Example', invocation: 'MacroInvocation') -> Any:  # noqa: ANN401
    """Single record registered for the invocation target."""
    collaborator = example.collaborator(invocation.target, macro=invocation.macro)

    assert collaborator.kind != 'collection', (
        f'{invocation.target!r} is registered as a collection, not a single record'
    )

    return collaborator.value


def _record_operation(example: 'Example', invocation: 'MacroInvocation', operation: str) -> Any:  # noqa: ANN401
    """Double of a record operation, patching the operation of a real record."""
    record = _record(example, invocation)

    assert hasattr(record, operation), (
        f'{invocation.target!r} is registered as a record without {operation!r}'
    )

    double = getattr(record, operation)
    if not isinstance(double, example.mocker.NonCallableMock):
        double = example.mocker.patch.object(record, operation, return_value=True)

    return double


def _expect_save(example: 'Example', invocation: 'MacroInvocation') -> None:
    double = _record_operation(example, invocation, 'save')
    double.return_value = True

    example.expect(Expectation.arm(
        double,
        macro=invocation.macro,
        symbol=invocation.target,
        operation='save',
        args=(),
        kwargs={},
    ))


def _expect_update(example: 'Example', invocation: 'MacroInvocation') -> None:
    double = _record_operation(example, invocation, 'update')

    example.expect(Expectation.arm(
        double,
        macro=invocation.macro,
        symbol=invocation.target,
        operation='update',
        args=(_params_value(example, invocation),),
        kwargs={},
    ))


def _expect_destroy(example: 'Example', invocation: 'MacroInvocation') -> None:
    double = _record_operation(example, invocation, 'destroy')

    example.expect(Expectation.arm(
        double,
        macro=invocation.macro,
        symbol=invocation.target,
        operation='destroy',
        args=(),
        kwargs={},
    ))


def _single(title: str, invocation: 'MacroInvocation', *assertions: Assertion) -> tuple[ExpectationSet, ...]:
    """Expectation set tuple of a simple macro."""
    return (ExpectationSet(
        title=f'{title} {invocation.target}',
        invocation=invocation,
        assertions=assertions,
    ),)


def _should_find(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _single('should find', invocation, Assertion(phase='before', runner=_expect_find))


def _should_assign(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _single('should assign', invocation, Assertion(phase='after', runner=_check_assigned))


def _should_find_and_assign(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return (
        *_should_find(invocation.derive(should_find.name, **invocation.options)),
        *_should_assign(invocation.derive(should_assign.name)),
    )


def _should_initialize(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _single('should initialize', invocation, Assertion(phase='before', runner=_expect_initialize))


def _should_save(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _single('should save', invocation, Assertion(phase='before', runner=_expect_save))


def _should_initialize_and_save(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return (
        *_should_initialize(invocation.derive(should_initialize.name, **invocation.options)),
        *_should_save(invocation.derive(should_save.name)),
    )


def _should_update(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _single('should update', invocation, Assertion(phase='before', runner=_expect_update))


def _should_destroy(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _single('should destroy', invocation, Assertion(phase='before', runner=_expect_destroy))


should_find = Macro(
    name='should_find',
    expander=_should_find,
    options=FindOptions,
    title='Find collaborator',
    description=(
        'Expects the action to call `find_all` with exactly the given '
        'criteria for a collection, or `find_one` with the identifier '
        'parameter for a single record.'
    ),
)

should_assign = Macro(
    name='should_assign',
    expander=_should_assign,
    title='Assign collaborator',
    description='Expects the action to assign the stubbed value under the target symbol.',
)

should_find_and_assign = Macro(
    name='should_find_and_assign',
    expander=_should_find_and_assign,
    options=FindOptions,
    title='Find and assign collaborator',
    description='Concatenation of `should_find` and `should_assign`.',
)

should_initialize = Macro(
    name='should_initialize',
    expander=_should_initialize,
    options=ParamsOptions,
    title='Initialize record',
    description='Expects the action to call `initialize` with the submitted parameters.',
)

should_save = Macro(
    name='should_save',
    expander=_should_save,
    title='Save record',
    description='Expects the action to call `save` once; the stubbed call returns true.',
)

should_initialize_and_save = Macro(
    name='should_initialize_and_save',
    expander=_should_initialize_and_save,
    options=ParamsOptions,
    title='Initialize and save record',
    description='Concatenation of `should_initialize` and `should_save`.',
)

should_update = Macro(
    name='should_update',
    expander=_should_update,
    options=ParamsOptions,
    title='Update record',
    description='Expects the action to call `update` with the submitted parameters.',
)

should_destroy = Macro(
    name='should_destroy',
    expander=_should_destroy,
    title='Destroy record',
    description='Expects the action to call `destroy` once.',
)

#: Simple macros each conventional resource action expands into.
RESOURCE_ACTIONS: dict[str, tuple[Macro, ...]] = {
    'index': (should_find, should_assign),
    'show': (should_find, should_assign),
    'new': (should_initialize, should_assign),
    'create': (should_initialize, should_save),
    'edit': (should_find, should_assign),
    'update': (should_find, should_update),
    'destroy': (should_find, should_destroy),
}


def _should_perform(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    options = dict(invocation.options)
    action = options.pop('action')

    return tuple(
        expectations
        for macro in RESOURCE_ACTIONS[action]
        for expectations in macro.expand(invocation.derive(macro.name, **{
            key: value
            for key, value in options.items()
            if key in macro.options.model_fields
        }))
    )


should_perform = Macro(
    name='should_perform',
    expander=_should_perform,
    options=PerformOptions,
    title='Perform resource action',
    description=(
        'Expands into the simple macros of a conventional resource action '
        '(index, show, new, create, edit, update, destroy).'
    ),
)


def resource_actions() -> dict[str, list[str]]:
    """Describe the resource actions table.

    Returns:
        Mapping of action names to the names of the macros they expand into.
    """
    return {
        action: [macro.name for macro in macros]
        for action, macros in RESOURCE_ACTIONS.items()
    }


#: Symbol-targeted controller macros, in documentation order.
MACROS: tuple[Macro, ...] = (
    should_find,
    should_assign,
    should_find_and_assign,
    should_initialize,
    should_save,
    should_initialize_and_save,
    should_update,
    should_destroy,
    should_perform,
)
