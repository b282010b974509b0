"""Built-in view macros.

View macros check what the action asked of the `Renderer` stand-in:
which template or partial was rendered, where the response redirected
and with which status. All of them run after the shared request.
"""

from typing import TYPE_CHECKING, Any

from pydantic import Field

from pytest_macros.errors import AssertionMismatch, ErrorContext, MacroDefinitionError
from pytest_macros.extensions import Macro
from pytest_macros.models import OptionsModel
from pytest_macros.schema import Assertion, ExpectationSet
from pytest_macros.values import is_deferred, resolve

if TYPE_CHECKING:
    from collections.abc import Sequence

if TYPE_CHECKING:
    from pytest_macros.plugin.example import Example
    from pytest_macros.schema import MacroInvocation


class RedirectOptions(OptionsModel):
    """Options of `should_redirect_to`."""

    status: int | None = Field(
        default=None,
        ge=300,
        le=399,
        title='Redirect status',
        description='Expected redirect status, any 3xx status if omitted.',
    )


def _mismatch(example: 'Example', invocation: 'MacroInvocation', message: str,
              expected: Any, actual: Any) -> AssertionMismatch:  # noqa: ANN401
    """Build a mismatch failure with expected and actual values."""
    return AssertionMismatch(message, context=invocation.error_context(example, details={
        'expected': expected,
        'actual': actual,
    }))


def _check_template(example: 'Example', invocation: 'MacroInvocation') -> None:
    if (actual := example.renderer.template) != invocation.target:
        raise _mismatch(
            example, invocation,
            f'Expected template {invocation.target!r} to be rendered',
            invocation.target,
            actual,
        )


def _check_partial(example: 'Example', invocation: 'MacroInvocation') -> None:
    if invocation.target not in (partials := example.renderer.partials):
        raise _mismatch(
            example, invocation,
            f'Expected partial {invocation.target!r} to be rendered',
            invocation.target,
            partials,
        )


def _check_redirect(example: 'Example', invocation: 'MacroInvocation') -> None:
    renderer = example.renderer
    location = resolve(invocation.target, example)

    if renderer.location != location:
        raise _mismatch(
            example, invocation,
            f'Expected a redirect to {location!r}',
            location,
            renderer.location,
        )

    status = invocation.options.get('status')
    if status is not None and renderer.status != status:
        raise _mismatch(example, invocation, 'Unexpected redirect status', status, renderer.status)

    if status is None and not 300 <= (renderer.status or 0) < 400:  # noqa: PLR2004
        raise _mismatch(example, invocation, 'Expected a redirect status', '3xx', renderer.status)


def _check_status(example: 'Example', invocation: 'MacroInvocation') -> None:
    if (actual := example.renderer.status) != invocation.target:
        raise _mismatch(
            example, invocation,
            f'Expected response status {invocation.target!r}',
            invocation.target,
            actual,
        )


def _after(title: str, invocation: 'MacroInvocation', runner: Any) -> tuple[ExpectationSet, ...]:  # noqa: ANN401
    """Expectation set tuple of a single after-request check."""
    return (ExpectationSet(
        title=title,
        invocation=invocation,
        assertions=(Assertion(phase='after', runner=runner),),
    ),)


def _should_render_template(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _after(f'should render template {invocation.target}', invocation, _check_template)


def _should_render_partial(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    return _after(f'should render partial {invocation.target}', invocation, _check_partial)


def _should_redirect_to(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    title = 'should redirect'
    if not is_deferred(invocation.target):
        title += f' to {invocation.target}'

    return _after(title, invocation, _check_redirect)


def _should_respond_with(invocation: 'MacroInvocation') -> 'Sequence[ExpectationSet]':
    if not isinstance(invocation.target, int) or isinstance(invocation.target, bool):
        raise MacroDefinitionError(
            f'Status {invocation.target!r} is not an integer',
            context=ErrorContext(macro=invocation.macro, element=invocation.describe()),
        )

    return _after(f'should respond with {invocation.target}', invocation, _check_status)


should_render_template = Macro(
    name='should_render_template',
    expander=_should_render_template,
    target='value',
    title='Render template',
    description='Expects the last rendered template to be the given one.',
)

should_render_partial = Macro(
    name='should_render_partial',
    expander=_should_render_partial,
    target='value',
    title='Render partial',
    description='Expects the given partial to be among the rendered ones.',
)

should_redirect_to = Macro(
    name='should_redirect_to',
    expander=_should_redirect_to,
    options=RedirectOptions,
    target='value',
    title='Redirect',
    description=(
        'Expects a redirect to the given location. The location may be '
        'deferred: a callable receiving the running example.'
    ),
)

should_respond_with = Macro(
    name='should_respond_with',
    expander=_should_respond_with,
    target='value',
    title='Respond with status',
    description='Expects the response status to be the given one.',
)

#: View macros, in documentation order.
MACROS: tuple[Macro, ...] = (
    should_render_template,
    should_render_partial,
    should_redirect_to,
    should_respond_with,
)
