"""Declarative macro definitions.

A macro is a named, parameterized recipe that turns a one-line
declaration in a group body into one or more generated examples. The
definition is purely declarative: it holds the expander callable and the
schema of recognized options, and validates invocations against them.
"""

from collections.abc import Callable, Sequence
from typing import Any, Literal

from pydantic import Field, ValidationError

from pytest_macros.errors import ErrorContext, MacroDefinitionError
from pytest_macros.models import DescribedMixin, OptionsModel
from pytest_macros.names import SYMBOL_PATTERN, MacroName  # noqa: TC001
from pytest_macros.schema import ExpectationSet, MacroInvocation

#: The expander receives a validated invocation and returns the
#: expectation sets it stands for, in declaration order.
type MacroExpander = Callable[[MacroInvocation], Sequence[ExpectationSet]]

#: How a macro treats its positional target:
#: - `symbol`: required, must be an identifier naming a collaborator;
#: - `value`: required, any value (template name, location, status);
#: - `none`: must not be given.
type TargetKind = Literal['symbol', 'value', 'none']


class Macro(DescribedMixin):
    """Declarative macro definition.

    Calling a macro (directly or through the `it` namespace) produces a
    `MacroInvocation`; expanding an invocation produces the expectation
    sets that become examples on the enclosing group.
    """

    name: MacroName = Field(
        title='Macro name',
        description='Name under which the macro is registered and invoked.',
    )

    expander: MacroExpander = Field(
        title='Expander',
        description='Callable turning an invocation into expectation sets.',
    )

    options: type[OptionsModel] = Field(
        default=OptionsModel,
        title='Options schema',
        description='Model describing the recognized keyword options.',
    )

    target: TargetKind = Field(
        default='symbol',
        title='Target kind',
        description='Whether the macro takes a symbol, an arbitrary value or nothing.',
    )

    def __call__(self, target: Any = None, /, **options: Any) -> MacroInvocation:  # noqa: ANN401
        """Shortcut for `invoke`."""
        return self.invoke(target, **options)

    def invoke(self, target: Any = None, /, **options: Any) -> MacroInvocation:  # noqa: ANN401
        """Validate a declaration and build an invocation.

        Args:
            target: Target symbol or value.
            **options: Keyword options recognized by the macro.

        Returns:
            An immutable invocation holding the explicitly given options.

        Raises:
            MacroDefinitionError: If the target or options are invalid.
        """
        self.check_target(target)

        try:
            values = self.options.model_validate(options)
        except ValidationError as error:
            raise MacroDefinitionError.from_pydantic_error(
                error,
                macro=self.name,
                symbol=target if isinstance(target, str) else None,
                options=options,
            ) from error

        return MacroInvocation(
            macro=self.name,
            target=target,
            options=values.model_dump(exclude_unset=True),
        )

    def check_target(self, target: Any) -> None:  # noqa: ANN401
        """Validate the positional target against the target kind.

        Args:
            target: Target symbol or value.

        Raises:
            MacroDefinitionError: If the target does not fit.
        """
        context = ErrorContext(macro=self.name, element={'target': target})

        if self.target == 'none':
            if target is not None:
                raise MacroDefinitionError('Macro does not take a target', context=context)
            return

        if target is None:
            raise MacroDefinitionError('Macro requires a target', context=context)

        if self.target == 'symbol' and (
            not isinstance(target, str) or not SYMBOL_PATTERN.match(target)
        ):
            raise MacroDefinitionError(
                f'Target {target!r} is not a valid symbol',
                context=context,
            )

    def expand(self, invocation: MacroInvocation) -> tuple[ExpectationSet, ...]:
        """Expand an invocation into expectation sets.

        Args:
            invocation: Invocation of this macro.

        Returns:
            Expectation sets in declaration order.

        Raises:
            MacroDefinitionError: If the expander returns anything but
                a sequence of expectation sets.
        """
        expanded = self.expander(invocation)

        if not isinstance(expanded, Sequence) or not all(
            isinstance(expectations, ExpectationSet) for expectations in expanded
        ):
            raise MacroDefinitionError(
                'Macro expander must return a sequence of expectation sets',
                context=ErrorContext(
                    macro=self.name,
                    element={'target': invocation.target},
                    details={'returned': type(expanded).__name__},
                ),
            )

        return tuple(expanded)
