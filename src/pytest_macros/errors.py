"""Core exception hierarchy.

Two families of errors live here. `MacroError` and its subclasses are
problems of the test suite itself: broken plugins, invalid macro
declarations, triggers or hooks crashing. `ExpectationError` and its
subclasses are failed expectations of a single example; they derive
from `AssertionError`, so pytest reports them as ordinary failures.

Both render the same way: the message, where it happened (group,
example, macro, symbol, operation) and a YAML snippet of the offending
invocation with the observed values.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump

from pytest_macros.values import MAPPINGS, SCALARS, SEQUENCES, is_deferred

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint
    from typing import Self

if TYPE_CHECKING:
    from pydantic import ValidationError

#: Indentation of location lines; snippets are indented twice as deep.
FORMAT_INDENT = 4

#: Placeholders for values that can not be shown as is.
FORMAT_DEFERRED = '<deferred value>'
FORMAT_GROUP = '<unknown group>'


class ErrorContext(TypedDict, total=False):
    """Where a failure happened and what was observed.

    Every key is optional.
    """

    #: Qualified name of the example group.
    group: str | None
    #: Name of the running example.
    example: str | None

    #: Name of the macro that produced the failing check.
    macro: str | None
    #: Target symbol of the macro invocation.
    symbol: str | None
    #: Collaborator operation involved (`find_all`, `save`, ...).
    operation: str | None

    #: Underlying exception, if any.
    error: Exception | None

    #: Declarative element associated with the error (an invocation).
    element: Any
    #: Observed facts: expected and actual values, recorded calls.
    details: dict[str, Any] | None


def _printable(value: Any) -> Any:  # noqa: ANN401
    """Convert a value into something `yaml.dump` renders readably.

    Deferred callables become a placeholder; records, doubles and
    other opaque objects become their `repr`.
    """
    if value is None or isinstance(value, SCALARS):
        return value

    if isinstance(value, MAPPINGS):
        return {f'{key}': _printable(item) for key, item in value.items()}

    if isinstance(value, SEQUENCES):
        return [_printable(item) for item in value]

    if is_deferred(value):
        return FORMAT_DEFERRED

    return repr(value)


class ErrorFormatter:
    """Render an error message with its context."""

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Append location lines and a snippet to a message.

        Args:
            message: Human-readable error message.
            context: Location and observed values, if known.

        Returns:
            The message, unchanged without context.
        """
        if not context:
            return message

        lines = [
            message,
            *cls.location_lines(context),
            *cls.snippet_lines(context),
        ]

        return linesep.join(lines) + linesep

    @staticmethod
    def location_lines(context: ErrorContext) -> list[str]:
        """Lines naming the group, example and macro of a failure."""
        indent = ' ' * FORMAT_INDENT

        line = f'{indent}in group "{context.get('group') or FORMAT_GROUP}"'
        if example := context.get('example'):
            line += f', example "{example}"'
        lines = [line]

        if macro := context.get('macro'):
            line = f'{indent}from macro "{macro}"'
            if symbol := context.get('symbol'):
                line += f' on "{symbol}"'
            if operation := context.get('operation'):
                line += f', operation "{operation}"'
            lines.append(line)

        return lines

    @staticmethod
    def snippet_lines(context: ErrorContext) -> list[str]:
        """YAML lines of the invocation and the observed details.

        The two documents are separated by a `---` marker.
        """
        indent = ' ' * FORMAT_INDENT * 2

        documents = [
            value
            for value in (context.get('element'), context.get('details'))
            if value
        ]
        if not documents:
            return []

        lines = [f'{indent} ...']
        for number, document in enumerate(documents):
            if number:
                lines.append(f'{indent} ---')
            text = dump(_printable(document), indent=2, sort_keys=False)
            lines.extend(
                f'{indent}{line}'
                for line in text.splitlines()
                if line.strip()
            )

        return lines


class FormattedError(ErrorFormatter):
    """Message and context storage shared by both error families."""

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable description.
            context: Location and observed values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """Message with location and snippet."""
        return self.format(self.message, self.context)


class PluginWarning(UserWarning):
    """A plugin problem tolerated outside strict mode.

    Emitted when an entry point can not be loaded or a macro shadows
    another one.
    """


class MacroError(FormattedError, Exception):
    """Base of errors in the test suite definition, not in the code under test."""


class PluginError(MacroError):
    """A plugin problem raised in strict mode."""

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a plugin error.

        Args:
            message: Human-readable description.
            entrypoint: Entry point involved, if any.
        """
        self.entrypoint = entrypoint

        super().__init__(message)


class MacroDefinitionError(MacroError):
    """A macro declared incorrectly.

    Unknown names, targets not matching the macro's target kind and
    options rejected by its options model all surface while the group
    body executes, that is at collection time.
    """

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            macro: str,
                            symbol: str | None = None,
                            options: dict[str, Any] | None = None) -> 'Self':
        """Describe the first issue of an options validation failure.

        Args:
            error: Error raised by an options model.
            macro: Invoked macro.
            symbol: Target symbol of the invocation.
            options: Options as given.

        Returns:
            Definition error naming the rejected option.
        """
        context = ErrorContext(
            macro=macro,
            symbol=symbol,
            error=error,
            element={'options': options or {}},
        )

        issues = error.errors(include_url=False, include_input=False)
        if not issues:
            return cls('Invalid macro options', context=context)  # pragma: no cover

        message = issues[0]['msg']
        if location := '.'.join(f'{key}' for key in issues[0]['loc']):
            message += f': {location!r}'

        return cls(message, context=context)


class MacroRuntimeError(MacroError):
    """A trigger or setup hook raised something other than an assertion."""

    @classmethod
    def from_exception(cls, error: Exception, *,
                       context: ErrorContext | None = None) -> 'Self':
        """Wrap an exception, keeping it in the context.

        Args:
            error: Original exception.
            context: Location of the failure.

        Returns:
            Runtime error showing the original `repr`.
        """
        message = 'Runtime error'
        if text := f'{error!r}':
            message += f'{linesep}{' ' * FORMAT_INDENT}{text}'

        return cls(message, context=ErrorContext({**(context or {}), 'error': error}))


class ExpectationError(FormattedError, AssertionError):
    """Base of failed expectations, local to one example."""


class UnsatisfiedExpectation(ExpectationError):
    """An armed call expectation was not met the expected number of times."""


class AssertionMismatch(ExpectationError):
    """An observed value differs from the expected one."""


class MissingCollaborator(ExpectationError):
    """A macro referenced a symbol with no registered collaborator."""


class MissingTrigger(ExpectationError):
    """The action under test was requested but no group defines a trigger."""
