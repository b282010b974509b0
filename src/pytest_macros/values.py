"""Deferred value resolution.

Macro invocations are declared at group definition time, when no
example (and so no request parameters, collaborators, or captured
assigns) exists yet. Anything an invocation needs from a concrete
example is therefore declared as a deferred value: a callable receiving
the running example and returning the real value.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from unittest.mock import NonCallableMock

if TYPE_CHECKING:
    from pytest_macros.plugin.example import Example

#: Runtime values are arbitrary objects: domain records, test doubles,
#: request parameters, rendered template names.
type RuntimeValue = Any

#: A deferred value is resolved against the running example right before
#: it is used. Nested sequences and mappings are resolved recursively.
type DeferredCallable[T] = Callable[['Example'], T]
type Deferred[T] = T | DeferredCallable[T] | list['Deferred[T]'] | dict[str, 'Deferred[T]']

MAPPINGS = (dict,)
SCALARS = (str, bytes, int, float, bool)
SEQUENCES = (list, tuple, set, frozenset)


def is_deferred(value: RuntimeValue) -> bool:
    """Tell whether a value is a deferred callable.

    Classes and test doubles are callable too but are treated as plain
    values: a double passed as an expected argument is compared, never
    invoked.

    Args:
        value: Candidate value.

    Returns:
        True if the value must be called with the running example.
    """
    return callable(value) and not isinstance(value, (type, NonCallableMock))


def resolve(value: RuntimeValue, example: 'Example') -> RuntimeValue:
    """Recursively resolve deferred values against an example.

    Args:
        value: Possibly deferred value.
        example: Running example.

    Returns:
        Fully resolved value. Container types are preserved.

    Raises:
        Any exception raised by deferred callables.
    """
    if value is None or isinstance(value, SCALARS):
        return value

    if isinstance(value, MAPPINGS):
        return type(value)({
            key: resolve(item, example)
            for key, item in value.items()
        })

    if isinstance(value, SEQUENCES):
        return type(value)(
            resolve(item, example)
            for item in value
        )

    if is_deferred(value):
        return resolve(value(example), example)

    return value
