"""Capability contracts of collaborators and their registered doubles.

The macros never talk to a real ORM. They rely on the minimal set of
operations below, which domain model classes are expected to expose and
which test doubles implement by construction (`create_autospec` against
these protocols), so a misspelled call on a double fails loudly.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import Field

from pytest_macros.models import SchemaModel
from pytest_macros.names import Symbol  # noqa: TC001

#: Kind of a registered collaborator:
#: - `collection`: the result of a class-level `find_all`;
#: - `record`: the result of a class-level `find_one`;
#: - `new`: the result of a class-level `initialize`.
type CollaboratorKind = Literal['collection', 'record', 'new']

#: Class-level operation standing behind each collaborator kind.
OPERATIONS: dict[str, Literal['find_all', 'find_one', 'initialize']] = {
    'collection': 'find_all',
    'record': 'find_one',
    'new': 'initialize',
}


@runtime_checkable
class Record(Protocol):
    """A persisted or new domain object."""

    id: Any
    errors: Mapping[str, Sequence[str]]

    def save(self) -> bool:
        """Persist the record, returning whether it succeeded."""
        ...  # pragma: no cover

    def update(self, attrs: Mapping[str, Any]) -> bool:
        """Assign attributes and persist, returning whether it succeeded."""
        ...  # pragma: no cover

    def destroy(self) -> bool:
        """Delete the record."""
        ...  # pragma: no cover

    def valid(self) -> bool:
        """Run validations, filling `errors`."""
        ...  # pragma: no cover


@runtime_checkable
class ModelClass(Protocol):
    """Class-level finder and initializer operations of a domain type."""

    def find_all(self, **criteria: Any) -> Sequence[Record]:  # noqa: ANN401
        """Return records matching criteria (`limit`, `order`, ...)."""
        ...  # pragma: no cover

    def find_one(self, id: Any) -> Record:  # noqa: A002, ANN401
        """Return a record by identifier."""
        ...  # pragma: no cover

    def initialize(self, attrs: Mapping[str, Any]) -> Record:
        """Build a new, unsaved record."""
        ...  # pragma: no cover


@runtime_checkable
class Association(Protocol):
    """Reflection of a declared association."""

    name: str
    macro: str


@runtime_checkable
class Reflective(Protocol):
    """Domain types able to describe their associations."""

    def reflect_on_association(self, name: str) -> Association | None:
        """Return the association declared under a name, if any."""
        ...  # pragma: no cover


class Collaborator(SchemaModel):
    """A test double registered for a symbol within one example.

    Registering a collaborator for a symbol that already has one
    replaces it: the last registration wins.
    """

    symbol: Symbol = Field(
        title='Target symbol',
        description='Symbol macros use to refer to the collaborator.',
    )

    model: Any = Field(
        title='Domain type',
        description='Model class whose class-level operation is stubbed.',
    )

    kind: CollaboratorKind = Field(
        title='Collaborator kind',
        description='Which class-level operation produces the value.',
    )

    value: Any = Field(
        title='Stubbed value',
        description='Records list or single record returned by the operation.',
    )

    finder: Any = Field(
        title='Operation double',
        description='Mock patched over the class-level operation.',
    )

    @property
    def operation(self) -> Literal['find_all', 'find_one', 'initialize']:
        """Class-level operation standing behind the collaborator."""
        return OPERATIONS[self.kind]

    @property
    def records(self) -> list[Any]:
        """Records held by the collaborator."""
        if self.kind == 'collection':
            return list(self.value)

        return [self.value]
