"""Base Pydantic models for macro definitions.

This module defines the foundational model classes used by all
declarative structures of the library. It enforces immutability and
strict schema validation so that macro invocations declared at group
definition time can not drift between examples.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all declarative elements.

    This class serves as the root for all Pydantic models representing
    macros, invocations, expectation sets, and call expectations.

    Design principles enforced by this model:
        - Immutability: elements can not be modified after creation.
          A macro invocation is declared once per group and then shared
          by every example generated from it.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by mistyped macro options.

    All declarative models must inherit from this class.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class DescribedMixin(SchemaModel):
    """Mixin providing element self-documentation.

    The fields defined in this model do not affect execution semantics
    and are used for reporting and the command-line listing.
    """

    title: str | None = Field(
        default=None,
        title='Title',
        description='Short human-readable title of the element.',
    )

    description: str | None = Field(
        default=None,
        title='Description',
        description='Detailed human-readable description of the element.',
    )


class OptionsModel(SchemaModel):
    """Base model for recognized macro options.

    Every macro declares its options as a subclass of this model.
    Options are validated when a macro is invoked inside a group body,
    so a typo fails at collection time rather than inside an example.
    """


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Design principles enforced by this model:
        - Immutability: resolved settings can not be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored,
          so unrelated environment variables never break configuration.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
