"""JSON Schema of macro options."""

from functools import cache
from json import dumps
from typing import TYPE_CHECKING

from pydantic import create_model
from pydantic.json_schema import GenerateJsonSchema, JsonSchemaValue

from pytest_macros.core import MacroRegistry
from pytest_macros.models import SchemaModel

if TYPE_CHECKING:
    from pydantic import BaseModel
    from pydantic_core import core_schema as core


class SchemaGenerator(GenerateJsonSchema):
    """Custom JSON Schema generator for macro options.

    Options typed as arbitrary values may hold deferred callables
    resolved against the running example, so they are represented as
    unconstrained runtime values.
    """

    @classmethod
    @cache
    def get_registry(cls) -> MacroRegistry:
        """Return a cached registry with builtin and plugin macros.

        Returns:
            Registry in non-strict mode.
        """
        return MacroRegistry(strict=False)

    @classmethod
    @cache
    def get_model(cls) -> 'type[BaseModel]':
        """Build and cache the model with one field per macro.

        Returns:
            Model whose fields are the options models of all macros.
        """
        fields = {
            name: (macro.options | None, None)
            for name, macro in sorted(cls.get_registry().macros.items())
        }

        return create_model('Macros', __base__=SchemaModel, **fields)  # type: ignore[call-overload]

    @classmethod
    @cache
    def make_schema(cls, indent: int | str | None = 4) -> str:
        """Generate the JSON Schema of all macro options.

        Args:
            indent: Indentation level used for JSON formatting.

        Returns:
            Serialized JSON Schema string.
        """
        model = cls.get_model()

        schema = {
            **model.model_json_schema(
                schema_generator=cls,
                union_format='primitive_type_array',
            ),
            'title': 'pytest-macros',
            'description': 'JSON Schema of pytest-macros macro options',
            '$schema': cls.schema_dialect,
        }

        return dumps(
            schema,
            ensure_ascii=False,
            sort_keys=True,
            indent=indent,
        )

    def any_schema(self, schema: 'core.AnySchema') -> JsonSchemaValue:  # noqa: ARG002
        """Generate JSON Schema for arbitrary option values.

        Args:
            schema: Pydantic core schema describing any value.

        Returns:
            A permissive JSON Schema fragment.
        """
        return {'description': 'Runtime value, possibly deferred'}
