"""Recording stand-in for template rendering and redirects.

The action under test receives (or gets patched to use) a `Renderer`
instead of the real template layer. The renderer records what was asked
of it, so view macros can assert on the outcome after the shared request
has fired.
"""

from typing import Any

from pydantic import Field

from pytest_macros.models import SchemaModel

#: Status recorded for a render when none is given.
DEFAULT_STATUS = 200
#: Status recorded for a redirect when none is given.
REDIRECT_STATUS = 302


class Rendering(SchemaModel):
    """A single recorded render call."""

    template: str = Field(
        title='Template name',
    )

    context: dict[str, Any] = Field(
        default_factory=dict,
        title='Template context',
        description='Values handed to the template, the "assigns".',
    )

    partial: bool = Field(
        default=False,
        title='Partial flag',
    )


class Renderer:
    """Records renders, partials, redirects and the response status."""

    def __init__(self) -> None:
        """Initialize an empty recorder."""
        self.renderings: list[Rendering] = []
        self.location: Any = None
        self.status: int | None = None

    def render(self, template: str, /, **context: Any) -> str:  # noqa: ANN401
        """Record rendering of a template.

        Args:
            template: Template name.
            **context: Template context.

        Returns:
            Placeholder body naming the template.
        """
        self.renderings.append(Rendering(template=template, context=context))
        if self.status is None:
            self.status = DEFAULT_STATUS

        return f'<rendered {template}>'

    def render_partial(self, name: str, /, **context: Any) -> str:  # noqa: ANN401
        """Record rendering of a partial template."""
        self.renderings.append(Rendering(template=name, context=context, partial=True))

        return f'<rendered {name}>'

    def redirect_to(self, location: Any, status: int = REDIRECT_STATUS) -> None:  # noqa: ANN401
        """Record a redirect."""
        self.location = location
        self.status = status

    def respond_with(self, status: int) -> None:
        """Record an explicit response status."""
        self.status = status

    @property
    def template(self) -> str | None:
        """Name of the last rendered (non-partial) template."""
        for rendering in reversed(self.renderings):
            if not rendering.partial:
                return rendering.template

        return None

    @property
    def partials(self) -> list[str]:
        """Names of rendered partials, in order."""
        return [
            rendering.template
            for rendering in self.renderings
            if rendering.partial
        ]

    @property
    def assigns(self) -> dict[str, Any]:
        """Union of contexts of all (non-partial) renders, later ones winning."""
        assigns: dict[str, Any] = {}
        for rendering in self.renderings:
            if not rendering.partial:
                assigns.update(rendering.context)

        return assigns
