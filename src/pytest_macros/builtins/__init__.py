"""Built-in macros registered by every registry."""

from . import controllers, models, views

#: All builtin macros, in registration order.
BUILTINS = (
    *controllers.MACROS,
    *views.MACROS,
    *models.MACROS,
)

__all__ = (
    'BUILTINS',
)
