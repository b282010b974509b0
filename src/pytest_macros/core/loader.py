"""Macro table bookkeeping and entry point discovery.

`MacroTableMixin` owns the name-to-macro table of a registry: adding a
macro (with shadowing detection) and importing third-party `Plugin`
objects from the `pytest_macros` entry point group.

A broken plugin never aborts collection in relaxed mode; it is reported
as a `PluginWarning` and skipped. In strict mode every such problem is
raised as a `PluginError`.
"""

from typing import TYPE_CHECKING
from warnings import warn

from pydantic import ValidationError

from pytest_macros.errors import PluginError, PluginWarning
from pytest_macros.extensions import Plugin
from pytest_macros.logs import get_logger

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint

if TYPE_CHECKING:
    from pytest_macros.extensions import Macro

#: Entry point group scanned for `Plugin` objects.
ENTRYPOINT_GROUP = 'pytest_macros'

logger = get_logger(__name__)


class MacroTableMixin:
    """Name-to-macro table with plugin discovery.

    Attributes:
        strict_mode: Raise `PluginError` on shadowing and broken plugins
            instead of warning.
        macros: Registered macros by name.
        plugins: Names of the entry points successfully loaded.
    """

    strict_mode: bool = False

    macros: dict[str, 'Macro']
    plugins: list[str]

    def add_macro(self, macro: 'Macro',
                  entrypoint: 'EntryPoint | None' = None) -> None:
        """Put a macro into the table.

        Args:
            macro: Macro definition.
            entrypoint: Entry point the macro came from, for diagnostics.

        Raises:
            PluginError: If the name is taken and strict mode is on.
        """
        origin = entrypoint.value if entrypoint else getattr(macro.expander, '__module__', '')

        if macro.name in self.macros:
            self.report(f'Macro {macro.name!r} from {origin!r} is shadowing an existing', entrypoint)

        self.macros[macro.name] = macro

        logger.debug('macro registered', macro=macro.name, module=origin)

    def report(self, message: str, entrypoint: 'EntryPoint | None' = None, *,
               cause: Exception | None = None) -> None:
        """Warn about a plugin problem, or raise it on strict mode.

        Args:
            message: Problem description.
            entrypoint: Entry point involved, if any.
            cause: Exception chained to the raised error.

        Raises:
            PluginError: On strict mode.
        """
        if self.strict_mode:
            raise PluginError(message, entrypoint=entrypoint) from cause

        warn(message, category=PluginWarning, stacklevel=3)

    def clear_plugins(self) -> None:
        """Empty the table."""
        self.macros = {}
        self.plugins = []

    def load_plugins(self) -> None:
        """Register macros of every plugin found through entry points.

        Raises:
            PluginError: On strict mode, for the first broken plugin.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=ENTRYPOINT_GROUP):
            if (plugin := self._import_plugin(entrypoint)) is None:
                continue

            for macro in plugin.macros:
                self.add_macro(macro, entrypoint)

            self.plugins.append(entrypoint.name)

            logger.debug('plugin loaded', plugin=plugin.name, macros=len(plugin.macros))

    def _import_plugin(self, entrypoint: 'EntryPoint') -> Plugin | None:
        """Import the object behind an entry point, `None` if unusable."""
        try:
            plugin = entrypoint.load()

        except ValidationError as error:
            self.report(f'Failed to validate entrypoint {entrypoint.name!r}', entrypoint, cause=error)
            return None

        except Exception as error:  # noqa: BLE001
            self.report(f'Failed to load entrypoint {entrypoint.name!r}', entrypoint, cause=error)
            return None

        if not isinstance(plugin, Plugin):
            self.report(f'Loaded from entrypoint {entrypoint.name!r} object is not a plugin', entrypoint)
            return None

        return plugin
