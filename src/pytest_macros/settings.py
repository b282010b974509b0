"""Runtime configuration resolved from the environment."""

from typing import Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from pytest_macros.models import SettingsModel

type LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class MacroSettings(SettingsModel):
    """Settings of the macro plugin.

    Values are read from `PYTEST_MACROS_*` environment variables.
    Command-line options of the pytest plugin take precedence.
    """

    model_config = SettingsConfigDict(
        env_prefix='PYTEST_MACROS_',
        frozen=True,
        extra='ignore',
    )

    strict: bool = Field(
        default=False,
        title='Strict mode',
        description=(
            'Raise on macro shadowing and third-party plugin loading '
            'errors instead of emitting warnings.'
        ),
    )

    verify: bool = Field(
        default=True,
        title='Verify expectations',
        description=(
            'Verify armed call expectations after every test using '
            'the `example` fixture.'
        ),
    )

    log_level: LogLevel = Field(
        default='WARNING',
        title='Log level',
        description='Level of the `pytest_macros` logger hierarchy.',
    )
