"""``manifestapi config`` -- view and modify the stored settings.

Reads and writes the :class:`~manifestapi.models.Settings` document kept in
the config directory. Values stored here are the lowest-precedence layer
under environment variables and CLI flags.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from manifestapi.commands.common import handle_errors
from manifestapi.exceptions import InvalidUsageError
from manifestapi.output import format_response, info, warning

config_app = typer.Typer(no_args_is_help=True)

_CREDENTIAL_PREFIXES = ("env:", "file:")


@config_app.command("show")
def config_show() -> None:
    """Show the stored settings.

    Example::

        manifestapi config show --json
    """
    from manifestapi.config import get_config_dir, load_settings

    with handle_errors():
        settings = load_settings()
        info(f"Config directory: {get_config_dir()}")
        format_response(settings.model_dump(mode="json"))


def _coerce(key: str, current: Any, value: str) -> Any:
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, (int, float)):
        try:
            return type(current)(value)
        except ValueError:
            raise InvalidUsageError(
                f"Expected {type(current).__name__} for {key}, got: {value}"
            ) from None
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Settings key (dot notation, e.g. 'request.timeout')."),
    value: str = typer.Argument(help="Value to store."),
) -> None:
    """Store one setting.

    The value is coerced to the type of the field it replaces and the whole
    document is validated before it is saved.

    Example::

        manifestapi config set api_key_source env:STRIPE_KEY
        manifestapi config set output.format json
        manifestapi config set request.timeout 10
    """
    from manifestapi.config import load_settings, save_settings
    from manifestapi.models import Settings

    with handle_errors():
        data = load_settings().model_dump(mode="json")

        *parents, final_key = key.split(".")
        target = data
        for part in parents:
            if not isinstance(target.get(part), dict):
                raise InvalidUsageError(f"Invalid settings key: {key}")
            target = target[part]
        if final_key not in target:
            raise InvalidUsageError(f"Unknown settings key: {key}")

        coerced = _coerce(key, target[final_key], value)
        target[final_key] = coerced
        try:
            settings = Settings.model_validate(data)
        except ValidationError as exc:
            raise InvalidUsageError(f"Invalid value for {key}: {exc}") from exc

        save_settings(settings)
        if key == "api_key_source" and not value.startswith(_CREDENTIAL_PREFIXES):
            warning("Storing a literal API key; prefer env:VAR or file:/path")
        info(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Replace the stored settings with the defaults."""
    from manifestapi.config import save_settings
    from manifestapi.models import Settings

    if not yes and not typer.confirm("Reset all settings to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    with handle_errors():
        save_settings(Settings())
    info("Settings reset to defaults.")
