"""Settings for the ``manifestapi`` command line tool.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.manifestapi/`` elsewhere. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings file** -- one :class:`~manifestapi.models.Settings` JSON
  document, ``config.json`` in the config directory.
* **Precedence** -- :func:`resolve_settings` layers CLI flags over
  environment variables over the settings file over defaults.
* **Credentials** -- :func:`resolve_credential` reads the API key from an
  env var, a file, or takes it literally.

The library itself never reads these settings; it is configured entirely
through :class:`~manifestapi.facade.ManifestClient` arguments.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from manifestapi.exceptions import ConfigError
from manifestapi.models import Settings

_APP_NAME = "manifestapi"
_CONFIG_FILENAME = "config.json"

ENV_API_KEY = "MANIFESTAPI_API_KEY"
ENV_VERSION = "MANIFESTAPI_VERSION"
ENV_MANIFEST_PATH = "MANIFESTAPI_MANIFEST_PATH"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/manifestapi/`` (default
    ``~/.config/manifestapi/``). Elsewhere: ``~/.manifestapi/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary."""
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to a temp file in the same directory, then rename over *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


# --- Settings file ---


def settings_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load settings from the config directory.

    Returns:
        The stored :class:`~manifestapi.models.Settings`, or defaults when
        no file exists.

    Raises:
        ConfigError: If the file holds invalid JSON or fails validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        return Settings.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist *settings* atomically."""
    data = settings.model_dump(mode="json")
    _atomic_write(settings_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_settings(
    cli_api_key: Optional[str] = None,
    cli_version: Optional[str] = None,
    cli_manifest_path: Optional[str] = None,
) -> Settings:
    """Resolve effective settings.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``MANIFESTAPI_API_KEY``,
           ``MANIFESTAPI_VERSION``, ``MANIFESTAPI_MANIFEST_PATH``)
        3. Settings file
        4. Defaults

    An API key given by flag or environment is stored as a literal
    ``api_key_source``.
    """
    settings = load_settings()

    env_key = os.environ.get(ENV_API_KEY)
    if cli_api_key is not None:
        settings.api_key_source = cli_api_key
    elif env_key:
        settings.api_key_source = f"env:{ENV_API_KEY}"

    env_version = os.environ.get(ENV_VERSION)
    if cli_version is not None:
        settings.version = cli_version
    elif env_version:
        settings.version = env_version

    env_path = os.environ.get(ENV_MANIFEST_PATH)
    if cli_manifest_path is not None:
        settings.manifest_path = cli_manifest_path
    elif env_path:
        settings.manifest_path = env_path

    return settings


def resolve_credential(source: Optional[str]) -> str:
    """Resolve an API key from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads the file, stripped of whitespace
        - anything else -- taken as the key itself

    Raises:
        ConfigError: If no source is configured or it cannot be resolved.
    """
    if not source:
        raise ConfigError(
            f"No API key configured. Pass --api-key or set {ENV_API_KEY}."
        )

    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    return source
