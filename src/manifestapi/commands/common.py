"""Helpers shared by the CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import typer

from manifestapi.exceptions import InvalidUsageError, ManifestApiError
from manifestapi.facade import ManifestClient
from manifestapi.output import debug, error


def build_client(ctx: typer.Context, require_key: bool = True) -> ManifestClient:
    """Create a :class:`ManifestClient` from the options stored by the root callback.

    Commands that only read manifests pass ``require_key=False``.
    """
    from manifestapi.config import resolve_credential, resolve_settings

    obj = ctx.obj or {}
    settings = resolve_settings(
        cli_api_key=obj.get("api_key"),
        cli_version=obj.get("version"),
        cli_manifest_path=obj.get("manifest_path"),
    )
    api_key = resolve_credential(settings.api_key_source) if require_key else ""

    client = ManifestClient(
        api_key,
        settings.version,
        settings.manifest_path,
        request=settings.request,
    )
    if settings.user_agent:
        client.user_agent = settings.user_agent
    if settings.headers:
        client.set_headers(settings.headers)
    debug(f"Client ready: version {client.version}, manifests at {client.manifest_path}")
    return client


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn :class:`ManifestApiError` into an error line and a typed exit code."""
    try:
        yield
    except ManifestApiError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def parse_data(pairs: Optional[list[str]]) -> dict[str, Any]:
    """Parse ``key=value`` pairs; values are read as JSON when they parse.

    ``-d amount=2000`` gives an int, ``-d capture=false`` a bool,
    ``-d currency=usd`` stays a string. Bracketed keys such as
    ``metadata[order]`` are passed through unchanged.
    """
    data: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Expected key=value, got '{pair}'")
        try:
            data[key] = json.loads(raw)
        except json.JSONDecodeError:
            data[key] = raw
    return data
