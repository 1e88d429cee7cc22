"""Shared test fixtures for manifestapi.

Provides manifest documents (in memory and on disk), a recording httpx
transport, isolated configuration directories and a CLI runner. Fixtures
are discovered by pytest and available to every test module.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
import yaml

from manifestapi.manifests import DictManifestSource, FileManifestSource
from manifestapi.output import OutputManager, reset_output, set_output

VERSION = "2014-07-26"

BASE_DOCUMENT: dict[str, Any] = {
    "name": "Stripe",
    "base_url": "https://api.stripe.com",
    "api_version": VERSION,
    "errors": {
        401: {"kind": "authentication", "message": "Invalid API key provided: {message}"},
        402: {"kind": "card", "message": "Card declined: {message}"},
        404: {"kind": "not_found", "message": "No such object: {message}"},
        429: {"kind": "rate_limit", "message": "Slow down: {message}"},
        "4xx": {"kind": "validation", "message": "HTTP {status}: {message}"},
        "5xx": {"kind": "server", "message": "Server error {status}: {message}"},
    },
}

CHARGES_DOCUMENT: dict[str, Any] = {
    "description": "Charges",
    "operations": {
        "all": {
            "http_method": "GET",
            "uri": "/v1/charges",
            "response": {"type": "list"},
            "pagination": {},
            "parameters": {
                "limit": {"type": "integer", "location": "query"},
                "customer": {"location": "query"},
            },
        },
        "create": {
            "http_method": "POST",
            "uri": "/v1/charges",
            "parameters": {
                "amount": {"type": "integer", "location": "body", "required": True},
                "currency": {"location": "body", "required": True},
                "metadata": {"type": "object", "location": "body"},
                "capture": {"type": "boolean", "location": "body", "default": True},
            },
        },
        "find": {
            "http_method": "GET",
            "uri": "/v1/charges/{id}",
            "parameters": {
                "id": {"location": "path", "required": True},
                "expand": {"type": "array", "location": "query"},
            },
        },
    },
    "errors": {
        402: {"kind": "card", "message": "Charge failed ({code}): {message}"},
    },
}

CUSTOMERS_DOCUMENT: dict[str, Any] = {
    "operations": {
        "all": {
            "http_method": "get",
            "uri": "/v1/customers",
            "response": {"type": "list"},
            "pagination": {},
            "parameters": {"limit": {"type": "integer", "location": "query"}},
        },
        "delete": {
            "http_method": "DELETE",
            "uri": "/v1/customers/{id}",
            "parameters": {"id": {"location": "path", "required": True}},
        },
    },
}

PLANS_DOCUMENT: dict[str, Any] = {
    "operations": {
        "create": {
            "http_method": "POST",
            "uri": "/v1/plans",
            "parameters": [
                {"name": "id", "location": "body", "required": True},
                {"name": "interval", "location": "body", "enum": ["day", "month"]},
                {"name": "nickname", "location": "body", "sent_as": "name"},
            ],
        },
    },
}


def make_documents() -> dict[str, dict[str, dict[str, Any]]]:
    return {
        VERSION: {
            "Manifest": copy.deepcopy(BASE_DOCUMENT),
            "Charges": copy.deepcopy(CHARGES_DOCUMENT),
            "Customers": copy.deepcopy(CUSTOMERS_DOCUMENT),
            "Plans": copy.deepcopy(PLANS_DOCUMENT),
        }
    }


# ---------------------------------------------------------------------------
# Output state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet output manager and drop it after every test.

    The manager caches sys.stdout/sys.stderr at creation time, which go
    stale once CliRunner restores the real streams.
    """
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Manifest sources
# ---------------------------------------------------------------------------


@pytest.fixture
def dict_source() -> DictManifestSource:
    """In-memory source with Manifest, Charges, Customers and Plans."""
    return DictManifestSource(make_documents())


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    """The same documents written as YAML files under ``tmp_path/manifests``."""
    root = tmp_path / "manifests"
    for version, documents in make_documents().items():
        directory = root / version
        directory.mkdir(parents=True)
        for name, document in documents.items():
            (directory / f"{name}.yaml").write_text(
                yaml.safe_dump(document, sort_keys=False), encoding="utf-8"
            )
    return root


@pytest.fixture
def file_source(manifest_dir: Path) -> FileManifestSource:
    return FileManifestSource(manifest_dir)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    """Factory building a :class:`RecordingTransport` from a handler."""
    return RecordingTransport


# ---------------------------------------------------------------------------
# Config isolation and CLI
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at ``tmp_path`` and clear MANIFESTAPI_* variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["MANIFESTAPI_API_KEY", "MANIFESTAPI_VERSION", "MANIFESTAPI_MANIFEST_PATH"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("manifestapi.config._is_xdg_platform", lambda: True)
    return tmp_path


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
