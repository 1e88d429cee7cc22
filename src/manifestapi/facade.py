"""Top-level client facade.

:class:`ManifestClient` owns a :class:`~manifestapi.models.ClientConfiguration`
and a :class:`~manifestapi.manifests.store.ManifestStore`, and exposes one
catch-all entry point, :meth:`ManifestClient.call`, that accepts any
symbolic name:

* ``client.call("charges")`` returns an
  :class:`~manifestapi.client.executor.Executor` bound to the ``Charges``
  manifest;
* ``client.call("chargesIterator", {"limit": 2})`` returns a
  :class:`~manifestapi.iterator.ResourceIterator` over ``Charges.all``.

The manifest cache belongs to the client instance, so two clients never
share cached documents.

``Stripe`` is an alias kept for callers that think of the client by the API
it talks to.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from manifestapi import __version__
from manifestapi.client.executor import Executor
from manifestapi.client.factory import ClientFactory
from manifestapi.iterator import ResourceIterator
from manifestapi.manifests import DEFAULT_MANIFEST_PATH, FileManifestSource, ManifestSource, ManifestStore
from manifestapi.models import (
    DEFAULT_VERSION,
    ClientConfiguration,
    IteratorOperation,
    RequestConfig,
    ResolvedOperation,
)
from manifestapi.resolver import OperationResolver

VERSION_HEADER = "Stripe-Version"
DEFAULT_USER_AGENT = f"manifestapi/{__version__}"


class ManifestClient:
    """Manifest-driven API client.

    Args:
        api_key: Secret API key, sent as the basic-auth username.
        version: API version; selects the manifest directory and is sent in
            the ``Stripe-Version`` header. Defaults to ``2014-07-26``.
        manifest_path: Root of the versioned manifest tree. Defaults to the
            manifests shipped with the package. Ignored when *source* is
            given.
        source: Explicit document source, e.g. a
            :class:`~manifestapi.manifests.loader.DictManifestSource`.
        transport: Optional httpx transport handed to every executor.
        request: Timeout, SSL and connection-retry settings.

    Example::

        client = ManifestClient("sk_test_123")
        charges = client.call("charges")
        charge = charges.invoke("create", {"amount": 2000, "currency": "usd"})

        for customer in client.call("customersIterator", {}, {"limit": 100}):
            print(customer["email"])
    """

    def __init__(
        self,
        api_key: str,
        version: Optional[str] = None,
        manifest_path: Union[str, Path, None] = None,
        *,
        source: Optional[ManifestSource] = None,
        transport: Optional[httpx.BaseTransport] = None,
        request: Optional[RequestConfig] = None,
    ) -> None:
        self._configuration = ClientConfiguration(
            api_key=api_key,
            user_agent=DEFAULT_USER_AGENT,
            request=request or RequestConfig(),
        )
        self._manifest_path = Path(manifest_path) if manifest_path else DEFAULT_MANIFEST_PATH
        self._store = ManifestStore(source or FileManifestSource(self._manifest_path))
        self._resolver = OperationResolver(self._store)
        self._factory = ClientFactory(self._store, transport=transport)
        self.version = version or DEFAULT_VERSION

    def __repr__(self) -> str:
        return f"<ManifestClient version={self.version} manifests={self._manifest_path}>"

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def configuration(self) -> ClientConfiguration:
        return self._configuration

    @property
    def api_key(self) -> str:
        return self._configuration.api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        self._configuration.api_key = value

    @property
    def version(self) -> str:
        return self._configuration.version

    @version.setter
    def version(self, value: str) -> None:
        """Switch API version; also resets the version header and store scope."""
        self._configuration.version = value
        self._store.version = value
        self.set_headers({VERSION_HEADER: str(value)})

    @property
    def user_agent(self) -> str:
        return self._configuration.user_agent

    @user_agent.setter
    def user_agent(self, value: str) -> None:
        self._configuration.user_agent = value

    @property
    def manifest_path(self) -> Path:
        return self._manifest_path

    @property
    def headers(self) -> dict[str, str]:
        """A copy of the headers sent by executors built from now on."""
        return dict(self._configuration.headers)

    def set_headers(self, headers: Mapping[str, str]) -> ManifestClient:
        """Merge *headers* into the current ones; existing keys are overwritten.

        Executors that were already built keep the headers they captured.
        """
        self._configuration.headers = {**self._configuration.headers, **headers}
        return self

    @property
    def store(self) -> ManifestStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def resolve(self, name: str, *arguments: Any) -> ResolvedOperation:
        """Classify *name* without building anything."""
        return self._resolver.resolve(name, arguments, version=self.version)

    def call(self, name: str, *arguments: Any) -> Union[Executor, ResourceIterator]:
        """Resolve *name* and return an executor or an iterator.

        Args:
            name: Resource name (``"charges"``), or a resource name with the
                ``Iterator`` suffix (``"chargesIterator"``).
            *arguments: For iterators, the list parameters followed by the
                iteration options. Ignored for plain names.

        Raises:
            UndefinedOperationError: No manifest backs *name*.
            ManifestParseError: The manifest is malformed.
        """
        resolved = self.resolve(name, *arguments)
        executor = self._factory.build(resolved, self._configuration)
        if isinstance(resolved, IteratorOperation):
            command = executor.get_command(resolved.list_command, resolved.parameters)
            return ResourceIterator(command, resolved.iterator_options)
        return executor

    def resources(self) -> list[str]:
        """Resource names available for the current version."""
        return self._store.available(self.version)


Stripe = ManifestClient
