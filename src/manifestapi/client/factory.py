"""Build executors for resolved operations.

:class:`ClientFactory` is the only place that combines a client's
:class:`~manifestapi.models.ClientConfiguration` with a manifest. For every
resolution it:

1. loads the merged manifest (resource operations plus the version's base
   service metadata and error table) from the
   :class:`~manifestapi.manifests.store.ManifestStore`;
2. snapshots the headers -- fixed defaults, the user agent, then the
   configuration's own headers, which win on collision;
3. captures the API key as the sole credential.

No request is sent here. Invocation is left entirely to the caller.
"""

from __future__ import annotations

from typing import Optional

import httpx

from manifestapi.client.executor import Executor
from manifestapi.manifests.store import ManifestStore
from manifestapi.models import ClientConfiguration, IteratorOperation, ResolvedOperation
from manifestapi.output import debug

DEFAULT_HEADERS: dict[str, str] = {"Accept": "application/json"}


class ClientFactory:
    """Creates transport-bound :class:`Executor` objects.

    Args:
        store: Manifest store shared with the resolver.
        transport: Optional httpx transport handed to every executor.
    """

    def __init__(
        self,
        store: ManifestStore,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._store = store
        self._transport = transport

    def build(
        self,
        resolved: ResolvedOperation,
        configuration: ClientConfiguration,
    ) -> Executor:
        """Return an executor for the resource behind *resolved*.

        Raises:
            ManifestNotFoundError: If the resource has no manifest for the
                configured version.
            ManifestParseError: If a document involved is malformed.
        """
        if isinstance(resolved, IteratorOperation):
            name = resolved.list_operation_name
        else:
            name = resolved.operation_name

        manifest = self._store.load(name, configuration.version)
        headers = self.headers_for(configuration)
        debug(f"Built executor for {manifest.name} ({configuration.version})")
        return Executor(
            manifest,
            configuration,
            headers=headers,
            api_key=configuration.api_key,
            transport=self._transport,
        )

    @staticmethod
    def headers_for(configuration: ClientConfiguration) -> dict[str, str]:
        """Default headers overlaid with the configuration's headers."""
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = configuration.user_agent
        headers.update(configuration.headers)
        return headers
