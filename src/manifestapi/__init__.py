"""manifestapi -- a REST API client generated at runtime from declarative manifests.

Instead of one hand-written method per endpoint, each API resource is
described by a *manifest* document (operations, parameters, error mappings).
The client resolves any symbolic name against those documents when it is
called:

    from manifestapi import ManifestClient

    client = ManifestClient("sk_test_123", "2014-07-26")
    charges = client.call("charges")                  # executor for Charges
    charge = charges.invoke("find", {"id": "ch_1"})
    for refund in client.call("refundsIterator", {"charge": "ch_1"}):
        ...

The Stripe manifests for ``2014-07-26`` ship with the package.

Modules:
    facade: :class:`ManifestClient`, the entry point.
    resolver: Symbolic name to operation resolution.
    manifests: Document sources and the memoising manifest store.
    client: Executor factory and the httpx-backed executor.
    iterator: Lazy cursor pagination over list operations.
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    config: XDG-aware settings for the command line tool.
    output: stdout/stderr output with Rich support.
    app: Typer command line entry point.
"""

__version__ = "1.0.0"

from manifestapi.exceptions import (  # noqa: E402
    ManifestApiError,
    ManifestNotFoundError,
    TransportError,
    UndefinedOperationError,
)
from manifestapi.facade import ManifestClient, Stripe  # noqa: E402
from manifestapi.iterator import ResourceIterator  # noqa: E402

__all__ = [
    "ManifestApiError",
    "ManifestClient",
    "ManifestNotFoundError",
    "ResourceIterator",
    "Stripe",
    "TransportError",
    "UndefinedOperationError",
    "__version__",
]
