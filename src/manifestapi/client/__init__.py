"""Transport binding for manifest operations.

:class:`ClientFactory` turns a resolved operation and a client
configuration into an :class:`Executor` backed by :mod:`httpx`. Executors
invoke operations by name; :class:`Command` is a deferred invocation used for
pagination.

Example::

    from manifestapi.client import ClientFactory

    executor = ClientFactory(store).build(resolved, configuration)
    charge = executor.invoke("find", {"id": "ch_123"})
"""

from manifestapi.client.executor import Command, Executor, encode_params
from manifestapi.client.factory import ClientFactory

__all__ = ["ClientFactory", "Command", "Executor", "encode_params"]
