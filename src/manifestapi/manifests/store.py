"""Memoising manifest store.

:class:`ManifestStore` turns raw documents from a
:class:`~manifestapi.manifests.loader.ManifestSource` into validated
:class:`~manifestapi.models.Manifest` objects and keeps them for its own
lifetime. Two documents take part in every resource manifest:

1. The version's base document, named ``Manifest``. It carries service
   metadata (name, base URL, description) and the common ``errors`` table.
   It is read once per version.
2. The resource document (``Charges``, ``Customers``, ...) with its
   ``operations`` and optional resource-specific ``errors``. It is read
   once per ``(version, name)``.

The base error table is merged into the resource manifest exactly once, when
the merged object enters the cache; resource entries override base entries
with the same code. Later loads hand back the cached object unchanged.

Names are normalised with :func:`canonical_name` before lookup, so
``charges`` and ``Charges`` share one cache entry. There is no eviction.
First access is serialised by one re-entrant lock per version.
"""

from __future__ import annotations

import threading
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from manifestapi.exceptions import ManifestNotFoundError, ManifestParseError
from manifestapi.manifests.loader import ManifestSource
from manifestapi.models import DEFAULT_VERSION, BaseManifest, Manifest, ResourceDocument
from manifestapi.output import debug

BASE_MANIFEST = "Manifest"
RESERVED_NAMES = frozenset({BASE_MANIFEST})

_M = TypeVar("_M", bound=BaseModel)


def canonical_name(name: str) -> str:
    """Upper-case the first character: ``invoiceItems`` -> ``InvoiceItems``."""
    return name[:1].upper() + name[1:]


class ManifestStore:
    """Loads, validates, merges and caches manifests.

    Args:
        source: Where documents come from.
        version: API version used when a call does not name one. The client
            facade keeps this in step with its own version.

    Example::

        store = ManifestStore(FileManifestSource("manifests"), "2014-07-26")
        charges = store.load("charges")
        charges.operations["find"].uri   # '/v1/charges/{id}'
    """

    def __init__(self, source: ManifestSource, version: str = DEFAULT_VERSION) -> None:
        self.source = source
        self.version = version
        self._bases: dict[str, BaseManifest] = {}
        self._manifests: dict[tuple[str, str], Manifest] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def exists(self, name: str, version: Optional[str] = None) -> bool:
        """Whether a resource document exists for *name* (no parsing)."""
        canonical = canonical_name(name)
        if not canonical or canonical in RESERVED_NAMES:
            return False
        return self.source.exists(version or self.version, canonical)

    def load(self, name: str, version: Optional[str] = None) -> Manifest:
        """Return the merged manifest for *name*, loading it on first use.

        Raises:
            ManifestNotFoundError: If the resource (or the version's base
                document) does not exist.
            ManifestParseError: If a document is malformed.
        """
        version = version or self.version
        canonical = canonical_name(name)
        key = (version, canonical)

        cached = self._manifests.get(key)
        if cached is not None:
            return cached

        with self._lock_for(version):
            cached = self._manifests.get(key)
            if cached is not None:
                return cached

            if not self.exists(canonical, version):
                raise ManifestNotFoundError(version, canonical)

            base = self.base(version)
            document = self._validate(
                ResourceDocument, self.source.read(version, canonical), version, canonical
            )
            manifest = Manifest(
                name=canonical,
                version=version,
                description=document.description,
                service=base.service,
                operations=document.operations,
                errors={**base.errors, **document.errors},
            )
            self._manifests[key] = manifest
            debug(
                f"Loaded manifest {version}/{canonical} "
                f"({len(manifest.operations)} operations, {len(manifest.errors)} errors)"
            )
            return manifest

    def base(self, version: Optional[str] = None) -> BaseManifest:
        """Return the version's base manifest, loading it on first use."""
        version = version or self.version
        cached = self._bases.get(version)
        if cached is not None:
            return cached

        with self._lock_for(version):
            cached = self._bases.get(version)
            if cached is not None:
                return cached
            if not self.source.exists(version, BASE_MANIFEST):
                raise ManifestNotFoundError(version, BASE_MANIFEST)
            raw = self.source.read(version, BASE_MANIFEST)
            try:
                base = BaseManifest.from_document(raw)
            except ValidationError as exc:
                raise ManifestParseError(
                    f"Invalid manifest {version}/{BASE_MANIFEST}: {exc}"
                ) from exc
            self._bases[version] = base
            debug(f"Loaded base manifest for {version} ({base.service.name})")
            return base

    def available(self, version: Optional[str] = None) -> list[str]:
        """Resource names with a document for *version*, base document excluded.

        Only canonical names are listed; a ``charges.yaml`` file is
        unreachable because lookups always ask for ``Charges``.
        """
        return [
            name
            for name in self.source.names(version or self.version)
            if name not in RESERVED_NAMES and canonical_name(name) == name
        ]

    def is_cached(self, name: str, version: Optional[str] = None) -> bool:
        return (version or self.version, canonical_name(name)) in self._manifests

    def clear(self) -> None:
        """Forget every cached manifest. The next load re-reads from the source.

        Waits for in-flight first loads so none of them re-inserts an entry
        afterwards.
        """
        with self._locks_guard:
            locks = list(self._locks.values())
        for lock in locks:
            lock.acquire()
        try:
            self._bases.clear()
            self._manifests.clear()
        finally:
            for lock in reversed(locks):
                lock.release()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _lock_for(self, version: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(version)
            if lock is None:
                lock = self._locks[version] = threading.RLock()
            return lock

    @staticmethod
    def _validate(model: type[_M], raw: dict[str, Any], version: str, name: str) -> _M:
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            raise ManifestParseError(f"Invalid manifest {version}/{name}: {exc}") from exc
