"""Manifest documents -- locate, parse, validate, merge and cache.

Sub-modules:

* :mod:`~manifestapi.manifests.loader` -- document sources (files on disk or
  in-memory dictionaries) and JSON/YAML parsing.
* :mod:`~manifestapi.manifests.store` -- :class:`ManifestStore`, the
  per-client memoising store that merges each resource document with its
  version's base manifest.

The Stripe manifests shipped with the package live under
:data:`DEFAULT_MANIFEST_PATH`.
"""

from pathlib import Path

from manifestapi.manifests.loader import DictManifestSource, FileManifestSource, ManifestSource
from manifestapi.manifests.store import BASE_MANIFEST, ManifestStore, canonical_name

DEFAULT_MANIFEST_PATH = Path(__file__).parent / "data"

__all__ = [
    "BASE_MANIFEST",
    "DEFAULT_MANIFEST_PATH",
    "DictManifestSource",
    "FileManifestSource",
    "ManifestSource",
    "ManifestStore",
    "canonical_name",
]
