"""Document sources for manifest data.

A *source* answers two questions for a ``(version, name)`` pair: does a
document exist, and what does it contain as a plain dictionary. Parsing is
pure deserialisation; nothing in a manifest is executed.

* :class:`FileManifestSource` -- reads ``<root>/<version>/<Name>.<ext>``
  where ``ext`` is ``yaml``, ``yml`` or ``json``.
* :class:`DictManifestSource` -- serves documents held in memory, for tests
  and hosts that ship manifests some other way.

Both count successful reads in :attr:`reads` so callers can verify that the
store above them memoises correctly.
"""

from __future__ import annotations

import copy
import json
from collections import Counter
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

import yaml

from manifestapi.exceptions import ManifestNotFoundError, ManifestParseError

EXTENSIONS = (".yaml", ".yml", ".json")


@runtime_checkable
class ManifestSource(Protocol):
    """Anything that can locate and deserialise manifest documents."""

    def exists(self, version: str, name: str) -> bool: ...

    def read(self, version: str, name: str) -> dict[str, Any]: ...

    def names(self, version: str) -> list[str]: ...


class FileManifestSource:
    """Manifest documents stored as files under a versioned directory tree.

    Args:
        root: Directory containing one sub-directory per API version.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.reads: Counter[tuple[str, str]] = Counter()

    def path_for(self, version: str, name: str) -> Optional[Path]:
        """Return the first existing document path for *name*, or ``None``."""
        directory = self.root / version
        for ext in EXTENSIONS:
            candidate = directory / f"{name}{ext}"
            if candidate.is_file():
                return candidate
        return None

    def exists(self, version: str, name: str) -> bool:
        return self.path_for(version, name) is not None

    def read(self, version: str, name: str) -> dict[str, Any]:
        """Load and parse the document for ``(version, name)``.

        Raises:
            ManifestNotFoundError: If no file exists for the pair.
            ManifestParseError: If the file cannot be read or parsed, or
                does not hold a mapping.
        """
        path = self.path_for(version, name)
        if path is None:
            raise ManifestNotFoundError(version, name)

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestParseError(f"Failed to read manifest {path}: {exc}") from exc

        hint = "json" if path.suffix == ".json" else "yaml"
        document = parse_content(content, hint=hint, origin=str(path))
        self.reads[(version, name)] += 1
        return document

    def names(self, version: str) -> list[str]:
        directory = self.root / version
        if not directory.is_dir():
            return []
        return sorted(
            {p.stem for p in directory.iterdir() if p.is_file() and p.suffix in EXTENSIONS}
        )


class DictManifestSource:
    """In-memory documents keyed by version, then by document name.

    Documents are deep-copied on read so callers can never mutate the
    source through a returned value.
    """

    def __init__(self, documents: Mapping[str, Mapping[str, dict[str, Any]]]) -> None:
        self._documents = {version: dict(docs) for version, docs in documents.items()}
        self.reads: Counter[tuple[str, str]] = Counter()

    def exists(self, version: str, name: str) -> bool:
        return name in self._documents.get(version, {})

    def read(self, version: str, name: str) -> dict[str, Any]:
        try:
            document = self._documents[version][name]
        except KeyError:
            raise ManifestNotFoundError(version, name) from None
        if not isinstance(document, dict):
            raise ManifestParseError(
                f"Manifest {version}/{name} must be a mapping (got {type(document).__name__})"
            )
        self.reads[(version, name)] += 1
        return copy.deepcopy(document)

    def names(self, version: str) -> list[str]:
        return sorted(self._documents.get(version, {}))


def parse_content(content: str, hint: str = "", origin: str = "manifest") -> dict[str, Any]:
    """Parse *content* as JSON or YAML into a mapping.

    JSON is tried first unless *hint* is ``"yaml"``; valid JSON is also
    valid YAML, but the JSON parser is stricter and gives better errors.

    Args:
        content: Raw document text.
        hint: ``"json"``, ``"yaml"`` or empty.
        origin: Label used in error messages.

    Raises:
        ManifestParseError: If the content is empty, unparseable, or not a
            mapping.
    """
    if not content.strip():
        raise ManifestParseError(f"Manifest is empty: {origin}")

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise ManifestParseError(f"Invalid JSON in {origin}: {exc}") from exc
        else:
            return _require_mapping(result, origin)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ManifestParseError(f"Invalid YAML in {origin}: {exc}") from exc
    return _require_mapping(result, origin)


def _require_mapping(result: Any, origin: str) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise ManifestParseError(f"Manifest {origin} must be a mapping (got {kind})")
    return result
