"""Resolve symbolic call names into operations.

The client accepts any name at call time. :class:`OperationResolver` decides
what that name means before anything is built:

* ``chargesIterator`` -- ends with :data:`ITERATOR_SUFFIX`. The suffix is
  stripped and the remainder (``charges``) names the resource whose list
  operation will be paginated. The result is an
  :class:`~manifestapi.models.IteratorOperation`.
* ``charges`` -- anything else is a
  :class:`~manifestapi.models.DirectOperation` referencing the name as-is.

Either way the target must have a manifest document; the check is done on
the stripped name for iterators, never on the suffixed one. A missing
document raises :class:`~manifestapi.exceptions.UndefinedOperationError`
carrying the name exactly as requested.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import ValidationError

from manifestapi.exceptions import InvalidUsageError, UndefinedOperationError
from manifestapi.manifests.store import ManifestStore
from manifestapi.models import (
    DirectOperation,
    IterationOptions,
    IteratorOperation,
    ResolvedOperation,
)

ITERATOR_SUFFIX = "Iterator"


class OperationResolver:
    """Classifies symbolic names and checks that a manifest backs them.

    Args:
        store: Store used for the existence check.
    """

    def __init__(self, store: ManifestStore) -> None:
        self._store = store

    def resolve(
        self,
        symbolic_name: str,
        arguments: Sequence[Any] = (),
        version: Optional[str] = None,
    ) -> ResolvedOperation:
        """Resolve *symbolic_name* for *version* (the store's version by default).

        Args:
            symbolic_name: Name as called, e.g. ``"charges"`` or
                ``"chargesIterator"``.
            arguments: Call arguments. For iterators, ``arguments[0]`` holds
                the list operation's parameters and ``arguments[1]`` the
                iteration options; both are optional.
            version: API version to check against.

        Raises:
            UndefinedOperationError: If no manifest exists for the resolved
                name.
            InvalidUsageError: If iterator arguments have the wrong shape.
        """
        if symbolic_name.endswith(ITERATOR_SUFFIX):
            target = symbolic_name[: -len(ITERATOR_SUFFIX)]
            self._require(target, symbolic_name, version)
            return IteratorOperation(
                requested_name=symbolic_name,
                list_operation_name=target,
                parameters=_parameters(arguments, symbolic_name),
                iterator_options=_options(arguments, symbolic_name),
            )

        self._require(symbolic_name, symbolic_name, version)
        return DirectOperation(requested_name=symbolic_name, operation_name=symbolic_name)

    def _require(self, target: str, requested: str, version: Optional[str]) -> None:
        if not target or not self._store.exists(target, version):
            raise UndefinedOperationError(requested)


def _parameters(arguments: Sequence[Any], requested: str) -> dict[str, Any]:
    value = arguments[0] if len(arguments) > 0 else None
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidUsageError(
            f"{requested}: list parameters must be a mapping (got {type(value).__name__})"
        )
    return dict(value)


def _options(arguments: Sequence[Any], requested: str) -> IterationOptions:
    value = arguments[1] if len(arguments) > 1 else None
    if value is None:
        return IterationOptions()
    if isinstance(value, IterationOptions):
        return value
    if not isinstance(value, Mapping):
        raise InvalidUsageError(
            f"{requested}: iterator options must be a mapping (got {type(value).__name__})"
        )
    try:
        return IterationOptions.model_validate(dict(value))
    except ValidationError as exc:
        raise InvalidUsageError(f"{requested}: invalid iterator options: {exc}") from exc
