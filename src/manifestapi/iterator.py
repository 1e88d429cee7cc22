"""Lazy iteration over paginated list operations.

:class:`ResourceIterator` wraps the ``all`` command of a resource and yields
items one at a time, fetching the next page only when the current one is
used up. It moves through four states:

* **initial** -- nothing requested yet;
* **fetching** -- one request of the list command, with the original
  arguments kept verbatim and only the pagination parameters (cursor and
  page size) overwritten;
* **yielding** -- items of the fetched page handed out in API order;
* **done** -- terminal. Further advances raise :class:`StopIteration` and
  never refetch.

The next cursor comes from a policy: an ``IterationOptions.cursor``
callable when given, otherwise the list operation's
:class:`~manifestapi.models.PaginationSpec` (by default the ``id`` of the
last item, sent back as ``starting_after``). Iteration also stops when a
page is empty or the cursor does not move, so a misbehaving API cannot
cause an endless loop.

A failing fetch raises from the advance that needed it. Items yielded
before the failure stay yielded and the iterator is not marked done.
:meth:`ResourceIterator.close`, or leaving a ``with`` block, ends an abandoned
traversal and releases the executor's http client.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from manifestapi.client.executor import Command
from manifestapi.exceptions import InvalidUsageError, TransportError
from manifestapi.models import IterationOptions, IteratorState, PaginationSpec
from manifestapi.output import debug


class ResourceIterator:
    """Forward-only, non-restartable iterator over a list command.

    Args:
        command: The list command (``executor.get_command("all", {...})``).
        options: Iteration options, as a model or a mapping.

    Example::

        for charge in client.call("chargesIterator", {"customer": "cus_1"}, {"limit": 50}):
            print(charge["id"])
    """

    def __init__(
        self,
        command: Command,
        options: Union[IterationOptions, Mapping[str, Any], None] = None,
    ) -> None:
        if options is None:
            options = IterationOptions()
        elif not isinstance(options, IterationOptions):
            try:
                options = IterationOptions.model_validate(dict(options))
            except ValidationError as exc:
                raise InvalidUsageError(f"Invalid iterator options: {exc}") from exc

        self._command = command
        self._options = options
        # Without a pagination block the items live under the response's items_key.
        self._policy = command.spec.pagination or PaginationSpec(
            items_key=command.spec.response.items_key
        )
        self._state = IteratorState(cursor=options.starting_after)
        self._buffer: deque[Any] = deque()

    def __repr__(self) -> str:
        return (
            f"<ResourceIterator {self._command.executor.resource}.{self._command.name} "
            f"pages={self._state.pages_fetched} yielded={self._state.items_yielded} "
            f"done={self._state.done}>"
        )

    def __iter__(self) -> ResourceIterator:
        return self

    def __enter__(self) -> ResourceIterator:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __next__(self) -> Any:
        if self._limit_reached():
            self._finish()
        while not self._buffer:
            if self._state.done:
                raise StopIteration
            if not self._state.has_more:
                self._finish()
                raise StopIteration
            self._fetch()

        self._state.items_yielded += 1
        return self._buffer.popleft()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def command(self) -> Command:
        return self._command

    @property
    def options(self) -> IterationOptions:
        return self._options

    @property
    def state(self) -> IteratorState:
        """A snapshot of the current pagination state."""
        return self._state.model_copy()

    @property
    def pages_fetched(self) -> int:
        return self._state.pages_fetched

    @property
    def done(self) -> bool:
        return self._state.done

    def to_list(self) -> list[Any]:
        """Drain the iterator into a list."""
        return list(self)

    def close(self) -> None:
        """Stop iterating and release the executor's http client.

        Safe to call more than once. Later advances raise :class:`StopIteration`.
        """
        if not self._state.done:
            self._finish()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _limit_reached(self) -> bool:
        limit = self._options.limit
        return limit is not None and self._state.items_yielded >= limit

    def _finish(self) -> None:
        self._state.done = True
        self._state.has_more = False
        self._state.cursor = None
        self._buffer.clear()
        # Executors reopen their http client on demand.
        self._command.executor.close()

    def _page_size(self) -> Optional[int]:
        size = self._options.page_size
        if self._options.limit is None:
            return size
        if size is None:
            original = self._command.parameters.get(self._policy.page_size_param)
            if original is None:
                return None
            size = int(original)
        remaining = self._options.limit - self._state.items_yielded
        return max(1, min(size, remaining))

    def _fetch(self) -> None:
        overrides: dict[str, Any] = {}
        page_size = self._page_size()
        if page_size is not None:
            overrides[self._policy.page_size_param] = page_size
        previous_cursor = self._state.cursor
        if previous_cursor is not None:
            overrides[self._policy.cursor_param] = previous_cursor

        command = self._command.with_parameters(**overrides)
        debug(
            f"Fetching page {self._state.pages_fetched + 1} of "
            f"{command.executor.resource}.{command.name} (cursor={previous_cursor})"
        )
        page = command.execute()

        items, has_more = self._read_page(page)
        self._state.pages_fetched += 1
        self._buffer.extend(items)

        cursor = self._cursor_for(items[-1]) if items else None
        self._state.cursor = cursor
        self._state.has_more = (
            has_more and bool(items) and cursor is not None and cursor != previous_cursor
        )

    def _read_page(self, page: Any) -> tuple[list[Any], bool]:
        if isinstance(page, list):
            return page, False
        if isinstance(page, Mapping):
            items = page.get(self._policy.items_key) or []
            if not isinstance(items, list):
                raise TransportError(
                    f"List response field '{self._policy.items_key}' is not an array",
                    body=page,
                )
            return items, bool(page.get(self._policy.has_more_key, False))
        raise TransportError(
            f"Unexpected list response from {self._command.executor.resource}."
            f"{self._command.name}: {type(page).__name__}",
            body=page,
        )

    def _cursor_for(self, item: Any) -> Optional[str]:
        if self._options.cursor is not None:
            return self._options.cursor(item)
        if isinstance(item, Mapping):
            value = item.get(self._policy.cursor_field)
            return str(value) if value is not None else None
        return None
