"""``manifestapi list`` -- walk every page of a resource's list operation."""

from __future__ import annotations

from typing import Optional

import typer

from manifestapi.commands.common import build_client, handle_errors, parse_data
from manifestapi.output import format_response, info
from manifestapi.resolver import ITERATOR_SUFFIX


def list_command(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="Resource name, e.g. customers."),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", min=0, help="Stop after this many items."
    ),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", min=1, help="Items requested per page."
    ),
    starting_after: Optional[str] = typer.Option(
        None, "--starting-after", help="Cursor to start after."
    ),
    data: Optional[list[str]] = typer.Option(
        None, "--data", "-d", help="List parameter as key=value (repeatable)."
    ),
) -> None:
    """Iterate RESOURCE's list operation across pages and print all items.

    Example::

        manifestapi list charges --limit 25 -d customer=cus_123
    """
    with handle_errors():
        parameters = parse_data(data)
        client = build_client(ctx)
        options = {"limit": limit, "page_size": page_size, "starting_after": starting_after}
        with client.call(f"{resource}{ITERATOR_SUFFIX}", parameters, options) as iterator:
            items = iterator.to_list()
        info(f"{len(items)} items in {iterator.pages_fetched} pages")
        format_response(items)
