"""``manifestapi call`` -- invoke a single manifest operation."""

from __future__ import annotations

from typing import Optional

import typer

from manifestapi.client.executor import Executor
from manifestapi.commands.common import build_client, handle_errors, parse_data
from manifestapi.exceptions import InvalidUsageError
from manifestapi.output import format_response


def call_command(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="Resource name, e.g. charges."),
    operation: str = typer.Argument(..., help="Operation name, e.g. find."),
    data: Optional[list[str]] = typer.Option(
        None, "--data", "-d", help="Operation parameter as key=value (repeatable)."
    ),
) -> None:
    """Invoke OPERATION on RESOURCE and print the response.

    Example::

        manifestapi call charges find -d id=ch_123
        manifestapi call charges create -d amount=2000 -d currency=usd
    """
    with handle_errors():
        parameters = parse_data(data)
        client = build_client(ctx)
        target = client.call(resource)
        if not isinstance(target, Executor):
            raise InvalidUsageError(
                f"'{resource}' names an iterator; use `manifestapi list` instead"
            )
        with target as executor:
            result = executor.invoke(operation, parameters)
        if result is not None:
            format_response(result)
