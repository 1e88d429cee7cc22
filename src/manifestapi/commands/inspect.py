"""``manifestapi inspect`` -- read-only views of the manifest tree.

Nothing here needs an API key or touches the network.
"""

from __future__ import annotations

import typer

from manifestapi.commands.common import build_client, handle_errors
from manifestapi.output import print_table

inspect_app = typer.Typer(no_args_is_help=True)


@inspect_app.command("resources")
def inspect_resources(ctx: typer.Context) -> None:
    """List the resources that have a manifest for the active version."""
    with handle_errors():
        client = build_client(ctx, require_key=False)
        rows: list[list[str]] = []
        for name in client.resources():
            manifest = client.store.load(name)
            rows.append([name, str(len(manifest.operations)), manifest.description or "-"])
        print_table(
            ["Resource", "Operations", "Description"],
            rows,
            title=f"Resources ({client.version})",
        )


@inspect_app.command("operations")
def inspect_operations(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="Resource name, e.g. charges."),
) -> None:
    """List RESOURCE's operations with verb, path and parameters."""
    with handle_errors():
        client = build_client(ctx, require_key=False)
        manifest = client.store.load(resource)
        rows: list[list[str]] = []
        for name, spec in manifest.operations.items():
            params = ", ".join(
                f"{p}*" if param.required else p for p, param in spec.parameters.items()
            )
            rows.append([name, spec.http_method.value, spec.uri, params or "-", spec.summary or "-"])
        print_table(
            ["Operation", "Method", "Path", "Parameters", "Summary"],
            rows,
            title=f"{manifest.name} ({manifest.version})",
        )


@inspect_app.command("errors")
def inspect_errors(
    ctx: typer.Context,
    resource: str = typer.Argument(..., help="Resource name, e.g. charges."),
) -> None:
    """Show RESOURCE's merged error table."""
    with handle_errors():
        client = build_client(ctx, require_key=False)
        manifest = client.store.load(resource)
        rows = [
            [code, spec.kind.value, spec.message] for code, spec in sorted(manifest.errors.items())
        ]
        print_table(["Status", "Kind", "Message"], rows, title=f"{manifest.name} errors")
