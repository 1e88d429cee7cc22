"""Built-in CLI commands for ``manifestapi``.

Each sub-module defines one Typer command or sub-app, registered on the root
application in :mod:`manifestapi.app`.

Sub-modules:
    common: Client construction from CLI context and error handling.
    call: ``manifestapi call`` -- invoke one operation.
    listing: ``manifestapi list`` -- iterate a paginated list operation.
    inspect: ``manifestapi inspect`` -- browse the manifests.
    config: ``manifestapi config`` -- view and modify stored settings.
"""
