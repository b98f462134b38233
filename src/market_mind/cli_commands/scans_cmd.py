from __future__ import annotations

import typer


def register(scans_app: typer.Typer) -> None:
    @scans_app.command("list")
    def list_scans():
        """List saved tech scans (newest first)."""
        from market_mind.cli_commands.display import render_saved_scans
        from market_mind.cli_commands.runtime import build_controller
        from market_mind.utils.logging import console

        controller = build_controller()
        if not controller.saved_scans:
            console.print("[dim]No saved scans. Run `market-mind scan tech` first.[/dim]")
            return
        console.print(render_saved_scans(controller.saved_scans))

    @scans_app.command("rename")
    def rename(
        scan_id: str = typer.Argument(..., help="Scan id (prefix is enough)"),
        name: str = typer.Argument(..., help="New name"),
    ):
        """Rename a saved scan."""
        from market_mind.cli_commands.runtime import build_controller, resolve_id
        from market_mind.utils.logging import console

        controller = build_controller()
        full = resolve_id((s.id for s in controller.saved_scans), scan_id, "scan")
        snap = controller.rename_scan(full, name)
        console.print(f"[green]Renamed[/green] {full[:8]} -> {snap.name}")

    @scans_app.command("load")
    def load(scan_id: str = typer.Argument(..., help="Scan id (prefix is enough)")):
        """Make a saved scan the current tech result."""
        from market_mind.cli_commands.display import render_tech
        from market_mind.cli_commands.runtime import build_controller, resolve_id
        from market_mind.utils.logging import console

        controller = build_controller()
        full = resolve_id((s.id for s in controller.saved_scans), scan_id, "scan")
        snap = controller.load_scan(full)
        console.print(render_tech(list(snap.data), title=f"Tech Zone: {snap.name}"))

    @scans_app.command("delete")
    def delete(scan_id: str = typer.Argument(..., help="Scan id (prefix is enough)")):
        """Delete a saved scan."""
        from market_mind.cli_commands.runtime import build_controller, resolve_id
        from market_mind.utils.logging import console

        controller = build_controller()
        full = resolve_id((s.id for s in controller.saved_scans), scan_id, "scan")
        controller.delete_scan(full)
        console.print(f"[yellow]Deleted[/yellow] {full[:8]}")
