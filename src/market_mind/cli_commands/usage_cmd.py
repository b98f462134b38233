from __future__ import annotations

import typer


def register(app: typer.Typer) -> None:
    @app.command("usage")
    def usage():
        """Show the request meter (rolling window, lifetime total, tier budget)."""
        from market_mind.cli_commands.display import render_usage
        from market_mind.cli_commands.runtime import build_controller
        from market_mind.utils.logging import console

        controller = build_controller()
        console.print(render_usage(controller.tracker.snapshot()))

    @app.command("tier")
    def tier(value: str = typer.Argument("toggle", help="FREE|PRO|toggle")):
        """Set (or toggle) the API tier used for the budget meter."""
        from market_mind.cli_commands.runtime import build_controller
        from market_mind.models import Tier
        from market_mind.utils.logging import console

        controller = build_controller()
        v = value.strip().upper()
        if v == "TOGGLE":
            new = controller.toggle_tier()
        else:
            try:
                new = Tier(v)
            except ValueError:
                raise typer.BadParameter("tier must be FREE, PRO or toggle") from None
            controller.set_tier(new)
        console.print(f"Tier: [bold]{new.value}[/bold] (budget {controller.tracker.budget()}/min)")
