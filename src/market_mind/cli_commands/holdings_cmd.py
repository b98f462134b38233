from __future__ import annotations

from typing import List, Optional

import typer


def _parse_prices(pairs: List[str]) -> dict[str, float]:
    out: dict[str, float] = {}
    for raw in pairs:
        ticker, sep, price = raw.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected TICKER=PRICE, got {raw!r}")
        try:
            out[ticker.strip().upper()] = float(price)
        except ValueError:
            raise typer.BadParameter(f"Bad price in {raw!r}") from None
    return out


def register(holdings_app: typer.Typer) -> None:
    @holdings_app.command("add")
    def add(
        ticker: str = typer.Argument(..., help="Ticker symbol"),
        shares: float = typer.Argument(..., help="Share count"),
        avg_price: float = typer.Argument(..., help="Average cost per share"),
    ):
        """Add a position to the local portfolio."""
        from market_mind.cli_commands.runtime import build_controller
        from market_mind.utils.logging import console

        controller = build_controller()
        try:
            h = controller.add_holding(ticker, shares, avg_price)
        except ValueError as e:
            raise typer.BadParameter(str(e)) from None
        console.print(f"[green]Added[/green] {h.ticker} x{h.shares:g} @ {h.avg_price:,.2f} (id {h.id[:8]})")

    @holdings_app.command("remove")
    def remove(holding_id: str = typer.Argument(..., help="Holding id (prefix is enough)")):
        """Remove a position by id."""
        from market_mind.cli_commands.runtime import build_controller, resolve_id
        from market_mind.utils.logging import console

        controller = build_controller()
        full = resolve_id((h.id for h in controller.holdings), holding_id, "holding")
        controller.remove_holding(full)
        console.print(f"[yellow]Removed[/yellow] {full[:8]}")

    @holdings_app.command("list")
    def list_holdings(
        price: List[str] = typer.Option([], "--price", help="Mark a ticker, e.g. --price NVDA=912.5 (repeatable)"),
        simulate: int = typer.Option(0, "--simulate", min=0, help="Apply N random-walk price ticks"),
        seed: Optional[int] = typer.Option(None, "--seed", help="Seed for --simulate"),
    ):
        """Value holdings at the given (or simulated) prices."""
        import random

        from market_mind.cli_commands.display import render_holdings
        from market_mind.cli_commands.runtime import build_controller
        from market_mind.portfolio import simulate_prices, value_portfolio
        from market_mind.utils.logging import console

        controller = build_controller()
        holdings = controller.holdings
        if not holdings:
            console.print("[dim]No holdings yet. Add one with `market-mind holdings add`.[/dim]")
            return
        prices = _parse_prices(price)
        rng = random.Random(seed)
        for _ in range(simulate):
            prices = simulate_prices(holdings, prices, rng=rng)
        console.print(render_holdings(value_portfolio(holdings, prices)))
