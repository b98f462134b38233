from __future__ import annotations

import typer

app = typer.Typer(add_completion=False, help="Market Mind: AI market-intelligence dashboard")
scan_app = typer.Typer(add_completion=False, help="Grounded market scans (trends, tech, AHP, matrix)")
app.add_typer(scan_app, name="scan")
holdings_app = typer.Typer(add_completion=False, help="Local portfolio holdings")
app.add_typer(holdings_app, name="holdings")
scans_app = typer.Typer(add_completion=False, help="Saved tech-scan history")
app.add_typer(scans_app, name="scans")

_COMMANDS_REGISTERED = False


def _register_commands() -> None:
    global _COMMANDS_REGISTERED
    if _COMMANDS_REGISTERED:
        return
    # Import here to keep `market_mind.cli` lightweight at import time.
    from market_mind.cli_commands.analysis_cmd import register as register_analysis
    from market_mind.cli_commands.holdings_cmd import register as register_holdings
    from market_mind.cli_commands.scans_cmd import register as register_scans
    from market_mind.cli_commands.usage_cmd import register as register_usage

    register_analysis(app, scan_app)
    register_holdings(holdings_app)
    register_scans(scans_app)
    register_usage(app)
    _COMMANDS_REGISTERED = True


def main():
    _register_commands()
    app()


# Register commands when imported as a console-script entrypoint (`pyproject.toml` uses `market_mind.cli:app`).
_register_commands()


if __name__ == "__main__":
    main()
