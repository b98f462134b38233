from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from market_mind.models import SCAN_KINDS, OperationKind


def _read_news(text: Optional[str], file: Optional[Path]) -> str:
    if file is not None:
        return file.read_text(encoding="utf-8")
    if text:
        return text
    raise typer.BadParameter("Provide news text as an argument or with --file")


def _print_outcome(controller, kinds) -> None:
    from market_mind.cli_commands.display import render_error_banner, render_result, render_usage
    from market_mind.utils.logging import console

    for kind in kinds:
        console.print(render_result(kind, controller.session.result(kind)))
    banner = render_error_banner(controller.session)
    if banner is not None:
        console.print(banner)
    console.print(render_usage(controller.tracker.snapshot()))


def _run_and_show(kinds: list[OperationKind], *, status: str) -> None:
    from market_mind.cli_commands.runtime import build_controller, run_operations

    controller = build_controller()
    run_operations(controller, lambda c: [c.run(k) for k in kinds], status=status)
    _print_outcome(controller, kinds)


def register(app: typer.Typer, scan_app: typer.Typer) -> None:
    @app.command("analyze")
    def analyze(
        text: Optional[str] = typer.Argument(None, help="News text to analyze"),
        file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Read news text from a file"),
        persona: str = typer.Option("both", "--persona", help="both|lynch|manager"),
    ):
        """
        Run the persona analyses on a news item.

        Examples:
            market-mind analyze "NVDA beats on data center revenue"
            market-mind analyze --file news.txt --persona lynch
        """
        from market_mind.cli_commands.runtime import build_controller, run_operations

        news = _read_news(text, file)
        if not news.strip():
            raise typer.BadParameter("News text is empty")
        p = persona.strip().lower()
        if p == "both":
            kinds = [OperationKind.LYNCH, OperationKind.MANAGER]
        elif p in {"lynch", "manager"}:
            kinds = [OperationKind(p)]
        else:
            raise typer.BadParameter("persona must be one of: both, lynch, manager")

        controller = build_controller()
        run_operations(controller, lambda c: [c.run(k, news) for k in kinds], status="Consulting the analysts...")
        _print_outcome(controller, kinds)

    @app.command("brief")
    def brief():
        """Fetch the grounded US market digest."""
        _run_and_show([OperationKind.DIGEST], status="Fetching market brief...")

    @app.command("refresh")
    def refresh():
        """Run every scan (digest, trends, tech, AHP, matrix) concurrently."""
        _run_and_show(list(SCAN_KINDS), status="Refreshing all scans...")

    @app.command("show")
    def show(
        kind: Optional[OperationKind] = typer.Argument(None, help="Result to show (default: all)"),
        as_json: bool = typer.Option(False, "--json", help="Print the stored result as JSON"),
    ):
        """Show the last persisted results without calling the model."""
        from market_mind.cli_commands.display import render_result
        from market_mind.cli_commands.runtime import build_controller
        from market_mind.utils.logging import console, log_event

        controller = build_controller()
        kinds = [kind] if kind is not None else list(OperationKind)
        if as_json:
            log_event("results", {k.value: controller.session.result(k) for k in kinds})
            return
        for k in kinds:
            console.print(render_result(k, controller.session.result(k)))

    @scan_app.command("trends")
    def scan_trends():
        """Trending US stocks with catalysts."""
        _run_and_show([OperationKind.TRENDS], status="Scanning trends...")

    @scan_app.command("tech")
    def scan_tech():
        """Tech-zone support/resistance scan (auto-saved to history)."""
        _run_and_show([OperationKind.TECH], status="Scanning tech zone...")

    @scan_app.command("ahp")
    def scan_ahp():
        """AHP-weighted stock ranking."""
        _run_and_show([OperationKind.AHP], status="Ranking with AHP...")

    @scan_app.command("matrix")
    def scan_matrix():
        """Urgency/importance strategy matrix."""
        _run_and_show([OperationKind.MATRIX], status="Building strategy matrix...")
