"""
Themed rich panels for every result kind, the usage meter and the lists.

Each renderer is a pure function returning a rich renderable; commands decide where to print.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from rich.console import Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from market_mind.models import (
    AhpStockItem,
    LynchVerdict,
    ManagerVerdict,
    MatrixItem,
    OperationKind,
    SavedScanSnapshot,
    TechStockItem,
    TrendItem,
)
from market_mind.portfolio import PortfolioSummary
from market_mind.session import AnalysisSession
from market_mind.usage import UsageSnapshot
from market_mind.utils.formatting import (
    BAND_COLORS,
    color_for_action,
    color_for_pnl,
    color_for_score,
    format_currency,
    format_pct,
    render_bar,
    utilization_band,
)

PANEL_TITLES: dict[OperationKind, str] = {
    OperationKind.LYNCH: "Peter Lynch",
    OperationKind.MANAGER: "Fund Manager",
    OperationKind.TRENDS: "US Scanner",
    OperationKind.DIGEST: "US Market Digest",
    OperationKind.TECH: "Tech Zone",
    OperationKind.AHP: "Quant (AHP)",
    OperationKind.MATRIX: "Strategy Matrix",
}


def render_lynch(v: LynchVerdict) -> Panel:
    parts: list[Any] = [
        Text.from_markup(
            f"[bold]{escape(v.ticker) or '—'}[/bold]   [magenta]{v.category.value}[/magenta]   "
            f"[{color_for_action(v.action.value)}]{v.action.value.upper()}[/]\n"
        ),
        Text(v.thesis + "\n"),
    ]
    if v.what_to_check:
        parts.append(Text.from_markup("[bold]What to check[/bold]"))
        parts.extend(Text(f"  • {item}") for item in v.what_to_check)
    return Panel(Group(*parts), title=PANEL_TITLES[OperationKind.LYNCH], border_style="magenta")


def render_manager(v: ManagerVerdict) -> Panel:
    parts: list[Any] = [
        Text.from_markup(f"[{color_for_action(v.action.value)}]{v.action.value.upper()}[/]   {escape(v.verdict)}\n"),
        Text(v.summary + "\n"),
    ]
    if v.market_impact:
        parts.append(Text.from_markup(f"[bold]Market impact[/bold]\n{escape(v.market_impact)}\n"))
    if v.key_risks:
        parts.append(Text.from_markup("[bold]Key risks[/bold]"))
        parts.extend(Text(f"  • {risk}") for risk in v.key_risks)
    if v.sources:
        parts.append(Text.from_markup("\n[bold]Sources[/bold]"))
        for i, src in enumerate(v.sources, start=1):
            parts.append(Text.from_markup(f"  [dim][{i}][/dim] {escape(src.title or src.uri)} [link={src.uri}]{escape(src.uri)}[/link]"))
    return Panel(Group(*parts), title=PANEL_TITLES[OperationKind.MANAGER], border_style="cyan")


def render_digest(text: str) -> Panel:
    return Panel(Text(text), title=PANEL_TITLES[OperationKind.DIGEST], border_style="green")


def render_trends(items: list[TrendItem]) -> Table:
    t = Table(title=PANEL_TITLES[OperationKind.TRENDS], header_style="bold magenta")
    t.add_column("Ticker", style="bold")
    t.add_column("Company")
    t.add_column("Sector", style="dim")
    t.add_column("Trend", style="green")
    t.add_column("Catalyst")
    for it in items:
        t.add_row(*(escape(x) for x in (it.ticker, it.company, it.sector, it.price_trend, it.catalyst)))
    return t


def render_tech(items: list[TechStockItem], title: str | None = None) -> Table:
    t = Table(title=title or PANEL_TITLES[OperationKind.TECH], header_style="bold cyan")
    t.add_column("Ticker", style="bold")
    t.add_column("Price", justify="right")
    t.add_column("Support", justify="right", style="green")
    t.add_column("Resistance", justify="right", style="red")
    t.add_column("1Q Target", justify="right")
    t.add_column("Upside", justify="right", style="bold green")
    t.add_column("Reasoning")
    for it in items:
        t.add_row(
            *(
                escape(x)
                for x in (it.ticker, it.current_price, it.support_level, it.resistance_level, it.target_1q, it.upside, it.reasoning)
            )
        )
    return t


def render_ahp(items: list[AhpStockItem]) -> Table:
    t = Table(title=PANEL_TITLES[OperationKind.AHP], header_style="bold yellow")
    t.add_column("#", justify="right")
    t.add_column("Ticker", style="bold")
    t.add_column("Sector", style="dim")
    t.add_column("Score", justify="right")
    t.add_column("G/V/M/Q", justify="right", style="dim")
    t.add_column("Reasoning")
    for it in sorted(items, key=lambda x: x.rank):
        f = it.factors
        t.add_row(
            str(it.rank),
            escape(it.ticker),
            escape(it.sector),
            f"[{color_for_score(it.ahp_score)}]{it.ahp_score:.0f}[/]",
            f"{f.growth:.0f}/{f.value:.0f}/{f.momentum:.0f}/{f.quality:.0f}",
            escape(it.reasoning),
        )
    return t


def render_matrix(items: list[MatrixItem]) -> Table:
    t = Table(title=PANEL_TITLES[OperationKind.MATRIX], header_style="bold blue")
    t.add_column("Ticker", style="bold")
    t.add_column("Quadrant")
    t.add_column("Urgency", justify="right")
    t.add_column("Importance", justify="right")
    t.add_column("Action")
    t.add_column("Reason")
    for it in sorted(items, key=lambda x: (x.importance + x.urgency), reverse=True):
        t.add_row(
            escape(it.ticker),
            it.quadrant,
            f"{it.urgency:.0f}",
            f"{it.importance:.0f}",
            f"[{color_for_action(it.action.value)}]{it.action.value}[/]",
            escape(it.reason),
        )
    return t


RENDERERS = {
    OperationKind.LYNCH: render_lynch,
    OperationKind.MANAGER: render_manager,
    OperationKind.TRENDS: render_trends,
    OperationKind.DIGEST: render_digest,
    OperationKind.TECH: render_tech,
    OperationKind.AHP: render_ahp,
    OperationKind.MATRIX: render_matrix,
}


def render_result(kind: OperationKind, result: Any) -> Any:
    if result is None:
        return Text.from_markup(f"[dim]{PANEL_TITLES[kind]}: no data (run it first)[/dim]")
    return RENDERERS[kind](result)


def render_error_banner(session: AnalysisSession) -> Panel | None:
    if not session.error:
        return None
    return Panel(Text(session.error), title="ERROR", border_style="bold red")


def render_usage(snap: UsageSnapshot) -> Panel:
    band = utilization_band(snap.utilization)
    color = BAND_COLORS[band]
    body = Text.from_markup(
        f"Tier: [bold]{snap.tier.value}[/bold]\n"
        f"Live RPM: {render_bar(snap.utilization)} [{color}]{snap.rolling}/{snap.budget}[/{color}] ({band})\n"
        f"Total requests: {snap.lifetime:,}"
    )
    return Panel.fit(body, title="API Usage", border_style=color)


def render_holdings(summary: PortfolioSummary) -> Table:
    t = Table(title="Holdings", header_style="bold blue")
    t.add_column("ID", style="dim")
    t.add_column("Ticker", style="bold")
    t.add_column("Shares", justify="right")
    t.add_column("Avg", justify="right")
    t.add_column("Price", justify="right")
    t.add_column("Value", justify="right")
    t.add_column("P/L %", justify="right")
    for row in summary.positions:
        h = row.holding
        t.add_row(
            h.id[:8],
            h.ticker,
            f"{h.shares:g}",
            format_currency(h.avg_price),
            format_currency(row.price),
            format_currency(row.market_value),
            f"[{color_for_pnl(row.pnl)}]{format_pct(row.pnl_pct)}[/]",
        )
    t.caption = (
        f"Total equity {format_currency(summary.total_equity)} | cost {format_currency(summary.total_cost)} | "
        f"P/L [{color_for_pnl(summary.total_pnl)}]{format_currency(summary.total_pnl)} "
        f"({format_pct(summary.total_pnl_pct)})[/]"
    )
    return t


def render_saved_scans(scans: Iterable[SavedScanSnapshot]) -> Table:
    t = Table(title="Saved tech scans", header_style="bold cyan")
    t.add_column("ID", style="dim")
    t.add_column("Name", style="bold")
    t.add_column("Created (UTC)")
    t.add_column("Items", justify="right")
    for s in scans:
        created = datetime.fromtimestamp(s.timestamp / 1000.0, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        t.add_row(s.id[:8], escape(s.name), created, str(len(s.data)))
    return t
