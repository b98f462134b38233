"""
Formatting helpers shared by the terminal panels.
"""
from __future__ import annotations


def color_for_pnl(value: float) -> str:
    """Get color for P&L."""
    if value > 0:
        return "green"
    elif value < 0:
        return "red"
    return "white"


def color_for_action(action: str) -> str:
    a = (action or "").lower()
    if a in {"buy", "buy now"}:
        return "bold green"
    if a in {"sell", "ignore"}:
        return "bold red"
    if a in {"pass"}:
        return "red"
    if a in {"speculate"}:
        return "magenta"
    return "yellow"


def color_for_score(score: float) -> str:
    """Color for a 0-100 score (higher = stronger)."""
    if score >= 80:
        return "bold green"
    if score >= 60:
        return "green"
    if score >= 40:
        return "yellow"
    return "red"


def utilization_band(ratio: float) -> str:
    """Presentation band for a 0..1 request-budget utilization."""
    pct = ratio * 100.0
    if pct > 80:
        return "critical"
    if pct > 50:
        return "elevated"
    return "nominal"


BAND_COLORS = {"nominal": "green", "elevated": "yellow", "critical": "red"}


def render_bar(ratio: float, width: int = 20) -> str:
    ratio = max(0.0, min(1.0, ratio))
    filled = int(round(ratio * width))
    color = BAND_COLORS[utilization_band(ratio)]
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]"


def format_currency(value: float, decimals: int = 2) -> str:
    """Format a currency value."""
    return f"${value:,.{decimals}f}"


def format_pct(value: float, decimals: int = 2, show_sign: bool = True) -> str:
    """Format a percentage value."""
    if show_sign:
        return f"{value:+.{decimals}f}%"
    return f"{value:.{decimals}f}%"
