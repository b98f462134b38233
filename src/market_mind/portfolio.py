"""Holdings valuation against a live (or simulated) price map."""
from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from typing import Iterable, Mapping

from market_mind.models import HoldingPosition


@dataclass(frozen=True)
class PositionValuation:
    holding: HoldingPosition
    price: float
    market_value: float
    cost: float
    pnl: float
    pnl_pct: float


@dataclass(frozen=True)
class PortfolioSummary:
    positions: list[PositionValuation]
    total_equity: float
    total_cost: float
    total_pnl: float
    total_pnl_pct: float


def new_holding(ticker: str, shares: float, avg_price: float) -> HoldingPosition:
    t = (ticker or "").strip().upper()
    if not t:
        raise ValueError("ticker is required")
    if float(shares) <= 0:
        raise ValueError("shares must be positive")
    if float(avg_price) <= 0:
        raise ValueError("average price must be positive")
    return HoldingPosition(id=uuid.uuid4().hex, ticker=t, shares=float(shares), avg_price=float(avg_price))


def _pct(num: float, den: float) -> float:
    return (num / den) * 100.0 if den > 0 else 0.0


def value_portfolio(
    holdings: Iterable[HoldingPosition],
    prices: Mapping[str, float] | None = None,
) -> PortfolioSummary:
    """
    Value each position at ``prices[ticker]`` (falling back to its average cost when unpriced).

    An empty book is worth 0 with a 0% P/L.
    """
    prices = prices or {}
    rows: list[PositionValuation] = []
    for h in holdings:
        quoted = prices.get(h.ticker)
        price = float(h.avg_price if quoted is None else quoted)
        value = price * h.shares
        cost = h.avg_price * h.shares
        rows.append(
            PositionValuation(
                holding=h,
                price=price,
                market_value=value,
                cost=cost,
                pnl=value - cost,
                pnl_pct=_pct(value - cost, cost),
            )
        )
    equity = sum(r.market_value for r in rows)
    cost = sum(r.cost for r in rows)
    return PortfolioSummary(
        positions=rows,
        total_equity=equity,
        total_cost=cost,
        total_pnl=equity - cost,
        total_pnl_pct=_pct(equity - cost, cost),
    )


def simulate_prices(
    holdings: Iterable[HoldingPosition],
    prices: Mapping[str, float] | None = None,
    *,
    rng: random.Random | None = None,
    max_step_pct: float = 0.5,
) -> dict[str, float]:
    """One random-walk tick: each price moves by at most +/- max_step_pct percent."""
    rng = rng or random.Random()
    out = dict(prices or {})
    seen: set[str] = set()
    for h in holdings:
        if h.ticker in seen:
            continue
        seen.add(h.ticker)
        quoted = out.get(h.ticker)
        current = float(h.avg_price if quoted is None else quoted)
        step = (rng.random() - 0.5) * 2.0 * (max_step_pct / 100.0)
        out[h.ticker] = current * (1.0 + step)
    return out
