"""Persona instructions, task prompts and output schemas for each operation kind."""
from __future__ import annotations

from typing import Any

MANAGER_SYSTEM_PROMPT = """
You are a seasoned Professional Fund Manager.
Analysis style: Formal, data-driven, focused on macro impact and risk management.
Analyze the provided news. Structure in JSON:
- summary (Thai)
- key_risks (Thai array)
- market_impact (Thai)
- verdict: "Bullish", "Bearish", or "Neutral" + reason (Thai)
- action: "Buy", "Hold", "Sell"
""".strip()

LYNCH_SYSTEM_PROMPT = """
You are Peter Lynch.
Style: Look for the story, classify into 6 categories (Slow Growers, Stalwarts, Fast Growers, Cyclicals, Turnarounds, Asset Plays).
Structure in JSON:
- ticker
- category
- thesis (Thai)
- what_to_check (Thai array)
- action: "Buy", "Hold", "Pass"
""".strip()

# Strict schema for the Lynch verdict (every property required, no extras).
LYNCH_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "ticker": {"type": "string"},
        "category": {
            "type": "string",
            "enum": [
                "Slow Growers",
                "Stalwarts",
                "Fast Growers",
                "Cyclicals",
                "Turnarounds",
                "Asset Plays",
                "Unknown",
            ],
        },
        "thesis": {"type": "string"},
        "what_to_check": {"type": "array", "items": {"type": "string"}},
        "action": {"type": "string", "enum": ["Buy", "Hold", "Pass"]},
    },
    "required": ["ticker", "category", "thesis", "what_to_check", "action"],
    "additionalProperties": False,
}


def lynch_contents(news_text: str) -> str:
    return f"Analyze this news in Peter Lynch style:\n\n{news_text}"


def manager_contents(news_text: str) -> str:
    return f"Analyze this market news. Use Google Search for facts:\n\n{news_text}"


TRENDS_PROMPT = (
    "Find top 10 trending US stocks in AI, Biotech, and Energy sectors via Search. "
    "Return JSON array with fields: ticker, company, sector, price_trend, catalyst."
)

DIGEST_PROMPT = "สรุปตลาดหุ้นสหรัฐฯ เมื่อคืน สไตล์ App Dime ใส่ Emoji เยอะๆ ภาษาไทย"

TECH_PROMPT = (
    "Scan 32 tech stocks for 1Q trade. Support/Resistance/Upside/Reasoning in Thai. "
    "Return JSON array with fields: ticker, name, current_price, support_level, "
    "resistance_level, target_1q, upside, reasoning."
)

AHP_PROMPT = (
    "Perform AHP ranking for top 30 S&P500 stocks. Weight: Growth 30, Value 25, Momentum 25, Quality 20. "
    "Return JSON array with fields: rank, ticker, company, sector, ahp_score (0-100), "
    "factors {value, growth, momentum, quality} (0-10 each), reasoning."
)

MATRIX_PROMPT = (
    "Analyze 8 trending stocks for Eisenhower Matrix (Urgency vs Importance). "
    "Return JSON array with fields: ticker, urgency (0-100), importance (0-100), "
    'action ("Buy Now" | "Watchlist" | "Speculate" | "Ignore"), reason.'
)
