from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperationKind(str, Enum):
    LYNCH = "lynch"
    MANAGER = "manager"
    TRENDS = "trends"
    DIGEST = "digest"
    TECH = "tech"
    AHP = "ahp"
    MATRIX = "matrix"

    @property
    def is_persona(self) -> bool:
        return self in (OperationKind.LYNCH, OperationKind.MANAGER)


# Launched together by a full refresh (everything that takes no caller input).
SCAN_KINDS: tuple[OperationKind, ...] = (
    OperationKind.DIGEST,
    OperationKind.TRENDS,
    OperationKind.TECH,
    OperationKind.AHP,
    OperationKind.MATRIX,
)


class Tier(str, Enum):
    FREE = "FREE"
    PRO = "PRO"


class LynchCategory(str, Enum):
    SLOW_GROWERS = "Slow Growers"
    STALWARTS = "Stalwarts"
    FAST_GROWERS = "Fast Growers"
    CYCLICALS = "Cyclicals"
    TURNAROUNDS = "Turnarounds"
    ASSET_PLAYS = "Asset Plays"
    UNKNOWN = "Unknown"


class LynchAction(str, Enum):
    BUY = "Buy"
    HOLD = "Hold"
    PASS = "Pass"


class ManagerAction(str, Enum):
    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"


class MatrixAction(str, Enum):
    BUY_NOW = "Buy Now"
    WATCHLIST = "Watchlist"
    SPECULATE = "Speculate"
    IGNORE = "Ignore"


def _title_case(v):
    if isinstance(v, str):
        return v.strip().title()
    return v


class Source(BaseModel):
    title: str = ""
    uri: str


class LynchVerdict(BaseModel):
    ticker: str = ""
    category: LynchCategory = LynchCategory.UNKNOWN
    thesis: str = ""
    what_to_check: List[str] = Field(default_factory=list)
    action: LynchAction

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, v):
        t = _title_case(v)
        known = {c.value for c in LynchCategory}
        return t if t in known else LynchCategory.UNKNOWN.value

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        return _title_case(v)


class ManagerVerdict(BaseModel):
    summary: str = ""
    key_risks: List[str] = Field(default_factory=list)
    market_impact: str = ""
    verdict: str = ""
    action: ManagerAction
    sources: List[Source] = Field(default_factory=list)

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        return _title_case(v)


class TrendItem(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    ticker: str
    company: str = ""
    sector: str = ""
    price_trend: str = ""
    catalyst: str = ""


class TechStockItem(BaseModel):
    # Levels arrive as display strings ("$182.40", "+12%") but some models emit bare numbers.
    model_config = ConfigDict(coerce_numbers_to_str=True)

    ticker: str
    name: str = ""
    current_price: str = ""
    support_level: str = ""
    resistance_level: str = ""
    target_1q: str = ""
    upside: str = ""
    reasoning: str = ""


class AhpFactors(BaseModel):
    value: float = 0.0
    growth: float = 0.0
    momentum: float = 0.0
    quality: float = 0.0


class AhpStockItem(BaseModel):
    rank: int
    ticker: str
    company: str = ""
    sector: str = ""
    ahp_score: float = 0.0  # 0-100
    factors: AhpFactors = Field(default_factory=AhpFactors)  # each 0-10
    reasoning: str = ""


class MatrixItem(BaseModel):
    ticker: str
    urgency: float = 0.0  # 0-100, technical strength / catalyst
    importance: float = 0.0  # 0-100, fundamental quality / upside
    action: MatrixAction = MatrixAction.WATCHLIST
    reason: str = ""

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        return _title_case(v)

    @property
    def quadrant(self) -> str:
        urgent = self.urgency >= 50
        important = self.importance >= 50
        if urgent and important:
            return "Do First"
        if important:
            return "Schedule"
        if urgent:
            return "Delegate"
        return "Eliminate"


class HoldingPosition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    ticker: str
    shares: float
    avg_price: float = Field(alias="avgPrice")


class SavedScanSnapshot(BaseModel):
    id: str
    name: str
    timestamp: int  # epoch milliseconds
    data: List[TechStockItem] = Field(default_factory=list)


class UsageRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_requests: int = Field(default=0, alias="totalRequests", ge=0)
    api_tier: Tier = Field(default=Tier.FREE, alias="apiTier")


class SessionResultsRecord(BaseModel):
    """Terminal results that survive a restart; field aliases are the on-disk keys."""

    model_config = ConfigDict(populate_by_name=True)

    lynch_result: Optional[LynchVerdict] = Field(default=None, alias="lynchResult")
    manager_result: Optional[ManagerVerdict] = Field(default=None, alias="managerResult")
    trends: Optional[List[TrendItem]] = None
    dime_brief: Optional[str] = Field(default=None, alias="dimeBrief")
    tech_stocks: Optional[List[TechStockItem]] = Field(default=None, alias="techStocks")
    ahp_ranking: Optional[List[AhpStockItem]] = Field(default=None, alias="ahpRanking")
    matrix_data: Optional[List[MatrixItem]] = Field(default=None, alias="matrixData")


# Result slot <-> persisted record field.
RESULT_FIELDS: dict[OperationKind, str] = {
    OperationKind.LYNCH: "lynch_result",
    OperationKind.MANAGER: "manager_result",
    OperationKind.TRENDS: "trends",
    OperationKind.DIGEST: "dime_brief",
    OperationKind.TECH: "tech_stocks",
    OperationKind.AHP: "ahp_ranking",
    OperationKind.MATRIX: "matrix_data",
}
