"""Derived, non-persisted investment metric models.

These are the return types of PlotCalculator. They are recomputed on
demand from a Plot and never stored.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .plot import ZoningStage


class InvestmentGrade(BaseModel):
    """Letter grade derived from the 1-10 investment score."""

    grade: str
    tier: str
    color: str


class ScoreLabel(BaseModel):
    label: str
    color: str


class CAGRResult(BaseModel):
    """Compound annual growth rate over the estimated holding period."""

    cagr: float = Field(..., description="Annual growth in percent, rounded to 0.1")
    years: int


class DaysOnMarket(BaseModel):
    days: int = Field(..., ge=0)
    label: str
    color: str


class DemandVelocity(BaseModel):
    """Views-per-day heuristic bucketed into a demand tier."""

    velocity: float = Field(..., ge=0, description="Views per day on market")
    tier: str = Field(..., description="hot, growing, steady or low")
    label: str
    color: str


class MonthlyPayment(BaseModel):
    """Fixed-rate loan payment estimate for a plot purchase."""

    monthly: int = Field(..., ge=0)
    down_payment: int = Field(..., ge=0)
    loan_amount: int = Field(..., ge=0)
    total_interest: int
    annual_rate: float
    years: int
    ltv: float


class ScoreFactor(BaseModel):
    """One component of the investment score."""

    key: str
    label: str
    points: float
    max_points: float
    normalized: float = Field(..., ge=0, le=1)
    explanation: str


class ScoreBreakdown(BaseModel):
    total: int = Field(..., ge=1, le=10)
    grade: InvestmentGrade
    factors: list[ScoreFactor] = Field(default_factory=list)


class InvestmentVerdict(BaseModel):
    """Headline recommendation for a plot relative to its market."""

    tier: str = Field(..., description="hot, excellent, good, fair or caution")
    label: str
    description: str


class PlotMetrics(BaseModel):
    """Basic per-plot figures shown on cards and detail pages."""

    price: int
    projected: int
    size_sqm: float
    dunam: float
    roi: float
    gross_profit: int
    price_per_sqm: float
    price_per_dunam: float
    projected_per_sqm: float


class BuildableValue(BaseModel):
    """Price per buildable unit and per sqm of floor area, from the zoning density."""

    estimated_units: int = Field(..., gt=0)
    total_buildable_area: float = Field(..., description="Estimated floor area in sqm")
    price_per_buildable_sqm: int
    price_per_unit: int
    efficiency_ratio: float = Field(..., description="Floor area per sqm of land")
    density: float = Field(..., description="Housing units per dunam")


class TransactionCosts(BaseModel):
    purchase_tax: int
    attorney_fees: int
    appraiser_fee: int
    registration_fee: int
    total: int
    total_with_purchase: int


class HoldingCosts(BaseModel):
    """Annual costs of holding an undeveloped plot."""

    arnona: int = Field(..., description="Municipal property tax")
    management: int
    opportunity_cost: int
    total_annual: int
    total_with_opportunity: int
    arnona_per_sqm: float


class ExitCosts(BaseModel):
    betterment_levy: int
    capital_gains: int
    agent_commission: int
    total_exit: int
    net_profit: int


class InvestmentPnL(BaseModel):
    """Full profit-and-loss projection over a holding period."""

    purchase_price: int
    projected_value: int
    holding_years: int
    transaction: TransactionCosts
    holding: HoldingCosts
    exit: ExitCosts
    total_holding_costs: int
    total_investment: int
    gross_profit: int
    net_profit: int
    true_roi: float
    headline_roi: float


class RiskLevel(BaseModel):
    level: int = Field(..., ge=1, le=5)
    label: str
    score: int
    factors: list[str] = Field(default_factory=list)


class TimelineStage(BaseModel):
    stage: ZoningStage
    duration_months: int
    status: str = Field(..., description="completed, current or future")


class InvestmentTimeline(BaseModel):
    stages: list[TimelineStage]
    current_stage: ZoningStage
    elapsed_months: int
    remaining_months: int
    total_months: int
    progress_pct: int
    estimated_year: int


class PlotPercentiles(BaseModel):
    """Where a plot ranks among its peers (0-100, None when not applicable)."""

    price: Optional[int] = None
    size: Optional[int] = None
    roi: Optional[int] = None
    price_per_sqm: Optional[int] = None


class AlternativeReturn(BaseModel):
    label: str
    rate: float
    future_value: int
    profit: int


class AlternativeReturns(BaseModel):
    """Land investment compared against a bank deposit and an index fund."""

    bank: AlternativeReturn
    stock: AlternativeReturn
    land: AlternativeReturn
    years: int
    inflation_rate: float
    real_returns: dict[str, float]
