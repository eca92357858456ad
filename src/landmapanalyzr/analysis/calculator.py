"""Investment metrics calculator for land plot analysis.

This module provides the per-plot formulas used throughout the catalog:
price per sqm, ROI, CAGR, loan payments, listing age and demand, the 1-10
investment score with its letter grade, and the Israeli cost model
(purchase tax, betterment levy, capital gains) behind the P&L projection.

Every formula tolerates malformed data: zero or missing denominators
resolve to 0 or None and never raise, so one bad record cannot break a
whole listing page.
"""

import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from ..config import Settings, config
from ..models.metrics import (
    AlternativeReturn,
    AlternativeReturns,
    BuildableValue,
    CAGRResult,
    DaysOnMarket,
    DemandVelocity,
    ExitCosts,
    HoldingCosts,
    InvestmentGrade,
    InvestmentPnL,
    InvestmentTimeline,
    InvestmentVerdict,
    MonthlyPayment,
    PlotMetrics,
    PlotPercentiles,
    RiskLevel,
    ScoreBreakdown,
    ScoreFactor,
    ScoreLabel,
    TimelineStage,
    TransactionCosts,
)
from ..models.plot import Plot, ZoningStage

logger = logging.getLogger(__name__)


# Israeli land transaction cost model.
# Sources: Israel Tax Authority purchase/betterment rules, typical attorney
# and appraiser fee ranges, Tabu registration fee.
COST_RATES = {
    "purchase_tax_pct": 0.06,  # Purchase tax on non-residential land
    "attorney_pct": 0.0175,  # Attorney fees incl. VAT
    "appraiser_pct": 0.003,  # Appraiser fee, clamped below
    "appraiser_min": 2000,
    "appraiser_max": 8000,
    "registration_fee": 167,  # Tabu registration
    "betterment_levy_pct": 0.5,  # Hetel hashbacha on the rezoning gain
    "capital_gains_pct": 0.25,  # Mas shevach on the taxable gain
    "agent_pct": 0.01,  # Agent commission on sale
    "opportunity_cost_pct": 0.08,  # Alternative yield on tied-up capital
    "arnona_per_sqm": 2.5,  # Municipal tax on undeveloped land
    "arnona_per_sqm_advanced": 5.0,  # Once a detailed plan is approved
    "management_per_sqm": 1.5,
}

# Acquisition costs deducted from the gain before capital gains tax
PURCHASE_COSTS_PCT = COST_RATES["purchase_tax_pct"] + COST_RATES["attorney_pct"]

ADVANCED_ZONING = {
    ZoningStage.DETAILED_PLAN_APPROVED,
    ZoningStage.DEVELOPER_TENDER,
    ZoningStage.BUILDING_PERMIT,
}

# Typical months spent reaching each planning stage from the previous one
STAGE_DURATION_MONTHS = {
    ZoningStage.AGRICULTURAL: 0,
    ZoningStage.MASTER_PLAN_DEPOSIT: 12,
    ZoningStage.MASTER_PLAN_APPROVED: 8,
    ZoningStage.DETAILED_PLAN_PREP: 10,
    ZoningStage.DETAILED_PLAN_DEPOSIT: 6,
    ZoningStage.DETAILED_PLAN_APPROVED: 6,
    ZoningStage.DEVELOPER_TENDER: 4,
    ZoningStage.BUILDING_PERMIT: 0,
}

ZONING_RISK = {
    ZoningStage.AGRICULTURAL: 30,
    ZoningStage.MASTER_PLAN_DEPOSIT: 25,
    ZoningStage.MASTER_PLAN_APPROVED: 18,
    ZoningStage.DETAILED_PLAN_PREP: 15,
    ZoningStage.DETAILED_PLAN_DEPOSIT: 10,
    ZoningStage.DETAILED_PLAN_APPROVED: 5,
    ZoningStage.DEVELOPER_TENDER: 3,
    ZoningStage.BUILDING_PERMIT: 1,
}

RISK_LABELS = {
    1: "Low risk",
    2: "Low-medium risk",
    3: "Medium risk",
    4: "Medium-high risk",
    5: "High risk",
}

# Benchmarks for the alternative-returns comparison
BANK_RATE = 0.045
STOCK_RATE = 0.09
INFLATION_RATE = 0.03

# Score pillars: ROI (0-4) + zoning (0-3) + readiness (0-3) = 10
SCORE_MAX_POINTS = {
    "roi": 4,
    "zoning": 3,
    "readiness": 3,
    "market": 1,
    "demand": 0.5,
}

_NUMBER = re.compile(r"(\d+)")


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class PlotCalculator:
    """Calculate investment metrics for a single land plot.

    Example:
        calc = PlotCalculator()

        # Quick figures
        print(f"{calc.price_per_sqm(plot):,.0f} ILS/sqm, ROI {calc.roi(plot):.0f}%")

        # Score and grade
        score = calc.investment_score(plot)
        print(f"Score: {score}/10 ({calc.grade(score).grade})")

        # Full P&L after taxes and holding costs
        pnl = calc.investment_pnl(plot, holding_years=5)
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize calculator.

        Args:
            settings: Optional Settings instance for mortgage defaults and
                      demand thresholds. Uses the global config if omitted.
        """
        self.settings = settings or config

    # =========================================================================
    # Core Metrics
    # =========================================================================

    def price_per_sqm(self, plot: Plot) -> float:
        """Price per square meter.

        Returns:
            Price / size, or 0 when the size is 0
        """
        if plot.size_sqm <= 0:
            return 0.0
        return plot.total_price / plot.size_sqm

    def roi(self, plot: Plot) -> float:
        """Projected return on investment percentage.

        ROI = (Projected Value - Price) / Price × 100

        Returns:
            ROI as percentage (e.g., 150.0), or 0 when the price is 0
        """
        if plot.total_price <= 0:
            return 0.0
        return (plot.projected_value - plot.total_price) / plot.total_price * 100

    def holding_years(self, readiness: Optional[str]) -> int:
        """Estimate the holding period from a readiness horizon.

        "1-3" -> 2, "3-5" -> 4, "5+" -> 7, any other number -> that number,
        otherwise 5 years.
        """
        if not readiness:
            return 5
        if "1-3" in readiness:
            return 2
        if "3-5" in readiness:
            return 4
        if "5+" in readiness or "5-" in readiness:
            return 7
        match = _NUMBER.search(readiness)
        if match:
            return int(match.group(1))
        return 5

    def cagr(self, roi_pct: float, readiness: Optional[str]) -> Optional[CAGRResult]:
        """Compound annual growth rate over the estimated holding period.

        CAGR = (1 + ROI/100)^(1/years) - 1

        Args:
            roi_pct: Total ROI percentage over the holding period
            readiness: Readiness horizon text (e.g. "3-5")

        Returns:
            CAGRResult, or None when ROI or the holding period is not positive
        """
        if not roi_pct or roi_pct <= 0 or not math.isfinite(roi_pct):
            return None
        years = self.holding_years(readiness)
        if years <= 0:
            return None
        rate = (math.pow(1 + roi_pct / 100, 1 / years) - 1) * 100
        return CAGRResult(cagr=round(rate, 1), years=years)

    def monthly_payment(
        self,
        price: float,
        ltv: Optional[float] = None,
        annual_rate: Optional[float] = None,
        years: Optional[int] = None,
    ) -> Optional[MonthlyPayment]:
        """Calculate a fixed-rate monthly loan payment.

        Uses the standard annuity formula:
        M = P × [r(1+r)^n] / [(1+r)^n - 1]

        Where:
            P = loan amount (price × LTV)
            r = monthly interest rate (annual rate / 12)
            n = number of payments (years × 12)

        A zero rate degrades to linear amortization (P / n).

        Args:
            price: Purchase price in ILS
            ltv: Loan-to-value ratio (default from settings, 0.5)
            annual_rate: Annual interest rate as decimal (default 0.06)
            years: Loan term in years (default 15)

        Returns:
            MonthlyPayment, or None when the price or the term is not positive
            or the LTV and rate are not usable numbers
        """
        ltv = self.settings.mortgage_ltv if ltv is None else ltv
        annual_rate = self.settings.mortgage_annual_rate if annual_rate is None else annual_rate
        years = self.settings.mortgage_years if years is None else years

        if not price or not math.isfinite(price) or price <= 0 or years <= 0:
            return None
        if not 0 <= ltv <= 1 or not math.isfinite(annual_rate):
            return None

        loan = round(price * ltv)
        down_payment = round(price) - loan
        monthly_rate = annual_rate / 12
        n = years * 12

        factor = math.pow(1 + monthly_rate, n) if monthly_rate > 0 else 1.0
        if factor - 1 > 0:
            monthly = round(loan * (monthly_rate * factor) / (factor - 1))
        else:
            # Rate too small to move (1 + r)^n off 1.0
            monthly = round(loan / n)

        return MonthlyPayment(
            monthly=monthly,
            down_payment=down_payment,
            loan_amount=loan,
            total_interest=monthly * n - loan,
            annual_rate=annual_rate,
            years=years,
            ltv=ltv,
        )

    # =========================================================================
    # Listing Age & Demand
    # =========================================================================

    def days_on_market(
        self,
        created_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> Optional[DaysOnMarket]:
        """Bucket the age of a listing into a display label.

        Args:
            created_at: When the plot was listed
            now: Reference time (defaults to the current UTC time)

        Returns:
            DaysOnMarket, or None without a creation date
        """
        if created_at is None:
            return None
        now = _as_utc(now or datetime.now(timezone.utc))
        days = max(0, (now - _as_utc(created_at)).days)

        s = self.settings
        if days <= s.new_listing_days:
            label, color = "New on market", "#22C55E"
        elif days <= s.listing_days_max:
            label, color = f"{days} days on market", "#84CC16"
        elif days <= s.listing_weeks_max_days:
            label, color = f"{days // 7} weeks on market", "#F59E0B"
        elif days <= s.listing_months_max_days:
            label, color = f"{days // 30} months on market", "#EF4444"
        else:
            label, color = f"{days // 365}+ years on market", "#EF4444"
        return DaysOnMarket(days=days, label=label, color=color)

    def demand_velocity(
        self,
        plot: Plot,
        now: Optional[datetime] = None,
    ) -> Optional[DemandVelocity]:
        """Views per day on market, bucketed into a demand tier.

        This is a presentation heuristic, not a measured quantity. The
        tier thresholds come from settings.

        Returns:
            DemandVelocity, or None without views or a creation date
        """
        if plot.views <= 0 or plot.created_at is None:
            return None
        now = _as_utc(now or datetime.now(timezone.utc))
        days = max(1, (now - plot.created_at).days)
        velocity = plot.views / days

        s = self.settings
        if velocity >= s.demand_hot_velocity:
            tier, label, color = "hot", "High demand", "#F97316"
        elif velocity >= s.demand_growing_velocity:
            tier, label, color = "growing", "Growing demand", "#22C55E"
        elif velocity >= s.demand_steady_velocity:
            tier, label, color = "steady", "Steady demand", "#3B82F6"
        else:
            tier, label, color = "low", "Low demand", "#94A3B8"
        return DemandVelocity(velocity=round(velocity, 1), tier=tier, label=label, color=color)

    # =========================================================================
    # Investment Score
    # =========================================================================

    def _roi_points(self, roi: float) -> float:
        return min(4.0, roi / 50)

    def _zoning_points(self, stage: ZoningStage) -> float:
        return stage.index / (len(ZoningStage) - 1) * 3

    def _readiness_points(self, readiness: str) -> float:
        if "1-3" in readiness:
            return 3.0
        if "3-5" in readiness:
            return 2.0
        if "5+" in readiness or "5-" in readiness:
            return 0.5
        return 1.5

    def investment_score(self, plot: Plot) -> int:
        """Calculate the overall investment score (1-10).

        Three pillars:
        - ROI: min(4, ROI / 50)
        - Zoning progress: stage index / 7 × 3
        - Readiness horizon: 1-3 years = 3, 3-5 = 2, 5+ = 0.5, unknown = 1.5

        Returns:
            Rounded score clamped to 1..10
        """
        raw = (
            self._roi_points(self.roi(plot))
            + self._zoning_points(plot.zoning_stage)
            + self._readiness_points(plot.readiness_estimate)
        )
        return max(1, min(10, round(raw)))

    def grade(self, score: float) -> InvestmentGrade:
        """Map a 1-10 score to a letter grade."""
        if score >= 9:
            return InvestmentGrade(grade="A+", tier="exceptional", color="#22C55E")
        if score >= 8:
            return InvestmentGrade(grade="A", tier="excellent", color="#22C55E")
        if score >= 7:
            return InvestmentGrade(grade="A-", tier="very-good", color="#4ADE80")
        if score >= 6:
            return InvestmentGrade(grade="B+", tier="good", color="#84CC16")
        if score >= 5:
            return InvestmentGrade(grade="B", tier="fair", color="#F59E0B")
        if score >= 4:
            return InvestmentGrade(grade="B-", tier="below-avg", color="#F97316")
        if score >= 3:
            return InvestmentGrade(grade="C+", tier="weak", color="#EF4444")
        return InvestmentGrade(grade="C", tier="poor", color="#DC2626")

    def score_label(self, score: float) -> ScoreLabel:
        if score >= 8:
            return ScoreLabel(label="excellent", color="#22C55E")
        if score >= 6:
            return ScoreLabel(label="good", color="#84CC16")
        if score >= 4:
            return ScoreLabel(label="fair", color="#F59E0B")
        return ScoreLabel(label="low", color="#EF4444")

    def score_breakdown(
        self,
        plot: Plot,
        area_avg_price_sqm: Optional[float] = None,
    ) -> ScoreBreakdown:
        """Explain the investment score factor by factor.

        Adds two bonus components to the base score: market position
        against the area average price per sqm, and listing demand from
        the view count.

        Args:
            plot: Plot to score
            area_avg_price_sqm: Average price per sqm in the plot's area

        Returns:
            ScoreBreakdown with one ScoreFactor per component
        """
        roi = self.roi(plot)
        roi_points = self._roi_points(roi)
        if roi >= 200:
            roi_text = f"Exceptional return of +{roi:.0f}%"
        elif roi >= 150:
            roi_text = f"Very high return of +{roi:.0f}%, above market average"
        elif roi >= 100:
            roi_text = f"Good return of +{roi:.0f}%, doubling the investment"
        elif roi >= 50:
            roi_text = f"Reasonable return of +{roi:.0f}%, above a bank deposit"
        else:
            roi_text = f"Low return of +{roi:.0f}%, compare alternatives"

        stage = plot.zoning_stage
        zoning_points = self._zoning_points(stage)
        if stage.index >= 6:
            zoning_text = f"{stage.value}: very close to construction"
        elif stage.index >= 4:
            zoning_text = f"{stage.value}: good planning progress"
        elif stage.index >= 2:
            zoning_text = f"{stage.value}: in progress, roughly 3-5 years"
        else:
            zoning_text = f"{stage.value}: early stage, long horizon"

        readiness_points = self._readiness_points(plot.readiness_estimate)
        readiness_text = {
            3.0: "1-3 year horizon, fast and liquid",
            2.0: "3-5 year horizon, medium term",
            0.5: "5+ year horizon, long term",
        }.get(readiness_points, "Unknown horizon")

        market_points = 0.0
        market_text = "Not enough data for an area comparison"
        psm = self.price_per_sqm(plot)
        if area_avg_price_sqm and area_avg_price_sqm > 0 and psm > 0:
            deviation = (psm - area_avg_price_sqm) / area_avg_price_sqm * 100
            if deviation < -15:
                market_points, market_text = 1.0, f"{abs(deviation):.0f}% below area average"
            elif deviation < -5:
                market_points, market_text = 0.6, f"{abs(deviation):.0f}% below area average"
            elif deviation <= 10:
                market_points, market_text = 0.3, "Priced in line with the area"
            else:
                market_text = f"{deviation:.0f}% above area average"

        demand_points = 0.0
        demand_text = "No demand data"
        if plot.views >= 20:
            demand_points, demand_text = 0.5, f"{plot.views} views, high demand"
        elif plot.views >= 10:
            demand_points, demand_text = 0.3, f"{plot.views} views, moderate interest"
        elif plot.views > 0:
            demand_points, demand_text = 0.1, f"{plot.views} views"

        components = [
            ("roi", "Projected return", roi_points, roi_text),
            ("zoning", "Planning stage", zoning_points, zoning_text),
            ("readiness", "Time horizon", readiness_points, readiness_text),
            ("market", "Market position", market_points, market_text),
            ("demand", "Demand", demand_points, demand_text),
        ]
        factors = [
            ScoreFactor(
                key=key,
                label=label,
                points=round(points, 2),
                max_points=SCORE_MAX_POINTS[key],
                normalized=min(1.0, max(0.0, points / SCORE_MAX_POINTS[key])),
                explanation=text,
            )
            for key, label, points, text in components
        ]

        total = max(1, min(10, round(sum(points for _, _, points, _ in components))))
        return ScoreBreakdown(total=total, grade=self.grade(total), factors=factors)

    # =========================================================================
    # Market Position
    # =========================================================================

    def area_average_price_sqm(
        self,
        plot: Plot,
        plots: Sequence[Plot],
        fall_back_to_all: bool = True,
    ) -> Optional[float]:
        """Average price per sqm of the plot's peers, excluding itself.

        Same-city peers are used when there are at least two of them;
        otherwise every other plot when ``fall_back_to_all`` is set.
        """
        others = [p for p in plots if p.id != plot.id]
        bench = [p for p in others if p.city == plot.city]
        if len(bench) < 2:
            if not fall_back_to_all:
                return None
            bench = others
        if not bench:
            return None
        return sum(self.price_per_sqm(p) for p in bench) / len(bench)

    def price_position(self, plot: Plot, plots: Sequence[Plot]) -> Optional[float]:
        """Deviation (%) of a plot's price per sqm from its area average.

        Negative values mean the plot is cheaper than its peers.

        Returns:
            Percent deviation, or None when there is nothing to compare with
        """
        psm = self.price_per_sqm(plot)
        if len(plots) < 2 or psm <= 0:
            return None
        avg = self.area_average_price_sqm(plot, plots)
        if not avg:
            return None
        return (psm - avg) / avg * 100

    def verdict(self, plot: Plot, plots: Sequence[Plot]) -> InvestmentVerdict:
        """Headline recommendation combining score, ROI and price position."""
        score = self.investment_score(plot)
        roi = self.roi(plot)
        deviation = self.price_position(plot, plots) or 0.0

        below_avg = deviation < -8
        well_below = deviation < -15
        above_avg = deviation > 10

        if score >= 8 and (well_below or roi >= 200):
            description = (
                f"{abs(deviation):.0f}% below the area average, score {score}/10"
                if well_below
                else f"Exceptional return +{roi:.0f}%, score {score}/10"
            )
            return InvestmentVerdict(tier="hot", label="Hot deal", description=description)

        if score >= 7 and (below_avg or roi >= 150):
            description = (
                f"Attractive price, {abs(deviation):.0f}% below average"
                if below_avg
                else f"High return +{roi:.0f}% with score {score}/10"
            )
            return InvestmentVerdict(tier="excellent", label="Excellent investment", description=description)

        if score >= 5:
            return InvestmentVerdict(
                tier="good",
                label="Good opportunity",
                description=f"Score {score}/10, return +{roi:.0f}%",
            )

        if score >= 3 and not above_avg:
            return InvestmentVerdict(
                tier="fair",
                label="Worth a look",
                description=f"Score {score}/10, check planning and taxes",
            )

        description = (
            f"Price {deviation:.0f}% above average, needs review"
            if above_avg
            else f"Score {score}/10, higher risk investment"
        )
        return InvestmentVerdict(tier="caution", label="Review carefully", description=description)

    # =========================================================================
    # Cost Model
    # =========================================================================

    def plot_metrics(self, plot: Plot) -> PlotMetrics:
        """Basic figures for cards and detail pages (rounded like the UI)."""
        size = plot.size_sqm
        return PlotMetrics(
            price=plot.total_price,
            projected=plot.projected_value,
            size_sqm=size,
            dunam=plot.dunam,
            roi=round(self.roi(plot)),
            gross_profit=plot.projected_value - plot.total_price,
            price_per_sqm=round(plot.total_price / size) if size > 0 else 0,
            price_per_dunam=round(plot.total_price / size * 1000) if size > 0 else 0,
            projected_per_sqm=round(plot.projected_value / size) if size > 0 else 0,
        )

    def buildable_value(self, plot: Plot, avg_unit_size_sqm: float = 100) -> Optional[BuildableValue]:
        """What the price buys in housing units once the plot is built on.

        Units = dunam × density (units per dunam), each of avg_unit_size_sqm.

        Args:
            plot: Plot with a density_units_per_dunam figure
            avg_unit_size_sqm: Assumed floor area per housing unit

        Returns:
            BuildableValue, or None without a price, size, density or any units
        """
        density = plot.density_units_per_dunam
        if plot.total_price <= 0 or plot.size_sqm <= 0 or not density or density <= 0:
            return None
        if not math.isfinite(avg_unit_size_sqm) or avg_unit_size_sqm <= 0:
            return None

        units = round(plot.dunam * density)
        if units <= 0:
            return None

        floor_area = units * avg_unit_size_sqm
        return BuildableValue(
            estimated_units=units,
            total_buildable_area=floor_area,
            price_per_buildable_sqm=round(plot.total_price / floor_area),
            price_per_unit=round(plot.total_price / units),
            efficiency_ratio=round(floor_area / plot.size_sqm, 2),
            density=density,
        )

    def transaction_costs(self, price: int) -> TransactionCosts:
        """One-off costs paid on purchase.

        Args:
            price: Purchase price in ILS

        Returns:
            TransactionCosts with the total and the all-in purchase cost
        """
        r = COST_RATES
        purchase_tax = round(price * r["purchase_tax_pct"])
        attorney = round(price * r["attorney_pct"])
        appraiser = round(min(max(price * r["appraiser_pct"], r["appraiser_min"]), r["appraiser_max"]))
        registration = r["registration_fee"]
        total = purchase_tax + attorney + appraiser + registration
        return TransactionCosts(
            purchase_tax=purchase_tax,
            attorney_fees=attorney,
            appraiser_fee=appraiser,
            registration_fee=registration,
            total=total,
            total_with_purchase=price + total,
        )

    def holding_costs(self, price: int, size_sqm: float, zoning: ZoningStage) -> HoldingCosts:
        """Annual cost of holding the plot.

        Arnona doubles once a detailed plan is approved.
        """
        r = COST_RATES
        arnona_rate = r["arnona_per_sqm_advanced"] if zoning in ADVANCED_ZONING else r["arnona_per_sqm"]
        arnona = round(size_sqm * arnona_rate)
        management = round(size_sqm * r["management_per_sqm"])
        opportunity = round(price * r["opportunity_cost_pct"])
        return HoldingCosts(
            arnona=arnona,
            management=management,
            opportunity_cost=opportunity,
            total_annual=arnona + management,
            total_with_opportunity=arnona + management + opportunity,
            arnona_per_sqm=arnona_rate,
        )

    def exit_costs(self, price: int, projected_value: int) -> ExitCosts:
        """Taxes and fees due on sale at the projected value.

        No exit costs apply when there is no gain.
        """
        gross = projected_value - price
        if gross <= 0:
            return ExitCosts(
                betterment_levy=0,
                capital_gains=0,
                agent_commission=0,
                total_exit=0,
                net_profit=gross,
            )

        r = COST_RATES
        levy = round(gross * r["betterment_levy_pct"])
        purchase_costs = round(price * PURCHASE_COSTS_PCT)
        taxable = max(0, gross - levy - purchase_costs)
        capital_gains = round(taxable * r["capital_gains_pct"])
        agent = round(projected_value * r["agent_pct"])
        total_exit = levy + capital_gains + agent
        return ExitCosts(
            betterment_levy=levy,
            capital_gains=capital_gains,
            agent_commission=agent,
            total_exit=total_exit,
            net_profit=gross - purchase_costs - total_exit,
        )

    def investment_pnl(self, plot: Plot, holding_years: int = 5) -> InvestmentPnL:
        """Full profit and loss over a holding period.

        Args:
            plot: Plot to project
            holding_years: Years held before selling at the projected value

        Returns:
            InvestmentPnL with the cost breakdown and the after-tax ROI
        """
        price = plot.total_price
        projected = plot.projected_value
        transaction = self.transaction_costs(price)
        holding = self.holding_costs(price, plot.size_sqm, plot.zoning_stage)
        exit_ = self.exit_costs(price, projected)

        total_holding = holding.total_annual * max(0, holding_years)
        total_investment = transaction.total_with_purchase + total_holding
        net_profit = exit_.net_profit - total_holding
        true_roi = round(net_profit / total_investment * 100) if total_investment > 0 else 0

        return InvestmentPnL(
            purchase_price=price,
            projected_value=projected,
            holding_years=holding_years,
            transaction=transaction,
            holding=holding,
            exit=exit_,
            total_holding_costs=total_holding,
            total_investment=total_investment,
            gross_profit=projected - price,
            net_profit=net_profit,
            true_roi=true_roi,
            headline_roi=round(self.roi(plot)),
        )

    # =========================================================================
    # Risk & Timeline
    # =========================================================================

    def risk_level(self, plot: Plot, plots: Sequence[Plot] = ()) -> RiskLevel:
        """Estimate a 1-5 risk level.

        Accumulates risk points from the planning stage, the readiness
        horizon, price deviation against same-city peers, ROI extremes,
        and plot size.
        """
        factors = []
        risk = ZONING_RISK.get(plot.zoning_stage, 20)
        if risk >= 25:
            factors.append("Early planning stage")
        elif risk >= 15:
            factors.append("Planning in progress")

        readiness = plot.readiness_estimate
        if "1-3" in readiness:
            time_risk = 8
        elif "5+" in readiness or "5-" in readiness:
            time_risk = 25
        else:
            time_risk = 15
        risk += time_risk
        if time_risk >= 20:
            factors.append("Long investment horizon (5+ years)")

        psm = self.price_per_sqm(plot)
        if len(plots) >= 3 and psm > 0:
            avg = self.area_average_price_sqm(plot, plots, fall_back_to_all=False)
            if avg:
                deviation = (psm - avg) / avg * 100
                if deviation > 20:
                    risk += 20
                    factors.append("Priced well above the area average")
                elif deviation > 10:
                    risk += 10
                    factors.append("Priced above the area average")
                elif deviation < -20:
                    risk += 5
                    factors.append("Unusually low price, verify")

        roi = self.roi(plot)
        if roi > 300:
            risk += 15
            factors.append("Very high projected return, verify")
        elif roi > 200:
            risk += 8
        elif roi < 30 and plot.total_price > 0:
            risk += 5
            factors.append("Low projected return")

        risk += 5
        if plot.size_sqm > 10000:
            risk += 5
            factors.append("Large plot, lower liquidity")

        if risk <= 20:
            level = 1
        elif risk <= 35:
            level = 2
        elif risk <= 50:
            level = 3
        elif risk <= 70:
            level = 4
        else:
            level = 5
        return RiskLevel(level=level, label=RISK_LABELS[level], score=risk, factors=factors[:3])

    def investment_timeline(self, plot: Plot, today: Optional[date] = None) -> InvestmentTimeline:
        """Position of the plot in the planning pipeline with time estimates.

        Args:
            plot: Plot to place on the timeline
            today: Reference date for the estimated completion year

        Returns:
            InvestmentTimeline with per-stage status and progress
        """
        today = today or date.today()
        current = plot.zoning_stage
        stages_list = list(ZoningStage)
        current_idx = current.index

        stages = []
        for i, stage in enumerate(stages_list):
            if i < current_idx:
                status = "completed"
            elif i == current_idx:
                status = "current"
            else:
                status = "future"
            stages.append(
                TimelineStage(stage=stage, duration_months=STAGE_DURATION_MONTHS[stage], status=status)
            )

        elapsed = sum(STAGE_DURATION_MONTHS[s] for s in stages_list[1 : current_idx + 1])
        remaining = sum(STAGE_DURATION_MONTHS[s] for s in stages_list[current_idx + 1 :])
        total = elapsed + remaining
        progress = round(elapsed / total * 100) if total > 0 else 100

        months_from_epoch = today.year * 12 + (today.month - 1) + remaining
        return InvestmentTimeline(
            stages=stages,
            current_stage=current,
            elapsed_months=elapsed,
            remaining_months=remaining,
            total_months=total,
            progress_pct=progress,
            estimated_year=months_from_epoch // 12,
        )

    # =========================================================================
    # Peer Comparison
    # =========================================================================

    @staticmethod
    def percentile(value: float, values: Sequence[float]) -> int:
        """Share (0-100) of values strictly below ``value``."""
        if not values:
            return 0
        below = sum(1 for v in values if v < value)
        return round(below / len(values) * 100)

    def plot_percentiles(self, plot: Plot, plots: Sequence[Plot]) -> Optional[PlotPercentiles]:
        """Rank a plot against its peers on price, size, ROI and price per sqm.

        Dimensions where the plot has no positive value are left as None.

        Returns:
            PlotPercentiles, or None with fewer than two plots
        """
        if len(plots) < 2:
            return None

        def rank(value: float, values: list[float]) -> Optional[int]:
            if value <= 0:
                return None
            return self.percentile(value, [v for v in values if v > 0])

        return PlotPercentiles(
            price=rank(plot.total_price, [p.total_price for p in plots]),
            size=rank(plot.size_sqm, [p.size_sqm for p in plots]),
            roi=rank(self.roi(plot), [self.roi(p) for p in plots]),
            price_per_sqm=rank(self.price_per_sqm(plot), [self.price_per_sqm(p) for p in plots]),
        )

    def alternative_returns(
        self,
        amount: float,
        expected_return: float,
        years: int,
    ) -> Optional[AlternativeReturns]:
        """Compare the land investment with a bank deposit and an index fund.

        Args:
            amount: Capital invested in ILS
            expected_return: Expected profit from the land in ILS
            years: Holding period in years

        Returns:
            AlternativeReturns with nominal and inflation-adjusted rates,
            or None when the amount or the period is not positive
        """
        if not amount or amount <= 0 or not years or years <= 0:
            return None

        bank_value = round(amount * math.pow(1 + BANK_RATE, years))
        stock_value = round(amount * math.pow(1 + STOCK_RATE, years))
        land_value = amount + expected_return
        land_rate = math.pow(land_value / amount, 1 / years) - 1 if land_value > 0 else -1.0

        def real(rate: float) -> float:
            return round(((1 + rate) / (1 + INFLATION_RATE) - 1) * 100, 1)

        return AlternativeReturns(
            bank=AlternativeReturn(label="Bank deposit", rate=BANK_RATE, future_value=bank_value, profit=round(bank_value - amount)),
            stock=AlternativeReturn(label="Stock index", rate=STOCK_RATE, future_value=stock_value, profit=round(stock_value - amount)),
            land=AlternativeReturn(label="This plot", rate=land_rate, future_value=round(land_value), profit=round(expected_return)),
            years=years,
            inflation_rate=INFLATION_RATE,
            real_returns={"bank": real(BANK_RATE), "stock": real(STOCK_RATE), "land": real(land_rate)},
        )
