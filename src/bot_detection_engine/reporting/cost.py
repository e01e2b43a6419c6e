"""
Bandwidth cost of detected bot traffic.

Prices each detection's bandwidth with a per-provider egress rate (or an
explicit unit price) and projects the batch cost forward. A batch is treated
as one day of traffic: monthly is 30 days and yearly is 365 days.

Pure data; no recommendations.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from ..config.constants import BYTES_PER_GB, DEFAULT_PRICE_PER_GB, PROVIDER_PRICE_PER_GB
from ..schemas import BotAnalysis
from .summaries import results_to_dataframe

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365


@dataclass
class BotCostBreakdown:
    """Cost of one detection."""

    bot_name: str
    category: str
    impact: str
    requests: int
    bandwidth: int
    bandwidth_gb: float
    time_span_hours: float
    current: float
    daily: float
    monthly: float
    yearly: float
    subcategory: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "bot_name": self.bot_name,
            "category": self.category,
            "subcategory": self.subcategory,
            "impact": self.impact,
            "metrics": {
                "requests": self.requests,
                "bandwidth": self.bandwidth,
                "bandwidth_gb": self.bandwidth_gb,
                "time_span_hours": self.time_span_hours,
            },
            "costs": {
                "current": self.current,
                "daily": self.daily,
                "monthly": self.monthly,
                "yearly": self.yearly,
            },
        }


@dataclass
class CostImpactAnalysis:
    """Per-bot costs plus totals."""

    provider: str
    price_per_gb: float
    by_bot: list[BotCostBreakdown] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return sum(b.current for b in self.by_bot)

    @property
    def total_monthly_cost(self) -> float:
        return sum(b.monthly for b in self.by_bot)

    @property
    def total_yearly_cost(self) -> float:
        return sum(b.yearly for b in self.by_bot)

    @property
    def total_bandwidth(self) -> int:
        return sum(b.bandwidth for b in self.by_bot)

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "price_per_gb": self.price_per_gb,
            "by_bot": [b.to_dict() for b in self.by_bot],
            "summary": {
                "total_cost": self.total_cost,
                "total_monthly_cost": self.total_monthly_cost,
                "total_yearly_cost": self.total_yearly_cost,
                "total_bandwidth": self.total_bandwidth,
            },
        }


def resolve_price(provider: str, price_per_gb: Optional[float] = None) -> float:
    """Unit price in USD/GB: explicit price first, then the provider table."""
    if price_per_gb is not None:
        if price_per_gb < 0:
            raise ValueError(f"price_per_gb must be >= 0, got {price_per_gb}")
        return float(price_per_gb)
    price = PROVIDER_PRICE_PER_GB.get((provider or "").lower())
    if price is None:
        logger.debug(f"No egress price for provider {provider!r}, using default")
        return DEFAULT_PRICE_PER_GB
    return price


class CostIntegrator:
    """
    Calculates the bandwidth cost of detected bots.

    Example:
        >>> integrator = CostIntegrator()
        >>> impact = integrator.calculate_cost_impact(analysis, "vercel")
        >>> report = integrator.generate_cost_report(analysis, "vercel")
    """

    def calculate_cost_impact(
        self,
        analysis: BotAnalysis,
        provider: str,
        price_per_gb: Optional[float] = None,
    ) -> CostImpactAnalysis:
        """
        Cost per detection.

        Args:
            analysis: Batch analysis
            provider: Hosting provider key (cloudflare, vercel, netlify, aws)
            price_per_gb: Explicit unit price overriding the provider table

        Returns:
            CostImpactAnalysis
        """
        price = resolve_price(provider, price_per_gb)
        by_bot = []
        for result in analysis.bots:
            classification = result.classification
            bandwidth_gb = result.bandwidth / BYTES_PER_GB
            current = bandwidth_gb * price
            by_bot.append(
                BotCostBreakdown(
                    bot_name=classification.bot_name or "Unknown Bot",
                    category=classification.category.value,
                    subcategory=classification.subcategory,
                    impact=classification.impact.value,
                    requests=result.request_count,
                    bandwidth=result.bandwidth,
                    bandwidth_gb=bandwidth_gb,
                    time_span_hours=result.time_range.duration_seconds / 3600,
                    current=current,
                    daily=current,
                    monthly=current * DAYS_PER_MONTH,
                    yearly=current * DAYS_PER_YEAR,
                )
            )

        return CostImpactAnalysis(provider=provider, price_per_gb=price, by_bot=by_bot)

    def generate_cost_report(
        self,
        analysis: BotAnalysis,
        provider: str,
        price_per_gb: Optional[float] = None,
    ) -> dict:
        """
        Cost breakdown by category and impact with projections.

        Returns:
            Dict with ``summary``, ``breakdown`` (``by_category`` and
            ``by_impact``, each mapping a key to cost, bandwidth and percentage
            of total cost) and ``projections`` (monthly, yearly)
        """
        impact = self.calculate_cost_impact(analysis, provider, price_per_gb)
        df = results_to_dataframe(analysis)
        df["cost"] = [b.current for b in impact.by_bot]
        total_cost = impact.total_cost

        return {
            "summary": {
                "total_cost": total_cost,
                "total_bandwidth": impact.total_bandwidth,
            },
            "breakdown": {
                "by_category": _cost_breakdown(df, "category", total_cost),
                "by_impact": _cost_breakdown(df, "impact", total_cost),
            },
            "projections": {
                "monthly": impact.total_monthly_cost,
                "yearly": impact.total_yearly_cost,
            },
        }


def _cost_breakdown(df: pd.DataFrame, column: str, total_cost: float) -> dict:
    if df.empty:
        return {}

    grouped = df.groupby(column, sort=True)[["cost", "bandwidth"]].sum()
    breakdown = {}
    for key, row in grouped.iterrows():
        cost = float(row["cost"])
        breakdown[str(key)] = {
            "cost": cost,
            "bandwidth": int(row["bandwidth"]),
            "percentage": cost / total_cost * 100 if total_cost > 0 else 0.0,
        }
    return breakdown
