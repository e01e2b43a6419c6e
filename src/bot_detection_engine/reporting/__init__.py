"""Cost integration and reporting helpers."""

from .cost import (
    BotCostBreakdown,
    CostImpactAnalysis,
    CostIntegrator,
    resolve_price,
)
from .summaries import (
    RESULT_COLUMNS,
    format_bandwidth,
    results_to_dataframe,
    stats_summary,
)

__all__ = [
    # Cost
    "CostIntegrator",
    "CostImpactAnalysis",
    "BotCostBreakdown",
    "resolve_price",
    # Summaries
    "results_to_dataframe",
    "stats_summary",
    "format_bandwidth",
    "RESULT_COLUMNS",
]
