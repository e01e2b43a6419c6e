"""
Tabular views over a batch analysis.

Turns detections into pandas DataFrames for reporting and computes headline
statistics for dashboards and script output.
"""

import logging

import pandas as pd

from ..schemas import BotAnalysis

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "bot_name",
    "category",
    "subcategory",
    "impact",
    "confidence",
    "verified",
    "ip",
    "user_agent",
    "request_count",
    "bandwidth",
    "start",
    "end",
    "requests_per_second",
    "pattern_type",
    "human_score",
]

_UNITS = ["B", "KB", "MB", "GB", "TB"]


def results_to_dataframe(analysis: BotAnalysis) -> pd.DataFrame:
    """
    One row per detection.

    Args:
        analysis: Batch analysis

    Returns:
        DataFrame with RESULT_COLUMNS (empty if nothing was detected)
    """
    rows = []
    for result in analysis.bots:
        classification = result.classification
        rows.append(
            {
                "bot_name": classification.bot_name or "Unknown Bot",
                "category": classification.category.value,
                "subcategory": classification.subcategory,
                "impact": classification.impact.value,
                "confidence": classification.confidence,
                "verified": classification.verified,
                "ip": result.ip,
                "user_agent": result.user_agent,
                "request_count": result.request_count,
                "bandwidth": result.bandwidth,
                "start": result.time_range.start,
                "end": result.time_range.end,
                "requests_per_second": result.velocity.requests_per_second,
                "pattern_type": result.pattern.type.value,
                "human_score": result.behavior.human_score,
            }
        )
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def format_bandwidth(num_bytes: float) -> str:
    """Human-readable byte count, e.g. ``1.50 MB``."""
    value = float(num_bytes)
    for unit in _UNITS[:-1]:
        if abs(value) < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} {_UNITS[-1]}"


def stats_summary(analysis: BotAnalysis) -> dict:
    """
    Headline statistics for a batch.

    Returns:
        Dict with request and bandwidth shares, unique bot count and the
        time span of the batch in hours
    """
    summary = analysis.summary
    df = results_to_dataframe(analysis)

    bot_bandwidth = int(df["bandwidth"].sum()) if not df.empty else 0
    bot_percentage = (
        summary.bot_requests / summary.total_requests * 100
        if summary.total_requests
        else 0.0
    )
    bandwidth_percentage = (
        bot_bandwidth / summary.total_bandwidth * 100
        if summary.total_bandwidth
        else 0.0
    )

    return {
        "total_requests": summary.total_requests,
        "bot_requests": summary.bot_requests,
        "human_requests": summary.human_requests,
        "bot_percentage": round(bot_percentage, 2),
        "total_bandwidth": summary.total_bandwidth,
        "bot_bandwidth": bot_bandwidth,
        "bandwidth_percentage": round(bandwidth_percentage, 2),
        "bot_bandwidth_human": format_bandwidth(bot_bandwidth),
        "unique_bots": int(df["bot_name"].nunique()) if not df.empty else 0,
        "time_span_hours": round(summary.time_range.duration_seconds / 3600, 3),
    }
