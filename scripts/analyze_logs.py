#!/usr/bin/env python3
"""
CLI script to run bot detection over a request log file.

Usage:
    # Analyze the last 48 hours of a JSON log export
    python scripts/analyze_logs.py data/requests.json --identity-key example.com

    # Analyze an explicit window of an NDJSON file
    python scripts/analyze_logs.py data/requests.jsonl --identity-key example.com \\
        --start 2024-06-01T00:00:00Z --end 2024-06-02T00:00:00Z

    # Include egress costs and write the full result as JSON
    python scripts/analyze_logs.py data/requests.csv --identity-key example.com \\
        --provider vercel --output results/analysis.json
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bot_detection_engine import DetectionEngine, DetectionError, setup_logging
from bot_detection_engine.config import get_settings, load_settings_file
from bot_detection_engine.pipeline import ProcessingProgress
from bot_detection_engine.reporting import format_bandwidth, stats_summary
from bot_detection_engine.schemas import parse_timestamp

logger = logging.getLogger(__name__)


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp or epoch value."""
    parsed = parse_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(
            f"Invalid timestamp: {value}. Use ISO 8601, e.g. 2024-06-01T00:00:00Z"
        )
    return parsed


def load_records(path: Path) -> list[dict]:
    """
    Load raw log records from JSON, NDJSON/JSONL or CSV.

    A JSON file may hold a list of records or an object with an ``entries``
    or ``logs`` list.
    """
    suffix = path.suffix.lower()

    if suffix == ".csv":
        df = pd.read_csv(path)
        # Missing cells become None rather than NaN
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict(orient="records")

    if suffix in (".jsonl", ".ndjson"):
        records = []
        with open(path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning(f"Skipping line {line_num}: {e}")
        return records

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("entries") or data.get("logs") or []
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of records")
    return data


def print_progress(progress: ProcessingProgress) -> None:
    print(
        f"\r  Chunk {progress.current_chunk + 1}/{progress.total_chunks} "
        f"({progress.percent_complete:.0f}%)",
        end="",
        flush=True,
    )
    if progress.processed == progress.total:
        print()


def print_summary(result, top: int) -> None:
    """Print headline statistics and the top offenders."""
    analysis = result.classification_summary
    stats = stats_summary(analysis)

    print()
    print("📊 Detection Summary")
    print("=" * 50)
    print(f"  Total requests:  {stats['total_requests']:,}")
    print(f"  Bot requests:    {stats['bot_requests']:,} ({stats['bot_percentage']}%)")
    print(f"  Human requests:  {stats['human_requests']:,}")
    print(
        f"  Bot bandwidth:   {stats['bot_bandwidth_human']} "
        f"({stats['bandwidth_percentage']}%)"
    )
    print(f"  Unique bots:     {stats['unique_bots']}")
    print(f"  Time span:       {stats['time_span_hours']}h")

    if analysis.aggregations.by_category:
        print()
        print("  By category:")
        for key, bucket in sorted(analysis.aggregations.by_category.items()):
            print(
                f"    {key:<20} {bucket.requests:>8,} requests  "
                f"{format_bandwidth(bucket.bandwidth):>10}"
            )

    offenders = analysis.aggregations.top_offenders[:top]
    if offenders:
        print()
        print(f"  Top {len(offenders)} by bandwidth:")
        for bot in offenders:
            c = bot.classification
            verified = " ✓" if c.verified else ""
            print(
                f"    {c.bot_name or 'Unknown Bot':<24} {bot.ip:<16} "
                f"{c.impact.value:<8} {c.confidence:.2f}{verified}  "
                f"{format_bandwidth(bot.bandwidth)}"
            )

    if result.cost_analysis:
        costs = result.cost_analysis
        print()
        print(f"  💰 Egress cost ({costs.provider}, ${costs.price_per_gb}/GB)")
        print(f"    Current:  ${costs.total_cost:,.4f}")
        print(f"    Monthly:  ${costs.total_monthly_cost:,.2f}")
        print(f"    Yearly:   ${costs.total_yearly_cost:,.2f}")

    processing = result.processing_stats
    print()
    print(
        f"  Processed {processing['total_logs']:,} entries in "
        f"{processing['processing_time_ms']:.0f}ms "
        f"({processing['chunks_processed']} chunks, "
        f"{processing['skipped_entries']} skipped, "
        f"{processing['filtered_out']} outside window)"
    )
    print()


def write_output(result, output_path: Path, include_entries: bool) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(include_entries=include_entries), f, indent=2, default=str)
    logger.info(f"Wrote results to {output_path}")


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Detect and classify bots in request logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Last 48 hours of a JSON export
  python scripts/analyze_logs.py data/requests.json --identity-key example.com

  # Explicit window with costs
  python scripts/analyze_logs.py data/requests.jsonl --identity-key example.com \\
      --start 2024-06-01T00:00:00Z --end 2024-06-02T00:00:00Z --provider aws

  # Custom settings and signature catalog
  python scripts/analyze_logs.py data/requests.csv --identity-key example.com \\
      --config config/detection.yaml --signatures data/bot_signatures.json
        """,
    )

    parser.add_argument("input", type=Path, help="Log file (.json, .jsonl, .ndjson, .csv)")
    parser.add_argument(
        "--identity-key",
        required=True,
        help="Site or tenant the logs belong to",
    )

    # Window options
    parser.add_argument(
        "--start",
        type=parse_datetime,
        help="Window start (ISO 8601); requires --end",
    )
    parser.add_argument(
        "--end",
        type=parse_datetime,
        help="Window end (ISO 8601); requires --start",
    )
    parser.add_argument(
        "--window-hours",
        type=float,
        help="Recency window in hours (default: from settings, 48)",
    )

    # Configuration
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML settings file (default: environment and built-in defaults)",
    )
    parser.add_argument(
        "--signatures",
        type=Path,
        help="Signature catalog (.json or .yaml, default: packaged catalog)",
    )

    # Cost options
    parser.add_argument(
        "--provider",
        help="Hosting provider for cost analysis (cloudflare, vercel, netlify, aws)",
    )
    parser.add_argument(
        "--price-per-gb",
        type=float,
        help="Explicit egress price in USD/GB (overrides the provider table)",
    )

    # Output options
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the full result as JSON to this path",
    )
    parser.add_argument(
        "--include-entries",
        action="store_true",
        help="Include annotated entries in the JSON output",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="Number of top offenders to print (default: 10)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not print chunk progress",
    )

    # Logging
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")

    args = parser.parse_args(argv)

    if bool(args.start) != bool(args.end):
        parser.error("--start and --end must be given together")
    if args.window_hours is not None and args.window_hours <= 0:
        parser.error("--window-hours must be > 0")

    # Setup logging
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
    )

    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    # Build settings
    try:
        settings = load_settings_file(args.config) if args.config else get_settings()
    except DetectionError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    if args.signatures:
        settings = replace(settings, signature_catalog_path=str(args.signatures))
    if args.window_hours is not None:
        settings = replace(
            settings,
            processing=replace(settings.processing, time_window_hours=args.window_hours),
        )

    # Load input
    try:
        records = load_records(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read {args.input}: {e}")
        return 1
    logger.info(f"Loaded {len(records)} records from {args.input}")

    print()
    print("🤖 Bot Detection")
    print("=" * 50)
    print(f"  Input: {args.input}")
    print(f"  Identity key: {args.identity_key}")
    if args.start:
        print(f"  Window: {args.start.isoformat()} to {args.end.isoformat()}")
    else:
        print(f"  Window: last {settings.processing.time_window_hours:g}h")
    print()

    try:
        engine = DetectionEngine(settings)
        on_progress = None if args.no_progress else print_progress
        include_costs = bool(args.provider)
        if args.start:
            result = engine.analyze_time_range(
                records,
                args.identity_key,
                args.start,
                args.end,
                provider=args.provider,
                price_per_gb=args.price_per_gb,
                include_costs=include_costs,
                on_progress=on_progress,
            )
        else:
            result = engine.analyze(
                records,
                args.identity_key,
                provider=args.provider,
                price_per_gb=args.price_per_gb,
                include_costs=include_costs,
                on_progress=on_progress,
            )
    except (DetectionError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    print_summary(result, top=args.top)

    if args.output:
        write_output(result, args.output, include_entries=args.include_entries)

    return 0


if __name__ == "__main__":
    sys.exit(main())
