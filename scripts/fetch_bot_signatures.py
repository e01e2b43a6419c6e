#!/usr/bin/env python3
"""
Build a signature catalog from the public crawler-user-agents list.

Downloads https://github.com/monperrus/crawler-user-agents, converts each
entry to a catalog record and writes a JSON or YAML catalog that
``SignatureRegistry.from_catalog`` can load.

Usage:
    # Merge fetched crawlers into the packaged catalog
    python scripts/fetch_bot_signatures.py --output data/bot_signatures.json

    # Only the fetched crawlers, as YAML
    python scripts/fetch_bot_signatures.py --no-merge --output data/crawlers.yaml

    # Preview what would be added
    python scripts/fetch_bot_signatures.py --dry-run
"""

import argparse
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bot_detection_engine import InvalidSignatureError, SignatureCatalogError, setup_logging
from bot_detection_engine.config.constants import LEGACY_CATEGORY_MAP, LEGACY_SEVERITY_MAP
from bot_detection_engine.detection import DEFAULT_CATALOG_PATH, read_catalog
from bot_detection_engine.schemas import BotSignature
from bot_detection_engine.utils.bot_classifier import detect_bot

logger = logging.getLogger(__name__)

CRAWLER_LIST_URL = (
    "https://raw.githubusercontent.com/monperrus/crawler-user-agents/"
    "master/crawler-user-agents.json"
)

CATALOG_VERSION = 1


# =============================================================================
# FETCH
# =============================================================================


def fetch_crawler_list(url: str = CRAWLER_LIST_URL, timeout: float = 30.0) -> list[dict]:
    """
    Download the crawler list.

    Raises:
        httpx.HTTPError: On transport errors or a non-2xx response
        ValueError: If the body is not a JSON list
    """
    logger.info(f"Fetching crawler list from {url}")
    response = httpx.get(url, timeout=timeout, follow_redirects=True)
    response.raise_for_status()

    data = response.json()
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list from {url}, got {type(data).__name__}")
    logger.info(f"Fetched {len(data)} crawler entries")
    return data


# =============================================================================
# CONVERSION
# =============================================================================


def name_from_pattern(pattern: str) -> str:
    """Readable signature name from a regex, e.g. ``Googlebot\\/`` -> ``Googlebot``."""
    name = pattern.replace("\\", "")
    name = re.sub(r"[\^\$\[\]\(\)\?\*\+\|]", "", name)
    name = name.rstrip("/ ").strip()
    return name or pattern


def convert_entry(entry: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Convert one crawler-user-agents entry into a catalog record.

    Category and impact come from the legacy bot table when a sample user
    agent is recognised there; anything else is a low-impact extractive
    crawler.
    """
    pattern = entry.get("pattern")
    if not pattern or not isinstance(pattern, str):
        return None

    category, subcategory, impact = "extractive", "crawler", "low"
    for instance in entry.get("instances") or []:
        legacy = detect_bot(instance)
        if legacy is not None:
            category = LEGACY_CATEGORY_MAP.get(legacy.category, category)
            subcategory = legacy.category
            impact = LEGACY_SEVERITY_MAP.get(legacy.severity, impact)
            break

    return {
        "name": name_from_pattern(pattern),
        "category": category,
        "subcategory": subcategory,
        "patterns": [pattern],
        "impact": impact,
        "metadata": {
            "operator": "Unknown",
            "purpose": entry.get("description") or entry.get("url") or "Unknown",
            "respectsRobotsTxt": False,
            "averageCrawlRate": None,
        },
    }


def build_catalog(
    entries: list[dict[str, Any]],
    base_records: Optional[list[dict[str, Any]]] = None,
) -> list[dict[str, Any]]:
    """
    Merge converted entries after the base records.

    Base records keep priority: a fetched entry is skipped when one of its
    sample user agents already matches a base signature, or when its name is
    taken. Entries that fail validation are dropped.
    """
    records = list(base_records or [])
    known = []
    for record in records:
        try:
            known.append(BotSignature.from_dict(record))
        except InvalidSignatureError as e:
            logger.warning(f"Invalid base record skipped: {e}")
    names = {s.name for s in known}

    added = skipped = invalid = 0
    for entry in entries:
        record = convert_entry(entry)
        if record is None:
            invalid += 1
            continue

        instances = entry.get("instances") or []
        if record["name"] in names or any(
            s.matches(ua) for s in known for ua in instances
        ):
            skipped += 1
            continue

        try:
            signature = BotSignature.from_dict(record)
        except InvalidSignatureError as e:
            logger.debug(f"Dropping {record['name']}: {e}")
            invalid += 1
            continue

        records.append(record)
        known.append(signature)
        names.add(signature.name)
        added += 1

    logger.info(
        f"Catalog built: {added} added, {skipped} already covered, {invalid} invalid"
    )
    return records


def write_catalog(records: list[dict[str, Any]], output_path: Path) -> None:
    """Write records as ``{"version": 1, "signatures": [...]}`` (JSON or YAML)."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    catalog = {"version": CATALOG_VERSION, "signatures": records}
    with open(output_path, "w", encoding="utf-8") as f:
        if output_path.suffix.lower() in (".yaml", ".yml"):
            yaml.safe_dump(catalog, f, sort_keys=False, allow_unicode=True)
        else:
            json.dump(catalog, f, indent=2)
            f.write("\n")
    logger.info(f"Wrote {len(records)} signatures to {output_path}")


# =============================================================================
# CLI
# =============================================================================


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Build a bot signature catalog from the crawler-user-agents list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Merge into the packaged catalog
  python scripts/fetch_bot_signatures.py --output data/bot_signatures.json

  # Fetched crawlers only, as YAML
  python scripts/fetch_bot_signatures.py --no-merge --output data/crawlers.yaml

  # Show counts without writing
  python scripts/fetch_bot_signatures.py --dry-run
        """,
    )

    parser.add_argument(
        "--url",
        default=CRAWLER_LIST_URL,
        help="Crawler list URL (default: crawler-user-agents on GitHub)",
    )
    parser.add_argument(
        "--base",
        type=Path,
        default=DEFAULT_CATALOG_PATH,
        help="Catalog whose records take priority (default: packaged catalog)",
    )
    parser.add_argument(
        "--no-merge",
        action="store_true",
        help="Write only the fetched crawlers",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("data/bot_signatures.json"),
        help="Output catalog (.json or .yaml, default: data/bot_signatures.json)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="HTTP timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and convert but do not write",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    print()
    print("🕷️  Bot Signature Fetcher")
    print("=" * 50)
    print(f"  Source: {args.url}")
    print(f"  Base: {'none' if args.no_merge else args.base}")
    print(f"  Output: {'(dry run)' if args.dry_run else args.output}")
    print()

    base_records = []
    if not args.no_merge:
        try:
            base_records = read_catalog(args.base)
        except SignatureCatalogError as e:
            logger.error(f"Could not read base catalog: {e}")
            return 1

    try:
        entries = fetch_crawler_list(args.url, timeout=args.timeout)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Fetch failed: {e}")
        return 1

    records = build_catalog(entries, base_records)

    print()
    print(f"  Base signatures: {len(base_records):,}")
    print(f"  Total signatures: {len(records):,}")
    print()

    if not args.dry_run:
        write_catalog(records, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
