#!/usr/bin/env python3
"""
Generate sample request logs for trying out bot detection.

Creates a seeded mix of human visitors, verified crawlers, user-agent
spoofers and fast scrapers in the log record format the engine accepts.

Usage:
    # Print statistics for 6 hours of traffic ending now (default)
    python scripts/generate_sample_data.py

    # Write JSON Lines for analyze_logs.py
    python scripts/generate_sample_data.py --output jsonl --output-path data/sample.jsonl

    # More traffic over a longer window
    python scripts/generate_sample_data.py --humans 200 --hours 24 --seed 7

    # Output as JSON for inspection
    python scripts/generate_sample_data.py --output json --limit 20
"""

import argparse
import json
import logging
import random
import sys
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bot_detection_engine import setup_logging
from bot_detection_engine.schemas import parse_timestamp

logger = logging.getLogger(__name__)


# =============================================================================
# REQUESTER PROFILES
# =============================================================================


@dataclass
class CrawlerProfile:
    """A known crawler and the network it crawls from."""

    name: str
    user_agent: str
    # Prefix inside the operator's published range
    ip_prefix: str
    # Seconds between requests (min, max)
    interval: tuple[float, float]
    requests: int
    paginated: bool = False


CRAWLER_PROFILES = [
    CrawlerProfile(
        name="GPTBot",
        user_agent="Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0; +https://openai.com/gptbot)",
        ip_prefix="20.171.12",
        interval=(0.15, 0.25),
        requests=60,
        paginated=True,
    ),
    CrawlerProfile(
        name="Googlebot",
        user_agent="Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
        ip_prefix="66.249.66",
        interval=(1.0, 3.0),
        requests=25,
    ),
    CrawlerProfile(
        name="ChatGPT-User",
        user_agent="Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; ChatGPT-User/1.0; +https://openai.com/bot)",
        ip_prefix="40.84.180",
        interval=(2.0, 8.0),
        requests=6,
    ),
    CrawlerProfile(
        name="AhrefsBot",
        user_agent="Mozilla/5.0 (compatible; AhrefsBot/7.0; +http://ahrefs.com/robot/)",
        ip_prefix="54.36.148",
        interval=(0.5, 1.5),
        requests=40,
    ),
]

SPOOFED_USER_AGENTS = [
    "GPTBot/1.0",
    "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
]

SCRAPER_USER_AGENTS = [
    "python-requests/2.31.0",
    "curl/8.4.0",
    "Go-http-client/1.1",
]

BROWSER_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
]

SITE_PAGES = [
    "/",
    "/about",
    "/pricing",
    "/contact",
    "/blog/launch",
    "/blog/roadmap",
    "/blog/2024/hiring",
    "/docs/start",
    "/docs/api",
]

ASSETS = ["/static/app.css", "/static/app.js", "/img/logo.png", "/fonts/inter.woff2"]

REFERERS = [
    "https://www.google.com/",
    "https://duckduckgo.com/",
    "https://news.ycombinator.com/",
    None,
]


# =============================================================================
# DATA GENERATOR
# =============================================================================


class SampleDataGenerator:
    """Generates seeded mixed traffic ending at a reference time."""

    def __init__(
        self,
        humans: int = 50,
        scrapers: int = 2,
        spoofers: int = 2,
        hours: float = 6.0,
        seed: Optional[int] = None,
    ):
        """
        Initialize the generator.

        Args:
            humans: Number of human visitors
            scrapers: Number of fast scraping clients
            spoofers: Number of requesters claiming a crawler name
            hours: Length of the traffic window
            seed: Random seed for reproducibility
        """
        self.humans = humans
        self.scrapers = scrapers
        self.spoofers = spoofers
        self.hours = hours
        self.rng = random.Random(seed)

    def record(
        self,
        ts: datetime,
        ip: str,
        user_agent: str,
        path: str,
        referer: Optional[str] = None,
        status: int = 200,
    ) -> dict:
        """A single log record in the engine's input format."""
        asset = path in ASSETS
        return {
            "timestamp": ts.isoformat(),
            "ip": ip,
            "userAgent": user_agent,
            "path": path,
            "method": "GET",
            "status": status,
            "bytes": self.rng.randint(5_000, 60_000) if asset else self.rng.randint(8_000, 120_000),
            "responseTime": round(self.rng.uniform(15, 450), 1),
            "referer": referer,
        }

    def window_start(self, end: datetime, margin_hours: float = 0.0) -> datetime:
        """Random start inside the window, leaving ``margin_hours`` before ``end``."""
        span = max(self.hours - margin_hours, 0.0)
        return end - timedelta(hours=margin_hours + self.rng.uniform(0, span))

    def generate_human(self, index: int, end: datetime) -> list[dict]:
        """A browsing session: pages with their assets, tens of seconds apart."""
        ip = f"198.51.{100 + index // 250}.{index % 250 + 1}"
        user_agent = self.rng.choice(BROWSER_USER_AGENTS)
        ts = self.window_start(end, margin_hours=0.5)
        referer = self.rng.choice(REFERERS)

        records = []
        for _ in range(self.rng.randint(1, 8)):
            page = self.rng.choice(SITE_PAGES)
            records.append(self.record(ts, ip, user_agent, page, referer))
            for asset in self.rng.sample(ASSETS, self.rng.randint(1, 3)):
                ts += timedelta(milliseconds=self.rng.uniform(120, 400))
                records.append(self.record(ts, ip, user_agent, asset, f"https://example.com{page}"))
            referer = f"https://example.com{page}"
            ts += timedelta(seconds=self.rng.uniform(10, 120))
        return records

    def generate_crawler(self, profile: CrawlerProfile, end: datetime) -> list[dict]:
        """A crawler run from inside its operator's range."""
        ip = f"{profile.ip_prefix}.{self.rng.randint(1, 254)}"
        ts = self.window_start(end, margin_hours=1.0)

        if profile.paginated:
            paths = [f"/blog/page/{n}" for n in range(1, profile.requests + 1)]
        else:
            paths = ["/robots.txt", "/sitemap.xml"] + [
                self.rng.choice(SITE_PAGES) for _ in range(profile.requests - 2)
            ]

        records = []
        for path in paths:
            records.append(self.record(ts, ip, profile.user_agent, path))
            ts += timedelta(seconds=self.rng.uniform(*profile.interval))
        return records

    def generate_spoofer(self, index: int, end: datetime) -> list[dict]:
        """A few requests claiming a crawler name from an unrelated network."""
        ip = f"45.33.{10 + index}.{self.rng.randint(1, 254)}"
        user_agent = self.rng.choice(SPOOFED_USER_AGENTS)
        ts = self.window_start(end, margin_hours=0.5)

        records = []
        for _ in range(self.rng.randint(1, 5)):
            records.append(self.record(ts, ip, user_agent, self.rng.choice(SITE_PAGES)))
            ts += timedelta(seconds=self.rng.uniform(5, 30))
        return records

    def generate_scraper(self, index: int, end: datetime) -> list[dict]:
        """Sequential product pages fetched every 50-150ms."""
        ip = f"185.220.{101 + index}.{self.rng.randint(1, 254)}"
        user_agent = self.rng.choice(SCRAPER_USER_AGENTS)
        ts = self.window_start(end, margin_hours=0.5)

        records = []
        for n in range(self.rng.randint(80, 200)):
            status = 200 if self.rng.random() < 0.9 else 404
            records.append(self.record(ts, ip, user_agent, f"/product/{n}", status=status))
            ts += timedelta(milliseconds=self.rng.uniform(50, 150))
        return records

    def generate(self, end: Optional[datetime] = None) -> list[dict]:
        """
        Generate all records, sorted by timestamp.

        Args:
            end: Reference time; every record is earlier (default: now)

        Returns:
            List of record dictionaries
        """
        end = end or datetime.now(timezone.utc)
        records = []

        for i in range(self.humans):
            records.extend(self.generate_human(i, end))
        for profile in CRAWLER_PROFILES:
            records.extend(self.generate_crawler(profile, end))
        for i in range(self.spoofers):
            records.extend(self.generate_spoofer(i, end))
        for i in range(self.scrapers):
            records.extend(self.generate_scraper(i, end))

        records.sort(key=lambda r: r["timestamp"])
        logger.info(f"Generated {len(records)} records")
        return records


# =============================================================================
# OUTPUT
# =============================================================================


def output_json(records: list[dict], limit: Optional[int] = None):
    """Print records as JSON."""
    subset = records[:limit] if limit else records
    print(json.dumps(subset, indent=2, default=str))


def output_jsonl(records: list[dict], output_path: Path):
    """Output records as JSON Lines file."""
    with open(output_path, "w") as f:
        for record in records:
            f.write(json.dumps(record, default=str) + "\n")
    logger.info(f"Wrote {len(records)} records to {output_path}")


def output_stats(records: list[dict]):
    """Print statistics about generated data."""
    print("\n📊 Generated Data Statistics")
    print("=" * 50)
    print(f"  Total records: {len(records):,}")

    if not records:
        print("  No records generated.")
        print()
        return

    print(f"  Time range: {records[0]['timestamp']} to {records[-1]['timestamp']}")
    print(f"  Unique IPs: {len(set(r['ip'] for r in records)):,}")

    print("\n  Requester Breakdown:")
    kinds = Counter()
    for r in records:
        ua = r["userAgent"]
        if ua in BROWSER_USER_AGENTS:
            kinds["browser"] += 1
        elif ua in SCRAPER_USER_AGENTS:
            kinds["scraper"] += 1
        else:
            profile = next((p for p in CRAWLER_PROFILES if p.user_agent == ua), None)
            kinds[profile.name if profile else "spoofed"] += 1

    for kind, count in kinds.most_common():
        pct = 100 * count / len(records)
        print(f"    {kind:20} {count:6,} ({pct:5.1f}%)")

    print("\n  Response Status Breakdown:")
    for status, count in sorted(Counter(r["status"] for r in records).items()):
        pct = 100 * count / len(records)
        print(f"    {status:<20} {count:6,} ({pct:5.1f}%)")

    print()


# =============================================================================
# CLI
# =============================================================================


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp."""
    parsed = parse_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(
            f"Invalid timestamp: {value}. Use ISO 8601, e.g. 2024-06-01T12:00:00Z"
        )
    return parsed


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Generate sample request logs with humans and bots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Statistics only (default)
  python scripts/generate_sample_data.py

  # JSON Lines for analyze_logs.py
  python scripts/generate_sample_data.py --output jsonl --output-path data/sample.jsonl

  # Fixed end time for reproducible runs
  python scripts/generate_sample_data.py --end 2024-06-01T12:00:00Z --seed 42
        """,
    )

    parser.add_argument(
        "--humans",
        type=int,
        default=50,
        help="Number of human visitors (default: 50)",
    )
    parser.add_argument(
        "--scrapers",
        type=int,
        default=2,
        help="Number of fast scrapers (default: 2)",
    )
    parser.add_argument(
        "--spoofers",
        type=int,
        default=2,
        help="Number of requesters spoofing crawler names (default: 2)",
    )
    parser.add_argument(
        "--hours",
        type=float,
        default=6.0,
        help="Length of the traffic window in hours (default: 6)",
    )
    parser.add_argument(
        "--end",
        type=parse_datetime,
        help="End of the traffic window (default: now)",
    )
    parser.add_argument(
        "--output",
        choices=["stats", "json", "jsonl"],
        default="stats",
        help="Output format (default: stats)",
    )
    parser.add_argument(
        "--output-path",
        type=Path,
        help="Output file for jsonl (default: data/sample_data.jsonl)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Limit number of records printed for json output",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducibility",
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

    # Validate
    if args.hours <= 1:
        logger.error(f"--hours must be > 1, got {args.hours}")
        return 1
    if min(args.humans, args.scrapers, args.spoofers) < 0:
        logger.error("Requester counts must be >= 0")
        return 1

    # Print header
    print()
    print("🤖 Bot Traffic Sample Data Generator")
    print("=" * 50)
    print(f"  Window: {args.hours:g}h ending {args.end.isoformat() if args.end else 'now'}")
    print(f"  Humans: {args.humans}, scrapers: {args.scrapers}, spoofers: {args.spoofers}")
    print(f"  Output: {args.output}")
    if args.seed is not None:
        print(f"  Seed: {args.seed}")
    print()

    generator = SampleDataGenerator(
        humans=args.humans,
        scrapers=args.scrapers,
        spoofers=args.spoofers,
        hours=args.hours,
        seed=args.seed,
    )
    records = generator.generate(end=args.end)

    # Output
    if args.output == "stats":
        output_stats(records)
    elif args.output == "json":
        output_json(records, limit=args.limit)
    elif args.output == "jsonl":
        output_path = args.output_path or Path("data/sample_data.jsonl")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_jsonl(records, output_path)
        output_stats(records)

    return 0


if __name__ == "__main__":
    sys.exit(main())
