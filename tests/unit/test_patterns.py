"""
Unit tests for crawl-pattern analysis.
"""

import random

import pytest

from bot_detection_engine.detection import PatternAnalyzer
from bot_detection_engine.detection.patterns import (
    depth_consistency,
    has_sitemap_access,
    sample_paths,
    sequential_score,
    systematic_score,
)
from bot_detection_engine.schemas import PatternType


def entries_for(make_entry, paths, **kwargs):
    return [make_entry(i * 1000, path=p, **kwargs) for i, p in enumerate(paths)]


class TestSequentialScore:
    """Tests for sequential_score."""

    def test_page_numbers(self):
        paths = [f"/page/{i}" for i in range(1, 21)]
        assert sequential_score(paths) == 1.0

    def test_order_does_not_matter(self):
        paths = [f"/page/{i}" for i in (5, 3, 1, 4, 2)]
        assert sequential_score(paths) == 1.0

    def test_partial_run(self):
        """Longest consecutive run over all matches."""
        paths = ["/item/1", "/item/2", "/item/3", "/item/10", "/item/20", "/item/30"]
        assert sequential_score(paths) == pytest.approx(0.5)

    def test_query_parameter_template(self):
        paths = [f"/list?page={i}" for i in range(1, 6)]
        assert sequential_score(paths) == 1.0

    def test_alphabetical(self):
        paths = ["/a/index", "/b/index", "/c/index", "/d/index"]
        assert sequential_score(paths) == 1.0

    def test_needs_three_paths(self):
        assert sequential_score(["/page/1", "/page/2"]) == 0.0


class TestSystematicScore:
    """Tests for systematic_score and its signals."""

    def test_needs_five_paths(self):
        assert systematic_score(["/feed.xml"] * 4) == 0.0

    def test_data_extensions(self):
        paths = ["/a.xml", "/b.json", "/c.rss", "/d.csv", "/e.txt"]
        assert systematic_score(paths) == 1.0

    def test_parameter_sweep(self):
        paths = [f"/search?q={i}" for i in range(5)]
        assert systematic_score(paths) == 1.0

    def test_breadth_first(self):
        """Mostly shallow paths plus consecutive depths."""
        paths = ["/about", "/team", "/pricing", "/contact", "/docs/start", "/docs/api/ref"]
        assert systematic_score(paths) == pytest.approx(0.8)

    def test_crawler_paths(self):
        paths = ["/robots.txt", "/wp-login.php", "/admin", "/api/users", "/feed"]
        assert systematic_score(paths) == 1.0

    def test_ordinary_browsing(self):
        paths = ["/", "/about", "/team", "/pricing", "/contact"]
        assert systematic_score(paths) == 0.0


class TestIndicators:
    """Tests for sitemap access, depth consistency and sampling."""

    def test_sitemap_access(self):
        assert has_sitemap_access(["/", "/sitemap_index.xml"])
        assert has_sitemap_access(["/robots.txt"])
        assert not has_sitemap_access(["/", "/about"])

    def test_depth_consistency(self):
        assert depth_consistency([]) == 0.0
        assert depth_consistency(["/a", "/b"]) == 1.0
        # depths 1 and 2: mean 1.5, population std 0.5
        assert depth_consistency(["/a", "/a/b"]) == pytest.approx(1 - 0.5 / 1.5)

    def test_sample_paths(self):
        paths = [f"/p-{i}" for i in range(35)]
        sampled = sample_paths(paths)
        assert len(sampled) == 10
        assert sampled[0] == "/p-0"
        assert sample_paths(paths[:4]) == paths[:4]


class TestPatternAnalyzer:
    """Tests for PatternAnalyzer."""

    def test_sequential_session(self, make_entry):
        entries = entries_for(make_entry, [f"/page/{i}" for i in range(1, 21)])
        pattern = PatternAnalyzer().analyze(entries)

        assert pattern.type == PatternType.SEQUENTIAL
        assert pattern.indicators.sequential_score > 0.6
        assert pattern.confidence == 1.0
        assert len(pattern.paths) == 10

    def test_systematic_session(self, make_entry):
        paths = ["/about", "/team", "/pricing", "/contact", "/docs/start", "/docs/api/ref"]
        pattern = PatternAnalyzer().analyze(entries_for(make_entry, paths))
        assert pattern.type == PatternType.SYSTEMATIC

    def test_sitemap_makes_systematic(self, make_entry):
        pattern = PatternAnalyzer().analyze(
            entries_for(make_entry, ["/sitemap.xml", "/"])
        )
        assert pattern.type == PatternType.SYSTEMATIC
        assert pattern.indicators.sitemap_access is True
        assert pattern.confidence >= 0.3

    def test_targeted_session(self, make_entry):
        paths = ["/blog/post-a", "/blog/post-b", "/blog/post-c"]
        pattern = PatternAnalyzer().analyze(entries_for(make_entry, paths))

        assert pattern.type == PatternType.TARGETED
        assert pattern.confidence == pytest.approx(0.1)

    def test_random_session(self, make_entry):
        paths = [f"/topic-{c}" for c in "abcdefghijkl"]
        pattern = PatternAnalyzer().analyze(entries_for(make_entry, paths))
        assert pattern.type == PatternType.RANDOM

    def test_empty(self):
        pattern = PatternAnalyzer().analyze([])
        assert pattern.type == PatternType.RANDOM
        assert pattern.confidence == 0.0

    def test_missing_path_treated_as_root(self, make_entry):
        pattern = PatternAnalyzer().analyze([make_entry(path=None)])
        assert pattern.paths == ["/"]

    def test_analyze_ip_pattern(self, make_entry):
        entries = entries_for(
            make_entry, [f"/page/{i}" for i in range(1, 6)], ip="10.0.0.1"
        ) + entries_for(make_entry, ["/x", "/y"], ip="10.0.0.2")

        pattern = PatternAnalyzer().analyze_ip_pattern("10.0.0.1", entries)
        assert pattern.type == PatternType.SEQUENTIAL
        assert "/x" not in pattern.paths

    @pytest.mark.parametrize("seed", [3, 11, 99])
    def test_scores_bounded(self, seed, make_entry):
        rng = random.Random(seed)
        pieces = ["page", "item", "a", "b", "api", "feed.xml", "x.json", "?q=1", "1", "22"]
        paths = [
            "/" + "/".join(rng.choice(pieces) for _ in range(rng.randint(0, 4)))
            for _ in range(rng.randint(1, 80))
        ]
        pattern = PatternAnalyzer().analyze(entries_for(make_entry, paths))

        assert 0.0 <= pattern.confidence <= 1.0
        assert 0.0 <= pattern.indicators.sequential_score <= 1.0
        assert 0.0 <= pattern.indicators.systematic_score <= 1.0
        assert 0.0 <= pattern.indicators.depth_consistency <= 1.0
