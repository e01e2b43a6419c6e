"""
Unit tests for signature matching and IP verification.
"""

import pytest

from bot_detection_engine.detection import SignatureMatcher, SignatureRegistry
from bot_detection_engine.schemas import BotCategory, Impact

GPTBOT_UA = (
    "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; "
    "GPTBot/1.0; +https://openai.com/gptbot)"
)


@pytest.fixture
def matcher(builtin_registry):
    return SignatureMatcher(builtin_registry)


@pytest.fixture
def unranged_matcher():
    """Matcher over one signature with no ranges or verification."""
    registry = SignatureRegistry.from_records(
        [
            {
                "name": "ExampleBot",
                "category": "extractive",
                "patterns": ["ExampleBot"],
                "impact": "medium",
            }
        ],
        enrich=False,
    )
    return SignatureMatcher(registry, use_legacy=False)


class TestIpVerification:
    """Confidence levels from IP-range checks."""

    def test_verified_googlebot(self, matcher):
        """In-range IP plus a versioned user agent reaches full confidence."""
        result = matcher.match_user_agent("Googlebot/2.1", "66.249.64.50")

        assert result.bot_name == "Googlebot"
        assert result.category == BotCategory.BENEFICIAL
        assert result.verified is True
        assert result.confidence == pytest.approx(1.0)
        assert result.impact == Impact.LOW

    def test_spoofed_gptbot(self, matcher):
        """A GPTBot user agent from outside OpenAI's ranges is a suspected spoof."""
        result = matcher.match_user_agent("GPTBot/1.0", "1.2.3.4")

        assert result.bot_name == "GPTBot"
        assert result.verified is False
        assert result.confidence == pytest.approx(0.35)

    def test_full_gptbot_user_agent_verified(self, matcher):
        result = matcher.match_user_agent(GPTBOT_UA, "20.171.12.34")
        assert result.verified is True
        assert result.confidence == pytest.approx(1.0)

    def test_no_ip(self, matcher):
        result = matcher.match_user_agent("Googlebot/2.1", None)
        assert result.verified is False
        assert result.confidence == pytest.approx(0.65)

    def test_ipv6_is_unverified(self, matcher):
        result = matcher.match_user_agent("Googlebot/2.1", "2001:4860:4801::1")
        assert result.verified is False
        assert result.confidence == pytest.approx(0.35)

    def test_signature_without_ranges(self, unranged_matcher):
        result = unranged_matcher.match_user_agent("ExampleBot/3", "1.2.3.4")
        assert result.verified is False
        assert result.confidence == pytest.approx(0.75)

    def test_generic_client_penalised(self, unranged_matcher):
        result = unranged_matcher.match_user_agent("python-requests/2.31 ExampleBot")
        assert result.confidence == pytest.approx(0.55)


class TestFallbacks:
    """Legacy lookup and misses."""

    def test_legacy_match(self, matcher):
        result = matcher.match_user_agent("curl/8.4.0", "1.2.3.4")

        assert result.bot_name == "curl"
        assert result.category == BotCategory.MALICIOUS
        assert result.subcategory == "scraper"
        assert result.impact == Impact.MEDIUM
        assert result.confidence == pytest.approx(0.7)
        assert result.verified is False

    def test_legacy_severity_mapping(self, matcher):
        result = matcher.match_user_agent("Mozilla/5.0 (compatible; Bytespider)")
        assert result.category == BotCategory.EXTRACTIVE
        assert result.impact == Impact.EXTREME

    def test_legacy_disabled(self, builtin_registry):
        matcher = SignatureMatcher(builtin_registry, use_legacy=False)
        assert matcher.match_user_agent("curl/8.4.0") is None

    def test_browser_and_blank(self, matcher):
        chrome = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/119.0.0.0 Safari/537.36"
        assert matcher.match_user_agent(chrome, "1.2.3.4") is None
        assert matcher.match_user_agent(None) is None
        assert matcher.match_user_agent("RapidBot/1.0") is None


class TestMatcherState:
    """Caching and entry matching."""

    def test_match_entry(self, matcher, make_entry):
        entry = make_entry(ip="66.249.64.50", user_agent="Googlebot/2.1")
        assert matcher.match(entry).verified is True

    def test_user_agent_cache(self, matcher):
        matcher.match_user_agent("Googlebot/2.1", "66.249.64.50")
        matcher.match_user_agent("Googlebot/2.1", "1.2.3.4")
        matcher.match_user_agent("unknown-agent")

        assert matcher.cache_size == 2
        assert len(matcher.cidr_cache) > 0

    def test_ip_checked_per_call(self, matcher):
        """Cached user agents are still verified against each IP."""
        first = matcher.match_user_agent("Googlebot/2.1", "66.249.64.50")
        second = matcher.match_user_agent("Googlebot/2.1", "1.2.3.4")
        assert first.verified is True
        assert second.verified is False

    def test_clear_cache(self, matcher):
        matcher.match_user_agent("Googlebot/2.1", "66.249.64.50")
        matcher.clear_cache()
        assert matcher.cache_size == 0
        assert len(matcher.cidr_cache) == 0

    def test_metadata_copied(self, matcher, builtin_registry):
        result = matcher.match_user_agent("Googlebot/2.1")
        signature = builtin_registry.get("Googlebot")
        assert result.metadata == signature.metadata
        assert result.metadata is not signature.metadata
