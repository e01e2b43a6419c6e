"""
Unit tests for bot_classifier module.

Tests the legacy name-based bot detector used as a signature fallback.
"""

import pytest

from bot_detection_engine.utils.bot_classifier import (
    LegacyBotMatch,
    detect_bot,
    get_bot_names_by_category,
)


class TestDetectBot:
    """Tests for detect_bot function."""

    def test_gptbot(self):
        """GPTBot should be an ai_training crawler with critical severity."""
        user_agent = "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0; +https://openai.com/gptbot)"
        result = detect_bot(user_agent)

        assert result is not None
        assert result.bot_name == "GPTBot"
        assert result.category == "ai_training"
        assert result.severity == "critical"

    def test_chatgpt_user(self):
        """ChatGPT-User should be an ai_search agent."""
        result = detect_bot("Mozilla/5.0 (compatible; ChatGPT-User/1.0; +https://openai.com/bot)")

        assert result is not None
        assert result.bot_name == "ChatGPT-User"
        assert result.category == "ai_search"

    def test_googlebot(self):
        """Googlebot should be a low severity search engine."""
        result = detect_bot("Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)")

        assert result.bot_name == "Googlebot"
        assert result.category == "search_engine"
        assert result.severity == "low"

    def test_applebot_extended_before_applebot(self):
        """Table order decides between overlapping names."""
        assert detect_bot("Applebot-Extended/1.0").bot_name == "Applebot-Extended"
        assert detect_bot("Mozilla/5.0 (Applebot/0.1)").bot_name == "Applebot"

    def test_seo_tool(self):
        result = detect_bot("Mozilla/5.0 (compatible; AhrefsBot/7.0; +http://ahrefs.com/robot/)")
        assert result.category == "seo_tool"

    def test_http_libraries(self):
        """Command-line clients and HTTP libraries are scrapers."""
        assert detect_bot("curl/8.4.0").bot_name == "curl"
        assert detect_bot("python-requests/2.31.0").bot_name == "python-requests"
        assert detect_bot("Wget/1.21.4").category == "scraper"

    def test_default_confidence(self):
        assert detect_bot("curl/8.4.0").confidence == 0.7


class TestUnknownAgents:
    """Tests for handling unknown or invalid user-agents."""

    def test_regular_browser_returns_none(self):
        """Regular browser user-agent should return None."""
        user_agent = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0.0.0"
        assert detect_bot(user_agent) is None

    @pytest.mark.parametrize("user_agent", ["", None])
    def test_empty_returns_none(self, user_agent):
        assert detect_bot(user_agent) is None

    def test_partial_word_does_not_match(self):
        """Names must appear as whole words."""
        assert detect_bot("Mozilla/5.0 (compatible; curling-club-app)") is None
        assert detect_bot("SuperGPTBotX") is None


class TestCaseInsensitiveMatching:
    """Tests for case-insensitive bot detection."""

    @pytest.mark.parametrize("user_agent", ["GPTBOT/1.0", "gptbot/1.0", "GptBot/1.0"])
    def test_gptbot_any_case(self, user_agent):
        assert detect_bot(user_agent).bot_name == "GPTBot"

    def test_bingbot_mixed_case(self):
        assert detect_bot("Mozilla/5.0 (compatible; BingBot/2.0)").bot_name == "bingbot"


class TestBotNameHelpers:
    """Tests for get_bot_names_by_category."""

    def test_search_engines(self):
        names = get_bot_names_by_category("search_engine")
        assert "Googlebot" in names
        assert "bingbot" in names
        assert "GPTBot" not in names

    def test_unknown_category(self):
        assert get_bot_names_by_category("nonexistent") == []


class TestLegacyBotMatch:
    """Tests for the LegacyBotMatch dataclass."""

    def test_to_dict(self):
        match = LegacyBotMatch(
            bot_name="TestBot",
            category="scraper",
            severity="high",
            description="Test",
        )
        assert match.to_dict() == {
            "bot_name": "TestBot",
            "category": "scraper",
            "severity": "high",
            "description": "Test",
            "confidence": 0.7,
        }
