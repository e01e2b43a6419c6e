"""
Unit tests for IPv4 CIDR containment.
"""

import pytest

from bot_detection_engine.detection import CidrCache, ip_in_ranges, ip_to_int, parse_cidr


class TestIpToInt:
    """Tests for ip_to_int."""

    def test_dotted_quad(self):
        assert ip_to_int("0.0.0.0") == 0
        assert ip_to_int("1.2.3.4") == (1 << 24) + (2 << 16) + (3 << 8) + 4
        assert ip_to_int("255.255.255.255") == 2**32 - 1

    def test_surrounding_whitespace(self):
        assert ip_to_int(" 10.0.0.1 ") == ip_to_int("10.0.0.1")

    @pytest.mark.parametrize(
        "value", [None, "", "256.1.1.1", "1.2.3", "not-an-ip", "2001:db8::1"]
    )
    def test_invalid_or_ipv6(self, value):
        assert ip_to_int(value) is None


class TestParseCidr:
    """Tests for parse_cidr."""

    def test_bounds(self):
        start, end = parse_cidr("66.249.64.0/19")
        assert start == ip_to_int("66.249.64.0")
        assert end == ip_to_int("66.249.95.255")

    def test_host_bits_masked(self):
        assert parse_cidr("66.249.64.50/19") == parse_cidr("66.249.64.0/19")

    def test_single_host_and_everything(self):
        assert parse_cidr("1.2.3.4/32") == (ip_to_int("1.2.3.4"),) * 2
        assert parse_cidr("0.0.0.0/0") == (0, 2**32 - 1)

    @pytest.mark.parametrize(
        "value",
        ["10.0.0.0", "10.0.0.0/33", "10.0.0.0/-1", "10.0.0.0/x", "bad/8", "2001:db8::/32", None],
    )
    def test_invalid(self, value):
        assert parse_cidr(value) is None


class TestCidrCache:
    """Tests for CidrCache."""

    def test_contains(self):
        cache = CidrCache()
        ranges = ["20.15.240.64/28", "66.249.64.0/19"]

        assert cache.contains("66.249.64.50", ranges)
        assert cache.contains("20.15.240.79", ranges)
        assert not cache.contains("20.15.240.80", ranges)
        assert not cache.contains("1.2.3.4", ranges)

    def test_memoises_each_range(self):
        cache = CidrCache()
        cache.contains("1.2.3.4", ["10.0.0.0/8", "10.0.0.0/8", "oops"])
        assert len(cache) == 2

    def test_invalid_input_never_matches(self):
        cache = CidrCache()
        assert not cache.contains("10.0.0.1", ["garbage", "10.0.0.0/99"])
        assert not cache.contains("2001:db8::1", ["0.0.0.0/0"])
        assert not cache.contains(None, ["0.0.0.0/0"])

    def test_clear(self):
        cache = CidrCache()
        cache.get("10.0.0.0/8")
        cache.clear()
        assert len(cache) == 0

    def test_ip_in_ranges(self):
        assert ip_in_ranges("192.168.1.10", ["192.168.0.0/16"])
        assert not ip_in_ranges("192.169.1.10", ["192.168.0.0/16"])
