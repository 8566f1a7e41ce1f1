"""Tests for the ip library."""

import pytest

from exql import DefaultContext, FunctionError, eval_expression, with_builtin_library


def run(source, **variables):
    ctx = DefaultContext(with_builtin_library(), variables=variables)
    return eval_expression(source, ctx)


# =============================================================================
# Classification Tests
# =============================================================================


class TestClassification:
    def test_validity(self):
        assert run("ip.is_valid_ip('192.168.1.1')") is True
        assert run("ip.is_valid_ip('2001:db8::1')") is True
        assert run("ip.is_valid_ip('999.1.1.1')") is False
        assert run("ip.is_valid_ip('nope')") is False

    def test_family(self):
        assert run("ip.is_ipv4('10.0.0.1')") is True
        assert run("ip.is_ipv4('::1')") is False
        assert run("ip.is_ipv6('::1')") is True
        assert run("ip.is_ipv6('nope')") is False

    def test_ipv4_mapped_counts_as_ipv4(self):
        assert run("ip.is_ipv4('::ffff:10.0.0.1')") is True
        assert run("ip.is_private_ip('::ffff:10.0.0.1')") is True

    @pytest.mark.parametrize(
        "address,expected",
        [
            ("10.1.2.3", True),
            ("172.16.0.1", True),
            ("172.32.0.1", False),
            ("192.168.10.10", True),
            ("8.8.8.8", False),
            ("fd00::1", True),
            ("2001:db8::1", False),
        ],
    )
    def test_is_private(self, address, expected):
        assert run("ip.is_private_ip(a)", a=address) is expected

    def test_is_private_invalid(self):
        with pytest.raises(FunctionError, match="is_private_ip: invalid IP address 'nope'"):
            run("ip.is_private_ip('nope')")

    def test_loopback_multicast_link_local(self):
        assert run("ip.is_loopback_ip('127.0.0.1')") is True
        assert run("ip.is_loopback_ip('::1')") is True
        assert run("ip.is_multicast_ip('224.0.0.1')") is True
        assert run("ip.is_link_local_ip('169.254.1.1')") is True
        assert run("ip.is_link_local_ip('fe80::1')") is True
        assert run("ip.is_link_local_ip('10.0.0.1')") is False

    def test_rfc1918(self):
        assert run("ip.is_rfc1918('192.168.0.1')") is True
        assert run("ip.is_rfc1918('1.1.1.1')") is False

    def test_rfc1918_rejects_ipv6(self):
        with pytest.raises(FunctionError, match="is_rfc1918: invalid or non-IPv4 address 'fd00::1'"):
            run("ip.is_rfc1918('fd00::1')")


# =============================================================================
# CIDR Tests
# =============================================================================


class TestCidr:
    def test_cidr_match(self):
        assert run("ip.cidr_match('10.1.2.3', '10.0.0.0/8')") is True
        assert run("ip.cidr_match('11.1.2.3', '10.0.0.0/8')") is False
        assert run("ip.cidr_contains('2001:db8::5', '2001:db8::/32')") is True

    def test_cidr_match_host_bits_allowed(self):
        assert run("ip.cidr_match('10.0.0.5', '10.0.0.1/24')") is True

    def test_cidr_match_across_families(self):
        assert run("ip.cidr_match('::1', '10.0.0.0/8')") is False

    def test_cidr_requires_prefix(self):
        with pytest.raises(FunctionError, match="cidr_match: invalid CIDR '10.0.0.0'"):
            run("ip.cidr_match('10.0.0.1', '10.0.0.0')")

    def test_ip_in_range(self):
        assert run("ip.ip_in_range('10.0.0.5', '10.0.0.1', '10.0.0.10')") is True
        assert run("ip.ip_in_range('10.0.0.11', '10.0.0.1', '10.0.0.10')") is False

    def test_ip_in_range_mixed_families(self):
        with pytest.raises(FunctionError, match="must be of the same type"):
            run("ip.ip_in_range('::1', '10.0.0.1', '10.0.0.10')")

    def test_ip_in_range_invalid_start(self):
        with pytest.raises(FunctionError, match="ip_in_range: invalid start IP address 'x'"):
            run("ip.ip_in_range('10.0.0.1', 'x', '10.0.0.10')")

    def test_network_and_broadcast(self):
        assert run("ip.cidr_network('192.168.1.77/24')") == "192.168.1.0"
        assert run("ip.cidr_broadcast('192.168.1.77/24')") == "192.168.1.255"

    def test_broadcast_ipv6(self):
        with pytest.raises(FunctionError, match="IPv6 doesn't have broadcast addresses"):
            run("ip.cidr_broadcast('2001:db8::/64')")

    def test_host_count(self):
        assert run("ip.cidr_host_count('10.0.0.0/24')") == 254.0
        assert run("ip.cidr_host_count('10.0.0.1/32')") == 0.0
        assert run("ip.cidr_host_count('2001:db8::/120')") == 256.0
        assert run("ip.cidr_host_count('2001:db8::/64')") == -1.0

    def test_subnets(self):
        assert run("ip.cidr_subnets('10.0.0.0/24', 26)") == [
            "10.0.0.0/26",
            "10.0.0.64/26",
            "10.0.0.128/26",
            "10.0.0.192/26",
        ]

    def test_subnets_invalid_prefix(self):
        with pytest.raises(FunctionError, match="new prefix length 24 must be between 25 and 32"):
            run("ip.cidr_subnets('10.0.0.0/24', 24)")


# =============================================================================
# Representation Tests
# =============================================================================


class TestRepresentation:
    def test_normalize(self):
        assert run("ip.normalize_ip('2001:DB8:0:0::1')") == "2001:db8::1"
        assert run("ip.normalize_ip('::ffff:10.0.0.1')") == "10.0.0.1"

    def test_expand_and_compress(self):
        assert run("ip.expand_ipv6('2001:db8::1')") == "2001:0db8:0000:0000:0000:0000:0000:0001"
        assert run("ip.compress_ipv6('2001:0db8:0000:0000:0000:0000:0000:0001')") == "2001:db8::1"

    def test_expand_rejects_ipv4(self):
        with pytest.raises(FunctionError, match="expand_ipv6: address is IPv4, not IPv6"):
            run("ip.expand_ipv6('10.0.0.1')")

    def test_int_conversion(self):
        assert run("ip.ip_to_int('192.168.1.1')") == 3232235777.0
        assert run("ip.int_to_ip(3232235777)") == "192.168.1.1"
        assert run("ip.int_to_ip(ip.ip_to_int('10.0.0.1') + 1)") == "10.0.0.2"

    def test_reverse(self):
        assert run("ip.reverse_ip('192.168.1.1')") == "1.1.168.192.in-addr.arpa"
        assert run("ip.reverse_ip('::1')").endswith(".ip6.arpa")
