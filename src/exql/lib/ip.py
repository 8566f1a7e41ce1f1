"""IP address and CIDR functions (``ip`` namespace), built on ``ipaddress``.

IPv4-mapped IPv6 addresses (``::ffff:10.0.0.1``) are treated as IPv4.
"""

import ipaddress
from typing import Any

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, param
from exql.lib.conversion import to_int, to_string

registry = FunctionRegistry(FunctionCategory.IP)

Address = ipaddress.IPv4Address | ipaddress.IPv6Address
Network = ipaddress.IPv4Network | ipaddress.IPv6Network

PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(cidr) for cidr in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "fc00::/7")
)
RFC1918_NETWORKS = PRIVATE_NETWORKS[:3]

MAX_IPV6_HOST_BITS = 50


def _try_address(text: str) -> Address | None:
    try:
        address = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def _address(name: str, value: Any, label: str = "IP address") -> Address:
    text = to_string(name, value)
    address = _try_address(text)
    if address is None:
        raise FunctionError(f"{name}: invalid {label} '{text}'")
    return address


def _ipv4(name: str, value: Any) -> ipaddress.IPv4Address:
    text = to_string(name, value)
    address = _try_address(text)
    if not isinstance(address, ipaddress.IPv4Address):
        raise FunctionError(f"{name}: invalid or non-IPv4 address '{text}'")
    return address


def _ipv6(name: str, value: Any) -> ipaddress.IPv6Address:
    address = _address(name, value)
    if isinstance(address, ipaddress.IPv4Address):
        raise FunctionError(f"{name}: address is IPv4, not IPv6")
    return address


def _network(name: str, value: Any) -> Network:
    text = to_string(name, value)
    if "/" not in text:
        raise FunctionError(f"{name}: invalid CIDR '{text}'")
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError as e:
        raise FunctionError(f"{name}: invalid CIDR '{text}': {e}") from e


# -----------------------------------------------------------------------------
# Classification
# -----------------------------------------------------------------------------


@registry.function("is_valid_ip", "True for a valid IPv4 or IPv6 address", [param("ip", "string")], "boolean")
def _is_valid_ip(value: Any) -> bool:
    return _try_address(to_string("is_valid_ip", value)) is not None


@registry.function("is_ipv4", "True for a valid IPv4 address", [param("ip", "string")], "boolean")
def _is_ipv4(value: Any) -> bool:
    return isinstance(_try_address(to_string("is_ipv4", value)), ipaddress.IPv4Address)


@registry.function("is_ipv6", "True for a valid IPv6 address", [param("ip", "string")], "boolean")
def _is_ipv6(value: Any) -> bool:
    return isinstance(_try_address(to_string("is_ipv6", value)), ipaddress.IPv6Address)


@registry.function(
    "is_private_ip",
    "True for RFC 1918 and unique local (fc00::/7) addresses",
    [param("ip", "string")],
    "boolean",
)
def _is_private_ip(value: Any) -> bool:
    address = _address("is_private_ip", value)
    return any(address in network for network in PRIVATE_NETWORKS if network.version == address.version)


@registry.function("is_loopback_ip", "True for loopback addresses", [param("ip", "string")], "boolean")
def _is_loopback_ip(value: Any) -> bool:
    return _address("is_loopback_ip", value).is_loopback


@registry.function("is_multicast_ip", "True for multicast addresses", [param("ip", "string")], "boolean")
def _is_multicast_ip(value: Any) -> bool:
    return _address("is_multicast_ip", value).is_multicast


@registry.function("is_link_local_ip", "True for link-local unicast addresses", [param("ip", "string")], "boolean")
def _is_link_local_ip(value: Any) -> bool:
    return _address("is_link_local_ip", value).is_link_local


@registry.function(
    "is_rfc1918", "True for 10/8, 172.16/12 and 192.168/16", [param("ip", "string")], "boolean"
)
def _is_rfc1918(value: Any) -> bool:
    address = _ipv4("is_rfc1918", value)
    return any(address in network for network in RFC1918_NETWORKS)


# -----------------------------------------------------------------------------
# Ranges and CIDR blocks
# -----------------------------------------------------------------------------


@registry.function(
    "cidr_match",
    "True when the address is inside the CIDR block",
    [param("ip", "string"), param("cidr", "string")],
    "boolean",
    examples=["ip.cidr_match(request_ip, '10.0.0.0/8')"],
)
def _cidr_match(value: Any, cidr: Any) -> bool:
    network = _network("cidr_match", cidr)
    address = _address("cidr_match", value)
    return address.version == network.version and address in network


registry.alias("cidr_contains", "cidr_match")


@registry.function(
    "ip_in_range",
    "True when start <= ip <= end; all three must be the same family",
    [param("ip", "string"), param("start", "string"), param("end", "string")],
    "boolean",
)
def _ip_in_range(value: Any, start: Any, end: Any) -> bool:
    address = _address("ip_in_range", value)
    low = _address("ip_in_range", start, "start IP address")
    high = _address("ip_in_range", end, "end IP address")
    if not address.version == low.version == high.version:
        raise FunctionError("ip_in_range: IP addresses must be of the same type (IPv4 or IPv6)")
    return low <= address <= high


@registry.function("cidr_network", "Network address of a CIDR block", [param("cidr", "string")], "string")
def _cidr_network(cidr: Any) -> str:
    return str(_network("cidr_network", cidr).network_address)


@registry.function("cidr_broadcast", "Broadcast address of an IPv4 CIDR block", [param("cidr", "string")], "string")
def _cidr_broadcast(cidr: Any) -> str:
    network = _network("cidr_broadcast", cidr)
    if network.version != 4:
        raise FunctionError("cidr_broadcast: IPv6 doesn't have broadcast addresses")
    return str(network.broadcast_address)


@registry.function(
    "cidr_host_count",
    "Usable hosts of an IPv4 block; addresses of an IPv6 block (-1 beyond 2^50)",
    [param("cidr", "string")],
    "number",
)
def _cidr_host_count(cidr: Any) -> float:
    network = _network("cidr_host_count", cidr)
    host_bits = network.max_prefixlen - network.prefixlen
    if network.version == 4:
        return float(max((1 << host_bits) - 2, 0))
    if host_bits > MAX_IPV6_HOST_BITS:
        return -1.0
    return float(1 << host_bits)


@registry.function(
    "cidr_subnets",
    "Splits an IPv4 block into subnets of a longer prefix",
    [param("cidr", "string"), param("prefix", "number")],
    "list",
    examples=["ip.cidr_subnets('10.0.0.0/24', 26)"],
)
def _cidr_subnets(cidr: Any, prefix: Any) -> list:
    network = _network("cidr_subnets", cidr)
    new_prefix = to_int("cidr_subnets", prefix)
    if not network.prefixlen < new_prefix <= network.max_prefixlen:
        raise FunctionError(
            f"cidr_subnets: new prefix length {new_prefix} must be between "
            f"{network.prefixlen + 1} and {network.max_prefixlen}"
        )
    if network.version != 4:
        raise FunctionError("cidr_subnets: only IPv4 subnets are supported")
    return [str(subnet) for subnet in network.subnets(new_prefix=new_prefix)]


# -----------------------------------------------------------------------------
# Representation
# -----------------------------------------------------------------------------


@registry.function("normalize_ip", "Canonical text form of an address", [param("ip", "string")], "string")
def _normalize_ip(value: Any) -> str:
    return str(_address("normalize_ip", value))


@registry.function("expand_ipv6", "Fully expanded IPv6 form", [param("ip", "string")], "string")
def _expand_ipv6(value: Any) -> str:
    return _ipv6("expand_ipv6", value).exploded


@registry.function("compress_ipv6", "Compressed IPv6 form", [param("ip", "string")], "string")
def _compress_ipv6(value: Any) -> str:
    return _ipv6("compress_ipv6", value).compressed


@registry.function("ip_to_int", "IPv4 address as an unsigned 32-bit number", [param("ip", "string")], "number")
def _ip_to_int(value: Any) -> float:
    return float(int(_ipv4("ip_to_int", value)))


@registry.function("int_to_ip", "IPv4 address of an unsigned 32-bit number", [param("number", "number")], "string")
def _int_to_ip(value: Any) -> str:
    return str(ipaddress.IPv4Address(to_int("int_to_ip", value) & 0xFFFFFFFF))


@registry.function(
    "reverse_ip",
    "Reverse DNS name (in-addr.arpa or ip6.arpa)",
    [param("ip", "string")],
    "string",
    examples=["ip.reverse_ip('192.168.1.1') == '1.1.168.192.in-addr.arpa'"],
)
def _reverse_ip(value: Any) -> str:
    return _address("reverse_ip", value).reverse_pointer
