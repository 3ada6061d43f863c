"""Network interface descriptions and link-layer helpers used by capture engines."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

NPF_LOOPBACK = r"\Device\NPF_Loopback"

LINK_TYPE_NULL = 0
LINK_TYPE_ETHERNET = 1
LINK_TYPE_FDDI = 10
LINK_TYPE_RAW = 101
LINK_TYPE_LOOP = 108
LINK_TYPE_LINUX_SLL = 113
LINK_TYPE_IPNET = 226
LINK_TYPE_IPV4 = 228
LINK_TYPE_IPV6 = 229

_LINK_HEADER_LENGTHS = {
    LINK_TYPE_NULL: 4,
    LINK_TYPE_LOOP: 4,
    LINK_TYPE_RAW: 0,
    12: 0,
    14: 0,
    LINK_TYPE_IPV4: 0,
    LINK_TYPE_IPV6: 0,
    LINK_TYPE_LINUX_SLL: 16,
    LINK_TYPE_FDDI: 13,
    LINK_TYPE_IPNET: 24,
}


@dataclass
class Interface:
    """A capture device: its name and the IP addresses assigned to it."""

    name: str = ""
    addresses: list[IPAddress] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.addresses = [ipaddress.ip_address(a) for a in self.addresses]


def listen_all(addr: str) -> bool:
    """Return whether ``addr`` means "every address"."""
    return addr in ("", "0.0.0.0", "[::]", "::")


def is_device(addr: str, interface: Interface) -> bool:
    """Return whether ``addr`` names ``interface`` by name, name prefix or address."""
    if addr == "127.0.0.1" and interface.name == NPF_LOOPBACK:
        return True
    if addr == interface.name:
        return True
    if addr.endswith("*") and interface.name.startswith(addr[:-1]):
        return True
    return any(str(ip) == addr for ip in interface.addresses)


def interface_addresses(interface: Interface) -> list[str]:
    """Textual forms of the interface's addresses."""
    return [str(ip) for ip in interface.addresses]


def link_type_length(link_type: int, vlan: bool) -> Optional[int]:
    """Length of the link-layer header for a pcap link type, or ``None`` if unknown."""
    if link_type == LINK_TYPE_ETHERNET:
        return 18 if vlan else 14
    return _LINK_HEADER_LENGTHS.get(link_type)