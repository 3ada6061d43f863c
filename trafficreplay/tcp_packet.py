"""Parsing of raw captured frames into TCP packets."""

from __future__ import annotations

import ipaddress
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

from trafficreplay.pcapdump import CaptureInfo

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF
_TCP_PROTOCOL = 6
_IPV6_FRAGMENT = 44


class Direction(IntEnum):
    """Direction of a packet relative to the watched service."""

    UNKNOWN = 0
    INCOMING = 1
    OUTGOING = 2


class PacketError(ValueError):
    """Base class for errors raised while parsing a packet."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(self._message(detail))

    @staticmethod
    def _message(detail: str) -> str:
        return detail


class EmptyPacket(PacketError):
    """Raised for packets that carry no payload."""

    @staticmethod
    def _message(detail: str) -> str:
        return "Empty packet"


class HeaderLengthError(PacketError):
    """Raised when a header is shorter than required."""

    @staticmethod
    def _message(detail: str) -> str:
        return f"short {detail} length"


class HeaderMissingError(PacketError):
    """Raised when a required header is absent."""

    @staticmethod
    def _message(detail: str) -> str:
        return f"missing {detail} header(s)"


class HeaderExpectedError(PacketError):
    """Raised when a header differs from the one expected."""

    @staticmethod
    def _message(detail: str) -> str:
        return f"expected {detail} header(s)"


class HeaderInvalidError(PacketError):
    """Raised when a header field holds an invalid value."""

    @staticmethod
    def _message(detail: str) -> str:
        return f"invalid {detail} value"


def ip_to_int(ip: IPAddress | bytes | None) -> int:
    """Return the last four bytes of an IPv6 address or the IPv4 address as an integer."""
    if ip is None:
        return 0
    raw = ip.packed if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else bytes(ip)
    if not raw:
        return 0
    if len(raw) == 16:
        return int.from_bytes(raw[12:16], "big")
    if len(raw) < 4:
        raise ValueError(f"address of {len(raw)} bytes is too short")
    return int.from_bytes(raw[:4], "big")


def _format_ip(ip: IPAddress | None) -> str:
    return "<nil>" if ip is None else str(ip)


@dataclass
class Packet:
    """A parsed TCP segment together with its addressing information."""

    direction: Direction = Direction.UNKNOWN
    src_ip: IPAddress | None = None
    dst_ip: IPAddress | None = None
    version: int = 0
    src_port: int = 0
    dst_port: int = 0
    ack: int = 0
    seq: int = 0
    ack_flag: bool = False
    syn: bool = False
    fin: bool = False
    rst: bool = False
    lost: int = 0
    retry: int = 0
    capture_length: int = 0
    timestamp: float = 0.0
    payload: bytes = field(default=b"", repr=False)

    def message_id(self) -> int:
        """Identifier shared by all packets of one message."""
        low = ip_to_int(self.src_ip) + ip_to_int(self.dst_ip) + self.ack
        return ((self.src_port << 48) | (self.dst_port << 32) | low) & _MASK64

    def src(self) -> str:
        """Source socket as ``ip:port``."""
        return f"{_format_ip(self.src_ip)}:{self.src_port}"

    def dst(self) -> str:
        """Destination socket as ``ip:port``."""
        return f"{_format_ip(self.dst_ip)}:{self.dst_port}"


@dataclass
class PcapPacket:
    """A raw captured frame waiting to be parsed."""

    data: bytes
    link_type: int
    link_len: int
    info: CaptureInfo


def _is_ipv6_extension(proto: int) -> bool:
    return proto in (0, 43, _IPV6_FRAGMENT)


def _network_layer(ldata: bytes) -> tuple[bytes, int]:
    version = ldata[0] >> 4
    if version == 4:
        if len(ldata) < 20:
            raise HeaderLengthError("IPv4")
        proto = ldata[9]
        ihl = (ldata[0] & 0x0F) * 4
        if ihl < 20:
            raise HeaderInvalidError("IPv4's IHL")
        if len(ldata) < ihl:
            raise HeaderLengthError("IPv4 opts")
        return ldata[:ihl], proto
    if version == 6:
        if len(ldata) < 40:
            raise HeaderLengthError("IPv6")
        proto = ldata[6]
        total = 40
        while _is_ipv6_extension(proto):
            remaining = len(ldata) - total
            if remaining < 8:
                raise HeaderExpectedError("IPv6 opts")
            ext_len = 8 if proto == _IPV6_FRAGMENT else (ldata[total + 1] + 1) * 8
            if remaining < ext_len:
                raise HeaderLengthError("IPv6 opts")
            proto = ldata[total]
            total += ext_len
        return ldata[:total], proto
    raise HeaderExpectedError("IPv4 or IPv6")


def parse_packet(
    data: bytes,
    link_type: int,
    link_len: int,
    info: CaptureInfo,
    allow_empty: bool = False,
) -> Packet:
    """Parse a link-layer frame holding IPv4 or IPv6 and TCP.

    Raises a :class:`PacketError` subclass when the frame is not a usable TCP packet.
    """
    data = bytes(data)
    if len(data) < link_len:
        raise HeaderLengthError("Link")
    if len(data) <= link_len:
        raise HeaderMissingError("IPv4 or IPv6")

    ldata = data[link_len:]
    net_layer, proto = _network_layer(ldata)
    if proto != _TCP_PROTOCOL:
        raise HeaderExpectedError("TCP")
    if len(data) <= len(net_layer):
        raise HeaderMissingError("TCP")

    ndata = ldata[len(net_layer):]
    if len(ndata) < 20:
        raise HeaderLengthError("TCP")
    offset = (ndata[12] >> 4) * 4
    if offset < 20:
        raise HeaderInvalidError("TCP's ndata offset")
    if len(ndata) < offset:
        raise HeaderLengthError("TCP opts")

    payload = ndata[offset:]
    if not allow_empty and not any(payload):
        raise EmptyPacket()

    if net_layer[0] >> 4 == 4:
        version = 4
        src_ip: IPAddress = ipaddress.IPv4Address(net_layer[12:16])
        dst_ip: IPAddress = ipaddress.IPv4Address(net_layer[16:20])
    else:
        version = 6
        src_ip = ipaddress.IPv6Address(net_layer[8:24])
        dst_ip = ipaddress.IPv6Address(net_layer[24:40])

    src_port, dst_port, seq, ack = struct.unpack_from(">HHII", ndata)
    flags = ndata[13]
    timestamp = info.timestamp_ns / 1e9 if info.timestamp_ns is not None else 0.0

    return Packet(
        src_ip=src_ip,
        dst_ip=dst_ip,
        version=version,
        src_port=src_port,
        dst_port=dst_port,
        seq=seq,
        ack=ack,
        fin=bool(flags & 0x01),
        syn=bool(flags & 0x02),
        rst=bool(flags & 0x04),
        ack_flag=bool(flags & 0x10),
        lost=(info.length - info.capture_length) & _MASK32,
        capture_length=info.capture_length,
        timestamp=timestamp,
        payload=payload,
    )