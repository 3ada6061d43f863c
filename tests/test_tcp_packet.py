import ipaddress
import struct

import pytest

from trafficreplay.pcapdump import CaptureInfo
from trafficreplay.tcp_packet import (
    Direction,
    EmptyPacket,
    HeaderExpectedError,
    HeaderInvalidError,
    HeaderLengthError,
    HeaderMissingError,
    Packet,
    PcapPacket,
    ip_to_int,
    parse_packet,
)

LINK_TYPE_LOOP = 108
PROTOCOL_FAMILY_IPV4 = 2


def generate_header(request: bool, seq: int, length: int) -> bytes:
    hdr = bytearray(4 + 24 + 24)
    struct.pack_into(">I", hdr, 0, PROTOCOL_FAMILY_IPV4)
    ip = memoryview(hdr)[4:]
    ip[0] = 4 << 4 | 6
    struct.pack_into(">H", ip, 2, length + 24 + 24)
    ip[9] = 6
    ip[12:16] = bytes([127, 0, 0, 1])
    ip[16:20] = bytes([127, 0, 0, 1])
    tcp = ip[24:]
    tcp[12] = 6 << 4
    if request:
        struct.pack_into(">HH", tcp, 0, 5535, 8000)
    else:
        struct.pack_into(">HH", tcp, 0, 8000, 5535)
    struct.pack_into(">I", tcp, 4, seq)
    return bytes(hdr)


def get_packets(request: bool, start: int, count: int, payload: bytes) -> list[Packet]:
    packets = []
    for seq in range(start, start + count):
        data = generate_header(request, seq, len(payload)) + payload
        info = CaptureInfo(timestamp_ns=1_000_000_000, capture_length=len(data), length=len(data))
        packet = parse_packet(data, LINK_TYPE_LOOP, 4, info, True)
        packet.direction = Direction.INCOMING if request else Direction.OUTGOING
        packets.append(packet)
    return packets


def _info(data: bytes) -> CaptureInfo:
    return CaptureInfo(timestamp_ns=0, capture_length=len(data), length=len(data))


def test_parse_generated_request():
    payload = bytes(10)
    packets = get_packets(True, 1024, 1, payload)
    packet = packets[0]
    assert packet.src_port == 5535
    assert packet.dst_port == 8000
    assert packet.seq == 1024
    assert packet.version == 4
    assert packet.src_ip == ipaddress.IPv4Address("127.0.0.1")
    assert packet.payload == payload
    assert packet.direction == Direction.INCOMING


def test_parse_generated_response_ports():
    packet = get_packets(False, 1, 1, b"x")[0]
    assert packet.src_port == 8000
    assert packet.dst_port == 5535
    assert packet.direction == Direction.OUTGOING
    assert packet.timestamp == 1.0


def test_consecutive_packets_share_message_id():
    packets = get_packets(True, 1, 5, b"abc")
    ids = {p.message_id() for p in packets}
    assert len(ids) == 1
    assert [p.seq for p in packets] == [1, 2, 3, 4, 5]


def test_message_id_holds_ports():
    packet = get_packets(True, 1, 1, b"abc")[0]
    mid = packet.message_id()
    assert mid >> 48 == 5535
    assert (mid >> 32) & 0xFFFF == 8000


def test_message_id_changes_with_ack():
    packet = Packet(src_port=60000, dst_port=80, ack=1, seq=1)
    before = packet.message_id()
    packet.ack += 25
    assert packet.message_id() == before + 25


def test_empty_packet_rejected_unless_allowed():
    data = generate_header(True, 1, 10) + bytes(10)
    with pytest.raises(EmptyPacket) as err:
        parse_packet(data, LINK_TYPE_LOOP, 4, _info(data), False)
    assert str(err.value) == "Empty packet"
    assert parse_packet(data, LINK_TYPE_LOOP, 4, _info(data), True).payload == bytes(10)


def test_flags_and_ack():
    data = bytearray(generate_header(True, 7, 1) + b"z")
    tcp_offset = 4 + 24
    struct.pack_into(">I", data, tcp_offset + 8, 99)
    data[tcp_offset + 13] = 0x01 | 0x02 | 0x10
    packet = parse_packet(bytes(data), LINK_TYPE_LOOP, 4, _info(bytes(data)), False)
    assert packet.ack == 99
    assert packet.fin and packet.syn and packet.ack_flag
    assert not packet.rst


def test_lost_bytes():
    data = generate_header(True, 1, 1) + b"a"
    info = CaptureInfo(timestamp_ns=0, capture_length=len(data), length=len(data) + 40)
    packet = parse_packet(data, LINK_TYPE_LOOP, 4, info, False)
    assert packet.lost == 40
    assert packet.capture_length == len(data)


def test_short_link_layer():
    with pytest.raises(HeaderLengthError) as err:
        parse_packet(b"\x00\x00", LINK_TYPE_LOOP, 4, _info(b"\x00\x00"), True)
    assert str(err.value) == "short Link length"


def test_missing_network_layer():
    with pytest.raises(HeaderMissingError) as err:
        parse_packet(b"\x00" * 4, LINK_TYPE_LOOP, 4, _info(b"\x00" * 4), True)
    assert str(err.value) == "missing IPv4 or IPv6 header(s)"


def test_unknown_ip_version():
    data = b"\x00" * 4 + b"\x50" + b"\x00" * 40
    with pytest.raises(HeaderExpectedError) as err:
        parse_packet(data, LINK_TYPE_LOOP, 4, _info(data), True)
    assert str(err.value) == "expected IPv4 or IPv6 header(s)"


def test_non_tcp_protocol():
    data = bytearray(generate_header(True, 1, 1) + b"a")
    data[4 + 9] = 17
    with pytest.raises(HeaderExpectedError) as err:
        parse_packet(bytes(data), LINK_TYPE_LOOP, 4, _info(bytes(data)), True)
    assert err.value.detail == "TCP"


def test_invalid_ihl():
    data = bytearray(generate_header(True, 1, 1) + b"a")
    data[4] = 4 << 4 | 2
    with pytest.raises(HeaderInvalidError) as err:
        parse_packet(bytes(data), LINK_TYPE_LOOP, 4, _info(bytes(data)), True)
    assert str(err.value) == "invalid IPv4's IHL value"


def test_invalid_tcp_offset():
    data = bytearray(generate_header(True, 1, 1) + b"a")
    data[4 + 24 + 12] = 2 << 4
    with pytest.raises(HeaderInvalidError):
        parse_packet(bytes(data), LINK_TYPE_LOOP, 4, _info(bytes(data)), True)


def test_short_tcp_header():
    data = generate_header(True, 1, 0)[: 4 + 24 + 10]
    with pytest.raises(HeaderLengthError) as err:
        parse_packet(data, LINK_TYPE_LOOP, 4, _info(data), True)
    assert err.value.detail == "TCP"


def _ipv6_frame(next_header: int, extension: bytes, payload: bytes) -> bytes:
    ip = bytearray(40)
    ip[0] = 6 << 4
    ip[6] = next_header
    ip[8:24] = ipaddress.IPv6Address("2001:db8::1").packed
    ip[24:40] = ipaddress.IPv6Address("2001:db8::2").packed
    tcp = bytearray(20)
    struct.pack_into(">HHII", tcp, 0, 1234, 80, 5, 6)
    tcp[12] = 5 << 4
    return bytes(ip) + extension + bytes(tcp) + payload


def test_parse_ipv6():
    data = _ipv6_frame(6, b"", b"hello")
    packet = parse_packet(data, 0, 0, _info(data), False)
    assert packet.version == 6
    assert packet.src_ip == ipaddress.IPv6Address("2001:db8::1")
    assert packet.dst_port == 80
    assert packet.payload == b"hello"
    assert packet.src() == "2001:db8::1:1234"


def test_parse_ipv6_with_extension_header():
    extension = bytes([6, 0]) + bytes(6)
    data = _ipv6_frame(0, extension, b"hello")
    packet = parse_packet(data, 0, 0, _info(data), False)
    assert packet.seq == 5
    assert packet.ack == 6
    assert packet.payload == b"hello"


def test_ipv6_truncated_extension():
    data = _ipv6_frame(0, b"", b"")[:44]
    with pytest.raises(HeaderExpectedError) as err:
        parse_packet(data, 0, 0, _info(data), True)
    assert err.value.detail == "IPv6 opts"


def test_ip_to_int():
    assert ip_to_int(ipaddress.IPv4Address("127.0.0.1")) == 0x7F000001
    assert ip_to_int(ipaddress.IPv6Address("::ffff:127.0.0.1")) == 0x7F000001
    assert ip_to_int(None) == 0
    assert ip_to_int(b"") == 0


def test_src_and_dst():
    packet = get_packets(True, 1, 1, b"a")[0]
    assert packet.src() == "127.0.0.1:5535"
    assert packet.dst() == "127.0.0.1:8000"


def test_pcap_packet_parses():
    data = generate_header(True, 3, 1) + b"q"
    raw = PcapPacket(data=data, link_type=LINK_TYPE_LOOP, link_len=4, info=_info(data))
    packet = parse_packet(raw.data, raw.link_type, raw.link_len, raw.info, False)
    assert packet.seq == 3