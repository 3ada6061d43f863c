"""Writing of packet data in the libpcap file format (v2.4, little-endian)."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from typing import BinaryIO

MAGIC_NANOSECONDS = 0xA1B23C4D
MAGIC_MICROSECONDS = 0xA1B2C3D4
VERSION_MAJOR = 2
VERSION_MINOR = 4

_FILE_HEADER = struct.Struct("<IHHIIII")
_PACKET_HEADER = struct.Struct("<IIII")
_NANOS_PER_SECOND = 1_000_000_000
_MASK32 = 0xFFFFFFFF


@dataclass
class CaptureInfo:
    """Metadata of a captured packet; a missing timestamp means "now"."""

    timestamp_ns: int | None = None
    capture_length: int = 0
    length: int = 0
    interface_index: int = 0


class PcapWriter:
    """Writes pcap records to a binary stream with micro- or nanosecond timestamps."""

    def __init__(self, stream: BinaryIO, nanoseconds: bool = False) -> None:
        self._stream = stream
        self._nanoseconds = nanoseconds
        self._ts_scaler = 1 if nanoseconds else 1000

    def write_file_header(self, snaplen: int, link_type: int) -> None:
        """Write the global file header; call exactly once for a new file."""
        magic = MAGIC_NANOSECONDS if self._nanoseconds else MAGIC_MICROSECONDS
        self._stream.write(
            _FILE_HEADER.pack(
                magic,
                VERSION_MAJOR,
                VERSION_MINOR,
                0,  # timezone: UTC
                0,  # sigfigs
                snaplen & _MASK32,
                int(link_type) & _MASK32,
            )
        )

    def _write_packet_header(self, info: CaptureInfo) -> None:
        ts = info.timestamp_ns if info.timestamp_ns is not None else time.time_ns()
        secs, nanos = divmod(ts, _NANOS_PER_SECOND)
        self._stream.write(
            _PACKET_HEADER.pack(
                secs & _MASK32,
                (nanos // self._ts_scaler) & _MASK32,
                info.capture_length & _MASK32,
                info.length & _MASK32,
            )
        )

    def write_packet(self, info: CaptureInfo, data: bytes) -> None:
        """Write one packet record."""
        if info.capture_length != len(data):
            raise ValueError(
                f"capture length {info.capture_length} does not match data length {len(data)}"
            )
        if info.capture_length > info.length:
            raise ValueError(f"invalid capture info {info!r}: capture length > length")
        self._write_packet_header(info)
        self._stream.write(bytes(data))