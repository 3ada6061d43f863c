"""Receiving of VXLAN-encapsulated frames over UDP."""

from __future__ import annotations

import queue
import socket
import threading
import time
from typing import Iterable, Optional

from trafficreplay.pcapdump import CaptureInfo

VXLAN_PACKET_SIZE = 1526  # 8 bytes of VXLAN header + 1518 bytes of Ethernet II
DEFAULT_PORT = 4789
_HEADER_LEN = 8
_POLL_INTERVAL = 0.1


def parse_vxlan(datagram: bytes) -> tuple[int, bytes]:
    """Split a VXLAN datagram into its network identifier and inner frame."""
    datagram = bytes(datagram)
    if len(datagram) < _HEADER_LEN:
        raise ValueError(f"vxlan packet too small: {len(datagram)} bytes")
    vni = int.from_bytes(datagram[4:7], "big")
    return vni, datagram[_HEADER_LEN:]


def vni_is_allowed(vni: int, vnis: Iterable[int]) -> bool:
    """Apply a VNI filter: positive entries allow, negative entries exclude.

    With any negative entry present, VNIs not explicitly excluded are allowed.
    """
    default = False
    for entry in vnis:
        if entry > 0 and vni == entry:
            return True
        if entry < 0:
            if vni == -entry:
                return False
            default = True
    return default


class VxlanHandle:
    """Listens for VXLAN datagrams and yields their inner frames."""

    def __init__(self, port: int = 0, vnis: Iterable[int] = (), host: str = "0.0.0.0") -> None:
        self.vnis = list(vnis)
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._sock.bind((host, port or DEFAULT_PORT))
        except OSError:
            self._sock.close()
            raise
        self._sock.settimeout(_POLL_INTERVAL)
        self._frames: "queue.Queue[Optional[tuple[bytes, CaptureInfo]]]" = queue.Queue(maxsize=1000)
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._reader, daemon=True)
        self._thread.start()

    @property
    def address(self) -> tuple[str, int]:
        """The local address the handle listens on."""
        return self._sock.getsockname()

    def __enter__(self) -> "VxlanHandle":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _enqueue(self, item: Optional[tuple[bytes, CaptureInfo]]) -> None:
        while True:
            try:
                self._frames.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                if self._closed.is_set() and item is not None:
                    return

    def _reader(self) -> None:
        try:
            while not self._closed.is_set():
                try:
                    datagram, _ = self._sock.recvfrom(VXLAN_PACKET_SIZE)
                except socket.timeout:
                    continue
                except OSError:
                    if self._closed.is_set():
                        return
                    continue
                try:
                    vni, payload = parse_vxlan(datagram)
                except ValueError:
                    continue
                if self.vnis and not vni_is_allowed(vni, self.vnis):
                    continue
                info = CaptureInfo(
                    timestamp_ns=time.time_ns(),
                    capture_length=len(datagram),
                    length=len(datagram),
                )
                self._enqueue((payload, info))
        finally:
            self._enqueue(None)

    def read_packet_data(self, timeout: Optional[float] = None) -> tuple[bytes, CaptureInfo]:
        """Return the next inner frame and its capture info.

        Raises ``TimeoutError`` when nothing arrives in time and ``EOFError``
        once the handle is closed.
        """
        try:
            item = self._frames.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no vxlan packet received") from None
        if item is None:
            self._frames.put(None)
            raise EOFError("vxlan handle closed")
        return item

    def close(self) -> None:
        """Stop listening and release the socket."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._thread is not threading.current_thread():
            self._thread.join()
        self._sock.close()