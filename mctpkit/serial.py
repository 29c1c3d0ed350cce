"""MCTP over a serial link: byte-stuffed framing and a receive state machine."""

from __future__ import annotations

import enum
import os
from collections.abc import Callable

from .header import BTU, HEADER_SIZE, Packet, packet_size
from .log import LogLevel, prlog

SERIAL_REVISION = 0x01
FRAMING_FLAG = 0x7E
ESCAPE = 0x7D
ESCAPE_XOR = 0x20

FRAME_HEADER_SIZE = 3
FRAME_TRAILER_SIZE = 3
TX_BUFFER_SIZE = 256
RX_BUFFER_SIZE = 1024


def _debug(message: str) -> None:
    prlog(LogLevel.DEBUG, f"serial: {message}")


class RxState(enum.Enum):
    """States of the serial receive machine."""

    WAIT_SYNC_START = enum.auto()
    WAIT_REVISION = enum.auto()
    WAIT_LEN = enum.auto()
    DATA = enum.auto()
    DATA_ESCAPED = enum.auto()
    WAIT_FCS1 = enum.auto()
    WAIT_FCS2 = enum.auto()
    WAIT_SYNC_END = enum.auto()


def escape(data: bytes) -> bytes:
    """Byte-stuff ``data`` so that it holds no framing flag or escape byte."""
    out = bytearray()
    for byte in data:
        if byte in (FRAMING_FLAG, ESCAPE):
            out.append(ESCAPE)
            byte ^= ESCAPE_XOR
        out.append(byte)
    return bytes(out)


def frame_packet(data: bytes) -> bytes:
    """Wrap a raw MCTP packet in a serial frame.

    The length field counts the unescaped packet bytes; the checksum
    field is sent as zero.
    """
    if len(data) > 0xFF:
        raise ValueError(f"packet of {len(data)} bytes does not fit a serial frame")
    body = escape(data)
    total = FRAME_HEADER_SIZE + len(body) + FRAME_TRAILER_SIZE
    if total > TX_BUFFER_SIZE:
        raise ValueError(
            f"serial frame of {total} bytes exceeds {TX_BUFFER_SIZE} bytes"
        )
    header = bytes((FRAMING_FLAG, SERIAL_REVISION, len(data)))
    trailer = bytes((0, 0, FRAMING_FLAG))
    return header + body + trailer


class SerialBinding:
    """Serial transport binding.

    Packets received are handed to ``on_packet``; frames to send go to
    ``tx_fn(data)``, which returns the number of bytes it wrote, or to the
    open file descriptor when no ``tx_fn`` is given.
    """

    name = "serial"
    version = 1

    def __init__(
        self,
        on_packet: Callable[[Packet], None] | None = None,
        tx_fn: Callable[[bytes], int] | None = None,
    ) -> None:
        self.on_packet = on_packet
        self.tx_fn = tx_fn
        self.fd: int | None = None
        self.pkt_size = packet_size(BTU)
        self.state = RxState.WAIT_SYNC_START
        self.rx_fcs = 0
        self._rx_packet: Packet | None = None
        self._rx_expected = 0

    def _write_all(self, frame: bytes) -> None:
        view = memoryview(frame)
        while view:
            if self.tx_fn is not None:
                written = self.tx_fn(bytes(view))
            elif self.fd is not None:
                written = os.write(self.fd, view)
            else:
                raise OSError("serial link has no transmit function or descriptor")
            if written is None or written <= 0:
                raise OSError("write to serial link failed")
            view = view[written:]

    def tx(self, packet: Packet | bytes) -> None:
        """Frame ``packet`` and write all of it to the link."""
        data = bytes(packet.data) if isinstance(packet, Packet) else bytes(packet)
        self._write_all(frame_packet(data))

    def _finish_packet(self, valid: bool) -> None:
        packet = self._rx_packet
        self._rx_packet = None
        if valid and packet is not None and self.on_packet is not None:
            self.on_packet(packet)

    def _push(self, byte: int) -> None:
        assert self._rx_packet is not None
        self._rx_packet.push(bytes((byte,)))
        if len(self._rx_packet) == self._rx_expected:
            self.state = RxState.WAIT_FCS1
        else:
            self.state = RxState.DATA

    def _consume_one(self, byte: int) -> None:
        state = self.state
        if state is RxState.WAIT_SYNC_START:
            if byte != FRAMING_FLAG:
                _debug("lost sync, dropping packet")
                if self._rx_packet is not None:
                    self._finish_packet(False)
            else:
                self.state = RxState.WAIT_REVISION
        elif state is RxState.WAIT_REVISION:
            if byte == SERIAL_REVISION:
                self.state = RxState.WAIT_LEN
            else:
                _debug(f"invalid revision 0x{byte:02x}")
                self.state = RxState.WAIT_SYNC_START
        elif state is RxState.WAIT_LEN:
            if byte > self.pkt_size or byte < HEADER_SIZE:
                _debug(f"invalid size {byte}")
                self.state = RxState.WAIT_SYNC_START
            else:
                self._rx_packet = Packet(capacity=self.pkt_size)
                self._rx_expected = byte
                self.state = RxState.DATA
        elif state is RxState.DATA:
            if byte == ESCAPE:
                self.state = RxState.DATA_ESCAPED
            else:
                self._push(byte)
        elif state is RxState.DATA_ESCAPED:
            self._push(byte ^ ESCAPE_XOR)
        elif state is RxState.WAIT_FCS1:
            self.rx_fcs = byte << 8
            self.state = RxState.WAIT_FCS2
        elif state is RxState.WAIT_FCS2:
            self.rx_fcs |= byte
            self.state = RxState.WAIT_SYNC_END
        elif state is RxState.WAIT_SYNC_END:
            if byte == FRAMING_FLAG:
                self._finish_packet(True)
            else:
                _debug("missing end frame marker")
                self._finish_packet(False)
            self.state = RxState.WAIT_SYNC_START

    def rx(self, data: bytes) -> None:
        """Feed received bytes into the receive state machine."""
        for byte in data:
            self._consume_one(byte)

    def open_path(self, path: str | os.PathLike[str]) -> None:
        """Open the serial device at ``path`` for reading and writing."""
        try:
            self.fd = os.open(path, os.O_RDWR)
        except OSError as exc:
            prlog(LogLevel.ERR, f"serial: can't open device {path}: {exc}")
            raise

    def open_fd(self, fd: int) -> None:
        """Use an already open file descriptor as the link."""
        self.fd = fd

    def read(self) -> int:
        """Read available bytes from the link and process them.

        Returns the number of bytes read; raises EOFError at end of file.
        """
        if self.fd is None:
            raise ValueError("serial link has no file descriptor")
        try:
            data = os.read(self.fd, RX_BUFFER_SIZE)
        except OSError as exc:
            prlog(LogLevel.ERR, f"serial: can't read from serial device: {exc}")
            raise
        if not data:
            raise EOFError("serial link closed")
        self.rx(data)
        return len(data)

    def fileno(self) -> int:
        """Return the file descriptor of the link."""
        if self.fd is None:
            raise ValueError("serial link has no file descriptor")
        return self.fd