"""MCTP over SMBus: framing, packet error codes and frame validation."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, BinaryIO

from .header import BTU, Packet, packet_size
from .log import LogLevel, prlog

COMMAND_CODE = 0x0F
DEFAULT_SLAVE_ADDRESS = 0x21
PEC_BYTE_SIZE = 1
TX_HEADER_SIZE = 3
RX_HEADER_SIZE = 4

_POLY_CHECK = 0x1070 << 3


def crc8(value: int) -> int:
    """Run one byte of the SMBus CRC-8 over the 16-bit ``value``."""
    d = value & 0xFFFF
    for _ in range(8):
        if d & 0x8000:
            d ^= _POLY_CHECK
        d = (d << 1) & 0xFFFF
    return (d >> 8) & 0xFF


def pec_calculate(crc: int, data: bytes) -> int:
    """Continue the CRC-8 ``crc`` over ``data``."""
    for byte in data:
        crc = crc8((crc ^ byte) << 8)
    return crc


def calculate_pec_byte(data: bytes, address: int) -> int:
    """Return the packet error code of ``data`` sent to ``address``."""
    return pec_calculate(pec_calculate(0, bytes((address & 0xFF,))), data)


@dataclass
class SmbusPacketPrivate:
    """Per-packet SMBus addressing carried alongside a packet."""

    slave_addr: int = 0
    fd: Any = None
    mux_hold_timeout: int = 0
    mux_flags: int = 0


def _log(level: LogLevel, message: str) -> None:
    prlog(level, f"smbus: {message}")


class SmbusBinding:
    """SMBus transport binding.

    Received packets go to ``on_packet``; outgoing frames are passed to
    ``transfer(private, frame)``, which performs the bus write.
    """

    name = "smbus"
    version = 1

    def __init__(
        self,
        on_packet: Callable[[Packet], None] | None = None,
        transfer: Callable[[SmbusPacketPrivate, bytes], Any] | None = None,
    ) -> None:
        self.on_packet = on_packet
        self.transfer = transfer
        self.src_slave_addr = DEFAULT_SLAVE_ADDRESS
        self.pkt_size = packet_size(BTU)
        self.out_fd: Any = None

    @property
    def max_frame_size(self) -> int:
        return TX_HEADER_SIZE + self.pkt_size + PEC_BYTE_SIZE

    def build_frame(
        self, packet: Packet | bytes, private: SmbusPacketPrivate | None
    ) -> bytes:
        """Build the SMBus block write that carries ``packet``."""
        if private is None:
            _log(LogLevel.ERR, "Binding private information not available")
            raise ValueError("binding private information not available")
        data = bytes(packet.data) if isinstance(packet, Packet) else bytes(packet)
        frame_len = TX_HEADER_SIZE + len(data) + PEC_BYTE_SIZE
        if frame_len > self.max_frame_size:
            _log(LogLevel.ERR, "tx message length exceeds max smbus message length")
            raise ValueError(
                f"smbus frame of {frame_len} bytes exceeds {self.max_frame_size}"
            )
        body = (
            bytes((COMMAND_CODE, len(data) + 1, self.src_slave_addr & 0xFF)) + data
        )
        return body + bytes((calculate_pec_byte(body, private.slave_addr),))

    def tx(self, packet: Packet, private: SmbusPacketPrivate | None) -> bytes:
        """Send ``packet`` to the device described by ``private``.

        Mux holding is requested only for the last packet of a message.
        Returns the frame that was written.
        """
        frame = self.build_frame(packet, private)
        assert private is not None
        if not packet.header().eom:
            private = dataclasses.replace(private, mux_flags=0)
        if self.transfer is None:
            raise OSError("smbus binding has no transfer function")
        try:
            self.transfer(private, frame)
        except PermissionError:
            _log(
                LogLevel.DEBUG,
                "Error in tx of smbus message; Operation not permitted",
            )
            raise
        except OSError:
            _log(LogLevel.ERR, "Error in tx of smbus message")
            raise
        return frame

    def rx(self, data: bytes) -> Packet | None:
        """Validate a received frame and deliver its packet.

        Frames that are malformed or not meant for this binding are dropped
        and None is returned; a bad packet error code raises ValueError.
        """
        data = bytes(data)
        if len(data) < RX_HEADER_SIZE:
            _log(LogLevel.ERR, "Invalid packet size")
            return None
        dest, command, byte_count, source = data[:RX_HEADER_SIZE]
        if byte_count != len(data) - RX_HEADER_SIZE:
            _log(
                LogLevel.ERR,
                f"Got smbus payload sized {len(data) - RX_HEADER_SIZE}, "
                f"expecting {byte_count}",
            )
            return None
        if dest != (self.src_slave_addr & ~1 & 0xFF):
            _log(LogLevel.ERR, f"Got bad slave address {dest}")
            return None
        if command != COMMAND_CODE:
            _log(LogLevel.ERR, f"Got bad command code {command}")
            return None
        pec = pec_calculate(0, data[:-1])
        if pec != data[-1]:
            _log(
                LogLevel.ERR,
                f"Invalid PEC value: expected: 0x{pec:02x}, found 0x{data[-1]:02x}",
            )
            raise ValueError(
                f"invalid PEC: expected 0x{pec:02x}, found 0x{data[-1]:02x}"
            )
        packet = Packet(
            capacity=self.pkt_size,
            private=SmbusPacketPrivate(slave_addr=source & ~1 & 0xFF, fd=self.out_fd),
        )
        packet.push(data[RX_HEADER_SIZE:-PEC_BYTE_SIZE])
        if self.on_packet is not None:
            self.on_packet(packet)
        return packet

    def read(self, stream: BinaryIO) -> Packet | None:
        """Read one frame from the start of ``stream`` and process it."""
        stream.seek(0)
        data = stream.read(RX_HEADER_SIZE + self.pkt_size + PEC_BYTE_SIZE)
        if data is None:
            raise OSError("failed to read from smbus device")
        return self.rx(data)