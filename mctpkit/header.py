"""MCTP transport header and packet buffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EID_NULL = 0
EID_BROADCAST = 0xFF

FLAG_SOM = 1 << 7
FLAG_EOM = 1 << 6
FLAG_TO = 1 << 3

VER_SHIFT = 0
VER_MASK = 0xF
SEQ_SHIFT = 4
SEQ_MASK = 0x3
TAG_SHIFT = 0
TAG_MASK = 0x7

HEADER_SIZE = 4
BTU = 64

TX_DISABLED_ERR = -1024


def packet_size(unit: int) -> int:
    """Return the size of a packet carrying ``unit`` bytes of payload."""
    return unit + HEADER_SIZE


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must fit in one byte, got {value}")


@dataclass(frozen=True)
class MctpHeader:
    """The four-byte MCTP transport header."""

    version: int
    dest: int
    src: int
    som: bool = False
    eom: bool = False
    seq: int = 0
    tag_owner: bool = False
    tag: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.version <= VER_MASK:
            raise ValueError(f"version out of range: {self.version}")
        if not 0 <= self.seq <= SEQ_MASK:
            raise ValueError(f"sequence number out of range: {self.seq}")
        if not 0 <= self.tag <= TAG_MASK:
            raise ValueError(f"tag out of range: {self.tag}")
        _check_byte("dest", self.dest)
        _check_byte("src", self.src)

    @property
    def flags_seq_tag(self) -> int:
        value = (self.seq << SEQ_SHIFT) | (self.tag << TAG_SHIFT)
        if self.som:
            value |= FLAG_SOM
        if self.eom:
            value |= FLAG_EOM
        if self.tag_owner:
            value |= FLAG_TO
        return value

    def pack(self) -> bytes:
        """Encode the header as it appears on the wire."""
        return bytes(
            (
                (self.version & VER_MASK) << VER_SHIFT,
                self.dest,
                self.src,
                self.flags_seq_tag,
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> MctpHeader:
        """Decode a header from the first four bytes of ``data``."""
        if len(data) < HEADER_SIZE:
            raise ValueError(
                f"need {HEADER_SIZE} bytes for an MCTP header, got {len(data)}"
            )
        ver, dest, src, fst = data[:HEADER_SIZE]
        return cls(
            version=(ver >> VER_SHIFT) & VER_MASK,
            dest=dest,
            src=src,
            som=bool(fst & FLAG_SOM),
            eom=bool(fst & FLAG_EOM),
            seq=(fst >> SEQ_SHIFT) & SEQ_MASK,
            tag_owner=bool(fst & FLAG_TO),
            tag=(fst >> TAG_SHIFT) & TAG_MASK,
        )


@dataclass
class Packet:
    """A packet buffer: MCTP header followed by payload, bounded in size."""

    capacity: int = packet_size(BTU)
    private: Any = None
    data: bytearray = field(default_factory=bytearray)

    def __post_init__(self) -> None:
        self.data = bytearray(self.data)
        if len(self.data) > self.capacity:
            raise ValueError(
                f"packet data of {len(self.data)} bytes exceeds capacity "
                f"{self.capacity}"
            )

    def __len__(self) -> int:
        return len(self.data)

    def header(self) -> MctpHeader:
        """Return the decoded MCTP header of this packet."""
        return MctpHeader.unpack(self.data)

    def payload(self) -> bytes:
        """Return the bytes that follow the MCTP header."""
        return bytes(self.data[HEADER_SIZE:])

    def push(self, data: bytes) -> None:
        """Append ``data``; raise ValueError if the capacity would be exceeded."""
        if len(self.data) + len(data) > self.capacity:
            raise ValueError(
                f"pushing {len(data)} bytes would exceed packet capacity "
                f"{self.capacity}"
            )
        self.data.extend(data)