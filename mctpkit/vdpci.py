"""Headers of vendor-defined PCI MCTP messages."""

from __future__ import annotations

import struct
from dataclasses import dataclass

_HDR = struct.Struct(">BH")
_INTEL_HDR = struct.Struct(">BHBB")


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"need {size} bytes for {what}, got {len(data)}")


@dataclass(frozen=True)
class VdpciHeader:
    """Message type byte followed by a PCI vendor id in network byte order."""

    ic_msg_type: int
    vendor_id: int

    SIZE = _HDR.size

    def pack(self) -> bytes:
        """Encode the header."""
        try:
            return _HDR.pack(self.ic_msg_type, self.vendor_id)
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> VdpciHeader:
        """Decode a header from the start of ``data``."""
        _require(data, _HDR.size, "a VDPCI header")
        return cls(*_HDR.unpack_from(data))


@dataclass(frozen=True)
class VdpciIntelHeader:
    """VDPCI header extended with a reserved byte and a vendor type code."""

    vdpci_hdr: VdpciHeader
    reserved: int = 0
    vendor_type_code: int = 0

    SIZE = _INTEL_HDR.size

    def pack(self) -> bytes:
        """Encode the header."""
        try:
            return _INTEL_HDR.pack(
                self.vdpci_hdr.ic_msg_type,
                self.vdpci_hdr.vendor_id,
                self.reserved,
                self.vendor_type_code,
            )
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> VdpciIntelHeader:
        """Decode a header from the start of ``data``."""
        _require(data, _INTEL_HDR.size, "a VDPCI Intel header")
        msg_type, vendor_id, reserved, code = _INTEL_HDR.unpack_from(data)
        return cls(VdpciHeader(msg_type, vendor_id), reserved, code)