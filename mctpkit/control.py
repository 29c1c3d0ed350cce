"""MCTP control message structures and request/response encoders."""

from __future__ import annotations

import enum
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

CTRL_HDR_MSG_TYPE = 0
CTRL_HDR_FLAG_REQUEST = 1 << 7
CTRL_HDR_FLAG_DGRAM = 1 << 6
CTRL_HDR_INSTANCE_ID_MASK = 0x1F

CTRL_CMD_FIRST_TRANSPORT = 0xF0
CTRL_CMD_LAST_TRANSPORT = 0xFF

CTRL_CC_GET_MCTP_VER_SUPPORT_UNSUPPORTED_TYPE = 0x80

EID_ASSIGNMENT_STATUS_SHIFT = 0x4
EID_ASSIGNMENT_STATUS_MASK = 0x3
SET_EID_ACCEPTED = 0x0
SET_EID_REJECTED = 0x1

BINDING_RESERVED = 0x00
BINDING_SMBUS = 0x01
BINDING_PCIE = 0x02
BINDING_USB = 0x03
BINDING_KCS = 0x04
BINDING_SERIAL = 0x05
BINDING_VENDOR = 0x06

GET_VDM_SUPPORT_PCIE_FORMAT_ID = 0x00
GET_VDM_SUPPORT_IANA_FORMAT_ID = 0x01
GET_VDM_SUPPORT_NO_MORE_CAP_SET = 0xFF

ENDPOINT_TYPE_SHIFT = 4
ENDPOINT_TYPE_MASK = 0x3
SIMPLE_ENDPOINT = 0
BUS_OWNER_BRIDGE = 1

ENDPOINT_ID_TYPE_SHIFT = 0
ENDPOINT_ID_TYPE_MASK = 0x3
DYNAMIC_EID = 0
STATIC_EID = 1

ROUTING_ENTRY_PORT_SHIFT = 0
ROUTING_ENTRY_PORT_MASK = 0x1F
ROUTING_ENTRY_ASSIGNMENT_TYPE_SHIFT = 5
ROUTING_ENTRY_ASSIGNMENT_TYPE_MASK = 0x1
DYNAMIC_ASSIGNMENT = 0
STATIC_ASSIGNMENT = 1
ROUTING_ENTRY_TYPE_SHIFT = 6
ROUTING_ENTRY_TYPE_MASK = 0x3
ROUTING_ENTRY_ENDPOINT = 0x00
ROUTING_ENTRY_BRIDGE_AND_ENDPOINTS = 0x01
ROUTING_ENTRY_BRIDGE = 0x02
ROUTING_ENTRY_ENDPOINTS = 0x03

GET_VERSION_SUPPORT_BASE_INFO = 0xFF

MAX_PHYSICAL_ADDRESS_SIZE = 8
MAX_ENTRIES = 0xFF
NO_MORE_ENTRIES = 0xFF


class Command(enum.IntEnum):
    """MCTP control command codes."""

    RESERVED = 0x00
    SET_ENDPOINT_ID = 0x01
    GET_ENDPOINT_ID = 0x02
    GET_ENDPOINT_UUID = 0x03
    GET_VERSION_SUPPORT = 0x04
    GET_MESSAGE_TYPE_SUPPORT = 0x05
    GET_VENDOR_MESSAGE_SUPPORT = 0x06
    RESOLVE_ENDPOINT_ID = 0x07
    ALLOCATE_ENDPOINT_IDS = 0x08
    ROUTING_INFO_UPDATE = 0x09
    GET_ROUTING_TABLE_ENTRIES = 0x0A
    PREPARE_ENDPOINT_DISCOVERY = 0x0B
    ENDPOINT_DISCOVERY = 0x0C
    DISCOVERY_NOTIFY = 0x0D
    GET_NETWORK_ID = 0x0E
    QUERY_HOP = 0x0F
    RESOLVE_UUID = 0x10
    QUERY_RATE_LIMIT = 0x11
    REQUEST_TX_RATE_LIMIT = 0x12
    UPDATE_RATE_LIMIT = 0x13
    QUERY_SUPPORTED_INTERFACES = 0x14
    MAX = 0x15


class CompletionCode(enum.IntEnum):
    """Generic MCTP control completion codes."""

    SUCCESS = 0x00
    ERROR = 0x01
    ERROR_INVALID_DATA = 0x02
    ERROR_INVALID_LENGTH = 0x03
    ERROR_NOT_READY = 0x04
    ERROR_UNSUPPORTED_CMD = 0x05


class SetEidOp(enum.IntEnum):
    """Operations of the Set Endpoint ID command."""

    SET_EID = 0
    FORCE_EID = 1
    RESET_EID = 2
    SET_DISCOVERED_FLAG = 3


class AllocateEidsOp(enum.IntEnum):
    """Operations of the Allocate Endpoint IDs command."""

    ALLOCATE_EIDS = 0
    FORCE_ALLOCATION = 1
    GET_ALLOCATION_INFO = 2
    RESERVED = 3


def _byte(name: str, value: int) -> int:
    value = int(value)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must fit in one byte, got {value}")
    return value


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"need {size} bytes for {what}, got {len(data)}")


_HDR = struct.Struct("BBB")
_RESP7 = struct.Struct("BBBBBBB")
_ROUTING_INFO = struct.Struct("BBBBBB")


@dataclass(frozen=True)
class ControlHeader:
    """Three-byte header common to all control messages."""

    ic_msg_type: int
    rq_dgram_inst: int
    command_code: int

    SIZE = _HDR.size

    def __post_init__(self) -> None:
        _byte("ic_msg_type", self.ic_msg_type)
        _byte("rq_dgram_inst", self.rq_dgram_inst)
        _byte("command_code", self.command_code)

    @property
    def instance_id(self) -> int:
        return self.rq_dgram_inst & CTRL_HDR_INSTANCE_ID_MASK

    @property
    def is_request(self) -> bool:
        return bool(self.rq_dgram_inst & CTRL_HDR_FLAG_REQUEST)

    @property
    def is_datagram(self) -> bool:
        return bool(self.rq_dgram_inst & CTRL_HDR_FLAG_DGRAM)

    def pack(self) -> bytes:
        """Encode the header."""
        return _HDR.pack(self.ic_msg_type, self.rq_dgram_inst, self.command_code)

    @classmethod
    def unpack(cls, data: bytes) -> ControlHeader:
        """Decode a header from the start of ``data``."""
        _require(data, _HDR.size, "a control header")
        return cls(*_HDR.unpack_from(data))


@dataclass(frozen=True)
class RoutingTableEntry:
    """One routing table entry with its physical address."""

    eid_range_size: int
    starting_eid: int
    entry_type: int
    phys_transport_binding_id: int
    phys_media_type_id: int
    phys_address: bytes = b""

    def __post_init__(self) -> None:
        for name in (
            "eid_range_size",
            "starting_eid",
            "entry_type",
            "phys_transport_binding_id",
            "phys_media_type_id",
        ):
            _byte(name, getattr(self, name))
        object.__setattr__(self, "phys_address", bytes(self.phys_address))
        if len(self.phys_address) > MAX_PHYSICAL_ADDRESS_SIZE:
            raise ValueError(
                f"physical address of {len(self.phys_address)} bytes exceeds "
                f"{MAX_PHYSICAL_ADDRESS_SIZE}"
            )

    @property
    def phys_address_size(self) -> int:
        return len(self.phys_address)

    @property
    def port(self) -> int:
        return (self.entry_type >> ROUTING_ENTRY_PORT_SHIFT) & ROUTING_ENTRY_PORT_MASK

    @property
    def assignment_type(self) -> int:
        return (
            self.entry_type >> ROUTING_ENTRY_ASSIGNMENT_TYPE_SHIFT
        ) & ROUTING_ENTRY_ASSIGNMENT_TYPE_MASK

    @property
    def routing_type(self) -> int:
        return (self.entry_type >> ROUTING_ENTRY_TYPE_SHIFT) & ROUTING_ENTRY_TYPE_MASK

    def pack(self) -> bytes:
        """Encode the entry, carrying only the used physical address bytes."""
        return (
            _ROUTING_INFO.pack(
                self.eid_range_size,
                self.starting_eid,
                self.entry_type,
                self.phys_transport_binding_id,
                self.phys_media_type_id,
                self.phys_address_size,
            )
            + self.phys_address
        )

    @classmethod
    def unpack(cls, data: bytes) -> RoutingTableEntry:
        """Decode an entry from the start of ``data``."""
        _require(data, _ROUTING_INFO.size, "a routing table entry")
        (
            range_size,
            start,
            entry_type,
            binding_id,
            media_id,
            addr_size,
        ) = _ROUTING_INFO.unpack_from(data)
        if addr_size > MAX_PHYSICAL_ADDRESS_SIZE:
            raise ValueError(f"physical address size {addr_size} is too large")
        end = _ROUTING_INFO.size + addr_size
        _require(data, end, "a routing table entry with its address")
        return cls(
            range_size,
            start,
            entry_type,
            binding_id,
            media_id,
            bytes(data[_ROUTING_INFO.size : end]),
        )


@dataclass(frozen=True)
class GetEidResponse:
    """Response to Get Endpoint ID."""

    ctrl_hdr: ControlHeader
    completion_code: int
    eid: int
    eid_type: int
    medium_data: int

    SIZE = _RESP7.size

    def pack(self) -> bytes:
        """Encode the response."""
        return self.ctrl_hdr.pack() + bytes(
            (
                _byte("completion_code", self.completion_code),
                _byte("eid", self.eid),
                _byte("eid_type", self.eid_type),
                _byte("medium_data", self.medium_data),
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> GetEidResponse:
        """Decode the response from the start of ``data``."""
        _require(data, _RESP7.size, "a Get Endpoint ID response")
        fields = _RESP7.unpack_from(data)
        return cls(ControlHeader(*fields[:3]), *fields[3:])


@dataclass(frozen=True)
class SetEidResponse:
    """Response to Set Endpoint ID."""

    ctrl_hdr: ControlHeader
    completion_code: int
    status: int
    eid_set: int
    eid_pool_size: int

    SIZE = _RESP7.size

    @property
    def assignment_status(self) -> int:
        return (
            self.status >> EID_ASSIGNMENT_STATUS_SHIFT
        ) & EID_ASSIGNMENT_STATUS_MASK

    def pack(self) -> bytes:
        """Encode the response."""
        return self.ctrl_hdr.pack() + bytes(
            (
                _byte("completion_code", self.completion_code),
                _byte("status", self.status),
                _byte("eid_set", self.eid_set),
                _byte("eid_pool_size", self.eid_pool_size),
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> SetEidResponse:
        """Decode the response from the start of ``data``."""
        _require(data, _RESP7.size, "a Set Endpoint ID response")
        fields = _RESP7.unpack_from(data)
        return cls(ControlHeader(*fields[:3]), *fields[3:])


def _request(rq_dgram_inst: int, command: Command, *body: int) -> bytes:
    header = ControlHeader(CTRL_HDR_MSG_TYPE, rq_dgram_inst, command)
    return header.pack() + bytes(_byte("field", value) for value in body)


def encode_set_eid(rq_dgram_inst: int, op: SetEidOp, eid: int) -> bytes:
    """Encode a Set Endpoint ID request."""
    return _request(rq_dgram_inst, Command.SET_ENDPOINT_ID, SetEidOp(op) & 0x3, eid)


def encode_get_eid(rq_dgram_inst: int) -> bytes:
    """Encode a Get Endpoint ID request."""
    return _request(rq_dgram_inst, Command.GET_ENDPOINT_ID)


def encode_get_uuid(rq_dgram_inst: int) -> bytes:
    """Encode a Get Endpoint UUID request."""
    return _request(rq_dgram_inst, Command.GET_ENDPOINT_UUID)


def encode_get_version_support(rq_dgram_inst: int, msg_type_number: int) -> bytes:
    """Encode a Get MCTP Version Support request."""
    return _request(rq_dgram_inst, Command.GET_VERSION_SUPPORT, msg_type_number)


def encode_get_msg_type_support(rq_dgram_inst: int) -> bytes:
    """Encode a Get Message Type Support request."""
    return _request(rq_dgram_inst, Command.GET_MESSAGE_TYPE_SUPPORT)


def encode_get_vdm_support(rq_dgram_inst: int, vendor_id_set_selector: int) -> bytes:
    """Encode a Get Vendor Defined Message Support request."""
    return _request(
        rq_dgram_inst, Command.GET_VENDOR_MESSAGE_SUPPORT, vendor_id_set_selector
    )


def encode_discovery_notify(rq_dgram_inst: int) -> bytes:
    """Encode a Discovery Notify request."""
    return _request(rq_dgram_inst, Command.DISCOVERY_NOTIFY)


def encode_get_routing_table(rq_dgram_inst: int, entry_handle: int) -> bytes:
    """Encode a Get Routing Table Entries request."""
    return _request(rq_dgram_inst, Command.GET_ROUTING_TABLE_ENTRIES, entry_handle)


def _entry_list(entries: Iterable[RoutingTableEntry]) -> Sequence[RoutingTableEntry]:
    entries = list(entries)
    if len(entries) > MAX_ENTRIES:
        raise ValueError(f"at most {MAX_ENTRIES} entries fit, got {len(entries)}")
    return entries


def encode_routing_information_update(
    rq_dgram_inst: int, entries: Iterable[RoutingTableEntry]
) -> bytes:
    """Encode a Routing Information Update request from routing entries."""
    entries = _entry_list(entries)
    out = bytearray(_request(rq_dgram_inst, Command.ROUTING_INFO_UPDATE, len(entries)))
    for entry in entries:
        out += bytes((entry.entry_type, entry.eid_range_size, entry.starting_eid))
        out += entry.phys_address
    return bytes(out)


def encode_get_routing_table_response(entries: Iterable[RoutingTableEntry]) -> bytes:
    """Encode a successful, final Get Routing Table Entries response."""
    entries = _entry_list(entries)
    out = bytearray(
        ControlHeader(CTRL_HDR_MSG_TYPE, 0, Command.GET_ROUTING_TABLE_ENTRIES).pack()
    )
    out += bytes((CompletionCode.SUCCESS, NO_MORE_ENTRIES, len(entries)))
    for entry in entries:
        out += entry.pack()
    return bytes(out)


def encode_query_hop(rq_dgram_inst: int, eid: int, msg_type: int) -> bytes:
    """Encode a Query Hop request."""
    return _request(rq_dgram_inst, Command.QUERY_HOP, eid, msg_type)


def encode_allocate_eids(
    rq_dgram_inst: int, op: AllocateEidsOp, pool_size: int, first_eid: int
) -> bytes:
    """Encode an Allocate Endpoint IDs request."""
    return _request(
        rq_dgram_inst,
        Command.ALLOCATE_ENDPOINT_IDS,
        AllocateEidsOp(op) & 0x3,
        pool_size,
        first_eid,
    )


def is_control_message(data: bytes) -> bool:
    """Return whether ``data`` starts with an MCTP control message header."""
    return len(data) >= ControlHeader.SIZE and data[0] == CTRL_HDR_MSG_TYPE


def is_request(data: bytes) -> bool:
    """Return whether ``data`` is an MCTP control request."""
    return is_control_message(data) and bool(data[1] & CTRL_HDR_FLAG_REQUEST)