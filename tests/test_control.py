import pytest

from mctpkit.control import (
    CTRL_HDR_FLAG_REQUEST,
    CTRL_HDR_INSTANCE_ID_MASK,
    CTRL_HDR_MSG_TYPE,
    AllocateEidsOp,
    Command,
    CompletionCode,
    ControlHeader,
    GetEidResponse,
    RoutingTableEntry,
    SetEidOp,
    SetEidResponse,
    encode_allocate_eids,
    encode_discovery_notify,
    encode_get_eid,
    encode_get_routing_table,
    encode_get_routing_table_response,
    encode_get_uuid,
    encode_get_vdm_support,
    encode_get_version_support,
    encode_get_msg_type_support,
    encode_query_hop,
    encode_routing_information_update,
    encode_set_eid,
    is_control_message,
    is_request,
)


def sample_entry():
    return RoutingTableEntry(
        eid_range_size=1,
        starting_eid=9,
        entry_type=2,
        phys_transport_binding_id=1,
        phys_media_type_id=4,
        phys_address=b"\x12",
    )


def test_get_eid_encode():
    expected_instance_id = 0x01
    rq = expected_instance_id | CTRL_HDR_FLAG_REQUEST
    msg = encode_get_eid(rq)
    hdr = ControlHeader.unpack(msg)
    assert hdr.command_code == Command.GET_ENDPOINT_ID
    assert hdr.ic_msg_type == CTRL_HDR_MSG_TYPE
    assert hdr.rq_dgram_inst & CTRL_HDR_INSTANCE_ID_MASK == expected_instance_id
    assert hdr.rq_dgram_inst & CTRL_HDR_FLAG_REQUEST == CTRL_HDR_FLAG_REQUEST
    assert hdr.instance_id == 1
    assert hdr.is_request


def test_encode_routing_info_update():
    msg = encode_routing_information_update(0xFF, [sample_entry()])
    assert len(msg) == 4 + 4
    assert msg[3] == 1
    assert msg[2] == Command.ROUTING_INFO_UPDATE
    assert msg[4:] == bytes((2, 1, 9, 0x12))


def test_encode_routing_info_update_too_many_entries():
    with pytest.raises(ValueError):
        encode_routing_information_update(0xFF, [sample_entry()] * 256)


def test_encode_rsp_get_routing_table():
    msg = encode_get_routing_table_response([sample_entry()])
    assert len(msg) == 6 + 6 + 1
    assert msg[3] == CompletionCode.SUCCESS
    assert msg[4] == 0xFF
    assert msg[5] == 0x01
    assert RoutingTableEntry.unpack(msg[6:]) == sample_entry()


def test_encode_rsp_get_routing_table_no_entries():
    msg = encode_get_routing_table_response([])
    assert len(msg) == 6
    assert msg[5] == 0


def test_encode_rsp_get_routing_table_too_many_entries():
    with pytest.raises(ValueError):
        encode_get_routing_table_response([sample_entry()] * 256)


def test_encode_query_hop():
    rq = 0x01 | CTRL_HDR_FLAG_REQUEST
    msg = encode_query_hop(rq, 8, CTRL_HDR_MSG_TYPE)
    hdr = ControlHeader.unpack(msg)
    assert hdr.command_code == Command.QUERY_HOP
    assert hdr.rq_dgram_inst == rq
    assert hdr.ic_msg_type == CTRL_HDR_MSG_TYPE
    assert msg[3] == 8
    assert msg[4] == CTRL_HDR_MSG_TYPE


def test_query_hop_rejects_out_of_range_eid():
    with pytest.raises(ValueError):
        encode_query_hop(0x81, 256, CTRL_HDR_MSG_TYPE)


def test_allocate_eid_pool_encode():
    rq = 0x01 | CTRL_HDR_FLAG_REQUEST
    msg = encode_allocate_eids(rq, AllocateEidsOp.ALLOCATE_EIDS, 10, 9)
    hdr = ControlHeader.unpack(msg)
    assert hdr.command_code == Command.ALLOCATE_ENDPOINT_IDS
    assert hdr.rq_dgram_inst == rq
    assert hdr.ic_msg_type == CTRL_HDR_MSG_TYPE
    assert msg[3] & 0x3 == AllocateEidsOp.ALLOCATE_EIDS
    assert msg[4] == 10
    assert msg[5] == 9


def test_allocate_eid_pool_rejects_bad_pool_size():
    with pytest.raises(ValueError):
        encode_allocate_eids(0x81, AllocateEidsOp.ALLOCATE_EIDS, 300, 10)


def test_set_eid_encode():
    msg = encode_set_eid(0x82, SetEidOp.FORCE_EID, 0x1D)
    assert msg == bytes((0, 0x82, Command.SET_ENDPOINT_ID, 1, 0x1D))


@pytest.mark.parametrize(
    "msg, command, extra",
    [
        (encode_get_uuid(0x80), Command.GET_ENDPOINT_UUID, b""),
        (encode_get_version_support(0x80, 0xFF), Command.GET_VERSION_SUPPORT, b"\xff"),
        (encode_get_msg_type_support(0x80), Command.GET_MESSAGE_TYPE_SUPPORT, b""),
        (encode_get_vdm_support(0x80, 2), Command.GET_VENDOR_MESSAGE_SUPPORT, b"\x02"),
        (encode_discovery_notify(0x80), Command.DISCOVERY_NOTIFY, b""),
        (encode_get_routing_table(0x80, 5), Command.GET_ROUTING_TABLE_ENTRIES, b"\x05"),
    ],
)
def test_simple_requests(msg, command, extra):
    assert msg == bytes((0, 0x80, command)) + extra


def test_routing_entry_unpack_rejects_large_address():
    data = bytes((1, 9, 2, 1, 4, 9)) + bytes(9)
    with pytest.raises(ValueError):
        RoutingTableEntry.unpack(data)


def test_routing_entry_bitfields():
    entry = RoutingTableEntry(1, 9, (0x2 << 6) | (1 << 5) | 3, 1, 4)
    assert entry.routing_type == 2
    assert entry.assignment_type == 1
    assert entry.port == 3
    assert entry.phys_address_size == 0


def test_get_eid_response_round_trip():
    resp = GetEidResponse(ControlHeader(0, 0x01, Command.GET_ENDPOINT_ID), 0, 8, 0x11, 0)
    data = resp.pack()
    assert len(data) == 7
    assert GetEidResponse.unpack(data) == resp


def test_set_eid_response_round_trip():
    resp = SetEidResponse(ControlHeader(0, 0x01, Command.SET_ENDPOINT_ID), 0, 0x10, 9, 0)
    data = resp.pack()
    assert SetEidResponse.unpack(data) == resp
    assert resp.assignment_status == 1


def test_short_response_raises():
    with pytest.raises(ValueError):
        GetEidResponse.unpack(b"\x00\x00")


def test_is_control_message_and_request():
    req = encode_get_eid(0x81)
    assert is_control_message(req)
    assert is_request(req)
    resp = bytes((0, 0x01, Command.GET_ENDPOINT_ID, 0))
    assert is_control_message(resp)
    assert not is_request(resp)
    assert not is_control_message(b"\x00\x80")
    assert not is_control_message(bytes((0x7E, 0x80, 0x02)))