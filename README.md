# mctpkit

Building blocks for the Management Component Transport Protocol (MCTP),
written in plain Python with no third-party dependencies.

## Modules

- `mctpkit.header`: the four-byte MCTP transport header (`MctpHeader`,
  with `pack()` and `unpack()`), a packet buffer of bounded capacity
  (`Packet`, with `header()`, `payload()` and `push()`), and
  `packet_size()`, which adds the header size to a transmission unit.
- `mctpkit.control`: MCTP control messages. It has the `Command`,
  `CompletionCode`, `SetEidOp` and `AllocateEidsOp` enums, the
  `ControlHeader`, `RoutingTableEntry`, `GetEidResponse` and
  `SetEidResponse` structures (each with `pack()` and `unpack()`), and
  encoders that return request bytes: `encode_set_eid`, `encode_get_eid`,
  `encode_get_uuid`, `encode_get_version_support`,
  `encode_get_msg_type_support`, `encode_get_vdm_support`,
  `encode_discovery_notify`, `encode_get_routing_table`,
  `encode_routing_information_update`, `encode_query_hop` and
  `encode_allocate_eids`. `encode_get_routing_table_response` builds a
  successful, final routing table response. `is_control_message()` and
  `is_request()` classify message bytes.
- `mctpkit.vdpci`: PCI vendor-defined message headers (`VdpciHeader`,
  `VdpciIntelHeader`).
- `mctpkit.serial`: MCTP over a serial link. `escape()` byte-stuffs data,
  `frame_packet()` wraps a packet in a serial frame, and `SerialBinding`
  runs the receive state machine (`RxState`) over bytes given to `rx()` or
  read from a file descriptor with `read()`. It sends frames with `tx()`,
  either through a transmit function or to the open descriptor.
- `mctpkit.smbus`: MCTP over SMBus. `crc8()`, `pec_calculate()` and
  `calculate_pec_byte()` compute the packet error code. `SmbusBinding`
  builds outgoing block writes (`build_frame()`, `tx()`) and validates
  incoming frames (`rx()`, or `read()` from a seekable stream).
  `SmbusPacketPrivate` carries the per-packet slave address.
- `mctpkit.log`: logging to stderr (`set_log_stdio`), syslog
  (`set_log_syslog`) or a callback (`set_log_custom`), and hex tracing of
  payloads (`set_tracing_enabled`, `trace`, `format_trace`).

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Encode a control request and frame it for a serial link:

```python
from mctpkit.control import encode_get_eid, is_request
from mctpkit.header import MctpHeader
from mctpkit.serial import SerialBinding, frame_packet

request = encode_get_eid(0x80 | 0x01)
assert is_request(request)

header = MctpHeader(version=1, dest=9, src=8, som=True, eom=True, tag_owner=True)
frame = frame_packet(header.pack() + request)

received = []
binding = SerialBinding(on_packet=received.append)
binding.rx(frame)
assert received[0].payload() == request
```

Build an SMBus frame, handing the bytes to your own bus write:

```python
from mctpkit.header import MctpHeader, Packet
from mctpkit.smbus import SmbusBinding, SmbusPacketPrivate

sent = []
smbus = SmbusBinding(transfer=lambda private, frame: sent.append(frame))
header = MctpHeader(version=1, dest=9, src=8, som=True, eom=True)
smbus.tx(Packet(data=header.pack() + b"\x00"), SmbusPacketPrivate(slave_addr=0x20))
```

## What it does not do

- There is no MCTP core: nothing routes messages between endpoints,
  splits messages into packets or reassembles them, or tracks sequence
  numbers and tags. Bindings hand each received `Packet` to a callback.
- There are no command-line programs or daemons.
- `SmbusBinding` does not talk to an I2C device itself; the caller supplies
  the `transfer` function that performs the bus write.
- The serial frame checksum is sent as zero and is not checked on receive.