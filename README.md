# trafficreplay

Building blocks for working with recorded network traffic. The package
parses raw TCP/IP frames, writes libpcap files and receives
VXLAN-encapsulated frames over UDP. It also rate-limits plugins, names
chunked output files, and formats messages for Kafka and Elasticsearch
bulk requests. It uses only the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `trafficreplay.tcp_packet`: `parse_packet(data, link_type, link_len, info, allow_empty)`
  turns a link-layer frame carrying IPv4 or IPv6 and TCP into a `Packet`.
  A `Packet` has its addresses, ports, sequence and ack numbers, flags and
  payload. `Packet.message_id()`, `Packet.src()` and `Packet.dst()` give
  its identifiers. A malformed frame raises a `PacketError` subclass:
  `HeaderLengthError`, `HeaderMissingError`, `HeaderExpectedError` or
  `HeaderInvalidError`. A packet with an empty payload raises `EmptyPacket`
  unless `allow_empty` is set. The module also has `Direction`,
  `PcapPacket` and `ip_to_int`.
- `trafficreplay.pcapdump`: `PcapWriter` writes libpcap v2.4 files in
  little-endian order, with microsecond or nanosecond timestamps. It
  provides `write_file_header(snaplen, link_type)` and
  `write_packet(info, data)`. `CaptureInfo` holds the packet metadata.
- `trafficreplay.vxlan`: `parse_vxlan` splits a datagram into its VNI and
  inner frame. `vni_is_allowed` applies a VNI filter: positive entries
  allow a VNI and negative entries exclude one. `VxlanHandle` binds a UDP
  socket (port 4789 by default) and reads in a background thread.
  `read_packet_data(timeout)` returns `(frame, CaptureInfo)`. It raises
  `TimeoutError` when nothing arrives in time and `EOFError` after
  `close()`. The handle is also a context manager.
- `trafficreplay.netinfo`: `Interface`, `listen_all`, `is_device`,
  `interface_addresses` and `link_type_length`, which gives the header
  size for a pcap link type, or `None` when the type is unknown.
- `trafficreplay.limiter`: `Limiter(plugin, options)` wraps any object that
  has `plugin_read`, `plugin_write` and/or `close`.
  - `"10"` allows at most 10 messages per second.
  - `"10%"` lets through about that share of messages at random.
  - A plugin with a `speed_factor` attribute is paced through that factor
    instead of having messages dropped.
  - `parse_limit_options` parses the option string.
- `trafficreplay.file_naming`: handles chunked, templated file names.
  - `expand_path_template` fills in `%Y %m %d %H %M %S %NS %r %t %i`.
  - `get_file_index`, `set_file_index`, `without_index` and
    `sort_by_file_index` handle names of the form `name_<n>.ext`.
  - `resolve_filename` picks the chunk to write next, based on the files
    that already exist.
- `trafficreplay.kafka`: `KafkaMessage` with `dump()` (payload header plus
  HTTP/1.1 wire form) and `to_json()`, `parse_kafka_message`, `SASLConfig`,
  `KafkaTLSConfig` and `new_tls_context` for an `ssl.SSLContext`.
- `trafficreplay.es_document`: `extract_status`, `is_request_or_response`
  and `bulk_entry`, which builds the NDJSON lines of a bulk `index` or
  `update` operation.
- `trafficreplay.byteutils`: `cut`, `insert` and `replace` on byte ranges.

## Example

```python
from trafficreplay.file_naming import get_file_index, set_file_index
from trafficreplay.limiter import parse_limit_options
from trafficreplay.es_document import extract_status
from trafficreplay.vxlan import vni_is_allowed

set_file_index("/tmp/logs.gz", 1)             # '/tmp/logs_1.gz'
get_file_index("/tmp/logs_2.gz")              # 2
parse_limit_options("10%")                    # (10, True)
extract_status(b"HTTP/1.1 200 OK\r\n")        # '200'
vni_is_allowed(5, [-3])                       # True
```

## What it does not do

This is a library only, with no command-line tool. The package does not:

- capture from network interfaces or build BPF filters; VXLAN over UDP is
  its only live input;
- reassemble parsed packets into complete HTTP or binary messages, or
  pair requests with responses;
- connect to Kafka or Elasticsearch; it only produces the data they
  receive;
- write output files itself; it only decides their names.