# chnative

`chnative` holds the low-level pieces a client needs to talk to a ClickHouse
server over the native TCP protocol.

| Module | What it gives you |
| --- | --- |
| `chnative.encoder` | `Encoder` writes primitive values to a binary stream. |
| `chnative.decoder` | `Decoder` reads primitive values from a binary stream. |
| `chnative.compression` | `CompressReader` unpacks LZ4-compressed frames. `CompressionMethod` names the method bytes used in frame headers. |
| `chnative.messages` | `read_exception`, `read_progress` and `read_profile_info` read server packets. They return `ServerException`, `Progress` and `ProfileInfo`. |
| `chnative.helpers` | `num_input`, `is_insert`, `quote` and `format_time` work on query text. |
| `chnative.dsn` | `parse_dsn` turns a `tcp://` connection string into a `DSNConfig`. |
| `chnative.connect` | `dial` opens a socket to one of several hosts and returns a `Connection`. |

## Binary values

Fixed-width integers and floats are little-endian. Varints are unsigned LEB128
values up to 64 bits. Strings are UTF-8 bytes with a varint length in front.

```python
import io

from chnative.decoder import Decoder
from chnative.encoder import Encoder

out = io.BytesIO()
enc = Encoder(out)
enc.uvarint(300)
enc.int32(-42)
enc.string("hello")
enc.float64(2.5)

dec = Decoder(io.BytesIO(out.getvalue()))
assert dec.uvarint() == 300
assert dec.int32() == -42
assert dec.string() == "hello"
assert dec.float64() == 2.5
```

The encoder and decoder raise errors in these cases:

- The encoder raises `ValueError` when an integer does not fit the requested
  width.
- The decoder raises `EOFError` when the stream ends before a whole value has
  been read.
- The decoder raises `ValueError` when a varint would overflow 64 bits.

### Compressed frames

To read compressed data, build the decoder with `Decoder.with_compress(stream)`.
Call `select_compress(True)` before the compressed part of the stream and
`select_compress(False)` after it.

A frame starts with a 16-byte checksum. After the checksum comes a header with
the method byte, the compressed size and the uncompressed size. Only
`CompressionMethod.LZ4` frames are accepted. Any other method raises
`ValueError`. The checksum is not verified.

## Server messages

`read_exception(decoder)` reads a whole chain of nested exceptions. Each nested
exception is stored both as `.nested` and as `__cause__`. `str()` of a
`ServerException` gives `code: <code>, message: <message>`.

## Query helpers

```python
from chnative.helpers import is_insert, num_input, quote

num_input("SELECT * FROM example WHERE os_id = ? AND browser_id = ?")          # 2
num_input("SELECT * FROM example WHERE os_id = @os_id AND browser_id = @os_id")  # 1
quote(["a", "b", "c"])                                                       # "'a', 'b', 'c'"
is_insert("INSERT INTO example (a) VALUES (?)")                              # True
```

- `num_input` counts `?` placeholders that follow an operator or keyword. It
  also counts distinct `@name` parameters. Placeholders inside quotes or
  backticks are ignored.
- `quote` renders values as literals:
  - strings in single quotes, with escaping;
  - sequences as comma-separated lists;
  - `None` as `null`;
  - datetimes through `format_time`, which gives `toDateTime(<unix seconds>)`.

## Connection strings

```python
from chnative.dsn import parse_dsn

config = parse_dsn(
    "tcp://127.0.0.1:9000?database=default&compress=true&alt_hosts=127.0.0.2:9000"
)
config.hosts      # ['127.0.0.1:9000', '127.0.0.2:9000']
config.compress   # True
```

`parse_dsn` recognises these query options:

- `database`
- `username`
- `password`
- `tls_config`
- `secure`
- `skip_verify`
- `no_delay`
- `compress`
- `debug`
- `check_connection_liveness`
- `timeout`
- `read_timeout`
- `write_timeout`
- `block_size`
- `alt_hosts`
- `connection_open_strategy`, which takes `random`, `in_order` or `time_random`

Options it does not know are ignored. A value it cannot parse leaves that
setting at its default. `parse_dsn` raises `ValueError` only when no host is
given.

When the string names a `tls_config`, `secure` defaults to true. Liveness
checks are always turned off for secure connections. `tls_config` is kept only
as a name. Nothing checks that a configuration with that name exists.

## Connections

`dial(ConnOptions(hosts=[...]))` tries each host in the order set by its
`OpenStrategy` and returns the first `Connection` that succeeds. If every host
fails, it raises the last error.

- `Connection.read(size)` returns exactly `size` bytes.
- `Connection.write(data)` sends all of `data`.
- Read and write deadlines are refreshed after a quarter of their timeout has
  passed.
- Any failure during a read or write closes the connection and raises
  `BadConnectionError`.
- `Connection.check()` peeks at an idle plain-TCP socket without blocking. It
  raises `EOFError` if the peer has closed the connection, and `ConnectionError`
  if unexpected data is waiting.
- A `Connection` can be used as a context manager.

Diagnostic messages go to the `chnative.connect` logger at debug level, unless
you pass a different `logf`.

## What is not included

This package is not a complete client. It does not:

- perform the hello handshake;
- send queries;
- encode or decode data blocks and columns;
- manage transactions;
- write compressed frames.

Those steps must be built on top of these modules.

## Tests

The tests use pytest. Install the `test` extra, then run `pytest`.