import socket

import pytest

from chnative.connect import (
    BadConnectionError,
    ConnOptions,
    Connection,
    OpenStrategy,
    dial,
)


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def server():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(4)
    yield listener
    listener.close()


def _closed_port():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


def test_write_then_read_between_connections(pair):
    left, right = pair
    a = Connection(left, 1)
    b = Connection(right, 2)
    assert a.write(b"hello") == 5
    assert b.read(5) == b"hello"


def test_read_assembles_chunks_and_keeps_rest(pair):
    left, right = pair
    conn = Connection(left, 1, read_timeout=5.0)
    right.sendall(b"ab")
    right.sendall(b"cd")
    assert conn.read(3) == b"abc"
    assert conn.read(1) == b"d"


def test_read_after_peer_close_is_bad_connection(pair):
    left, right = pair
    conn = Connection(left, 1)
    right.close()
    with pytest.raises(BadConnectionError):
        conn.read(1)
    assert conn.closed is True


def test_read_timeout_is_bad_connection(pair):
    left, _ = pair
    conn = Connection(left, 1, read_timeout=0.05)
    with pytest.raises(BadConnectionError):
        conn.read(1)
    assert conn.closed is True


def test_close_is_idempotent(pair):
    left, _ = pair
    conn = Connection(left, 1)
    conn.close()
    conn.close()
    assert conn.closed is True


def test_check_idle_connection_keeps_it_usable(pair):
    left, right = pair
    conn = Connection(left, 1)
    assert conn.check() is None
    right.sendall(b"x")
    assert conn.read(1) == b"x"


def test_check_with_pending_data(pair):
    left, right = pair
    conn = Connection(left, 1)
    right.sendall(b"z")
    with pytest.raises(ConnectionError, match="unexpected read"):
        conn.check()
    assert conn.read(1) == b"z"


def test_check_after_peer_close(pair):
    left, right = pair
    conn = Connection(left, 1)
    right.close()
    with pytest.raises(EOFError):
        conn.check()


@pytest.mark.parametrize(
    "strategy,name",
    [
        (OpenStrategy.RANDOM, "random"),
        (OpenStrategy.IN_ORDER, "in_order"),
        (OpenStrategy.TIME_RANDOM, "time_random"),
    ],
)
def test_open_strategy_names(strategy, name):
    assert str(strategy) == name


def test_dial_in_order_skips_unreachable_host(server):
    messages = []
    port = server.getsockname()[1]
    options = ConnOptions(
        hosts=[f"127.0.0.1:{_closed_port()}", f"127.0.0.1:{port}"],
        open_strategy=OpenStrategy.IN_ORDER,
        conn_timeout=2.0,
        logf=messages.append,
    )
    conn = dial(options)
    accepted, _ = server.accept()
    try:
        assert conn.write(b"ping") == 4
        assert accepted.recv(4) == b"ping"
        assert any(m.startswith("[dial err]") for m in messages)
        assert any(m.startswith("[dial]") for m in messages)
    finally:
        accepted.close()
        conn.close()


def test_dial_gives_distinct_idents(server):
    port = server.getsockname()[1]
    options = ConnOptions(
        hosts=[f"127.0.0.1:{port}"], open_strategy=OpenStrategy.TIME_RANDOM
    )
    first = dial(options)
    second = dial(options)
    try:
        assert first.ident != second.ident
        assert first.ident > 0 and second.ident > 0
    finally:
        first.close()
        second.close()


def test_dial_all_hosts_unreachable():
    options = ConnOptions(hosts=[f"127.0.0.1:{_closed_port()}"], conn_timeout=2.0)
    with pytest.raises(OSError):
        dial(options)


def test_dial_missing_port():
    with pytest.raises(ValueError, match="missing port"):
        dial(ConnOptions(hosts=["localhost"]))


def test_dial_without_hosts():
    with pytest.raises(ValueError):
        dial(ConnOptions(hosts=[]))