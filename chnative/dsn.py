"""Parsing of connection strings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlsplit

from chnative.connect import OpenStrategy

DEFAULT_DATABASE = "default"
DEFAULT_USERNAME = "default"
DEFAULT_CONN_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 60.0
DEFAULT_WRITE_TIMEOUT = 60.0
DEFAULT_BLOCK_SIZE = 1_000_000

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INT_RE = re.compile(r"[+-]?[0-9]+")
_STRATEGIES = {
    "random": OpenStrategy.RANDOM,
    "in_order": OpenStrategy.IN_ORDER,
    "time_random": OpenStrategy.TIME_RANDOM,
}


@dataclass
class DSNConfig:
    """Connection settings taken from a connection string."""

    hosts: list[str]
    database: str = DEFAULT_DATABASE
    username: str = DEFAULT_USERNAME
    password: str = ""
    secure: bool = False
    skip_verify: bool = False
    tls_config: str = ""
    no_delay: bool = True
    compress: bool = False
    block_size: int = DEFAULT_BLOCK_SIZE
    conn_timeout: float = DEFAULT_CONN_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    write_timeout: float = DEFAULT_WRITE_TIMEOUT
    open_strategy: OpenStrategy = OpenStrategy.RANDOM
    check_connection_liveness: bool = True
    debug: bool = False
    extra: dict[str, str] = field(default_factory=dict)


def _parse_bool(text: str) -> bool | None:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return None


def _parse_float(text: str) -> float | None:
    if not text or "_" in text or text != text.strip():
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_dsn(dsn: str) -> DSNConfig:
    """Parse a ``tcp://host:port?option=value`` connection string."""
    parts = urlsplit(dsn)
    query = parse_qs(parts.query, keep_blank_values=True)

    def get(name: str) -> str:
        values = query.get(name)
        return values[0] if values else ""

    host = parts.netloc.rpartition("@")[2]
    hosts = [h for h in [host, *get("alt_hosts").split(",")] if h]
    if not hosts:
        raise ValueError(f"no host in connection string {dsn!r}")

    config = DSNConfig(
        hosts=hosts,
        database=get("database") or DEFAULT_DATABASE,
        username=get("username") or DEFAULT_USERNAME,
        password=get("password"),
        tls_config=get("tls_config"),
    )
    config.secure = bool(config.tls_config)

    for name in ("no_delay", "secure", "skip_verify", "compress", "debug"):
        value = _parse_bool(get(name))
        if value is not None:
            setattr(config, name, value)
    liveness = _parse_bool(get("check_connection_liveness"))
    if liveness is not None:
        config.check_connection_liveness = liveness

    for key, attr in (
        ("timeout", "conn_timeout"),
        ("read_timeout", "read_timeout"),
        ("write_timeout", "write_timeout"),
    ):
        seconds = _parse_float(get(key))
        if seconds is not None:
            setattr(config, attr, seconds)

    block_size = get("block_size")
    if _INT_RE.fullmatch(block_size):
        config.block_size = int(block_size)

    strategy = _STRATEGIES.get(get("connection_open_strategy"))
    if strategy is not None:
        config.open_strategy = strategy

    if config.secure:
        # Liveness cannot be probed through an encrypted socket.
        config.check_connection_liveness = False
    return config