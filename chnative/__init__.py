"""Native ClickHouse protocol building blocks: binary codec, LZ4 frame reading, server messages, query helpers, DSN parsing and connections."""

__version__ = "0.1.0"

__all__ = ["compression", "connect", "decoder", "dsn", "encoder", "helpers", "messages"]