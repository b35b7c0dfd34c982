"""Server messages: exceptions, progress and profiling information."""

from __future__ import annotations

from dataclasses import dataclass

from chnative.decoder import Decoder


class ServerException(Exception):
    """An exception reported by the server."""

    def __init__(
        self,
        code: int,
        name: str,
        message: str,
        stack_trace: str = "",
        nested: ServerException | None = None,
    ) -> None:
        super().__init__(code, name, message)
        self.code = code
        self.name = name
        self.message = message
        self.stack_trace = stack_trace
        self.nested = nested
        self.__cause__ = nested

    def __str__(self) -> str:
        return f"code: {self.code}, message: {self.message}"


@dataclass(frozen=True)
class Progress:
    rows: int
    bytes: int
    total_rows: int


@dataclass(frozen=True)
class ProfileInfo:
    rows: int
    blocks: int
    bytes: int
    applied_limit: bool
    rows_before_limit: int
    calculated_rows_before_limit: bool


def read_exception(decoder: Decoder) -> ServerException:
    """Read an exception packet body, including any nested exceptions."""
    code = decoder.int32()
    name = decoder.string()
    message = decoder.string().removeprefix(name + ":").strip()
    stack_trace = decoder.string()
    nested = read_exception(decoder) if decoder.bool() else None
    return ServerException(code, name, message, stack_trace, nested)


def read_progress(decoder: Decoder) -> Progress:
    """Read a progress packet body."""
    rows = decoder.uvarint()
    size = decoder.uvarint()
    total_rows = decoder.uvarint()
    return Progress(rows=rows, bytes=size, total_rows=total_rows)


def read_profile_info(decoder: Decoder) -> ProfileInfo:
    """Read a profile-info packet body."""
    rows = decoder.uvarint()
    blocks = decoder.uvarint()
    size = decoder.uvarint()
    applied_limit = decoder.bool()
    rows_before_limit = decoder.uvarint()
    calculated = decoder.bool()
    return ProfileInfo(
        rows=rows,
        blocks=blocks,
        bytes=size,
        applied_limit=applied_limit,
        rows_before_limit=rows_before_limit,
        calculated_rows_before_limit=calculated,
    )