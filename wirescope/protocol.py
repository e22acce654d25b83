"""Payload messages and the generic protocol parser machinery."""

from __future__ import annotations

import enum
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from .textutil import format_utf8

HTTP = "http"
DNS = "dns"
KAFKA = "kafka"
MYSQL = "mysql"
REDIS = "redis"
NOSUPPORT = "NOSUPPORT"

EOF = -1


@dataclass
class _Settings:
    http_payload_length: int = 80


_settings = _Settings()


def set_http_payload_length(length: int) -> None:
    """Set how many payload bytes HTTP parsers keep."""
    _settings.http_payload_length = length


def http_payload_length() -> int:
    """Return how many payload bytes HTTP parsers keep."""
    return _settings.http_payload_length


class ProtocolError(Exception):
    """Base error for payload decoding."""


class MessageShortError(ProtocolError):
    """The payload ends before the value being read."""


class MessageInvalidError(ProtocolError):
    """The payload holds a value that cannot be valid."""


class ParseStatus(enum.IntEnum):
    FAIL = 0
    OK = 1
    COMPLETE = 2


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


@dataclass
class PayloadMessage:
    """A captured payload, a read cursor and the attributes parsed from it."""

    data: bytes
    offset: int = 0
    attributes: dict[str, Any] = field(default_factory=dict)

    def is_complete(self) -> bool:
        return len(self.data) <= self.offset

    def has_more_length(self, length: int) -> bool:
        return self.offset + length <= len(self.data)

    def window(self, offset: int, length: int) -> bytes:
        """Return up to ``length`` bytes starting at ``offset``."""
        return self.data[offset : offset + length]

    def add_utf8_attribute(self, key: str, value: bytes | str) -> None:
        """Store ``value`` cut down to its valid UTF-8 prefix."""
        self.attributes[key] = format_utf8(value)

    # ---- fixed-width integers ----

    def read_uint16(self, offset: int) -> Optional[int]:
        """Read a big-endian uint16, or return None if the data is too short."""
        if offset < 0 or offset + 2 > len(self.data):
            return None
        return int.from_bytes(self.data[offset : offset + 2], "big")

    def _require(self, offset: int, size: int) -> None:
        if offset < 0:
            raise MessageInvalidError("message is invalid")
        if offset + size > len(self.data):
            raise MessageShortError("message is too short")

    def read_int16(self, offset: int) -> tuple[int, int]:
        """Read a big-endian int16; return ``(value, next_offset)``."""
        self._require(offset, 2)
        return int.from_bytes(self.data[offset : offset + 2], "big", signed=True), offset + 2

    def read_int32(self, offset: int) -> tuple[int, int]:
        """Read a big-endian int32; return ``(value, next_offset)``."""
        self._require(offset, 4)
        return int.from_bytes(self.data[offset : offset + 4], "big", signed=True), offset + 4

    def read_bytes(self, offset: int, length: int) -> Optional[tuple[int, bytes]]:
        """Return ``(next_offset, bytes)``, or None unless data remains beyond them."""
        end = offset + length
        if end >= len(self.data):
            return None
        return end, self.data[offset:end]

    # ---- variable-length integers ----

    def _read_varint_core(self, offset: int, max_bytes: int) -> tuple[int, int]:
        if offset < 0:
            raise MessageInvalidError("message is invalid")
        value = 0
        shift = 0
        for position in range(offset, offset + max_bytes):
            if position >= len(self.data):
                raise MessageShortError("message is too short")
            byte = self.data[position]
            if byte < 0x80:
                return value | (byte << shift), position + 1
            value |= (byte & 0x7F) << shift
            shift += 7
        raise MessageInvalidError("message is invalid")

    def read_unsigned_varint(self, offset: int) -> tuple[int, int]:
        """Read an unsigned varint of at most five bytes."""
        return self._read_varint_core(offset, 5)

    def read_varint(self, offset: int) -> tuple[int, int]:
        """Read a zigzag-encoded signed varint of at most five bytes."""
        value, next_offset = self._read_varint_core(offset, 5)
        return (value >> 1) ^ -(value & 1), next_offset

    # ---- strings and arrays ----

    def _take_string(self, start: int, length: int, bound: int) -> tuple[str, int]:
        if start + bound >= len(self.data):
            return _text(self.data[start:]), len(self.data)
        return _text(self.data[start : start + length]), start + length

    def read_nullable_string(self, offset: int, compact: bool) -> tuple[Optional[str], int]:
        """Read a possibly null string; a null string comes back as None."""
        if compact:
            raw, next_offset = self.read_unsigned_varint(offset)
            length = raw - 1
            if length < -1:
                raise MessageInvalidError("message is invalid")
            if length == -1:
                return None, next_offset
            return self._take_string(next_offset, length, raw)
        length, next_offset = self.read_int16(offset)
        if length < -1:
            raise MessageInvalidError("message is invalid")
        if length == -1:
            return None, next_offset
        return self._take_string(next_offset, length, length)

    def read_array_size(self, offset: int, compact: bool) -> tuple[int, int]:
        """Read an array length; a null array counts as empty."""
        if compact:
            raw, next_offset = self.read_unsigned_varint(offset)
            size = _to_int32(raw)
            if size < 0:
                raise MessageInvalidError("message is invalid")
            return (size - 1 if size else 0), next_offset
        size, next_offset = self.read_int32(offset)
        if size < -1:
            raise MessageInvalidError("message is invalid")
        return (0 if size == -1 else size), next_offset

    def read_string(self, offset: int, compact: bool) -> tuple[str, int]:
        """Read a non-null length-prefixed string."""
        if compact:
            raw, next_offset = self.read_unsigned_varint(offset)
            length = raw - 1
            if length < 0:
                raise MessageInvalidError("message is invalid")
            return self._take_string(next_offset, length, raw)
        length, next_offset = self.read_int16(offset)
        if length < 0:
            raise MessageInvalidError("message is invalid")
        return self._take_string(next_offset, length, length)

    # ---- text scanning ----

    def read_until_blank(self, start: int) -> tuple[int, bytes]:
        """Read up to the next space; return the offset after it and the bytes before."""
        end = len(self.data)
        position = self.data.find(b" ", start, end)
        if position >= 0:
            return position + 1, self.data[start:position]
        return end, self.data[start:end]

    def read_until_blank_with_length(self, start: int, limit: int) -> tuple[int, bytes]:
        """Like read_until_blank, looking at no more than ``limit`` bytes."""
        end = min(len(self.data), start + limit)
        position = self.data.find(b" ", start, end)
        if position >= 0:
            return position + 1, self.data[start:position]
        return end, self.data[start:end]

    def read_until_crlf(self, start: int) -> Optional[tuple[int, bytes]]:
        """Read one CRLF-terminated line; return ``(next_offset, line)`` or None."""
        length = len(self.data)
        if start >= length:
            return None
        position = self.data.find(b"\r", start)
        if position < 0:
            return length, self.data[start:]
        if position == length - 1:
            return length, self.data[start : length - 1]
        if self.data[position + 1] == ord("\n"):
            return position + 2, self.data[start:position]
        return None


def request_message(data: bytes) -> PayloadMessage:
    """Wrap request bytes in a message with fresh attributes."""
    return PayloadMessage(bytes(data))


def response_message(data: bytes, attributes: dict[str, Any]) -> PayloadMessage:
    """Wrap response bytes in a message sharing the given attributes."""
    return PayloadMessage(bytes(data), 0, attributes)


FastFailFn = Callable[[PayloadMessage], bool]
ParseFn = Callable[[PayloadMessage], "tuple[bool, bool]"]
PairMatchFn = Callable[[Sequence[PayloadMessage], PayloadMessage], int]


@dataclass
class PkgParser:
    """A node in a tree of frame parsers.

    ``parse`` returns ``(ok, complete)``; when a frame is ok but not complete
    the children are tried in order.  A missing ``fast_fail`` never rejects a
    frame; a missing ``parse`` accepts the frame, handing it on to the
    children if there are any and completing it otherwise.
    """

    fast_fail: Optional[FastFailFn]
    parse: Optional[ParseFn]
    children: list[PkgParser] = field(default_factory=list)

    def add(self, fast_fail: Optional[FastFailFn], parse: Optional[ParseFn]) -> PkgParser:
        child = PkgParser(fast_fail, parse)
        self.children.append(child)
        return child

    def parse_payload(self, multi_frames: bool, message: PayloadMessage) -> bool:
        if multi_frames:
            while (status := self.parse_one_frame(message)) is ParseStatus.OK:
                pass
            return status is ParseStatus.COMPLETE
        return self.parse_one_frame(message) is not ParseStatus.FAIL

    def parse_one_frame(self, message: PayloadMessage) -> ParseStatus:
        if self.fast_fail is not None and self.fast_fail(message):
            return ParseStatus.FAIL
        if self.parse is None:
            ok, complete = True, not self.children
        else:
            ok, complete = self.parse(message)
        if not ok:
            return ParseStatus.FAIL
        if complete:
            return ParseStatus.COMPLETE
        if not self.children:
            return ParseStatus.OK
        for child in self.children:
            status = child.parse_one_frame(message)
            if status is not ParseStatus.FAIL:
                return status
        return ParseStatus.FAIL


class ProtocolParser:
    """Request and response parsers for one protocol, with per-port hit counts."""

    def __init__(
        self,
        protocol: str,
        request_parser: PkgParser,
        response_parser: PkgParser,
        pair_match: Optional[PairMatchFn] = None,
    ) -> None:
        self.protocol = protocol
        self.request_parser = request_parser
        self.response_parser = response_parser
        self.multi_frames = False
        self._pair_match = pair_match
        self._port_counts: dict[int, int] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"ProtocolParser({self.protocol!r})"

    def enable_multi_frame(self) -> None:
        self.multi_frames = True

    def multi_requests(self) -> bool:
        """True when requests are matched to responses one by one."""
        return self._pair_match is not None

    def pair_match(self, requests: Sequence[PayloadMessage], response: PayloadMessage) -> int:
        """Return the index of the request matching ``response``, or -1."""
        if self._pair_match is None:
            return -1
        return self._pair_match(requests, response)

    def parse_request(self, message: PayloadMessage) -> bool:
        return self.request_parser.parse_payload(self.multi_frames, message)

    def parse_response(self, message: PayloadMessage) -> bool:
        return self.response_parser.parse_payload(self.multi_frames, message)

    def add_port_count(self, port: int) -> int:
        """Count one more hit on ``port`` and return the new count."""
        with self._lock:
            count = self._port_counts.get(port, 0) + 1
            self._port_counts[port] = count
            return count

    def reset_port(self, port: int) -> None:
        with self._lock:
            self._port_counts.pop(port, None)


def new_generic_parser() -> ProtocolParser:
    """A parser that accepts any payload as an unsupported protocol."""
    return ProtocolParser(
        NOSUPPORT,
        PkgParser(None, None),
        PkgParser(None, None),
    )