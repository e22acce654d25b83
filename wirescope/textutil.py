"""Text helpers: UTF-8 safe truncation and distributed-trace header parsing."""

from __future__ import annotations

from collections.abc import Mapping

_LOCB = 0x80
_HICB = 0xBF

# First-byte classes: high nibble indexes _ACCEPT_RANGES, low three bits give
# the sequence length.  _XX marks an invalid lead byte, _AS plain ASCII.
_XX = 0xF1
_AS = 0xF0
_S1 = 0x02
_S2 = 0x13
_S3 = 0x03
_S4 = 0x23
_S5 = 0x34
_S6 = 0x04
_S7 = 0x44

_FIRST = bytes(
    [_AS] * 0x80
    + [_XX] * 0x40
    + [_XX, _XX]
    + [_S1] * 30
    + [_S2]
    + [_S3] * 12
    + [_S4]
    + [_S3] * 2
    + [_S5, _S6, _S6, _S6, _S7]
    + [_XX] * 11
)

_ACCEPT_RANGES = (
    (_LOCB, _HICB),
    (0xA0, _HICB),
    (_LOCB, 0x9F),
    (0x90, _HICB),
    (_LOCB, 0x8F),
)


def _as_bytes(data: bytes | bytearray | str) -> bytes:
    if isinstance(data, str):
        try:
            return data.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError:
            return data.encode("utf-8", "surrogatepass")
    return bytes(data)


def utf8_prefix_length(data: bytes | bytearray | str) -> int:
    """Return the length in bytes of the leading part of ``data`` kept as UTF-8.

    Scanning stops at the first invalid or truncated sequence.  A multi-byte
    character shorter than three bytes that is directly followed by ASCII or
    by a broken sequence is dropped as well.
    """
    raw = _as_bytes(data)
    total = len(raw)
    index = 0
    last = 0
    while index < total:
        byte = raw[index]
        if byte < 0x80:
            if 0 < last < 3:
                return index - last
            index += 1
            last = 0
            continue
        info = _FIRST[byte]
        if info == _XX:
            return index - last
        size = info & 7
        if index + size > total:
            if 0 < last < 3:
                return index - last
            return index
        low, high = _ACCEPT_RANGES[info >> 4]
        if not low <= raw[index + 1] <= high:
            size = 1
        elif size >= 3 and not _LOCB <= raw[index + 2] <= _HICB:
            size = 1
        elif size == 4 and not _LOCB <= raw[index + 3] <= _HICB:
            size = 1
        last = size
        index += size
    return total


def format_utf8(data: bytes | bytearray | str) -> str:
    """Return the valid UTF-8 prefix of ``data`` as text."""
    raw = _as_bytes(data)
    return raw[: utf8_prefix_length(raw)].decode("utf-8", "replace")


def parse_trace_header(headers: Mapping[str, str]) -> tuple[str, str]:
    """Find a trace id in lower-cased HTTP headers.

    Returns ``(trace_type, trace_id)``, or two empty strings when no known
    tracing header is present.
    """
    zipkin = headers.get("x-b3-traceid")
    if zipkin is not None:
        return "zipkin", zipkin

    jaeger = headers.get("uber-trace-id")
    if jaeger is not None:
        position = jaeger.find(":")
        return "jaeger", jaeger[:position] if position > 0 else jaeger

    for key in ("traceparent", "traceresponse"):
        w3c = headers.get(key)
        if w3c is not None and len(w3c) >= 35:
            return "w3c", w3c[3:35]

    return "", ""