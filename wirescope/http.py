"""HTTP/1.x request and response parsing."""

from __future__ import annotations

import re

from .protocol import (
    HTTP,
    PayloadMessage,
    PkgParser,
    ProtocolParser,
    http_payload_length,
)
from .textutil import parse_trace_header

HTTP_METHOD = "http_method"
HTTP_URL = "http_url"
HTTP_STATUS_CODE = "http_status_code"
HTTP_REQUEST_PAYLOAD = "request_payload"
HTTP_RESPONSE_PAYLOAD = "response_payload"
HTTP_APM_TRACE_TYPE = "trace_type"
HTTP_APM_TRACE_ID = "trace_id"
CONTENT_KEY = "content_key"
IS_ERROR = "is_error"
ERROR_TYPE = "error_type"
PROTOCOL_ERROR = 3

HTTP_METHODS = frozenset(
    {b"GET", b"POST", b"PUT", b"DELETE", b"HEAD", b"TRACE", b"OPTIONS", b"CONNECT"}
)
# Methods whose first bytes were lost when a payload was split.
SPLIT_METHODS = {b"ET": b"GET"}
HTTP_VERSIONS = frozenset({b"HTTP/1.0", b"HTTP/1.1"})

_MIN_LENGTH = 14
_STATUS_PATTERN = re.compile(rb"[+-]?[0-9]+")


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def parse_headers(message: PayloadMessage) -> dict[str, str]:
    """Read header lines after the first line, keyed by lower-case name.

    Only the first character after the colon is kept as the value.
    """
    headers: dict[str, str] = {}
    line = message.read_until_crlf(0)
    if line is None:
        return headers
    offset = line[0]
    while (line := message.read_until_crlf(offset)) is not None:
        offset, data = line
        position = data.find(b":")
        if not 0 < position < len(data) - 1:
            break
        headers[_text(data[:position]).lower()] = chr(data[position + 1])
    return headers


def content_key(url: str) -> str:
    """Return the URL without its query string."""
    return url.split("?", 1)[0]


def _add_trace(message: PayloadMessage) -> None:
    trace_type, trace_id = parse_trace_header(parse_headers(message))
    if trace_type and trace_id:
        message.attributes[HTTP_APM_TRACE_TYPE] = trace_type
        message.attributes[HTTP_APM_TRACE_ID] = trace_id


def _fast_fail_request(message: PayloadMessage) -> bool:
    return len(message.data) - message.offset < _MIN_LENGTH


def _parse_request(message: PayloadMessage) -> tuple[bool, bool]:
    data = message.data
    offset, method = message.read_until_blank_with_length(message.offset, 8)
    if method not in HTTP_METHODS:
        if data[offset - 1 : offset] != b" " or data[offset : offset + 1] != b"/":
            return False, True
        replacement = SPLIT_METHODS.get(method)
        if replacement is None:
            return False, True
        method = replacement

    _, url = message.read_until_blank(offset)
    _add_trace(message)

    message.attributes[HTTP_METHOD] = _text(method)
    message.add_utf8_attribute(HTTP_URL, url)
    message.add_utf8_attribute(HTTP_REQUEST_PAYLOAD, message.window(0, http_payload_length()))
    message.add_utf8_attribute(CONTENT_KEY, content_key(_text(url)) or "*")
    return True, True


def _fast_fail_response(message: PayloadMessage) -> bool:
    if len(message.data) - message.offset < _MIN_LENGTH:
        return True
    offset, version = message.read_until_blank_with_length(message.offset, 9)
    if version not in HTTP_VERSIONS or message.data[offset - 1] != ord(" "):
        return True
    message.offset = offset
    return False


def _parse_response(message: PayloadMessage) -> tuple[bool, bool]:
    _, raw_status = message.read_until_blank_with_length(message.offset, 6)
    if not _STATUS_PATTERN.fullmatch(raw_status):
        return False, True
    status = int(raw_status)
    if status > 999 or status < 99:
        status = 0

    if HTTP_APM_TRACE_TYPE not in message.attributes:
        _add_trace(message)

    message.attributes[HTTP_STATUS_CODE] = status
    message.add_utf8_attribute(HTTP_RESPONSE_PAYLOAD, message.window(0, http_payload_length()))
    if status >= 400:
        message.attributes[IS_ERROR] = True
        message.attributes[ERROR_TYPE] = PROTOCOL_ERROR
    return True, True


def new_http_parser() -> ProtocolParser:
    """Build the HTTP protocol parser."""
    return ProtocolParser(
        HTTP,
        PkgParser(_fast_fail_request, _parse_request),
        PkgParser(_fast_fail_response, _parse_response),
    )