"""DNS request and response parsing."""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence

from .protocol import (
    DNS,
    EOF,
    MessageInvalidError,
    PayloadMessage,
    PkgParser,
    ProtocolError,
    ProtocolParser,
)

DNS_HEADER_SIZE = 12
MAX_NUM_RR = 25
MAX_MESSAGE_SIZE = 512

MAX_DOMAIN_NAME_WIRE_OCTETS = 255
MAX_COMPRESSION_POINTERS = (MAX_DOMAIN_NAME_WIRE_OCTETS + 1) // 2 - 2

TYPE_A = 1
TYPE_AAAA = 28

DNS_ID = "dns_id"
DNS_DOMAIN = "dns_domain"
DNS_IP = "dns_ip"
DNS_RCODE = "dns_rcode"
IS_ERROR = "is_error"
ERROR_TYPE = "error_type"
PROTOCOL_ERROR = 3

_LABEL_SPECIAL = frozenset(b".  '@;()\"\\")


class DnsError(ProtocolError):
    """A domain name on the wire cannot be decoded."""


def escape_byte(value: int) -> str:
    """Return the ``\\DDD`` escape of a byte below space or above tilde."""
    return f"\\{value:03d}"


def is_label_special(value: int) -> bool:
    """True if the label byte must be escaped with a backslash."""
    return value in _LABEL_SPECIAL


def unpack_domain_name(msg: bytes, offset: int) -> tuple[str, int]:
    """Decode a possibly compressed domain name.

    Returns the presentation form and the offset just past the name as
    stored at ``offset``.  Raises DnsError for malformed names.
    """
    parts: list[str] = []
    end = len(msg)
    budget = MAX_DOMAIN_NAME_WIRE_OCTETS
    pointers = 0
    resume = 0
    while True:
        if offset >= end:
            raise DnsError("dns: buffer size too small")
        head = msg[offset]
        offset += 1
        kind = head & 0xC0
        if kind == 0x00:
            if head == 0:
                break
            if offset + head > end:
                raise DnsError("dns: buffer size too small")
            budget -= head + 1
            if budget <= 0:
                raise DnsError(
                    f"domain name exceeded {MAX_DOMAIN_NAME_WIRE_OCTETS} wire-format octets"
                )
            for value in msg[offset : offset + head]:
                if is_label_special(value):
                    parts.append("\\" + chr(value))
                elif value < 0x20 or value > 0x7E:
                    parts.append(escape_byte(value))
                else:
                    parts.append(chr(value))
            parts.append(".")
            offset += head
        elif kind == 0xC0:
            if offset >= end:
                raise DnsError("dns: buffer size too small")
            low = msg[offset]
            offset += 1
            if pointers == 0:
                resume = offset
            pointers += 1
            if pointers > MAX_COMPRESSION_POINTERS:
                raise DnsError("too many compression pointers")
            offset = ((head ^ 0xC0) << 8) | low
        else:
            raise DnsError("dns: bad rdata")
    if pointers == 0:
        resume = offset
    return ("".join(parts) or "."), resume


def read_query(message: PayloadMessage, query_count: int) -> str:
    """Skip the question section and return the first queried domain."""
    domain = ""
    offset = message.offset + DNS_HEADER_SIZE
    for _ in range(query_count):
        if message.is_complete():
            raise ProtocolError("EOF")
        try:
            name, offset = unpack_domain_name(message.data, offset)
        except DnsError as exc:
            raise MessageInvalidError("message is invalid") from exc
        if offset >= len(message.data):
            raise MessageInvalidError("message is invalid")
        if not domain:
            domain = name
        offset += 4
    message.offset = offset
    return domain


def _ip_string(raw: bytes) -> str:
    if len(raw) == 4:
        return str(ipaddress.IPv4Address(raw))
    if len(raw) == 16:
        address = ipaddress.IPv6Address(raw)
        mapped = address.ipv4_mapped
        return str(mapped) if mapped is not None else str(address)
    if not raw:
        return "<nil>"
    return "?" + raw.hex()


def read_ipv4_answers(message: PayloadMessage, answer_count: int) -> str:
    """Collect the addresses of A records, joined by commas."""
    addresses: list[str] = []
    offset = message.offset
    for _ in range(answer_count):
        offset += 2
        record_type = message.read_uint16(offset)
        if record_type is None:
            break
        offset += 8
        length = message.read_uint16(offset)
        if length is None:
            break
        offset += 2
        if record_type == TYPE_A:
            result = message.read_bytes(offset, length)
            if result is None:
                offset = EOF
                break
            offset, raw = result
            addresses.append(_ip_string(raw))
        offset += length
    message.offset = offset
    return ",".join(addresses)


def _header(message: PayloadMessage) -> tuple[int, int, int, int, int, int, int]:
    """Return id, qr, opcode, rcode, questions, answers and total records."""

    def word(position: int) -> int:
        value = message.read_uint16(position)
        return 0 if value is None else value

    base = message.offset
    ident = word(base)
    flags = word(base + 2)
    questions = word(base + 4)
    answers = word(base + 6)
    authorities = word(base + 8)
    additionals = word(base + 10)
    total = (questions + answers + authorities + additionals) & 0xFFFF
    return (
        ident,
        (flags >> 15) & 0x1,
        (flags >> 11) & 0xF,
        flags & 0xF,
        questions,
        answers,
        total,
    )


def _fast_fail(message: PayloadMessage) -> bool:
    size = len(message.data)
    return size <= DNS_HEADER_SIZE or size > MAX_MESSAGE_SIZE


def _parse_request(message: PayloadMessage) -> tuple[bool, bool]:
    ident, qr, opcode, rcode, questions, answers, total = _header(message)
    if qr != 0 or opcode > 2 or rcode > 5 or questions == 0 or answers > 0 or total > MAX_NUM_RR:
        return False, True
    try:
        domain = read_query(message, questions)
    except ProtocolError:
        return False, True
    message.attributes[DNS_ID] = ident
    message.attributes[DNS_DOMAIN] = domain
    return True, True


def _parse_response(message: PayloadMessage) -> tuple[bool, bool]:
    ident, qr, opcode, rcode, questions, answers, total = _header(message)
    if qr == 0 or opcode > 2 or rcode > 5 or questions == 0 or total > MAX_NUM_RR:
        return False, True
    try:
        domain = read_query(message, questions)
    except ProtocolError:
        return False, True
    addresses = read_ipv4_answers(message, answers)
    attributes = message.attributes
    attributes[DNS_DOMAIN] = domain
    if addresses:
        attributes[DNS_IP] = addresses
    attributes[DNS_ID] = ident
    attributes[DNS_RCODE] = rcode
    if rcode > 0:
        attributes[IS_ERROR] = True
        attributes[ERROR_TYPE] = PROTOCOL_ERROR
    return True, True


def dns_pair_match(requests: Sequence[PayloadMessage], response: PayloadMessage) -> int:
    """Return the index of the request with the response's id and domain, or -1."""
    response_id = response.attributes.get(DNS_ID, 0)
    response_domain = response.attributes.get(DNS_DOMAIN, "")
    for index, request in enumerate(requests):
        if (
            request.attributes.get(DNS_ID, 0) == response_id
            and request.attributes.get(DNS_DOMAIN, "") == response_domain
        ):
            return index
    return -1


def new_dns_parser() -> ProtocolParser:
    """Build the DNS protocol parser."""
    return ProtocolParser(
        DNS,
        PkgParser(_fast_fail, _parse_request),
        PkgParser(_fast_fail, _parse_response),
        dns_pair_match,
    )