"""Shared protocol parsers and the per-port cache of parsers that matched."""

from __future__ import annotations

import threading
from typing import Optional

from .dns import new_dns_parser
from .http import new_http_parser
from .kafka import new_kafka_parser
from .mysql import new_mysql_parser
from .protocol import DNS, HTTP, KAFKA, MYSQL, ProtocolParser, new_generic_parser

_GENERIC_PARSER = new_generic_parser()
_PARSERS: dict[str, ProtocolParser] = {
    HTTP: new_http_parser(),
    KAFKA: new_kafka_parser(),
    MYSQL: new_mysql_parser(),
    DNS: new_dns_parser(),
}


def get_parser(key: str) -> Optional[ProtocolParser]:
    """Return the shared parser for protocol ``key``, or None if unknown."""
    return _PARSERS.get(key)


def generic_parser() -> ProtocolParser:
    """Return the shared catch-all parser."""
    return _GENERIC_PARSER


class ParserCache:
    """Remembers which parsers matched traffic on each port.

    The generic parser, when cached, is always kept last.
    """

    def __init__(self, generic: Optional[ProtocolParser] = None) -> None:
        self._generic = generic if generic is not None else _GENERIC_PARSER
        self._by_port: dict[int, list[ProtocolParser]] = {}
        self._lock = threading.Lock()

    def cached(self, port: int) -> Optional[tuple[ProtocolParser, ...]]:
        """Return the parsers cached for ``port``, or None if it was never cached."""
        with self._lock:
            parsers = self._by_port.get(port)
            return None if parsers is None else tuple(parsers)

    def add(self, port: int, parser: ProtocolParser) -> None:
        """Cache ``parser`` for ``port`` unless it is already there."""
        with self._lock:
            parsers = self._by_port.setdefault(port, [])
            if any(existing is parser for existing in parsers):
                return
            if parsers and parsers[-1] is self._generic:
                parsers.insert(len(parsers) - 1, parser)
            else:
                parsers.append(parser)

    def remove(self, port: int, parser: ProtocolParser) -> None:
        """Drop ``parser`` from the cache of ``port``."""
        with self._lock:
            parsers = self._by_port.get(port)
            if parsers is not None:
                parsers[:] = [existing for existing in parsers if existing is not parser]


PARSER_CACHE = ParserCache()