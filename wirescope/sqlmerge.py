"""Reduce SQL statements to a low-cardinality 'operation table' key."""

from __future__ import annotations

import re

_WS = r"[\t\n\f\r ]"
_NON_WS = r"[^\t\n\f\r ]"
_IDENTIFIER = re.compile(r"[A-Za-z_-]+")


class SqlPattern:
    """Recognises one kind of statement and the object it operates on."""

    def __init__(self, sql_type: str, sql_key: str) -> None:
        self.sql_type = sql_type
        self.sql_key = sql_key
        self._type_regex = re.compile(rf"(^{_WS}*){sql_type}(.*)", re.IGNORECASE)
        self._key_regex = re.compile(
            rf"({sql_key})({_WS}+({_NON_WS}*){_WS}|\n)", re.IGNORECASE | re.MULTILINE
        )

    def __repr__(self) -> str:
        return f"SqlPattern({self.sql_type!r}, {self.sql_key!r})"

    def check_type(self, statement: str) -> bool:
        """True if ``statement`` starts with this pattern's operation."""
        match = self._type_regex.search(statement)
        if match is None:
            return False
        return self.sql_type in match.group(0).lower()

    def _object_name(self, statement: str) -> str:
        match = self._key_regex.search(statement)
        if match is None:
            return "*"
        return match.group(3) or "*"

    def parse_statement(self, statement: str) -> str:
        """Return ``"<type> <object> *"``, ``"<type> *"``, or "" if not this type."""
        if not self.check_type(statement):
            return ""
        name = self._object_name(statement)
        value = f"{name} *" if _IDENTIFIER.fullmatch(name) else "*"
        return f"{self.sql_type} {value}"


class SqlMerger:
    """Tries each known statement pattern in turn."""

    def __init__(self) -> None:
        self.patterns = [
            SqlPattern("select", "from"),
            SqlPattern("insert", "into"),
            SqlPattern("update", "update"),
            SqlPattern("delete", "from"),
            SqlPattern("drop", "index|table|database"),
            SqlPattern("create", "index|table|database"),
            SqlPattern("alter", "table"),
        ]

    def parse_statement(self, statement: str) -> str:
        """Return the merged key of ``statement``, or "" when nothing matches."""
        for pattern in self.patterns:
            if pattern.check_type(statement):
                result = pattern.parse_statement(statement)
                if result:
                    return result
        return ""


SQL_MERGER = SqlMerger()