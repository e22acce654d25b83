"""MySQL command and response packet parsing."""

from __future__ import annotations

from .protocol import MYSQL, PayloadMessage, PkgParser, ProtocolParser
from .sqlmerge import SQL_MERGER

SQL = "sql"
CONTENT_KEY = "content_key"
SQL_ERR_CODE = "sql_error_code"
SQL_ERR_MSG = "sql_error_msg"

COM_QUERY = 0x03
COM_STMT_PREPARE = 0x16

ERR_HEADER = 0xFF
OK_HEADER = 0x00
EOF_HEADER = 0xFE

SQL_PREFIXES = ("select", "insert", "update", "delete", "drop", "create", "alter")


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def is_sql(sql: str) -> bool:
    """True if ``sql`` starts with a known statement keyword, in any case."""
    return sql.lower().startswith(SQL_PREFIXES)


# ---- requests: int<3> payload_length, int<1> sequence_id, payload ----


def _fast_fail_request(message: PayloadMessage) -> bool:
    return len(message.data) < 5


def _command_is_not(command: int):
    def fast_fail(message: PayloadMessage) -> bool:
        return message.data[4] != command

    return fast_fail


def _parse_statement(message: PayloadMessage) -> tuple[bool, bool]:
    raw = message.data[5:]
    sql = _text(raw)
    if not is_sql(sql):
        return False, True
    message.add_utf8_attribute(SQL, raw)
    message.add_utf8_attribute(CONTENT_KEY, SQL_MERGER.parse_statement(sql))
    return True, True


# ---- responses ----


def _fast_fail_response(message: PayloadMessage) -> bool:
    return len(message.data) < 6


def _parse_error(message: PayloadMessage) -> tuple[bool, bool]:
    data = message.data
    error_code = int.from_bytes(data[5:7], "little")
    if len(data) > 14 and data[8] == ord("#"):
        error_message = data[8:13] + b":" + data[13:]
    else:
        error_message = data[8:]
    message.attributes[SQL_ERR_CODE] = error_code
    message.add_utf8_attribute(SQL_ERR_MSG, error_message)
    return True, True


def _fast_fail_ok(message: PayloadMessage) -> bool:
    return message.data[4] not in (OK_HEADER, EOF_HEADER)


def _fast_fail_result_set(message: PayloadMessage) -> bool:
    return SQL not in message.attributes


def new_mysql_parser() -> ProtocolParser:
    """Build the MySQL protocol parser."""
    # Root nodes without a parse step hand each frame on to their children;
    # leaves without one accept the frame as complete.
    request = PkgParser(_fast_fail_request, None)
    request.add(_command_is_not(COM_STMT_PREPARE), _parse_statement)
    request.add(_command_is_not(COM_QUERY), _parse_statement)

    response = PkgParser(_fast_fail_response, None)
    response.add(_command_is_not(ERR_HEADER), _parse_error)
    response.add(_fast_fail_ok, None)
    response.add(_command_is_not(EOF_HEADER), None)
    response.add(_fast_fail_result_set, None)

    return ProtocolParser(MYSQL, request, response)