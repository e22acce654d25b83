import struct

import pytest

from wirescope.kafka import (
    KAFKA_API,
    KAFKA_CORRELATION_ID,
    KAFKA_ERROR_CODE,
    KAFKA_TOPIC,
    KAFKA_VERSION,
    is_valid_version,
    new_kafka_parser,
)
from wirescope.protocol import KAFKA, request_message, response_message


def _string(text):
    raw = text.encode()
    return struct.pack(">h", len(raw)) + raw


def _request(api, version, correlation_id, client_id, body):
    rest = struct.pack(">hhi", api, version, correlation_id) + _string(client_id) + body
    return struct.pack(">i", len(rest)) + rest


def _response(correlation_id, body):
    rest = struct.pack(">i", correlation_id) + body
    return struct.pack(">i", len(rest)) + rest


def _produce_v0_body(topic):
    return (
        struct.pack(">hi", 1, 30000)
        + struct.pack(">i", 1)
        + _string(topic)
        + struct.pack(">i", 1)
        + b"\x00" * 8
    )


def _topic_partition_error(topic, error_code):
    return (
        struct.pack(">i", 1)
        + _string(topic)
        + struct.pack(">i", 1)
        + struct.pack(">ih", 0, error_code)
        + b"\x00" * 8
    )


@pytest.mark.parametrize(
    "api, version, expected",
    [
        (0, 0, True),
        (0, 9, True),
        (0, 10, False),
        (1, 12, True),
        (1, 13, False),
        (61, 0, True),
        (52, 0, False),
        (3, -1, False),
    ],
)
def test_is_valid_version(api, version, expected):
    assert is_valid_version(api, version) is expected


def test_parser_protocol():
    parser = new_kafka_parser()
    assert parser.protocol == KAFKA
    assert parser.multi_requests() is False


def test_produce_request_v0():
    message = request_message(_request(0, 0, 7, "client", _produce_v0_body("orders")))
    assert new_kafka_parser().parse_request(message) is True
    assert message.attributes[KAFKA_API] == 0
    assert message.attributes[KAFKA_VERSION] == 0
    assert message.attributes[KAFKA_CORRELATION_ID] == 7
    assert message.attributes[KAFKA_TOPIC] == "orders"


def test_produce_request_v9_compact():
    body = (
        b"\x00"  # null transactional id
        + struct.pack(">hi", -1, 1000)
        + b"\x02"  # one topic
        + b"\x07orders"
        + b"\x00" * 4
    )
    message = request_message(_request(0, 9, 11, "producer", body))
    assert new_kafka_parser().parse_request(message) is True
    assert message.attributes[KAFKA_TOPIC] == "orders"
    assert message.attributes[KAFKA_VERSION] == 9


def test_fetch_request_v0():
    body = struct.pack(">iii", -1, 500, 1) + struct.pack(">i", 1) + _string("events") + b"\x00" * 4
    message = request_message(_request(1, 0, 5, "consumer", body))
    assert new_kafka_parser().parse_request(message) is True
    assert message.attributes[KAFKA_API] == 1
    assert message.attributes[KAFKA_TOPIC] == "events"


def test_fetch_request_v4_skips_max_bytes_and_isolation():
    body = (
        struct.pack(">iiiib", -1, 500, 1, 1048576, 0)
        + struct.pack(">i", 1)
        + _string("events")
        + b"\x00" * 4
    )
    message = request_message(_request(1, 4, 5, "consumer", body))
    assert new_kafka_parser().parse_request(message) is True
    assert message.attributes[KAFKA_TOPIC] == "events"


def test_other_api_request_has_no_topic():
    message = request_message(_request(3, 0, 9, "admin", b"\x00" * 8))
    assert new_kafka_parser().parse_request(message) is True
    assert message.attributes[KAFKA_API] == 3
    assert KAFKA_TOPIC not in message.attributes


def test_request_too_short():
    assert new_kafka_parser().parse_request(request_message(b"\x00" * 11)) is False


def test_request_payload_length_too_small():
    data = struct.pack(">ihhih", 8, 0, 0, 1, 0) + b"xx"
    assert new_kafka_parser().parse_request(request_message(data)) is False


def test_request_invalid_version():
    message = request_message(_request(1, 13, 5, "consumer", b"\x00" * 20))
    assert new_kafka_parser().parse_request(message) is False
    assert KAFKA_API not in message.attributes


def test_request_negative_client_id_length():
    data = struct.pack(">ihhih", 100, 0, 0, 1, -1) + b"\x00" * 10
    assert new_kafka_parser().parse_request(request_message(data)) is False


def test_request_negative_correlation_id():
    message = request_message(_request(0, 0, -3, "client", _produce_v0_body("orders")))
    assert new_kafka_parser().parse_request(message) is False


def test_request_truncated_topics():
    message = request_message(_request(0, 0, 7, "client", struct.pack(">hi", 1, 1000)))
    assert new_kafka_parser().parse_request(message) is False


def test_produce_response_reads_error_code():
    parser = new_kafka_parser()
    request = request_message(_request(0, 0, 21, "client", _produce_v0_body("orders")))
    assert parser.parse_request(request) is True
    response = response_message(_response(21, _topic_partition_error("orders", 3)), request.attributes)
    assert parser.parse_response(response) is True
    assert response.attributes[KAFKA_ERROR_CODE] == 3
    assert response.attributes[KAFKA_TOPIC] == "orders"
    # attributes are shared with the request
    assert request.attributes[KAFKA_ERROR_CODE] == 3


def test_fetch_response_v0_reads_error_code():
    parser = new_kafka_parser()
    body = struct.pack(">iii", -1, 500, 1) + struct.pack(">i", 1) + _string("events") + b"\x00" * 4
    request = request_message(_request(1, 0, 4, "consumer", body))
    assert parser.parse_request(request) is True
    response = response_message(_response(4, _topic_partition_error("events", 1)), request.attributes)
    assert parser.parse_response(response) is True
    assert response.attributes[KAFKA_ERROR_CODE] == 1
    assert response.attributes[KAFKA_TOPIC] == "events"


def test_fetch_response_v7_error_code_from_header():
    parser = new_kafka_parser()
    body = (
        struct.pack(">iiiib", -1, 500, 1, 1048576, 0)
        + struct.pack(">ii", 0, 0)
        + struct.pack(">i", 1)
        + _string("events")
        + b"\x00" * 4
    )
    request = request_message(_request(1, 7, 12, "consumer", body))
    assert parser.parse_request(request) is True
    response_body = (
        struct.pack(">ihi", 0, 2, 0)  # throttle, error_code, session_id
        + struct.pack(">i", 1)
        + _string("events")
        + b"\x00" * 8
    )
    response = response_message(_response(12, response_body), request.attributes)
    assert parser.parse_response(response) is True
    assert response.attributes[KAFKA_ERROR_CODE] == 2
    assert response.attributes[KAFKA_TOPIC] == "events"


def test_response_correlation_mismatch():
    parser = new_kafka_parser()
    request = request_message(_request(0, 0, 21, "client", _produce_v0_body("orders")))
    assert parser.parse_request(request) is True
    response = response_message(_response(22, _topic_partition_error("orders", 0)), request.attributes)
    assert parser.parse_response(response) is False
    assert KAFKA_ERROR_CODE not in response.attributes


def test_response_without_request_fails():
    response = response_message(_response(21, _topic_partition_error("orders", 0)), {})
    assert new_kafka_parser().parse_response(response) is False


def test_response_too_short():
    assert new_kafka_parser().parse_response(response_message(b"\x00" * 7, {})) is False


def test_other_api_response():
    parser = new_kafka_parser()
    request = request_message(_request(3, 0, 9, "admin", b"\x00" * 8))
    assert parser.parse_request(request) is True
    response = response_message(_response(9, b"\x00" * 8), request.attributes)
    assert parser.parse_response(response) is True
    assert KAFKA_ERROR_CODE not in response.attributes