import pytest

from wirescope.protocol import (
    NOSUPPORT,
    MessageInvalidError,
    MessageShortError,
    ParseStatus,
    PkgParser,
    ProtocolError,
    ProtocolParser,
    http_payload_length,
    new_generic_parser,
    request_message,
    response_message,
    set_http_payload_length,
)


@pytest.fixture
def restore_payload_length():
    previous = http_payload_length()
    yield
    set_http_payload_length(previous)


INT16_DATA = bytes([0xFF, 0x00, 0x04, 0x74, 0x65, 0x73, 0x74])
INT32_DATA = bytes([0xFF, 0x00, 0x00, 0x00, 0x04, 0x74, 0x65, 0x73, 0x74])


@pytest.mark.parametrize("offset,expect", [(0, -256), (1, 4), (2, 1140)])
def test_read_int16(offset, expect):
    value, next_offset = request_message(INT16_DATA).read_int16(offset)
    assert value == expect
    assert next_offset == offset + 2


@pytest.mark.parametrize("offset,error", [(-1, MessageInvalidError), (10, MessageShortError)])
def test_read_int16_errors(offset, error):
    with pytest.raises(error):
        request_message(INT16_DATA).read_int16(offset)


@pytest.mark.parametrize("offset,expect", [(0, -16777216), (1, 4), (2, 1140)])
def test_read_int32(offset, expect):
    value, next_offset = request_message(INT32_DATA).read_int32(offset)
    assert value == expect
    assert next_offset == offset + 4


@pytest.mark.parametrize("offset,error", [(-1, MessageInvalidError), (10, MessageShortError)])
def test_read_int32_errors(offset, error):
    with pytest.raises(error):
        request_message(INT32_DATA).read_int32(offset)


@pytest.mark.parametrize("offset,expect", [(1, "test"), (2, "est")])
def test_read_nullable_string(offset, expect):
    value, next_offset = request_message(INT16_DATA).read_nullable_string(offset, False)
    assert value == expect
    assert next_offset == len(INT16_DATA)


@pytest.mark.parametrize(
    "offset,error",
    [(-1, MessageInvalidError), (0, MessageInvalidError), (10, MessageShortError)],
)
def test_read_nullable_string_errors(offset, error):
    with pytest.raises(error):
        request_message(INT16_DATA).read_nullable_string(offset, False)


def test_errors_share_base_class():
    with pytest.raises(ProtocolError):
        request_message(b"").read_int32(0)


def test_read_nullable_string_null():
    message = request_message(b"\xff\xffrest")
    assert message.read_nullable_string(0, False) == (None, 2)


def test_read_compact_nullable_string_null():
    assert request_message(b"\x00abc").read_nullable_string(0, True) == (None, 1)


def test_read_compact_string():
    message = request_message(b"\x03abcd")
    assert message.read_string(0, True) == ("ab", 3)


def test_read_compact_string_zero_length_invalid():
    with pytest.raises(MessageInvalidError):
        request_message(b"\x00abc").read_string(0, True)


def test_read_string_inside_data():
    message = request_message(b"\x00\x02hiXYZ")
    assert message.read_string(0, False) == ("hi", 4)


def test_read_string_negative_length_invalid():
    with pytest.raises(MessageInvalidError):
        request_message(b"\xff\xfeabc").read_string(0, False)


def test_read_unsigned_varint():
    assert request_message(b"\x96\x01").read_unsigned_varint(0) == (150, 2)


@pytest.mark.parametrize("data,expect", [(b"\x03", -2), (b"\x04", 2), (b"\x01", -1), (b"\x00", 0)])
def test_read_varint_zigzag(data, expect):
    assert request_message(data).read_varint(0) == (expect, 1)


def test_varint_too_long_is_invalid():
    with pytest.raises(MessageInvalidError):
        request_message(b"\x80\x80\x80\x80\x80\x01").read_unsigned_varint(0)


def test_varint_truncated_is_short():
    with pytest.raises(MessageShortError):
        request_message(b"\x80\x80").read_unsigned_varint(0)


def test_read_array_size():
    message = request_message(b"\xff\xff\xff\xff\x00\x00\x00\x05")
    assert message.read_array_size(0, False) == (0, 4)
    assert message.read_array_size(4, False) == (5, 8)


def test_read_array_size_invalid():
    with pytest.raises(MessageInvalidError):
        request_message(b"\xff\xff\xff\xfe").read_array_size(0, False)


def test_read_compact_array_size():
    assert request_message(b"\x00").read_array_size(0, True) == (0, 1)
    assert request_message(b"\x04").read_array_size(0, True) == (3, 1)


def test_read_uint16():
    message = request_message(b"\x01\x02")
    assert message.read_uint16(0) == 258
    assert message.read_uint16(1) is None


def test_read_bytes():
    message = request_message(b"abcde")
    assert message.read_bytes(0, 4) == (4, b"abcd")
    assert message.read_bytes(1, 4) is None


def test_read_until_blank():
    message = request_message(b"GET /path HTTP/1.1")
    assert message.read_until_blank(0) == (4, b"GET")
    assert message.read_until_blank(10) == (18, b"HTTP/1.1")


def test_read_until_blank_with_length():
    message = request_message(b"POSTING /x")
    assert message.read_until_blank_with_length(0, 4) == (4, b"POST")
    assert message.read_until_blank_with_length(0, 8) == (8, b"POSTING")


def test_read_until_crlf():
    message = request_message(b"GET / HTTP/1.1\r\nHost: x\r\n")
    assert message.read_until_crlf(0) == (16, b"GET / HTTP/1.1")
    assert message.read_until_crlf(16) == (25, b"Host: x")
    assert message.read_until_crlf(25) is None


def test_read_until_crlf_bare_cr_and_trailing_cr():
    assert request_message(b"ab\rcd").read_until_crlf(0) is None
    assert request_message(b"abc\r").read_until_crlf(0) == (4, b"abc")
    assert request_message(b"abc").read_until_crlf(0) == (3, b"abc")


def test_completion_and_window():
    message = request_message(b"abcdef")
    assert not message.is_complete()
    assert message.has_more_length(6)
    assert not message.has_more_length(7)
    assert message.window(2, 2) == b"cd"
    assert message.window(4, 10) == b"ef"
    message.offset = 6
    assert message.is_complete()


def test_add_utf8_attribute_truncates():
    message = request_message(b"")
    message.add_utf8_attribute("k", b"ok\xe4\xb8")
    assert message.attributes["k"] == "ok"


def test_response_shares_attributes():
    request = request_message(b"x")
    request.attributes["id"] = 7
    response = response_message(b"y", request.attributes)
    response.attributes["status"] = 1
    assert request.attributes == {"id": 7, "status": 1}


def test_http_payload_length(restore_payload_length):
    set_http_payload_length(123)
    assert http_payload_length() == 123


def _consume_one(message):
    message.offset += 1
    return True, message.is_complete()


def test_multi_frame_consumes_all():
    parser = PkgParser(lambda m: False, _consume_one)
    message = request_message(b"abc")
    assert parser.parse_payload(True, message) is True
    assert message.offset == 3


def test_single_frame_accepts_partial():
    parser = PkgParser(lambda m: False, _consume_one)
    message = request_message(b"abc")
    assert parser.parse_payload(False, message) is True
    assert message.offset == 1


def test_multi_frame_stops_on_failure():
    parser = PkgParser(lambda m: m.data[m.offset] == ord("!"), _consume_one)
    message = request_message(b"ab!")
    assert parser.parse_payload(True, message) is False
    assert message.offset == 2


def test_children_are_tried_in_order():
    parent = PkgParser(lambda m: False, lambda m: (True, False))
    parent.add(lambda m: True, lambda m: (True, True))
    parent.add(lambda m: False, lambda m: (True, True))
    assert parent.parse_one_frame(request_message(b"x")) is ParseStatus.COMPLETE


def test_all_children_failing_fails():
    parent = PkgParser(lambda m: False, lambda m: (True, False))
    parent.add(lambda m: True, lambda m: (True, True))
    parent.add(lambda m: False, lambda m: (False, True))
    assert parent.parse_one_frame(request_message(b"x")) is ParseStatus.FAIL


def test_no_children_partial_is_ok():
    parser = PkgParser(lambda m: False, lambda m: (True, False))
    assert parser.parse_one_frame(request_message(b"x")) is ParseStatus.OK


def test_generic_parser_accepts_anything():
    parser = new_generic_parser()
    assert parser.protocol == NOSUPPORT
    assert parser.parse_request(request_message(b"\x00\x01"))
    assert parser.parse_response(response_message(b"", {}))
    assert parser.multi_requests() is False
    assert parser.pair_match([], request_message(b"")) == -1


def test_pair_match_delegates():
    leaf = PkgParser(lambda m: False, lambda m: (True, True))
    parser = ProtocolParser("custom", leaf, leaf, lambda requests, response: len(requests) - 1)
    assert parser.multi_requests() is True
    requests = [request_message(b"a"), request_message(b"b")]
    assert parser.pair_match(requests, request_message(b"c")) == 1


def test_port_counting():
    parser = new_generic_parser()
    assert parser.add_port_count(80) == 1
    assert parser.add_port_count(80) == 2
    assert parser.add_port_count(443) == 1
    parser.reset_port(80)
    assert parser.add_port_count(80) == 1


def test_multi_frame_flag_changes_result():
    parser = ProtocolParser(
        "custom",
        PkgParser(lambda m: False, _consume_one),
        PkgParser(lambda m: False, _consume_one),
    )
    first = request_message(b"ab")
    assert parser.parse_request(first) and first.offset == 1
    parser.enable_multi_frame()
    second = request_message(b"ab")
    assert parser.parse_request(second) and second.offset == 2