"""Kafka request and response header parsing."""

from __future__ import annotations

from .protocol import (
    KAFKA,
    PayloadMessage,
    PkgParser,
    ProtocolError,
    ProtocolParser,
)

KAFKA_API = "kafka_api"
KAFKA_VERSION = "kafka_version"
KAFKA_CORRELATION_ID = "kafka_correlation_id"
KAFKA_TOPIC = "kafka_topic"
KAFKA_ERROR_CODE = "kafka_error_code"

API_PRODUCE = 0
API_FETCH = 1

# Supported (min, max) versions for each API key.
_API_VERSIONS: dict[int, tuple[int, int]] = {
    0: (0, 9),  # Produce
    1: (0, 12),  # Fetch
    2: (0, 7),  # ListOffsets
    3: (0, 11),  # Metadata
    4: (0, 5),  # LeaderAndIsr
    5: (0, 3),  # StopReplica
    6: (0, 7),  # UpdateMetadata
    7: (0, 3),  # ControlledShutdown
    8: (0, 8),  # OffsetCommit
    9: (0, 8),  # OffsetFetch
    10: (0, 4),  # FindCoordinator
    11: (0, 7),  # JoinGroup
    12: (0, 4),  # Heartbeat
    13: (0, 4),  # LeaveGroup
    14: (0, 5),  # SyncGroup
    15: (0, 5),  # DescribeGroups
    16: (0, 4),  # ListGroups
    17: (0, 1),  # SaslHandshake
    18: (0, 3),  # ApiVersions
    19: (0, 7),  # CreateTopics
    20: (0, 6),  # DeleteTopics
    21: (0, 2),  # DeleteRecords
    22: (0, 4),  # InitProducerId
    23: (0, 4),  # OffsetForLeaderEpoch
    24: (0, 3),  # AddPartitionsToTxn
    25: (0, 3),  # AddOffsetsToTxn
    26: (0, 3),  # EndTxn
    27: (0, 1),  # WriteTxnMarkers
    28: (0, 3),  # TxnOffsetCommit
    29: (0, 2),  # DescribeAcls
    30: (0, 2),  # CreateAcls
    31: (0, 2),  # DeleteAcls
    32: (0, 4),  # DescribeConfigs
    33: (0, 2),  # AlterConfigs
    34: (0, 2),  # AlterReplicaLogDirs
    35: (0, 2),  # DescribeLogDirs
    36: (0, 2),  # SaslAuthenticate
    37: (0, 3),  # CreatePartitions
    38: (0, 2),  # CreateDelegationToken
    39: (0, 2),  # RenewDelegationToken
    40: (0, 2),  # ExpireDelegationToken
    41: (0, 2),  # DescribeDelegationToken
    42: (0, 2),  # DeleteGroups
    43: (0, 2),  # ElectLeaders
    44: (0, 1),  # IncrementalAlterConfigs
    45: (0, 0),  # AlterPartitionReassignments
    46: (0, 0),  # ListPartitionReassignments
    47: (0, 0),  # OffsetDelete
    48: (0, 1),  # DescribeClientQuotas
    49: (0, 1),  # AlterClientQuotas
    50: (0, 0),  # DescribeUserScramCredentials
    51: (0, 0),  # AlterUserScramCredentials
    56: (0, 0),  # AlterIsr
    57: (0, 0),  # UpdateFeatures
    60: (0, 0),  # DescribeCluster
    61: (0, 0),  # DescribeProducers
}


def is_valid_version(api: int, version: int) -> bool:
    """True if ``version`` is a known version of API key ``api``."""
    bounds = _API_VERSIONS.get(api)
    if bounds is None:
        return False
    low, high = bounds
    return low <= version <= high


def _api(message: PayloadMessage) -> int:
    return message.attributes.get(KAFKA_API, 0)


def _version(message: PayloadMessage) -> int:
    return message.attributes.get(KAFKA_VERSION, 0)


# ---- requests ----


def _fast_fail_request(message: PayloadMessage) -> bool:
    return len(message.data) < 12


def _parse_request(message: PayloadMessage) -> tuple[bool, bool]:
    try:
        payload_length, _ = message.read_int32(0)
        api, _ = message.read_int16(4)
        version, _ = message.read_int16(6)
        correlation_id, _ = message.read_int32(8)
    except ProtocolError:
        return False, True
    if payload_length <= 8:
        return False, True
    if not is_valid_version(api, version):
        return False, True
    try:
        client_id_length, _ = message.read_int16(12)
    except ProtocolError:
        client_id_length = 0
    if correlation_id < 0 or client_id_length < 0:
        return False, True
    offset = client_id_length + 14
    if len(message.data) < offset:
        return False, True
    message.offset = offset
    message.attributes[KAFKA_API] = api
    message.attributes[KAFKA_VERSION] = version
    message.attributes[KAFKA_CORRELATION_ID] = correlation_id
    return True, False


def _fast_fail_request_fetch(message: PayloadMessage) -> bool:
    return _api(message) != API_FETCH


def _parse_request_fetch(message: PayloadMessage) -> tuple[bool, bool]:
    version = _version(message)
    compact = version >= 12
    # replica_id, max_wait_ms, min_bytes
    offset = message.offset + 12
    if version >= 3:
        offset += 4  # max_bytes
    if version >= 4:
        offset += 1  # isolation_level
    if version >= 7:
        offset += 8  # session_id, session_epoch
    try:
        topic_count, offset = message.read_array_size(offset, compact)
        if topic_count > 0:
            # Only the first topic is read: payloads are truncated, and from
            # version 13 topics are sent as ids instead of names.
            topic, _ = message.read_string(offset, compact)
            message.add_utf8_attribute(KAFKA_TOPIC, topic)
    except ProtocolError:
        return False, True
    return True, True


def _fast_fail_request_produce(message: PayloadMessage) -> bool:
    return _api(message) != API_PRODUCE


def _parse_request_produce(message: PayloadMessage) -> tuple[bool, bool]:
    version = _version(message)
    compact = version >= 9
    offset = message.offset
    try:
        if version >= 3:
            _, offset = message.read_nullable_string(offset, compact)  # transactional_id
        offset += 6  # acks, timeout_ms
        topic_count, offset = message.read_array_size(offset, compact)
        if topic_count > 0:
            topic, _ = message.read_string(offset, compact)
            message.add_utf8_attribute(KAFKA_TOPIC, topic)
    except ProtocolError:
        return False, True
    return True, True


def _fast_fail_other(message: PayloadMessage) -> bool:
    return _api(message) <= API_FETCH


# ---- responses ----


def _fast_fail_response(message: PayloadMessage) -> bool:
    return len(message.data) < 8


def _parse_response(message: PayloadMessage) -> tuple[bool, bool]:
    try:
        payload_length, _ = message.read_int32(0)
        correlation_id, _ = message.read_int32(4)
    except ProtocolError:
        return False, True
    if payload_length <= 4:
        return False, True
    if message.attributes.get(KAFKA_CORRELATION_ID) is None:
        return False, True
    if message.attributes[KAFKA_CORRELATION_ID] != correlation_id:
        return False, True
    message.offset = 8
    return True, False


def _parse_response_fetch(message: PayloadMessage) -> tuple[bool, bool]:
    version = _version(message)
    compact = version >= 12
    offset = message.offset
    error_code = 0
    try:
        if version >= 1:
            offset += 4  # throttle_time_ms
        if version >= 7:
            error_code, offset = message.read_int16(offset)
            offset += 4  # session_id
        topic_count, offset = message.read_array_size(offset, compact)
        if topic_count > 0:
            topic, offset = message.read_string(offset, compact)
            if version < 7:
                partition_count, offset = message.read_array_size(offset, compact)
                if partition_count > 0:
                    offset += 4  # partition_index
                    error_code, _ = message.read_int16(offset)
            message.add_utf8_attribute(KAFKA_TOPIC, topic)
    except ProtocolError:
        return False, True
    message.attributes[KAFKA_ERROR_CODE] = error_code
    return True, True


def _parse_response_produce(message: PayloadMessage) -> tuple[bool, bool]:
    version = _version(message)
    compact = version >= 9
    offset = message.offset
    error_code = 0
    try:
        topic_count, offset = message.read_array_size(offset, compact)
        if topic_count > 0:
            topic, offset = message.read_string(offset, compact)
            partition_count, offset = message.read_array_size(offset, compact)
            if partition_count > 0:
                offset += 4  # partition_index
                error_code, _ = message.read_int16(offset)
            message.add_utf8_attribute(KAFKA_TOPIC, topic)
    except ProtocolError:
        return False, True
    message.attributes[KAFKA_ERROR_CODE] = error_code
    return True, True


def new_kafka_parser() -> ProtocolParser:
    """Build the Kafka protocol parser."""
    request = PkgParser(_fast_fail_request, _parse_request)
    request.add(_fast_fail_request_fetch, _parse_request_fetch)
    request.add(_fast_fail_request_produce, _parse_request_produce)
    request.add(_fast_fail_other, None)

    response = PkgParser(_fast_fail_response, _parse_response)
    response.add(_fast_fail_request_fetch, _parse_response_fetch)
    response.add(_fast_fail_request_produce, _parse_response_produce)
    response.add(_fast_fail_other, None)

    return ProtocolParser(KAFKA, request, response)