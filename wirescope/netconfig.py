"""Configuration of the network request analyzer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_REQUEST_TIMEOUT = 1
DEFAULT_CONNECT_TIMEOUT = 1
DEFAULT_RESPONSE_SLOW_THRESHOLD = 500
DEFAULT_HTTP_PAYLOAD_LENGTH = 200

_TRUE_WORDS = frozenset({"1", "t", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"", "0", "f", "false", "no", "off"})


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            pass
    raise ValueError(f"{key}: cannot use {value!r} as an integer")


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"{key}: cannot use {value!r} as a boolean")


def _as_list(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise ValueError(f"{key}: expected a list, got {value!r}")
    return list(value)


def _lowered(data: Mapping[str, Any], what: str) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected a mapping, got {data!r}")
    return {str(key).lower(): value for key, value in data.items()}


@dataclass
class ProtocolConfig:
    """Per-protocol settings: fixed ports, discovery switch and slow threshold."""

    key: str = ""
    ports: list[int] = field(default_factory=list)
    disable_discern: bool = False
    threshold: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProtocolConfig:
        values = _lowered(data, "protocol_config")
        config = cls()
        if "key" in values:
            config.key = str(values["key"])
        if "ports" in values:
            config.ports = [_as_int(port, "ports") for port in _as_list(values["ports"], "ports")]
        if "disable_discern" in values:
            config.disable_discern = _as_bool(values["disable_discern"], "disable_discern")
        if "slow_threshold" in values:
            config.threshold = _as_int(values["slow_threshold"], "slow_threshold")
        return config


_INT_FIELDS = {
    "connect_timeout": "connect_timeout",
    "request_timeout": "request_timeout",
    "response_slow_threshold": "response_slow_threshold",
    "conntrack_max_state_size": "conntrack_max_state_size",
    "conntrack_rate_limit": "conntrack_rate_limit",
    "http_payload_length": "http_payload_length",
}


@dataclass
class NetworkConfig:
    """Settings of the network analyzer; timeouts in seconds, thresholds in ms."""

    connect_timeout: int = 0
    request_timeout: int = 0
    response_slow_threshold: int = 0
    enable_conntrack: bool = False
    conntrack_max_state_size: int = 0
    conntrack_rate_limit: int = 0
    proc_root: str = ""
    protocol_parser: list[str] = field(default_factory=list)
    http_payload_length: int = 0
    protocol_configs: list[ProtocolConfig] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> NetworkConfig:
        """Build a config from the keys used in configuration files.

        Unknown keys are ignored; values of the wrong kind raise ValueError.
        """
        values = _lowered(data, "networkanalyzer")
        config = cls()
        for key, attribute in _INT_FIELDS.items():
            if key in values:
                setattr(config, attribute, _as_int(values[key], key))
        if "enable_conntrack" in values:
            config.enable_conntrack = _as_bool(values["enable_conntrack"], "enable_conntrack")
        if "proc_root" in values:
            config.proc_root = str(values["proc_root"])
        if "protocol_parser" in values:
            config.protocol_parser = [
                str(name) for name in _as_list(values["protocol_parser"], "protocol_parser")
            ]
        if "protocol_config" in values:
            config.protocol_configs = [
                ProtocolConfig.from_mapping(item)
                for item in _as_list(values["protocol_config"], "protocol_config")
            ]
        return config

    def effective_connect_timeout(self) -> int:
        return self.connect_timeout if self.connect_timeout > 0 else DEFAULT_CONNECT_TIMEOUT

    def effective_request_timeout(self) -> int:
        return self.request_timeout if self.request_timeout > 0 else DEFAULT_REQUEST_TIMEOUT

    def effective_slow_threshold(self) -> int:
        if self.response_slow_threshold > 0:
            return self.response_slow_threshold
        return DEFAULT_RESPONSE_SLOW_THRESHOLD

    def effective_http_payload_length(self) -> int:
        if self.http_payload_length > 0:
            return self.http_payload_length
        return DEFAULT_HTTP_PAYLOAD_LENGTH