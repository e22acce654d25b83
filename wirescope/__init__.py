"""Application-protocol payload parsers (HTTP, DNS, Kafka, MySQL) and analyzer plumbing."""

__version__ = "0.1.0"

__all__ = [
    "analyzer",
    "dns",
    "factory",
    "http",
    "kafka",
    "mysql",
    "netconfig",
    "protocol",
    "redis",
    "sqlmerge",
    "textutil",
]