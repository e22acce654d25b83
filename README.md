# wirescope

wirescope recognises application protocols in captured network payloads.
From the raw bytes of a request and its response, it can tell HTTP, DNS,
Kafka and MySQL traffic apart. For each of these it pulls out the attributes
that matter for request monitoring:

- **HTTP**: method, URL, content key, a slice of the payload, status code and an error flag.
- **DNS**: query id, domain, A-record addresses, response code and an error flag.
- **Kafka**: API key, version, correlation id, first topic and error code.
- **MySQL**: SQL statement, a merged content key, error code and error message.

A catch-all parser accepts any other payload under the name `NOSUPPORT`.

The package needs nothing outside the standard library.

## Installation

```
pip install .
```

To include the test tools:

```
pip install ".[test]"
```

## Parsing a payload

Each protocol has a `ProtocolParser`. There are two ways to get one:

- build it with `new_http_parser()`, `new_dns_parser()`, `new_kafka_parser()` or `new_mysql_parser()` from the module of the same name;
- look it up by name with `wirescope.factory.get_parser`.

```python
from wirescope.protocol import request_message, response_message
from wirescope.http import new_http_parser

parser = new_http_parser()

request = request_message(b"GET /users/42?verbose=1 HTTP/1.1\r\nHost: a\r\n\r\n")
if parser.parse_request(request):
    print(request.attributes)   # http_method, http_url, request_payload, content_key

response = response_message(b"HTTP/1.1 404 Not Found\r\n\r\n", request.attributes)
if parser.parse_response(response):
    print(response.attributes)  # adds http_status_code 404 and is_error True
```

`response_message` shares the attribute dictionary it is given. When you pass
the request's attributes, the response parser can check them. The Kafka
parser relies on this: it compares the response's correlation id with the
request's.

To limit how many payload bytes the HTTP parser keeps, call
`wirescope.protocol.set_http_payload_length`. The default is 80 bytes.

The HTTP parser keeps only the first character after the colon as a header
value.

The shared parsers are available by name:

```python
from wirescope.factory import get_parser, generic_parser

dns = get_parser("dns")        # also "http", "kafka", "mysql"
unknown = get_parser("smtp")   # None
fallback = generic_parser()    # accepts any payload
```

Some parsers match several requests against several responses. For DNS,
`multi_requests()` is true, and `pair_match(requests, response)` returns the
index of the request with the same id and domain as the response, or -1.

`PayloadMessage` also provides the low-level readers the parsers use:

- big-endian integers;
- Kafka-style strings, nullable strings and array sizes, in both the classic and the compact encoding;
- varints;
- scans up to a blank or to a CRLF.

When data is short, the readers raise `MessageShortError`. When a value is impossible, they raise `MessageInvalidError`. Both are subclasses of `ProtocolError`.

## Helpers

- `wirescope.textutil.format_utf8(data)` cuts bytes or a string back to a safe UTF-8 prefix. `utf8_prefix_length(data)` gives the length of that prefix in bytes.
- `wirescope.textutil.parse_trace_header(headers)` finds a Zipkin, Jaeger or W3C trace id in a mapping of lower-cased headers. It returns `(trace_type, trace_id)`, or two empty strings if none is found.
- `wirescope.sqlmerge.SqlMerger().parse_statement(sql)` reduces an SQL statement to a low-cardinality key such as `"select users *"`.
- `wirescope.mysql.is_sql(sql)` tells whether a string starts with a known SQL keyword.
- `wirescope.redis.is_redis_command(name)` checks a Redis command name, ignoring case. The package has no Redis payload parser.
- `wirescope.kafka.is_valid_version(api, version)` checks a Kafka API key and version pair.

## Port caching

`wirescope.factory.ParserCache` remembers which parsers matched traffic on a
port. Use `cached`, `add` and `remove` to work with it. The generic parser
always stays last in each port's list. A shared instance is available as
`wirescope.factory.PARSER_CACHE`.

Two methods keep per-port hit counters on a parser:

- `ProtocolParser.add_port_count(port)` counts one more hit and returns the new count.
- `reset_port(port)` clears the counter.

## Analyzers and configuration

`wirescope.analyzer.Analyzer` is an abstract base class for event consumers.
It has four methods: `start`, `consume_event`, `shutdown` and `type`.

`AnalyzerManager(*analyzers)` keys analyzers by their type. It raises
`ValueError` if it gets none.

- `start_all()` starts the analyzers and stops at the first error.
- `shutdown_all()` shuts every analyzer down and logs any failures.

`wirescope.netconfig.NetworkConfig.from_mapping(data)` builds the network
analyzer settings from a plain mapping, such as a loaded YAML section. If a
value has the wrong kind, it raises `ValueError`.

The `effective_*` methods fall back to the defaults when a timeout or
threshold is missing or not positive:

| Setting | Default |
| --- | --- |
| Connect timeout | 1 s |
| Request timeout | 1 s |
| Slow threshold | 500 ms |
| HTTP payload length | 200 bytes |

## What it does not do

wirescope parses payloads that you hand to it. It does not:

- capture traffic or read events from a socket or a kernel probe;
- pair requests and responses into connections, or track connection state;
- produce or export metrics;
- run as a service or provide a command.

`Analyzer` is only an interface: the package ships no concrete analyzer.

## Running the tests

```
pytest
```