"""
=============================================================================
HTTP REQUEST LINE PARSER
=============================================================================

Turns the first line of raw client input into an HTTPRequest.

=============================================================================
WHAT WE PARSE (AND WHAT WE DON'T)
=============================================================================

A full HTTP request has a request line, headers, and an optional body.
This server only ever looks at the REQUEST LINE:

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /css/site.css HTTP/1.1\r\n          ← parsed              │
    │  └─┬┘ └─────┬────┘ └───┬──┘                                    │
    │  Method   Target    Version                                     │
    ├─────────────────────────────────────────────────────────────────┤
    │  Host: localhost:8080\r\n                 ← ignored             │
    │  User-Agent: curl/8.5.0\r\n               ← ignored             │
    │  \r\n                                                           │
    └─────────────────────────────────────────────────────────────────┘

Everything after the first line is never consumed. That's fine because
every response says "Connection: close" and the client hangs up after one
exchange.

=============================================================================
FIELD LIMITS
=============================================================================

Each token is truncated at a fixed limit rather than rejected:

    method   ≤ 15 characters
    path     ≤ 255 characters
    version  ≤ 15 characters

Fewer than three whitespace-separated tokens is a 400. Extra tokens after
the version are ignored. The method and version are NOT validated here:
"BREW /pot HTCPCP/1.0" parses fine, and the connection handler decides
what to do with it (501, in that case).

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from .errors import ProtocolError


MAX_METHOD_LENGTH = 15
MAX_PATH_LENGTH = 255
MAX_VERSION_LENGTH = 15

# Bytes are decoded as Latin-1: every byte maps to exactly one character,
# so decoding can never fail and len(str) == len(bytes).
REQUEST_ENCODING = "iso-8859-1"

# Same set bytes.split() uses; str.split() would add Unicode whitespace
_ASCII_WHITESPACE = " \t\n\r\x0b\x0c"
_TOKEN_SEPARATOR = re.compile(f"[{_ASCII_WHITESPACE}]+")


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line.

    Immutable: created once per connection, thrown away when the
    connection closes.

    Attributes:
        method: HTTP method token (e.g. "GET").
        path: Request target exactly as sent (no decoding, no query split).
        version: HTTP version token (e.g. "HTTP/1.1").
        client_address: Peer (ip, port), used for logging only.
    """

    method: str
    path: str
    version: str
    client_address: tuple = field(default=("", 0), compare=False)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.client_address[0]


def extract_request_line(data: bytes) -> Optional[str]:
    """
    Isolate the first line of a raw request buffer.

    Lines may end in CRLF or a bare LF. Leading line terminators are
    skipped, so b"\\r\\nGET / HTTP/1.1\\r\\n" still yields "GET / HTTP/1.1".

    Args:
        data: Raw bytes read from the socket.

    Returns:
        The first non-empty line, or None if the buffer holds nothing
        but line terminators.
    """
    text = data.decode(REQUEST_ENCODING)

    for line in text.replace("\r", "\n").split("\n"):
        if line:
            return line
    return None


class RequestParser:
    """
    Parses a request line into an HTTPRequest.

    The limits are configurable so tests (or a stricter deployment) can
    tighten them; the defaults match the wire format described above.

    Usage:
        parser = RequestParser()
        request = parser.parse(b"GET /index.html HTTP/1.1\\r\\n\\r\\n")
    """

    def __init__(
        self,
        method_limit: int = MAX_METHOD_LENGTH,
        path_limit: int = MAX_PATH_LENGTH,
        version_limit: int = MAX_VERSION_LENGTH,
    ):
        self.method_limit = method_limit
        self.path_limit = path_limit
        self.version_limit = version_limit

    def parse(
        self,
        data: bytes,
        client_address: tuple = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes (only the first line matters).

        Raises:
            ProtocolError: If there is no request line or it is malformed.
        """
        line = extract_request_line(data)
        if line is None:
            raise ProtocolError("Bad Request")
        return self.parse_line(line, client_address)

    def parse_line(
        self,
        line: str,
        client_address: tuple = ("", 0)
    ) -> HTTPRequest:
        """
        Parse a single request line.

        Only ASCII whitespace (space, tab, VT, FF) separates tokens. Bytes
        such as 0xA0 or 0x85 are ordinary path characters even though
        str.split() would treat them as Unicode whitespace.

        Args:
            line: e.g. "GET /index.html HTTP/1.1"
            client_address: Peer address to attach for logging.

        Returns:
            HTTPRequest with each field truncated to its limit.

        Raises:
            ProtocolError: If fewer than three tokens are present.
        """
        tokens = _TOKEN_SEPARATOR.split(line.strip(_ASCII_WHITESPACE))
        if len(tokens) < 3:
            raise ProtocolError("Bad Request")

        method, path, version = tokens[:3]

        return HTTPRequest(
            method=method[:self.method_limit],
            path=path[:self.path_limit],
            version=version[:self.version_limit],
            client_address=client_address,
        )


_default_parser = RequestParser()


def parse_request_line(line: str, client_address: tuple = ("", 0)) -> HTTPRequest:
    """
    Parse a request line with the default limits.

    Example:
        >>> parse_request_line("GET / HTTP/1.1").path
        '/'
    """
    return _default_parser.parse_line(line, client_address)
