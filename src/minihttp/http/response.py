"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Serializes responses onto a byte stream.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

Every response this server sends has exactly the same shape:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                     ← Status line             │
    │  Content-Type: text/html\r\n             ← What the body is        │
    │  Content-Length: 1337\r\n                ← EXACT body byte count   │
    │  Connection: close\r\n                   ← We always hang up       │
    │  \r\n                                    ← End of headers          │
    │  <!DOCTYPE html>...                      ← Body (1337 bytes)       │
    └─────────────────────────────────────────────────────────────────────┘

Content-Length is the only way the client knows where the body ends
(no chunked encoding here), so it MUST match the bytes that follow.

=============================================================================
TWO WAYS TO SEND A BODY
=============================================================================

    IN-MEMORY (error pages):              STREAMED (files):

    writer.send(404, "text/html",         writer.send_head(200, "image/png",
                body)                                      size)
        │                                 for chunk in file:
        └── head + body in one                writer.send_body_chunk(chunk)
            sendall()

Streaming means a 2 GB file never has to fit in memory. The price is that
once send_head() has gone out, an I/O failure can't be turned into an error
page any more.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Union

from .errors import TransportFault
from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"


@dataclass
class HTTPResponse:
    """
    An in-memory HTTP response.

    Attributes:
        status: Status code.
        content_type: Value of the Content-Type header.
        body: Response body bytes.
        reason: Reason phrase override (defaults to the status phrase).
        version: HTTP version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = "text/plain"
    body: bytes = b""
    reason: Optional[str] = None
    version: str = HTTP_VERSION

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line, e.g. "HTTP/1.1 200 OK".
        """
        reason = self.reason if self.reason is not None else HTTPStatus(self.status).phrase
        return f"{self.version} {int(self.status)} {reason}"

    def head_bytes(self, content_length: Optional[int] = None) -> bytes:
        """
        Serialize the status line and header block.

        Args:
            content_length: Length to declare. Defaults to len(body); file
                            responses pass the file size instead.
        """
        if content_length is None:
            content_length = len(self.body)

        lines = [
            self.status_line,
            f"Content-Type: {self.content_type}",
            f"Content-Length: {content_length}",
            "Connection: close",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("iso-8859-1")

    def to_bytes(self) -> bytes:
        """Serialize the complete response (head + body)."""
        return self.head_bytes() + self.body


class ResponseWriter:
    """
    Writes responses onto anything with a sendall(bytes) method.

    That's a socket, a Connection, or a fake stream in tests.

    The writer enforces ordering: the head goes out exactly once, and body
    bytes are only accepted after it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     ResponseWriter States                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   fresh ──send_head()──► head sent ──send_body_chunk()──┐            │
    │     │                       ▲                            │           │
    │     │                       └────────────────────────────┘           │
    │     │                                                                │
    │     └──send()──► done (head + body in one write)                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        headers_sent: True once the status line has been written.
        bytes_sent: Body bytes written so far.
    """

    def __init__(self, stream):
        self._stream = stream
        self.headers_sent = False
        self.bytes_sent = 0

    def write(self, response: HTTPResponse) -> None:
        """Write a complete in-memory response."""
        self._ensure_fresh()
        self._sendall(response.to_bytes())
        self.headers_sent = True
        self.bytes_sent += len(response.body)

    def send(
        self,
        status: HTTPStatus,
        content_type: str,
        body: Union[str, bytes],
        reason: Optional[str] = None,
    ) -> None:
        """
        Write a response whose body is already in memory.

        Strings are encoded as UTF-8 before Content-Length is computed,
        so the declared length is always the byte count.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")

        self.write(HTTPResponse(
            status=status,
            content_type=content_type,
            body=body,
            reason=reason,
        ))

    def send_head(
        self,
        status: HTTPStatus,
        content_type: str,
        content_length: int,
        reason: Optional[str] = None,
    ) -> None:
        """
        Write only the status line and headers.

        The caller promises to follow up with exactly `content_length`
        bytes via send_body_chunk().
        """
        self._ensure_fresh()
        response = HTTPResponse(status=status, content_type=content_type, reason=reason)
        self._sendall(response.head_bytes(content_length))
        self.headers_sent = True

    def send_body_chunk(self, data: bytes) -> None:
        """Write part of a streamed body."""
        if not self.headers_sent:
            raise RuntimeError("Body written before headers")
        self._sendall(data)
        self.bytes_sent += len(data)

    def _ensure_fresh(self) -> None:
        if self.headers_sent:
            raise RuntimeError("Response headers already sent")

    def _sendall(self, data: bytes) -> None:
        try:
            self._stream.sendall(data)
        except TransportFault:
            raise
        except OSError as e:
            # BrokenPipeError, ConnectionResetError, socket.timeout, ...
            raise TransportFault(f"Write failed: {e}") from e
