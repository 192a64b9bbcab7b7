"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the server knows about, as an exception class.

    ┌──────────────────────┬────────┬────────────────────────────────────┐
    │ Exception            │ Status │ Raised when                        │
    ├──────────────────────┼────────┼────────────────────────────────────┤
    │ ProtocolError        │  400   │ Request line can't be parsed       │
    │ PolicyViolation      │  403   │ Target tries to leave the root     │
    │ ResourceNotFound     │  404   │ File missing or can't be opened    │
    │ UnsupportedOperation │  501   │ Method is not GET                  │
    ├──────────────────────┼────────┼────────────────────────────────────┤
    │ TransportFault       │   -    │ Socket/file I/O failed mid-stream  │
    └──────────────────────┴────────┴────────────────────────────────────┘

The first four happen BEFORE any header is written, so the client still
gets a complete error page. TransportFault can happen AFTER the 200 header
block went out; at that point the wire contract can't change, so all we can
do is log it and drop the connection.

Nothing here escapes a connection: the connection handler catches all of
these at its boundary.

=============================================================================
"""

from typing import Optional

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """
    Base class for errors that map to an HTTP error page.

    Carries the status code that should be returned to the client.
    `message` doubles as the reason phrase on the status line.
    """

    # Subclasses override this; the handler never raises a bare HTTPError
    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.status_code.phrase
        super().__init__(self.message)


class ProtocolError(HTTPError):
    """Malformed or unparseable request line."""
    status_code = HTTPStatus.BAD_REQUEST


class PolicyViolation(HTTPError):
    """Request target rejected by the traversal guard."""
    status_code = HTTPStatus.FORBIDDEN


class ResourceNotFound(HTTPError):
    """Requested file does not exist or cannot be opened."""
    status_code = HTTPStatus.NOT_FOUND


class UnsupportedOperation(HTTPError):
    """Request method other than GET."""
    status_code = HTTPStatus.NOT_IMPLEMENTED


class TransportFault(ConnectionError):
    """
    Read or write failure after the exchange started.

    Not an HTTPError: headers may already be on the wire, so there is no
    status code left to send.
    """
