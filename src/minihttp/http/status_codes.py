"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on the wire, with their reason phrases.

The server is deliberately tiny, so only five codes are ever produced:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK               - File found and streamed                │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Bad Request      - Request line had fewer than 3 tokens   │
    │  403   │ Forbidden        - Target contains ".."                   │
    │  404   │ Not Found        - File missing or cannot be opened       │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  501   │ Not Implemented  - Any method other than GET              │
    └────────┴───────────────────────────────────────────────────────────┘

500 is never sent. It is only the status of a bare HTTPError; an
unexpected handler fault is logged and the connection closed without
a response.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                        # File served
    BAD_REQUEST = 400               # Malformed request line
    FORBIDDEN = 403                 # Traversal attempt
    NOT_FOUND = 404                 # Missing/unopenable file
    INTERNAL_SERVER_ERROR = 500     # Bare HTTPError only, never sent
    NOT_IMPLEMENTED = 501           # Non-GET method

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx status code."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
}
