"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP looks like on the wire, but nothing about
sockets or files:

    request.py       Request line → HTTPRequest
    response.py      HTTPResponse / ResponseWriter → bytes on a stream
    mime_types.py    File extension → Content-Type
    status_codes.py  HTTPStatus enum with reason phrases
    errors.py        Exceptions that map to status codes

=============================================================================
"""

from .errors import (
    HTTPError,
    ProtocolError,        # 400
    PolicyViolation,      # 403
    ResourceNotFound,     # 404
    UnsupportedOperation, # 501
    TransportFault,       # mid-stream I/O failure
)
from .request import HTTPRequest, RequestParser, extract_request_line, parse_request_line
from .response import HTTPResponse, ResponseWriter
from .status_codes import HTTPStatus
from .mime_types import get_mime_type

__all__ = [
    # Errors
    "HTTPError",
    "ProtocolError",
    "PolicyViolation",
    "ResourceNotFound",
    "UnsupportedOperation",
    "TransportFault",

    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "extract_request_line",
    "parse_request_line",

    # Response writing
    "HTTPResponse",
    "ResponseWriter",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
]
