"""
=============================================================================
ERROR PAGES
=============================================================================

Builds the tiny HTML page sent for every 4xx/5xx response:

    <html><body><h1>404 Not Found</h1><p>Not Found</p></body></html>

The message is embedded VERBATIM, with no HTML escaping. That's safe only
because every caller passes a fixed string ("Not Found", "Forbidden", ...),
never anything taken from the request. Don't pass user input here.

The message is also used as the reason phrase on the status line:

    HTTP/1.1 404 Not Found
    Content-Type: text/html
    ...

=============================================================================
"""

import logging
from typing import Optional

from ..http.errors import HTTPError
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


ERROR_PAGE_TEMPLATE = "<html><body><h1>{code} {message}</h1><p>{message}</p></body></html>"


def render_error_page(status: HTTPStatus, message: Optional[str] = None) -> str:
    """
    Render the HTML body for an error response.

    Example:
        >>> render_error_page(HTTPStatus.FORBIDDEN)
        '<html><body><h1>403 Forbidden</h1><p>Forbidden</p></body></html>'
    """
    message = message or HTTPStatus(status).phrase
    return ERROR_PAGE_TEMPLATE.format(code=int(status), message=message)


def send_error(stream, status: HTTPStatus, message: Optional[str] = None) -> None:
    """
    Send a complete error response.

    Args:
        stream: Anything with sendall(bytes), or a ResponseWriter.
        status: Error status code.
        message: Short trusted message; defaults to the status phrase.
    """
    message = message or HTTPStatus(status).phrase
    writer = stream if isinstance(stream, ResponseWriter) else ResponseWriter(stream)

    logger.debug(f"Sending error page {int(status)} {message}")
    writer.send(status, "text/html", render_error_page(status, message), reason=message)


def send_http_error(stream, error: HTTPError) -> None:
    """Send the error page for a raised HTTPError."""
    send_error(stream, error.status_code, error.message)
