"""
Response producers: the static file server and the error page builder.
"""

from .errors import render_error_page, send_error, send_http_error
from .static import StaticFileHandler

__all__ = [
    "StaticFileHandler",
    "render_error_page",
    "send_error",
    "send_http_error",
]
