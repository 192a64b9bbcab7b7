"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a file path's extension to the Content-Type we send with it.

The table is intentionally small: a static site needs HTML, CSS, JS, JSON
and a couple of image formats. Anything else goes out as text/plain.

    ┌────────────────────────────────────────────────────────────────────┐
    │  Extension      Content-Type                                       │
    ├────────────────────────────────────────────────────────────────────┤
    │  html           text/html                                          │
    │  css            text/css                                           │
    │  js             application/javascript                             │
    │  json           application/json                                   │
    │  png            image/png                                          │
    │  jpg, jpeg      image/jpeg                                         │
    │  (anything)     text/plain                                         │
    └────────────────────────────────────────────────────────────────────┘

Two rules worth knowing:

1. The extension is everything after the LAST "." in the whole path,
   not just the file name. "/srv/www.site/README" has the "extension"
   "site/README", which matches nothing, so it's text/plain.

2. Matching is CASE-SENSITIVE. "photo.PNG" is text/plain.

=============================================================================
"""

from pathlib import PurePath
from typing import Union


MIME_TYPES = {
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: Union[str, PurePath]) -> str:
    """
    Get the MIME type for a file path.

    Pure and total: never raises, never touches the filesystem.

    Examples:
        >>> get_mime_type("index.html")
        'text/html'

        >>> get_mime_type("/photos/cat.jpeg")
        'image/jpeg'

        >>> get_mime_type("archive.xyz")
        'text/plain'

        >>> get_mime_type("Makefile")
        'text/plain'
    """
    _, dot, extension = str(path).rpartition(".")
    if not dot:
        return DEFAULT_MIME_TYPE

    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
