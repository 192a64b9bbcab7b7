"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from the document root.

=============================================================================
REQUEST → FILE
=============================================================================

    GET /css/site.css HTTP/1.1
            │
            ▼
    ┌──────────────────────────┐
    │ 1. Contains ".."?        │──── yes ───► 403 Forbidden
    └────────────┬─────────────┘
                 │ no
    ┌────────────▼─────────────┐
    │ 2. Exactly "/"?          │──── yes ───► use "/index.html"
    └────────────┬─────────────┘
                 │
    ┌────────────▼─────────────┐
    │ 3. root / "css/site.css" │──── escapes root? ───► 403 Forbidden
    └────────────┬─────────────┘
                 │
    ┌────────────▼─────────────┐
    │ 4. open(path, "rb")      │──── fails ───► 404 Not Found
    └────────────┬─────────────┘
                 │
    ┌────────────▼─────────────┐
    │ 5. 200 head (size, type) │
    │    stream 8 KB chunks    │──── I/O error ───► TransportFault
    └────────────┬─────────────┘
                 │
    ┌────────────▼─────────────┐
    │ 6. close the file        │  (always, on every path)
    └──────────────────────────┘

=============================================================================
SECURITY: THE TRAVERSAL GUARD
=============================================================================

The guard is COARSE on purpose: any target containing the two characters
".." is refused, even a harmless one like "/notes..txt". It doesn't decode
"%2e%2e" either, but since we never decode the target, an encoded dot is
just a literal "%2e" in a filename and can't climb directories.

Symlinks are the real gap. A symlink inside the root that points outside
it will be followed, because the path is not canonicalized. That matches
how a plain "open(root + path)" server behaves. Set follow_symlinks=False
to canonicalize and refuse anything that resolves outside the root:

    root/
    ├── index.html
    └── etc -> /etc          GET /etc/passwd
                               follow_symlinks=True  → 200 (!)
                               follow_symlinks=False → 403

=============================================================================
"""

import os
import logging
from pathlib import Path
from typing import BinaryIO, Union

from ..http.errors import HTTPError, PolicyViolation, ResourceNotFound, TransportFault
from ..http.mime_types import get_mime_type
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus
from .errors import send_http_error


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 8192


class StaticFileHandler:
    """
    Serves files from a document root.

    =========================================================================
    USAGE
    =========================================================================

        static = StaticFileHandler("/var/www/html")

        # conn is anything with sendall(bytes)
        status = static.serve(conn, "/index.html")

    =========================================================================
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        index_file: str = "index.html",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        follow_symlinks: bool = True,
    ):
        """
        Initialize static file handler.

        Args:
            root_dir: Document root. Made absolute once, here, so later
                      changes to the working directory don't move it.

            index_file: Default document served for "/".

            chunk_size: Bytes per read/write while streaming a file.

            follow_symlinks: If False, canonicalize paths and refuse any
                             that resolve outside the root.
        """
        self.root_dir = Path(os.path.abspath(root_dir))
        self.index_file = index_file
        self.chunk_size = chunk_size
        self.follow_symlinks = follow_symlinks

        if not self.root_dir.is_dir():
            raise ValueError(f"Document root does not exist: {root_dir}")

        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

    def resolve(self, target: str) -> Path:
        """
        Map a request target to a filesystem path.

        Args:
            target: The request target, e.g. "/css/site.css".

        Returns:
            Absolute path under the document root.

        Raises:
            PolicyViolation: If the target is refused by the traversal guard.
        """
        # ─────────────────────────────────────────────────────────────────
        # STEP 1: TRAVERSAL GUARD
        # ─────────────────────────────────────────────────────────────────
        if ".." in target:
            logger.warning(f"Path traversal attempt: {target}")
            raise PolicyViolation("Forbidden")

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: DEFAULT DOCUMENT
        # ─────────────────────────────────────────────────────────────────
        if target == "/":
            target = "/" + self.index_file

        # ─────────────────────────────────────────────────────────────────
        # STEP 3: JOIN WITH ROOT
        # ─────────────────────────────────────────────────────────────────
        # Strip leading slashes, otherwise "root / '/etc'" would be "/etc"
        full_path = self.root_dir / target.lstrip("/")

        # Lexical containment; implied by step 1 today
        normalized = os.path.normpath(full_path)
        if os.path.commonpath([str(self.root_dir), normalized]) != str(self.root_dir):
            logger.warning(f"Target escapes document root: {target}")
            raise PolicyViolation("Forbidden")

        if not self.follow_symlinks:
            real_root = self.root_dir.resolve()
            try:
                full_path.resolve().relative_to(real_root)
            except ValueError:
                logger.warning(f"Symlink escapes document root: {target}")
                raise PolicyViolation("Forbidden")

        return full_path

    def serve(self, stream, target: str) -> HTTPStatus:
        """
        Respond to a GET for `target`.

        Args:
            stream: Anything with sendall(bytes).
            target: The request target.

        Returns:
            The status code that was sent.

        Raises:
            TransportFault: If reading the file or writing the socket fails
                            after the response started.
        """
        writer = ResponseWriter(stream)

        try:
            path = self.resolve(target)
            file, size = self._open(path)
        except HTTPError as e:
            send_http_error(writer, e)
            return e.status_code

        with file:
            self._stream_file(writer, file, size, path)

        return HTTPStatus.OK

    def _open(self, path: Path) -> tuple:
        """
        Open a file for reading and get its size from the open handle.

        Directories, missing files, unreadable files and paths the OS
        rejects (e.g. embedded NUL) all count as "not found".

        Returns:
            (file object, size in bytes)
        """
        try:
            file = open(path, "rb")
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot open {path}: {e}")
            raise ResourceNotFound("Not Found") from e

        try:
            size = os.fstat(file.fileno()).st_size
        except OSError as e:
            file.close()
            logger.debug(f"Cannot stat {path}: {e}")
            raise ResourceNotFound("Not Found") from e

        return file, size

    def _stream_file(self, writer: ResponseWriter, file: BinaryIO, size: int, path: Path):
        """
        Send the 200 head, then the file in fixed-size chunks.

        At most `size` bytes are sent even if the file grows meanwhile,
        so Content-Length is never exceeded. If it shrinks, the body comes
        up short; that's logged and the client sees a truncated response.
        """
        writer.send_head(HTTPStatus.OK, get_mime_type(path), size)

        remaining = size
        while remaining > 0:
            try:
                chunk = file.read(min(self.chunk_size, remaining))
            except OSError as e:
                raise TransportFault(f"Read failed for {path}: {e}") from e

            if not chunk:
                logger.warning(
                    f"{path} shrank while streaming: sent {size - remaining} of {size} bytes"
                )
                break

            writer.send_body_chunk(chunk)
            remaining -= len(chunk)
