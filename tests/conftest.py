"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from pathlib import Path
from typing import Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig
from minihttp.core import Connection


INDEX_HTML = b"<!DOCTYPE html><html><body><h1>Hello from minihttp</h1></body></html>\n"
STYLE_CSS = b"body { color: #333; }\n"
DATA_JSON = b'{"name": "minihttp", "ok": true}\n'
# PNG signature plus some binary noise, including bytes that aren't UTF-8
IMAGE_PNG = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """A small document root on disk."""
    root = tmp_path / "www"
    root.mkdir()

    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "data.json").write_bytes(DATA_JSON)
    (root / "image.png").write_bytes(IMAGE_PNG)
    (root / "README").write_bytes(b"no extension here\n")
    (root / "empty.txt").write_bytes(b"")

    sub = root / "docs"
    sub.mkdir()
    (sub / "guide.html").write_bytes(b"<p>guide</p>")

    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def socket_pair() -> Generator[tuple, None, None]:
    """
    A connected (server Connection, client socket) pair.

    The server side is wrapped in a Connection with a short linger so
    close() doesn't sit waiting for the test's client half.
    """
    server_sock, client_sock = socket.socketpair()
    conn = Connection(
        socket=server_sock,
        address=("127.0.0.1", 54321),
        linger_timeout=0.05,
    )
    client_sock.settimeout(5.0)

    yield conn, client_sock

    conn.close()
    client_sock.close()


def recv_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def parse_response(raw: bytes) -> tuple:
    """
    Split a raw response into (status code, reason, headers, body).

    Header names are kept as sent.
    """
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")

    version, code, reason = lines[0].split(" ", 2)
    assert version == "HTTP/1.1"

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name] = value.strip()

    return int(code), reason, headers, body


class FakeStream:
    """Collects everything written with sendall()."""

    def __init__(self, fail_after: int = None):
        self.data = b""
        self.writes = 0
        self.fail_after = fail_after

    def sendall(self, data: bytes):
        if self.fail_after is not None and self.writes >= self.fail_after:
            raise BrokenPipeError("peer went away")
        self.writes += 1
        self.data += data


@pytest.fixture
def fake_stream() -> FakeStream:
    return FakeStream()


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes, return everything the server sent back."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            return recv_all(s)


@pytest.fixture
def test_server(doc_root: Path, free_port: int) -> Generator[TestServer, None, None]:
    """A running server over doc_root."""
    server = HTTPServer(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        document_root=str(doc_root),
        timeout=5.0,
        linger_timeout=0.1,
        shutdown_timeout=5.0,
        log_level="WARNING",
    ))

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()


# Poll until predicate() holds, e.g. waiting for the listener to reap workers
def wait_for(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
