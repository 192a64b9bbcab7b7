"""
Unit tests for the static file handler.
"""

import os
from pathlib import Path

import pytest

from conftest import INDEX_HTML, IMAGE_PNG, FakeStream, parse_response
from minihttp.handlers.static import StaticFileHandler
from minihttp.http.errors import PolicyViolation, TransportFault
from minihttp.http.status_codes import HTTPStatus


@pytest.fixture
def static(doc_root: Path) -> StaticFileHandler:
    return StaticFileHandler(doc_root)


class TestResolve:
    """Tests for target → filesystem path mapping."""

    def test_root_maps_to_index(self, static, doc_root):
        assert static.resolve("/") == doc_root / "index.html"

    def test_custom_index(self, doc_root):
        static = StaticFileHandler(doc_root, index_file="home.html")
        assert static.resolve("/") == doc_root / "home.html"

    def test_nested(self, static, doc_root):
        assert static.resolve("/docs/guide.html") == doc_root / "docs" / "guide.html"

    def test_leading_slashes_stripped(self, static, doc_root):
        assert static.resolve("//etc/passwd") == doc_root / "etc" / "passwd"

    @pytest.mark.parametrize("target", [
        "/..",
        "/../etc/passwd",
        "/docs/../../secret",
        "/a..b.txt",
        "..",
    ])
    def test_dotdot_anywhere_forbidden(self, static, target):
        with pytest.raises(PolicyViolation):
            static.resolve(target)

    def test_root_is_absolute(self, doc_root, monkeypatch):
        monkeypatch.chdir(doc_root.parent)
        static = StaticFileHandler("www")

        assert static.root_dir.is_absolute()
        assert static.root_dir.resolve() == doc_root.resolve()

    def test_missing_root_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            StaticFileHandler(tmp_path / "nope")

    def test_bad_chunk_size_rejected(self, doc_root):
        with pytest.raises(ValueError):
            StaticFileHandler(doc_root, chunk_size=0)


class TestServe:
    """Tests for serving files."""

    def test_serve_index(self, static, fake_stream):
        status = static.serve(fake_stream, "/")

        code, reason, headers, body = parse_response(fake_stream.data)
        assert status == HTTPStatus.OK
        assert (code, reason) == (200, "OK")
        assert headers["Content-Type"] == "text/html"
        assert headers["Content-Length"] == str(len(INDEX_HTML))
        assert headers["Connection"] == "close"
        assert body == INDEX_HTML

    def test_serve_binary_in_small_chunks(self, doc_root):
        """Chunked streaming round-trips the exact bytes."""
        static = StaticFileHandler(doc_root, chunk_size=100)
        stream = FakeStream()

        static.serve(stream, "/image.png")

        _, _, headers, body = parse_response(stream.data)
        assert headers["Content-Type"] == "image/png"
        assert int(headers["Content-Length"]) == len(IMAGE_PNG) == len(body)
        assert body == IMAGE_PNG
        # head + ceil(len / 100) chunks
        assert stream.writes == 1 + -(-len(IMAGE_PNG) // 100)

    @pytest.mark.parametrize("target, content_type", [
        ("/style.css", "text/css"),
        ("/data.json", "application/json"),
        ("/README", "text/plain"),
        ("/docs/guide.html", "text/html"),
    ])
    def test_content_type_from_resolved_path(self, static, fake_stream, target, content_type):
        static.serve(fake_stream, target)

        assert parse_response(fake_stream.data)[2]["Content-Type"] == content_type

    def test_empty_file(self, static, fake_stream):
        status = static.serve(fake_stream, "/empty.txt")

        _, _, headers, body = parse_response(fake_stream.data)
        assert status == HTTPStatus.OK
        assert headers["Content-Length"] == "0"
        assert body == b""

    def test_missing_file_404(self, static, fake_stream):
        status = static.serve(fake_stream, "/nope.html")

        code, reason, headers, body = parse_response(fake_stream.data)
        assert status == HTTPStatus.NOT_FOUND
        assert (code, reason) == (404, "Not Found")
        assert headers["Content-Type"] == "text/html"
        assert b"404" in body and b"Not Found" in body
        assert int(headers["Content-Length"]) == len(body)

    def test_directory_404(self, static, fake_stream):
        assert static.serve(fake_stream, "/docs") == HTTPStatus.NOT_FOUND

    def test_root_without_index_404(self, doc_root, fake_stream):
        (doc_root / "index.html").unlink()

        assert StaticFileHandler(doc_root).serve(fake_stream, "/") == HTTPStatus.NOT_FOUND

    def test_query_string_not_stripped(self, static, fake_stream):
        """The target is used verbatim, so a query string is part of the name."""
        assert static.serve(fake_stream, "/index.html?v=1") == HTTPStatus.NOT_FOUND

    def test_nul_byte_404(self, static, fake_stream):
        assert static.serve(fake_stream, "/index.html\x00.png") == HTTPStatus.NOT_FOUND

    def test_traversal_403_even_if_target_exists(self, static, fake_stream):
        status = static.serve(fake_stream, "/docs/../index.html")

        code, _, _, body = parse_response(fake_stream.data)
        assert status == HTTPStatus.FORBIDDEN
        assert code == 403
        assert b"403 Forbidden" in body

    def test_write_failure_mid_stream(self, doc_root):
        """Once the head is out, a broken pipe surfaces as TransportFault."""
        static = StaticFileHandler(doc_root, chunk_size=64)
        stream = FakeStream(fail_after=2)

        with pytest.raises(TransportFault):
            static.serve(stream, "/image.png")

        assert stream.data.startswith(b"HTTP/1.1 200 OK\r\n")

    def test_file_handle_released(self, static, fake_stream, monkeypatch):
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            f = real_open(*args, **kwargs)
            opened.append(f)
            return f

        monkeypatch.setattr("builtins.open", tracking_open)
        static.serve(fake_stream, "/style.css")

        assert opened and all(f.closed for f in opened)

    def test_file_handle_released_on_transport_fault(self, doc_root, monkeypatch):
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            f = real_open(*args, **kwargs)
            opened.append(f)
            return f

        monkeypatch.setattr("builtins.open", tracking_open)

        with pytest.raises(TransportFault):
            StaticFileHandler(doc_root).serve(FakeStream(fail_after=1), "/style.css")

        assert opened and all(f.closed for f in opened)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
class TestSymlinks:
    """Symlinks pointing outside the root."""

    @pytest.fixture
    def outside_link(self, doc_root, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_bytes(b"top secret")
        try:
            os.symlink(secret, doc_root / "leak.txt")
        except OSError:
            pytest.skip("cannot create symlinks here")
        return doc_root / "leak.txt"

    def test_followed_by_default(self, doc_root, outside_link, fake_stream):
        status = StaticFileHandler(doc_root).serve(fake_stream, "/leak.txt")

        assert status == HTTPStatus.OK
        assert parse_response(fake_stream.data)[3] == b"top secret"

    def test_refused_when_not_following(self, doc_root, outside_link, fake_stream):
        static = StaticFileHandler(doc_root, follow_symlinks=False)

        assert static.serve(fake_stream, "/leak.txt") == HTTPStatus.FORBIDDEN

    def test_inside_link_allowed_when_not_following(self, doc_root, fake_stream):
        try:
            os.symlink(doc_root / "style.css", doc_root / "alias.css")
        except OSError:
            pytest.skip("cannot create symlinks here")

        static = StaticFileHandler(doc_root, follow_symlinks=False)

        assert static.serve(fake_stream, "/alias.css") == HTTPStatus.OK
