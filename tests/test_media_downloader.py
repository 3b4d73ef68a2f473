"""
Tests for the streamed downloader and its request headers.

The requests session is replaced by mocks; no network access happens.
"""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests
from requests.adapters import HTTPAdapter

from browser_emulator import DEFAULT_USER_AGENT, get_request_headers
from media_downloader import (
    DownloadError,
    create_session,
    download_file,
    fetch_to_file,
)
from media_finder import MediaKind
from url_utils import bare_filename, clean_base_url, rewrite_reference


def make_response(status_code=200, chunks=(b"",), iter_content=None):
    response = MagicMock()
    response.status_code = status_code
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    if iter_content is not None:
        response.iter_content.side_effect = iter_content
    else:
        response.iter_content.return_value = list(chunks)
    return response


def make_session(response=None, error=None):
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


class TestUrlUtils(unittest.TestCase):

    def test_bare_filename(self):
        assert bare_filename("images/cat.jpg") == "cat.jpg"
        assert bare_filename("https://cdn.example/a/b/clip.mp4") == "clip.mp4"
        assert bare_filename("cat.jpg") == "cat.jpg"

    def test_rewrite_reference_is_literal(self):
        assert rewrite_reference("", "cat.jpg") == "/cat.jpg"
        assert rewrite_reference("https://img.example", "cat.jpg") == "https://img.example/cat.jpg"

    def test_clean_base_url(self):
        assert clean_base_url(None) == ""
        assert clean_base_url("  https://img.example  ") == "https://img.example"


class TestRequestHeaders(unittest.TestCase):

    def test_dest_follows_media_kind(self):
        assert get_request_headers("https://x.example/a.png")["Sec-Fetch-Dest"] == "image"
        assert get_request_headers("https://x.example/a.mov")["Sec-Fetch-Dest"] == "video"
        assert get_request_headers("https://x.example/a.bin")["Sec-Fetch-Dest"] == "empty"
        assert get_request_headers("https://x.example/a.bin", MediaKind.VIDEO)["Sec-Fetch-Dest"] == "video"

    def test_domain_override_replaces_user_agent(self):
        headers = get_request_headers("https://i.imgur.com/abc.jpg")

        assert headers["User-Agent"] == "curl/8.1.1"
        assert headers["Accept"] == "*/*"

    def test_default_user_agent(self):
        assert get_request_headers("https://x.example/a.gif")["User-Agent"] == DEFAULT_USER_AGENT


class TestCreateSession(unittest.TestCase):

    def test_transport_per_scheme_without_retries(self):
        session = create_session(pool_size=3)
        try:
            https_adapter = session.get_adapter("https://x.example/a.png")
            http_adapter = session.get_adapter("http://x.example/a.png")

            assert isinstance(https_adapter, HTTPAdapter)
            assert isinstance(http_adapter, HTTPAdapter)
            assert https_adapter is not http_adapter
            assert https_adapter.max_retries.total == 0
        finally:
            session.close()


class TestFetchToFile(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_streams_chunks_to_file(self):
        session = make_session(make_response(200, [b"abc", b"", b"def"]))
        dest = self.root / "cat.jpg"

        result = fetch_to_file("https://img.example/cat.jpg", dest, session, timeout=5)

        assert result == dest
        assert dest.read_bytes() == b"abcdef"
        _, kwargs = session.get.call_args
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Sec-Fetch-Dest"] == "image"

    def test_non_200_raises_and_writes_nothing(self):
        session = make_session(make_response(404))
        dest = self.root / "gone.png"

        with self.assertRaises(DownloadError) as ctx:
            fetch_to_file("https://img.example/gone.png", dest, session)

        assert ctx.exception.status_code == 404
        assert "404" in ctx.exception.reason
        assert not dest.exists()

    def test_non_200_keeps_existing_file(self):
        dest = self.root / "kept.png"
        dest.write_bytes(b"old")
        session = make_session(make_response(500))

        with self.assertRaises(DownloadError):
            fetch_to_file("https://img.example/kept.png", dest, session)

        assert dest.read_bytes() == b"old"

    def test_transport_error_mid_stream_removes_partial_file(self):
        def broken_stream(chunk_size):
            yield b"partial"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        session = make_session(make_response(200, iter_content=broken_stream))
        dest = self.root / "clip.mp4"

        with self.assertRaises(DownloadError) as ctx:
            fetch_to_file("https://vid.example/clip.mp4", dest, session)

        assert "connection reset" in ctx.exception.reason
        assert ctx.exception.status_code is None
        assert not dest.exists()

    def test_connection_error_is_download_error(self):
        session = make_session(error=requests.exceptions.ConnectionError("refused"))

        with self.assertRaises(DownloadError) as ctx:
            fetch_to_file("http://down.example/a.gif", self.root / "a.gif", session)

        assert "refused" in ctx.exception.reason


class TestDownloadFile(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_success_outcome(self):
        session = make_session(make_response(200, [b"x"]))

        outcome = download_file("https://img.example/a.png", self.root / "a.png", session)

        assert outcome.success
        assert outcome.status_code == 200
        assert outcome.reason is None

    def test_failure_outcome_carries_status(self):
        session = make_session(make_response(403))

        outcome = download_file("https://img.example/a.png", self.root / "a.png", session)

        assert not outcome.success
        assert outcome.status_code == 403
        assert outcome.reason == "HTTP 403"

    def test_missing_scheme_is_a_failure(self):
        session = create_session()
        try:
            outcome = download_file("/cat.jpg", self.root / "cat.jpg", session)
        finally:
            session.close()

        assert not outcome.success
        assert "MissingSchema" in outcome.reason
        assert not (self.root / "cat.jpg").exists()


if __name__ == "__main__":
    unittest.main()
