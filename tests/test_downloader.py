from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import requests

from release_installer.utils.downloader import FileDownloader
from tests.fakes import FakeSession, make_response


URL = "https://downloads.mitmproxy.org/10.1.5/mitmproxy-10.1.5-linux-x86_64.tar.gz"


class FileDownloaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.target = Path(self._tmp.name)
        self.sleeps: list[float] = []

    def downloader(self, outcomes: list, max_retries: int = 3) -> tuple[FileDownloader, FakeSession]:
        session = FakeSession(outcomes)
        downloader = FileDownloader(
            chunk_size=4,
            max_retries=max_retries,
            session=session,
            sleep=self.sleeps.append,
        )
        return downloader, session

    def test_writes_file_named_after_url(self) -> None:
        downloader, session = self.downloader([
            make_response(200, b"archive-bytes", {"content-length": "13"}),
        ])
        progress = []

        result = downloader.download_file(URL, self.target, progress_callback=progress.append)

        self.assertTrue(result.success)
        self.assertEqual(result.file_path, self.target / "mitmproxy-10.1.5-linux-x86_64.tar.gz")
        self.assertEqual(result.file_path.read_bytes(), b"archive-bytes")
        self.assertEqual(result.file_size, 13)
        self.assertEqual(progress[-1].percentage, 100.0)
        self.assertEqual(session.headers["User-Agent"], "release-installer/1.0")
        self.assertTrue(session.calls[0][1]["stream"])

    def test_client_error_is_not_retried(self) -> None:
        downloader, session = self.downloader([make_response(404)])

        result = downloader.download_file(URL, self.target)

        self.assertFalse(result.success)
        self.assertEqual(result.http_status, 404)
        self.assertEqual(len(session.calls), 1)
        self.assertFalse(result.file_path.exists())

    def test_transient_errors_are_retried(self) -> None:
        downloader, session = self.downloader([
            requests.exceptions.ConnectionError("reset"),
            make_response(503),
            make_response(200, b"ok"),
        ])

        result = downloader.download_file(URL, self.target, filename="archive.tar.gz")

        self.assertTrue(result.success)
        self.assertEqual(len(session.calls), 3)
        self.assertEqual(self.sleeps, [1.0, 1.0])
        self.assertEqual((self.target / "archive.tar.gz").read_bytes(), b"ok")

    def test_gives_up_after_max_retries(self) -> None:
        downloader, session = self.downloader(
            [requests.exceptions.Timeout()] * 2, max_retries=2
        )

        result = downloader.download_file(URL, self.target)

        self.assertFalse(result.success)
        self.assertEqual(result.error_message, "Download timed out")
        self.assertEqual(len(session.calls), 2)

    def test_short_body_is_incomplete(self) -> None:
        downloader, _session = self.downloader(
            [make_response(200, b"abc", {"content-length": "10"})], max_retries=1
        )

        result = downloader.download_file(URL, self.target)

        self.assertFalse(result.success)
        self.assertIn("Incomplete download", result.error_message)
        self.assertFalse(result.file_path.exists())

    def test_generic_filename_when_url_has_none(self) -> None:
        downloader, _session = self.downloader([make_response(200, b"x")])
        result = downloader.download_file("https://example.com/", self.target)
        self.assertTrue(result.file_path.name.startswith("download_"))


if __name__ == "__main__":
    unittest.main()
