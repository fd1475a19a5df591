"""
File Downloader for Release Archives

Streams a release archive to disk with:
- Progress callbacks
- Bounded retries for timeouts, connection errors and 5xx responses
- No retries for client errors, which will not fix themselves
"""

import os
import time
import logging
from pathlib import Path
from typing import Optional, Callable
from dataclasses import dataclass
from urllib.parse import urlparse

import requests


@dataclass
class DownloadResult:
    """
    Container for download operation results.

    Attributes:
        success: Whether the download completed successfully
        file_path: Path to the downloaded file
        file_size: Size of the downloaded file in bytes
        download_time: Time taken for download in seconds
        error_message: Error description if download failed
        http_status: HTTP status code from the request
        retryable: Whether another attempt might succeed
    """
    success: bool
    file_path: Optional[Path] = None
    file_size: int = 0
    download_time: float = 0.0
    error_message: Optional[str] = None
    http_status: Optional[int] = None
    retryable: bool = False


@dataclass
class DownloadProgress:
    """
    Container for download progress information.

    Attributes:
        downloaded_bytes: Number of bytes downloaded so far
        total_bytes: Total file size in bytes (0 if unknown)
        percentage: Download completion percentage (0-100)
    """
    downloaded_bytes: int
    total_bytes: int
    percentage: float


class FileDownloader:
    """
    Downloads a URL to a local file.
    """

    def __init__(self,
                 chunk_size: int = 8192,
                 timeout: float = 30,
                 max_retries: int = 3,
                 retry_delay: float = 1.0,
                 user_agent: str = 'release-installer/1.0',
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the file downloader.

        Args:
            chunk_size: Size of chunks to write at a time (bytes)
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Delay between attempts in seconds
            user_agent: User-Agent header sent with every request
            session: HTTP session to use (a fresh one if None)
            sleep: Function used to wait between attempts
        """
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.logger = logging.getLogger(__name__)
        self._sleep = sleep

        self.session = session if session is not None else requests.Session()
        self.session.headers.update({'User-Agent': user_agent})

    def download_file(self,
                      url: str,
                      target_path: Path,
                      filename: Optional[str] = None,
                      progress_callback: Optional[Callable[[DownloadProgress], None]] = None
                      ) -> DownloadResult:
        """
        Download a file from URL to target location.

        Args:
            url: URL to download from
            target_path: Directory path where file will be saved
            filename: Specific filename to use (if None, extracted from URL)
            progress_callback: Function to call with progress updates

        Returns:
            DownloadResult: Details about the download operation
        """
        start_time = time.time()

        target_path.mkdir(parents=True, exist_ok=True)
        if filename is None:
            filename = self._extract_filename_from_url(url)
        file_path = target_path / filename

        self.logger.info(f"Downloading {url} to {file_path}")

        result = DownloadResult(success=False, file_path=file_path)
        for attempt in range(1, self.max_retries + 1):
            result = self._attempt_download(url, file_path, progress_callback)

            if result.success:
                result.download_time = time.time() - start_time
                self.logger.info(
                    f"Download completed: {result.file_size} bytes "
                    f"in {result.download_time:.2f}s"
                )
                return result

            if not result.retryable or attempt == self.max_retries:
                break

            self.logger.warning(
                f"Download attempt {attempt} failed: {result.error_message}. "
                f"Retrying in {self.retry_delay}s..."
            )
            self._sleep(self.retry_delay)

        self.logger.error(f"Download failed: {result.error_message}")
        self._cleanup_partial_download(file_path)
        result.download_time = time.time() - start_time
        return result

    def _attempt_download(self,
                          url: str,
                          file_path: Path,
                          progress_callback: Optional[Callable[[DownloadProgress], None]]
                          ) -> DownloadResult:
        """
        Attempt a single download operation.

        Returns:
            DownloadResult: Result of the download attempt
        """
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                if response.status_code != 200:
                    return DownloadResult(
                        success=False,
                        file_path=file_path,
                        http_status=response.status_code,
                        error_message=f"HTTP {response.status_code}: {response.reason}",
                        retryable=response.status_code >= 500,
                    )

                content_length = response.headers.get('content-length')
                total_size = int(content_length) if content_length else 0

                downloaded_size = 0
                with open(file_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if not chunk:  # keep-alive
                            continue
                        f.write(chunk)
                        downloaded_size += len(chunk)

                        if progress_callback:
                            percentage = (
                                downloaded_size / total_size * 100 if total_size > 0 else 0.0
                            )
                            progress_callback(DownloadProgress(
                                downloaded_bytes=downloaded_size,
                                total_bytes=total_size,
                                percentage=percentage,
                            ))

                if total_size and downloaded_size != total_size:
                    return DownloadResult(
                        success=False,
                        file_path=file_path,
                        http_status=response.status_code,
                        error_message=(
                            f"Incomplete download: got {downloaded_size} "
                            f"of {total_size} bytes"
                        ),
                        retryable=True,
                    )

                return DownloadResult(
                    success=True,
                    file_path=file_path,
                    file_size=downloaded_size,
                    http_status=response.status_code,
                )

        except requests.exceptions.Timeout:
            return DownloadResult(
                success=False, file_path=file_path,
                error_message="Download timed out", retryable=True,
            )
        except requests.exceptions.ConnectionError:
            return DownloadResult(
                success=False, file_path=file_path,
                error_message="Connection error", retryable=True,
            )
        except requests.exceptions.RequestException as e:
            return DownloadResult(
                success=False, file_path=file_path,
                error_message=f"Request error: {str(e)}",
            )
        except OSError as e:
            return DownloadResult(
                success=False, file_path=file_path,
                error_message=f"File system error: {str(e)}",
            )

    def _extract_filename_from_url(self, url: str) -> str:
        """Return the last path component of URL, or a generic name."""
        filename = os.path.basename(urlparse(url).path)
        if not filename or '.' not in filename:
            filename = f"download_{int(time.time())}.bin"
        return filename

    def _cleanup_partial_download(self, file_path: Path) -> None:
        try:
            if file_path.exists():
                file_path.unlink()
                self.logger.debug(f"Removed partial download: {file_path}")
        except OSError as e:
            self.logger.warning(f"Failed to remove partial download {file_path}: {e}")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
