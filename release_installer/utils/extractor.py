"""
Archive Extraction Utilities

Unpacks downloaded release archives:
- .tar.gz / .tgz / .tar via tarfile with the "data" filter
- .zip with path traversal protection
- .7z via py7zr
"""

import os
import time
import shutil
import tarfile
import zipfile
import logging
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

import py7zr


TAR_SUFFIXES = ('.tar.gz', '.tgz', '.tar', '.tar.xz', '.tar.bz2')


@dataclass
class ExtractionResult:
    """
    Container for extraction operation results.

    Attributes:
        success: Whether the extraction completed successfully
        extracted_path: Path where files were extracted
        files_extracted: Number of regular files extracted
        extraction_time: Time taken for extraction in seconds
        error_message: Error description if extraction failed
    """
    success: bool
    extracted_path: Optional[Path] = None
    files_extracted: int = 0
    extraction_time: float = 0.0
    error_message: Optional[str] = None


class ArchiveExtractor:
    """
    Extracts tar, zip and 7z archives into a target directory.
    """

    def __init__(self, buffer_size: int = 64 * 1024):
        """
        Initialize the extractor.

        Args:
            buffer_size: Size of buffer for zip member copies (bytes)
        """
        self.buffer_size = buffer_size
        self.logger = logging.getLogger(__name__)

    def extract(self, archive_path: Path, target_path: Path) -> ExtractionResult:
        """
        Extract an archive, choosing the format from its file name.

        Args:
            archive_path: Archive to extract
            target_path: Directory where files will be extracted

        Returns:
            ExtractionResult: Details about the extraction operation
        """
        start_time = time.time()
        self.logger.info(f"Extracting {archive_path} to {target_path}")

        if not archive_path.is_file():
            return ExtractionResult(
                success=False,
                error_message=f"Archive not found: {archive_path}"
            )

        name = archive_path.name.lower()
        if name.endswith(TAR_SUFFIXES):
            extract = self._extract_tar
        elif name.endswith('.zip'):
            extract = self._extract_zip
        elif name.endswith('.7z'):
            extract = self._extract_7z
        else:
            return ExtractionResult(
                success=False,
                error_message=f"Unsupported archive format: {archive_path.name}"
            )

        try:
            target_path.mkdir(parents=True, exist_ok=True)
            extract(archive_path, target_path)
        except (tarfile.TarError, zipfile.BadZipFile, py7zr.Bad7zFile, EOFError) as e:
            return ExtractionResult(
                success=False,
                extraction_time=time.time() - start_time,
                error_message=f"Corrupted archive {archive_path.name}: {e}"
            )
        except OSError as e:
            return ExtractionResult(
                success=False,
                extraction_time=time.time() - start_time,
                error_message=f"File system error: {str(e)}"
            )

        files_extracted = sum(1 for p in target_path.rglob('*') if p.is_file())
        extraction_time = time.time() - start_time
        self.logger.info(
            f"Extraction completed: {files_extracted} files in {extraction_time:.2f}s"
        )
        return ExtractionResult(
            success=True,
            extracted_path=target_path,
            files_extracted=files_extracted,
            extraction_time=extraction_time
        )

    def _extract_tar(self, archive_path: Path, target_path: Path) -> None:
        # filter="data" rejects absolute paths, parent escapes and unsafe links
        with tarfile.open(archive_path, 'r:*') as tar:
            tar.extractall(target_path, filter='data')

    def _extract_zip(self, archive_path: Path, target_path: Path) -> None:
        with zipfile.ZipFile(archive_path, 'r') as zip_ref:
            for file_info in zip_ref.infolist():
                if not self._is_safe_path(file_info.filename, target_path):
                    self.logger.warning(f"Skipping unsafe path: {file_info.filename}")
                    continue

                target_file_path = target_path / file_info.filename
                if file_info.is_dir():
                    target_file_path.mkdir(parents=True, exist_ok=True)
                    continue

                target_file_path.parent.mkdir(parents=True, exist_ok=True)
                with zip_ref.open(file_info) as source, open(target_file_path, 'wb') as target:
                    shutil.copyfileobj(source, target, self.buffer_size)

                # Keep unix permission bits, zip stores them in the high word
                mode = (file_info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(target_file_path, mode)

    def _extract_7z(self, archive_path: Path, target_path: Path) -> None:
        with py7zr.SevenZipFile(archive_path, mode='r') as archive:
            unsafe = [n for n in archive.getnames() if not self._is_safe_path(n, target_path)]
            if unsafe:
                raise py7zr.Bad7zFile(f"Archive contains unsafe paths: {', '.join(unsafe)}")
            archive.extractall(path=target_path)

    def _is_safe_path(self, file_path: str, target_dir: Path) -> bool:
        """
        Check if a member path stays inside the target directory.

        Args:
            file_path: Member path from the archive
            target_dir: Target extraction directory

        Returns:
            bool: True if path is safe to extract
        """
        try:
            resolved_path = (target_dir / file_path).resolve()
            return resolved_path.is_relative_to(target_dir.resolve())
        except (OSError, ValueError):
            return False

    def find_file_dir(self, root: Path, name: str) -> Optional[Path]:
        """
        Return the directory holding the first regular file called name.

        Directories are walked in sorted order so the result is stable.
        """
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            if name in filenames and Path(dirpath, name).is_file():
                return Path(dirpath)
        return None
