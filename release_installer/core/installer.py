"""
Installation Controller

Runs the installation workflow end to end:
resolve version -> build artifact URL -> download -> extract -> install.
Any failed step raises an InstallerError so nothing runs with a missing
version or a half-downloaded archive.
"""

import os
import shutil
import stat
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ConfigManager
from .models import Failed
from .platform import build_download_url, detect_platform, platform_to_arch
from .resolver import VersionResolver
from ..utils.downloader import FileDownloader, DownloadProgress
from ..utils.error_handling import (
    DownloadError, ExtractionError, InstallationError, ResolutionError,
)
from ..utils.extractor import ArchiveExtractor


def is_root() -> bool:
    """True when running with uid 0."""
    return hasattr(os, 'geteuid') and os.geteuid() == 0


def run_cmd(args: Sequence[str]) -> None:
    """Run a command, raising InstallationError with its stderr on failure."""
    try:
        subprocess.run(list(args), check=True, text=True, capture_output=True)
    except FileNotFoundError as exc:
        raise InstallationError(f"Command not found: {args[0]}") from exc
    except subprocess.CalledProcessError as exc:
        details = (exc.stderr or exc.stdout or str(exc)).strip()
        raise InstallationError(f"Command failed: {' '.join(args)}\n{details}") from exc


class InstallationController:
    """
    Coordinates the resolver, downloader and extractor.
    """

    def __init__(self,
                 config_manager: ConfigManager,
                 resolver: Optional[VersionResolver] = None,
                 downloader: Optional[FileDownloader] = None,
                 extractor: Optional[ArchiveExtractor] = None):
        self.config_manager = config_manager
        self.logger = logging.getLogger(__name__)

        self.resolver = resolver or VersionResolver()
        self.downloader = downloader or FileDownloader(
            user_agent=config_manager.get_user_agent()
        )
        self.extractor = extractor or ArchiveExtractor()

    def resolve_version(self) -> str:
        """
        Resolve the latest version.

        Raises:
            ResolutionError: If the resolver returned a Failed result
        """
        query = self.config_manager.build_release_query()
        result = self.resolver.resolve(query)
        if isinstance(result, Failed):
            raise ResolutionError(result)
        return result.version

    def build_download_url(self, version: str) -> str:
        """Return the archive URL for version on the detected platform."""
        platform = detect_platform()
        arch = platform_to_arch(platform)
        self.logger.info(f"Target platform: {platform} ({arch})")
        return build_download_url(
            self.config_manager.get_download_url_template(), version, arch
        )

    def run(self) -> List[Path]:
        """
        Install the latest release.

        Returns:
            Paths of the installed binaries
        """
        self.logger.info("Starting installation")

        version = self.resolve_version()
        self.logger.info(f"Latest version found: {version}")
        download_url = self.build_download_url(version)

        # Removed on every exit path, interrupts included
        with tempfile.TemporaryDirectory(prefix='release-installer-') as temp_dir:
            temp_path = Path(temp_dir)
            self.logger.debug(f"Using temporary directory: {temp_path}")

            archive_path = self.download(download_url, temp_path)
            bin_dir = self.extract(archive_path, temp_path / 'extracted')
            installed = self.install_binaries(bin_dir)

        self.logger.debug("Temporary files removed")
        self.logger.info(
            f"Installation of {version} completed: "
            f"{', '.join(p.name for p in installed)}"
        )
        return installed

    def download(self, url: str, target_dir: Path) -> Path:
        """
        Download url into target_dir.

        Raises:
            DownloadError: If the download did not succeed
        """
        def log_progress(progress: DownloadProgress):
            self.logger.debug(
                f"Downloaded {progress.downloaded_bytes}/{progress.total_bytes} bytes "
                f"({progress.percentage:.1f}%)"
            )

        result = self.downloader.download_file(url, target_dir, progress_callback=log_progress)
        if not result.success:
            raise DownloadError(f"Failed to download {url}: {result.error_message}")
        return result.file_path

    def extract(self, archive_path: Path, target_dir: Path) -> Path:
        """
        Extract the archive and return the directory holding the binaries.

        Raises:
            ExtractionError: If extraction fails or no binary is found
        """
        result = self.extractor.extract(archive_path, target_dir)
        if not result.success:
            raise ExtractionError(f"Failed to extract archive: {result.error_message}")

        binaries = self.config_manager.get_binaries()
        for name in binaries:
            bin_dir = self.extractor.find_file_dir(target_dir, name)
            if bin_dir is not None:
                self.logger.info(f"Found binaries in: {bin_dir}")
                return bin_dir

        raise ExtractionError(
            f"Could not find any of {', '.join(binaries)} in the extracted archive"
        )

    def install_binaries(self, bin_dir: Path) -> List[Path]:
        """
        Copy the configured binaries from bin_dir into the install dir.

        Missing binaries are skipped with a warning.

        Raises:
            InstallationError: If a copy fails or nothing was installed
        """
        install_dir = self.config_manager.get_install_dir()
        use_sudo = not is_root() and not self._is_writable(install_dir)
        if use_sudo:
            self.logger.info(f"{install_dir} is not writable, using sudo")
            if shutil.which('sudo') is None:
                raise InstallationError(
                    f"{install_dir} is not writable and sudo is not available"
                )

        installed = []
        for name in self.config_manager.get_binaries():
            source_file = bin_dir / name
            if not source_file.is_file():
                self.logger.warning(f"Binary {name} not found in archive, skipping")
                continue

            target_file = install_dir / name
            self.logger.info(f"Installing {name} to {target_file}")
            if use_sudo:
                run_cmd(['sudo', 'mkdir', '-p', str(install_dir)])
                run_cmd(['sudo', 'cp', str(source_file), str(target_file)])
                run_cmd(['sudo', 'chmod', '+x', str(target_file)])
            else:
                self._copy_executable(source_file, target_file)
            installed.append(target_file)

        if not installed:
            raise InstallationError(f"No binaries were installed from {bin_dir}")
        return installed

    def _copy_executable(self, source_file: Path, target_file: Path) -> None:
        try:
            target_file.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source_file, target_file)
            mode = target_file.stat().st_mode
            target_file.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            raise InstallationError(f"Failed to install {target_file}: {e}") from e

    @staticmethod
    def _is_writable(directory: Path) -> bool:
        # Walk up to the first existing ancestor, that's what mkdir needs
        probe = directory
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent
        return os.access(probe, os.W_OK)
