"""
Error Handling and Logging for the Release Installer

Provides the exception hierarchy shared by every module, logging
configuration, and the global handler for uncaught exceptions.
"""

import sys
import os
import logging
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.models import Failed


class InstallerError(Exception):
    """Base class for every error the installer reports to the user."""


class VersionParseError(InstallerError):
    """Raised when a release body or tag does not yield a valid version."""


class ResolutionError(InstallerError):
    """
    Raised when the latest version could not be resolved.

    Attributes:
        result: The Failed result returned by the resolver
    """

    def __init__(self, result: 'Failed'):
        self.result = result
        status = result.last_status if result.last_status is not None else 'no response'
        super().__init__(
            f"Could not resolve latest version: {result.reason.value} "
            f"(last status: {status}, attempts: {result.attempts})"
        )


class UnsupportedPlatformError(InstallerError):
    """Raised when no release artifact exists for the detected platform."""


class DownloadError(InstallerError):
    """Raised when the release archive could not be downloaded."""


class ExtractionError(InstallerError):
    """Raised when the release archive could not be unpacked."""


class InstallationError(InstallerError):
    """Raised when binaries could not be copied into place."""


CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ErrorHandler:
    """
    Centralized logging setup and uncaught exception handling.
    """

    def __init__(self, log_file: Optional[Path] = None, verbose: bool = False):
        """
        Initialize the error handler.

        Args:
            log_file: Optional path to a log file receiving DEBUG output
            verbose: Show DEBUG messages on the console
        """
        self.log_file = log_file
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        self.setup_logging()

    def setup_logging(self):
        """Set up logging configuration."""
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        # Clear any existing handlers
        root_logger.handlers.clear()

        # Console goes to stderr so `resolve` can print the bare version on stdout
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG if self.verbose else logging.INFO)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root_logger.addHandler(console_handler)

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            root_logger.addHandler(file_handler)
            self.logger.debug(f"Log file: {self.log_file}")

    def handle_exception(self, exc_type, exc_value, exc_traceback):
        """
        Handle uncaught exceptions.

        Args:
            exc_type: Exception type
            exc_value: Exception value
            exc_traceback: Exception traceback
        """
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        self.logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )


def setup_global_error_handling(log_file: Optional[Path] = None,
                                verbose: bool = False) -> ErrorHandler:
    """
    Set up logging and the global exception hook.

    Returns:
        ErrorHandler instance
    """
    error_handler = ErrorHandler(log_file=log_file, verbose=verbose)
    sys.excepthook = error_handler.handle_exception

    logger = logging.getLogger(__name__)
    logger.debug(f"Python version: {sys.version}")
    logger.debug(f"Platform: {sys.platform}")
    logger.debug(f"Working directory: {os.getcwd()}")

    return error_handler
