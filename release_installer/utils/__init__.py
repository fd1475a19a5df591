"""
Utils package __init__.py
"""

# Import order is important to avoid circular imports
from .error_handling import (
    ErrorHandler, InstallerError, ResolutionError, VersionParseError,
    setup_global_error_handling,
)
from .downloader import FileDownloader, DownloadResult, DownloadProgress
from .extractor import ArchiveExtractor, ExtractionResult

__all__ = [
    'ErrorHandler', 'InstallerError', 'ResolutionError', 'VersionParseError',
    'setup_global_error_handling',
    'FileDownloader', 'DownloadResult', 'DownloadProgress',
    'ArchiveExtractor', 'ExtractionResult'
]
