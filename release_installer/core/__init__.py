"""
Core package __init__.py
"""

from .config import ConfigManager
from .models import (
    Failed, FailureReason, HeaderSet, ReleasePayload, ReleaseQuery,
    ReleaseQueryResult, Resolved,
)
from .resolver import VersionResolver, extract_version, normalize_version
from .installer import InstallationController

__all__ = [
    'ConfigManager',
    'Failed', 'FailureReason', 'HeaderSet', 'ReleasePayload', 'ReleaseQuery',
    'ReleaseQueryResult', 'Resolved',
    'VersionResolver', 'extract_version', 'normalize_version',
    'InstallationController'
]
