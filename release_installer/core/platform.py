"""
Platform detection and release artifact URLs.
"""

import logging
import os
import platform as _platform
from typing import Mapping, Optional

from ..utils.error_handling import InstallationError, UnsupportedPlatformError


DEFAULT_URL_TEMPLATE = (
    "https://downloads.mitmproxy.org/{version}/mitmproxy-{version}-{arch}.tar.gz"
)

# uname -m value -> Docker-style platform
MACHINE_PLATFORMS = {
    'x86_64': 'linux/amd64',
    'amd64': 'linux/amd64',
    'aarch64': 'linux/arm64',
    'arm64': 'linux/arm64',
    'armv7l': 'linux/arm/v7',
    'i386': 'linux/386',
    'i686': 'linux/386',
    'riscv64': 'linux/riscv64',
}

# Docker-style platform -> architecture string used in archive names
PLATFORM_ARCHES = {
    'linux/amd64': 'linux-x86_64',
    'linux/arm64': 'linux-aarch64',
    'linux/arm64/v8': 'linux-aarch64',
}

logger = logging.getLogger(__name__)


def detect_platform(environ: Optional[Mapping[str, str]] = None,
                    machine: Optional[str] = None) -> str:
    """
    Return the target platform, e.g. 'linux/amd64'.

    TARGETPLATFORM (set by docker buildx) wins over the host architecture.
    """
    environ = os.environ if environ is None else environ
    target = environ.get('TARGETPLATFORM', '')
    if target:
        logger.debug(f"Using TARGETPLATFORM: {target}")
        return target

    machine = (machine or _platform.machine()).lower()
    return MACHINE_PLATFORMS.get(machine, 'linux/unknown')


def platform_to_arch(platform: str) -> str:
    """
    Map a platform to the architecture string of its release archive.

    Raises:
        UnsupportedPlatformError: If no archive is published for the platform
    """
    try:
        return PLATFORM_ARCHES[platform]
    except KeyError:
        supported = ', '.join(sorted(PLATFORM_ARCHES))
        raise UnsupportedPlatformError(
            f"Unsupported platform {platform} (supported: {supported})"
        ) from None


def build_download_url(template: str, version: str, arch: str) -> str:
    """
    Fill the {version} and {arch} placeholders of a download URL template.

    Raises:
        InstallationError: If the template names any other placeholder or is malformed
    """
    try:
        return template.format(version=version, arch=arch)
    except (KeyError, IndexError, AttributeError, ValueError) as e:
        raise InstallationError(f"Invalid download URL template {template!r}: {e!r}") from e
