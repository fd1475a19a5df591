"""
Release Installer

Resolves the latest published version of a package from a release-listing
API and installs its binaries.
"""

__version__ = "1.0.0"
