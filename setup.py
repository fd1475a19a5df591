"""
Release Installer
Resolves the latest release of a package from its release-listing API and installs its binaries
"""

from setuptools import setup, find_packages

setup(
    name="release-installer",
    version="1.0.0",
    description="Resolve and install the latest release of a package from the GitHub releases API",
    author="Spafbi",
    python_requires=">=3.11",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests>=2.31.0",
        "pydantic>=2.5.0",
        "py7zr>=0.20.0",
    ],
    entry_points={
        "console_scripts": [
            "release-installer=release_installer.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
        "Topic :: System :: Installation/Setup",
    ],
)
