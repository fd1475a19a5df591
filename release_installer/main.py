"""
Release Installer - Command Line Entry Point

Resolves the latest release of a package from its release-listing API
and installs its binaries.

Commands:
- install: resolve, download, extract and install (default)
- resolve: print the latest version on stdout
- diagnose: probe the release endpoint and the local environment

Usage:
    python -m release_installer.main [install|resolve|diagnose]

    Or if installed via pip:
    release-installer [install|resolve|diagnose]
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .core.config import ConfigManager
from .core.diagnostics import run_diagnostics
from .core.installer import InstallationController
from .utils.error_handling import InstallerError, setup_global_error_handling


COMMANDS = ('install', 'resolve', 'diagnose')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='release-installer',
        description='Resolve and install the latest release of a package.',
    )
    parser.add_argument('command', nargs='?', default='install', choices=COMMANDS)
    parser.add_argument('--config', type=Path, default=None,
                        help='Path to the INI configuration file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show debug output')
    return parser


def run_command(command: str, config_manager: ConfigManager) -> int:
    """Run one command and return its exit code."""
    if command == 'diagnose':
        report = run_diagnostics(config_manager)
        return 0 if report.resolved else 1

    controller = InstallationController(config_manager)
    if command == 'resolve':
        print(controller.resolve_version())
        return 0

    controller.run()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    setup_global_error_handling(verbose=args.verbose)
    config_manager = ConfigManager(args.config)

    log_file = config_manager.get_log_file()
    if log_file is not None:
        setup_global_error_handling(log_file=log_file, verbose=args.verbose)

    logger = logging.getLogger(__name__)
    try:
        return run_command(args.command, config_manager)
    except InstallerError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
