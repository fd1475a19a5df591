"""
Configuration Manager for the Release Installer

Handles persistent settings:
- Which repository to resolve and how hard to try
- Where binaries are installed and which ones
- Optional log file

Uses ConfigParser and stores the file under ~/.config/release-installer,
or wherever RELEASE_INSTALLER_CONFIG points.
"""

import os
import configparser
from pathlib import Path
from typing import Optional, List
import logging

from .models import (
    DEFAULT_USER_AGENT, GITHUB_ACCEPT, GITHUB_API_URL, ReleaseQuery,
)
from .platform import DEFAULT_URL_TEMPLATE


CONFIG_ENV_VAR = 'RELEASE_INSTALLER_CONFIG'


def default_config_path() -> Path:
    """Return the config path from the environment or the user's config dir."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / '.config' / 'release-installer' / 'config.ini'


class ConfigManager:
    """
    Manages the installer configuration file.

    Missing files are created with defaults, missing keys are filled in,
    and unreadable files are backed up and replaced.
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_file: INI file to use (default_config_path() if None)
        """
        self.logger = logging.getLogger(__name__)
        self.config_file = Path(config_file) if config_file else default_config_path()
        self.config = configparser.ConfigParser(interpolation=None)

        self.defaults = {
            'release': {
                'owner': 'mitmproxy',
                'repo': 'mitmproxy',
                'api_base_url': GITHUB_API_URL,
                'user_agent': DEFAULT_USER_AGENT,
                'accept_header': GITHUB_ACCEPT,
                'max_retries': '2',
                'timeout': '10',
                'retry_delay': '1',
                'github_token': '',
            },
            'install': {
                'install_dir': '/usr/local/bin',
                'binaries': 'mitmproxy, mitmdump, mitmweb',
                'download_url_template': DEFAULT_URL_TEMPLATE,
            },
            'general': {
                'log_file': '',
            },
        }

        self.load_config()

    def load_config(self) -> None:
        """
        Load configuration from file or create it with default values.
        """
        try:
            if self.config_file.exists():
                self.logger.debug(f"Loading configuration from {self.config_file}")
                self.config.read(self.config_file, encoding='utf-8')
                self._validate_config()
            else:
                self.logger.info(f"Creating default configuration at {self.config_file}")
                self._create_default_config()

        except (configparser.Error, OSError) as e:
            self.logger.error(f"Error loading configuration: {e}")
            self._backup_corrupted_config()
            self.config = configparser.ConfigParser(interpolation=None)
            self._create_default_config()

    def _validate_config(self) -> None:
        """Add any missing sections or keys with default values."""
        config_updated = False

        for section_name, section_data in self.defaults.items():
            if not self.config.has_section(section_name):
                self.logger.info(f"Adding missing section: {section_name}")
                self.config.add_section(section_name)
                config_updated = True

            for key, default_value in section_data.items():
                if not self.config.has_option(section_name, key):
                    self.logger.info(f"Adding missing option: {section_name}.{key}")
                    self.config.set(section_name, key, default_value)
                    config_updated = True

        if config_updated:
            self.save_config()

    def _create_default_config(self) -> None:
        for section_name, section_data in self.defaults.items():
            self.config.add_section(section_name)
            for key, value in section_data.items():
                self.config.set(section_name, key, value)

        self.save_config()

    def _backup_corrupted_config(self) -> None:
        if self.config_file.exists():
            backup_file = self.config_file.with_suffix('.ini.backup')
            try:
                self.config_file.replace(backup_file)
                self.logger.info(f"Backed up corrupted config to {backup_file}")
            except OSError as e:
                self.logger.error(f"Failed to backup corrupted config: {e}")

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            bool: True if save was successful, False otherwise
        """
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                self.config.write(f)
            self.logger.debug(f"Configuration saved to {self.config_file}")
            return True

        except (OSError, configparser.Error) as e:
            # Read-only home directories are common in CI containers
            self.logger.warning(f"Failed to save configuration: {e}")
            return False

    def get_config_value(self, section: str, key: str) -> str:
        """Return a raw value, falling back to the built-in default."""
        return self.config.get(section, key, fallback=self.defaults[section][key]).strip()

    def _get_number(self, section: str, key: str, cast, minimum):
        raw = self.get_config_value(section, key)
        try:
            value = cast(raw)
        except ValueError:
            value = None
        if value is None or value < minimum:
            self.logger.warning(
                f"Invalid value for {section}.{key}: {raw!r}, using default"
            )
            value = cast(self.defaults[section][key])
        return value

    def get_owner(self) -> str:
        return self.get_config_value('release', 'owner')

    def get_repo(self) -> str:
        return self.get_config_value('release', 'repo')

    def get_api_base_url(self) -> str:
        return self.get_config_value('release', 'api_base_url')

    def get_user_agent(self) -> str:
        return self.get_config_value('release', 'user_agent')

    def get_accept_header(self) -> str:
        return self.get_config_value('release', 'accept_header')

    def get_max_retries(self) -> int:
        return self._get_number('release', 'max_retries', int, 0)

    def get_timeout(self) -> float:
        return self._get_number('release', 'timeout', float, 0.1)

    def get_retry_delay(self) -> float:
        return self._get_number('release', 'retry_delay', float, 0.0)

    def get_github_token(self) -> Optional[str]:
        """Return the GitHub token, or None when unset."""
        return self.get_config_value('release', 'github_token') or None

    def get_install_dir(self) -> Path:
        return Path(self.get_config_value('install', 'install_dir')).expanduser()

    def get_binaries(self) -> List[str]:
        """Return the binaries to install, in order."""
        raw = self.get_config_value('install', 'binaries')
        return [name.strip() for name in raw.split(',') if name.strip()]

    def get_download_url_template(self) -> str:
        return self.get_config_value('install', 'download_url_template')

    def get_log_file(self) -> Optional[Path]:
        value = self.get_config_value('general', 'log_file')
        return Path(value).expanduser() if value else None

    def build_release_query(self) -> ReleaseQuery:
        """Build the ReleaseQuery described by the [release] section."""
        return ReleaseQuery.for_github(
            owner=self.get_owner(),
            repo=self.get_repo(),
            api_base_url=self.get_api_base_url(),
            user_agent=self.get_user_agent(),
            accept=self.get_accept_header(),
            github_token=self.get_github_token(),
            max_retries=self.get_max_retries(),
            timeout=self.get_timeout(),
            retry_delay=self.get_retry_delay(),
        )
