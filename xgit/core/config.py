"""Configuration management.

Reads and writes git-config files (INI format) for both the repository
(``.git/config``) and the user (``~/.gitconfig``). Subsections use git's
naming, e.g. ``[remote "origin"]``.
"""

import configparser
import io
import os
import re
from pathlib import Path
from typing import List, Optional, Tuple

from xgit.core.lockfile import write_locked

_SUBSECTION_RE = re.compile(r'^(\S+)\s+"(.*)"$')


def section_name(section: str, subsection: Optional[str] = None) -> str:
    """Build a section header name: ('remote', 'origin') -> 'remote "origin"'."""
    if subsection is None:
        return section
    return f'{section} "{subsection}"'


def split_section(name: str) -> Tuple[str, Optional[str]]:
    match = _SUBSECTION_RE.match(name)
    if match:
        return match.group(1), match.group(2)
    return name, None


def _new_parser() -> configparser.ConfigParser:
    # git config allows repeated keys and literal '%' in values
    return configparser.ConfigParser(strict=False, interpolation=None, allow_no_value=True)


class Config:
    """
    Layered git configuration.

    Priority order (highest to lowest):
    1. Environment variables (XGIT_<SECTION>_<KEY>, plain sections only)
    2. Repository config
    3. Global config
    4. Fallback value

    Keys are case-insensitive, as in git.
    """

    GLOBAL_CONFIG_PATH = Path.home() / '.gitconfig'

    def __init__(self, repo_config_path: Optional[Path] = None):
        """
        Args:
            repo_config_path: Path to the repository config file, if in a repo
        """
        self.repo_config_path = repo_config_path
        self._global_config = None
        self._repo_config = None

    @property
    def global_config(self) -> configparser.ConfigParser:
        if self._global_config is None:
            self._global_config = _new_parser()
            path = Path(self.GLOBAL_CONFIG_PATH)
            if path.exists():
                self._global_config.read(path, encoding='utf-8')
        return self._global_config

    @property
    def repo_config(self) -> Optional[configparser.ConfigParser]:
        if self._repo_config is None and self.repo_config_path:
            self._repo_config = _new_parser()
            if self.repo_config_path.exists():
                self._repo_config.read(self.repo_config_path, encoding='utf-8')
        return self._repo_config

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            section: Section name, e.g. 'user' or 'remote "origin"'
            key: Key name (case-insensitive)
            fallback: Default value if not found

        Returns:
            Configuration value or fallback
        """
        if ' ' not in section:
            env_value = os.environ.get(f"XGIT_{section.upper()}_{key.upper()}")
            if env_value is not None:
                return env_value

        if self.repo_config and self.repo_config.has_option(section, key):
            return self.repo_config.get(section, key)

        if self.global_config.has_option(section, key):
            return self.global_config.get(section, key)

        return fallback

    def get_bool(self, section: str, key: str, fallback: bool = False) -> bool:
        value = self.get(section, key)
        if value is None:
            return fallback
        return value.strip().lower() in ('true', 'yes', 'on', '1')

    def set(self, section: str, key: str, value: str, global_config: bool = False) -> None:
        """
        Set a configuration value and save the file.

        Args:
            section: Section name
            key: Key name
            value: Value to set
            global_config: Write to the global config instead of the repository's
        """
        config, path = self._target(global_config)
        if not config.has_section(section):
            config.add_section(section)
        config.set(section, key, value)
        self._save(config, path)

    def unset(self, section: str, key: str, global_config: bool = False) -> bool:
        """
        Remove a configuration value; empty sections are dropped.

        Returns:
            True if value was removed, False if it didn't exist
        """
        config, path = self._target(global_config)
        if not config.has_option(section, key):
            return False
        config.remove_option(section, key)
        if not config.options(section):
            config.remove_section(section)
        self._save(config, path)
        return True

    def has_section(self, section: str) -> bool:
        return bool(self.repo_config and self.repo_config.has_section(section))

    def remove_section(self, section: str) -> bool:
        """Remove a whole repository config section."""
        config, path = self._target(False)
        if not config.remove_section(section):
            return False
        self._save(config, path)
        return True

    def subsections(self, section: str) -> List[str]:
        """
        Names of a section's subsections in file order.

        Args:
            section: e.g. 'remote'

        Returns:
            e.g. ['origin', 'upstream']
        """
        if not self.repo_config:
            return []
        names = []
        for name in self.repo_config.sections():
            kind, sub = split_section(name)
            if kind == section and sub is not None:
                names.append(sub)
        return names

    def _target(self, global_config: bool) -> Tuple[configparser.ConfigParser, Path]:
        if global_config:
            return self.global_config, Path(self.GLOBAL_CONFIG_PATH)
        if not self.repo_config_path:
            raise ValueError("No repository config path available")
        return self.repo_config, self.repo_config_path

    @staticmethod
    def _save(config: configparser.ConfigParser, path: Path) -> None:
        buffer = io.StringIO()
        config.write(buffer)
        write_locked(path, buffer.getvalue())
