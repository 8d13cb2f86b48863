#!/usr/bin/env python3
"""
Settings loader for Port static site generator.
Reads the per-user configuration file ~/.config/port.yml.
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Link:
    """External link shown in the site navigation."""
    url: str
    name: str


@dataclass
class Config:
    """Site-wide configuration."""
    # Site root to search for posts.
    root: str
    # Name/title of the site.
    name: str
    # Canonical URL of the site.
    url: str
    # A brief description of the site.
    desc: str
    # Primary image for the site.
    image: str
    links: List[Link] = field(default_factory=list)
    # All published datetimes are assumed to have this UTC offset, in minutes.
    timezone: int = 0
    # How many posts to display per page.
    per_page: int = 10


class PortSettings:
    """Load and validate Port configuration settings."""

    CONFIG_FILE = os.path.join('~', '.config', 'port.yml')

    REQUIRED_SETTINGS = ('root', 'name', 'url', 'desc', 'image', 'links', 'timezone', 'per_page')

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings loader.

        Args:
            config_path: Path to the config file. Defaults to ~/.config/port.yml.
        """
        self.config_path = os.path.expanduser(config_path or self.CONFIG_FILE)

    def load_settings(self) -> Config:
        """
        Load settings from the configuration file.

        Returns:
            Validated site configuration

        Raises:
            FileNotFoundError: if the configuration file does not exist
            ValueError: if the file is not valid YAML or a setting is invalid
        """
        loaded_settings = self._load_config_file(self.config_path)
        return self._validate(loaded_settings)

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except (IOError, OSError) as e:
            raise IOError(f"Error reading configuration file {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")
        return data

    def _validate(self, data: Dict[str, Any]) -> Config:
        """Check required settings and their types, and build a Config."""
        missing = [key for key in self.REQUIRED_SETTINGS if key not in data]
        if missing:
            raise ValueError(
                f"Missing required setting(s) in {self.config_path}: {', '.join(missing)}"
            )

        for key in ('root', 'name', 'url', 'desc', 'image'):
            if not isinstance(data[key], str):
                raise ValueError(f"Setting '{key}' must be a string in {self.config_path}")

        links = data['links'] or []
        if not isinstance(links, list):
            raise ValueError(f"Setting 'links' must be a list in {self.config_path}")
        parsed_links = []
        for link in links:
            if not isinstance(link, dict) or 'url' not in link or 'name' not in link:
                raise ValueError(
                    f"Each entry of 'links' needs a 'url' and a 'name' in {self.config_path}"
                )
            parsed_links.append(Link(url=str(link['url']), name=str(link['name'])))

        timezone = data['timezone']
        if isinstance(timezone, bool) or not isinstance(timezone, int):
            raise ValueError(f"Setting 'timezone' must be an integer in {self.config_path}")

        per_page = data['per_page']
        if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page <= 0:
            raise ValueError(f"Setting 'per_page' must be a positive integer in {self.config_path}")

        return Config(
            root=os.path.expanduser(data['root']),
            name=data['name'],
            url=data['url'],
            desc=data['desc'],
            image=data['image'],
            links=parsed_links,
            timezone=timezone,
            per_page=per_page,
        )
