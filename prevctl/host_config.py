# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized host-side configuration for prevctl."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from prevctl.models.host_config import HostConfigModel
from prevctl.paths import HostPaths

logger = logging.getLogger(__name__)


class HostConfig:
    """Manages host-side configuration from ~/.config/prevctl/config.yml."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or HostPaths.config_file()
        self.model = self._load()

    def _load(self) -> HostConfigModel:
        """Load configuration from file, falling back to defaults."""
        if not self.config_path.exists():
            return HostConfigModel()

        try:
            with open(self.config_path) as f:
                raw_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {self.config_path}: {e}")
            return HostConfigModel()

        try:
            return HostConfigModel.model_validate(raw_config)
        except ValidationError as e:
            logger.warning(f"Config validation errors in {self.config_path}: {e}")
            return HostConfigModel()

    @property
    def key_pair_alias(self) -> str:
        return self.model.driver.key_pair_alias

    @property
    def local_docker_socket(self) -> Path:
        """Local path for the forwarded Docker socket."""
        configured = self.model.docker.local_socket
        if configured:
            return Path(configured).expanduser()
        return HostPaths.forwarded_docker_socket()


# Singleton instance
_config: Optional[HostConfig] = None


def get_config() -> HostConfig:
    """Get the global host configuration."""
    global _config
    if _config is None:
        _config = HostConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (next get_config() reloads)."""
    global _config
    _config = None
