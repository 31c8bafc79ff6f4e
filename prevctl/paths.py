# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized path definitions for prevctl.

Paths are organized by context:

- HostPaths: Paths on the machine where the prevctl CLI runs
- RemotePaths: Paths on the preview environment's machine
- ProjectPaths: Paths relative to a project directory

Usage:
    from prevctl.paths import HostPaths, RemotePaths

    config_file = HostPaths.config_file()
    socket = HostPaths.forwarded_docker_socket()
"""

import os
import platform
from pathlib import Path
from typing import Optional


class HostPaths:
    """Paths on the local machine where prevctl runs."""

    @staticmethod
    def config_dir() -> Path:
        """~/.config/prevctl/ (PREVCTL_CONFIG_DIR overrides)"""
        env_dir = os.getenv("PREVCTL_CONFIG_DIR")
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "prevctl"

    @staticmethod
    def config_file() -> Path:
        """~/.config/prevctl/config.yml"""
        return HostPaths.config_dir() / "config.yml"

    @staticmethod
    def ssh_keys_dir() -> Path:
        """~/.config/prevctl/ssh/ - Private keys, one file per alias."""
        return HostPaths.config_dir() / "ssh"

    @staticmethod
    def machines_file() -> Path:
        """~/.config/prevctl/machines.yml - Known environments."""
        return HostPaths.config_dir() / "machines.yml"

    @staticmethod
    def state_dir() -> Path:
        """~/.local/state/prevctl/"""
        return Path.home() / ".local" / "state" / "prevctl"

    @staticmethod
    def runtime_dir() -> Path:
        """XDG runtime dir (platform-aware: macOS vs Linux)."""
        xdg = os.getenv("XDG_RUNTIME_DIR")
        if xdg:
            return Path(xdg)
        if platform.system() == "Darwin":
            # No /run/user on macOS
            return Path(os.getenv("TMPDIR", "/tmp").rstrip("/"))
        return Path(f"/run/user/{os.getuid()}")

    @staticmethod
    def prevctl_runtime_dir() -> Path:
        """Runtime directory holding forwarded sockets."""
        return HostPaths.runtime_dir() / "prevctl"

    @staticmethod
    def forwarded_docker_socket(pid: Optional[int] = None) -> Path:
        """Local endpoint of the forwarded Docker socket, one per process."""
        if pid is None:
            pid = os.getpid()
        return HostPaths.prevctl_runtime_dir() / f"docker-{pid}.sock"


class RemotePaths:
    """Paths on the preview environment's machine."""

    DOCKER_SOCKET = "/var/run/docker.sock"


class ProjectPaths:
    """Paths relative to a project directory."""

    # Searched in this order, same as docker compose
    COMPOSE_FILE_NAMES = (
        "compose.yaml",
        "compose.yml",
        "docker-compose.yaml",
        "docker-compose.yml",
    )

    @staticmethod
    def default_compose_file(project_dir: Path) -> Optional[Path]:
        """First compose file found in project_dir, if any."""
        for name in ProjectPaths.COMPOSE_FILE_NAMES:
            candidate = project_dir / name
            if candidate.is_file():
                return candidate
        return None
