# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Registry of provisioned machines, keyed by environment id.

~/.config/prevctl/machines.yml:

    machines:
      myapp-main:
        public_ip_address: 203.0.113.10
        ssh_username: ubuntu
"""

from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from prevctl.errors import ConfigurationError
from prevctl.paths import HostPaths


class Machine(BaseModel):
    """Connection metadata of one environment's machine."""

    public_ip_address: str
    ssh_username: str
    ssh_port: int = Field(default=22, ge=1, le=65535)


class MachinesFile(BaseModel):
    machines: Dict[str, Machine] = Field(default_factory=dict)


class MachineRegistry:
    """Lookup of machines from machines.yml."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or HostPaths.machines_file()
        self._machines: Optional[Dict[str, Machine]] = None

    def _load(self) -> Dict[str, Machine]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                raw = yaml.safe_load(f) or {}
            return MachinesFile.model_validate(raw).machines
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ConfigurationError(
                f"Invalid machine registry {self.path}: {e}",
                hint="Fix or remove the file",
            ) from e

    def get_machine(self, env_id: str) -> Optional[Machine]:
        """Return the machine of env_id, or None if unknown."""
        if self._machines is None:
            self._machines = self._load()
        return self._machines.get(env_id)
