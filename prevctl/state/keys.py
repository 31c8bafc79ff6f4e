# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""SSH key pairs stored on the host, one file per alias.

Layout of ~/.config/prevctl/ssh/:
    <alias>      private key (OpenSSH or PEM)
    <alias>.pub  public key (optional)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from prevctl.errors import ConfigurationError
from prevctl.paths import HostPaths
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SSHKeyPair:
    alias: str
    private_key: str
    public_key: Optional[str] = None


class KeyStore:
    """Read-only access to stored key pairs."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = directory or HostPaths.ssh_keys_dir()

    def _key_path(self, alias: str) -> Path:
        # Aliases are file names, never paths
        if not alias or "/" in alias or alias.startswith("."):
            raise ConfigurationError(
                f"Invalid key pair alias: {alias!r}",
                hint="Set driver.key_pair_alias in config.yml to a plain file name",
            )
        return self.directory / alias

    def get_key(self, alias: str) -> Optional[SSHKeyPair]:
        """Return the key pair stored under alias, or None if absent."""
        private_path = self._key_path(alias)
        if not private_path.is_file():
            logger.debug(f"No private key at {private_path}")
            return None

        public_path = private_path.with_name(f"{alias}.pub")
        public_key = public_path.read_text(encoding="utf-8") if public_path.is_file() else None
        return SSHKeyPair(
            alias=alias,
            private_key=private_path.read_text(encoding="utf-8"),
            public_key=public_key,
        )
