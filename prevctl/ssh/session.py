# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""SSH session to a preview environment's machine, using AsyncSSH.

A session owns one authenticated connection. Forwards opened through it
(unix socket or TCP) must be closed by whoever opened them before the
session is disposed. dispose() is idempotent.
"""

from __future__ import annotations

import asyncssh

from prevctl.errors import SessionError
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

SSH_KEEPALIVE_COUNT_MAX = 3  # missed keepalives before disconnect


class SSHSession:
    """An open, authenticated SSH connection to exactly one host."""

    def __init__(self, conn: asyncssh.SSHClientConnection, host: str, username: str):
        self._conn = conn
        self.host = host
        self.username = username
        self._disposed = False

    @classmethod
    async def connect(
        cls,
        host: str,
        username: str,
        private_key: str,
        *,
        port: int = 22,
        connect_timeout: float = 30.0,
        keepalive_interval: float = 15.0,
    ) -> "SSHSession":
        """Open a session authenticated with the given private key.

        Raises:
            SessionError: Key cannot be parsed, host unreachable, or
                authentication rejected.
        """
        try:
            key = asyncssh.import_private_key(private_key)
        except (asyncssh.KeyImportError, ValueError) as e:
            raise SessionError(f"Invalid private key for {username}@{host}: {e}") from e

        logger.debug(f"Connecting to {username}@{host}:{port}")
        try:
            conn = await asyncssh.connect(
                host,
                port=port,
                username=username,
                client_keys=[key],
                known_hosts=None,
                connect_timeout=connect_timeout,
                keepalive_interval=keepalive_interval,
                keepalive_count_max=SSH_KEEPALIVE_COUNT_MAX,
            )
        except (OSError, asyncssh.Error, TimeoutError) as e:
            raise SessionError(
                f"Failed to connect to {username}@{host}:{port}: {e}",
                hint="Check that the machine is running and reachable over SSH",
            ) from e

        logger.debug(f"Connected to {host}")
        return cls(conn, host, username)

    @property
    def connection(self) -> asyncssh.SSHClientConnection:
        if self._disposed:
            raise SessionError(f"SSH session to {self.host} already disposed")
        return self._conn

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    async def forward_local_path(self, listen_path: str, dest_path: str) -> asyncssh.SSHListener:
        """Expose remote unix socket dest_path at local listen_path."""
        return await self.connection.forward_local_path(listen_path, dest_path)

    async def forward_local_port(
        self, dest_host: str, dest_port: int, listen_host: str = "127.0.0.1", listen_port: int = 0
    ) -> asyncssh.SSHListener:
        """Listen on listen_host:listen_port, forwarding to dest_host:dest_port remotely."""
        return await self.connection.forward_local_port(
            listen_host, listen_port, dest_host, dest_port
        )

    def dispose(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        logger.debug(f"Closing SSH session to {self.host}")
        self._conn.close()

    async def wait_disposed(self) -> None:
        """Wait for a disposed connection to finish closing."""
        if self._disposed:
            await self._conn.wait_closed()

    async def __aenter__(self) -> "SSHSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()
        await self.wait_disposed()

