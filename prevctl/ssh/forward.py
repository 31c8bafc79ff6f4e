# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Forward the remote Docker control socket to a local unix socket.

Usage:
    async with forwarded_socket(session) as fwd:
        client = docker.DockerClient(base_url=fwd.docker_host)

The forward is torn down (listener closed, local socket file removed) when
the block exits, whether it returns, raises, or is cancelled.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

import asyncssh
import docker
import requests

from prevctl.errors import ForwardingError
from prevctl.paths import HostPaths, RemotePaths
from prevctl.ssh.session import SSHSession
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

DOCKER_PING_TIMEOUT = 10  # seconds

T = TypeVar("T")


@dataclass
class ForwardedSocket:
    """One active local-path forward of a remote unix socket."""

    local_path: Path
    remote_path: str
    listener: asyncssh.SSHListener
    closed: bool = False

    @property
    def docker_host(self) -> str:
        """DOCKER_HOST value pointing at the local end of the forward."""
        return f"unix://{self.local_path}"

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.listener.close()
            await self.listener.wait_closed()
        finally:
            self.local_path.unlink(missing_ok=True)
            logger.debug(f"Released forward {self.local_path} -> {self.remote_path}")


def _ping_docker(docker_host: str) -> None:
    client = docker.DockerClient(base_url=docker_host, timeout=DOCKER_PING_TIMEOUT)
    try:
        client.ping()
    finally:
        client.close()


async def _check_docker(docker_host: str) -> None:
    """Fail with ForwardingError unless the daemon answers through the forward."""
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, _ping_docker, docker_host)
    except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
        raise ForwardingError(
            f"Docker daemon not reachable through {docker_host}: {e}",
            hint="Check that Docker is running on the machine and the SSH user may access its socket",
        ) from e


@asynccontextmanager
async def forwarded_socket(
    session: SSHSession,
    local_path: Optional[Union[str, Path]] = None,
    remote_path: str = RemotePaths.DOCKER_SOCKET,
    check: bool = True,
) -> AsyncIterator[ForwardedSocket]:
    """Forward remote_path to local_path for the duration of the block.

    Args:
        session: Open SSH session
        local_path: Local socket path; defaults to a per-process path under
            the prevctl runtime directory
        remote_path: Remote socket to expose
        check: Ping the Docker daemon through the forward before yielding

    Raises:
        ForwardingError: The forward cannot be set up or the daemon does not answer
    """
    path = Path(local_path) if local_path else HostPaths.forwarded_docker_socket()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # A leftover socket from a killed run would make the bind fail
        path.unlink(missing_ok=True)
    except OSError as e:
        raise ForwardingError(f"Cannot prepare local socket {path}: {e}") from e

    logger.debug(f"Forwarding {session.host}:{remote_path} -> {path}")
    try:
        listener = await session.forward_local_path(str(path), remote_path)
    except (OSError, asyncssh.Error) as e:
        raise ForwardingError(
            f"Failed to forward {remote_path} from {session.host}: {e}"
        ) from e

    handle = ForwardedSocket(local_path=path, remote_path=remote_path, listener=listener)
    try:
        if check:
            await _check_docker(handle.docker_host)
        yield handle
    finally:
        await handle.close()


async def with_forwarded_socket(
    session: SSHSession,
    local_path: Optional[Union[str, Path]],
    action: Callable[[ForwardedSocket], Awaitable[T]],
    remote_path: str = RemotePaths.DOCKER_SOCKET,
    check: bool = True,
) -> T:
    """Run action while remote_path is forwarded, releasing it afterwards."""
    async with forwarded_socket(session, local_path, remote_path, check=check) as handle:
        return await action(handle)
