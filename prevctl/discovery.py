# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""One discovery cycle: which URLs reach the services of an environment.

    key pair -> identity -> machine -> SSH session -> forwarded Docker socket
      -> docker proxy descriptor -> proxy address -> /tunnels -> flat records

The cycle is all-or-nothing. Local lookups (key pair, identity, machine)
happen before any network call. The forwarded socket is released before the
session is disposed, and the session is disposed exactly once, on success,
error and cancellation alike.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from prevctl.env_id import find_ambient_env_id, find_ambient_project_name
from prevctl.errors import KeyPairNotFound, MachineNotFound
from prevctl.host_config import HostConfig, get_config
from prevctl.models.tunnels import TunnelsResponse
from prevctl.proxy.client import query_tunnels
from prevctl.proxy.descriptor import build_descriptor
from prevctl.proxy.locator import ComposeProxyLocator, ProxyAddress, ProxyLocator
from prevctl.ssh.forward import ForwardedSocket, with_forwarded_socket
from prevctl.ssh.session import SSHSession
from prevctl.state.keys import KeyStore, SSHKeyPair
from prevctl.state.machines import Machine, MachineRegistry
from prevctl.tunnels import FlatTunnel, TunnelFilter, flatten_tunnels, select_tunnels
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[Machine, SSHKeyPair, HostConfig], Awaitable[SSHSession]]
LocatorFactory = Callable[[ForwardedSocket, HostConfig], ProxyLocator]
QueryFunction = Callable[[SSHSession, ProxyAddress, float], Awaitable[TunnelsResponse]]


@dataclass(frozen=True)
class DiscoveryRequest:
    """What to discover. Unset identity fields are resolved from the cwd."""

    service: Optional[str] = None
    port: Optional[int] = None
    env_id: Optional[str] = None
    project_name: Optional[str] = None
    compose_files: Tuple[Path, ...] = field(default_factory=tuple)
    project_dir: Optional[Path] = None

    @property
    def criteria(self) -> TunnelFilter:
        return TunnelFilter(service=self.service, port=self.port)


@dataclass(frozen=True)
class DiscoveryResult:
    env_id: str
    project_name: str
    machine: Machine
    tunnels: List[FlatTunnel]


async def connect_session(machine: Machine, key: SSHKeyPair, config: HostConfig) -> SSHSession:
    return await SSHSession.connect(
        machine.public_ip_address,
        machine.ssh_username,
        key.private_key,
        port=machine.ssh_port,
        connect_timeout=config.model.ssh.connect_timeout,
        keepalive_interval=config.model.ssh.keepalive_interval,
    )


def compose_locator(forward: ForwardedSocket, config: HostConfig) -> ProxyLocator:
    proxy = config.model.proxy
    return ComposeProxyLocator(
        forward.docker_host,
        attempts=proxy.locate_attempts,
        interval=proxy.locate_interval,
        compose_command=config.model.compose.command,
    )


async def discover_urls(
    request: DiscoveryRequest,
    config: Optional[HostConfig] = None,
    key_store: Optional[KeyStore] = None,
    machines: Optional[MachineRegistry] = None,
    session_factory: SessionFactory = connect_session,
    locator_factory: LocatorFactory = compose_locator,
    query: QueryFunction = query_tunnels,
) -> DiscoveryResult:
    """Run one discovery cycle.

    Raises:
        ConfigurationError: Missing key pair, machine or ambient identity
        TransportError: SSH, forwarding or query failure
        ProxyUnavailable: The docker proxy has no published address
        MalformedResponse: The docker proxy answered with garbage
    """
    config = config or get_config()
    key_store = key_store or KeyStore()
    machines = machines or MachineRegistry()

    key_alias = config.key_pair_alias
    key = key_store.get_key(key_alias)
    if key is None:
        raise KeyPairNotFound(key_alias)

    project_name = request.project_name or find_ambient_project_name(
        request.compose_files, request.project_dir
    )
    logger.debug(f"project: {project_name}")
    env_id = request.env_id or find_ambient_env_id(project_name, request.project_dir)
    logger.debug(f"envId: {env_id}")

    machine = machines.get_machine(env_id)
    if machine is None:
        raise MachineNotFound(env_id)

    session = await session_factory(machine, key, config)
    try:
        descriptor = build_descriptor(
            project_name, image=config.model.proxy.image, port=config.model.proxy.port
        )

        async def locate_and_query(forward: ForwardedSocket) -> TunnelsResponse:
            proxy = await locator_factory(forward, config).locate(descriptor)
            logger.debug(f"dockerProxyServiceUrl: {proxy.url}")
            return await query(session, proxy, config.model.proxy.query_timeout)

        raw = await with_forwarded_socket(
            session,
            config.local_docker_socket,
            locate_and_query,
            remote_path=config.model.docker.remote_socket,
        )
    finally:
        session.dispose()
        await session.wait_disposed()

    tunnels = select_tunnels(flatten_tunnels(raw), request.criteria)
    logger.info(f"{len(tunnels)} tunnel(s) for {env_id} on {machine.public_ip_address}")
    return DiscoveryResult(
        env_id=env_id, project_name=project_name, machine=machine, tunnels=tunnels
    )
