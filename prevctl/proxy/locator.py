# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Locate the published address of a project's docker proxy.

The proxy unit is brought up by `up`; here we only read where it listens.
ComposeProxyLocator asks `docker compose ps` through the forwarded Docker
socket, retrying a bounded number of times while the unit comes up.
"""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from prevctl.errors import ProxyUnavailable
from prevctl.proxy.descriptor import ProxyDescriptor, render_descriptor
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

COMPOSE_PS_TIMEOUT = 30.0  # seconds


@dataclass(frozen=True)
class ProxyAddress:
    """Address of the docker proxy, as seen from the remote machine."""

    host: str
    port: int
    scheme: str = "http"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class ProxyLocator(Protocol):
    async def locate(self, descriptor: ProxyDescriptor) -> ProxyAddress: ...


def parse_compose_ps(output: str) -> List[Dict[str, Any]]:
    """Parse `docker compose ps --format json` output.

    Newer compose versions print one JSON object per line, older ones a
    single JSON array.
    """
    text = output.strip()
    if not text:
        return []
    if text.startswith("["):
        entries = json.loads(text)
    else:
        entries = [json.loads(line) for line in text.splitlines() if line.strip()]
    return [entry for entry in entries if isinstance(entry, dict)]


def find_published_address(
    entries: Sequence[Dict[str, Any]], descriptor: ProxyDescriptor
) -> Optional[ProxyAddress]:
    """Published address of the proxy port in compose ps entries, if any."""
    for entry in entries:
        if entry.get("Service") != descriptor.service_name:
            continue
        for publisher in entry.get("Publishers") or []:
            if publisher.get("TargetPort") != descriptor.port:
                continue
            published = publisher.get("PublishedPort") or 0
            if published:
                return ProxyAddress(host="localhost", port=int(published))
    return None


class ComposeProxyLocator:
    """Find the proxy through `docker compose ps` on the forwarded socket.

    Args:
        docker_host: DOCKER_HOST of the forwarded socket (unix://...)
        attempts: Maximum number of ps reads before giving up
        interval: Seconds between reads
        compose_command: Compose CLI invocation, e.g. ["docker", "compose"]
    """

    def __init__(
        self,
        docker_host: str,
        attempts: int = 10,
        interval: float = 1.0,
        compose_command: Sequence[str] = ("docker", "compose"),
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.docker_host = docker_host
        self.attempts = attempts
        self.interval = interval
        self.compose_command = list(compose_command)

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        # Reap the child even if cancelled again
        await asyncio.shield(proc.wait())

    async def _compose_ps(self, descriptor: ProxyDescriptor) -> Optional[str]:
        """Run compose ps once. Returns stdout, or None if compose failed."""
        env = {**os.environ, "DOCKER_HOST": self.docker_host}
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.compose_command,
                "-p", descriptor.project_name,
                "-f", "-",
                "ps", "--format", "json",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as e:
            raise ProxyUnavailable(
                f"Compose command not found: {self.compose_command[0]}",
                hint="Install Docker with the compose plugin or set compose.command in config.yml",
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(render_descriptor(descriptor).encode("utf-8")),
                timeout=COMPOSE_PS_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.debug(f"compose ps timed out after {COMPOSE_PS_TIMEOUT}s")
            return None
        finally:
            # Timeout, cancellation or error: never leave compose running
            if proc.returncode is None:
                await self._kill(proc)

        if proc.returncode != 0:
            logger.debug(f"compose ps exited with {proc.returncode}: {stderr.decode(errors='replace').strip()}")
            return None
        return stdout.decode("utf-8", errors="replace")

    async def _read_address(self, descriptor: ProxyDescriptor) -> Optional[ProxyAddress]:
        output = await self._compose_ps(descriptor)
        if output is None:
            return None
        try:
            entries = parse_compose_ps(output)
        except json.JSONDecodeError as e:
            logger.warning(f"Unexpected compose ps output: {e}")
            return None
        return find_published_address(entries, descriptor)

    async def locate(self, descriptor: ProxyDescriptor) -> ProxyAddress:
        """Return the proxy address, polling up to `attempts` times.

        Raises:
            ProxyUnavailable: No published address after the last attempt
        """
        for attempt in range(1, self.attempts + 1):
            address = await self._read_address(descriptor)
            if address is not None:
                logger.debug(f"Docker proxy found at {address.url} (attempt {attempt})")
                return address
            if attempt < self.attempts:
                logger.debug(
                    f"Docker proxy not available yet (attempt {attempt}/{self.attempts})"
                )
                await asyncio.sleep(self.interval)

        raise ProxyUnavailable(
            f"Docker proxy {descriptor.service_name} of project {descriptor.project_name} "
            f"has no published address after {self.attempts} attempts",
            hint="Check that the environment is up, or raise proxy.locate_attempts in config.yml",
        )
