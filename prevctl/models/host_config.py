# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pydantic models for host configuration (~/.config/prevctl/config.yml)."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from prevctl.paths import RemotePaths


class DriverConfig(BaseModel):
    """Machine driver settings."""

    key_pair_alias: str = "default"


class SSHSettings(BaseModel):
    """SSH session settings."""

    connect_timeout: float = 30.0
    keepalive_interval: float = 15.0  # seconds, 0 disables


class DockerSettings(BaseModel):
    """Docker socket forwarding settings.

    local_socket: Local path for the forwarded socket. Defaults to a
                  per-process socket under the prevctl runtime directory.
    """

    remote_socket: str = RemotePaths.DOCKER_SOCKET
    local_socket: Optional[str] = None


class ProxySettings(BaseModel):
    """Docker proxy unit settings."""

    image: str = "ghcr.io/prevctl/docker-proxy:latest"
    port: int = Field(default=3000, ge=1, le=65535)
    locate_attempts: int = Field(default=10, ge=1)
    locate_interval: float = Field(default=1.0, ge=0)
    query_timeout: float = Field(default=30.0, gt=0)


class ComposeSettings(BaseModel):
    """Local docker compose invocation."""

    command: List[str] = Field(default_factory=lambda: ["docker", "compose"])

    @field_validator("command", mode="after")
    @classmethod
    def validate_command(cls, command: List[str]) -> List[str]:
        if not command:
            raise ValueError("compose.command must not be empty")
        return command


class HostConfigModel(BaseModel):
    """Main host configuration model."""

    version: str = "1.0"
    driver: DriverConfig = Field(default_factory=DriverConfig)
    ssh: SSHSettings = Field(default_factory=SSHSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    compose: ComposeSettings = Field(default_factory=ComposeSettings)
