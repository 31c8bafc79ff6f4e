# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Compose description of the docker proxy unit of a project.

The docker proxy is a single container that mounts the Docker socket and
reports the project's published tunnels over HTTP. Its compose model is
only ever built in memory and fed to `docker compose` on stdin.
"""

from dataclasses import dataclass
from typing import Any, Dict

import yaml

from prevctl.paths import RemotePaths

DOCKER_PROXY_SERVICE_NAME = "prevctl-docker-proxy"
DOCKER_PROXY_IMAGE = "ghcr.io/prevctl/docker-proxy:latest"
DOCKER_PROXY_PORT = 3000
DOCKER_PROXY_ROLE_LABEL = "prevctl.role"


@dataclass(frozen=True)
class ProxyDescriptor:
    """Value object describing the docker proxy unit of one project."""

    project_name: str
    service_name: str = DOCKER_PROXY_SERVICE_NAME
    image: str = DOCKER_PROXY_IMAGE
    port: int = DOCKER_PROXY_PORT
    docker_socket: str = RemotePaths.DOCKER_SOCKET

    def to_compose_model(self) -> Dict[str, Any]:
        """Compose model containing only the docker proxy service."""
        return {
            "name": self.project_name,
            "services": {
                self.service_name: {
                    "image": self.image,
                    "restart": "unless-stopped",
                    "environment": {"COMPOSE_PROJECT": self.project_name},
                    "labels": {DOCKER_PROXY_ROLE_LABEL: "docker-proxy"},
                    "volumes": [
                        {
                            "type": "bind",
                            "source": self.docker_socket,
                            "target": RemotePaths.DOCKER_SOCKET,
                        }
                    ],
                    "ports": [
                        {"mode": "ingress", "target": self.port, "protocol": "tcp"},
                    ],
                }
            },
        }


def build_descriptor(
    project_name: str,
    image: str = DOCKER_PROXY_IMAGE,
    port: int = DOCKER_PROXY_PORT,
) -> ProxyDescriptor:
    """Describe the docker proxy unit of project_name."""
    if not project_name:
        raise ValueError("project_name must not be empty")
    return ProxyDescriptor(project_name=project_name, image=image, port=port)


def render_descriptor(descriptor: ProxyDescriptor) -> str:
    """Serialize the descriptor as a compose YAML document."""
    return yaml.safe_dump(descriptor.to_compose_model(), sort_keys=False)
