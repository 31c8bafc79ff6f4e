# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pydantic models for the docker proxy's /tunnels response.

The response is nested as env id -> service -> container port -> addresses:

    {"tunnels": {"env1": {"web": {"80": ["http://10.0.0.2:32768"]}}}}

Older proxies answer with a list of per-service entries instead:

    {"tunnels": [{"project": "env1", "service": "web", "ports": {"80": [...]}}]}

Both are normalized into the nested form. Dict ordering follows the response.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class TunnelAddress(BaseModel):
    """A published, host-reachable address of a container port."""

    model_config = ConfigDict(frozen=True)

    url: str

    @model_validator(mode="before")
    @classmethod
    def from_url_or_parts(cls, data: Any) -> Any:
        """Accept a bare URL string or a {scheme, host, port} object."""
        if isinstance(data, str):
            return {"url": data}
        if isinstance(data, dict) and "url" not in data and "host" in data:
            host = data["host"]
            scheme = data.get("scheme") or "http"
            port = data.get("port")
            path = data.get("path") or ""
            if not isinstance(host, str) or not isinstance(scheme, str) or not isinstance(path, str):
                raise ValueError("host, scheme and path must be strings")
            netloc = host
            if port is not None:
                if isinstance(port, bool) or not isinstance(port, (int, str)):
                    raise ValueError(f"Invalid port: {port!r}")
                netloc = f"{netloc}:{int(port)}"
            return {"url": f"{scheme}://{netloc}{path}"}
        return data

    @field_validator("url", mode="after")
    @classmethod
    def validate_url(cls, url: str) -> str:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Not an absolute URL: {url!r}")
        return url

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname or ""

    @property
    def port(self) -> Optional[int]:
        return urlsplit(self.url).port


# service -> container port -> addresses
ServiceTunnels = Dict[str, Dict[int, List[TunnelAddress]]]


class TunnelsResponse(BaseModel):
    """Parsed body of the docker proxy's /tunnels endpoint."""

    model_config = ConfigDict(frozen=True)

    tunnels: Dict[str, ServiceTunnels]

    @field_validator("tunnels", mode="before")
    @classmethod
    def group_tunnel_list(cls, value: Any) -> Any:
        """Convert the list form into env id -> service -> ports."""
        if not isinstance(value, list):
            return value

        grouped: Dict[str, Dict[str, Any]] = {}
        for entry in value:
            if not isinstance(entry, dict) or not isinstance(entry.get("service"), str):
                raise ValueError(f"Invalid tunnel entry: {entry!r}")
            env_id = entry.get("project") or entry.get("envId") or ""
            if not isinstance(env_id, str):
                raise ValueError(f"Invalid tunnel project: {env_id!r}")
            grouped.setdefault(env_id, {})[entry["service"]] = entry.get("ports") or {}
        return grouped
