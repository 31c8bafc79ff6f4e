# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Flattening and filtering of discovered tunnels."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from prevctl.models.tunnels import TunnelAddress, TunnelsResponse


@dataclass(frozen=True)
class FlatTunnel:
    """One reachable URL of one container port of one service."""

    service: str
    port: int
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TunnelFilter:
    """Optional service/port selection.

    port only applies together with service; a port-only filter selects
    everything.
    """

    service: Optional[str] = None
    port: Optional[int] = None

    def matches(self, tunnel: FlatTunnel) -> bool:
        if not self.service:
            return True
        return tunnel.service == self.service and (
            self.port is None or tunnel.port == self.port
        )


RawTunnels = Union[TunnelsResponse, Mapping[str, Mapping[str, Mapping[Any, Iterable[Any]]]]]


def _address_url(address: Union[TunnelAddress, str]) -> str:
    if isinstance(address, TunnelAddress):
        return address.url
    return str(address)


def flatten_tunnels(raw: RawTunnels) -> List[FlatTunnel]:
    """Flatten env -> service -> port -> addresses into FlatTunnel records.

    Walks every level in iteration order and emits one record per address,
    so ports without addresses produce nothing.
    """
    if isinstance(raw, TunnelsResponse):
        raw = raw.tunnels

    return [
        FlatTunnel(service=service, port=int(port), url=_address_url(address))
        for services in raw.values()
        for service, ports in services.items()
        for port, addresses in ports.items()
        for address in addresses
    ]


def select_tunnels(
    tunnels: Iterable[FlatTunnel], criteria: Optional[TunnelFilter] = None
) -> List[FlatTunnel]:
    """Return the tunnels matching criteria, in their original order."""
    if criteria is None:
        return list(tunnels)
    return [tunnel for tunnel in tunnels if criteria.matches(tunnel)]
