# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Exceptions raised during a discovery cycle.

Every error names the stage that failed so the CLI can tell
"never reached the proxy" apart from "reached it but got garbage".
"""

from typing import Optional


class PrevctlError(Exception):
    """Base exception for all prevctl errors."""

    stage = "discovery"

    def __init__(self, message: str, hint: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.hint = hint
        if stage:
            self.stage = stage


class ConfigurationError(PrevctlError):
    """Missing or invalid local configuration or identity."""

    stage = "configuration"


class KeyPairNotFound(ConfigurationError):
    """No private key is stored under the requested alias."""

    def __init__(self, alias: str):
        super().__init__(
            f"No key pair found for alias {alias}",
            hint=f"Place the private key at ~/.config/prevctl/ssh/{alias}",
        )
        self.alias = alias


class MachineNotFound(ConfigurationError):
    """The environment id is not present in the machine registry."""

    def __init__(self, env_id: str):
        super().__init__(
            f"No machine found for envId {env_id}",
            hint="Check the --id option or ~/.config/prevctl/machines.yml",
        )
        self.env_id = env_id


class AmbientIdentityError(ConfigurationError):
    """Project name or environment id could not be inferred."""

    stage = "identity"


class TransportError(PrevctlError):
    """Network-level failure talking to the remote machine."""

    stage = "transport"


class SessionError(TransportError):
    """SSH session could not be established."""

    stage = "ssh"


class ForwardingError(TransportError):
    """Docker socket forwarding could not be set up."""

    stage = "forward"


class QueryFailed(TransportError):
    """The docker proxy could not be reached or returned an error status."""

    stage = "query"


class ProtocolError(PrevctlError):
    """The remote side answered with something we cannot interpret."""

    stage = "protocol"


class MalformedResponse(ProtocolError):
    """The docker proxy response does not match the tunnel model."""


class ProxyUnavailable(PrevctlError):
    """The docker proxy has no resolvable address."""

    stage = "locate"
