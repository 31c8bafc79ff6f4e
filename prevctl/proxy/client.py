# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Query the docker proxy for the project's tunnels.

The proxy listens on the remote machine only, so the request goes through
a short-lived local TCP forward over the SSH session.
"""

from __future__ import annotations

import asyncio

import asyncssh
import requests
from pydantic import ValidationError

from prevctl.errors import MalformedResponse, QueryFailed
from prevctl.models.tunnels import TunnelsResponse
from prevctl.proxy.locator import ProxyAddress
from prevctl.ssh.session import SSHSession
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

TUNNELS_PATH = "/tunnels"


def _fetch(url: str, timeout: float) -> str:
    response = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
    response.raise_for_status()
    return response.text


def parse_tunnels_response(body: str) -> TunnelsResponse:
    """Parse a /tunnels response body.

    Raises:
        MalformedResponse: Body is not JSON or does not match the tunnel model
    """
    try:
        return TunnelsResponse.model_validate_json(body)
    except ValidationError as e:
        snippet = body[:200]
        raise MalformedResponse(
            f"Unexpected response from docker proxy: {e.error_count()} error(s), body starts with {snippet!r}",
        ) from e


async def query_tunnels(
    session: SSHSession, proxy: ProxyAddress, timeout: float = 30.0
) -> TunnelsResponse:
    """GET /tunnels from the proxy through the SSH session.

    Raises:
        QueryFailed: Forward, connection, timeout or HTTP status error
        MalformedResponse: The proxy answered with an unexpected body
    """
    try:
        listener = await session.forward_local_port(proxy.host, proxy.port)
    except (OSError, asyncssh.Error) as e:
        raise QueryFailed(f"Cannot forward to docker proxy at {proxy.url}: {e}") from e

    try:
        url = f"{proxy.scheme}://127.0.0.1:{listener.get_port()}{TUNNELS_PATH}"
        logger.debug(f"Querying {proxy.url}{TUNNELS_PATH} via {url}")
        loop = asyncio.get_running_loop()
        try:
            body = await loop.run_in_executor(None, _fetch, url, timeout)
        except requests.exceptions.HTTPError as e:
            raise QueryFailed(
                f"Docker proxy at {proxy.url} answered {e.response.status_code}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise QueryFailed(f"Failed to query docker proxy at {proxy.url}: {e}") from e
    finally:
        listener.close()
        await listener.wait_closed()

    return parse_tunnels_response(body)
