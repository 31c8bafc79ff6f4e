# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tests for the full discovery cycle with fake collaborators."""

import asyncio
import logging
from unittest.mock import AsyncMock, patch

import pytest

from prevctl.discovery import DiscoveryRequest, discover_urls
from prevctl.errors import (
    AmbientIdentityError,
    ConfigurationError,
    KeyPairNotFound,
    MachineNotFound,
    MalformedResponse,
    ProxyUnavailable,
    QueryFailed,
)
from prevctl.models.tunnels import TunnelsResponse
from prevctl.proxy.locator import ProxyAddress
from prevctl.tunnels import FlatTunnel

PROXY = ProxyAddress(host="localhost", port=49153)
RESPONSE = TunnelsResponse.model_validate(
    {
        "tunnels": {
            "myapp-main": {
                "web": {"80": ["http://10.0.0.2:32768", "http://10.0.0.2:32770"]},
                "api": {"8080": ["http://10.0.0.2:32769"]},
            }
        }
    }
)


class FakeLocator:
    def __init__(self, address=PROXY, error=None):
        self.address = address
        self.error = error
        self.descriptors = []
        self.docker_hosts = []

    async def locate(self, descriptor):
        self.descriptors.append(descriptor)
        if self.error:
            raise self.error
        return self.address


@pytest.fixture(autouse=True)
def docker_ping():
    with patch("prevctl.ssh.forward._ping_docker") as ping:
        yield ping


@pytest.fixture
def locator():
    return FakeLocator()


@pytest.fixture
def run(fake_session, locator, host_config, key_store, machines):
    """Run a discovery cycle with fakes; keyword overrides replace collaborators."""

    def _run(request=None, **overrides):
        def locator_factory(forward, config):
            locator.docker_hosts.append(forward.docker_host)
            return locator

        kwargs = dict(
            config=host_config,
            key_store=key_store,
            machines=machines,
            session_factory=AsyncMock(return_value=fake_session),
            locator_factory=locator_factory,
            query=AsyncMock(return_value=RESPONSE),
        )
        kwargs.update(overrides)
        request = request or DiscoveryRequest(env_id="myapp-main", project_name="myapp")
        return asyncio.run(discover_urls(request, **kwargs))

    return _run


class TestDiscoverUrls:
    def test_success(self, run, fake_session, locator, host_config):
        result = run()

        assert result.env_id == "myapp-main"
        assert result.project_name == "myapp"
        assert result.machine.public_ip_address == "203.0.113.10"
        assert result.tunnels == [
            FlatTunnel("web", 80, "http://10.0.0.2:32768"),
            FlatTunnel("web", 80, "http://10.0.0.2:32770"),
            FlatTunnel("api", 8080, "http://10.0.0.2:32769"),
        ]
        assert locator.descriptors[0].project_name == "myapp"
        assert locator.docker_hosts == [f"unix://{host_config.local_docker_socket}"]
        assert fake_session.dispose_calls == 1
        assert fake_session.path_listeners[0].close_calls == 1

    def test_filters_applied(self, run):
        result = run(DiscoveryRequest(env_id="myapp-main", project_name="myapp", service="api"))

        assert result.tunnels == [FlatTunnel("api", 8080, "http://10.0.0.2:32769")]

    def test_port_without_service_ignored(self, run):
        result = run(DiscoveryRequest(env_id="myapp-main", project_name="myapp", port=80))

        assert len(result.tunnels) == 3

    def test_query_runs_inside_forward_scope(self, run, fake_session):
        seen = {}

        async def query(session, proxy, timeout):
            seen["proxy"] = proxy
            seen["timeout"] = timeout
            seen["forward_open"] = fake_session.path_listeners[0].close_calls == 0
            return RESPONSE

        run(query=query)

        assert seen == {"proxy": PROXY, "timeout": 30.0, "forward_open": True}

    def test_outcome_logged(self, run, caplog):
        caplog.set_level(logging.INFO, logger="prevctl.discovery")

        run()

        assert "3 tunnel(s) for myapp-main on 203.0.113.10" in caplog.text

    def test_session_connected_with_machine_and_key(self, run, fake_session, host_config):
        session_factory = AsyncMock(return_value=fake_session)

        run(session_factory=session_factory)

        machine, key, config = session_factory.await_args.args
        assert machine.ssh_username == "ubuntu"
        assert key.alias == "default"
        assert config is host_config


class TestDiscoveryFailures:
    def test_missing_key_pair_fails_before_network(self, run, tmp_path):
        from prevctl.state.keys import KeyStore

        session_factory = AsyncMock()

        with pytest.raises(KeyPairNotFound) as exc_info:
            run(key_store=KeyStore(tmp_path / "empty"), session_factory=session_factory)

        assert "No key pair found for alias default" in str(exc_info.value)
        session_factory.assert_not_called()

    def test_missing_machine(self, run):
        session_factory = AsyncMock()

        with pytest.raises(MachineNotFound) as exc_info:
            run(
                DiscoveryRequest(env_id="unknown", project_name="myapp"),
                session_factory=session_factory,
            )

        assert "No machine found for envId unknown" in str(exc_info.value)
        session_factory.assert_not_called()

    def test_query_failure_releases_everything_once(self, run, fake_session):
        query = AsyncMock(side_effect=QueryFailed("Connection refused"))

        with pytest.raises(QueryFailed):
            run(query=query)

        assert fake_session.dispose_calls == 1
        assert fake_session.path_listeners[0].close_calls == 1

    def test_malformed_response_releases_everything_once(self, run, fake_session):
        with pytest.raises(MalformedResponse):
            run(query=AsyncMock(side_effect=MalformedResponse("garbage")))

        assert fake_session.dispose_calls == 1
        assert fake_session.path_listeners[0].close_calls == 1

    def test_proxy_unavailable_still_cleans_up(self, run, fake_session):
        locator = FakeLocator(error=ProxyUnavailable("no published address after 2 attempts"))
        query = AsyncMock()

        with pytest.raises(ProxyUnavailable):
            run(locator_factory=lambda forward, config: locator, query=query)

        query.assert_not_called()
        assert fake_session.dispose_calls == 1
        assert fake_session.path_listeners[0].close_calls == 1

    def test_cancellation_releases_everything(
        self, fake_session, host_config, key_store, machines
    ):
        async def main():
            started = asyncio.Event()

            async def query(session, proxy, timeout):
                started.set()
                await asyncio.sleep(60)

            task = asyncio.create_task(
                discover_urls(
                    DiscoveryRequest(env_id="myapp-main", project_name="myapp"),
                    config=host_config,
                    key_store=key_store,
                    machines=machines,
                    session_factory=AsyncMock(return_value=fake_session),
                    locator_factory=lambda forward, config: FakeLocator(),
                    query=query,
                )
            )
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(main())

        assert fake_session.dispose_calls == 1
        assert fake_session.path_listeners[0].close_calls == 1


    def test_invalid_key_alias_in_config(self, run, tmp_path):
        from prevctl.host_config import HostConfig

        path = tmp_path / "bad-alias.yml"
        path.write_text("driver:\n  key_pair_alias: ../x\n")
        session_factory = AsyncMock()

        with pytest.raises(ConfigurationError) as exc_info:
            run(config=HostConfig(path), session_factory=session_factory)

        assert exc_info.value.stage == "configuration"
        session_factory.assert_not_called()


class TestAmbientIdentity:
    def test_project_and_env_from_context(self, run, tmp_path):
        project_dir = tmp_path / "myapp"
        project_dir.mkdir()
        (project_dir / "compose.yaml").write_text("services: {}\n")

        with patch("prevctl.env_id.get_current_branch", return_value="main"):
            result = run(DiscoveryRequest(project_dir=project_dir))

        assert result.project_name == "myapp"
        assert result.env_id == "myapp-main"

    def test_no_branch(self, run):
        session_factory = AsyncMock()

        with patch("prevctl.env_id.get_current_branch", return_value=None):
            with pytest.raises(AmbientIdentityError):
                run(DiscoveryRequest(project_name="myapp"), session_factory=session_factory)

        session_factory.assert_not_called()
