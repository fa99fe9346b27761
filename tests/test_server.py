"""Tests for listener binding and serving."""

from __future__ import annotations

import asyncio
import socket

import httpx
import pytest

from instrumentation_demo.core.errors import InvalidListenAddressError, ListenerBindError
from instrumentation_demo.server import bind_socket, build_listeners, serve
from tests._support.helpers import make_settings, parse_exposition, sample_values


@pytest.fixture
def busy_port():
    """A port with a socket already listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen()
    yield sock.getsockname()[1]
    sock.close()


def _close(listeners):
    for listener in listeners:
        listener.sock.close()


class TestBindSocket:
    def test_ephemeral_port(self):
        sock = bind_socket("127.0.0.1:0")
        try:
            host, port = sock.getsockname()
            assert host == "127.0.0.1"
            assert port > 0
        finally:
            sock.close()

    def test_port_in_use(self, busy_port):
        with pytest.raises(ListenerBindError) as exc_info:
            bind_socket(f"127.0.0.1:{busy_port}")
        assert exc_info.value.context.address == f"127.0.0.1:{busy_port}"

    def test_invalid_address(self):
        with pytest.raises(InvalidListenAddressError):
            bind_socket("no-port")


class TestBuildListeners:
    def test_single_listener(self):
        listeners = build_listeners(make_settings(listen="127.0.0.1:0"))
        try:
            assert [listener.name for listener in listeners] == ["main"]
        finally:
            _close(listeners)

    def test_separate_metrics_listener(self):
        listeners = build_listeners(
            make_settings(listen="127.0.0.1:0", listen_metrics="127.0.0.1:0")
        )
        try:
            assert [listener.name for listener in listeners] == ["main", "metrics"]
            assert listeners[0].server.config.app is not listeners[1].server.config.app
        finally:
            _close(listeners)

    def test_metrics_bind_failure_is_reported(self, busy_port):
        with pytest.raises(ListenerBindError):
            build_listeners(
                make_settings(listen="127.0.0.1:0", listen_metrics=f"127.0.0.1:{busy_port}")
            )


class TestServe:
    @pytest.mark.asyncio
    async def test_serves_until_a_listener_stops(self):
        listeners = build_listeners(
            make_settings(listen="127.0.0.1:0", listen_metrics="127.0.0.1:0")
        )
        main, scrape = listeners
        main_port = main.sock.getsockname()[1]
        metrics_port = scrape.sock.getsockname()[1]

        task = asyncio.create_task(serve(listeners))
        try:
            for _ in range(200):
                if main.server.started and scrape.server.started:
                    break
                await asyncio.sleep(0.01)
            assert main.server.started and scrape.server.started

            async with httpx.AsyncClient(trust_env=False) as client:
                cpu = await client.get(f"http://127.0.0.1:{main_port}/cpu")
                exposed = await client.get(f"http://127.0.0.1:{metrics_port}/metrics")
                missing = await client.get(f"http://127.0.0.1:{main_port}/metrics")

            assert cpu.text == "The cpu temperature is 37.00°C\n"
            families = parse_exposition(exposed.text)
            assert sample_values(families["cpu_temperature_celsius"], "cpu_temperature_celsius") == [
                ({}, 37.0)
            ]
            assert missing.status_code == 404

            main.server.should_exit = True
            await asyncio.wait_for(task, timeout=10)
        finally:
            if not task.done():
                for listener in listeners:
                    listener.server.should_exit = True
                await asyncio.wait_for(task, timeout=10)

        assert task.done()
        assert task.exception() is None
