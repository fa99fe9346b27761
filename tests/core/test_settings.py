"""Tests for DemoSettings and listen address parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from instrumentation_demo.core.errors import InvalidListenAddressError
from instrumentation_demo.core.settings import parse_listen_address
from tests._support.helpers import make_settings


class TestDefaults:
    def test_defaults(self):
        s = make_settings()
        assert s.listen == "127.0.0.1:8080"
        assert s.listen_metrics == ""
        assert s.basic_auth == ""
        assert s.devices == ["sda", "sdb"]
        assert s.initial_cpu_temperature == 37.0
        assert s.simulate is False
        assert s.log_json is None

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DEMO_LISTEN", "0.0.0.0:9000")
        monkeypatch.setenv("DEMO_SIMULATE", "true")
        monkeypatch.setenv("DEMO_DEVICES", '["nvme0", "nvme1"]')
        s = make_settings()
        assert s.listen == "0.0.0.0:9000"
        assert s.simulate is True
        assert s.devices == ["nvme0", "nvme1"]

    def test_explicit_values_win_over_env(self, monkeypatch):
        monkeypatch.setenv("DEMO_LISTEN", "0.0.0.0:9000")
        assert make_settings(listen="127.0.0.1:1234").listen == "127.0.0.1:1234"

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(simulate_interval_seconds=0)


class TestCredentials:
    def test_user_and_password(self):
        s = make_settings(basic_auth="alice:s3cret")
        assert s.credentials == ("alice", "s3cret")
        assert s.auth_enabled

    def test_password_keeps_later_colons(self):
        assert make_settings(basic_auth="alice:a:b").credentials == ("alice", "a:b")

    @pytest.mark.parametrize("value", ["", "alice", "alice:", ":s3cret"])
    def test_disabled(self, value):
        s = make_settings(basic_auth=value)
        assert s.credentials is None
        assert not s.auth_enabled


class TestParseListenAddress:
    @pytest.mark.parametrize(
        "address, expected",
        [
            ("127.0.0.1:8080", ("127.0.0.1", 8080)),
            ("localhost:0", ("localhost", 0)),
            (":9090", ("0.0.0.0", 9090)),
            ("[::1]:8080", ("::1", 8080)),
        ],
    )
    def test_valid(self, address, expected):
        assert parse_listen_address(address) == expected

    @pytest.mark.parametrize("address", ["8080", "host:port", "::1:8080", "127.0.0.1:70000", ""])
    def test_invalid(self, address):
        with pytest.raises(InvalidListenAddressError) as exc_info:
            parse_listen_address(address)
        assert exc_info.value.address == address
