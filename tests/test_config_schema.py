"""Tests for the unified YAML config schema."""

import pytest
from pydantic import ValidationError

from pin_mirror.config_schema import (
    LoggingConfig,
    PinataConfig,
    SyncConfig,
    UnifiedConfig,
    build_config,
    to_fallbacks,
)


class TestBuildConfig:
    def test_empty_is_defaults(self):
        unified = build_config({})
        assert unified == UnifiedConfig()
        assert unified.pinata.page_limit == 1000
        assert unified.server.port is None
        assert unified.logging.format == "text"

    def test_sections(self):
        unified = build_config(
            {
                "pinata": {"jwt": "abc", "max_parallel_requests": 4},
                "sync": {"watch_directory": "/srv", "managed_groups": "a, b"},
                "server": {"port": 3000},
                "logging": {"level": "DEBUG", "format": "json"},
            }
        )
        assert unified.pinata.jwt == "abc"
        assert unified.pinata.max_parallel_requests == 4
        assert unified.sync.managed_groups == ["a", "b"]
        assert unified.server.port == 3000
        assert unified.logging.format == "json"

    def test_frozen(self):
        unified = build_config({})
        with pytest.raises(ValidationError):
            unified.pinata = PinataConfig()


class TestValidation:
    @pytest.mark.parametrize("limit", [0, 1001])
    def test_page_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            PinataConfig(page_limit=limit)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            SyncConfig(interval=0)

    def test_log_format(self):
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_port_bounds(self):
        with pytest.raises(ValidationError):
            build_config({"server": {"port": 70000}})


class TestToFallbacks:
    def test_drops_none_values(self):
        flat = to_fallbacks(UnifiedConfig())
        assert "jwt" not in flat
        assert "watch_directory" not in flat
        assert "managed_groups" not in flat
        assert "port" not in flat
        assert flat["page_limit"] == 1000
        assert flat["host"] == "127.0.0.1"

    def test_flattens_sections(self):
        flat = to_fallbacks(
            build_config(
                {
                    "pinata": {"jwt": "abc", "api_url": "https://p.example"},
                    "sync": {"managed_groups": ["photos"], "interval": 30},
                    "server": {"host": "0.0.0.0", "port": 8080},
                }
            )
        )
        assert flat["jwt"] == "abc"
        assert flat["api_url"] == "https://p.example"
        assert flat["managed_groups"] == ["photos"]
        assert flat["interval"] == 30
        assert flat["port"] == 8080
