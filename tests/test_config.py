"""Tests for meta-fuse configuration management."""

import json
from unittest.mock import patch

import pytest

from meta_fuse.config import (
    CacheConfig, FuseConfig, HealthConfig,
    load_config, parse_bool, parse_id, parse_perm, read_fuse_config,
)


class TestDataClasses:
    """Tests for config data classes."""

    def test_fuse_config_defaults(self):
        cfg = FuseConfig()
        assert cfg.api_url == "http://localhost:3000"
        assert cfg.uid == 1000
        assert cfg.gid == 1000
        assert cfg.file_perm == 0o755
        assert cfg.dir_perm == 0o755
        assert cfg.allow_other is True
        assert cfg.http_timeout == 30.0

    def test_cache_and_health_defaults(self):
        assert CacheConfig().attr_ttl == 30.0
        assert CacheConfig().dir_ttl == 30.0
        assert CacheConfig().entry_timeout == 1.0
        assert HealthConfig().error_threshold == 3

    def test_mutable_defaults_isolated(self):
        a = FuseConfig()
        b = FuseConfig()
        a.cache.attr_ttl = 5.0
        assert b.cache.attr_ttl == 30.0


class TestParsers:

    def test_parse_perm_octal_string(self):
        assert parse_perm("644", "X") == 0o644
        assert parse_perm("0755", "X") == 0o755

    def test_parse_perm_int_passthrough(self):
        assert parse_perm(0o500, "X") == 0o500

    def test_parse_perm_rejects_non_octal(self):
        with pytest.raises(ValueError, match="FUSE_FILE_PERM"):
            parse_perm("789", "FUSE_FILE_PERM")

    def test_parse_perm_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            parse_perm("77777", "X")

    def test_parse_id(self):
        assert parse_id("1001", "PUID") == 1001

    def test_parse_id_rejects_garbage(self):
        with pytest.raises(ValueError, match="PUID"):
            parse_id("abc", "PUID")

    def test_parse_id_rejects_negative(self):
        with pytest.raises(ValueError):
            parse_id("-1", "PUID")

    @pytest.mark.parametrize("text,expected", [
        ("true", True), ("1", True), ("YES", True),
        ("false", False), ("0", False), ("off", False),
    ])
    def test_parse_bool(self, text, expected):
        assert parse_bool(text, "X") is expected

    def test_parse_bool_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_bool("maybe", "X")


class TestReadFuseConfig:

    def test_returns_none_when_missing(self, tmp_path):
        assert read_fuse_config(tmp_path / "missing.json") is None

    def test_reads_valid_json(self, tmp_path):
        cfg = tmp_path / "fuse.json"
        cfg.write_text(json.dumps({"api_url": "http://test:3000"}))
        assert read_fuse_config(cfg) == {"api_url": "http://test:3000"}

    def test_returns_none_on_invalid_json(self, tmp_path):
        cfg = tmp_path / "fuse.json"
        cfg.write_text("not json {{{")
        assert read_fuse_config(cfg) is None


class TestLoadConfig:
    """Tests for the CLI > env > file > default resolution."""

    def test_defaults_with_nothing_set(self, tmp_path):
        cfg = load_config(config_path=tmp_path / "none.json", environ={})
        assert cfg == FuseConfig()

    def test_env_overrides_defaults(self, tmp_path):
        env = {
            "FUSE_API_URL": "http://env:3000/",
            "PUID": "1001",
            "PGID": "1002",
            "FUSE_FILE_PERM": "644",
            "FUSE_DIR_PERM": "750",
            "FUSE_ALLOW_OTHER": "false",
        }
        cfg = load_config(config_path=tmp_path / "none.json", environ=env)
        assert cfg.api_url == "http://env:3000"
        assert cfg.uid == 1001
        assert cfg.gid == 1002
        assert cfg.file_perm == 0o644
        assert cfg.dir_perm == 0o750
        assert cfg.allow_other is False

    def test_file_values_applied(self, tmp_path):
        path = tmp_path / "fuse.json"
        path.write_text(json.dumps({
            "api_url": "http://file:3000",
            "uid": 500,
            "file_perm": "600",
            "cache": {"attr_ttl": 10},
            "health": {"error_threshold": 5},
        }))
        cfg = load_config(config_path=path, environ={})
        assert cfg.api_url == "http://file:3000"
        assert cfg.uid == 500
        assert cfg.file_perm == 0o600
        assert cfg.cache.attr_ttl == 10.0
        assert cfg.cache.dir_ttl == 30.0
        assert cfg.health.error_threshold == 5

    def test_env_beats_file(self, tmp_path):
        path = tmp_path / "fuse.json"
        path.write_text(json.dumps({"api_url": "http://file:3000", "uid": 500}))
        cfg = load_config(config_path=path, environ={"PUID": "700"})
        assert cfg.api_url == "http://file:3000"
        assert cfg.uid == 700

    def test_cli_beats_env(self, tmp_path):
        env = {"FUSE_API_URL": "http://env:3000", "PUID": "1001"}
        cfg = load_config(
            cli_api_url="http://cli:3000",
            cli_uid="2000",
            cli_allow_other=False,
            cli_startup_wait=5.0,
            config_path=tmp_path / "none.json",
            environ=env,
        )
        assert cfg.api_url == "http://cli:3000"
        assert cfg.uid == 2000
        assert cfg.allow_other is False
        assert cfg.startup_wait == 5.0

    def test_invalid_env_raises(self, tmp_path):
        with pytest.raises(ValueError, match="PGID"):
            load_config(config_path=tmp_path / "none.json", environ={"PGID": "x"})

    def test_default_path_used_when_not_given(self, tmp_path):
        path = tmp_path / "fuse.json"
        path.write_text(json.dumps({"gid": 42}))
        with patch("meta_fuse.config.get_fuse_config_path", return_value=path):
            cfg = load_config(environ={})
        assert cfg.gid == 42
