"""Unit tests for Config and LayoutConfig (pagesmith.config).

Tests cover:
- LayoutConfig defaults and as_dict
- Config defaults, derived paths, validation
- save/load round-trip and from_env
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from pagesmith.config import Config, LayoutConfig


# ---------------------------------------------------------------------------
# LayoutConfig
# ---------------------------------------------------------------------------


class TestLayoutConfig:
    @pytest.mark.unit
    def test_defaults(self):
        layout = LayoutConfig()
        assert layout.client_dir == "client"
        assert layout.server_dir == "server"
        assert layout.database_dir == "database"
        assert layout.state_dir == ".pagesmith"
        assert layout.project_file == "pagesmith.json"

    @pytest.mark.unit
    def test_as_dict(self):
        assert LayoutConfig(client_dir="web").as_dict() == {
            "client": "web",
            "server": "server",
            "database": "database",
        }

    @pytest.mark.unit
    def test_empty_dir_rejected(self):
        with pytest.raises(ValidationError):
            LayoutConfig(client_dir="")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class TestConfig:
    @pytest.mark.unit
    def test_derived_paths(self, tmp_path):
        config = Config()
        assert config.client_path(tmp_path) == tmp_path / "client"
        assert config.server_path(tmp_path) == tmp_path / "server"
        assert config.database_path(tmp_path) == tmp_path / "database"
        assert config.pages_path(tmp_path) == tmp_path / "client" / "src" / "pages"
        assert config.baseline_path(tmp_path) == tmp_path / ".pagesmith" / "baseline.json"
        assert config.project_file_path(tmp_path) == tmp_path / "pagesmith.json"

    @pytest.mark.unit
    def test_indent_bounds(self):
        assert Config(indent=2).indent == 2
        with pytest.raises(ValidationError):
            Config(indent=0)
        with pytest.raises(ValidationError):
            Config(indent=9)

    @pytest.mark.unit
    def test_save_and_load(self, tmp_path):
        config = Config(layout=LayoutConfig(server_dir="api"), indent=2)
        path = config.save(tmp_path / "nested" / "config.json")
        assert path.exists()
        loaded = Config.load(path)
        assert loaded == config

    @pytest.mark.unit
    def test_from_env(self):
        env = {
            "PAGESMITH_CLIENT_DIR": "web",
            "PAGESMITH_STATE_DIR": ".state",
            "PAGESMITH_INDENT": "2",
        }
        with patch.dict(os.environ, env, clear=False):
            config = Config.from_env()
        assert config.layout.client_dir == "web"
        assert config.layout.state_dir == ".state"
        assert config.layout.server_dir == "server"
        assert config.indent == 2

    @pytest.mark.unit
    def test_from_env_defaults(self):
        cleaned = {k: v for k, v in os.environ.items() if not k.startswith("PAGESMITH_")}
        with patch.dict(os.environ, cleaned, clear=True):
            config = Config.from_env()
        assert config == Config()
