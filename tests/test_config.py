"""Tests for settings loading and validation."""

import tempfile
from pathlib import Path

import pytest
import yaml

from anonboard.board import Board
from anonboard.config import Settings, load_settings
from anonboard.errors import ConfigurationError


def test_yaml_file_and_env_override():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "anonboard.yaml"
        path.write_text(yaml.dump({"server_secret": "from-file", "report_threshold": 5}))

        settings = load_settings(path, env={"ANONBOARD_SERVER_SECRET": "from-env",
                                            "ANONBOARD_TRENDING_THRESHOLD": "7"})
        assert settings.server_secret == "from-env"
        assert settings.report_threshold == 5
        assert settings.trending_threshold == 7


def test_missing_default_file_is_fine():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = load_settings(env={"ANONBOARD_DATA_DIR": tmpdir})
        assert settings.data_dir == tmpdir
        assert settings.server_secret == ""


def test_missing_explicit_file_is_an_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigurationError):
            load_settings(Path(tmpdir) / "nope.yaml", env={})


def test_unknown_keys_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "anonboard.yaml"
        path.write_text(yaml.dump({"server_secret": "x", "secert": "typo"}))
        with pytest.raises(ConfigurationError):
            load_settings(path, env={})


def test_bad_integer_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(env={"ANONBOARD_REPORT_THRESHOLD": "three"})


def test_board_refuses_blank_secret():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigurationError):
            Board(Settings(server_secret="", data_dir=tmpdir))
        with pytest.raises(ConfigurationError):
            Board(Settings(server_secret="S", data_dir=tmpdir, report_threshold=0))
