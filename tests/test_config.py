"""Tests for the user config file and logging setup.

Run:  python -m pytest tests/test_config.py -v
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import histoboard._config as cfg


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    monkeypatch.setattr(cfg, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(cfg, "CONFIG_FILE", tmp_path / "config.json")
    monkeypatch.delenv("HISTOBOARD_LOG_LEVEL", raising=False)
    monkeypatch.delenv("HISTOBOARD_LAYOUTS_DIR", raising=False)
    return tmp_path


class TestConfig:
    def test_defaults(self, config_home):
        data = cfg.load_config()
        assert data["default_bin_count"] == 10
        assert data["outlier_warning_fraction"] == 0.10
        assert data["log_level"] == "WARNING"
        assert data["layouts_dir"] == str(config_home / "layouts")

    def test_save_and_load(self, config_home):
        cfg.save_config({"default_bin_count": 25})
        data = cfg.load_config()
        assert data["default_bin_count"] == 25
        assert data["log_level"] == "WARNING"

    def test_env_overrides_file(self, config_home, monkeypatch):
        cfg.save_config({"layouts_dir": "/from/file"})
        monkeypatch.setenv("HISTOBOARD_LAYOUTS_DIR", str(config_home / "env"))
        assert cfg.layouts_dir() == config_home / "env"

    def test_corrupt_file_ignored(self, config_home, caplog):
        (config_home / "config.json").write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="histoboard"):
            data = cfg.load_config()
        assert data["default_bin_count"] == 10
        assert "unreadable" in caplog.text

    def test_non_dict_file_ignored(self, config_home):
        (config_home / "config.json").write_text(json.dumps([1, 2]))
        assert cfg.load_config()["default_bin_count"] == 10

    def test_layouts_dir_expands_user(self):
        path = cfg.layouts_dir({"layouts_dir": "~/layouts"})
        assert "~" not in str(path)


class TestLogging:
    def teardown_method(self):
        logger = logging.getLogger("histoboard")
        for h in list(logger.handlers):
            if h.get_name() == "histoboard-console":
                logger.removeHandler(h)
        logger.setLevel(logging.NOTSET)

    def test_single_handler(self):
        cfg.configure_logging("INFO")
        cfg.configure_logging("DEBUG")
        logger = logging.getLogger("histoboard")
        named = [h for h in logger.handlers if h.get_name() == "histoboard-console"]
        assert len(named) == 1
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back(self):
        logger = cfg.configure_logging("LOUD")
        assert logger.level == logging.WARNING

    def test_level_from_env(self, config_home, monkeypatch):
        monkeypatch.setenv("HISTOBOARD_LOG_LEVEL", "error")
        logger = cfg.configure_logging()
        assert logger.level == logging.ERROR

    def test_root_logger_untouched(self):
        before = list(logging.getLogger().handlers)
        cfg.configure_logging("INFO")
        assert logging.getLogger().handlers == before
