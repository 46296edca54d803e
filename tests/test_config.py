"""Tests for YAML run configuration."""

import logging

import pytest

from mtt_graph.config import MTTConfig, config_from_dict, load_config


class TestDefaults:
    def test_defaults(self):
        config = MTTConfig()
        assert config.policy == "star"
        assert config.root_id is None
        assert config.max_depth is None
        assert config.level == logging.WARNING


class TestLoadConfig:
    def test_full(self, tmp_path):
        path = tmp_path / "mtt.yaml"
        path.write_text("policy: canonical-root\nroot_id: f1\nmax_depth: 200\nlog_level: debug\n")
        config = load_config(path)
        assert config == MTTConfig(policy="canonical-root", root_id="f1", max_depth=200, log_level="DEBUG")
        assert config.level == logging.DEBUG

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == MTTConfig()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- star\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")


class TestValidation:
    def test_unknown_key(self):
        with pytest.raises(ValueError, match="colour"):
            config_from_dict({"policy": "star", "colour": "red"})

    def test_bad_policy(self):
        with pytest.raises(ValueError, match="radial"):
            config_from_dict({"policy": "radial"})

    @pytest.mark.parametrize("depth", [-1, "deep", 1.5])
    def test_bad_max_depth(self, depth):
        with pytest.raises(ValueError):
            config_from_dict({"max_depth": depth})

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            config_from_dict({"log_level": "chatty"})

    def test_nested_policy(self):
        assert config_from_dict({"policy": "nested"}).policy == "nested"
