"""Tests for configuration loading and validation."""

import json

import pytest

from querydoctor.config import (
    Config,
    get_config,
    load_config_from_env,
    load_config_from_file,
    reset_config,
)
from querydoctor.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestFromMapping:
    """Flat and nested settings maps."""

    def test_flat_keys(self):
        config = Config.from_mapping({"n_plus_one.threshold": 8, "slow_query.threshold_ms": 250})

        assert config.get_rule_threshold("n_plus_one", "threshold") == 8
        assert config.get_rule_threshold("slow_query", "threshold_ms") == 250
        assert config.rule_settings("n_plus_one") == {"enabled": True, "threshold": 8}

    def test_nested_analyzers_section(self):
        config = Config.from_mapping({"analyzers": {"frequent_query": {"threshold": 20}}})

        assert config.get_rule_threshold("frequent_query", "threshold") == 20

    def test_missing_settings_use_defaults(self):
        config = Config.from_mapping({})

        assert config.get_rule_threshold("n_plus_one", "threshold", 5) == 5
        assert config.rule_settings("n_plus_one") == {}
        assert config.is_rule_enabled("n_plus_one")

    def test_disable_analyzer(self):
        config = Config.from_mapping({"frequent_query.enabled": False})

        assert not config.is_rule_enabled("frequent_query")

    def test_string_values_are_coerced(self):
        config = Config.from_mapping({"slow_query.threshold_ms": "2.5", "hydration.enabled": "no"})

        assert config.get_rule_threshold("slow_query", "threshold_ms") == 2.5
        assert not config.is_rule_enabled("hydration")

    def test_unknown_keys_are_ignored(self):
        config = Config.from_mapping({"whatever": 1, "unknown_rule.threshold": 3})

        assert config.is_rule_enabled("n_plus_one")

    def test_global_settings(self):
        config = Config.from_mapping({"parallel": True, "max_workers": 8, "fail_fast": True})

        assert config.parallel
        assert config.max_workers == 8
        assert config.fail_fast

    def test_negative_threshold_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_mapping({"n_plus_one.threshold": -1})

        assert exc_info.value.config_key == "n_plus_one.threshold"

    def test_non_numeric_threshold_raises(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            Config.from_mapping({"n_plus_one.threshold": "lots"})

    def test_boolean_threshold_raises(self):
        with pytest.raises(ConfigurationError):
            Config.from_mapping({"n_plus_one.threshold": True})

    def test_invalid_global_setting_raises(self):
        with pytest.raises(ConfigurationError):
            Config.from_mapping({"max_workers": 0})

    def test_non_mapping_section_raises(self):
        with pytest.raises(ConfigurationError):
            Config.from_mapping({"analyzers": ["n_plus_one"]})


class TestConfigHash:

    def test_same_settings_same_hash(self):
        a = Config.from_mapping({"n_plus_one.threshold": 8})
        b = Config.from_mapping({"n_plus_one.threshold": 8})

        assert a.config_hash() == b.config_hash()

    def test_threshold_changes_hash(self):
        a = Config.from_mapping({"n_plus_one.threshold": 8})
        b = Config.from_mapping({"n_plus_one.threshold": 9})

        assert a.config_hash() != b.config_hash()

    def test_execution_knobs_do_not_change_hash(self):
        assert Config().config_hash() == Config(parallel=True, max_workers=16).config_hash()


class TestLoaders:

    def test_load_from_env(self):
        config = load_config_from_env({
            "QUERYDOCTOR_PARALLEL": "true",
            "QUERYDOCTOR_CACHE_SIZE": "5000",
            "QUERYDOCTOR_ANALYZER_N_PLUS_ONE__THRESHOLD": "8",
            "QUERYDOCTOR_ANALYZER_FREQUENT_QUERY__ENABLED": "false",
        })

        assert config.parallel
        assert config.cache_size == 5000
        assert config.get_rule_threshold("n_plus_one", "threshold") == 8
        assert not config.is_rule_enabled("frequent_query")

    def test_malformed_env_key_is_ignored(self):
        config = load_config_from_env({"QUERYDOCTOR_ANALYZER_N_PLUS_ONE": "8"})

        assert config.analyzers == {}

    def test_invalid_env_threshold_raises(self):
        with pytest.raises(ConfigurationError):
            load_config_from_env({"QUERYDOCTOR_ANALYZER_N_PLUS_ONE__THRESHOLD": "-3"})

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "querydoctor.yaml"
        path.write_text(
            "analyzers:\n"
            "  n_plus_one:\n"
            "    threshold: 7\n"
            "slow_query.threshold_ms: 50\n"
            "max_issues_per_rule: 10\n"
        )

        config = load_config_from_file(path)

        assert config.get_rule_threshold("n_plus_one", "threshold") == 7
        assert config.get_rule_threshold("slow_query", "threshold_ms") == 50
        assert config.max_issues_per_rule == 10

    def test_load_json_file(self, tmp_path):
        path = tmp_path / "querydoctor.json"
        path.write_text(json.dumps({"find_all.threshold": 500}))

        assert load_config_from_file(path).get_rule_threshold("find_all", "threshold") == 500

    def test_empty_yaml_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")

        assert load_config_from_file(path) == Config()

    def test_broken_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("analyzers: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Failed to load config"):
            load_config_from_file(path)

    def test_non_mapping_file_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- n_plus_one\n")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config_from_file(path)

    def test_get_config_reads_config_file(self, tmp_path, monkeypatch):
        path = tmp_path / "querydoctor.yaml"
        path.write_text("n_plus_one.threshold: 12\n")
        monkeypatch.setenv("QUERYDOCTOR_CONFIG_FILE", str(path))

        config = get_config()

        assert config.get_rule_threshold("n_plus_one", "threshold") == 12
        assert get_config() is config
