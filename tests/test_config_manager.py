"""Unit tests for zim/utils/config_manager.py"""

import os

import pytest
import yaml

from zim.utils.config_manager import ConfigManager, ConfigValidationError, default_kubeconfig_path


def _write_config(tmp_path, config):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config))
    return str(path)


class TestConfigManagerInitialization:
    """Tests for ConfigManager initialization"""

    def test_loads_default_config_when_file_not_found(self, tmp_path):
        """Test that defaults are used when config file doesn't exist"""
        cm = ConfigManager(config_file=str(tmp_path / "nonexistent.yaml"))

        assert cm.get_log_source() == "journal"
        assert cm.get_log_unit() == "crio"
        assert cm.get_log_format() == "plain"
        assert cm.get_log_grep() == "pulled image"
        assert cm.get_log_markers() == ["Pulled image:"]
        assert cm.get_since() == "24"
        assert cm.get_registry_timeout() == 10
        assert cm.get_kubernetes_timeout() == 30
        assert cm.get_output_path() is None

    def test_uses_zim_config_file_env(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path, {"logs": {"unit": "cri-o"}})
        monkeypatch.setenv("ZIM_CONFIG_FILE", path)

        assert ConfigManager().get_log_unit() == "cri-o"

    def test_merges_user_config_with_defaults(self, tmp_path):
        """Test that user config is merged with defaults"""
        path = _write_config(tmp_path, {"logs": {"format": "json"}, "registry": {"timeout": 20}})

        cm = ConfigManager(config_file=path)

        # Custom values
        assert cm.get_log_format() == "json"
        assert cm.get_registry_timeout() == 20
        # Default values preserved
        assert cm.get_log_unit() == "crio"
        assert cm.get_log_timeout() == 60

    def test_environment_variables_override_config(self, tmp_path, monkeypatch):
        """Test that environment variables take precedence over the file"""
        path = _write_config(tmp_path, {"logs": {"unit": "file-unit", "since": "12"}})
        monkeypatch.setenv("ZIM_LOG_UNIT", "env-unit")
        monkeypatch.setenv("ZIM_SINCE", "6")
        monkeypatch.setenv("ZIM_LOG_FORMAT", "json")
        monkeypatch.setenv("ZIM_REGISTRY_TIMEOUT", "25")

        cm = ConfigManager(config_file=path)

        assert cm.get_log_unit() == "env-unit"
        assert cm.get_since() == "6"
        assert cm.get_log_format() == "json"
        assert cm.get_registry_timeout() == 25

    def test_set_overrides_environment(self, monkeypatch):
        """Command line values applied with set() win over environment variables"""
        monkeypatch.setenv("ZIM_SINCE", "6")
        cm = ConfigManager(validate=False)

        cm.set("logs", "since", "48")
        cm.set("logs", "unit", None)

        assert cm.get_since() == "48"
        assert cm.get_log_unit() == "crio"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logs: [unclosed\n")

        with pytest.raises(ConfigValidationError, match="Error parsing config file"):
            ConfigManager(config_file=str(path))

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigValidationError, match="must contain a mapping"):
            ConfigManager(config_file=str(path))

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert ConfigManager(config_file=str(path)).get_log_unit() == "crio"


class TestKubeconfig:
    """Tests for kubeconfig resolution"""

    def test_explicit_kubeconfig(self):
        cm = ConfigManager(validate=False)
        cm.set("kubernetes", "kubeconfig", "/etc/kube/admin.conf")
        assert cm.get_kubeconfig() == "/etc/kube/admin.conf"

    def test_kubeconfig_env(self, monkeypatch):
        monkeypatch.setenv("KUBECONFIG", os.pathsep.join(["/a/config", "/b/config"]))
        assert ConfigManager(validate=False).get_kubeconfig() == "/a/config"

    def test_home_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_kubeconfig_path() == os.path.join(str(tmp_path), ".kube", "config")


class TestLogSourceSelection:
    """Tests for get_log_source()"""

    def test_file_path_selects_file_source(self):
        cm = ConfigManager(validate=False)
        cm.set("logs", "file", "/var/log/crio.log")

        assert cm.get_log_source() == "file"
        assert cm.get_log_file() == "/var/log/crio.log"


class TestRetrySettings:
    """Tests for retry configuration"""

    def test_defaults(self):
        assert ConfigManager().get_retry_settings() == {
            "max_retries": 2,
            "initial_delay": 1.0,
            "max_delay": 10.0,
            "exponential_base": 2.0,
            "jitter": True,
        }

    def test_string_values_are_coerced(self, tmp_path):
        path = _write_config(tmp_path, {"retry": {"max_retries": "4", "initial_delay": "0.5"}})
        cm = ConfigManager(config_file=path)

        assert cm.get_max_retries() == 4
        assert cm.get_retry_initial_delay() == 0.5

    def test_bool_is_not_an_integer(self):
        cm = ConfigManager(validate=False)
        cm.set("retry", "max_retries", True)

        with pytest.raises(ConfigValidationError, match="retry.max_retries must be an integer"):
            cm.get_max_retries()


class TestConfigValidation:
    """Tests for validate_config()"""

    @pytest.mark.parametrize(
        "section, key, value, message",
        [
            ("logs", "format", "xml", "logs.format must be one of plain, json"),
            ("logs", "source", "syslog", "logs.source must be one of journal, file"),
            ("logs", "unit", " ", "logs.unit is required"),
            ("logs", "markers", [], "logs.markers must be a non-empty list of strings"),
            ("logs", "markers", "Pulled image:", "logs.markers must be a non-empty list of strings"),
            ("logs", "since", " ", "logs.since cannot be empty"),
            ("kubernetes", "timeout", 0, "kubernetes.timeout must be a positive integer"),
            ("registry", "timeout", "soon", "registry.timeout must be an integer"),
            ("retry", "max_retries", -1, "retry.max_retries must be a non-negative integer"),
            ("retry", "max_delay", 0.5, "retry.max_delay (0.5) must be >= retry.initial_delay (1.0)"),
            ("retry", "exponential_base", 0.5, "retry.exponential_base must be >= 1.0"),
        ],
    )
    def test_invalid_values(self, tmp_path, section, key, value, message):
        path = _write_config(tmp_path, {section: {key: value}})

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigManager(config_file=path)

        assert message in str(exc_info.value)

    def test_file_source_requires_path(self, tmp_path):
        path = _write_config(tmp_path, {"logs": {"source": "file"}})

        with pytest.raises(ConfigValidationError, match="logs.file is required"):
            ConfigManager(config_file=path)

    def test_collects_all_errors(self, tmp_path):
        path = _write_config(tmp_path, {"logs": {"format": "xml", "timeout": -5}})

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigManager(config_file=path)

        message = str(exc_info.value)
        assert message.startswith("Configuration validation failed:")
        assert "logs.format" in message
        assert "logs.timeout" in message

    def test_high_timeout_only_warns(self, tmp_path, caplog):
        path = _write_config(tmp_path, {"logs": {"timeout": 7200}})

        ConfigManager(config_file=path)

        assert "logs.timeout is very high" in caplog.text

    def test_validation_can_be_deferred(self, tmp_path):
        path = _write_config(tmp_path, {"logs": {"format": "xml"}})
        cm = ConfigManager(config_file=path, validate=False)

        cm.set("logs", "format", "json")
        cm.validate_config()
