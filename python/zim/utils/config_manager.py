#!/usr/bin/env python3
"""
Configuration Manager for ZIM

This module handles loading configuration from config.yaml and environment
variables. Command line flags override both and are applied by the CLI.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml

VALID_LOG_FORMATS = ("plain", "json")
VALID_LOG_SOURCES = ("journal", "file")
ENV_OVERRIDES = {
    "ZIM_LOG_UNIT": ("logs", "unit"),
    "ZIM_LOG_FORMAT": ("logs", "format"),
    "ZIM_SINCE": ("logs", "since"),
    "ZIM_REGISTRY_TIMEOUT": ("registry", "timeout"),
}


class ConfigValidationError(Exception):
    """Configuration file or values are unusable"""


def default_kubeconfig_path() -> str:
    """Kubeconfig path from KUBECONFIG, falling back to $HOME/.kube/config."""
    env_path = os.environ.get("KUBECONFIG")
    if env_path:
        # KUBECONFIG may hold a list; the first entry is the primary file
        return env_path.split(os.pathsep)[0]
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


class ConfigManager:
    """Manages configuration for one run of the pull statistics report"""

    def __init__(self, config_file: str = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to config.yaml or ZIM_CONFIG_FILE env var)
            validate: If True, validate configuration on initialization
        """
        if config_file is None:
            config_file = os.environ.get("ZIM_CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()
        self._apply_env_overrides()

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Defaults merged with config.yaml when the file exists"""
        default_config = {
            "kubernetes": {"kubeconfig": None, "timeout": 30},
            "logs": {
                "source": "journal",
                "unit": "crio",
                "format": "plain",
                "grep": "pulled image",
                "markers": ["Pulled image:"],
                "since": "24",
                "timeout": 60,
                "file": None,
            },
            "registry": {"timeout": 10},
            "retry": {
                "max_retries": 2,
                "initial_delay": 1.0,
                "max_delay": 10.0,
                "exponential_base": 2.0,
                "jitter": True,
            },
            "output": {"path": None},
        }

        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, "r") as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise ConfigValidationError(
                        f"Config file {self.config_file} must contain a mapping, got {type(user_config).__name__}"
                    )
                return self._merge_config(default_config, user_config)
            else:
                logging.debug(f"Config file {self.config_file} not found, using defaults")
                return default_config
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Error parsing config file {self.config_file}: {e}") from e

    def _apply_env_overrides(self) -> None:
        """Environment variables override the file; command line flags are applied later via set()"""
        for env_var, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                self.config.setdefault(section, {})[key] = value

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Nested dicts are merged key by key; any other user value replaces the default"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def set(self, section: str, key: str, value: Any) -> None:
        """Override a single value (used for command line flags). None leaves the value unchanged."""
        if value is None:
            return
        self.config.setdefault(section, {})[key] = value

    # Kubernetes configuration
    def get_kubeconfig(self) -> str:
        """Get kubeconfig path from config or KUBECONFIG/$HOME default"""
        return self.config["kubernetes"].get("kubeconfig") or default_kubeconfig_path()

    def get_kubernetes_timeout(self) -> int:
        """Get timeout for the cluster pod listing"""
        return self._get_int("kubernetes", "timeout")

    # Log source configuration
    def get_log_source(self) -> str:
        """Get log source type ('journal' or 'file')"""
        if self.get_log_file():
            return "file"
        return self.config["logs"]["source"]

    def get_log_file(self) -> Optional[str]:
        """Get log file path when reading events from a file"""
        return self.config["logs"].get("file")

    def get_log_unit(self) -> str:
        """Get systemd unit of the container runtime"""
        return self.config["logs"]["unit"]

    def get_log_format(self) -> str:
        """Get log line format ('plain' or 'json')"""
        return self.config["logs"]["format"]

    def get_log_grep(self) -> Optional[str]:
        """Get the journal grep pattern applied before extraction"""
        return self.config["logs"].get("grep")

    def get_log_markers(self) -> List[str]:
        """Get marker phrases that precede an image reference in a log message"""
        return self.config["logs"]["markers"]

    def get_since(self) -> str:
        """Get the pull-event window (hours or date)"""
        return str(self.config["logs"]["since"])

    def get_log_timeout(self) -> int:
        """Get timeout for log retrieval"""
        return self._get_int("logs", "timeout")

    # Registry configuration
    def get_registry_timeout(self) -> int:
        """Get timeout for registry rate-limit requests"""
        return self._get_int("registry", "timeout")

    # Retry configuration
    def get_max_retries(self) -> int:
        """Retries after the first attempt"""
        return self._get_int("retry", "max_retries")

    def get_retry_initial_delay(self) -> float:
        """Seconds before the first retry"""
        return self._get_float("retry", "initial_delay")

    def get_retry_max_delay(self) -> float:
        """Upper bound on any retry delay"""
        return self._get_float("retry", "max_delay")

    def get_retry_exponential_base(self) -> float:
        """Growth factor between retry delays"""
        return self._get_float("retry", "exponential_base")

    def get_retry_jitter(self) -> bool:
        """Get whether to add jitter to retry delays"""
        return bool(self.config["retry"].get("jitter", True))

    def get_retry_settings(self) -> Dict[str, Any]:
        """Retry keyword arguments for retry_utils.retry_operation"""
        return {
            "max_retries": self.get_max_retries(),
            "initial_delay": self.get_retry_initial_delay(),
            "max_delay": self.get_retry_max_delay(),
            "exponential_base": self.get_retry_exponential_base(),
            "jitter": self.get_retry_jitter(),
        }

    # Output configuration
    def get_output_path(self) -> Optional[str]:
        """Get base path for saved reports (None prints only)"""
        return self.config["output"].get("path")

    def _get_int(self, section: str, key: str) -> int:
        value = self.config[section][key]
        if isinstance(value, bool):
            raise ConfigValidationError(f"{section}.{key} must be an integer, got: {value} (type: bool)")
        try:
            return int(value)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"{section}.{key} must be an integer, got: {value} (type: {type(value).__name__})"
            )

    def _get_float(self, section: str, key: str) -> float:
        value = self.config[section][key]
        try:
            return float(value)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"{section}.{key} must be a number, got: {value} (type: {type(value).__name__})"
            )

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        errors = []
        warnings = []

        log_format = self.get_log_format()
        if log_format not in VALID_LOG_FORMATS:
            errors.append(f"logs.format must be one of {', '.join(VALID_LOG_FORMATS)}, got: {log_format}")

        source = self.get_log_source()
        if source not in VALID_LOG_SOURCES:
            errors.append(f"logs.source must be one of {', '.join(VALID_LOG_SOURCES)}, got: {source}")
        elif source == "journal":
            unit = self.get_log_unit()
            if not unit or not str(unit).strip():
                errors.append("logs.unit is required when reading from the journal")
        elif not self.get_log_file():
            errors.append("logs.file is required when logs.source is 'file'")

        markers = self.config["logs"].get("markers")
        if not isinstance(markers, list) or not markers or not all(isinstance(m, str) and m.strip() for m in markers):
            errors.append(f"logs.markers must be a non-empty list of strings, got: {markers}")

        since = self.get_since()
        if not since.strip():
            errors.append("logs.since cannot be empty")

        for section, key in (("kubernetes", "timeout"), ("logs", "timeout"), ("registry", "timeout")):
            try:
                timeout = self._get_int(section, key)
            except ConfigValidationError as e:
                errors.append(str(e))
                continue
            if timeout < 1:
                errors.append(f"{section}.{key} must be a positive integer (seconds), got: {timeout}")
            elif timeout > 3600:
                warnings.append(f"{section}.{key} is very high ({timeout}s), the run may take a long time")

        try:
            max_retries = self.get_max_retries()
            if max_retries < 0:
                errors.append(f"retry.max_retries must be a non-negative integer, got: {max_retries}")
            elif max_retries > 10:
                warnings.append(f"max_retries is very high ({max_retries}), operations may take a long time")

            initial_delay = self.get_retry_initial_delay()
            max_delay = self.get_retry_max_delay()
            if initial_delay < 0:
                errors.append(f"retry.initial_delay must be a non-negative number, got: {initial_delay}")
            if max_delay < 0:
                errors.append(f"retry.max_delay must be a non-negative number, got: {max_delay}")
            elif max_delay < initial_delay:
                errors.append(f"retry.max_delay ({max_delay}) must be >= retry.initial_delay ({initial_delay})")

            exponential_base = self.get_retry_exponential_base()
            if exponential_base < 1.0:
                errors.append(f"retry.exponential_base must be >= 1.0, got: {exponential_base}")
        except ConfigValidationError as e:
            errors.append(str(e))

        for warning in warnings:
            logging.warning(f"Configuration warning: {warning}")

        if errors:
            error_msg = "Configuration validation failed:\n  " + "\n  ".join(errors)
            raise ConfigValidationError(error_msg)
