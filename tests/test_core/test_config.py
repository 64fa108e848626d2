"""
Tests for imagebuild.core.config
==================================

These tests verify that the configuration system works correctly:
    - Default values match the CI workflow's budgets and names
    - Environment variables (IMAGEBUILD_*) override defaults
    - YAML files are parsed, and explicit overrides win over them
    - Validation catches invalid values

All tests are unit tests; no cloud access and no real files outside tmp_path.
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from imagebuild.core.config import (
    CloudConfig,
    NamingConfig,
    OrchestratorConfig,
    PollingConfig,
    load_config,
)
from imagebuild.core.exceptions import ConfigurationError


# =============================================================================
# Test: Default Configuration
# =============================================================================
class TestDefaultConfig:
    """Tests for default configuration values."""

    def test_default_config_creates_successfully(self) -> None:
        """OrchestratorConfig() should work with no arguments."""
        config = OrchestratorConfig()
        assert config.log_level == "INFO"
        assert config.log_format == "console"
        assert config.docker_images_dir == Path("../docker_images")

    def test_default_cloud_is_aws_cli(self) -> None:
        config = CloudConfig()
        assert config.provider == "aws"
        assert config.aws_executable == "aws"
        assert config.cdk_executable == "cdk"

    def test_default_polling_budgets(self) -> None:
        """Registry 30 x 300 s, instance 60 x 60 s after a 600 s boot wait."""
        polling = PollingConfig()
        assert polling.registry_max_attempts == 30
        assert polling.registry_interval_seconds == 300
        assert polling.instance_max_attempts == 60
        assert polling.instance_interval_seconds == 60
        assert polling.instance_boot_wait_seconds == 600

    def test_default_naming(self) -> None:
        naming = NamingConfig()
        assert naming.linux_aarch_repo == "aws-lc-test-docker-images-linux-aarch"
        assert naming.linux_x86_repo == "aws-lc-test-docker-images-linux-x86"
        assert naming.windows_repo == "aws-lc-test-docker-images-windows"
        assert naming.all_stacks_pattern == "aws-lc-test-*"
        assert naming.build_stacks_pattern == "aws-lc-test-docker-images-build-*"
        assert naming.preview_stacks_pattern == "aws-lc*"
        assert naming.command_output_prefix == "runcommand"


# =============================================================================
# Test: Configuration Validation
# =============================================================================
class TestConfigValidation:
    """Tests for configuration validation constraints."""

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CloudConfig(provider="gcp")

    def test_zero_attempts_rejected(self) -> None:
        """Every poll loop needs at least one attempt."""
        with pytest.raises(ValidationError):
            PollingConfig(registry_max_attempts=0)

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PollingConfig(instance_interval_seconds=-1)

    def test_unknown_log_format_rejected(self) -> None:
        with pytest.raises(ValidationError):
            OrchestratorConfig(log_format="xml")


# =============================================================================
# Test: Environment Variable Loading
# =============================================================================
class TestEnvVarLoading:
    """Tests for IMAGEBUILD_* environment variables."""

    def test_env_var_overrides_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMAGEBUILD_LOG_LEVEL", "DEBUG")
        assert OrchestratorConfig().log_level == "DEBUG"

    def test_nested_env_var_overrides_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested fields use the '__' delimiter."""
        monkeypatch.setenv("IMAGEBUILD_CLOUD__PROVIDER", "mock")
        assert OrchestratorConfig().cloud.provider == "mock"

    def test_nested_env_var_overrides_polling(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMAGEBUILD_POLLING__REGISTRY_INTERVAL_SECONDS", "5")
        assert OrchestratorConfig().polling.registry_interval_seconds == 5


# =============================================================================
# Test: YAML Configuration Loading
# =============================================================================
class TestYamlLoading:
    """Tests for load_config()."""

    def test_load_valid_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text(yaml.dump({
            "log_level": "WARNING",
            "cloud": {"provider": "mock"},
            "polling": {"registry_max_attempts": 3},
        }))

        config = load_config(str(config_file))
        assert config.log_level == "WARNING"
        assert config.cloud.provider == "mock"
        assert config.polling.registry_max_attempts == 3
        assert config.polling.registry_interval_seconds == 300

    def test_overrides_beat_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text(yaml.dump({"log_level": "WARNING"}))

        config = load_config(str(config_file), log_level="DEBUG")
        assert config.log_level == "DEBUG"

    def test_none_overrides_are_ignored(self, tmp_path: Path) -> None:
        """CLI options that were not given arrive as None and must not clobber."""
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text(yaml.dump({"log_level": "WARNING"}))

        config = load_config(str(config_file), log_level=None, log_format=None)
        assert config.log_level == "WARNING"

    def test_yaml_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMAGEBUILD_LOG_LEVEL", "ERROR")
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text(yaml.dump({"log_level": "WARNING"}))

        assert load_config(str(config_file)).log_level == "WARNING"

    def test_load_nonexistent_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path/imagebuild.yaml")

    def test_load_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text("")

        config = load_config(str(config_file))
        assert config.log_level == "INFO"

    def test_invalid_yaml_raises_configuration_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text("log_level: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(config_file))
        assert exc_info.value.error_code == "INVALID_YAML"

    def test_non_mapping_yaml_raises_configuration_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "imagebuild.yaml"
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(str(config_file))

    def test_default_file_in_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without a path, ./imagebuild.yaml is used when it exists."""
        (tmp_path / "imagebuild.yaml").write_text(yaml.dump({"log_format": "json"}))
        monkeypatch.chdir(tmp_path)

        assert load_config().log_format == "json"

    def test_no_path_and_no_file_uses_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert isinstance(config, OrchestratorConfig)
        assert config.log_format == "console"
