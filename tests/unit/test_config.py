"""Tests for configuration module."""

from pathlib import Path

import pytest
import toml
from pydantic import ValidationError

from edgewaf.config import (
    API_KEY_ENV,
    EdgeWafConfig,
    WeblogSettings,
    generate_example_config,
    load_config,
)
from edgewaf.errors import ConfigurationError


class TestEdgeWafConfig:
    """Tests for EdgeWafConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        config = EdgeWafConfig()
        assert config.api_endpoint == "https://api.fastly.com"
        assert config.action == "log"
        assert config.response.name == "WAF_Response"
        assert config.response.http_status_code == 403
        assert config.prefetch.name == "WAF_Prefetch"
        assert config.weblog.expiry == 0

    def test_action_normalized(self) -> None:
        """Test that the action is case-insensitive."""
        assert EdgeWafConfig(action="Disabled").action == "disabled"

    def test_invalid_action(self) -> None:
        """Test that an unknown action raises error."""
        with pytest.raises(ValidationError):
            EdgeWafConfig(action="allow")

    def test_negative_expiry_rejected(self) -> None:
        """Test that expiry cannot be negative."""
        with pytest.raises(ValidationError):
            WeblogSettings(expiry=-1)

    def test_paranoia_level_bounds(self) -> None:
        """Test OWASP paranoia level validation."""
        with pytest.raises(ValidationError):
            EdgeWafConfig(owasp={"paranoia_level": 5})


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_file(self, sample_config_file: Path, monkeypatch) -> None:
        """Test loading a configuration file."""
        monkeypatch.delenv(API_KEY_ENV, raising=False)

        config = load_config(sample_config_file)

        assert config.api_endpoint == "https://api.example.test"
        assert config.tags == ["OWASP", "language-php"]
        assert config.action == "block"
        assert config.rules == [1010090]
        assert config.owasp.paranoia_level == 2
        assert config.owasp.max_num_args == 255
        assert config.weblog.expiry == 7
        assert config.api_key is None

    def test_env_overrides_api_key(self, sample_config_file: Path, monkeypatch) -> None:
        """Test that the environment variable supplies the API key."""
        monkeypatch.setenv(API_KEY_ENV, "from-env")

        assert load_config(sample_config_file).api_key == "from-env"

    def test_missing_file(self, temp_dir: Path) -> None:
        """Test that a missing file raises with a hint."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(temp_dir / "missing.toml")

        assert "config init" in exc_info.value.hint

    def test_invalid_toml(self, temp_dir: Path) -> None:
        """Test that a malformed file raises ConfigurationError."""
        path = temp_dir / "bad.toml"
        path.write_text("tags = [")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_truncated_rule_list_rejected(self, temp_dir: Path) -> None:
        """Test that a rule list cut off mid-number fails instead of loading a shorter ID."""
        path = temp_dir / "truncated.toml"
        path.write_text("rules = [1010090")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert str(path) in exc_info.value.message
        assert exc_info.value.hint

    def test_unterminated_string_rejected(self, temp_dir: Path) -> None:
        """Test that an unterminated string fails to load."""
        path = temp_dir / "truncated.toml"
        path.write_text('action = "blo')

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_values(self, temp_dir: Path) -> None:
        """Test that schema violations raise ConfigurationError."""
        path = temp_dir / "bad.toml"
        path.write_text('action = "allow"\n')

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_example_config_loads(self, temp_dir: Path, monkeypatch) -> None:
        """Test that the generated example is a valid configuration."""
        monkeypatch.delenv(API_KEY_ENV, raising=False)
        path = temp_dir / "edgewaf.toml"
        path.write_text(generate_example_config())

        config = load_config(path)

        assert toml.loads(generate_example_config())["weblog"]["name"] == config.weblog.name
        assert config.disabled_rules == [2029718, 2037405]
