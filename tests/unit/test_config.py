"""Unit tests for configuration loading and validation."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from fedfarm.config.manager import load_config
from fedfarm.config.schema import CertificatesConfig, Config, LoggingConfig, ProviderConfig
from fedfarm.utils.exceptions import ConfigurationError


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestSchema:
    """Test pydantic validators."""

    def test_defaults(self) -> None:
        config = Config()
        assert config.provider.base_url == "http://localhost:8443/adfs/admin"
        assert config.provider.max_retries == 3
        assert config.certificates.default_store == "My"
        assert config.logging.redact_secrets is True

    def test_base_url_trailing_slash_stripped(self) -> None:
        assert ProviderConfig(base_url="https://adfs01/admin/").base_url == "https://adfs01/admin"

    def test_base_url_requires_scheme(self) -> None:
        with pytest.raises(ValidationError, match="http:// or https://"):
            ProviderConfig(base_url="adfs01/admin")

    def test_timeouts_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ProviderConfig(timeout_read=0)

    def test_default_store_must_be_configured(self) -> None:
        with pytest.raises(ValidationError, match="not a configured store"):
            CertificatesConfig(stores={"My": Path("certs")}, default_store="Root")

    def test_log_level_normalized(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_operation_levels(self) -> None:
        config = LoggingConfig(operation_levels={"provider": "debug"})
        assert config.operation_levels == {"provider": "DEBUG"}
        with pytest.raises(ValidationError, match="Unknown operation"):
            LoggingConfig(operation_levels={"parser": "DEBUG"})


class TestLoadConfig:
    """Test file loading and environment overrides."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "absent.json")
        assert config == Config()

    def test_loads_file(self, tmp_path: Path) -> None:
        # Arrange
        path = _write(
            tmp_path / "config.json",
            {
                "provider": {"base_url": "https://adfs01.contoso.com/adfs/admin", "verify_tls": False},
                "certificates": {"stores": {"My": "certs/my", "Root": "certs/root"}},
                "logging": {"level": "WARNING"},
            },
        )

        # Act
        config = load_config(path)

        # Assert
        assert config.provider.base_url == "https://adfs01.contoso.com/adfs/admin"
        assert config.provider.verify_tls is False
        assert set(config.certificates.stores) == {"My", "Root"}
        assert config.logging.level == "WARNING"

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Arrange
        path = _write(tmp_path / "config.json", {"provider": {"base_url": "https://a/admin"}})
        monkeypatch.setenv("FEDFARM_BASE_URL", "https://b/admin")
        monkeypatch.setenv("FEDFARM_VERIFY_TLS", "false")
        monkeypatch.setenv("FEDFARM_MAX_RETRIES", "5")
        monkeypatch.setenv("FEDFARM_LOG_LEVEL", "debug")

        # Act
        config = load_config(path)

        # Assert
        assert config.provider.base_url == "https://b/admin"
        assert config.provider.verify_tls is False
        assert config.provider.max_retries == 5
        assert config.logging.level == "DEBUG"

    def test_bad_numeric_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FEDFARM_TIMEOUT_READ", "soon")
        with pytest.raises(ConfigurationError, match="FEDFARM_TIMEOUT_READ"):
            load_config(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(path)

    def test_non_object(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config(_write(tmp_path / "config.json", ["provider"]))

    def test_validation_error_wrapped(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "config.json", {"provider": {"max_retries": -1}})
        with pytest.raises(ConfigurationError, match="Fix:"):
            load_config(path)

    def test_password_in_file_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = _write(tmp_path / "config.json", {"certificates": {"pkcs12_password": "x"}})

        # extra keys are ignored by the schema; the warning is the point
        load_config(path)

        assert "PKCS12 password found" in caplog.text
