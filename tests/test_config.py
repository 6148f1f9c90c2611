"""
Tests for configuration loading.
"""

import json

import pytest
import yaml
from pydantic import ValidationError

from casedesk import config as config_module
from casedesk.config import (
    CaseDeskConfig,
    CaseStatus,
    InvoiceStatus,
    configure,
    get_config,
    set_config,
)


@pytest.fixture(autouse=True)
def reset_global_config():
    set_config(None)
    yield
    set_config(None)


class TestCaseDeskConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = CaseDeskConfig()

        assert config.database_url == "sqlite:///casedesk.db"
        assert config.trash_retention_days == 30
        assert config.purge_batch_size == 500
        assert config.trash_admin_roles == ["super_admin", "manager"]
        assert config.terminal_case_statuses == ["completed", "cancelled"]
        assert config.unpaid_invoice_statuses == ["draft", "unpaid"]
        assert config.jwt_secret is None
        assert config.jwt_audience == "authenticated"

    def test_environment_is_normalized(self):
        assert CaseDeskConfig(environment="PRODUCTION").environment == "production"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            CaseDeskConfig(environment="qa")

    def test_log_level_is_normalized(self):
        assert CaseDeskConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_admin_role(self):
        with pytest.raises(ValidationError, match="Unknown roles"):
            CaseDeskConfig(trash_admin_roles=["super_admin", "intern"])

    def test_status_defaults_are_known_statuses(self):
        config = CaseDeskConfig()

        assert config.terminal_case_statuses == [
            CaseStatus.COMPLETED,
            CaseStatus.CANCELLED,
        ]
        assert config.unpaid_invoice_statuses == [
            InvoiceStatus.DRAFT,
            InvoiceStatus.UNPAID,
        ]

    def test_custom_statuses(self):
        config = CaseDeskConfig(
            terminal_case_statuses=["completed"],
            unpaid_invoice_statuses=["unpaid"],
        )
        assert config.terminal_case_statuses == ["completed"]
        assert config.unpaid_invoice_statuses == ["unpaid"]

    def test_invalid_case_status(self):
        with pytest.raises(ValidationError, match="Unknown CaseStatus values"):
            CaseDeskConfig(terminal_case_statuses=["completed", "archived"])

    def test_invalid_invoice_status(self):
        with pytest.raises(ValidationError, match="Unknown InvoiceStatus values"):
            CaseDeskConfig(unpaid_invoice_statuses=["paid_"])

    @pytest.mark.parametrize("field", ["trash_retention_days", "purge_batch_size"])
    def test_positive_limits(self, field):
        with pytest.raises(ValidationError):
            CaseDeskConfig(**{field: 0})

    def test_batch_size_upper_bound(self):
        with pytest.raises(ValidationError):
            CaseDeskConfig(purge_batch_size=10001)


class TestConfigSources:
    """Test environment and file loading."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CASEDESK_TRASH_RETENTION_DAYS", "14")
        monkeypatch.setenv("CASEDESK_TRASH_ADMIN_ROLES", "super_admin, accountant")
        monkeypatch.setenv("CASEDESK_JWT_SECRET", "s3cret")
        monkeypatch.setenv("CASEDESK_ENVIRONMENT", "staging")

        config = CaseDeskConfig.from_env()

        assert config.trash_retention_days == 14
        assert config.trash_admin_roles == ["super_admin", "accountant"]
        assert config.jwt_secret == "s3cret"
        assert config.environment == "staging"

    def test_from_env_invalid_value(self, monkeypatch):
        monkeypatch.setenv("CASEDESK_PURGE_BATCH_SIZE", "lots")
        with pytest.raises(ValidationError):
            CaseDeskConfig.from_env()

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "casedesk.yaml"
        path.write_text(
            yaml.dump({"trash_retention_days": 7, "environment": "test"}),
            encoding="utf-8",
        )

        config = CaseDeskConfig.from_file(path)

        assert config.trash_retention_days == 7
        assert config.environment == "test"

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "casedesk.json"
        path.write_text(json.dumps({"purge_batch_size": 50}), encoding="utf-8")

        assert CaseDeskConfig.from_file(str(path)).purge_batch_size == 50

    def test_unsupported_file_type(self, tmp_path):
        path = tmp_path / "casedesk.ini"
        path.write_text("[casedesk]", encoding="utf-8")

        with pytest.raises(ValueError, match="Unsupported"):
            CaseDeskConfig.from_file(path)


class TestGlobalConfig:
    """Test the module-level configuration helpers."""

    def test_get_config_reads_environment_once(self, monkeypatch):
        monkeypatch.setenv("CASEDESK_APPLICATION_NAME", "Back Office")

        first = get_config()
        monkeypatch.setenv("CASEDESK_APPLICATION_NAME", "Changed")

        assert first.application_name == "Back Office"
        assert get_config() is first

    def test_set_config(self):
        custom = CaseDeskConfig(trash_retention_days=3)
        set_config(custom)
        assert get_config() is custom

    def test_configure_updates_existing(self):
        set_config(CaseDeskConfig(trash_retention_days=3))

        updated = configure(purge_batch_size=10)

        assert updated.trash_retention_days == 3
        assert updated.purge_batch_size == 10
        assert config_module._config is updated
