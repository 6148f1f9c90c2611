"""
Configuration module for the CaseDesk trash toolkit.

Provides centralized configuration for storage, trash retention, role policy
and token verification.
"""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union, get_args, get_origin

import yaml
from pydantic import BaseModel, Field, field_validator

VALID_ROLES = ("super_admin", "manager", "assistant", "accountant")


class CaseStatus(str, Enum):
    """Workflow status of a case."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    DELAYED = "delayed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvoiceStatus(str, Enum):
    """Payment status of an invoice."""

    DRAFT = "draft"
    UNPAID = "unpaid"
    PAID = "paid"
    CANCELLED = "cancelled"


class CaseDeskConfig(BaseModel):
    """Central configuration for the trash lifecycle subsystem.

    Each constructor reads one source. Fields it does not set keep their
    defaults:
        - ``CaseDeskConfig(...)``: keyword arguments
        - ``from_env``: environment variables (CASEDESK_ prefix)
        - ``from_file``: a JSON or YAML file

    ``configure`` applies keyword overrides on top of the global instance.

    Example:
        >>> config = CaseDeskConfig(trash_retention_days=14)

        >>> import os
        >>> os.environ['CASEDESK_TRASH_ADMIN_ROLES'] = 'super_admin'
        >>> config = CaseDeskConfig.from_env()

        >>> config = CaseDeskConfig.from_file('casedesk.yaml')

    Note:
        ``trash_admin_roles`` controls who may purge and empty the trash.
        Purging is irreversible; keep the list short.
    """

    # General settings
    application_name: str = Field("CaseDesk", description="Name of the application")
    environment: str = Field(
        "development", description="Environment (development, staging, production)"
    )
    log_level: str = Field("INFO", description="Root logging level for the CLI")

    # Storage settings
    database_url: str = Field(
        "sqlite:///casedesk.db", description="SQLAlchemy database URL"
    )

    # Trash settings
    trash_retention_days: int = Field(
        30, description="Days a trashed item stays listed before expiring", gt=0
    )
    purge_batch_size: int = Field(
        500, description="Maximum identifiers per cascade delete", gt=0, le=10000
    )
    trash_admin_roles: List[str] = Field(
        default_factory=lambda: ["super_admin", "manager"],
        description="Roles allowed to purge items and empty the trash",
    )
    terminal_case_statuses: List[str] = Field(
        default_factory=lambda: [
            CaseStatus.COMPLETED.value,
            CaseStatus.CANCELLED.value,
        ],
        description="Case statuses not counted as active",
    )
    unpaid_invoice_statuses: List[str] = Field(
        default_factory=lambda: [
            InvoiceStatus.DRAFT.value,
            InvoiceStatus.UNPAID.value,
        ],
        description="Invoice statuses counted as unpaid",
    )

    # Token settings
    jwt_secret: Optional[str] = Field(
        None, description="Shared secret used to verify access tokens"
    )
    jwt_audience: str = Field("authenticated", description="Expected token audience")
    jwt_algorithms: List[str] = Field(
        default_factory=lambda: ["HS256"], description="Accepted token algorithms"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Environment must be one of: {', '.join(sorted(valid_environments))}"
            )
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(
                f"Log level must be one of: {', '.join(sorted(valid_levels))}"
            )
        return v.upper()

    @field_validator("trash_admin_roles")
    @classmethod
    def validate_admin_roles(cls, v: List[str]) -> List[str]:
        """Ensure every admin role is a known role."""
        unknown = [role for role in v if role not in VALID_ROLES]
        if unknown:
            raise ValueError(f"Unknown roles: {', '.join(unknown)}")
        return v

    @field_validator("terminal_case_statuses")
    @classmethod
    def validate_case_statuses(cls, v: List[str]) -> List[str]:
        """Ensure every status is a known case status."""
        return _known_statuses(v, CaseStatus)

    @field_validator("unpaid_invoice_statuses")
    @classmethod
    def validate_invoice_statuses(cls, v: List[str]) -> List[str]:
        """Ensure every status is a known invoice status."""
        return _known_statuses(v, InvoiceStatus)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()

    @classmethod
    def from_env(cls, prefix: str = "CASEDESK_") -> "CaseDeskConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation

            # Handle Optional types
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            try:
                if field_type == bool:
                    truthy = ("true", "1", "yes", "on")
                    config_dict[field_name] = value.lower() in truthy
                elif field_type == int:
                    config_dict[field_name] = int(value)
                elif get_origin(field_type) is list:
                    config_dict[field_name] = [
                        item.strip() for item in value.split(",") if item.strip()
                    ]
                elif isinstance(field_type, type) and issubclass(field_type, Enum):
                    config_dict[field_name] = field_type(value)
                else:
                    config_dict[field_name] = value
            except (ValueError, TypeError):
                # Let model validation report the bad value
                config_dict[field_name] = value

        return cls.model_validate(config_dict)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CaseDeskConfig":
        """
        Load configuration from a JSON or YAML file.

        Args:
            path: Path to a ``.json``, ``.yaml`` or ``.yml`` file

        Returns:
            Configuration instance
        """
        file_path = Path(path)
        text = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        elif file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            raise ValueError(
                f"Unsupported configuration file type: {file_path.suffix}"
            )
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {file_path} must contain a mapping")
        return cls.model_validate(data)


def _known_statuses(values: List[str], status_type: Type[Enum]) -> List[str]:
    known = {member.value for member in status_type}
    unknown = [value for value in values if value not in known]
    if unknown:
        raise ValueError(
            f"Unknown {status_type.__name__} values: {', '.join(unknown)}"
        )
    return list(values)


# Global configuration instance
_config: Optional[CaseDeskConfig] = None


def get_config() -> CaseDeskConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = CaseDeskConfig.from_env()

    return _config


def set_config(config: Optional[CaseDeskConfig]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set, or None to reload from the environment
            on next access
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> CaseDeskConfig:
    """
    Configure the toolkit with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = CaseDeskConfig(**kwargs)
    else:
        config_dict = _config.to_dict()
        config_dict.update(kwargs)
        _config = CaseDeskConfig(**config_dict)

    return _config
