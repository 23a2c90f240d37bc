"""
Global Configuration and Defaults.

Settings live in `.varbind/config.yaml`. A missing file means defaults;
a malformed one raises `ConfigError` so typos are not silently ignored.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .core.exceptions import ConfigError
from .core.types import UserRole, VariableType

logger = logging.getLogger(__name__)

CONFIG_DIR = ".varbind"
CONFIG_FILE = "config.yaml"

# Rendered in place of a binding that failed to resolve.
DEFAULT_PLACEHOLDERS: Dict[VariableType, Union[str, int, float, bool]] = {
    VariableType.COLOR: "#FF00FF",
    VariableType.NUMBER: 0,
    VariableType.STRING: "⚠ broken binding",
    VariableType.BOOLEAN: False,
}


class GovernanceSettings(BaseModel):
    default_editable_by: List[UserRole] = Field(
        default_factory=lambda: [UserRole.OWNER, UserRole.ADMIN, UserRole.EDITOR]
    )
    manage_binding_roles: List[UserRole] = Field(
        default_factory=lambda: [UserRole.OWNER, UserRole.ADMIN, UserRole.EDITOR]
    )
    structure_roles: List[UserRole] = Field(
        default_factory=lambda: [UserRole.OWNER, UserRole.ADMIN, UserRole.EDITOR]
    )


class VarbindConfig(BaseModel):
    """Parsed contents of `.varbind/config.yaml`."""
    version: str = "1.0"
    project_name: str = "varbind-project"
    placeholders: Dict[VariableType, Union[bool, int, float, str]] = Field(
        default_factory=lambda: dict(DEFAULT_PLACEHOLDERS)
    )
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level '{value}'")
        return level

    def placeholder_for(self, var_type: VariableType):
        return self.placeholders.get(var_type, DEFAULT_PLACEHOLDERS[var_type])

    def to_yaml_dict(self) -> dict:
        return self.model_dump(mode="json")


def default_config_path(root: Optional[Path] = None) -> Path:
    return (root or Path.cwd()) / CONFIG_DIR / CONFIG_FILE


def load_config(path: Optional[Path] = None) -> VarbindConfig:
    """
    Load configuration from YAML.

    Args:
        path: Explicit config path. Defaults to `./.varbind/config.yaml`.

    Returns:
        VarbindConfig: parsed settings, or defaults if the file does not exist.
    """
    config_path = path or default_config_path()
    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return VarbindConfig()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}", str(config_path)) from e

    try:
        return VarbindConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}", str(config_path)) from e


def write_config(config: VarbindConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config.to_yaml_dict(), f, sort_keys=False, default_flow_style=False)
