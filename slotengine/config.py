"""
Engine configuration using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import FrozenSet, List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.capacity import DEFAULT_WEEK_START
from .domain.models import ACTIVE_STATUSES, WEEKDAY_NAMES, SessionStatus


class EngineConfig(BaseModel):
    """Settings shared by every availability query."""
    timezone: str = "UTC"
    week_start: str = DEFAULT_WEEK_START
    active_statuses: List[SessionStatus] = Field(
        default_factory=lambda: sorted(ACTIVE_STATUSES, key=lambda status: status.value)
    )
    default_range_days: int = 14

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the reference clock is a known IANA zone."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("week_start")
    @classmethod
    def validate_week_start(cls, value: str) -> str:
        """Ensure the week starts on a real weekday name."""
        normalized = value.strip().lower()
        if normalized not in WEEKDAY_NAMES:
            raise ValueError(
                f"week_start must be one of {', '.join(WEEKDAY_NAMES)}, got {value!r}"
            )
        return normalized

    @field_validator("active_statuses")
    @classmethod
    def validate_active_statuses(cls, value: List[SessionStatus]) -> List[SessionStatus]:
        """Ensure at least one status blocks slots, preserving order without duplicates."""
        if not value:
            raise ValueError("active_statuses must not be empty")
        deduped: List[SessionStatus] = []
        for status in value:
            if status not in deduped:
                deduped.append(status)
        return deduped

    @field_validator("default_range_days")
    @classmethod
    def validate_range_days(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_range_days must be greater than zero")
        return value

    def active_status_set(self) -> FrozenSet[SessionStatus]:
        return frozenset(self.active_statuses)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            EngineConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
