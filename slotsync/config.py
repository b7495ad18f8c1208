"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

CLIENT_SECRET_ENV = "SLOTSYNC_GRAPH_CLIENT_SECRET"
SLOT_STORE_TOKEN_ENV = "SLOTSYNC_SLOT_STORE_TOKEN"


class SyncSettings(BaseModel):
    """Settings shared by the full and the delta pass."""
    days_ahead: int = 14
    exclude_days: List[int] = Field(default_factory=lambda: [5, 6])  # Saturday, Sunday
    quiet_hours_start: int = 22
    quiet_hours_end: int = 6
    batch_size: int = 10
    lock_timeout_seconds: float = 10.0
    quantize_minutes: int = 30
    cache_ttl_hours: float = 23.0

    @field_validator("days_ahead")
    @classmethod
    def validate_days_ahead(cls, value: int) -> int:
        if value < 0:
            raise ValueError("days_ahead must not be negative")
        return value

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("batch_size must be greater than zero")
        return value

    @field_validator("quantize_minutes")
    @classmethod
    def validate_quantize(cls, value: int) -> int:
        """The rounding unit has to tile an hour."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"quantize_minutes must divide 60, got {value}")
        return value

    @field_validator("exclude_days")
    @classmethod
    def validate_exclude_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"exclude_days must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @property
    def cache_ttl_seconds(self) -> int:
        return int(self.cache_ttl_hours * 3600)


class GraphSettings(BaseModel):
    """Microsoft Graph app registration used to read recruiter calendars."""
    client_id: str
    tenant_id: str
    client_secret: str = ""

    def get_authority_url(self) -> str:
        """Get the formatted authority URL."""
        return f"https://login.microsoftonline.com/{self.tenant_id}"

    def resolve_client_secret(self) -> str:
        return self.client_secret or os.environ.get(CLIENT_SECRET_ENV, "")


class SlotStoreSettings(BaseModel):
    """Remote interview scheduler API."""
    base_url: str
    api_token: str = ""
    timeout_seconds: float = 30.0

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def resolve_api_token(self) -> str:
        return self.api_token or os.environ.get(SLOT_STORE_TOKEN_ENV, "")


class EventFilterSettings(BaseModel):
    """Which calendar events count as busy time."""
    out_of_office_titles: List[str] = Field(default_factory=lambda: ["Out of office", "OOO"])
    working_location_titles: List[str] = Field(default_factory=lambda: ["Home", "Office", "Working location"])
    leave_keywords: List[str] = Field(
        default_factory=lambda: ["holiday", "vacation", "leave", "pto", "sick", "urlaub", "out of office"]
    )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    recruiters_file: Path = Path("recruiters.csv")
    state_dir: Path = Path(".slotsync")
    sync: SyncSettings = Field(default_factory=SyncSettings)
    graph: GraphSettings
    slot_store: SlotStoreSettings
    event_filter: EventFilterSettings = Field(default_factory=EventFilterSettings)

    @model_validator(mode="after")
    def validate_timezone(self) -> "AppConfig":
        try:
            pendulum.timezone(self.timezone)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {self.timezone}") from exc
        return self

    @property
    def cache_dir(self) -> Path:
        return self.state_dir / "snapshots"

    @property
    def lock_file(self) -> Path:
        return self.state_dir / "full_sync.lock"

    @property
    def state_file(self) -> Path:
        return self.state_dir / "state.json"

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative paths in the file are resolved against the file's directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

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

        config = cls(**data)

        base_dir = config_path.parent
        if not config.recruiters_file.is_absolute():
            config.recruiters_file = base_dir / config.recruiters_file
        if not config.state_dir.is_absolute():
            config.state_dir = base_dir / config.state_dir

        return config


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
