"""
Settings management with JSON persistence.

Handles loading, saving, and validating application settings.
Uses platformdirs for cross-platform directory resolution.
"""

import json
import os
from pathlib import Path
from typing import Optional, Protocol

from platformdirs import user_config_path, user_data_path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...utils.logger import get_logger
from .config import (
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_TRANSCRIPTION_MODEL,
    OPENAI_API_BASE,
)

logger = get_logger(__name__)

APP_NAME = "voxcapture"
API_KEY_ENV_VAR = "OPENAI_API_KEY"


def get_config_dir() -> Path:
    return user_config_path(APP_NAME, appauthor=False, ensure_exists=True)


def get_data_dir() -> Path:
    return user_data_path(APP_NAME, appauthor=False, ensure_exists=True)


class CredentialProvider(Protocol):
    def has_credential(self) -> bool: ...

    def get_credential(self) -> Optional[str]: ...


class Settings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    api_key: Optional[str] = None
    api_base_url: str = OPENAI_API_BASE
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    request_timeout_s: float = Field(default=DEFAULT_REQUEST_TIMEOUT_S, gt=0, le=600)

    real_capture_enabled: bool = False
    ffmpeg_path: Optional[str] = None
    flush_grace_s: float = Field(default=1.0, ge=0, le=30)

    @field_validator("transcription_model", "api_base_url")
    @classmethod
    def not_empty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("value must be a non-empty string")
        return v

    def get_credential(self) -> Optional[str]:
        """Configured API key, falling back to ``OPENAI_API_KEY``."""
        key = self.api_key or os.environ.get(API_KEY_ENV_VAR)
        if key and key.strip():
            return key.strip()
        return None

    def has_credential(self) -> bool:
        return self.get_credential() is not None

    @classmethod
    def load(cls) -> "Settings":
        config_file = get_config_dir() / "settings.json"

        if not config_file.exists():
            return cls()

        try:
            with open(config_file, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load settings: {e}. Using defaults.", exc_info=True)
            return cls()

        if not isinstance(data, dict):
            logger.warning("Settings file is not a JSON object. Using defaults.")
            return cls()

        valid_keys = cls.model_fields.keys()
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}
        return cls._load_with_fallbacks(filtered_data)

    @classmethod
    def _load_with_fallbacks(cls, data: dict) -> "Settings":
        """Load settings with field-level fallback to defaults on validation errors."""
        defaults = cls()
        result_data = {}

        for field_name in cls.model_fields:
            if field_name not in data:
                result_data[field_name] = getattr(defaults, field_name)
                continue
            try:
                validated = cls.model_validate(
                    {**defaults.model_dump(), field_name: data[field_name]}
                )
                result_data[field_name] = getattr(validated, field_name)
            except Exception:
                default_val = getattr(defaults, field_name)
                logger.warning(
                    f"Invalid {field_name} {data[field_name]!r}, resetting to {default_val}"
                )
                result_data[field_name] = default_val

        return cls.model_construct(**result_data)

    def save(self) -> None:
        config_file = get_config_dir() / "settings.json"

        with open(config_file, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def reset_to_defaults(self) -> None:
        default = Settings()
        for key, value in default.model_dump().items():
            setattr(self, key, value)


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.load()
    return _settings_instance
