"""Settings and persistence utilities."""

from .settings import (
    CredentialProvider,
    Settings,
    get_config_dir,
    get_data_dir,
    get_settings,
)

__all__ = [
    "CredentialProvider",
    "Settings",
    "get_config_dir",
    "get_data_dir",
    "get_settings",
]
