"""Configuration: environment settings and declared resource files."""

from fusionauth_provider.config.loader import ResourceBlock, load_resource_file
from fusionauth_provider.config.settings import Settings, get_settings

__all__ = [
    "ResourceBlock",
    "Settings",
    "get_settings",
    "load_resource_file",
]
