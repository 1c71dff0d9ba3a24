"""Configuration schema and YAML loader."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from asset_site.config.loader import YamlConfigLoader
    from asset_site.config.models import AppConfig, ConfigLoadRequest

__all__ = ["AppConfig", "ConfigLoadRequest", "YamlConfigLoader"]


def __getattr__(name: str):
    if name == "YamlConfigLoader":
        from asset_site.config.loader import YamlConfigLoader as _YamlConfigLoader

        return _YamlConfigLoader
    if name == "AppConfig":
        from asset_site.config.models import AppConfig as _AppConfig

        return _AppConfig
    if name == "ConfigLoadRequest":
        from asset_site.config.models import ConfigLoadRequest as _ConfigLoadRequest

        return _ConfigLoadRequest
    raise AttributeError(name)
