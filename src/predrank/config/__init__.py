"""Configuration: TOML settings and logging setup."""

from predrank.config.settings import Settings, configure_logging, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
