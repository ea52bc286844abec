"""Configuration adapters."""

from shared_timer.adapters.config.app_config import AppConfig

__all__ = ["AppConfig"]
