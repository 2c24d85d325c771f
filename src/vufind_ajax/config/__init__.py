"""Configuration package."""

from vufind_ajax.config.app_settings import AppSettings, PickMode, get_settings

__all__ = ["AppSettings", "PickMode", "get_settings"]
