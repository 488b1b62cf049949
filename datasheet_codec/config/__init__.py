"""Runtime settings for the data-sheet codec."""

from datasheet_codec.config.settings import get_all_settings, get_setting, set_setting

__all__ = [
    "get_all_settings",
    "get_setting",
    "set_setting",
]
