"""
Configuration Defaults for the Data-Sheet Codec

This module provides the defaults the exporter, importer and XML writer fall
back on when the caller does not supply an explicit value. Defaults are
controlled via environment variables so a host can retarget them without
code changes.

Usage:
    from datasheet_codec.config.settings import get_setting

    system_name = get_setting('default_system_name')

Environment Variables:
    DATASHEET_DEFAULT_SYSTEM=<name>  - System name used when a table has none
    DATASHEET_SYSTEM_FIELD=<name>    - Data field holding a table's system name
    DATASHEET_PRETTY_PRINT=true/false - Indent written XML documents
    DATASHEET_MAX_ROW_GAP=<n>        - Largest gap between known rows and an archived row
"""

import os
from typing import Any, Dict


# Settings with environment variable overrides
SETTINGS: Dict[str, Any] = {
    # Placeholder system name for tables without a system data field value
    'default_system_name': os.getenv('DATASHEET_DEFAULT_SYSTEM', 'DefaultSystem'),

    # Name of the data field that carries a table's system name
    'system_field_key': os.getenv('DATASHEET_SYSTEM_FIELD', 'System'),

    # XML output formatting
    'pretty_print': os.getenv('DATASHEET_PRETTY_PRINT', 'true').lower() == 'true',

    # Rows an archived column entry may reach past the table's known rows
    'max_archived_row_gap': int(os.getenv('DATASHEET_MAX_ROW_GAP', '10000')),
}


def get_setting(name: str) -> Any:
    """
    Look up a codec setting.

    Args:
        name: Setting name (e.g., 'default_system_name')

    Returns:
        Current value of the setting

    Raises:
        KeyError: If the setting name is not recognized

    Example:
        >>> get_setting('default_system_name')
        'DefaultSystem'
    """
    if name not in SETTINGS:
        available = ', '.join(SETTINGS.keys())
        raise KeyError(
            f"Unknown setting: '{name}'. "
            f"Available settings: {available}"
        )

    return SETTINGS[name]


def get_all_settings() -> Dict[str, Any]:
    """
    Get all settings and their current values.

    Returns:
        Dictionary of setting names to values
    """
    return SETTINGS.copy()


def set_setting(name: str, value: Any) -> None:
    """
    Programmatically override a setting (for testing only).

    Args:
        name: Setting name
        value: New value

    Warning:
        This is for testing only. In production, use environment variables.
    """
    if name not in SETTINGS:
        available = ', '.join(SETTINGS.keys())
        raise KeyError(
            f"Unknown setting: '{name}'. "
            f"Available settings: {available}"
        )

    SETTINGS[name] = value
