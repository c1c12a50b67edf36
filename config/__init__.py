"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    configure_logging: structlog setup for the API and scripts
    get_salesforce_client: Cached Salesforce client
    check_connection: Health check function
"""

from config.settings import settings, get_settings, Settings
from config.log_config import configure_logging
from config.salesforce import (
    get_salesforce_client,
    line_item_object,
    reset_client,
    check_connection,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Logging
    "configure_logging",

    # Salesforce
    "get_salesforce_client",
    "line_item_object",
    "reset_client",
    "check_connection",
]
