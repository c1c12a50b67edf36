"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Salesforce credentials are optional at load time so the workbook
preview flow runs without them; remote calls fail with AuthError instead.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SALESFORCE
    # ===================
    sf_instance_url: Optional[str] = Field(
        None,
        description="Salesforce instance URL, e.g. https://mydomain.my.salesforce.com"
    )
    sf_client_id: Optional[str] = Field(
        None,
        description="Connected app consumer key"
    )
    sf_client_secret: Optional[str] = Field(
        None,
        description="Connected app consumer secret"
    )
    sf_api_version: str = Field(
        default="v58.0",
        pattern=r"^v\d+\.\d+$",
        description="Salesforce REST API version"
    )
    sf_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for each Salesforce HTTP request"
    )
    sf_composite_batch_size: int = Field(
        default=200,
        ge=1,
        le=200,
        description="Records per composite/sobjects request (Salesforce caps at 200)"
    )

    # ===================
    # LINE ITEM OBJECT
    # ===================
    line_item_object: str = Field(
        default="jellyfish_line_item__c",
        description="Salesforce object type the line items are written to"
    )
    parent_group: str = Field(
        default="jellyfish_line_item__c",
        description="Parameter grouping key holding the parent id column"
    )
    parent_field: str = Field(
        default="opportunity_id__c",
        description="Field holding the parent (opportunity) id"
    )
    active_field: str = Field(
        default="Active__c",
        description="Boolean flag marking the current revision"
    )
    revision_field: str = Field(
        default="Version_Number__c",
        description="Integer revision number field"
    )
    discount_field: Optional[str] = Field(
        default="Sales_Discount__c",
        description="Fraction field sent as a percentage (x100); empty disables rescaling"
    )

    # ===================
    # WORKBOOK
    # ===================
    params_sheet: str = Field(
        default="JF_SCRIPT_PARAMS",
        description="Worksheet holding one JSON parameter per row in column A"
    )
    log_sheet: str = Field(
        default="JF_SCRIPT_LOG",
        description="Worksheet run log entries are appended to"
    )
    write_log_sheet: bool = Field(
        default=True,
        description="Append run log entries to the workbook log sheet"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def salesforce_configured(self) -> bool:
        """Check if Salesforce credentials are present."""
        return bool(self.sf_instance_url and self.sf_client_id and self.sf_client_secret)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
