"""
Salesforce client management.

Provides a cached SalesforceClient built from settings.
"""

from functools import lru_cache

import structlog

from config.settings import settings
from exceptions import AppError
from integrations.salesforce import LineItemObject, SalesforceClient

logger = structlog.get_logger(__name__)


def line_item_object() -> LineItemObject:
    """Line item object and field names from settings."""
    return LineItemObject(
        object_name=settings.line_item_object,
        parent_field=settings.parent_field,
        active_field=settings.active_field,
        revision_field=settings.revision_field,
        discount_field=settings.discount_field or None,
    )


@lru_cache()
def get_salesforce_client() -> SalesforceClient:
    """
    Get cached Salesforce client instance.

    Call get_salesforce_client.cache_clear() (or reset_client()) to rebuild
    it after settings change.
    """
    logger.info(
        "creating_salesforce_client",
        configured=settings.salesforce_configured,
        api_version=settings.sf_api_version
    )
    return SalesforceClient(
        instance_url=settings.sf_instance_url,
        client_id=settings.sf_client_id,
        client_secret=settings.sf_client_secret,
        api_version=settings.sf_api_version,
        timeout=settings.sf_timeout_seconds,
        batch_size=settings.sf_composite_batch_size,
        line_item=line_item_object(),
    )


def reset_client():
    """Drop the cached client."""
    get_salesforce_client.cache_clear()
    logger.info("salesforce_client_reset")


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check Salesforce configuration and token exchange.

    Returns:
        dict: Connection status with details
    """
    if not settings.salesforce_configured:
        return {"status": "not_configured"}

    try:
        get_salesforce_client().get_access_token()
        return {"status": "healthy", "instance_url": settings.sf_instance_url}
    except AppError as e:
        return {"status": "unhealthy", "error": e.message}
