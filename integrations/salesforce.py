"""
Salesforce REST integration.

Client-credentials token exchange, SOQL queries, and composite sobjects
create/update for line items. Composite calls run with allOrNone=false:
each record succeeds or fails on its own and failures come back in the
per-record results.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Optional
from urllib.parse import urljoin

import requests
import structlog

from exceptions import AuthError, SalesforceError
from models.sync import BatchOperation, BatchResult, RecordError, RecordResult

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LineItemObject:
    """Names of the line item object and the fields the sync writes."""
    object_name: str = "jellyfish_line_item__c"
    parent_field: str = "opportunity_id__c"
    active_field: str = "Active__c"
    revision_field: str = "Version_Number__c"
    discount_field: Optional[str] = "Sales_Discount__c"


def escape_soql(value: str) -> str:
    """Escape a value for use inside a single-quoted SOQL literal."""
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def to_json_value(value: Any) -> Any:
    """Convert worksheet values (dates, decimals) into JSON-safe values."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def scale_discount(value: Any) -> Any:
    """
    Convert a stored fraction to the percentage Salesforce expects (x100).

    Empty and non-numeric values are returned unchanged.
    """
    if value is None or value == "" or isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value * 100
    try:
        return float(str(value).strip()) * 100
    except ValueError:
        logger.warning("discount_not_numeric", value=value)
        return value


def _chunks(items: list, size: int) -> Iterable[list]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SalesforceClient:
    """
    Thin Salesforce REST client.

    A fresh access token is requested for each public operation.

    Usage:
        client = SalesforceClient(instance_url, client_id, client_secret)
        ids = client.get_active_line_item_ids("006XXXXXXXXXXXX")
    """

    def __init__(
        self,
        instance_url: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
        api_version: str = "v58.0",
        timeout: float = 30.0,
        batch_size: int = 200,
        line_item: Optional[LineItemObject] = None,
        session: Optional[requests.Session] = None,
    ):
        self.instance_url = (instance_url or "").rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_version = api_version
        self.timeout = timeout
        self.batch_size = batch_size
        self.line_item = line_item or LineItemObject()
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.instance_url and self.client_id and self.client_secret)

    @property
    def data_url(self) -> str:
        return f"{self.instance_url}/services/data/{self.api_version}"

    # ===================
    # AUTHENTICATION
    # ===================

    def get_access_token(self) -> str:
        """
        Exchange client credentials for a bearer token.

        Raises:
            AuthError: If credentials are missing, the endpoint is unreachable,
                       or the response carries no access_token
        """
        if not self.configured:
            raise AuthError(
                "Salesforce credentials are not configured",
                details={
                    "has_instance_url": bool(self.instance_url),
                    "has_client_id": bool(self.client_id),
                    "has_client_secret": bool(self.client_secret),
                }
            )

        token_url = f"{self.instance_url}/services/oauth2/token"
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

        logger.info("requesting_salesforce_token", url=token_url)
        try:
            response = self.session.post(token_url, data=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("salesforce_token_request_failed", error=str(e))
            raise AuthError(f"Failed to reach Salesforce token endpoint: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error("salesforce_token_response_invalid", status=response.status_code)
            raise AuthError(
                "Invalid JSON response from token request",
                details={"status": response.status_code, "body": response.text[:500]}
            ) from e

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            logger.error("salesforce_token_denied", status=response.status_code)
            raise AuthError(
                "Failed to get access token",
                details={"status": response.status_code, "response": body}
            )

        logger.info("salesforce_token_received", status=response.status_code)
        return token

    # ===================
    # TRANSPORT
    # ===================

    def _request(
        self,
        operation: str,
        method: str,
        url: str,
        token: str,
        **kwargs: Any
    ) -> Any:
        """Send one authenticated request and return the decoded JSON body."""
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error("salesforce_request_failed", operation=operation, error=str(e))
            raise SalesforceError(operation, str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = response.text

        if not response.ok:
            logger.error(
                "salesforce_http_error",
                operation=operation,
                status=response.status_code,
                body=body
            )
            raise SalesforceError(
                operation,
                f"HTTP {response.status_code}",
                details={"status": response.status_code, "response": body}
            )
        return body

    # ===================
    # QUERIES
    # ===================

    def query(self, soql: str, token: Optional[str] = None) -> list[dict]:
        """
        Run a SOQL query and return every record, following pagination.

        Raises:
            SalesforceError: If a response carries no `records` list
        """
        token = token or self.get_access_token()
        logger.debug("salesforce_query", soql=soql)

        body = self._request("query", "GET", f"{self.data_url}/query", token, params={"q": soql})
        records: list[dict] = []
        while True:
            if not isinstance(body, dict) or not isinstance(body.get("records"), list):
                raise SalesforceError(
                    "query",
                    "No records found or error in query",
                    details={"response": body}
                )
            records.extend(body["records"])

            next_url = body.get("nextRecordsUrl")
            if body.get("done", True) or not next_url:
                break
            body = self._request("query", "GET", urljoin(self.instance_url + "/", next_url), token)

        logger.debug("salesforce_query_complete", count=len(records))
        return records

    def get_active_line_item_ids(self, parent_id: str) -> list[str]:
        """Ids of every active line item under the parent."""
        item = self.line_item
        soql = (
            f"SELECT Id FROM {item.object_name} "
            f"WHERE {item.parent_field} = '{escape_soql(parent_id)}' "
            f"AND {item.active_field} = true"
        )
        records = self.query(soql)
        ids = [record["Id"] for record in records if record.get("Id")]
        logger.info("active_line_items_found", parent_id=parent_id, count=len(ids))
        return ids

    def get_highest_revision_number(self, parent_id: str) -> int:
        """Highest revision number under the parent, 0 when there is none."""
        item = self.line_item
        soql = (
            f"SELECT {item.revision_field} FROM {item.object_name} "
            f"WHERE {item.parent_field} = '{escape_soql(parent_id)}' "
            f"ORDER BY {item.revision_field} DESC NULLS LAST LIMIT 1"
        )
        records = self.query(soql)
        if not records:
            return 0

        value = records[0].get(item.revision_field)
        if value in (None, ""):
            return 0
        try:
            return int(float(value))
        except (TypeError, ValueError) as e:
            raise SalesforceError(
                "query",
                f"Revision number is not numeric: {value!r}",
                details={"parent_id": parent_id}
            ) from e

    # ===================
    # COMPOSITE WRITES
    # ===================

    def _composite(
        self,
        operation: BatchOperation,
        method: str,
        records: list[dict],
    ) -> BatchResult:
        """Send records through composite/sobjects in batch_size chunks."""
        result = BatchResult(operation=operation)
        if not records:
            logger.info("composite_batch_empty", operation=operation)
            return result

        token = self.get_access_token()
        url = f"{self.data_url}/composite/sobjects"

        try:
            for chunk in _chunks(records, self.batch_size):
                body = self._request(
                    operation,
                    method,
                    url,
                    token,
                    json={"allOrNone": False, "records": chunk},
                )
                if not isinstance(body, list) or len(body) != len(chunk):
                    raise SalesforceError(
                        operation,
                        "Unexpected composite response",
                        details={"sent": len(chunk), "response": body}
                    )
                result.results.extend(_parse_record_result(item) for item in body)
        except SalesforceError as e:
            # Earlier chunks are already applied remotely
            e.partial_result = result
            e.details["partial_results"] = [r.model_dump(mode="json") for r in result.results]
            logger.error(
                "composite_batch_interrupted",
                operation=operation,
                applied=result.total,
                remaining=len(records) - result.total
            )
            raise

        logger.info(
            "composite_batch_complete",
            operation=operation,
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed
        )
        return result

    def deactivate_line_items(self, ids: list[str]) -> BatchResult:
        """Set the active flag to false on every id."""
        item = self.line_item
        records = [
            {
                "attributes": {"type": item.object_name},
                "Id": record_id,
                item.active_field: False,
            }
            for record_id in ids
        ]
        return self._composite("deactivate", "PATCH", records)

    def create_line_items(self, parent_id: str, line_items: list[dict]) -> BatchResult:
        """
        Insert line items under the parent.

        Each record is copied, tagged with the object type and parent id,
        has its discount rescaled to a percentage, and is made JSON-safe.
        """
        item = self.line_item
        records = []
        for line_item in line_items:
            payload = {key: to_json_value(value) for key, value in line_item.items()}
            payload[item.parent_field] = parent_id
            if item.discount_field and item.discount_field in payload:
                payload[item.discount_field] = scale_discount(payload[item.discount_field])
            records.append({"attributes": {"type": item.object_name}, **payload})
        return self._composite("insert", "POST", records)


def _parse_record_result(item: Any) -> RecordResult:
    """Convert one composite response entry to a RecordResult."""
    if not isinstance(item, dict):
        return RecordResult(success=False, errors=[RecordError(message=str(item))])
    errors = [
        RecordError(
            status_code=error.get("statusCode"),
            message=error.get("message") or "",
            fields=error.get("fields") or [],
        )
        for error in item.get("errors") or []
        if isinstance(error, dict)
    ]
    return RecordResult(
        id=item.get("id"),
        success=bool(item.get("success")),
        errors=errors,
    )
