"""
Unit tests for the Salesforce REST client.

The requests session is a MagicMock; responses are built with
make_response().
"""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from exceptions import AuthError, SalesforceError
from integrations.salesforce import (
    LineItemObject,
    SalesforceClient,
    escape_soql,
    scale_discount,
    to_json_value,
)


INSTANCE = "https://example.my.salesforce.com"


# ===================
# FIXTURES
# ===================

def make_response(body, status=200):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.json.return_value = body
    response.text = str(body)
    return response


TOKEN_RESPONSE = {"access_token": "token-123", "token_type": "Bearer"}


@pytest.fixture
def session():
    session = MagicMock()
    session.post.return_value = make_response(TOKEN_RESPONSE)
    return session


@pytest.fixture
def client(session):
    return SalesforceClient(
        instance_url=INSTANCE + "/",
        client_id="client-id",
        client_secret="client-secret",
        batch_size=2,
        session=session,
    )


# ===================
# HELPERS
# ===================

class TestHelpers:
    """Tests for value helpers."""

    def test_escape_soql(self):
        assert escape_soql("006'A\\B") == "006\\'A\\\\B"

    def test_to_json_value(self):
        assert to_json_value(date(2026, 1, 15)) == "2026-01-15"
        assert to_json_value(datetime(2026, 1, 15, 9, 30)) == "2026-01-15T09:30:00"
        assert to_json_value(Decimal("1.5")) == 1.5
        assert to_json_value("x") == "x"

    @pytest.mark.parametrize("value,expected", [
        (0.25, 25.0),
        (1, 100),
        ("0.1", 10.0),
        (None, None),
        ("", ""),
        (True, True),
        ("n/a", "n/a"),
    ])
    def test_scale_discount(self, value, expected):
        result = scale_discount(value)

        if isinstance(expected, float):
            assert result == pytest.approx(expected)
        else:
            assert result == expected


# ===================
# AUTHENTICATION
# ===================

class TestAccessToken:
    """Tests for get_access_token."""

    def test_posts_client_credentials(self, client, session):
        token = client.get_access_token()

        assert token == "token-123"
        session.post.assert_called_once()
        url = session.post.call_args.args[0]
        assert url == f"{INSTANCE}/services/oauth2/token"
        assert session.post.call_args.kwargs["data"] == {
            "grant_type": "client_credentials",
            "client_id": "client-id",
            "client_secret": "client-secret",
        }

    def test_not_configured_raises_without_request(self, session):
        client = SalesforceClient(None, "id", "secret", session=session)

        with pytest.raises(AuthError):
            client.get_access_token()

        session.post.assert_not_called()

    def test_no_access_token_raises(self, client, session):
        session.post.return_value = make_response(
            {"error": "invalid_client", "error_description": "invalid client credentials"},
            status=400,
        )

        with pytest.raises(AuthError) as exc_info:
            client.get_access_token()

        assert exc_info.value.code == "SALESFORCE_AUTH_ERROR"
        assert exc_info.value.status_code == 502

    def test_connection_error_raises_auth_error(self, client, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(AuthError):
            client.get_access_token()

    def test_non_json_body_raises(self, client, session):
        response = make_response(None)
        response.json.side_effect = ValueError("no json")
        session.post.return_value = response

        with pytest.raises(AuthError):
            client.get_access_token()


# ===================
# QUERIES
# ===================

class TestQueries:
    """Tests for SOQL queries."""

    def test_active_ids_query(self, client, session):
        session.request.return_value = make_response({
            "done": True,
            "records": [{"Id": "a01"}, {"Id": "a02"}],
        })

        ids = client.get_active_line_item_ids("006'X")

        assert ids == ["a01", "a02"]
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == f"{INSTANCE}/services/data/v58.0/query"
        soql = session.request.call_args.kwargs["params"]["q"]
        assert soql == (
            "SELECT Id FROM jellyfish_line_item__c "
            "WHERE opportunity_id__c = '006\\'X' AND Active__c = true"
        )
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer token-123"

    def test_query_follows_next_records_url(self, client, session):
        session.request.side_effect = [
            make_response({
                "done": False,
                "nextRecordsUrl": "/services/data/v58.0/query/01g-2000",
                "records": [{"Id": "a01"}],
            }),
            make_response({"done": True, "records": [{"Id": "a02"}]}),
        ]

        records = client.query("SELECT Id FROM jellyfish_line_item__c")

        assert [r["Id"] for r in records] == ["a01", "a02"]
        second_url = session.request.call_args_list[1].args[1]
        assert second_url == f"{INSTANCE}/services/data/v58.0/query/01g-2000"
        # One token for the whole query
        assert session.post.call_count == 1

    def test_query_without_records_raises(self, client, session):
        session.request.return_value = make_response({"totalSize": 0})

        with pytest.raises(SalesforceError):
            client.query("SELECT Id FROM jellyfish_line_item__c")

    def test_http_error_raises(self, client, session):
        session.request.return_value = make_response(
            [{"errorCode": "INVALID_FIELD", "message": "No such column"}],
            status=400,
        )

        with pytest.raises(SalesforceError) as exc_info:
            client.query("SELECT Nope FROM jellyfish_line_item__c")

        assert exc_info.value.operation == "query"
        assert exc_info.value.details["status"] == 400

    def test_timeout_raises(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout("timed out")

        with pytest.raises(SalesforceError):
            client.query("SELECT Id FROM jellyfish_line_item__c")

    def test_highest_revision(self, client, session):
        session.request.return_value = make_response({
            "done": True,
            "records": [{"Version_Number__c": 5.0}],
        })

        assert client.get_highest_revision_number("006A") == 5
        soql = session.request.call_args.kwargs["params"]["q"]
        assert "ORDER BY Version_Number__c DESC NULLS LAST LIMIT 1" in soql

    @pytest.mark.parametrize("records", [[], [{"Version_Number__c": None}]])
    def test_highest_revision_defaults_to_zero(self, client, session, records):
        session.request.return_value = make_response({"done": True, "records": records})

        assert client.get_highest_revision_number("006A") == 0


# ===================
# COMPOSITE WRITES
# ===================

class TestCompositeWrites:
    """Tests for deactivate/create through composite/sobjects."""

    def test_deactivate_sends_patch(self, client, session):
        session.request.return_value = make_response([
            {"id": "a01", "success": True, "errors": []},
        ])

        result = client.deactivate_line_items(["a01"])

        assert result.operation == "deactivate"
        assert result.succeeded == 1
        method, url = session.request.call_args.args
        assert method == "PATCH"
        assert url == f"{INSTANCE}/services/data/v58.0/composite/sobjects"
        assert session.request.call_args.kwargs["json"] == {
            "allOrNone": False,
            "records": [{
                "attributes": {"type": "jellyfish_line_item__c"},
                "Id": "a01",
                "Active__c": False,
            }],
        }

    def test_empty_batch_makes_no_request(self, client, session):
        result = client.deactivate_line_items([])

        assert result.total == 0
        session.post.assert_not_called()
        session.request.assert_not_called()

    def test_chunks_by_batch_size(self, client, session):
        session.request.side_effect = [
            make_response([{"id": "a01", "success": True}, {"id": "a02", "success": True}]),
            make_response([{"id": "a03", "success": True}]),
        ]

        result = client.deactivate_line_items(["a01", "a02", "a03"])

        assert session.request.call_count == 2
        assert result.total == 3
        assert session.post.call_count == 1

    def test_failed_chunk_carries_applied_results(self, client, session):
        session.request.side_effect = [
            make_response([{"id": "a01", "success": True}, {"id": "a02", "success": True}]),
            requests.exceptions.ConnectionError("reset"),
        ]

        with pytest.raises(SalesforceError) as exc_info:
            client.deactivate_line_items(["a01", "a02", "a03"])

        error = exc_info.value
        assert error.operation == "deactivate"
        assert error.partial_result.succeeded == 2
        assert [r["id"] for r in error.details["partial_results"]] == ["a01", "a02"]

    def test_first_chunk_failure_has_empty_partial_result(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("reset")

        with pytest.raises(SalesforceError) as exc_info:
            client.deactivate_line_items(["a01"])

        assert exc_info.value.partial_result.total == 0

    def test_create_stamps_parent_scales_discount_and_serializes(self, client, session):
        session.request.return_value = make_response([{"id": "a05", "success": True, "errors": []}])
        line_items = [{
            "Product__c": "Widget",
            "Sales_Discount__c": 0.25,
            "Delivery_Date__c": date(2026, 2, 1),
            "Active__c": True,
            "Version_Number__c": 3,
        }]

        client.create_line_items("006A", line_items)

        method = session.request.call_args.args[0]
        assert method == "POST"
        sent = session.request.call_args.kwargs["json"]["records"][0]
        assert sent["attributes"] == {"type": "jellyfish_line_item__c"}
        assert sent["opportunity_id__c"] == "006A"
        assert sent["Sales_Discount__c"] == pytest.approx(25.0)
        assert sent["Delivery_Date__c"] == "2026-02-01"
        assert sent["Version_Number__c"] == 3
        # Caller's record untouched
        assert line_items[0]["Sales_Discount__c"] == 0.25
        assert "opportunity_id__c" not in line_items[0]

    def test_create_without_discount_field_configured(self, session):
        client = SalesforceClient(
            INSTANCE, "id", "secret",
            line_item=LineItemObject(discount_field=None),
            session=session,
        )
        session.request.return_value = make_response([{"id": "a05", "success": True}])

        client.create_line_items("006A", [{"Sales_Discount__c": 0.25}])

        sent = session.request.call_args.kwargs["json"]["records"][0]
        assert sent["Sales_Discount__c"] == 0.25

    def test_partial_failure_reported(self, client, session):
        session.request.return_value = make_response([
            {"id": "a05", "success": True, "errors": []},
            {
                "success": False,
                "errors": [{
                    "statusCode": "REQUIRED_FIELD_MISSING",
                    "message": "Required fields are missing: [Product__c]",
                    "fields": ["Product__c"],
                }],
            },
        ])

        result = client.create_line_items("006A", [{"Product__c": "Widget"}, {"Quantity__c": 1}])

        assert result.succeeded == 1
        assert result.failed == 1
        failure = result.partial_failures[0]
        assert failure.operation == "insert"
        assert failure.index == 1
        assert failure.record_id is None
        assert failure.errors[0].status_code == "REQUIRED_FIELD_MISSING"
        assert failure.errors[0].fields == ["Product__c"]

    def test_mismatched_response_raises(self, client, session):
        session.request.return_value = make_response({"unexpected": True})

        with pytest.raises(SalesforceError):
            client.create_line_items("006A", [{"Product__c": "Widget"}])
