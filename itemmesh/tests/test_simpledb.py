"""
Unit Tests: SimpleDB Executor

Runs against a real boto3 `sdb` client whose responses are stubbed with
botocore's Stubber, so request parameters are validated against the
service model.

Tests:
    - Select paging, multi-valued attributes, consistency flag
    - count(*) summed over partial pages
    - Error code mapping and retries
    - Which client-side failures are retried
    - Single-item get / put / delete
"""

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import EndpointConnectionError, ParamValidationError, ReadTimeoutError
from botocore.stub import Stubber

from itemmesh.core.config import RemoteConfig
from itemmesh.core.errors import ErrorCode
from itemmesh.reliability.retry import RetryPolicy
from itemmesh.remote import RemoteExecutor, SimpleDBExecutor
from itemmesh.remote.simpledb import attributes_from_wire, attributes_to_wire
from itemmesh.tests.fakes import Planet


@pytest.fixture
def client():
    return boto3.client(
        "sdb",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(retries={"total_max_attempts": 1}),
    )


@pytest.fixture
def stubber(client):
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def executor(client, stubber, sleeps):
    policy = RetryPolicy(max_retries=2, base_delay_ms=10, jitter=False)
    return SimpleDBExecutor(client, retry_policy=policy, sleep=sleeps.append)


QUERY = "select * from `planets`"


class TestWireHelpers:
    """Tests for attribute list conversion."""

    def test_from_wire_groups_repeated_names(self):
        pairs = [
            {"Name": "name", "Value": "Earth"},
            {"Name": "tags", "Value": "a"},
            {"Name": "tags", "Value": "b"},
            {"Name": "tags", "Value": "c"},
        ]
        assert attributes_from_wire(pairs) == {"name": "Earth", "tags": ["a", "b", "c"]}

    def test_to_wire_splits_puts_and_clears(self):
        puts, clears = attributes_to_wire({"name": "Earth", "tags": ["a", "b"], "color": None, "x": []})
        assert puts == [
            {"Name": "name", "Value": "Earth", "Replace": True},
            {"Name": "tags", "Value": "a", "Replace": True},
            {"Name": "tags", "Value": "b", "Replace": True},
        ]
        assert clears == ["color", "x"]


class TestSelect:
    """Tests for execute()."""

    def test_page_parsed(self, executor, stubber):
        stubber.add_response(
            "select",
            {
                "Items": [
                    {"Name": "P1", "Attributes": [
                        {"Name": "name", "Value": "Earth"},
                        {"Name": "tags", "Value": "a"},
                        {"Name": "tags", "Value": "b"},
                    ]},
                    {"Name": "P2", "Attributes": [{"Name": "name", "Value": "Mars"}]},
                ],
                "NextToken": "tok-1",
            },
            {"SelectExpression": QUERY},
        )
        page = executor.execute(QUERY).unwrap()
        assert [row.identity for row in page.rows] == ["P1", "P2"]
        assert page.rows[0].attributes == {"name": "Earth", "tags": ["a", "b"]}
        assert page.next_token == "tok-1"
        assert page.query == QUERY

    def test_token_and_consistency_sent(self, executor, stubber):
        stubber.add_response(
            "select",
            {"Items": []},
            {"SelectExpression": QUERY, "NextToken": "tok-1", "ConsistentRead": True},
        )
        page = executor.execute(QUERY, next_token="tok-1", consistent=True).unwrap()
        assert page.is_final
        assert len(page) == 0

    @pytest.mark.parametrize("code,expected", [
        ("InvalidNextToken", ErrorCode.REMOTE_INVALID_NEXT_TOKEN),
        ("InvalidNumberPredicates", ErrorCode.REMOTE_TOO_MANY_COMPARISONS),
        ("InvalidNumberValueTests", ErrorCode.REMOTE_TOO_MANY_COMPARISONS),
        ("InvalidQueryExpression", ErrorCode.REMOTE_QUERY_REJECTED),
        ("NoSuchDomain", ErrorCode.REMOTE_QUERY_REJECTED),
    ])
    def test_error_mapping(self, executor, stubber, sleeps, code, expected):
        stubber.add_client_error("select", service_error_code=code, http_status_code=400)
        result = executor.execute(QUERY)
        assert result.is_err()
        assert result.error.code == expected
        assert sleeps == []

    def test_transient_error_retried(self, executor, stubber, sleeps):
        stubber.add_client_error("select", service_error_code="ServiceUnavailable", http_status_code=503)
        stubber.add_response("select", {"Items": []}, {"SelectExpression": QUERY})
        assert executor.execute(QUERY).is_ok()
        assert sleeps == [0.01]

    def test_retries_exhausted(self, executor, stubber, sleeps):
        for _ in range(3):
            stubber.add_client_error("select", service_error_code="Throttling", http_status_code=503)
        result = executor.execute(QUERY)
        assert result.error.code == ErrorCode.REMOTE_UNAVAILABLE
        assert sleeps == [0.01, 0.02]


class TestCount:
    """Tests for execute_count()."""

    def test_partial_counts_summed(self, executor, stubber):
        count_query = "select count(*) from `planets`"
        stubber.add_response(
            "select",
            {"Items": [{"Name": "Domain", "Attributes": [{"Name": "Count", "Value": "100"}]}],
             "NextToken": "more"},
            {"SelectExpression": count_query},
        )
        stubber.add_response(
            "select",
            {"Items": [{"Name": "Domain", "Attributes": [{"Name": "Count", "Value": "23"}]}]},
            {"SelectExpression": count_query, "NextToken": "more"},
        )
        assert executor.execute_count(count_query).unwrap() == 123


class TestSingleItem:
    """Tests for get / put / delete of one item."""

    def test_get_missing(self, executor, stubber):
        stubber.add_response("get_attributes", {}, {"DomainName": "planets", "ItemName": "nope"})
        assert executor.get_attributes("planets", "nope").unwrap() is None

    def test_get_present(self, executor, stubber):
        stubber.add_response(
            "get_attributes",
            {"Attributes": [{"Name": "name", "Value": "Earth"}]},
            {"DomainName": "planets", "ItemName": "P1", "ConsistentRead": True},
        )
        assert executor.get_attributes("planets", "P1", consistent=True).unwrap() == {"name": "Earth"}

    def test_put_replaces_and_clears_stored_nulls(self, executor, stubber):
        """None removes the stored values, named explicitly."""
        stubber.add_response(
            "put_attributes", {},
            {"DomainName": "planets", "ItemName": "P1",
             "Attributes": [{"Name": "name", "Value": "Earth", "Replace": True}]},
        )
        stubber.add_response(
            "get_attributes",
            {"Attributes": [{"Name": "color", "Value": "red"}, {"Name": "color", "Value": "rust"}]},
            {"DomainName": "planets", "ItemName": "P1", "AttributeNames": ["color"], "ConsistentRead": True},
        )
        stubber.add_response(
            "delete_attributes", {},
            {"DomainName": "planets", "ItemName": "P1",
             "Attributes": [{"Name": "color", "Value": "red"}, {"Name": "color", "Value": "rust"}]},
        )
        assert executor.put_attributes("planets", "P1", {"name": "Earth", "color": None}).is_ok()

    def test_put_item_with_unset_attributes(self, executor, stubber):
        """Unset attributes with nothing stored need no DeleteAttributes call."""
        stubber.add_response(
            "put_attributes", {},
            {"DomainName": "planets", "ItemName": "P1", "Attributes": [
                {"Name": "name", "Value": "Earth", "Replace": True},
                {"Name": "kind", "Value": "planet", "Replace": True},
                {"Name": "moons", "Value": "0", "Replace": True},
                {"Name": "status", "Value": "active", "Replace": True},
            ]},
        )
        stubber.add_response(
            "get_attributes", {},
            {"DomainName": "planets", "ItemName": "P1",
             "AttributeNames": ["color", "tags"], "ConsistentRead": True},
        )
        wire = Planet(id="P1", name="Earth").to_wire()
        assert executor.put_attributes("planets", "P1", wire).is_ok()

    def test_put_only_nulls_skips_put(self, executor, stubber):
        stubber.add_response(
            "get_attributes",
            {"Attributes": [{"Name": "color", "Value": "red"}]},
            {"DomainName": "planets", "ItemName": "P1", "AttributeNames": ["color"], "ConsistentRead": True},
        )
        stubber.add_response(
            "delete_attributes", {},
            {"DomainName": "planets", "ItemName": "P1", "Attributes": [{"Name": "color", "Value": "red"}]},
        )
        assert executor.put_attributes("planets", "P1", {"color": None}).is_ok()

    def test_put_failure(self, executor, stubber):
        stubber.add_client_error("put_attributes", service_error_code="NumberItemAttributesExceeded")
        result = executor.put_attributes("planets", "P1", {"name": "Earth"})
        assert result.error.code == ErrorCode.REMOTE_WRITE_FAILED

    def test_delete(self, executor, stubber):
        stubber.add_response("delete_attributes", {}, {"DomainName": "planets", "ItemName": "P1"})
        assert executor.delete_attributes("planets", "P1").is_ok()


class RaisingClient:
    """Stand-in client whose every call raises the same exception."""

    def __init__(self, error):
        self.error = error
        self.calls = 0

    def _raise(self, **params):
        self.calls += 1
        raise self.error

    put_attributes = select = _raise


class TestRetryClassification:
    """Tests for which client-side failures are retried."""

    @pytest.fixture
    def policy(self):
        return RetryPolicy(max_retries=2, base_delay_ms=10, jitter=False)

    def test_validation_error_not_retried(self, policy, sleeps):
        client = RaisingClient(ParamValidationError(report="Missing required parameter"))
        executor = SimpleDBExecutor(client, retry_policy=policy, sleep=sleeps.append)
        result = executor.put_attributes("planets", "P1", {"name": "Earth"})
        assert result.error.code == ErrorCode.REMOTE_WRITE_FAILED
        assert client.calls == 1
        assert sleeps == []

    def test_validation_error_on_select_is_rejection(self, policy, sleeps):
        client = RaisingClient(ParamValidationError(report="Invalid type for parameter"))
        executor = SimpleDBExecutor(client, retry_policy=policy, sleep=sleeps.append)
        assert executor.execute(QUERY).error.code == ErrorCode.REMOTE_QUERY_REJECTED
        assert client.calls == 1

    @pytest.mark.parametrize("error", [
        EndpointConnectionError(endpoint_url="https://sdb.amazonaws.com"),
        ReadTimeoutError(endpoint_url="https://sdb.amazonaws.com"),
    ])
    def test_connection_errors_retried(self, policy, sleeps, error):
        client = RaisingClient(error)
        executor = SimpleDBExecutor(client, retry_policy=policy, sleep=sleeps.append)
        assert executor.execute(QUERY).error.code == ErrorCode.REMOTE_UNAVAILABLE
        assert client.calls == 3
        assert sleeps == [0.01, 0.02]


class TestConstruction:
    """Tests for building the executor from configuration."""

    def test_from_config(self):
        config = RemoteConfig(region="eu-west-1", access_key="a", secret_key="b", max_retries=5)
        executor = SimpleDBExecutor.from_config(config)
        assert executor.client.meta.region_name == "eu-west-1"
        assert isinstance(executor, RemoteExecutor)
