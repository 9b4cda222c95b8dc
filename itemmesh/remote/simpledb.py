"""
SimpleDB Remote Executor
========================

RemoteExecutor implementation over the Amazon SimpleDB API (boto3 `sdb`
client). Maps the four calls the result-set engine and item persistence
need:

| Protocol method     | SimpleDB action    | Notes                           |
|---------------------|--------------------|---------------------------------|
| execute             | Select             | NextToken, ConsistentRead       |
| execute_count       | Select count(*)    | partial counts summed over pages|
| get_attributes      | GetAttributes      | Ok(None) for missing items      |
| put_attributes      | PutAttributes      | Replace=True; None -> clear     |
| delete_attributes   | DeleteAttributes   |                                 |

Multi-valued attributes come back as lists; single values as strings.
Transient failures (throttling, ServiceUnavailable, connection timeouts)
are retried with exponential backoff; everything else is mapped to a
RemoteExecutionError on the first failure.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from itemmesh.core.config import RemoteConfig
from itemmesh.core.errors import RemoteExecutionError
from itemmesh.core.types import Attributes, Err, Ok, Result
from itemmesh.reliability.retry import RetryPolicy, retry_call
from itemmesh.remote.protocol import Page, Row

logger = logging.getLogger(__name__)

RETRYABLE_CODES = frozenset({
    "ServiceUnavailable",
    "RequestTimeout",
    "Throttling",
    "ThrottlingException",
    "InternalError",
})

# Store-side limits on predicates / value tests per select
COMPARISON_LIMIT_CODES = frozenset({
    "InvalidNumberPredicates",
    "InvalidNumberValueTests",
})


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def is_transient(error: Exception) -> bool:
    """Retry throttling/availability errors and connection or timeout failures."""
    if isinstance(error, ClientError):
        return _error_code(error) in RETRYABLE_CODES
    # EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, ConnectionClosedError
    return isinstance(error, (BotoConnectionError, HTTPClientError))


def attributes_from_wire(pairs: list[dict[str, str]]) -> Attributes:
    """[{"Name": n, "Value": v}, ...] -> {n: v | [v, ...]}"""
    attributes: Attributes = {}
    for pair in pairs:
        name, value = pair["Name"], pair["Value"]
        if name not in attributes:
            attributes[name] = value
        elif isinstance(attributes[name], list):
            attributes[name].append(value)
        else:
            attributes[name] = [attributes[name], value]
    return attributes


def attributes_to_wire(attributes: Attributes) -> tuple[list[dict[str, Any]], list[str]]:
    """Split an attribute map into PutAttributes entries and names to clear."""
    puts: list[dict[str, Any]] = []
    clears: list[str] = []
    for name, value in attributes.items():
        if value is None or (isinstance(value, (list, tuple)) and not value):
            clears.append(name)
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            puts.append({"Name": name, "Value": str(v), "Replace": True})
    return puts, clears


class SimpleDBExecutor:
    """
    Blocking SimpleDB client implementing RemoteExecutor.

    Example:
        >>> executor = SimpleDBExecutor.from_config(RemoteConfig(region="us-east-1"))
        >>> page = executor.execute("select * from `planets`").unwrap()
    """

    __slots__ = ("_client", "_retry_policy", "_sleep")

    def __init__(
        self,
        client: Any,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._retry_policy = retry_policy or RetryPolicy.default()
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: RemoteConfig) -> SimpleDBExecutor:
        """Build the boto3 client from configuration."""
        client_config = Config(
            connect_timeout=config.connect_timeout_ms / 1000,
            read_timeout=config.read_timeout_ms / 1000,
            # retries are handled by RetryPolicy
            retries={"max_attempts": 1, "mode": "standard"},
        )
        client = boto3.client("sdb", config=client_config, **config.get_client_kwargs())
        policy = RetryPolicy(max_retries=config.max_retries, base_delay_ms=config.retry_base_ms)
        return cls(client, retry_policy=policy)

    @property
    def client(self) -> Any:
        return self._client

    # -------------------------------------------------------------------------
    # REQUEST PLUMBING
    # -------------------------------------------------------------------------

    def _call(self, operation: str, **params: Any) -> Result[dict[str, Any], Exception]:
        method = getattr(self._client, operation)
        return retry_call(
            lambda: method(**params),
            is_retryable=is_transient,
            policy=self._retry_policy,
            sleep=self._sleep,
        )

    def _select_error(self, error: Exception, query: str, next_token: Optional[str]) -> RemoteExecutionError:
        code = _error_code(error)
        if code == "InvalidNextToken":
            return RemoteExecutionError.invalid_next_token(next_token or "", cause=error)
        if code in COMPARISON_LIMIT_CODES:
            return RemoteExecutionError.too_many_comparisons(query, cause=error)
        if is_transient(error):
            return RemoteExecutionError.unavailable("Select", cause=error)
        return RemoteExecutionError.query_rejected(query, code or str(error), cause=error)

    def _write_error(self, error: Exception, operation: str, domain: str, identity: str) -> RemoteExecutionError:
        if is_transient(error):
            return RemoteExecutionError.unavailable(operation, cause=error)
        return RemoteExecutionError.write_failed(operation, domain, identity, cause=error)

    # -------------------------------------------------------------------------
    # SELECT
    # -------------------------------------------------------------------------

    def execute(
        self,
        query: str,
        next_token: Optional[str] = None,
        consistent: bool = False,
    ) -> Result[Page, RemoteExecutionError]:
        params: dict[str, Any] = {"SelectExpression": query}
        if next_token:
            params["NextToken"] = next_token
        if consistent:
            params["ConsistentRead"] = True

        result = self._call("select", **params)
        if result.is_err():
            error = self._select_error(result.error, query, next_token)
            logger.warning(f"Select failed: {error}")
            return Err(error)

        response = result.unwrap()
        rows = tuple(
            Row(identity=item["Name"], attributes=attributes_from_wire(item.get("Attributes", [])))
            for item in response.get("Items", [])
        )
        return Ok(Page(rows=rows, next_token=response.get("NextToken"), query=query))

    def execute_count(
        self,
        query: str,
        consistent: bool = False,
    ) -> Result[int, RemoteExecutionError]:
        # count(*) may stop early at the request time limit and hand back
        # a NextToken with a partial count; keep going and sum.
        total = 0
        next_token: Optional[str] = None
        while True:
            page_result = self.execute(query, next_token=next_token, consistent=consistent)
            if page_result.is_err():
                return page_result
            page = page_result.unwrap()
            for row in page.rows:
                count = row.attributes.get("Count")
                if count is not None:
                    total += int(count)
            if page.is_final:
                return Ok(total)
            next_token = page.next_token

    # -------------------------------------------------------------------------
    # SINGLE-ITEM READ / WRITE
    # -------------------------------------------------------------------------

    def get_attributes(
        self,
        domain: str,
        identity: str,
        consistent: bool = False,
    ) -> Result[Optional[Attributes], RemoteExecutionError]:
        params: dict[str, Any] = {"DomainName": domain, "ItemName": identity}
        if consistent:
            params["ConsistentRead"] = True

        result = self._call("get_attributes", **params)
        if result.is_err():
            error = result.error
            if is_transient(error):
                return Err(RemoteExecutionError.unavailable("GetAttributes", cause=error))
            return Err(RemoteExecutionError.query_rejected(
                f"GetAttributes {domain}/{identity}", _error_code(error) or str(error), cause=error,
            ))

        pairs = result.unwrap().get("Attributes", [])
        if not pairs:
            return Ok(None)
        return Ok(attributes_from_wire(pairs))

    def put_attributes(
        self,
        domain: str,
        identity: str,
        attributes: Attributes,
    ) -> Result[None, RemoteExecutionError]:
        puts, clears = attributes_to_wire(attributes)

        if puts:
            result = self._call("put_attributes", DomainName=domain, ItemName=identity, Attributes=puts)
            if result.is_err():
                return Err(self._write_error(result.error, "PutAttributes", domain, identity))

        if clears:
            return self._clear_attributes(domain, identity, clears)
        return Ok(None)

    def _clear_attributes(
        self,
        domain: str,
        identity: str,
        names: list[str],
    ) -> Result[None, RemoteExecutionError]:
        # DeleteAttributes needs a Value on every entry, so remove the
        # stored values explicitly; names with nothing stored are skipped.
        existing = self._call(
            "get_attributes",
            DomainName=domain,
            ItemName=identity,
            AttributeNames=names,
            ConsistentRead=True,
        )
        if existing.is_err():
            return Err(self._write_error(existing.error, "GetAttributes", domain, identity))

        stored = [
            {"Name": pair["Name"], "Value": pair["Value"]}
            for pair in existing.unwrap().get("Attributes", [])
        ]
        if not stored:
            return Ok(None)

        result = self._call("delete_attributes", DomainName=domain, ItemName=identity, Attributes=stored)
        if result.is_err():
            return Err(self._write_error(result.error, "DeleteAttributes", domain, identity))
        logger.debug(f"Cleared {len(stored)} stored values of {domain}/{identity}")
        return Ok(None)

    def delete_attributes(
        self,
        domain: str,
        identity: str,
    ) -> Result[None, RemoteExecutionError]:
        result = self._call("delete_attributes", DomainName=domain, ItemName=identity)
        if result.is_err():
            return Err(self._write_error(result.error, "DeleteAttributes", domain, identity))
        return Ok(None)
