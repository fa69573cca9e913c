"""
Prometheus HTTP API client.

Implements the metrics gateway on top of ``/api/v1/rules``,
``/api/v1/query`` and ``/api/v1/query_range``. Every call is attempted
exactly once.
"""

from __future__ import annotations

import ssl
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Generator, List, Type

import httpx
import structlog

from promtestgen.client.models import (
    QueryResult,
    RuleGroup,
    decode_query_result,
    decode_rule_groups,
)
from promtestgen.config.run import RunConfig
from promtestgen.core.errors import FetchError, PromTestGenError, QueryError

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "promtestgen/0.1.0"


class BearerTokenFileAuth(httpx.Auth):
    """Inject ``Authorization: Bearer <token>`` read from a file.

    The file is read on every request so rotated tokens are picked up.
    """

    def __init__(self, token_file: str) -> None:
        self._token_file = Path(token_file)

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._token_file.read_text().strip("\n")
        request.headers["Authorization"] = f"Bearer {token}"
        yield request


def _build_verify(config: RunConfig) -> bool | ssl.SSLContext:
    if config.insecure:
        return False
    if config.ca_file:
        return ssl.create_default_context(cafile=config.ca_file)
    return True


class PrometheusClient:
    """Synchronous Prometheus API client."""

    def __init__(
        self,
        config: RunConfig,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        config.validate()
        self._base_url = config.url.rstrip("/")
        auth = BearerTokenFileAuth(config.token_file) if config.token_file else None
        self._client = httpx.Client(
            auth=auth,
            verify=_build_verify(config),
            timeout=config.timeout,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PrometheusClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def rule_groups(self) -> List[RuleGroup]:
        """List the rule groups currently loaded on the server."""
        data = self._get("/api/v1/rules", None, FetchError, "failed to get rules")
        try:
            return decode_rule_groups(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"failed to decode rules: {exc}") from exc

    def query(self, expr: str, at: datetime) -> QueryResult:
        """Evaluate an instant query at ``at``."""
        params = {"query": expr, "time": at.timestamp()}
        data = self._get("/api/v1/query", params, QueryError, f"query {expr!r} failed")
        return self._decode(expr, data)

    def query_range(
        self,
        expr: str,
        start: datetime,
        end: datetime,
        step: timedelta,
    ) -> QueryResult:
        """Evaluate a range query over ``[start, end]`` every ``step``."""
        params = {
            "query": expr,
            "start": start.timestamp(),
            "end": end.timestamp(),
            "step": step.total_seconds(),
        }
        data = self._get(
            "/api/v1/query_range", params, QueryError, f"range query {expr!r} failed"
        )
        return self._decode(expr, data)

    def _decode(self, expr: str, data: dict[str, Any]) -> QueryResult:
        try:
            return decode_query_result(data)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise QueryError(
                f"failed to decode result of {expr!r}: {exc}", details={"query": expr}
            ) from exc

    def _get(
        self,
        path: str,
        params: dict[str, Any] | None,
        error_cls: Type[PromTestGenError],
        message: str,
    ) -> dict[str, Any]:
        """Execute a GET request and unwrap the API envelope."""
        url = f"{self._base_url}{path}"
        logger.debug("prometheus_request", url=url, params=params)

        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.debug("prometheus_request_failed", url=url, error=str(exc))
            raise error_cls(f"{message}: {exc}", details={"url": url}) from exc
        except OSError as exc:
            # token file unreadable
            raise error_cls(f"{message}: {exc}", details={"url": url}) from exc

        if response.is_error:
            reason = _api_error(response) or f"HTTP {response.status_code} {response.reason_phrase}"
            raise error_cls(
                f"{message}: {reason}", details={"url": url, "status": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise error_cls(f"{message}: invalid JSON response", details={"url": url}) from exc

        if not isinstance(payload, dict):
            raise error_cls(f"{message}: unexpected response body", details={"url": url})

        if payload.get("status") != "success":
            error = payload.get("error", "Unknown error")
            raise error_cls(f"{message}: Prometheus API error: {error}", details={"url": url})

        return payload.get("data") or {}


def _api_error(response: httpx.Response) -> str | None:
    """The ``error`` field of a Prometheus error envelope, if the body has one."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error"):
        return f"Prometheus API error: {payload['error']}"
    return None
