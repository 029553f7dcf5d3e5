"""Resilient request execution against the Jira REST API.

Every outbound call goes through :class:`RequestExecutor`, which drives a small
state machine per request::

    PENDING -> IN_FLIGHT -> SUCCESS
                         -> RETRYING -> IN_FLIGHT ...
                         -> TERMINAL_FAILURE

Rate limiting (429), 5xx responses and connection-level failures are
transient; any other 4xx is terminal and never retried. Requests that are not
idempotent (``POST`` by default) are only retried when the server explicitly
rejected them (429/503) or when the connection failed before a response was
received, and the latter only once.
"""

import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any

import anyio
import httpx

from ..exceptions import (
    JiraAuthenticationError,
    TerminalUpstreamError,
    TransientUpstreamError,
)

logger = logging.getLogger("mcp-jira-cloud.jira.executor")

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

# 5xx statuses that mean the server refused the request without processing it.
REJECTED_SERVER_STATUSES = frozenset({503})


class RequestState(str, Enum):
    """Lifecycle states of a single logical request."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    SUCCESS = "success"
    TERMINAL_FAILURE = "terminal_failure"


ALLOWED_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.PENDING: frozenset({RequestState.IN_FLIGHT}),
    RequestState.IN_FLIGHT: frozenset(
        {RequestState.SUCCESS, RequestState.RETRYING, RequestState.TERMINAL_FAILURE}
    ),
    RequestState.RETRYING: frozenset({RequestState.IN_FLIGHT}),
    RequestState.SUCCESS: frozenset(),
    RequestState.TERMINAL_FAILURE: frozenset(),
}


class FailureKind(str, Enum):
    """Classification of a failed attempt."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"


@dataclass
class RetryableRequest:
    """One logical call against the Jira API.

    ``idempotent`` defaults from the HTTP method; callers flag ``POST``
    endpoints that are safe to repeat (JQL search, sprint moves) explicitly.
    """

    method: str
    path: str
    params: dict[str, Any] | None = None
    body: Any = None
    idempotent: bool | None = None
    attempt: int = 0
    max_attempts: int = 4

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if self.idempotent is None:
            self.idempotent = self.method in IDEMPOTENT_METHODS
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def describe(self) -> str:
        return f"{self.method} {self.path}"


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings shared by every request of an executor."""

    max_attempts: int = 4
    base_delay: float = 0.5
    max_delay: float = 30.0
    max_retry_after: float = 120.0
    jitter: float = 0.5
    non_idempotent_connection_retries: int = 1

    def backoff_delay(self, attempt: int, rng: random.Random) -> float:
        """Delay before the next attempt: ``base * 2**attempt``, capped, jittered down."""
        delay = min(self.max_delay, self.base_delay * (2**attempt))
        if self.jitter:
            delay -= delay * self.jitter * rng.random()
        return max(0.0, delay)


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds or as an HTTP date.

    Returns:
        Seconds to wait, or None when the header is missing or unparseable
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Unparseable Retry-After header: {value!r}")
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def classify_transport_error(exc: httpx.TransportError) -> FailureKind:
    """Split transport failures into "never answered" and "outcome unknown".

    Connect failures, resets and dropped connections happened before any
    response arrived. A read/write timeout may hide a request the server is
    still processing.

    Failures caused by local configuration, such as an unsupported URL
    scheme, are never retried.
    """
    if isinstance(
        exc, (httpx.UnsupportedProtocol, httpx.LocalProtocolError, httpx.ProxyError)
    ):
        return FailureKind.INVALID_REQUEST
    if isinstance(exc, (httpx.ConnectTimeout, httpx.PoolTimeout)):
        return FailureKind.CONNECTION
    if isinstance(exc, httpx.TimeoutException):
        return FailureKind.TIMEOUT
    if isinstance(
        exc,
        (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError),
    ):
        return FailureKind.CONNECTION
    return FailureKind.TIMEOUT


def describe_error_response(response: httpx.Response) -> str:
    """Build a readable message from a Jira error payload."""
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:500] if text else response.reason_phrase

    if isinstance(payload, dict):
        parts: list[str] = list(payload.get("errorMessages") or [])
        errors = payload.get("errors") or {}
        if isinstance(errors, dict):
            parts.extend(f"{name}: {message}" for name, message in errors.items())
        if payload.get("message"):
            parts.append(str(payload["message"]))
        if parts:
            return "; ".join(str(part) for part in parts)
    return str(payload)[:500]


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestExecutor:
    """Runs :class:`RetryableRequest` objects with bounded, cancellable backoff.

    Backoff waits use ``anyio.sleep`` and therefore suspend only the calling
    task; cancelling that task abandons the remaining retries immediately.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
        rng: random.Random | None = None,
        on_transition: Callable[[RetryableRequest, RequestState], None] | None = None,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._on_transition = on_transition

    def new_request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        idempotent: bool | None = None,
    ) -> RetryableRequest:
        return RetryableRequest(
            method=method,
            path=path,
            params=params,
            body=body,
            idempotent=idempotent,
            max_attempts=self.policy.max_attempts,
        )

    def _advance(
        self,
        request: RetryableRequest,
        current: RequestState,
        target: RequestState,
    ) -> RequestState:
        if target not in ALLOWED_TRANSITIONS[current]:
            raise RuntimeError(
                f"Invalid request state transition {current.value} -> {target.value}"
            )
        logger.debug(
            f"{request.describe()} attempt {request.attempt}: "
            f"{current.value} -> {target.value}"
        )
        if self._on_transition is not None:
            self._on_transition(request, target)
        return target

    async def _send(self, request: RetryableRequest) -> httpx.Response:
        kwargs: dict[str, Any] = {}
        if request.params:
            kwargs["params"] = request.params
        if request.body is not None:
            kwargs["json"] = request.body
        return await self.client.request(request.method, request.path, **kwargs)

    async def execute(self, request: RetryableRequest) -> httpx.Response:
        """Execute a request, retrying transient failures.

        Returns:
            The successful (2xx) response

        Raises:
            TerminalUpstreamError: 4xx other than 429, or a request that cannot
                be sent (never retried)
            JiraAuthenticationError: 401/403
            TransientUpstreamError: transient failure after retries were
                exhausted or when repeating the request would be unsafe
        """
        state = RequestState.PENDING
        connection_retries = 0

        while True:
            request.attempt += 1
            state = self._advance(request, state, RequestState.IN_FLIGHT)

            try:
                response = await self._send(request)
            except httpx.TransportError as exc:
                kind = classify_transport_error(exc)
                if kind is FailureKind.INVALID_REQUEST:
                    self._advance(request, state, RequestState.TERMINAL_FAILURE)
                    logger.error(f"{request.describe()} cannot be sent (not retried): {exc}")
                    raise TerminalUpstreamError(
                        f"Cannot send {request.describe()}: {exc}",
                        method=request.method,
                        path=request.path,
                    ) from exc
                error = TransientUpstreamError(
                    f"{kind.value.replace('_', ' ').capitalize()} error calling "
                    f"{request.describe()}: {exc}",
                    method=request.method,
                    path=request.path,
                )
                if request.idempotent:
                    retryable = True
                elif (
                    kind is FailureKind.CONNECTION
                    and connection_retries < self.policy.non_idempotent_connection_retries
                ):
                    connection_retries += 1
                    retryable = True
                else:
                    retryable = False
                delay = self.policy.backoff_delay(request.attempt - 1, self._rng)
            else:
                if response.is_success:
                    self._advance(request, state, RequestState.SUCCESS)
                    return response

                status = response.status_code
                message = describe_error_response(response)
                retry_after = parse_retry_after(response.headers.get("Retry-After"))

                if status == 429 or status >= 500:
                    kind = (
                        FailureKind.RATE_LIMITED
                        if status == 429
                        else FailureKind.SERVER_ERROR
                    )
                    error = TransientUpstreamError(
                        f"HTTP {status} from {request.describe()}: {message}",
                        retry_after=retry_after,
                        method=request.method,
                        path=request.path,
                        status_code=status,
                        body=_response_body(response),
                    )
                    retryable = (
                        status == 429
                        or request.idempotent
                        or status in REJECTED_SERVER_STATUSES
                    )
                    if retry_after is not None:
                        if retry_after > self.policy.max_retry_after:
                            logger.warning(
                                f"{request.describe()} asked to wait {retry_after:.1f}s, "
                                f"more than the {self.policy.max_retry_after:.1f}s allowed"
                            )
                            retryable = False
                        delay = retry_after
                    else:
                        delay = self.policy.backoff_delay(request.attempt - 1, self._rng)
                else:
                    self._advance(request, state, RequestState.TERMINAL_FAILURE)
                    error_cls = (
                        JiraAuthenticationError
                        if status in (401, 403)
                        else TerminalUpstreamError
                    )
                    logger.error(
                        f"HTTP {status} from {request.describe()} (not retried): {message}"
                    )
                    raise error_cls(
                        f"HTTP {status} from {request.describe()}: {message}",
                        method=request.method,
                        path=request.path,
                        status_code=status,
                        body=_response_body(response),
                    )

            if not retryable or request.attempt >= request.max_attempts:
                self._advance(request, state, RequestState.TERMINAL_FAILURE)
                if retryable:
                    error.args = (
                        f"{error.args[0]} (gave up after {request.attempt} attempts)",
                    )
                logger.error(
                    f"{request.describe()} failed ({kind.value}) on attempt "
                    f"{request.attempt}/{request.max_attempts}: {error}"
                )
                raise error

            state = self._advance(request, state, RequestState.RETRYING)
            logger.warning(
                f"{request.describe()} {kind.value} on attempt "
                f"{request.attempt}/{request.max_attempts}; retrying in {delay:.2f}s"
            )
            await self._sleep(delay)
