"""
GitHub GraphQL Client — Handles authenticated calls to the GitHub GraphQL API.

This module is responsible for all HTTP communication with GitHub. Every
query in the exporter goes through a single endpoint:

    POST https://api.github.com/graphql
    Headers: Authorization: bearer <GITHUB_TOKEN>
    Body:    {"query": "...", "variables": {...}}

The client is a plain request/response primitive. It does not retry, sleep,
or report progress; those belong to MemberFetcher and MemberEnricher. What it
does do is classify every failure into one of the TransportError subclasses
from core.errors, using the HTTP status, the rate-limit headers, and the
GraphQL "errors" array GitHub returns alongside HTTP 200:

    HTTP 401                                   -> UnauthenticatedError
    HTTP 403/429 + rate-limit signal           -> RateLimitedError
    HTTP 403                                   -> ForbiddenError
    HTTP 404                                   -> NotFoundError
    HTTP 5xx, timeouts, connection errors      -> TransientError
    non-JSON body / no "data" and no "errors"  -> MalformedResponseError
    200 + errors[].type RATE_LIMITED           -> RateLimitedError
    200 + errors[].type FORBIDDEN, INSUFFICIENT_SCOPES -> ForbiddenError
    200 + errors[].type NOT_FOUND              -> NotFoundError

Pipeline context:
    Used by MemberFetcher (member pages), MemberEnricher (2FA/SAML detail)
    and PreflightChecker (connection test).
"""

import threading
import time
import requests
from typing import Dict, Any, Optional, List

from config.settings import GITHUB_GRAPHQL_URL
from .errors import (
    TransportError,
    UnauthenticatedError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    TransientError,
    MalformedResponseError,
)
from .graphql_queries import VIEWER_QUERY

USER_AGENT = "ghe-users-exporter"


class GitHubGraphQLClient:
    """Client for the GitHub GraphQL API.

    Manages a requests.Session with the bearer token attached. All API calls
    go through this single session.

    Attributes:
        token: GitHub access token.
        graphql_url: GraphQL endpoint URL.
        timeout: Per-request timeout in seconds.
        debug: If True, print verbose request details.
    """

    def __init__(self, token: str, graphql_url: str = GITHUB_GRAPHQL_URL,
                 timeout: float = 30, debug: bool = False):
        """Initialize the client.

        Args:
            token: GitHub access token.
            graphql_url: GraphQL endpoint (e.g., "https://ghes.example.com/api/graphql").
            timeout: Per-request timeout in seconds.
            debug: Enable verbose output.
        """
        self.token = token
        self.graphql_url = graphql_url
        self.timeout = timeout
        self.debug = debug
        self.request_count = 0
        self._count_lock = threading.Lock()
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        })

    def execute_graphql(self, query: str, variables: Optional[Dict] = None) -> Dict[str, Any]:
        """Execute a GraphQL query against GitHub.

        Args:
            query: The GraphQL query string.
            variables: Optional dict of GraphQL variables.

        Returns:
            The "data" portion of the GraphQL response (a dict).

        Raises:
            TransportError: A classified subclass for any failed request.
        """
        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        if self.debug:
            print(f"  Executing GraphQL query ({len(query)} chars)")

        try:
            response = self._session.post(self.graphql_url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransientError(f"Request timed out after {self.timeout}s: {e}") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientError(f"Connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request failed: {e}") from e

        with self._count_lock:
            self.request_count += 1

        if response.status_code != 200:
            raise self._classify_http_error(response)

        try:
            result = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Response is not JSON: {response.text[:200]}", response.status_code
            ) from e

        if not isinstance(result, dict) or ("data" not in result and "errors" not in result):
            raise MalformedResponseError(
                "Response has neither 'data' nor 'errors'", response.status_code
            )

        if result.get("errors"):
            raise self._classify_graphql_errors(result["errors"], response)

        data = result.get("data")
        if data is None:
            raise MalformedResponseError("Response 'data' is null", response.status_code)
        return data

    def test_token(self) -> Dict[str, Any]:
        """Return the authenticated viewer ({"login", "name"})."""
        data = self.execute_graphql(VIEWER_QUERY)
        return data.get("viewer") or {}

    def _classify_http_error(self, response) -> TransportError:
        status = response.status_code
        message = self._error_message(response)

        if status in (403, 429) and self._is_rate_limited(response, message):
            return RateLimitedError(
                f"Rate limit exceeded (HTTP {status}): {message}",
                status,
                reset_at=self._reset_at(response),
            )
        if status == 401:
            return UnauthenticatedError(f"Bad credentials (HTTP 401): {message}", status)
        if status == 403:
            return ForbiddenError(f"Forbidden (HTTP 403): {message}", status)
        if status == 404:
            return NotFoundError(f"Not found (HTTP 404): {message}", status)
        if status >= 500:
            return TransientError(f"Server error (HTTP {status}): {message}", status)
        return TransportError(f"GraphQL request failed (HTTP {status}): {message}", status)

    def _classify_graphql_errors(self, errors: List[Dict], response) -> TransportError:
        messages = "; ".join(e.get("message", str(e)) for e in errors if isinstance(e, dict))
        types = [e.get("type", "") for e in errors if isinstance(e, dict)]
        status = response.status_code

        if "RATE_LIMITED" in types or "rate limit" in messages.lower():
            return RateLimitedError(
                f"GraphQL rate limit exceeded: {messages}",
                status,
                reset_at=self._reset_at(response),
            )
        if "FORBIDDEN" in types or "INSUFFICIENT_SCOPES" in types:
            return ForbiddenError(f"GraphQL errors: {messages}", status)
        if "NOT_FOUND" in types:
            return NotFoundError(f"GraphQL errors: {messages}", status)
        return TransportError(f"GraphQL errors: {messages}", status)

    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return str(body.get("message") or body)[:200]
        return str(body)[:200]

    @staticmethod
    def _is_rate_limited(response, message: str) -> bool:
        if response.headers.get("X-RateLimit-Remaining") == "0":
            return True
        if response.headers.get("Retry-After"):
            return True
        return "rate limit" in message.lower()

    @staticmethod
    def _reset_at(response) -> Optional[float]:
        """Epoch seconds when the quota resets, from Retry-After or X-RateLimit-Reset."""
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return time.time() + float(retry_after)
            except ValueError:
                pass
        reset = response.headers.get("X-RateLimit-Reset")
        if reset and str(reset).isdigit():
            return float(reset)
        return None
