"""HTTP transport for the backend client.

This module provides the NetworkService class, which issues a single HTTP
request at a time through httpx, classifies the response by status code and
supports cancelling the in-flight call.
"""

import asyncio
import logging
import types
from collections.abc import Callable, Mapping
from typing import Any, NoReturn

import httpx

from fsnetwork.api.exceptions import (
    BackendAuthenticationError,
    BackendCancelledError,
    BackendError,
    BackendNetworkError,
    BackendServerError,
    BackendStatusError,
    BackendTimeoutError,
    BackendUnclassifiedStatusError,
    TransportBusyError,
)
from fsnetwork.api.request import HTTPMethod, encode_parameters
from fsnetwork.config import BackendConfig

# Half-open ranges: 200..298 succeed, 400..498 fail, anything else is unclassified
SUCCESS_CODES = range(200, 299)
FAILURE_CODES = range(400, 499)

_HTTP_UNAUTHORIZED = 401
_HTTP_MIN_SERVER_ERROR = 500
_HTTP_MAX_SERVER_ERROR = 600

# Bypass local and shared caches
_NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

SuccessCallback = Callable[[bytes | None], Any]
FailureCallback = Callable[[bytes | None, BackendError, int], Any]

logger = logging.getLogger(__name__)


class NetworkService:
    """Single-flight HTTP transport.

    Each instance runs at most one request at a time. Operations own their
    own NetworkService so cancelling one never affects another.
    """

    def __init__(self, config: BackendConfig) -> None:
        """Initialize the transport.

        Args:
            config: Backend configuration providing timeout and redirect policy
        """
        self._config = config
        self._http_client: httpx.AsyncClient | None = None
        self._task: asyncio.Task[httpx.Response] | None = None
        self._cancel_requested = False

    def __repr__(self) -> str:
        return f"NetworkService(timeout={self._config.timeout_seconds}, in_flight={self.in_flight})"

    async def __aenter__(self) -> "NetworkService":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Async context manager exit with cleanup."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if it was created."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def in_flight(self) -> bool:
        """Whether a request is currently running."""
        return self._task is not None and not self._task.done()

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with proper configuration.

        Returns:
            httpx.AsyncClient: Configured async HTTP client
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=self._config.follow_redirects,
                headers={"User-Agent": self._config.http_user_agent},
            )
        return self._http_client

    @staticmethod
    def _raise_for_status(status_code: int, data: bytes | None) -> NoReturn:
        """Raise the error matching a non-success status code.

        Raises:
            BackendAuthenticationError: For 401 Unauthorized
            BackendStatusError: For other codes in the failure range
            BackendServerError: For 5xx codes
            BackendUnclassifiedStatusError: For every other code
        """
        if status_code == _HTTP_UNAUTHORIZED:
            logger.error("Backend rejected the auth token")
            raise BackendAuthenticationError(data=data)
        if status_code in FAILURE_CODES:
            logger.error("Backend request failed with status %s", status_code)
            raise BackendStatusError(f"Request failed with status {status_code}", status_code, data)
        if _HTTP_MIN_SERVER_ERROR <= status_code < _HTTP_MAX_SERVER_ERROR:
            logger.error("Backend server error: %s", status_code)
            raise BackendServerError(f"Server error {status_code}", status_code, data)
        logger.error("Unclassified backend response status: %s", status_code)
        raise BackendUnclassifiedStatusError(
            f"Unclassified response status {status_code}", status_code, data
        )

    async def send(
        self,
        url: str,
        method: HTTPMethod | str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> bytes | None:
        """Send one HTTP request and return its body.

        Args:
            url: Absolute request URL
            method: HTTP method
            params: Parameters serialized as the JSON request body
            headers: Request headers

        Returns:
            bytes | None: Response body, or None when the body is empty

        Raises:
            TransportBusyError: A request is already in flight on this transport
            BackendSerializationError: Parameters are not JSON serializable
            BackendCancelledError: The call was cancelled through cancel()
            BackendTimeoutError: The request timed out
            BackendNetworkError: Network connectivity error
            BackendStatusError: Status in the failure range
            BackendUnclassifiedStatusError: Status outside both ranges
        """
        if self.in_flight:
            logger.error("Rejected %s %s: transport busy", method, url)
            raise TransportBusyError

        method_value = HTTPMethod(method).value
        body = encode_parameters(params)
        request_headers = {**_NO_CACHE_HEADERS, **(headers or {})}

        http_client = self._get_http_client()
        self._cancel_requested = False
        self._task = asyncio.ensure_future(
            http_client.request(method_value, url, headers=request_headers, content=body)
        )

        try:
            response = await self._task
        except asyncio.CancelledError as error:
            if not self._cancel_requested:
                raise
            logger.info("Request %s %s cancelled", method_value, url)
            raise BackendCancelledError from error
        except httpx.TimeoutException as error:
            logger.exception("Request timeout for %s %s", method_value, url)
            raise BackendTimeoutError from error
        except httpx.TransportError as error:
            logger.exception("Network error for %s %s", method_value, url)
            raise BackendNetworkError(f"Network error ({type(error).__name__})") from error
        except Exception as error:
            logger.exception("Unexpected error during request")
            raise BackendError.create_unexpected_error(method_value, url) from error
        finally:
            self._task = None

        data = response.content or None
        status_code = response.status_code
        if status_code not in SUCCESS_CODES:
            self._raise_for_status(status_code, data)

        logger.debug("Successful response %s for %s %s", status_code, method_value, url)
        return data

    async def request(
        self,
        url: str,
        method: HTTPMethod | str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        success: SuccessCallback | None = None,
        failure: FailureCallback | None = None,
    ) -> None:
        """Send one request and report the outcome through exactly one callback.

        Args:
            url: Absolute request URL
            method: HTTP method
            params: Parameters serialized as the JSON request body
            headers: Request headers
            success: Called with the response body on success
            failure: Called with (body, error, status code) on failure;
                the status code is 0 when no response was received
        """
        try:
            data = await self.send(url, method, params=params, headers=headers)
        except BackendError as error:
            if failure is not None:
                failure(error.data, error, error.status_code or 0)
            return

        if success is not None:
            success(data)

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        if self._task is None or self._task.done():
            return
        self._cancel_requested = True
        self._task.cancel()
