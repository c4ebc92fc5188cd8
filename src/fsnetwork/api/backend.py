"""Backend client combining request descriptors with the HTTP transport.

BackendService resolves the request URL against the configured base URL,
injects the auth token header and decodes JSON responses.
"""

import json
import logging
import types
from collections.abc import Callable
from typing import Any

from fsnetwork.api.auth import BackendAuth
from fsnetwork.api.exceptions import BackendError, BackendParseError
from fsnetwork.api.protocols import BackendAPIRequest
from fsnetwork.api.transport import NetworkService
from fsnetwork.config import BackendConfig

AUTH_HEADER = "X-Api-Auth-Token"
_REDACTED = "***redacted***"

logger = logging.getLogger(__name__)


class BackendService:
    """Authenticated JSON client for the configured backend."""

    def __init__(
        self,
        config: BackendConfig,
        auth: BackendAuth,
        transport: NetworkService | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            config: Backend configuration providing the base URL
            auth: Token store read on every request
            transport: Transport to use; a new NetworkService by default
        """
        self._config = config
        self._auth = auth
        self._base_url = config.base_url_string
        self._transport = transport if transport is not None else NetworkService(config)

    def __str__(self) -> str:
        """Return string representation without exposing the auth token."""
        return f"BackendService(base_url={self._base_url}, token={_REDACTED})"

    def __repr__(self) -> str:
        """Return repr without exposing the auth token."""
        return f"BackendService(base_url='{self._base_url}', token='{_REDACTED}')"

    async def __aenter__(self) -> "BackendService":
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
        """Close the transport's HTTP client."""
        await self._transport.aclose()

    @property
    def transport(self) -> NetworkService:
        return self._transport

    def build_url(self, endpoint: str) -> str:
        """Join an endpoint path to the base URL."""
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    def build_headers(self, request: BackendAPIRequest) -> dict[str, str]:
        """Merge the descriptor headers with the auth token header.

        Returns:
            dict[str, str]: Headers for the outgoing request
        """
        # Header names are case-insensitive; drop every spelling of the auth header
        headers = {
            name: value
            for name, value in (request.headers or {}).items()
            if name.lower() != AUTH_HEADER.lower()
        }
        token = self._auth.get_token()
        if token is not None:
            headers[AUTH_HEADER] = token
        return headers

    @staticmethod
    def _redact(headers: dict[str, str]) -> dict[str, str]:
        if AUTH_HEADER not in headers:
            return headers
        return {**headers, AUTH_HEADER: _REDACTED}

    @staticmethod
    def decode(endpoint: str, data: bytes | None) -> Any:
        """Decode a response body into a structured value.

        Args:
            endpoint: Endpoint the body came from, used in error context
            data: Raw response body

        Returns:
            Any: Parsed JSON value, or None for an empty body

        Raises:
            BackendParseError: If the body is not valid JSON
        """
        if not data:
            return None
        try:
            return json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            logger.exception("Failed to parse response from %s", endpoint)
            parse_error = BackendParseError.create_parse_error(endpoint, size=len(data))
            parse_error.data = data
            raise parse_error from error

    async def call(self, request: BackendAPIRequest) -> Any:
        """Perform a request and return the decoded response.

        Args:
            request: Descriptor of the call

        Returns:
            Any: Parsed JSON response, or None for an empty body

        Raises:
            BackendSerializationError: Parameters are not JSON serializable
            BackendParseError: Response body is not valid JSON
            BackendStatusError: Status in the failure range
            BackendUnclassifiedStatusError: Status outside both ranges
            BackendNetworkError: Network, timeout or cancellation failure
        """
        url = self.build_url(request.endpoint)
        headers = self.build_headers(request)

        logger.debug(
            "Making %s request to %s with headers: %s",
            request.method,
            url,
            self._redact(headers),
        )

        data = await self._transport.send(
            url, request.method, params=request.parameters, headers=headers
        )
        return self.decode(request.endpoint, data)

    async def request(
        self,
        request: BackendAPIRequest,
        success: Callable[[Any], Any] | None = None,
        failure: Callable[[BackendError], Any] | None = None,
    ) -> None:
        """Perform a request and report the outcome through exactly one callback.

        Args:
            request: Descriptor of the call
            success: Called with the decoded response
            failure: Called with the error
        """
        try:
            result = await self.call(request)
        except BackendError as error:
            if failure is not None:
                failure(error)
            return

        if success is not None:
            success(result)

    def cancel(self) -> None:
        """Cancel the in-flight transport call, if any."""
        self._transport.cancel()
