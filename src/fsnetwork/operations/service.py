"""Operations backed by a BackendService."""

import logging
from collections.abc import Callable
from typing import Any

from fsnetwork.api.auth import BackendAuth
from fsnetwork.api.backend import BackendService
from fsnetwork.api.exceptions import BackendError
from fsnetwork.api.protocols import BackendAPIRequest
from fsnetwork.config import BackendConfig
from fsnetwork.operations.operation import NetworkOperation

logger = logging.getLogger(__name__)


class ServiceOperation(NetworkOperation):
    """Operation owning one BackendService and therefore one transport.

    Cancelling the operation cancels the in-flight backend call before the
    operation itself moves to cancelled. `success` and `failure` are set by
    the creator before the operation is enqueued.
    """

    default_name = "Service Operation"

    def __init__(self, config: BackendConfig, auth: BackendAuth, name: str | None = None) -> None:
        super().__init__(name)
        self.auth = auth
        self.service = BackendService(config, auth)
        self.success: Callable[[Any], Any] | None = None
        self.failure: Callable[[BackendError], Any] | None = None

    def cancel(self) -> None:
        self.service.cancel()
        super().cancel()

    async def close(self) -> None:
        await self.service.aclose()

    def fail(self, error: Exception) -> None:
        """Report an unexpected error from main() through the failure callback.

        If a result was already handed to a callback the operation only
        finishes, so at most one callback fires.
        """
        if self._delivered:
            self.finish()
            return
        failure = BackendError.create_operation_error(self.name, error)
        try:
            self.complete(self.failure, failure)
        except Exception:
            logger.exception("Failure callback of %s raised", self.name)
            self.finish()


class RequestOperation(ServiceOperation):
    """Perform any described request; success receives the decoded response."""

    default_name = "Request Operation"

    def __init__(
        self,
        config: BackendConfig,
        auth: BackendAuth,
        request: BackendAPIRequest,
        name: str | None = None,
    ) -> None:
        super().__init__(config, auth, name)
        self.request = request

    async def main(self) -> None:
        await self.service.request(
            self.request, success=self.handle_success, failure=self.handle_failure
        )

    def handle_success(self, response: Any) -> None:
        self.complete(self.success, response)

    def handle_failure(self, error: BackendError) -> None:
        logger.warning("%s %s failed: %s", self.request.method, self.request.endpoint, error)
        self.complete(self.failure, error)
