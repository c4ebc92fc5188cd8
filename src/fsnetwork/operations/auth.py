"""Sign-up and sign-in operations.

Both operations report through `success` and `failure` callbacks assigned by
the creator before the operation is enqueued. Exactly one of them fires,
unless the operation is cancelled first, in which case neither does.
"""

import logging
from typing import Any

from fsnetwork.api.auth import BackendAuth
from fsnetwork.api.exceptions import BackendError, BackendParseError
from fsnetwork.api.models import SignInResponseMapper
from fsnetwork.api.request import SignInRequest, SignUpRequest
from fsnetwork.config import BackendConfig
from fsnetwork.operations.service import ServiceOperation

logger = logging.getLogger(__name__)


class SignUpOperation(ServiceOperation):
    """Create a user account; success receives the decoded response."""

    default_name = "Sign Up Operation"

    def __init__(  # noqa: PLR0913 - one argument per account field
        self,
        config: BackendConfig,
        auth: BackendAuth,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> None:
        super().__init__(config, auth)
        self.request = SignUpRequest(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
        )

    async def main(self) -> None:
        await self.service.request(
            self.request, success=self.handle_success, failure=self.handle_failure
        )

    def handle_success(self, response: Any) -> None:
        logger.info("Sign-up succeeded")
        self.complete(self.success, response)

    def handle_failure(self, error: BackendError) -> None:
        logger.warning("Sign-up failed: %s", error)
        self.complete(self.failure, error)


class SignInOperation(ServiceOperation):
    """Exchange credentials for a token; success receives a SignInItem.

    With store_token=True the received token is written to the auth store
    before the success callback runs.
    """

    default_name = "Sign In Operation"

    def __init__(
        self,
        config: BackendConfig,
        auth: BackendAuth,
        email: str,
        password: str,
        *,
        store_token: bool = False,
    ) -> None:
        super().__init__(config, auth)
        self.request = SignInRequest(email=email, password=password)
        self.store_token = store_token

    async def main(self) -> None:
        await self.service.request(
            self.request, success=self.handle_success, failure=self.handle_failure
        )

    def handle_success(self, response: Any) -> None:
        try:
            item = SignInResponseMapper.process(response)
        except BackendParseError as error:
            self.handle_failure(error)
            return

        if self.store_token and not self.is_cancelled:
            self.auth.set_token(item.token)
        logger.info("Sign-in succeeded")
        self.complete(self.success, item)

    def handle_failure(self, error: BackendError) -> None:
        logger.warning("Sign-in failed: %s", error)
        self.complete(self.failure, error)
