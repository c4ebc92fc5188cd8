"""Data models for decoded backend responses.

Response models ignore unknown fields so backend additions do not break
older clients. Mappers turn the generic decoded JSON value into a model and
report anything unexpected as a parse error.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fsnetwork.api.exceptions import BackendParseError

logger = logging.getLogger(__name__)


class SignInItem(BaseModel):
    """Successful sign-in response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    token: str = Field(..., min_length=1, repr=False, description="Auth token for later requests")


class SignInResponseMapper:
    """Map a decoded sign-in response to a SignInItem."""

    endpoint = "/users/sign_in"

    @classmethod
    def process(cls, response: Any) -> SignInItem:
        """Validate the decoded response.

        Args:
            response: Decoded JSON value returned by the backend

        Returns:
            SignInItem: Parsed sign-in response

        Raises:
            BackendParseError: If the response is missing or malformed
        """
        if not isinstance(response, dict):
            logger.error("Sign-in response is not an object: %s", type(response).__name__)
            raise BackendParseError.create_parse_error(
                cls.endpoint, detail=f"unexpected {type(response).__name__}"
            )

        try:
            return SignInItem.model_validate(response)
        except ValidationError as error:
            logger.exception("Failed to parse sign-in response")
            raise BackendParseError.create_parse_error(
                cls.endpoint, errors=error.error_count()
            ) from error
