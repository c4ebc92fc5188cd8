"""Request descriptors for backend API calls.

A request descriptor is an immutable description of one API call: endpoint
path, HTTP method, optional JSON parameters and optional headers. The backend
client reads descriptors; it never mutates them.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fsnetwork.api.exceptions import BackendSerializationError

logger = logging.getLogger(__name__)

JSON_HEADERS: Mapping[str, str] = MappingProxyType({"Content-Type": "application/json"})


class HTTPMethod(StrEnum):
    """HTTP methods supported by the transport."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if mapping is None:
        return None
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """Generic immutable request descriptor.

    Parameter and header mappings are copied on construction, so later changes
    to the caller's dictionaries do not leak into the descriptor.
    """

    endpoint: str
    method: HTTPMethod = HTTPMethod.GET
    parameters: Mapping[str, Any] | None = field(default=None)
    headers: Mapping[str, str] | None = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", HTTPMethod(self.method))
        object.__setattr__(self, "parameters", _freeze(self.parameters))
        object.__setattr__(self, "headers", _freeze(self.headers))


class SignUpRequest(BaseModel):
    """Create a user account."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    first_name: str = Field(..., description="User first name")
    last_name: str = Field(..., description="User last name")
    email: str = Field(..., description="User email address")
    password: str = Field(..., repr=False, description="User password")

    @property
    def endpoint(self) -> str:
        return "/users"

    @property
    def method(self) -> HTTPMethod:
        return HTTPMethod.POST

    @property
    def parameters(self) -> Mapping[str, Any] | None:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "password": self.password,
        }

    @property
    def headers(self) -> Mapping[str, str] | None:
        return dict(JSON_HEADERS)


class SignInRequest(BaseModel):
    """Exchange credentials for an auth token."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    email: str = Field(..., description="User email address")
    password: str = Field(..., repr=False, description="User password")

    @property
    def endpoint(self) -> str:
        return "/users/sign_in"

    @property
    def method(self) -> HTTPMethod:
        return HTTPMethod.POST

    @property
    def parameters(self) -> Mapping[str, Any] | None:
        return {"email": self.email, "password": self.password}

    @property
    def headers(self) -> Mapping[str, str] | None:
        return dict(JSON_HEADERS)


def encode_parameters(parameters: Mapping[str, Any] | None) -> bytes | None:
    """Serialize request parameters to a compact JSON body.

    Args:
        parameters: Parameter mapping, or None for a request without body.

    Returns:
        bytes | None: UTF-8 JSON body, or None when there are no parameters.

    Raises:
        BackendSerializationError: If a value cannot be represented as JSON.
    """
    if parameters is None:
        return None

    try:
        body = json.dumps(dict(parameters), separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as error:
        logger.error("Failed to serialize request parameters: %s", type(error).__name__)
        msg = f"Request parameters are not JSON serializable ({error})"
        raise BackendSerializationError(msg) from error

    return body.encode("utf-8")
