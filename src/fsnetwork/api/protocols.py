"""Protocol definitions shared by the backend client components.

These typing protocols describe the seams between the request descriptors,
the auth store and its persistent backing store, so each side can be swapped
in tests without inheriting from a concrete class.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from fsnetwork.api.request import HTTPMethod


@runtime_checkable
class BackendAPIRequest(Protocol):
    """Shape of one kind of API call.

    Implementations are passive value objects; the backend client only reads
    these four attributes.
    """

    @property
    def endpoint(self) -> str:
        """Path segment joined to the configured base URL."""
        ...

    @property
    def method(self) -> HTTPMethod:
        """HTTP method of the call."""
        ...

    @property
    def parameters(self) -> Mapping[str, Any] | None:
        """Parameters serialized as the JSON request body."""
        ...

    @property
    def headers(self) -> Mapping[str, str] | None:
        """Headers specific to this call."""
        ...


class KeyValueStore(Protocol):
    """Persistent settings-style store holding string values under string keys."""

    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove key; missing keys are ignored."""
        ...
