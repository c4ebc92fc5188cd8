"""Configuration module for the fsnetwork client.

This module provides the BackendConfig Pydantic model that replaces a
process-wide configuration holder: it is constructed once at startup and passed
to every component that needs the base URL or HTTP settings.
"""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

DEFAULT_TOKEN_STORE_PATH = "~/.fsnetwork/auth.json"


def _default_user_agent() -> str:
    try:
        return f"fsnetwork/{version('fsnetwork')}"
    except PackageNotFoundError:
        return "fsnetwork"


class BackendConfig(BaseModel):
    """Backend configuration model with validation and default values.

    Instances are immutable so a single config can be shared by every
    BackendService and operation without synchronization.
    """

    model_config = ConfigDict(frozen=True)

    base_url: HttpUrl = Field(
        ...,
        description="Base URL every request endpoint is joined to",
    )

    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Timeout applied to every HTTP request in seconds",
    )

    follow_redirects: bool = Field(
        default=False,
        description="Follow 3xx redirects instead of reporting them as unclassified failures",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for the application",
    )

    config_file: str | None = Field(
        default=None,
        description="Path to configuration file",
    )

    token_store_path: str = Field(
        default=DEFAULT_TOKEN_STORE_PATH,
        description="Path of the JSON file holding the persisted auth token",
    )

    http_user_agent: str = Field(
        default_factory=_default_user_agent,
        description="HTTP client User-Agent header",
    )

    @field_validator("base_url")
    @classmethod
    def validate_http_scheme(cls, v: HttpUrl) -> HttpUrl:
        """Validate that the base URL uses HTTP or HTTPS.

        Args:
            v: The URL value to validate.

        Returns:
            HttpUrl: The validated URL.

        Raises:
            ValueError: If the URL uses another scheme.
        """
        if v.scheme not in {"http", "https"}:
            msg = "URL must use HTTP or HTTPS"
            raise ValueError(msg)
        return v

    @field_validator("token_store_path")
    @classmethod
    def validate_token_store_path(cls, v: str) -> str:
        """Reject blank token store paths."""
        if not v.strip():
            msg = "token_store_path cannot be empty"
            raise ValueError(msg)
        return v

    @property
    def base_url_string(self) -> str:
        """Base URL as a string without the trailing slash."""
        return str(self.base_url).rstrip("/")

    @property
    def resolved_token_store_path(self) -> Path:
        """Token store path with the user directory expanded."""
        return Path(self.token_store_path).expanduser()

    def to_log_dict(self) -> dict[str, Any]:
        """Return a dictionary representation safe for logging.

        Returns:
            dict[str, Any]: Configuration dictionary with URLs as strings.
        """
        config_dict = self.model_dump()
        config_dict["base_url"] = str(config_dict["base_url"])
        return config_dict
