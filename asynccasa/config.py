"""Runtime settings and construction-time configuration for asynccasa.

``settings`` is a process-wide, mutable object holding defaults that apply to
every client.  :class:`CasaConfig` validates the arguments of a single client.
"""

from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from asynccasa.exceptions.config import ConfigurationError


class Settings(BaseModel):
    """Library-wide defaults."""

    default_scheme: str = Field(
        default="https",
        description="Scheme prepended to gateway URIs given without one",
    )
    request_timeout: Optional[float] = Field(
        default=None,
        description="Default deadline in seconds for one gateway call, digest retry included; None imposes none",
    )
    resolve_timeout: float = Field(
        default=5.0,
        description="Deadline in seconds for resolving a gateway hostname",
    )
    verify_ssl: bool = Field(
        default=False,
        description="Verify the gateway certificate (gateways ship self-signed ones)",
    )
    user_agent: str = Field(default="asynccasa")


settings = Settings()


def default_scheme(uri: str, scheme: Optional[str] = None) -> str:
    """Return *uri* with *scheme* prepended if it has no http(s) scheme."""
    if uri.startswith("http://") or uri.startswith("https://"):
        return uri
    return f"{scheme or settings.default_scheme}://{uri}"


def parse_uri_host(uri: str) -> str:
    """Extract the bare host (no scheme, port or path) from *uri*.

    Raises:
        ValueError: If no host can be derived
    """
    host = urlsplit(default_scheme(uri)).hostname
    if not host:
        raise ValueError(f"invalid uri: {uri!r}")
    return host


class CasaConfig(BaseModel):
    """Validated connection parameters of one gateway client."""

    uri: str = Field(description="Gateway base URI, scheme optional")
    username: str = Field(description="Digest authentication user")
    password: SecretStr = Field(description="Digest authentication password")
    meter_id: Optional[str] = Field(
        default=None,
        description="Meter identity; discovered from the contracts when empty",
    )
    host: Optional[str] = Field(
        default=None,
        description="Host header / TLS server name override; derived from the URI when empty",
    )

    @field_validator("uri")
    @classmethod
    def validate_uri(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("uri is required")
        return default_scheme(v).rstrip("/")

    @field_validator("meter_id", "host")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def validate_credentials_and_host(self) -> "CasaConfig":
        if not self.username or not self.password.get_secret_value():
            raise ValueError("credentials are required")
        if self.host is None:
            try:
                self.host = parse_uri_host(self.uri)
            except ValueError as exc:
                raise ValueError(f"host required and could not be derived: {exc}") from exc
        return self

    @classmethod
    def create(cls, **kwargs) -> "CasaConfig":
        """Build a config, reporting validation problems as :class:`ConfigurationError`."""
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            reasons = "; ".join(err["msg"] for err in exc.errors())
            raise ConfigurationError(reasons) from exc
