"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal
from pydantic import BaseModel, Field, computed_field


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(default=["GET", "POST", "OPTIONS"])
    allow_headers: list[str] = Field(default=["*"])


class RedisConfig(BaseModel):
    """Redis configuration model."""

    enabled: bool = Field(default=False, description="Enable Redis service")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )
    decode_responses: bool = Field(
        default=True, description="Decode Redis responses to strings"
    )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                # URL already has auth info
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class ExternalProviderConfig(BaseModel):
    """External identity provider configuration model."""

    display_name: str | None = Field(
        default=None, description="Human readable provider name"
    )
    authorization_endpoint: str = Field(description="Provider authorization endpoint URL")
    token_endpoint: str = Field(description="Provider token endpoint URL")
    userinfo_endpoint: str | None = Field(
        default=None, description="Provider userinfo endpoint URL"
    )
    end_session_endpoint: str | None = Field(
        default=None, description="Provider end session endpoint URL"
    )
    scopes: list[str] = Field(
        default_factory=lambda: ["openid", "profile", "email"],
        description="Scopes to request during authentication",
    )
    client_id: str = Field(description="Client ID registered at the provider")
    client_secret: str | None = Field(
        default=None, description="Client secret registered at the provider"
    )
    redirect_uri: str = Field(description="Callback URI registered at the provider")
    claim_mappings: dict[str, str] = Field(
        default_factory=dict,
        description="Userinfo JSON keys renamed to claim types, e.g. id -> nameidentifier",
    )
    enabled: bool = Field(default=True, description="Enable this provider")
    dev_only: bool = Field(
        default=False, description="Enable this provider only in development"
    )


class ClientConfig(BaseModel):
    """A relying party allowed to start authorization interactions."""

    redirect_uris: list[str] = Field(
        default_factory=list, description="Registered redirect URIs"
    )


class InteractionConfig(BaseModel):
    """Configuration of the authorization interactions that may resume after login."""

    authorize_callback_path: str = Field(
        default="/connect/authorize/callback",
        description="Path of the endpoint that resumes an authorization request",
    )
    clients: dict[str, ClientConfig] = Field(
        default_factory=dict, description="Registered clients keyed by client_id"
    )


class BrokerConfig(BaseModel):
    """External login broker configuration."""

    challenge_ttl_seconds: int = Field(
        default=600, description="Lifetime of a pending challenge (10 minutes)"
    )
    challenge_cookie_name: str = Field(
        default="external_challenge", description="Cookie carrying the challenge marker"
    )
    session_cookie_name: str = Field(
        default="local_session_id", description="Cookie carrying the local session id"
    )
    marker_signing_secret: str | None = Field(
        default=None, description="Secret used to sign challenge markers"
    )
    marker_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256", description="Algorithm used to sign challenge markers"
    )
    fallback_redirect: str = Field(
        default="/", description="Redirect target when the return URL is rejected"
    )
    identity_store: Literal["sql", "memory"] = Field(
        default="sql", description="Identity store backend"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./database.db", description="Database connection URL"
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    public_url: str | None = Field(
        default=None, description="Externally visible origin, if behind a proxy"
    )
    session_max_age: int = Field(
        default=3600, description="Session maximum age in seconds"
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        if self.public_url:
            return self.public_url.rstrip("/")
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class SecurityConfig(BaseModel):
    """Security configuration for cookies."""

    secure_cookies: bool = Field(
        default=True, description="Force secure cookies in production"
    )
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", description="SameSite cookie attribute"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    providers: dict[str, ExternalProviderConfig] = Field(
        default_factory=dict, description="External identity providers"
    )
    broker: BrokerConfig = Field(
        default_factory=BrokerConfig, description="External login broker configuration"
    )
    interaction: InteractionConfig = Field(
        default_factory=InteractionConfig, description="Authorization interactions"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
