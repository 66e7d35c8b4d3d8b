"""Harness settings with Pydantic validation and environment loading."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Harness settings loaded from DRAINWATCH_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DRAINWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Platform
    cf_binary: str = Field(default="cf", description="Path to the cf CLI")
    apps_domain: str = Field(
        default="example.com", description="Shared domain apps are routed on"
    )
    skip_ssl_validation: bool = Field(
        default=False, description="Skip TLS verification when curling apps"
    )

    # Timeouts (seconds)
    default_timeout: float = Field(
        default=300.0, gt=0, description="Default timeout for cf commands and curls"
    )
    cf_push_timeout: float = Field(
        default=240.0, gt=0, description="Timeout for cf push"
    )

    # Fixture apps
    go_buildpack: str = Field(default="go_buildpack")
    ruby_buildpack: str = Field(default="ruby_buildpack")
    memory_limit: str = Field(default="256M")
    listener_asset: str = Field(
        default="assets/syslog-drain-listener",
        description="Path to the syslog drain listener app",
    )
    producer_asset: str = Field(
        default="assets/ruby_simple", description="Path to the log writer app"
    )
    listener_instances: int = Field(
        default=2, ge=1, le=16, description="Listener instances for IP based drains"
    )

    # Routing / drains
    include_tcp_routing: bool = Field(
        default=False, description="Register drains through a TCP route"
    )
    tcp_router_group: str = Field(default="default-tcp")
    require_proxied_app_traffic: bool = Field(
        default=False, description="Drains must use syslog-tls"
    )
    syslog_client_cert: Optional[str] = Field(
        default=None, description="Client certificate for mTLS drains"
    )
    syslog_client_key: Optional[str] = Field(
        default=None, description="Client key for mTLS drains"
    )

    # Verification cadence
    emission_cadence: float = Field(
        default=3.0, gt=0, description="Seconds between log lines per producer"
    )
    message_budget: float = Field(
        default=420.0,
        gt=0,
        description="Budget for the bound tag to arrive (default timeout + 2 min)",
    )
    absence_window: float = Field(
        default=10.0, gt=0, description="Observation window for absent tags"
    )
    poll_interval: float = Field(
        default=0.1, gt=0, description="Stream polling interval"
    )
    resolve_timeout: float = Field(
        default=60.0, gt=0, description="Budget per listener instance lookup"
    )
    resolve_max_attempts: int = Field(default=20, ge=1)
    emission_join_timeout: float = Field(
        default=10.0, gt=0, description="Bounded wait for workers after cancel"
    )

    # Naming / reporting
    name_prefix: str = Field(default="CATS")
    report_dir: Optional[str] = Field(
        default=None, description="Write failure reports here when set"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", description="text or json")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return lower

    @field_validator("syslog_client_cert", "syslog_client_key", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_client_credentials(self) -> "Settings":
        if bool(self.syslog_client_cert) != bool(self.syslog_client_key):
            raise ValueError(
                "syslog_client_cert and syslog_client_key must be set together"
            )
        return self


def load_settings(**overrides) -> Settings:
    """Build settings, turning validation failures into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid drainwatch configuration",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


@lru_cache
def get_settings() -> Settings:
    """Cached settings factory."""
    return load_settings()

