"""Application settings and configuration helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VOICE_INTAKE_",
        case_sensitive=False,
    )

    app_name: str = Field(default="Voice Order Assistant", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    orders_endpoint: AnyHttpUrl = Field(
        default="http://localhost:8000/api/orders",
        description="Order-creation endpoint receiving the JSON order payload.",
    )
    submit_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the single order submission request.",
    )
    close_delay_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Delay before a completed conversation is closed.",
    )
    automation_method: str = Field(
        default="strands",
        description="Automation method requested for voice-created orders.",
    )
    default_retailer: str = Field(
        default="Amazon",
        description="Retailer used when none was captured before submission.",
    )
    order_priority: str = Field(default="normal", description="Priority attached to voice orders.")

    demo_first_name: str = Field(default="Demo")
    demo_last_name: str = Field(default="User")
    demo_email: str = Field(default="demo@example.com")
    demo_address_line_1: str = Field(default="123 Main St")
    demo_city: str = Field(default="Seattle")
    demo_state: str = Field(default="WA")
    demo_postal_code: str = Field(default="98109")
    demo_country: str = Field(default="US")

    frontend_origin: AnyHttpUrl | None = Field(
        default=None,
        description="Allowed frontend origin (CORS). If omitted, defaults to localhost dev server.",
    )
    additional_origins: List[AnyHttpUrl] = Field(
        default_factory=list,
        description="Additional allowed CORS origins for multi-client deployments.",
    )

    @property
    def demo_customer_name(self) -> str:
        return f"{self.demo_first_name} {self.demo_last_name}"

    @property
    def cors_origins(self) -> list[str]:
        """Return the full list of allowed CORS origins."""

        origins: list[str] = []

        if self.frontend_origin:
            origins.append(str(self.frontend_origin).rstrip("/"))
        else:
            origins.extend([
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ])

        for origin in self.additional_origins:
            origins.append(str(origin).rstrip("/"))

        # Deduplicate while preserving order
        seen: set[str] = set()
        unique: list[str] = []
        for origin in origins:
            if origin not in seen:
                seen.add(origin)
                unique.append(origin)

        return unique


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
