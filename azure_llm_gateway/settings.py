from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    azure_api_key: str | None = None
    azure_endpoint: str | None = None
    azure_resource_name: str | None = None
    azure_deployment_name: str | None = None
    github_api_key: str | None = None
    model_mappings: str | None = None
    backend_timeout_seconds: float = 120.0
    backend_connect_timeout_seconds: float = 5.0
    credential_cache_ttl_seconds: float = 300.0
    route_by_registry_provider: bool = False

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        protected_namespaces=(),
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
