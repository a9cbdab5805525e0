from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import CoreSchema, core_schema

from azure_llm_gateway.settings import Settings

DEFAULT_INFERENCE_ENDPOINT = "https://models.inference.ai.azure.com"
AZURE_API_VERSION = "2024-12-01-preview"
DEFAULT_MODEL = "DeepSeek-R1"
DEFAULT_API_VERSION = "v1"

logger = logging.getLogger("uvicorn.error")


class ModelMappings(Mapping[str, str]):
    """Case-insensitive map from advertised model name to deployment id.

    Keys are lower-cased once on ingestion; deployment ids keep the casing
    the operator supplied. When two keys differ only by case the later one
    wins.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self._entries: dict[str, str] = {}
        for name, deployment in (entries or {}).items():
            self._entries[name.lower()] = deployment

    def __getitem__(self, name: str) -> str:
        return self._entries[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ModelMappings({self._entries!r})"

    def deployment_for(self, name: str) -> str:
        return self._entries.get(name.lower(), name)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.is_instance_schema(cls)


class ProviderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Literal["azure", "github"]
    base_url: str
    api_key: str | None = None
    resource_name: str | None = None
    deployment_name: str | None = None
    api_version: str | None = None
    model: str = DEFAULT_MODEL


class ProxyConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    azure: ProviderConfig
    github: ProviderConfig | None = None
    default_provider: Literal["azure", "github"] = "azure"
    default_model: str = DEFAULT_MODEL
    default_api_version: str = DEFAULT_API_VERSION
    model_mappings: ModelMappings = Field(default_factory=ModelMappings)

    def is_valid_model(self, name: str) -> bool:
        return name in self.model_mappings

    def deployment_for(self, name: str) -> str:
        return self.model_mappings.deployment_for(name)


def _build_azure_config(settings: Settings) -> ProviderConfig:
    if settings.azure_endpoint:
        base_url = settings.azure_endpoint
    elif settings.azure_resource_name and settings.azure_deployment_name:
        base_url = (
            f"https://{settings.azure_resource_name}.openai.azure.com"
            f"/openai/deployments/{settings.azure_deployment_name}"
        )
    else:
        base_url = DEFAULT_INFERENCE_ENDPOINT

    return ProviderConfig(
        name="azure",
        base_url=base_url,
        api_key=settings.azure_api_key or None,
        resource_name=settings.azure_resource_name,
        deployment_name=settings.azure_deployment_name,
        api_version=AZURE_API_VERSION,
        model=DEFAULT_MODEL,
    )


def _build_github_config(settings: Settings) -> ProviderConfig | None:
    if not settings.github_api_key:
        return None
    return ProviderConfig(
        name="github",
        base_url=DEFAULT_INFERENCE_ENDPOINT,
        api_key=settings.github_api_key,
        model=DEFAULT_MODEL,
    )


def parse_model_mappings(raw: str | None) -> ModelMappings:
    if not raw:
        return ModelMappings()

    try:
        parsed: Any = json.loads(raw)
    except ValueError as exc:
        logger.error("model_mappings_parse_failed error=%s", exc)
        return ModelMappings()

    if not isinstance(parsed, dict):
        logger.error(
            "model_mappings_parse_failed error=expected a JSON object, got %s",
            type(parsed).__name__,
        )
        return ModelMappings()

    if not all(isinstance(value, str) for value in parsed.values()):
        logger.error("model_mappings_parse_failed error=non-string deployment names")
        return ModelMappings()

    mappings = ModelMappings(parsed)
    logger.debug("model_mappings_parsed models=%s", ",".join(mappings))
    return mappings


def resolve_config(settings: Settings) -> ProxyConfiguration:
    github = _build_github_config(settings)
    return ProxyConfiguration(
        azure=_build_azure_config(settings),
        github=github,
        default_provider="github" if github is not None else "azure",
        default_model=DEFAULT_MODEL,
        default_api_version=DEFAULT_API_VERSION,
        model_mappings=parse_model_mappings(settings.model_mappings),
    )
