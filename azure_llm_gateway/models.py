from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ProviderName = Literal["azure", "github"]


@dataclass(frozen=True, slots=True)
class ModelCapabilities:
    context_window: int
    max_tokens: int
    supports_functions: bool = False
    supports_vision: bool = False


@dataclass(frozen=True, slots=True)
class ModelDescriptor:
    id: str
    provider: ProviderName
    capabilities: ModelCapabilities
    deployment_name: str | None = None


# Capability record reported for names that are mapped but not listed below.
DEFAULT_MODEL_DESCRIPTOR = ModelDescriptor(
    id="default",
    provider="azure",
    capabilities=ModelCapabilities(context_window=8192, max_tokens=4096),
)

_KNOWN_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="gpt-4",
        provider="azure",
        deployment_name="gpt-4",
        capabilities=ModelCapabilities(
            context_window=8192,
            max_tokens=4096,
            supports_functions=True,
        ),
    ),
    ModelDescriptor(
        id="gpt-4-turbo",
        provider="azure",
        deployment_name="gpt-4-turbo",
        capabilities=ModelCapabilities(
            context_window=128000,
            max_tokens=4096,
            supports_functions=True,
            supports_vision=True,
        ),
    ),
    ModelDescriptor(
        id="DeepSeek-R1",
        provider="github",
        capabilities=ModelCapabilities(
            context_window=32768,
            max_tokens=8192,
            supports_functions=True,
        ),
    ),
)

MODEL_REGISTRY: dict[str, ModelDescriptor] = {
    descriptor.id.lower(): descriptor for descriptor in _KNOWN_MODELS
}


def lookup_model(name: str) -> ModelDescriptor:
    """Return the registered descriptor for ``name`` or the default one.

    Matching is case-insensitive. Unknown names are never rejected here;
    admissibility is decided by the operator's model mapping.
    """
    return MODEL_REGISTRY.get(name.lower(), DEFAULT_MODEL_DESCRIPTOR)
