from __future__ import annotations

import pytest

from azure_llm_gateway.models import DEFAULT_MODEL_DESCRIPTOR, lookup_model


@pytest.mark.parametrize("name", ["gpt-4", "GPT-4", "Gpt-4"])
def test_lookup_is_case_insensitive(name: str) -> None:
    descriptor = lookup_model(name)
    assert descriptor.id == "gpt-4"
    assert descriptor.provider == "azure"
    assert descriptor.capabilities.context_window == 8192
    assert descriptor.capabilities.max_tokens == 4096
    assert descriptor.capabilities.supports_functions is True


def test_lookup_covers_both_tiers_and_secondary_model() -> None:
    turbo = lookup_model("gpt-4-turbo")
    assert turbo.capabilities.context_window == 128000
    assert turbo.capabilities.supports_vision is True

    deepseek = lookup_model("deepseek-r1")
    assert deepseek.id == "DeepSeek-R1"
    assert deepseek.provider == "github"
    assert deepseek.capabilities.max_tokens == 8192


def test_unknown_model_resolves_to_conservative_default() -> None:
    descriptor = lookup_model("my-custom-model")
    assert descriptor is DEFAULT_MODEL_DESCRIPTOR
    assert descriptor.provider == "azure"
    assert descriptor.capabilities.context_window == 8192
    assert descriptor.capabilities.max_tokens == 4096
    assert descriptor.capabilities.supports_functions is False
    assert descriptor.capabilities.supports_vision is False
