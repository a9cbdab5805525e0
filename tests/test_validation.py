from __future__ import annotations

from typing import Any

import pytest

from azure_llm_gateway.config import ModelMappings, ProviderConfig, ProxyConfiguration
from azure_llm_gateway.gateway.validation import (
    ChatCompletionRequest,
    InvalidRequestError,
    ModelNotFoundError,
    build_upstream_payload,
    resolve_model,
    resolve_token_limit,
    validate_request,
)

MESSAGES = [{"role": "user", "content": "hi"}]


def _request(**fields: Any) -> ChatCompletionRequest:
    return ChatCompletionRequest.from_payload({"messages": MESSAGES, **fields})


def _config(mappings: dict[str, str]) -> ProxyConfiguration:
    return ProxyConfiguration(
        azure=ProviderConfig(name="azure", base_url="http://azure.test"),
        model_mappings=ModelMappings(mappings),
    )


@pytest.mark.parametrize("value", [0, 0.0, 0.7, 1, 2, 2.0])
def test_temperature_inside_range_is_accepted(value: Any) -> None:
    assert validate_request(_request(temperature=value)) is None


@pytest.mark.parametrize("value", [-0.01, 2.01, 3, "1", True])
def test_temperature_outside_range_is_rejected(value: Any) -> None:
    assert validate_request(_request(temperature=value)) == (
        "temperature must be between 0 and 2"
    )


@pytest.mark.parametrize("field", ["max_tokens", "max_completion_tokens"])
@pytest.mark.parametrize("value", [1, 50, 4096])
def test_positive_integer_token_limits_are_accepted(field: str, value: int) -> None:
    assert validate_request(_request(**{field: value})) is None


@pytest.mark.parametrize("field", ["max_tokens", "max_completion_tokens"])
@pytest.mark.parametrize("value", [0, -1, 1.5, "10", True])
def test_invalid_token_limits_are_rejected(field: str, value: Any) -> None:
    assert validate_request(_request(**{field: value})) == (
        f"{field} must be a positive integer"
    )


@pytest.mark.parametrize("value", [0, 0.5, 1])
def test_top_p_inside_range_is_accepted(value: Any) -> None:
    assert validate_request(_request(top_p=value)) is None


@pytest.mark.parametrize("value", [-0.1, 1.1, "0.5"])
def test_top_p_outside_range_is_rejected(value: Any) -> None:
    assert validate_request(_request(top_p=value)) == "top_p must be between 0 and 1"


def test_max_tokens_takes_priority_over_max_completion_tokens() -> None:
    assert resolve_token_limit(_request(max_tokens=50, max_completion_tokens=100)) == 50


@pytest.mark.parametrize("field", ["max_tokens", "max_completion_tokens"])
def test_integral_float_token_limit_is_accepted_as_int(field: str) -> None:
    request = _request(**{field: 50.0})

    assert validate_request(request) is None
    limit = resolve_token_limit(request)
    assert limit == 50
    assert type(limit) is int
    assert build_upstream_payload(request, "deploy")["max_tokens"] == 50


def test_max_completion_tokens_used_as_fallback() -> None:
    assert resolve_token_limit(_request(max_completion_tokens=100)) == 100


def test_no_token_limit_when_neither_field_given() -> None:
    request = _request()
    assert resolve_token_limit(request) is None
    assert "max_tokens" not in build_upstream_payload(request, "deploy")


def test_upstream_payload_reshapes_parameters_and_forces_non_streaming() -> None:
    request = _request(
        model="GPT-4",
        temperature=0.3,
        top_p=0.9,
        max_completion_tokens=100,
        stream=True,
        presence_penalty=1.0,
    )
    payload = build_upstream_payload(request, "gpt4-deploy")
    assert payload == {
        "model": "gpt4-deploy",
        "messages": MESSAGES,
        "temperature": 0.3,
        "max_tokens": 100,
        "top_p": 0.9,
        "stream": False,
    }
    assert payload["messages"] is request.messages


def test_upstream_payload_omits_absent_sampling_parameters() -> None:
    payload = build_upstream_payload(_request(), "deploy")
    assert "temperature" not in payload
    assert "top_p" not in payload
    assert payload["stream"] is False


@pytest.mark.parametrize("model", ["gpt-4", "GPT-4", "Gpt-4"])
def test_model_admissibility_is_case_insensitive(model: str) -> None:
    config = _config({"gpt-4": "My-GPT4"})
    assert resolve_model(_request(model=model), config) == (model, "My-GPT4")


def test_omitted_model_defaults_to_configured_default() -> None:
    config = _config({"deepseek-r1": "DeepSeek-R1"})
    assert resolve_model(_request(), config) == ("DeepSeek-R1", "DeepSeek-R1")


def test_unmapped_model_is_not_found() -> None:
    config = _config({"gpt-4": "gpt-4"})
    with pytest.raises(ModelNotFoundError) as exc_info:
        resolve_model(_request(model="gpt-4-turbo"), config)
    assert exc_info.value.requested_model == "gpt-4-turbo"
    assert str(exc_info.value) == "Model gpt-4-turbo not supported"


def test_empty_messages_pass_through() -> None:
    request = ChatCompletionRequest.from_payload({"messages": []})
    assert request.messages == []
    assert build_upstream_payload(request, "d")["messages"] == []


@pytest.mark.parametrize(
    "payload",
    [[], "text", {"messages": "hi"}, {"messages": [], "model": 4}],
)
def test_malformed_bodies_are_rejected(payload: Any) -> None:
    with pytest.raises(InvalidRequestError):
        ChatCompletionRequest.from_payload(payload)
