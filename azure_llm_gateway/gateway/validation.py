from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from azure_llm_gateway.config import ProxyConfiguration


class InvalidRequestError(ValueError):
    """Raised when the inbound body cannot be read as a chat completion request."""


class ModelNotFoundError(LookupError):
    def __init__(self, requested_model: str) -> None:
        super().__init__(f"Model {requested_model} not supported")
        self.requested_model = requested_model


@dataclass(slots=True)
class ChatCompletionRequest:
    messages: list[Any] = field(default_factory=list)
    model: str | None = None
    temperature: Any = None
    max_tokens: Any = None
    max_completion_tokens: Any = None
    top_p: Any = None
    stream: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> ChatCompletionRequest:
        if not isinstance(payload, dict):
            raise InvalidRequestError("Expected a JSON object request body.")

        messages = payload.get("messages", [])
        if not isinstance(messages, list):
            raise InvalidRequestError("messages must be an array")

        model = payload.get("model")
        if model is not None and not isinstance(model, str):
            raise InvalidRequestError("model must be a string")

        return cls(
            messages=messages,
            model=model or None,
            temperature=payload.get("temperature"),
            max_tokens=payload.get("max_tokens"),
            max_completion_tokens=payload.get("max_completion_tokens"),
            top_p=payload.get("top_p"),
            stream=bool(payload.get("stream")),
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value.is_integer() and value > 0
    return isinstance(value, int) and value > 0


def validate_request(request: ChatCompletionRequest) -> str | None:
    """Check generation parameters; return a rejection reason or ``None``."""
    if request.temperature is not None:
        if not _is_number(request.temperature) or not 0 <= request.temperature <= 2:
            return "temperature must be between 0 and 2"

    if request.max_tokens is not None and not _is_positive_int(request.max_tokens):
        return "max_tokens must be a positive integer"

    if request.max_completion_tokens is not None and not _is_positive_int(
        request.max_completion_tokens
    ):
        return "max_completion_tokens must be a positive integer"

    if request.top_p is not None:
        if not _is_number(request.top_p) or not 0 <= request.top_p <= 1:
            return "top_p must be between 0 and 1"

    return None


def resolve_token_limit(request: ChatCompletionRequest) -> int | None:
    if request.max_tokens is not None:
        return int(request.max_tokens)
    if request.max_completion_tokens is not None:
        return int(request.max_completion_tokens)
    return None


def resolve_model(
    request: ChatCompletionRequest, config: ProxyConfiguration
) -> tuple[str, str]:
    """Return ``(requested_model, deployment_id)`` for an admissible model."""
    requested_model = request.model or config.default_model
    if not config.is_valid_model(requested_model):
        raise ModelNotFoundError(requested_model)
    return requested_model, config.deployment_for(requested_model)


def build_upstream_payload(
    request: ChatCompletionRequest, deployment: str
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": deployment,
        "messages": request.messages,
    }
    if request.temperature is not None:
        payload["temperature"] = request.temperature
    token_limit = resolve_token_limit(request)
    if token_limit is not None:
        payload["max_tokens"] = token_limit
    if request.top_p is not None:
        payload["top_p"] = request.top_p
    # The gateway never holds a streaming upstream connection open.
    payload["stream"] = False
    return payload
