from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import status
from fastapi.responses import JSONResponse

from azure_llm_gateway.config import DEFAULT_INFERENCE_ENDPOINT, ProviderConfig
from azure_llm_gateway.gateway.responses import (
    build_chat_completion,
    error_response,
    extract_first_choice_content,
    internal_error_response,
)

logger = logging.getLogger("uvicorn.error")

_PROVIDER_LABELS = {
    "azure": "Azure AI",
    "github": "GitHub API",
}


@dataclass(slots=True)
class Succeeded:
    body: dict[str, Any]


@dataclass(slots=True)
class UpstreamError:
    provider: str
    status_code: int
    message: str
    code: str


@dataclass(slots=True)
class TransportError:
    error: str


DispatchOutcome = Succeeded | UpstreamError | TransportError


def _request_error_details(exc: Exception) -> dict[str, Any]:
    error_repr = repr(exc)
    details: dict[str, Any] = {
        "error": str(exc).strip() or error_repr,
        "error_type": exc.__class__.__name__.strip() or "RequestError",
        "is_timeout": isinstance(exc, httpx.TimeoutException),
    }
    request: httpx.Request | None = None
    if isinstance(exc, httpx.RequestError):
        try:
            request = exc.request
        except RuntimeError:
            # .request raises until the client attaches the outgoing request.
            request = None
    details["request_url"] = str(request.url) if request is not None else None
    return details


def _upstream_error(provider: str, upstream: httpx.Response) -> UpstreamError:
    label = _PROVIDER_LABELS.get(provider, provider)
    error_text = upstream.text
    try:
        parsed = json.loads(error_text)
    except ValueError:
        return UpstreamError(
            provider=provider,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=f"{label} request failed: {error_text}",
            code="parse_error",
        )

    error = parsed.get("error") if isinstance(parsed, dict) else None
    if not isinstance(error, dict):
        error = {}
    message = error.get("message")
    code = error.get("code")
    return UpstreamError(
        provider=provider,
        status_code=upstream.status_code,
        message=message if isinstance(message, str) and message else f"{label} request failed",
        code=str(code) if code not in (None, "") else "unknown_error",
    )


def outcome_to_response(outcome: DispatchOutcome, model: str) -> JSONResponse:
    if isinstance(outcome, Succeeded):
        content = extract_first_choice_content(outcome.body)
        return JSONResponse(content=build_chat_completion(model, content))
    if isinstance(outcome, UpstreamError):
        return error_response(
            status_code=outcome.status_code,
            message=outcome.message,
            error_type=f"{outcome.provider}_error",
            code=outcome.code,
        )
    return internal_error_response(outcome.error)


def missing_secondary_key_response() -> JSONResponse:
    return error_response(
        status_code=status.HTTP_401_UNAUTHORIZED,
        message="GitHub API key not configured",
        error_type="configuration_error",
        code="missing_api_key",
    )


class ProviderDispatcher:
    """Issues exactly one upstream chat completion call per request."""

    def __init__(
        self,
        timeout_seconds: float = 120.0,
        connect_timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        connect_timeout = (
            max(0.1, float(connect_timeout_seconds))
            if connect_timeout_seconds is not None
            else max(0.1, min(5.0, timeout_seconds))
        )
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                timeout=max(0.1, float(timeout_seconds)),
                connect=connect_timeout,
            ),
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def dispatch_primary(
        self,
        config: ProviderConfig,
        api_key: str,
        payload: dict[str, Any],
        request_id: str,
    ) -> DispatchOutcome:
        params = {"api-version": config.api_version} if config.api_version else None
        headers = {
            "api-key": api_key,
            "Authorization": f"Bearer {api_key}",
        }
        return await self._send(
            provider="azure",
            url=f"{config.base_url.rstrip('/')}/chat/completions",
            payload=payload,
            headers=headers,
            params=params,
            request_id=request_id,
        )

    async def dispatch_secondary(
        self,
        config: ProviderConfig,
        payload: dict[str, Any],
        request_id: str,
    ) -> DispatchOutcome:
        return await self._send(
            provider="github",
            url=f"{DEFAULT_INFERENCE_ENDPOINT}/chat/completions",
            payload=payload,
            headers={"Authorization": f"Bearer {config.api_key}"},
            params=None,
            request_id=request_id,
        )

    async def _send(
        self,
        *,
        provider: str,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        params: dict[str, str] | None,
        request_id: str,
    ) -> DispatchOutcome:
        started = time.perf_counter()
        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **headers,
        }
        try:
            upstream = await self.client.post(
                url,
                json=payload,
                headers=request_headers,
                params=params,
            )
            latency_ms = (time.perf_counter() - started) * 1000.0
            logger.info(
                "upstream_response request_id=%s provider=%s model=%s status=%d latency_ms=%.2f",
                request_id,
                provider,
                payload.get("model"),
                upstream.status_code,
                latency_ms,
            )
            if not upstream.is_success:
                outcome = _upstream_error(provider, upstream)
                logger.warning(
                    "upstream_error request_id=%s provider=%s status=%d code=%s message=%s",
                    request_id,
                    provider,
                    upstream.status_code,
                    outcome.code,
                    outcome.message,
                )
                return outcome
            body = upstream.json()
        except (httpx.HTTPError, ValueError, TypeError) as exc:
            details = _request_error_details(exc)
            logger.warning(
                "upstream_request_error request_id=%s provider=%s request_url=%s error_type=%s is_timeout=%s error=%s",
                request_id,
                provider,
                details["request_url"],
                details["error_type"],
                details["is_timeout"],
                details["error"],
            )
            return TransportError(error=details["error"])

        if not isinstance(body, dict):
            return TransportError(
                error=f"{_PROVIDER_LABELS.get(provider, provider)} returned a non-object body",
            )
        return Succeeded(body=body)
