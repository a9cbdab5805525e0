from __future__ import annotations

import logging
import time
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from azure_llm_gateway.config import ProxyConfiguration, resolve_config
from azure_llm_gateway.gateway.auth import (
    CredentialCache,
    CredentialResolver,
    MissingCredentialError,
)
from azure_llm_gateway.gateway.proxy import (
    DispatchOutcome,
    ProviderDispatcher,
    missing_secondary_key_response,
    outcome_to_response,
)
from azure_llm_gateway.gateway.responses import (
    error_response,
    internal_error_response,
    invalid_parameters_response,
    model_not_found_response,
)
from azure_llm_gateway.gateway.validation import (
    ChatCompletionRequest,
    InvalidRequestError,
    ModelNotFoundError,
    build_upstream_payload,
    resolve_model,
    validate_request,
)
from azure_llm_gateway.models import lookup_model
from azure_llm_gateway.settings import Settings, get_settings

app = FastAPI(
    title="Azure LLM Gateway",
    description="OpenAI-compatible chat completions gateway for Azure AI inference backends.",
    version="0.1.0",
    redirect_slashes=False,
)

logger = logging.getLogger("uvicorn.error")


def _build_models_response(config: ProxyConfiguration) -> dict[str, Any]:
    created = int(time.time())
    data: list[dict[str, Any]] = []
    for model_id in config.model_mappings:
        descriptor = lookup_model(model_id)
        data.append(
            {
                "id": model_id,
                "object": "model",
                "created": created,
                "owned_by": descriptor.provider,
                "permission": [],
                "root": model_id,
                "parent": None,
                "context_window": descriptor.capabilities.context_window,
                "max_tokens": descriptor.capabilities.max_tokens,
            }
        )
    return {
        "object": "list",
        "data": data,
    }


def _select_provider(settings: Settings, requested_model: str) -> str:
    if not settings.route_by_registry_provider:
        return "azure"
    return lookup_model(requested_model).provider


@app.on_event("startup")
async def startup() -> None:
    settings = get_settings()
    app.state.credential_resolver = CredentialResolver(
        CredentialCache(ttl_seconds=max(0.0, settings.credential_cache_ttl_seconds))
    )
    app.state.dispatcher = ProviderDispatcher(
        timeout_seconds=settings.backend_timeout_seconds,
        connect_timeout_seconds=settings.backend_connect_timeout_seconds,
    )
    config = resolve_config(settings)
    logger.info(
        (
            "startup complete azure_base_url=%s default_provider=%s github_configured=%s "
            "mapped_models=%d route_by_registry_provider=%s"
        ),
        config.azure.base_url,
        config.default_provider,
        config.github is not None,
        len(config.model_mappings),
        settings.route_by_registry_provider,
    )


@app.on_event("shutdown")
async def shutdown() -> None:
    dispatcher: ProviderDispatcher | None = getattr(app.state, "dispatcher", None)
    if dispatcher is not None:
        await dispatcher.close()
    logger.info("shutdown complete")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/v1/models")
async def models() -> dict[str, Any]:
    return _build_models_response(resolve_config(get_settings()))


async def _handle_chat_completion(request: Request, request_id: str) -> Response:
    try:
        payload = await request.json()
    except ValueError as exc:
        return internal_error_response(f"Expected JSON body: {exc}")

    try:
        chat_request = ChatCompletionRequest.from_payload(payload)
    except InvalidRequestError as exc:
        return invalid_parameters_response(str(exc))

    settings = get_settings()
    config = resolve_config(settings)

    try:
        requested_model, deployment = resolve_model(chat_request, config)
    except ModelNotFoundError as exc:
        logger.info(
            "model_not_found request_id=%s requested_model=%s mapped_models=%d",
            request_id,
            exc.requested_model,
            len(config.model_mappings),
        )
        return model_not_found_response(exc.requested_model)

    rejection = validate_request(chat_request)
    if rejection is not None:
        logger.info("invalid_parameters request_id=%s reason=%s", request_id, rejection)
        return invalid_parameters_response(rejection)

    upstream_payload = build_upstream_payload(chat_request, deployment)
    provider = _select_provider(settings, requested_model)
    logger.info(
        (
            "chat_completion_request request_id=%s provider=%s requested_model=%s "
            "deployment=%s messages=%d max_tokens=%s client_stream=%s"
        ),
        request_id,
        provider,
        requested_model,
        deployment,
        len(chat_request.messages),
        upstream_payload.get("max_tokens"),
        chat_request.stream,
    )

    dispatcher: ProviderDispatcher = app.state.dispatcher
    outcome: DispatchOutcome
    if provider == "github":
        if config.github is None:
            return missing_secondary_key_response()
        outcome = await dispatcher.dispatch_secondary(
            config.github, upstream_payload, request_id
        )
    else:
        resolver: CredentialResolver = app.state.credential_resolver
        try:
            api_key = resolver.resolve_key(request.headers, settings.azure_api_key)
        except MissingCredentialError as exc:
            logger.info("missing_credential request_id=%s", request_id)
            return exc.to_response()
        outcome = await dispatcher.dispatch_primary(
            config.azure, api_key, upstream_payload, request_id
        )

    return outcome_to_response(outcome, requested_model)


@app.post("/v1/chat/completions")
async def chat_completions(request: Request) -> Response:
    request_id = (
        request.headers.get("x-request-id")
        or request.headers.get("x-correlation-id")
        or uuid4().hex[:12]
    )
    try:
        return await _handle_chat_completion(request, request_id)
    except Exception as exc:
        logger.exception("chat_completion_failed request_id=%s", request_id)
        return internal_error_response(str(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    _: Request, exc: StarletteHTTPException
) -> Response:
    if exc.status_code == 404:
        return PlainTextResponse("Not found", status_code=404)
    if exc.status_code == 405:
        return PlainTextResponse(
            "Method not allowed", status_code=405, headers=exc.headers
        )
    return error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_type="invalid_request_error",
        code="http_error",
    )


def run() -> None:
    import uvicorn

    uvicorn.run("azure_llm_gateway.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
