from __future__ import annotations

import time
from typing import Any
from uuid import uuid4

from fastapi import status
from fastapi.responses import JSONResponse


def error_payload(message: str, error_type: str, code: str) -> dict[str, Any]:
    return {
        "error": {
            "message": message,
            "type": error_type,
            "code": code,
        },
    }


def error_response(
    *,
    status_code: int,
    message: str,
    error_type: str,
    code: str,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_payload(message, error_type, code),
    )


def invalid_parameters_response(message: str) -> JSONResponse:
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=message,
        error_type="invalid_request_error",
        code="invalid_parameters",
    )


def model_not_found_response(model: str) -> JSONResponse:
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        message=f"Model {model} not supported",
        error_type="invalid_request_error",
        code="model_not_found",
    )


def internal_error_response(message: str | None = None) -> JSONResponse:
    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message or "An unknown error occurred",
        error_type="proxy_error",
        code="internal_error",
    )


def extract_first_choice_content(body: Any) -> str:
    """Pull ``choices[0].message.content`` out of an upstream body.

    Any missing level yields an empty string.
    """
    if not isinstance(body, dict):
        return ""
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


def build_chat_completion(model: str, content: str) -> dict[str, Any]:
    return {
        "id": f"chatcmpl-{uuid4().hex}",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": content,
                },
                "finish_reason": "stop",
            },
        ],
    }
