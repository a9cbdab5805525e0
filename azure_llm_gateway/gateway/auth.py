from __future__ import annotations

import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from fastapi import status
from fastapi.responses import JSONResponse

from azure_llm_gateway.gateway.responses import error_response

AZURE_SLOT = "azure"
DEFAULT_CREDENTIAL_TTL_SECONDS = 300.0

_BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


class MissingCredentialError(RuntimeError):
    """Raised when no usable upstream API key can be found for a request."""

    def to_response(self) -> JSONResponse:
        return error_response(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=str(self),
            error_type="authentication_error",
            code="invalid_api_key",
        )


@dataclass(slots=True)
class _CachedCredential:
    key: str
    stored_at: float


class CredentialCache:
    """Per-slot store of already validated keys with lazy expiry."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CREDENTIAL_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, _CachedCredential] = {}

    def get(self, slot: str) -> str | None:
        cached = self._entries.get(slot)
        if cached is None:
            return None
        if self._clock() - cached.stored_at < self._ttl_seconds:
            return cached.key
        self._entries.pop(slot, None)
        return None

    def put(self, slot: str, key: str) -> None:
        self._entries[slot] = _CachedCredential(key=key, stored_at=self._clock())


class CredentialResolver:
    def __init__(self, cache: CredentialCache) -> None:
        self.cache = cache

    def validate_key(self, key: str | None) -> bool:
        # Structural check only, no upstream round-trip.
        return isinstance(key, str) and len(key) > 0

    def resolve_key(
        self,
        headers: Mapping[str, str],
        env_key: str | None,
        slot: str = AZURE_SLOT,
    ) -> str:
        cached = self.cache.get(slot)
        if cached is not None:
            return cached

        for candidate in self._candidates(headers, env_key):
            if self.validate_key(candidate):
                self.cache.put(slot, candidate)
                return candidate

        raise MissingCredentialError("Missing or invalid Azure API key")

    @staticmethod
    def _candidates(
        headers: Mapping[str, str], env_key: str | None
    ) -> list[str | None]:
        bearer_token: str | None = None
        match = _BEARER_PATTERN.match(headers.get("authorization", "") or "")
        if match:
            bearer_token = match.group(1)
        return [env_key, bearer_token, headers.get("api-key")]
