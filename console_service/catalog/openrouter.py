# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""OpenRouter integrations: model catalog and health probe dispatcher."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import aiohttp

from ..domain.evaluation.models import ModelCatalogEntry
from ..domain.health.models import ProbeResult
from ..error_mapping import AdapterError, ProbeError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


def _as_float(value: Any) -> float:
    try:
        return float(value) if value not in (None, "") else 0.0
    except (TypeError, ValueError):
        return 0.0


def parse_model(data: dict[str, Any]) -> ModelCatalogEntry:
    """Convert one ``/models`` item; prices arrive as per-token strings."""
    pricing = data.get("pricing") or {}
    arch = data.get("architecture") or {}
    reasoning = pricing.get("internal_reasoning")
    return ModelCatalogEntry(
        model_id=data["id"],
        name=data.get("name") or data["id"],
        prompt_cost=_as_float(pricing.get("prompt")),
        completion_cost=_as_float(pricing.get("completion")),
        context_length=int(data.get("context_length") or 0),
        input_modalities=tuple(arch.get("input_modalities") or ()),
        output_modalities=tuple(arch.get("output_modalities") or ()),
        modality=arch.get("modality"),
        reasoning_cost=_as_float(reasoning) if reasoning is not None else None,
    )


class OpenRouterClient:
    """Shared connection settings for OpenRouter calls."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        app_title: str = "Fleet Console",
        referer: str = "",
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.app_title = app_title
        self.referer = referer

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "X-Title": self.app_title}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        return headers

    async def _get_json(self, path: str) -> dict[str, Any]:
        """GET with exponential-backoff retry."""
        url = f"{self.base_url}{path}"
        for attempt in range(self.retry_attempts):
            try:
                async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                    async with session.get(url, headers=self._headers()) as response:
                        response.raise_for_status()
                        return await response.json()

            except asyncio.TimeoutError:
                if attempt == self.retry_attempts - 1:
                    raise AdapterError(f"Request to {url} timed out after {self.timeout}s")
                await asyncio.sleep(self.retry_delay * (2**attempt))

            except aiohttp.ClientError as e:
                if attempt == self.retry_attempts - 1:
                    raise AdapterError(f"Request to {url} failed: {e}")
                await asyncio.sleep(self.retry_delay * (2**attempt))

        raise AdapterError("Max retry attempts exceeded")


class OpenRouterCatalog(OpenRouterClient):
    """Model catalog read through ``GET /models``."""

    async def fetch_models(self) -> list[ModelCatalogEntry]:
        data = await self._get_json("/models")
        entries = []
        for item in data.get("data") or []:
            try:
                entries.append(parse_model(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed catalog entry {item.get('id', '?')}: {e}")
        logger.info(f"Fetched {len(entries)} models from OpenRouter")
        return entries


class OpenRouterProbeDispatcher(OpenRouterClient):
    """Sends a minimal completion request to check a model answers."""

    probe_prompt = "test"
    probe_max_tokens = 5

    def __init__(self, api_key: str | None = None, timeout: float = 10.0, **kwargs):
        kwargs.setdefault("app_title", "Fleet Console Health Check")
        super().__init__(api_key, timeout=timeout, retry_attempts=1, **kwargs)

    async def check_available(self) -> bool:
        return bool(self.api_key)

    async def probe(self, model_id: str) -> ProbeResult:
        body = {
            "model": model_id,
            "messages": [{"role": "user", "content": self.probe_prompt}],
            "max_tokens": self.probe_max_tokens,
        }
        started = time.monotonic()
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(
                    f"{self.base_url}/chat/completions", json=body, headers=self._headers()
                ) as response:
                    elapsed_ms = round((time.monotonic() - started) * 1000, 1)
                    if response.status < 400:
                        return ProbeResult(success=True, response_time_ms=elapsed_ms, status_code=response.status)
                    try:
                        payload = await response.json(content_type=None)
                        message = (payload.get("error") or {}).get("message") or "Unknown error"
                    except (aiohttp.ContentTypeError, ValueError, AttributeError):
                        message = "Unknown error"
                    return ProbeResult(
                        success=False,
                        response_time_ms=elapsed_ms,
                        status_code=response.status,
                        error_kind="http_error",
                        error_message=f"HTTP {response.status}: {message}",
                    )
        except asyncio.TimeoutError:
            raise ProbeError(f"{model_id} timed out after {self.timeout}s", kind="timeout") from None
        except aiohttp.ClientError as e:
            raise ProbeError(f"{model_id}: {e}", kind="connection_error") from e
