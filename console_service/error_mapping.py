# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Error taxonomy mapping.

Provides:
- Exception hierarchy with stable ErrorCode mapping.
- Marshal function to produce structured ErrorPayload.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ErrorCode, ErrorPayload, error_response


@dataclass(eq=False)
class ConsoleError(Exception):
    code: ErrorCode
    detail: str = ""

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code.value}: {self.detail}" if self.detail else self.code.value


class ValidationError(ConsoleError):
    """Rejected before any persistence call; no partial state is written."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(ErrorCode.VALIDATION_ERROR, detail)


class AdapterError(ConsoleError):
    """Catalog fetch or store read/write failure."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(ErrorCode.ADAPTER_ERROR, detail)


class ProbeError(ConsoleError):
    """A single health probe timed out or failed."""

    def __init__(self, detail: str = "", kind: str = "unknown") -> None:
        super().__init__(ErrorCode.PROBE_ERROR, detail)
        self.kind = kind


class ChainExhaustedError(ConsoleError):
    def __init__(self, detail: str = "", attempts: list[tuple[str, str]] | None = None) -> None:
        super().__init__(ErrorCode.CHAIN_EXHAUSTED, detail)
        self.attempts = attempts or []


class ConfigurationError(ConsoleError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(ErrorCode.CONFIGURATION_ERROR, detail)


def marshal_exception(exc: Exception) -> ErrorPayload:
    """Map any exception to ErrorPayload.

    Unknown exceptions map to INTERNAL.
    """
    if isinstance(exc, ConsoleError):
        return error_response(exc.code, exc.detail)
    return error_response(ErrorCode.INTERNAL, str(exc))
