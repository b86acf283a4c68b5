# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Structured error codes for the console engine."""

from enum import Enum
from typing import TypedDict


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    ADAPTER_ERROR = "adapter_error"
    PROBE_ERROR = "probe_error"
    CHAIN_EXHAUSTED = "fallback_chain_exhausted"
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL = "internal_error"


class ErrorPayload(TypedDict):
    error: str
    detail: str


def error_response(code: ErrorCode, detail: str = "") -> ErrorPayload:
    return {"error": code.value, "detail": detail}
