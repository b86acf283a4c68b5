# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Repository package: SQLAlchemy implementations of the console store contracts."""

from .alert_repository import AlertRepository
from .base import BaseRepository
from .evaluation_repository import EvaluationRepository
from .fallback_chain_repository import FallbackChainRepository
from .health_check_repository import HealthCheckRepository
from .settings_repository import SettingsRepository

__all__ = [
    "AlertRepository",
    "BaseRepository",
    "EvaluationRepository",
    "FallbackChainRepository",
    "HealthCheckRepository",
    "SettingsRepository",
]
