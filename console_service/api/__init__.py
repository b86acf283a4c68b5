# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""HTTP surface of the fleet console."""

from .admin import router

__all__ = ["router"]
