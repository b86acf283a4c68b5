# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""Model fleet console engine.

Aggregates evaluation results for LLM backends, ranks them per category,
normalizes cost against a dynamic baseline, manages per-category fallback
chains and derives live health status from the probe log.
"""

__version__ = "0.1.0"
