# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""SQLAlchemy table models."""
