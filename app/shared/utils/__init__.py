# 📄 File: app/shared/utils/__init__.py

# 🧭 Purpose (Layman Explanation):
# This file sets up helpful tools that other parts of the app can use, starting with logging.

# 🧪 Purpose (Technical Summary):
# Initializes the utilities package with structured logging utilities.

# 🔗 Dependencies:
# - logging: Structured logging utilities

# 🔄 Connected Modules / Calls From:
# Used by: app.main, app.monitoring.health_checks

from .logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
