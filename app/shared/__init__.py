# 📄 File: app/shared/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Marks the 'shared' folder as a Python package containing common tools that all parts of our
# Plant Monitoring app can use, like database connections, settings and logging.
#
# 🧪 Purpose (Technical Summary):
# Shared kernel package initialization for configuration, infrastructure,
# and cross-cutting concerns.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - All application modules importing shared utilities
