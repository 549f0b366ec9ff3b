# 📄 File: app/api/__init__.py
# 🧭 Purpose (Layman Explanation):
# This file marks the api folder as a Python package so other parts of the app can import and use
# the API functionality.
# 🧪 Purpose (Technical Summary):
# Package initialization for the API layer.
# 🔗 Dependencies:
# None (package initialization)
# 🔄 Connected Modules / Calls From:
# app.main.py

"""
Plant Monitoring API Package

Structure:
    api/
    ├── __init__.py          # This file
    └── v1/                  # API version 1
        ├── __init__.py
        ├── router.py        # Main v1 router
        └── health.py        # Health check endpoints
"""
