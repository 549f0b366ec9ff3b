# 📄 File: app/api/v1/__init__.py
# 🧭 Purpose (Layman Explanation):
# This file organizes version 1 of our API so we can add new versions later without breaking existing apps.
# 🧪 Purpose (Technical Summary):
# Package initialization for API version 1.
# 🔗 Dependencies:
# FastAPI
# 🔄 Connected Modules / Calls From:
# app.main.py
