# 📄 File: app/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# The main entry point that tells Python this 'app' folder contains our Plant Monitoring application code
# and sets up the basic version and package information.
#
# 🧪 Purpose (Technical Summary):
# Application package initialization with version info for the Plant Monitoring FastAPI application.
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - main.py (application entry point)
# - Package imports throughout the application

"""
Plant Monitoring Application

Backend API for plant and soil-data monitoring with a resilient
data-access layer and live health reporting.
"""

__version__ = "1.0.0"
__title__ = "Plant Monitoring API"
__description__ = "Plant and soil-data monitoring backend"
