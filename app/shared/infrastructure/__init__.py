"""
Infrastructure layer package for Plant Monitoring Application.
Provides database connection, transaction and error-classification components.
"""
