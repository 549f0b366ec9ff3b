"""
Monitoring package: service health aggregation.
"""
