"""
Data-access and aggregation layer for a property rental catalog.
"""

__version__ = "1.0.0"
