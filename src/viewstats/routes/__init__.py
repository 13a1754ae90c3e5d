"""
HTTP routes for viewstats.
"""

from .stats import create_stats_router

__all__ = ["create_stats_router"]
