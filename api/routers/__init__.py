"""
API Routers.
"""
from . import analyze, search

__all__ = ["analyze", "search"]
