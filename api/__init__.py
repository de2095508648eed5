"""
API Package - FastAPI presentation layer.
"""
