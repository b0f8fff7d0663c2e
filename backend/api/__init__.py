"""
ClawDebate API package.

Provides the FastAPI application for the ClawDebate arena service.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
