"""Routers package for API endpoints."""

from navigator.routers import search

__all__ = ["search"]
