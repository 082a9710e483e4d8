"""Route registration for the hall coordinator API."""

from .api_routes import register_api_routes

__all__ = ["register_api_routes"]
