"""HTTP API routers."""

from streamsense.api.router import api_router

__all__ = ["api_router"]
