"""HTTP API routers."""

from safety_check.api.router import api_router

__all__ = ["api_router"]
