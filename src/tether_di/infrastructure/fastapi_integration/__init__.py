"""
FastAPI integration module.

Provides helpers and utilities for integrating tether-di with FastAPI.
"""

from .integration import (
    ScopeMiddleware,
    create_fastapi_dependency,
    create_scoped_dependency,
    get_request_scope,
)

__all__ = [
    "create_fastapi_dependency",
    "create_scoped_dependency",
    "get_request_scope",
    "ScopeMiddleware",
]
