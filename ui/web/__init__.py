"""
Web Module - FastAPI-based relay endpoint
=========================================

This module provides the HTTP side of the bridge:
- Event ingestion from the relay
- Bot status
- Paginated action listing
"""

from .app import create_app, run_bridge
from .routes import router

__all__ = [
    "create_app",
    "run_bridge",
    "router",
]
