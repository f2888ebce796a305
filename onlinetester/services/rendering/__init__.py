"""
Template rendering engine package.

Exports the public API surface; no worker threads are started on import.
"""

from .engine import TemplateEngine, get_engine, shutdown_engine
from .schemas import CauseLink, Locale, RenderFailure, RenderSuccess

__all__ = [
    "CauseLink",
    "Locale",
    "RenderFailure",
    "RenderSuccess",
    "TemplateEngine",
    "get_engine",
    "shutdown_engine",
]
