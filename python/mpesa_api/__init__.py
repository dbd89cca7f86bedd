"""
FastAPI Backend for the M-Pesa Processor

Exposes parsing and matching as stateless JSON endpoints.
"""

from .main import app

__all__ = ["app"]
