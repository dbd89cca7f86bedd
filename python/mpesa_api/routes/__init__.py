"""
API Routes Package

Contains all route modules for the M-Pesa processor API.
"""

from .matching import router as matching_router
from .parsing import router as parsing_router

__all__ = [
    "parsing_router",
    "matching_router",
]
