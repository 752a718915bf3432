"""ClaimCraft Engine - API Routers"""
from .claims import router as claims_router
from .deadlines import router as deadlines_router

__all__ = [
    "claims_router",
    "deadlines_router",
]
