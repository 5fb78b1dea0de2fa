from scratchoff.api.cards import router as cards_router
from scratchoff.api.claims import router as claims_router
from scratchoff.api.health import router as health_router

__all__ = [
    "cards_router",
    "claims_router",
    "health_router",
]
