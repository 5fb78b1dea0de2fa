import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scratchoff.api import cards_router, claims_router, health_router
from scratchoff.api.dependencies import get_claim_hasher, get_scratch_card_contract
from scratchoff.config import settings
from scratchoff.db.database import init_db
from scratchoff.models.failure import ScratchOffError
from scratchoff.services.claim_signing import ContractClaimHasher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logging.basicConfig(level=settings.log_level)
    await init_db()

    hasher = get_claim_hasher()
    if isinstance(hasher, ContractClaimHasher):
        await hasher.check_parity()
        await get_scratch_card_contract().check_payment_token(settings.payment_token_address)
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("scratchoff"),
    lifespan=lifespan,
)

app.include_router(cards_router)
app.include_router(claims_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScratchOffError)
async def scratchoff_error_handler(_request: Request, exc: ScratchOffError) -> JSONResponse:
    """Render engine failures and refusals in the failure envelope."""
    if exc.status_code >= 500:
        logger.error("%s: %s (%s)", type(exc).__name__, exc.message, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )
