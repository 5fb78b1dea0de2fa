"""
Batch claim endpoint.

Authorizes several scratched cards in one request. Each card succeeds or
fails on its own; the response lists both.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from scratchoff.api.cards import ClaimSignatureResponse, claim_signature_response
from scratchoff.api.dependencies import get_claim_authorizer
from scratchoff.config import settings
from scratchoff.db.database import get_session
from scratchoff.services.claim_authorizer import ClaimAuthorizer

router = APIRouter(prefix="/claims", tags=["claims"])


class BatchClaimRequest(BaseModel):
    token_ids: list[int] = Field(..., min_length=1, max_length=settings.max_batch_size)


class FailedClaimResponse(BaseModel):
    token_id: int
    error: str


class BatchClaimResponse(BaseModel):
    """Response model for a batch claim."""

    successful: list[int]
    failed: list[FailedClaimResponse]
    signatures: list[ClaimSignatureResponse]
    total_prize_amount: str = Field(..., description="Sum of authorized base units")
    message: str = ""


@router.post("/batch", response_model=BatchClaimResponse)
async def batch_claim(
    request: BatchClaimRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    authorizer: Annotated[ClaimAuthorizer, Depends(get_claim_authorizer)],
) -> BatchClaimResponse:
    """
    Issue claim authorizations for several cards.

    Uses the shorter batch deadline. Per-card failures are reported in
    `failed` and do not fail the request.
    """
    result = await authorizer.authorize_batch(
        session, request.token_ids, settings.batch_claim_deadline_seconds
    )
    return BatchClaimResponse(
        successful=result.successful,
        failed=[FailedClaimResponse(token_id=f.token_id, error=f.reason) for f in result.failed],
        signatures=[claim_signature_response(a) for a in result.authorizations],
        total_prize_amount=str(result.total_amount_units),
        message=(
            f"Processed {len(request.token_ids)} tokens. "
            f"{len(result.successful)} successful, {len(result.failed)} failed."
        ),
    )
