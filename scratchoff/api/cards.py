"""
Card API endpoints.

Provisioning cards for minted tokens, listing and reading cards,
scratching a card, issuing its claim authorization and recording a
confirmed claim.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from scratchoff.api.dependencies import get_card_provisioner, get_claim_authorizer
from scratchoff.config import settings
from scratchoff.db import (
    card_to_model,
    find_cards_by_minter,
    get_card,
    update_card_claimed,
    update_card_revealed,
)
from scratchoff.db.database import get_session
from scratchoff.models.card import MAX_TOKEN_ID, Card, CardState
from scratchoff.models.failure import CardNotFoundError
from scratchoff.models.grid import GridCell, Peer
from scratchoff.models.prize import Amount
from scratchoff.services.card_provisioner import CardProvisioner
from scratchoff.services.claim_authorizer import ClaimAuthorization, ClaimAuthorizer
from scratchoff.services.row_matcher import find_winning_row, rewarded_peer

router = APIRouter(prefix="/cards", tags=["cards"])

TokenId = Annotated[int, Path(ge=0, le=MAX_TOKEN_ID)]
WalletAddress = Annotated[str, Query(pattern=r"^0x[a-fA-F0-9]{40}$")]


class PeerModel(BaseModel):
    """A friend who can appear on a card face or receive a free card."""

    id: int = Field(..., ge=0)
    display_name: str = ""
    avatar_ref: str = ""
    wallet_ref: str = ""

    def to_peer(self) -> Peer:
        return Peer(
            id=self.id,
            display_name=self.display_name,
            avatar_ref=self.avatar_ref,
            wallet_ref=self.wallet_ref,
        )

    @classmethod
    def from_peer(cls, peer: Peer) -> "PeerModel":
        return cls(
            id=peer.id,
            display_name=peer.display_name,
            avatar_ref=peer.avatar_ref,
            wallet_ref=peer.wallet_ref,
        )


class CellResponse(BaseModel):
    amount: str
    asset: str
    peer: PeerModel | None = None


class PrizeResponse(BaseModel):
    kind: str = Field(..., description="none, peer or amount")
    amount: str | None = None
    asset: str | None = None


class CardResponse(BaseModel):
    """Response model for a card."""

    token_id: int
    contract_address: str
    minter: str
    grid: list[CellResponse]
    prize: PrizeResponse
    revealed: bool
    claimed: bool
    state: CardState
    revealed_by: str | None = None
    winning_row: int | None = Field(
        default=None,
        description="Row index of the prize line, present once the card is scratched",
    )


class CardListResponse(BaseModel):
    """One page of a wallet's cards."""

    cards: list[CardResponse]
    total: int = Field(..., description="Cards matching the filter across all pages")
    limit: int
    offset: int
    has_more: bool


class ProvisionRequest(BaseModel):
    """Request model for provisioning cards for minted tokens."""

    token_ids: list[int] = Field(..., min_length=1, max_length=settings.max_batch_size)
    recipient: str = Field(..., description="Wallet the tokens were minted to")
    contract_address: str | None = Field(
        default=None,
        description="NFT contract; defaults to the configured scratch card contract",
    )
    peers: list[PeerModel] = Field(default_factory=list)


class ProvisionResponse(BaseModel):
    cards: list[CardResponse]
    count: int


class ScratchRequest(BaseModel):
    revealed_by: str | None = Field(default=None, description="Wallet scratching the card")


class ScratchResponse(BaseModel):
    card: CardResponse
    winning_row: int | None = None
    rewarded_peer: PeerModel | None = Field(
        default=None,
        description="Peer who receives a free card, for peer wins",
    )


class ClaimSignatureRequest(BaseModel):
    deadline_seconds: int | None = Field(default=None, gt=0)


class ClaimSignatureResponse(BaseModel):
    """Claim parameters in the exact form the contract's claim call takes."""

    token_id: int
    prize_amount: str = Field(..., description="Prize in token base units")
    token_address: str
    deadline: int
    signature: str


def _cell_response(cell: GridCell) -> CellResponse:
    return CellResponse(
        amount=str(cell.amount),
        asset=cell.asset,
        peer=PeerModel.from_peer(cell.peer) if cell.peer else None,
    )


def card_response(card: Card) -> CardResponse:
    prize = card.prize
    return CardResponse(
        token_id=card.token_id,
        contract_address=card.contract_ref,
        minter=card.minter_ref,
        grid=[_cell_response(cell) for cell in card.grid],
        prize=PrizeResponse(
            kind=prize.kind,
            amount=str(prize.value) if isinstance(prize, Amount) else None,
            asset=prize.asset if isinstance(prize, Amount) else None,
        ),
        revealed=card.revealed,
        claimed=card.claimed,
        state=card.state,
        revealed_by=card.revealed_by_ref,
        winning_row=find_winning_row(card.grid, card.prize) if card.revealed else None,
    )


def claim_signature_response(authorization: ClaimAuthorization) -> ClaimSignatureResponse:
    return ClaimSignatureResponse(
        token_id=authorization.token_id,
        prize_amount=str(authorization.amount_units),
        token_address=authorization.asset_address,
        deadline=authorization.deadline,
        signature=authorization.signature_hex,
    )


@router.post("/provision", response_model=ProvisionResponse)
async def provision_cards(
    request: ProvisionRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    provisioner: Annotated[CardProvisioner, Depends(get_card_provisioner)],
) -> ProvisionResponse:
    """
    Create cards for newly minted tokens.

    Tokens that already have cards return them unchanged, so retries
    and concurrent calls are safe.
    """
    cards = await provisioner.provision(
        session,
        request.token_ids,
        peer_pool=[p.to_peer() for p in request.peers],
        recipient_ref=request.recipient,
        contract_ref=request.contract_address or settings.scratch_card_contract_address,
    )
    return ProvisionResponse(cards=[card_response(c) for c in cards], count=len(cards))


@router.get("", response_model=CardListResponse)
async def list_cards(
    owner: WalletAddress,
    session: Annotated[AsyncSession, Depends(get_session)],
    state: CardState | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> CardListResponse:
    """
    List cards minted to a wallet, unscratched first.

    Filter with `state` (unscratched, scratched or claimed); scratched
    means scratched but not yet claimed.
    """
    db_cards, total = await find_cards_by_minter(
        session, settings.scratch_card_contract_address, owner, state, limit, offset
    )
    return CardListResponse(
        cards=[card_response(card_to_model(c)) for c in db_cards],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(db_cards) < total,
    )


@router.get("/{token_id}", response_model=CardResponse)
async def read_card(
    token_id: TokenId,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """
    Get a card by token id.

    Returns 404 if the card does not exist.
    """
    db_card = await get_card(session, settings.scratch_card_contract_address, token_id)
    if db_card is None:
        raise CardNotFoundError(token_id)
    return card_response(card_to_model(db_card))


@router.post("/{token_id}/scratch", response_model=ScratchResponse)
async def scratch_card(
    token_id: TokenId,
    request: ScratchRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ScratchResponse:
    """
    Reveal a card.

    Returns 409 with a refusal if the card was already scratched.
    """
    db_card = await update_card_revealed(
        session, settings.scratch_card_contract_address, token_id, request.revealed_by
    )
    card = card_to_model(db_card)
    peer = rewarded_peer(card.grid, card.prize)
    response = card_response(card)
    return ScratchResponse(
        card=response,
        winning_row=response.winning_row,
        rewarded_peer=PeerModel.from_peer(peer) if peer else None,
    )


@router.post("/{token_id}/claim-signature", response_model=ClaimSignatureResponse)
async def generate_claim_signature(
    token_id: TokenId,
    session: Annotated[AsyncSession, Depends(get_session)],
    authorizer: Annotated[ClaimAuthorizer, Depends(get_claim_authorizer)],
    request: ClaimSignatureRequest | None = None,
) -> ClaimSignatureResponse:
    """
    Issue a signed claim authorization for a scratched card.

    Does not mark the card claimed; call /claimed once the on-chain claim
    has been confirmed.
    """
    deadline_seconds = request.deadline_seconds if request else None
    authorization = await authorizer.authorize(session, token_id, deadline_seconds)
    return claim_signature_response(authorization)


@router.post("/{token_id}/claimed", response_model=CardResponse)
async def confirm_claim(
    token_id: TokenId,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """
    Record that a card's prize has been claimed on-chain.

    Returns 409 with a refusal if already claimed or not yet scratched.
    """
    db_card = await update_card_claimed(session, settings.scratch_card_contract_address, token_id)
    return card_response(card_to_model(db_card))
