"""
Card storage operations.

Async functions implementing the storage contract the engine relies on:
lookup by token ids, paged listing by minter, create-or-conflict and
single-statement state transitions for scratch and claim.

Contract addresses are stored lowercased; callers may pass any casing.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scratchoff.models.card import Card, CardState
from scratchoff.models.db import CardDB
from scratchoff.models.failure import (
    AlreadyClaimedError,
    AlreadyRevealedError,
    CardNotFoundError,
    NotRevealedError,
)
from scratchoff.models.grid import grid_from_json, grid_to_json
from scratchoff.models.prize import outcome_from_columns, outcome_to_columns

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardCreated:
    """The card row was inserted."""

    card: CardDB


@dataclass(frozen=True)
class DuplicateTokenId:
    """Another writer already created a card for this token."""

    token_id: int
    contract_ref: str


CreateCardResult = CardCreated | DuplicateTokenId


# --- Queries ---


async def get_card(session: AsyncSession, contract_ref: str, token_id: int) -> CardDB | None:
    """
    Get a card by contract and token id.

    Always reloads column values so callers see the latest committed state.
    """
    result = await session.execute(
        select(CardDB)
        .where(
            CardDB.contract_address == contract_ref.lower(),
            CardDB.token_id == token_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_cards_by_token_ids(
    session: AsyncSession, contract_ref: str, token_ids: Iterable[int]
) -> list[CardDB]:
    """Get all persisted cards among token_ids, ordered by token id."""
    ids = list(token_ids)
    if not ids:
        return []

    result = await session.execute(
        select(CardDB)
        .where(
            CardDB.contract_address == contract_ref.lower(),
            CardDB.token_id.in_(ids),
        )
        .order_by(CardDB.token_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def find_cards_by_minter(
    session: AsyncSession,
    contract_ref: str,
    minter_ref: str,
    state: CardState | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[CardDB], int]:
    """
    Get one page of a wallet's cards and the total matching count.

    Unscratched cards come first, then scratched but unclaimed, then
    claimed; newest first within each group. `state` restricts the
    listing to one group.
    """
    conditions = [
        CardDB.contract_address == contract_ref.lower(),
        CardDB.minter_address == minter_ref.lower(),
    ]
    if state == "unscratched":
        conditions.append(CardDB.revealed.is_(False))
    elif state == "scratched":
        conditions.extend([CardDB.revealed.is_(True), CardDB.claimed.is_(False)])
    elif state == "claimed":
        conditions.append(CardDB.claimed.is_(True))

    total = await session.scalar(select(func.count()).select_from(CardDB).where(*conditions))

    result = await session.execute(
        select(CardDB)
        .where(*conditions)
        .order_by(
            CardDB.revealed,
            CardDB.claimed,
            CardDB.created_at.desc(),
            CardDB.token_id.desc(),
        )
        .limit(limit)
        .offset(offset)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), int(total or 0)


# --- Creation ---


async def create_card(session: AsyncSession, card: Card) -> CreateCardResult:
    """
    Insert a new card in its own transaction.

    Commits on success so a later conflict on a sibling token cannot
    roll this card back. A uniqueness violation is returned as
    DuplicateTokenId rather than raised.
    """
    kind, amount, asset = outcome_to_columns(card.prize)
    db_card = CardDB(
        token_id=card.token_id,
        contract_address=card.contract_ref.lower(),
        grid=grid_to_json(card.grid),
        prize_kind=kind,
        prize_amount=amount,
        prize_asset=asset,
        minter_address=card.minter_ref.lower(),
        revealed=False,
        claimed=False,
    )
    session.add(db_card)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.info("Card %d on %s already exists", card.token_id, card.contract_ref)
        return DuplicateTokenId(token_id=card.token_id, contract_ref=card.contract_ref)

    await session.refresh(db_card)
    return CardCreated(card=db_card)


# --- State transitions ---


async def update_card_revealed(
    session: AsyncSession,
    contract_ref: str,
    token_id: int,
    revealed_by_ref: str | None,
) -> CardDB:
    """
    Mark a card as scratched.

    The flag flips in a single conditional UPDATE, so of two racing
    scratches exactly one succeeds.

    Raises:
        CardNotFoundError: No such card
        AlreadyRevealedError: Card was already scratched
    """
    result = await session.execute(
        update(CardDB)
        .where(
            CardDB.contract_address == contract_ref.lower(),
            CardDB.token_id == token_id,
            CardDB.revealed.is_(False),
        )
        .values(
            revealed=True,
            revealed_by_address=revealed_by_ref.lower() if revealed_by_ref else None,
            revealed_at=datetime.now(UTC),
        )
        .execution_options(synchronize_session=False)
    )
    # rowcount is available on UPDATE results; type stubs incomplete for async
    updated = int(result.rowcount)  # type: ignore[attr-defined]

    card = await get_card(session, contract_ref, token_id)
    if card is None:
        raise CardNotFoundError(token_id)
    if updated == 0:
        raise AlreadyRevealedError(token_id)
    return card


async def update_card_claimed(session: AsyncSession, contract_ref: str, token_id: int) -> CardDB:
    """
    Mark a scratched card's prize as claimed.

    Raises:
        CardNotFoundError: No such card
        NotRevealedError: Card has not been scratched
        AlreadyClaimedError: Prize was already claimed
    """
    result = await session.execute(
        update(CardDB)
        .where(
            CardDB.contract_address == contract_ref.lower(),
            CardDB.token_id == token_id,
            CardDB.revealed.is_(True),
            CardDB.claimed.is_(False),
        )
        .values(claimed=True, claimed_at=datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    updated = int(result.rowcount)  # type: ignore[attr-defined]

    card = await get_card(session, contract_ref, token_id)
    if card is None:
        raise CardNotFoundError(token_id)
    if updated == 0:
        if card.claimed:
            raise AlreadyClaimedError(token_id)
        raise NotRevealedError(token_id)
    return card


# --- Conversion ---


def card_to_model(db_card: CardDB) -> Card:
    """Convert a database card to a domain model."""
    return Card(
        token_id=db_card.token_id,
        contract_ref=db_card.contract_address,
        grid=grid_from_json(db_card.grid),
        prize=outcome_from_columns(db_card.prize_kind, db_card.prize_amount, db_card.prize_asset),
        minter_ref=db_card.minter_address,
        revealed=db_card.revealed,
        claimed=db_card.claimed,
        revealed_by_ref=db_card.revealed_by_address,
        created_at=db_card.created_at,
        revealed_at=db_card.revealed_at,
        claimed_at=db_card.claimed_at,
    )
