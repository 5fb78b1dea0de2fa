"""
Card Provisioner: creates cards for freshly minted tokens.

Provisioning is idempotent per token: calling it again, or concurrently,
for tokens that already have cards returns the stored cards unchanged.

CONCURRENCY:
Absent -> Created                     this call inserted the card
Absent -> Conflict -> Resolved        another call won the insert; its
                                      card is read back and used
Conflict -> (not found on re-read)    ProvisioningInconsistencyError

No application lock is taken. The storage uniqueness constraint on
(contract, token) decides every race.
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from scratchoff.db.operations import (
    CardCreated,
    card_to_model,
    create_card,
    find_cards_by_token_ids,
    get_card,
)
from scratchoff.models.card import Card, check_token_id
from scratchoff.models.failure import ProvisioningInconsistencyError
from scratchoff.models.grid import Peer
from scratchoff.services.grid_generator import GridGenerator
from scratchoff.services.prize_drawer import PrizeDrawer

logger = logging.getLogger(__name__)


class CardProvisioner:
    """Draws prizes and card faces for new tokens and persists them."""

    def __init__(
        self,
        drawer: PrizeDrawer,
        generator: GridGenerator,
        decoy_amounts: Sequence[Decimal],
        decoy_assets: Sequence[str],
    ):
        self.drawer = drawer
        self.generator = generator
        self.decoy_amounts = list(decoy_amounts)
        self.decoy_assets = list(decoy_assets)

    def build_card(
        self,
        token_id: int,
        peer_pool: Sequence[Peer],
        recipient_ref: str,
        contract_ref: str,
    ) -> Card:
        """Draw a prize and face for one token without persisting it."""
        outcome = self.drawer.draw(peers_available=bool(peer_pool))
        generated = self.generator.generate(
            outcome,
            prize_asset=self.drawer.prize_asset,
            decoy_amounts=self.decoy_amounts,
            decoy_assets=self.decoy_assets,
            peer_pool=peer_pool,
        )
        return Card(
            token_id=token_id,
            contract_ref=contract_ref,
            grid=generated.cells,
            prize=outcome,
            minter_ref=recipient_ref,
        )

    async def provision(
        self,
        session: AsyncSession,
        token_ids: Iterable[int],
        peer_pool: Sequence[Peer],
        recipient_ref: str,
        contract_ref: str,
    ) -> list[Card]:
        """
        Ensure every token has a card and return them all.

        Returns:
            Existing and newly created cards, de-duplicated and sorted by
            token id.

        Raises:
            ConfigurationError: Token id out of range, or bad decoy pools
            ProvisioningInconsistencyError: Conflicting card vanished on re-read
        """
        ids = sorted(set(token_ids))
        if not ids:
            return []
        check_token_id(ids[0])
        check_token_id(ids[-1])

        # Convert to domain models right away; a rollback on conflict
        # expires every ORM instance in the session
        cards: dict[int, Card] = {
            db_card.token_id: card_to_model(db_card)
            for db_card in await find_cards_by_token_ids(session, contract_ref, ids)
        }
        existing = len(cards)

        for token_id in ids:
            if token_id in cards:
                continue

            card = self.build_card(token_id, peer_pool, recipient_ref, contract_ref)
            result = await create_card(session, card)
            if isinstance(result, CardCreated):
                cards[token_id] = card_to_model(result.card)
                continue

            logger.warning(
                "Token %d on %s was provisioned concurrently; using stored card",
                token_id,
                contract_ref,
            )
            stored = await get_card(session, contract_ref, token_id)
            if stored is None:
                logger.error("Token %d on %s conflicted but cannot be read", token_id, contract_ref)
                raise ProvisioningInconsistencyError(token_id, contract_ref)
            cards[token_id] = card_to_model(stored)

        logger.info(
            "Provisioned %d tokens for %s on %s (%d already existed)",
            len(ids),
            recipient_ref,
            contract_ref,
            existing,
        )
        return [cards[token_id] for token_id in ids]
