"""Tests for idempotent card provisioning."""

import asyncio
import random
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scratchoff.db.operations import DuplicateTokenId, create_card, find_cards_by_token_ids
from scratchoff.models.db import CardDB
from scratchoff.models.failure import ConfigurationError, ProvisioningInconsistencyError
from scratchoff.models.grid import Peer
from scratchoff.models.prize import Amount, PeerWin, PrizeOutcome, is_win
from scratchoff.services.card_provisioner import CardProvisioner
from scratchoff.services.grid_generator import GridGenerator
from scratchoff.services.prize_drawer import PrizeDrawer
from scratchoff.services.row_matcher import find_winning_row

USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
CONTRACT = "0xca6ffd32f5070c862865eb86a89265962b33c8fb"
RECIPIENT = "0x000000000000000000000000000000000000dead"
DECOY_AMOUNTS = [Decimal(a) for a in ("0.5", "0.75", "1", "1.5", "2", "5", "10")]


class FixedDrawer(PrizeDrawer):
    """Always draws the same outcome."""

    def __init__(self, outcome: PrizeOutcome):
        super().__init__(prize_asset=USDC)
        self.outcome = outcome

    def draw(self, peers_available: bool) -> PrizeOutcome:
        return self.outcome


def make_provisioner(seed: int, drawer: PrizeDrawer | None = None) -> CardProvisioner:
    return CardProvisioner(
        drawer=drawer or PrizeDrawer(USDC, rng=random.Random(seed)),
        generator=GridGenerator(rng=random.Random(seed)),
        decoy_amounts=DECOY_AMOUNTS,
        decoy_assets=[USDC],
    )


async def count_cards(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(CardDB))
    return int(result.scalar_one())


class TestProvision:
    async def test_returns_sorted_unique_cards(self, session: AsyncSession) -> None:
        cards = await make_provisioner(1).provision(session, [3, 1, 2, 1], [], RECIPIENT, CONTRACT)

        assert [c.token_id for c in cards] == [1, 2, 3]
        assert await count_cards(session) == 3
        for card in cards:
            assert card.contract_ref == CONTRACT
            assert card.minter_ref == RECIPIENT
            assert not card.revealed
            assert not card.claimed

    async def test_empty_request(self, session: AsyncSession) -> None:
        assert await make_provisioner(1).provision(session, [], [], RECIPIENT, CONTRACT) == []

    @pytest.mark.parametrize("bad_id", [-1, 2**63, 2**64])
    async def test_token_id_out_of_range(self, session: AsyncSession, bad_id: int) -> None:
        with pytest.raises(ConfigurationError):
            await make_provisioner(1).provision(session, [5, bad_id], [], RECIPIENT, CONTRACT)
        assert await count_cards(session) == 0

    async def test_faces_encode_prizes(self, session: AsyncSession, peers: list[Peer]) -> None:
        """Every provisioned face shows its prize iff the prize is a win."""
        cards = await make_provisioner(2).provision(
            session, range(40), peers, RECIPIENT, CONTRACT
        )

        for card in cards:
            row = find_winning_row(card.grid, card.prize)
            assert (row is not None) == is_win(card.prize)

    async def test_peer_win_needs_peer_pool_to_be_drawn(self, session: AsyncSession) -> None:
        """Without peers the drawer is told none are available."""
        cards = await make_provisioner(3).provision(
            session, range(60), [], RECIPIENT, CONTRACT
        )

        assert not any(isinstance(card.prize, PeerWin) for card in cards)

    async def test_fixed_prize(self, session: AsyncSession, peers: list[Peer]) -> None:
        provisioner = make_provisioner(4, drawer=FixedDrawer(PeerWin()))

        [card] = await provisioner.provision(session, [9], peers, RECIPIENT, CONTRACT)

        assert card.prize == PeerWin()
        assert find_winning_row(card.grid, PeerWin()) is not None


class TestIdempotence:
    async def test_second_call_returns_same_cards(self, session: AsyncSession) -> None:
        first = await make_provisioner(1).provision(session, [1, 2], [], RECIPIENT, CONTRACT)
        second = await make_provisioner(99).provision(session, [2, 1], [], RECIPIENT, CONTRACT)

        assert [(c.token_id, c.prize, c.grid) for c in first] == [
            (c.token_id, c.prize, c.grid) for c in second
        ]
        assert await count_cards(session) == 2

    async def test_existing_cards_are_not_redrawn(self, session: AsyncSession) -> None:
        [original] = await make_provisioner(1).provision(session, [1], [], RECIPIENT, CONTRACT)

        cards = await make_provisioner(2).provision(session, [1, 2], [], RECIPIENT, CONTRACT)

        assert cards[0].grid == original.grid
        assert cards[0].prize == original.prize
        assert [c.token_id for c in cards] == [1, 2]

    async def test_concurrent_insert_resolves_to_stored_card(
        self, file_engine, monkeypatch
    ) -> None:
        """A card created by another caller between lookup and insert wins the race."""
        session_factory = async_sessionmaker(
            file_engine, class_=AsyncSession, expire_on_commit=False
        )
        rival = make_provisioner(7, drawer=FixedDrawer(Amount(Decimal("5"), USDC)))
        rival_card = rival.build_card(5, [], "0x0000000000000000000000000000000000000001", CONTRACT)

        async def racing_find(session, contract_ref, token_ids):
            found = await find_cards_by_token_ids(session, contract_ref, token_ids)
            async with session_factory() as other:
                await create_card(other, rival_card)
            return found

        monkeypatch.setattr(
            "scratchoff.services.card_provisioner.find_cards_by_token_ids", racing_find
        )

        async with session_factory() as session:
            provisioner = make_provisioner(8, drawer=FixedDrawer(Amount(Decimal("0.5"), USDC)))
            [card] = await provisioner.provision(session, [5], [], RECIPIENT, CONTRACT)

            assert card.prize == rival_card.prize
            assert card.grid == rival_card.grid
            assert card.minter_ref == "0x0000000000000000000000000000000000000001"
            assert await count_cards(session) == 1

    async def test_concurrent_provisions_share_one_card(self, file_engine) -> None:
        """Two callers provisioning the same token end up with the same card."""
        session_factory = async_sessionmaker(
            file_engine, class_=AsyncSession, expire_on_commit=False
        )

        async def provision_with(outcome: PrizeOutcome):
            provisioner = make_provisioner(1, drawer=FixedDrawer(outcome))
            async with session_factory() as session:
                [card] = await provisioner.provision(session, [5], [], RECIPIENT, CONTRACT)
                return card

        first, second = await asyncio.gather(
            provision_with(Amount(Decimal("5"), USDC)),
            provision_with(Amount(Decimal("0.5"), USDC)),
        )

        assert first.prize == second.prize
        assert first.grid == second.grid
        async with session_factory() as session:
            assert await count_cards(session) == 1

    async def test_conflict_without_stored_card(self, session: AsyncSession, monkeypatch) -> None:
        """A conflict whose card cannot be read back is a storage fault."""

        async def conflicting_create(session, card):
            return DuplicateTokenId(token_id=card.token_id, contract_ref=card.contract_ref)

        monkeypatch.setattr(
            "scratchoff.services.card_provisioner.create_card", conflicting_create
        )

        with pytest.raises(ProvisioningInconsistencyError) as exc_info:
            await make_provisioner(1).provision(session, [6], [], RECIPIENT, CONTRACT)

        assert exc_info.value.token_id == 6


class TestBuildCard:
    def test_build_card_does_not_persist(self, peers: list[Peer]) -> None:
        provisioner = make_provisioner(5, drawer=FixedDrawer(Amount(Decimal("1.5"), USDC)))

        card = provisioner.build_card(3, peers, RECIPIENT, CONTRACT)

        assert card.token_id == 3
        assert card.prize == Amount(Decimal("1.5"), USDC)
        assert len(card.grid) == 12
        assert card.created_at is None
