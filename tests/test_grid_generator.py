"""Tests for card face generation."""

import random
from decimal import Decimal

import pytest

from scratchoff.models.failure import ConfigurationError, GridConstraintError
from scratchoff.models.grid import Peer, rows
from scratchoff.models.prize import Amount, NoWin, PeerWin, PrizeOutcome
from scratchoff.services.grid_generator import GridGenerator
from scratchoff.services.prize_drawer import PrizeDrawer
from scratchoff.services.row_matcher import find_winning_row, is_triple, rewarded_peer

USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
DECOY_AMOUNTS = [Decimal(a) for a in ("0.5", "0.75", "1", "1.5", "2", "5", "10")]

OUTCOMES: list[PrizeOutcome] = [
    NoWin(),
    PeerWin(),
    Amount(Decimal("0.5"), USDC),
    Amount(Decimal("1.5"), USDC),
    Amount(Decimal("5"), USDC),
]


def _false_win_rows(cells, winning_row: int | None) -> list[int]:
    return [i for i, row in enumerate(rows(cells)) if i != winning_row and is_triple(row)]


class TestWinningRow:
    @pytest.mark.parametrize("outcome", OUTCOMES, ids=lambda o: o.kind)
    def test_face_matches_outcome(self, outcome: PrizeOutcome, peers: list[Peer]) -> None:
        """Over many seeds, exactly the generated row matches and no decoy row is a triple."""
        for seed in range(200):
            generator = GridGenerator(rng=random.Random(seed))
            generated = generator.generate(outcome, USDC, DECOY_AMOUNTS, [USDC], peers)

            assert len(generated.cells) == 12
            assert find_winning_row(generated.cells, outcome) == generated.winning_row
            assert _false_win_rows(generated.cells, generated.winning_row) == []

    def test_no_win_has_no_winning_row(self, peers: list[Peer]) -> None:
        generated = GridGenerator(rng=random.Random(3)).generate(
            NoWin(), USDC, DECOY_AMOUNTS, [USDC], peers
        )

        assert generated.winning_row is None
        assert not any(is_triple(row) for row in rows(generated.cells))

    def test_amount_row_shows_prize(self) -> None:
        outcome = Amount(Decimal("2"), USDC)
        generated = GridGenerator(rng=random.Random(5)).generate(
            outcome, USDC, DECOY_AMOUNTS, [USDC]
        )

        assert generated.winning_row is not None
        row = rows(generated.cells)[generated.winning_row]
        assert all(cell.amount == Decimal("2") and cell.asset == USDC for cell in row)

    def test_peer_row_shows_one_pool_peer(self, peers: list[Peer]) -> None:
        generated = GridGenerator(rng=random.Random(11)).generate(
            PeerWin(), USDC, DECOY_AMOUNTS, [USDC], peers
        )

        peer = rewarded_peer(generated.cells, PeerWin())
        assert peer in peers
        row = rows(generated.cells)[generated.winning_row]
        assert all(cell.peer == peer for cell in row)

    def test_winning_row_index_covers_all_rows(self) -> None:
        """The winning row is drawn uniformly, so every index shows up."""
        generator = GridGenerator(rng=random.Random(0))
        outcome = Amount(Decimal("1"), USDC)

        seen = {
            generator.generate(outcome, USDC, DECOY_AMOUNTS, [USDC]).winning_row
            for _ in range(200)
        }

        assert seen == {0, 1, 2, 3}

    def test_drawn_prize_is_recoverable(self) -> None:
        """A drawn Amount(2, ASSET_X) lands on a row the matcher finds."""
        asset = "ASSET_X"
        outcome = PrizeDrawer(asset).outcome_for_roll(95, peers_available=False)
        assert outcome == Amount(Decimal("2"), asset)

        generated = GridGenerator(rng=random.Random(9)).generate(
            outcome, asset, DECOY_AMOUNTS, [asset, USDC]
        )

        assert find_winning_row(generated.cells, outcome) == generated.winning_row


class TestDecoys:
    def test_no_peer_decoys_without_pool(self) -> None:
        generated = GridGenerator(rng=random.Random(1)).generate(
            NoWin(), USDC, DECOY_AMOUNTS, [USDC]
        )

        assert not any(cell.is_peer for cell in generated.cells)

    def test_peer_decoys_appear_with_pool(self, peers: list[Peer]) -> None:
        generator = GridGenerator(rng=random.Random(1), peer_decoy_probability=0.5)

        faces = [
            generator.generate(NoWin(), USDC, DECOY_AMOUNTS, [USDC], peers).cells
            for _ in range(20)
        ]

        assert any(cell.is_peer for cells in faces for cell in cells)

    def test_zero_peer_probability_shows_no_peer_decoys(self, peers: list[Peer]) -> None:
        generator = GridGenerator(rng=random.Random(1), peer_decoy_probability=0.0)

        for _ in range(20):
            generated = generator.generate(NoWin(), USDC, DECOY_AMOUNTS, [USDC], peers)
            assert not any(cell.is_peer for cell in generated.cells)

    def test_decoys_come_from_pools(self) -> None:
        assets = [USDC, "0x4200000000000000000000000000000000000006"]
        generated = GridGenerator(rng=random.Random(2)).generate(
            NoWin(), USDC, DECOY_AMOUNTS, assets
        )

        for cell in generated.cells:
            assert cell.amount in DECOY_AMOUNTS
            assert cell.asset in assets

    def test_two_value_pool_never_triples(self) -> None:
        """With two decoy values, redraws always find the other one."""
        generator = GridGenerator(rng=random.Random(4))

        for _ in range(100):
            generated = generator.generate(NoWin(), USDC, [Decimal("1")], ["A", "B"])
            assert _false_win_rows(generated.cells, None) == []


class TestDegeneratePools:
    def test_single_value_pool_raises(self) -> None:
        """One decoy value cannot fill a row without a false win."""
        generator = GridGenerator(rng=random.Random(0))

        with pytest.raises(GridConstraintError) as exc_info:
            generator.generate(NoWin(), USDC, [Decimal("1")], ["A"])

        assert exc_info.value.row == 0

    def test_constraint_error_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            GridGenerator(rng=random.Random(0), max_redraws=1).generate(
                NoWin(), USDC, [Decimal("1")], ["A"]
            )

    def test_single_value_pool_with_peers_succeeds(self, peers: list[Peer]) -> None:
        """Peer decoys give redraws something else to land on."""
        generator = GridGenerator(rng=random.Random(6))

        for _ in range(20):
            generated = generator.generate(NoWin(), USDC, [Decimal("1")], ["A"], peers)
            assert _false_win_rows(generated.cells, None) == []


class TestConfiguration:
    def test_empty_amount_pool(self) -> None:
        with pytest.raises(ConfigurationError):
            GridGenerator().generate(NoWin(), USDC, [], [USDC])

    def test_empty_asset_pool(self) -> None:
        with pytest.raises(ConfigurationError):
            GridGenerator().generate(NoWin(), USDC, DECOY_AMOUNTS, [])

    def test_peer_win_needs_peers(self) -> None:
        with pytest.raises(ConfigurationError):
            GridGenerator().generate(PeerWin(), USDC, DECOY_AMOUNTS, [USDC], [])

    def test_amount_asset_must_match_prize_asset(self) -> None:
        outcome = Amount(Decimal("1"), "0x4200000000000000000000000000000000000006")

        with pytest.raises(ConfigurationError):
            GridGenerator().generate(outcome, USDC, DECOY_AMOUNTS, [USDC])

    def test_asset_match_ignores_case(self) -> None:
        outcome = Amount(Decimal("1"), USDC.lower())

        generated = GridGenerator(rng=random.Random(1)).generate(
            outcome, USDC, DECOY_AMOUNTS, [USDC]
        )

        assert find_winning_row(generated.cells, outcome) == generated.winning_row

    @pytest.mark.parametrize("probability", [-0.1, 1.5])
    def test_peer_probability_out_of_range(self, probability: float) -> None:
        with pytest.raises(ConfigurationError):
            GridGenerator(peer_decoy_probability=probability)
