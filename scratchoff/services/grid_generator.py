"""
Grid Generator: builds the card face that encodes a prize.

A winning card gets exactly one row of three identical cells showing the
prize. Every other cell is a decoy: a random amount/asset pair or, when a
peer pool is available, a random peer's avatar.

INVARIANTS:
- A winning face has exactly one matching row, at a uniformly random index
- A NoWin face has no row of three identical cells
- No decoy row shows one value three times

ENFORCEMENT:
- A decoy that would be the third copy of a value in its row is redrawn,
  up to MAX_DECOY_REDRAWS times, then accepted as drawn
- Every finished face is re-checked; a decoy triple that slipped through
  (only possible with degenerate pools) raises GridConstraintError
  rather than shipping a face with a false win
"""

import logging
import random
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from scratchoff.config import GRID_COLUMNS, GRID_ROWS, GRID_SIZE, MAX_DECOY_REDRAWS
from scratchoff.models.failure import ConfigurationError, GridConstraintError
from scratchoff.models.grid import Grid, GridCell, Peer, rows
from scratchoff.models.prize import Amount, PeerWin, PrizeOutcome
from scratchoff.services.row_matcher import is_triple

logger = logging.getLogger(__name__)

DEFAULT_PEER_DECOY_PROBABILITY = 0.3

# A value may appear at most this many times in one decoy row
MAX_REPEATS_PER_ROW = GRID_COLUMNS - 1


@dataclass(frozen=True)
class GeneratedGrid:
    """
    A finished card face.

    Attributes:
        cells: The 12 cells, row-major
        winning_row: Row holding the prize, None for NoWin
    """

    cells: Grid
    winning_row: int | None


class GridGenerator:
    """Builds card faces from a prize outcome and decoy pools."""

    def __init__(
        self,
        rng: random.Random | None = None,
        peer_decoy_probability: float = DEFAULT_PEER_DECOY_PROBABILITY,
        max_redraws: int = MAX_DECOY_REDRAWS,
    ):
        if not 0.0 <= peer_decoy_probability <= 1.0:
            raise ConfigurationError(
                "Peer decoy probability must be between 0 and 1.",
                detail=f"got {peer_decoy_probability}",
            )
        self._rng = rng or random.Random()
        self.peer_decoy_probability = peer_decoy_probability
        self.max_redraws = max_redraws

    def generate(
        self,
        outcome: PrizeOutcome,
        prize_asset: str,
        decoy_amounts: Sequence[Decimal],
        decoy_assets: Sequence[str],
        peer_pool: Sequence[Peer] = (),
    ) -> GeneratedGrid:
        """
        Build a card face for the outcome.

        Raises:
            ConfigurationError: Empty decoy pools, PeerWin without peers,
                or an Amount outcome for a different asset than prize_asset
            GridConstraintError: The decoy pools could not avoid a false win
        """
        if not decoy_amounts:
            raise ConfigurationError("Decoy amount pool must not be empty.")
        if not decoy_assets:
            raise ConfigurationError("Decoy asset pool must not be empty.")
        if isinstance(outcome, PeerWin) and not peer_pool:
            raise ConfigurationError("A peer win needs at least one peer.")
        if isinstance(outcome, Amount) and outcome.asset.lower() != prize_asset.lower():
            raise ConfigurationError(
                "Prize asset does not match the drawn prize.",
                detail=f"{outcome.asset} != {prize_asset}",
            )

        amounts = [Decimal(str(a)) for a in decoy_amounts]
        cells: list[GridCell | None] = [None] * GRID_SIZE

        winning_row: int | None = None
        winning_cell = self._winning_cell(outcome, prize_asset, peer_pool)
        if winning_cell is not None:
            winning_row = self._rng.randrange(GRID_ROWS)
            start = winning_row * GRID_COLUMNS
            for i in range(start, start + GRID_COLUMNS):
                cells[i] = winning_cell

        for row in range(GRID_ROWS):
            if row == winning_row:
                continue
            start = row * GRID_COLUMNS
            cells[start : start + GRID_COLUMNS] = self._decoy_row(amounts, decoy_assets, peer_pool)

        grid: Grid = [cell for cell in cells if cell is not None]
        self._check_no_false_win(grid, winning_row)
        return GeneratedGrid(cells=grid, winning_row=winning_row)

    def _winning_cell(
        self, outcome: PrizeOutcome, prize_asset: str, peer_pool: Sequence[Peer]
    ) -> GridCell | None:
        if isinstance(outcome, Amount):
            return GridCell.for_amount(outcome.value, prize_asset)
        if isinstance(outcome, PeerWin):
            return GridCell.for_peer(self._rng.choice(peer_pool))
        return None

    def _decoy_row(
        self,
        amounts: Sequence[Decimal],
        assets: Sequence[str],
        peer_pool: Sequence[Peer],
    ) -> list[GridCell]:
        counts: Counter[tuple[object, ...]] = Counter()
        row: list[GridCell] = []

        for _ in range(GRID_COLUMNS):
            cell = self._decoy_cell(amounts, assets, peer_pool)
            attempts = 1
            while counts[cell.match_key()] >= MAX_REPEATS_PER_ROW and attempts < self.max_redraws:
                cell = self._decoy_cell(amounts, assets, peer_pool)
                attempts += 1

            if counts[cell.match_key()] >= MAX_REPEATS_PER_ROW:
                logger.warning(
                    "Decoy redraw cap (%d) reached; accepting repeated value %s",
                    self.max_redraws,
                    cell.match_key(),
                )

            counts[cell.match_key()] += 1
            row.append(cell)

        return row

    def _decoy_cell(
        self,
        amounts: Sequence[Decimal],
        assets: Sequence[str],
        peer_pool: Sequence[Peer],
    ) -> GridCell:
        if peer_pool and self._rng.random() < self.peer_decoy_probability:
            return GridCell.for_peer(self._rng.choice(peer_pool))
        return GridCell.for_amount(self._rng.choice(amounts), self._rng.choice(assets))

    def _check_no_false_win(self, grid: Grid, winning_row: int | None) -> None:
        for index, row in enumerate(rows(grid)):
            if index != winning_row and is_triple(row):
                logger.error("Decoy row %d forms a false win; pools are degenerate", index)
                raise GridConstraintError(row=index)
