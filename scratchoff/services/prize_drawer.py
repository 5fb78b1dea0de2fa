"""
Prize Drawer: weighted prize selection.

One uniform roll r in [0, 100) is matched against cumulative bands in
order; the first band whose upper bound exceeds r wins.

BANDS:
    r < 20                      NoWin        20%
    r < 35 and peers available  PeerWin      15%
    r < 60                      Amount 0.5   25%
    r < 75                      Amount 0.75  15%
    r < 85                      Amount 1     10%
    r < 92                      Amount 1.5    7%
    r < 97                      Amount 2      5%
    r < 98                      Amount 5      1%
    otherwise                   NoWin         2%

Without peers the PeerWin band still matches its rolls but pays NoWin,
so NoWin totals 37% (the first two bands plus the 2% tail).
"""

import random
from dataclasses import dataclass
from decimal import Decimal

from scratchoff.models.prize import Amount, NoWin, PeerWin, PrizeOutcome

ROLL_RANGE = 100


@dataclass(frozen=True)
class PrizeBand:
    """
    One cumulative band of the prize table.

    Attributes:
        upper: Exclusive upper bound of the roll
        amount: Payout for the band, None for NoWin/PeerWin bands
        requires_peers: Band only applies when peers are available (PeerWin)
    """

    upper: float
    amount: Decimal | None = None
    requires_peers: bool = False


PRIZE_BANDS: tuple[PrizeBand, ...] = (
    PrizeBand(upper=20),
    PrizeBand(upper=35, requires_peers=True),
    PrizeBand(upper=60, amount=Decimal("0.5")),
    PrizeBand(upper=75, amount=Decimal("0.75")),
    PrizeBand(upper=85, amount=Decimal("1")),
    PrizeBand(upper=92, amount=Decimal("1.5")),
    PrizeBand(upper=97, amount=Decimal("2")),
    PrizeBand(upper=98, amount=Decimal("5")),
)


class PrizeDrawer:
    """Draws prize outcomes for new cards."""

    def __init__(self, prize_asset: str, rng: random.Random | None = None):
        self.prize_asset = prize_asset
        self._rng = rng or random.Random()

    def draw(self, peers_available: bool) -> PrizeOutcome:
        """Draw one outcome from a fresh uniform roll."""
        return self.outcome_for_roll(self._rng.random() * ROLL_RANGE, peers_available)

    def outcome_for_roll(self, roll: float, peers_available: bool) -> PrizeOutcome:
        """Map a roll in [0, 100) to its band's outcome."""
        for band in PRIZE_BANDS:
            if roll >= band.upper:
                continue
            if band.requires_peers:
                return PeerWin() if peers_available else NoWin()
            if band.amount is None:
                return NoWin()
            return Amount(value=band.amount, asset=self.prize_asset)
        return NoWin()
