"""
Prize outcomes.

A card's prize is exactly one of NoWin, PeerWin or Amount. Outcomes are
persisted as a kind tag plus optional amount/asset columns.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

PrizeKind = Literal["none", "peer", "amount"]


@dataclass(frozen=True)
class NoWin:
    """The card wins nothing."""

    kind: PrizeKind = "none"


@dataclass(frozen=True)
class PeerWin:
    """The card wins a free card for a designated peer."""

    kind: PrizeKind = "peer"


@dataclass(frozen=True)
class Amount:
    """
    The card wins a token payout.

    Attributes:
        value: Payout in whole token units (e.g., Decimal("1.5") USDC)
        asset: ERC-20 contract address of the payout token
    """

    value: Decimal
    asset: str
    kind: PrizeKind = "amount"

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError(f"Prize amount must be positive, got {self.value}")


PrizeOutcome = NoWin | PeerWin | Amount


def is_win(outcome: PrizeOutcome) -> bool:
    """True for PeerWin and Amount outcomes."""
    return not isinstance(outcome, NoWin)


def outcome_to_columns(outcome: PrizeOutcome) -> tuple[PrizeKind, str | None, str | None]:
    """Flatten an outcome into (kind, amount, asset) storage columns."""
    if isinstance(outcome, Amount):
        return outcome.kind, str(outcome.value), outcome.asset
    return outcome.kind, None, None


def outcome_from_columns(kind: str, amount: str | None, asset: str | None) -> PrizeOutcome:
    """Rebuild an outcome from storage columns."""
    if kind == "amount":
        if amount is None or asset is None:
            raise ValueError("Amount outcome requires amount and asset")
        return Amount(value=Decimal(amount), asset=asset)
    if kind == "peer":
        return PeerWin()
    if kind == "none":
        return NoWin()
    raise ValueError(f"Unknown prize kind: {kind}")
