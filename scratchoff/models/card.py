from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from scratchoff.models.failure import ConfigurationError
from scratchoff.models.grid import Grid
from scratchoff.models.prize import PrizeOutcome

# Largest token id the cards table can hold (signed 64-bit column)
MAX_TOKEN_ID = 2**63 - 1

CardState = Literal["unscratched", "scratched", "claimed"]


def check_token_id(token_id: int) -> None:
    """Raise ConfigurationError unless token_id fits the cards table."""
    if not 0 <= token_id <= MAX_TOKEN_ID:
        raise ConfigurationError(
            f"Token id {token_id} is out of range.",
            detail=f"Token ids must be between 0 and {MAX_TOKEN_ID}",
        )


@dataclass
class Card:
    """
    A scratch card backed by an NFT token.

    The face and prize are fixed at creation. `revealed` and `claimed`
    each flip exactly once, claimed only after revealed.

    Attributes:
        token_id: NFT token id, unique per contract
        contract_ref: NFT contract address (lowercased)
        grid: The 12-cell card face
        prize: The prize the face encodes
        minter_ref: Wallet the card was provisioned for
        revealed_by_ref: Wallet that scratched the card
    """

    token_id: int
    contract_ref: str
    grid: Grid
    prize: PrizeOutcome
    minter_ref: str
    revealed: bool = False
    claimed: bool = False
    revealed_by_ref: str | None = None
    created_at: datetime | None = None
    revealed_at: datetime | None = None
    claimed_at: datetime | None = None

    @property
    def state(self) -> CardState:
        if self.claimed:
            return "claimed"
        if self.revealed:
            return "scratched"
        return "unscratched"
