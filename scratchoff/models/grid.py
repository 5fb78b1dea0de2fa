"""
Card face model.

A card face is 12 cells laid out row-major as 3 columns x 4 rows.
Each cell shows either a token amount or a peer's avatar.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from scratchoff.config import GRID_COLUMNS, GRID_ROWS, GRID_SIZE


@dataclass(frozen=True)
class Peer:
    """
    A friend who can receive a free card.

    Identity is `id` alone; display fields may change between draws.
    """

    id: int
    display_name: str = ""
    avatar_ref: str = ""
    wallet_ref: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "avatar_ref": self.avatar_ref,
            "wallet_ref": self.wallet_ref,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Peer":
        return cls(
            id=int(data["id"]),
            display_name=data.get("display_name", ""),
            avatar_ref=data.get("avatar_ref", ""),
            wallet_ref=data.get("wallet_ref", ""),
        )


# Match keys: ("peer", id) or ("amount", amount, lowercased asset)
MatchKey = tuple[Any, ...]


@dataclass(frozen=True)
class GridCell:
    """
    One position on the card face.

    Attributes:
        amount: Token amount shown (0 for peer cells)
        asset: Token contract address ("" for peer cells)
        peer: Peer shown in this cell, if it is a peer cell
    """

    amount: Decimal = Decimal(0)
    asset: str = ""
    peer: Peer | None = None

    @classmethod
    def for_amount(cls, amount: Decimal, asset: str) -> "GridCell":
        return cls(amount=amount, asset=asset)

    @classmethod
    def for_peer(cls, peer: Peer) -> "GridCell":
        return cls(peer=peer)

    @property
    def is_peer(self) -> bool:
        return self.peer is not None

    def match_key(self) -> MatchKey:
        """Key under which two cells count as showing the same value."""
        if self.peer is not None:
            return ("peer", self.peer.id)
        # normalize() so 1 and 1.0 compare equal as dict keys
        return ("amount", self.amount.normalize(), self.asset.lower())

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": str(self.amount),
            "asset": self.asset,
            "peer": self.peer.to_dict() if self.peer else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GridCell":
        peer = data.get("peer")
        return cls(
            amount=Decimal(str(data.get("amount", "0"))),
            asset=data.get("asset") or "",
            peer=Peer.from_dict(peer) if peer else None,
        )


Grid = list[GridCell]


def rows(grid: Grid) -> list[list[GridCell]]:
    """Split a card face into its 4 rows of 3 cells."""
    if len(grid) != GRID_SIZE:
        raise ValueError(f"Card face must have {GRID_SIZE} cells, got {len(grid)}")
    return [grid[r * GRID_COLUMNS : (r + 1) * GRID_COLUMNS] for r in range(GRID_ROWS)]


def grid_to_json(grid: Grid) -> list[dict[str, Any]]:
    return [cell.to_dict() for cell in grid]


def grid_from_json(data: list[dict[str, Any]]) -> Grid:
    return [GridCell.from_dict(item) for item in data]
