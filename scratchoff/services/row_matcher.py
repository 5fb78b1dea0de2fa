"""
Row Matcher: recovers the winning row from a persisted card face.

Used when a card is scratched (to expose the winning line and the rewarded
peer) and before a claim is signed (to confirm the face agrees with the
stored prize). It never re-derives the prize from the face.
"""

from collections import Counter

from scratchoff.models.grid import Grid, GridCell, Peer, rows
from scratchoff.models.prize import Amount, PeerWin, PrizeOutcome


def _matches_amount(row: list[GridCell], outcome: Amount) -> bool:
    asset = outcome.asset.lower()
    return all(
        not cell.is_peer and cell.amount == outcome.value and cell.asset.lower() == asset
        for cell in row
    )


def _matches_peer(row: list[GridCell]) -> bool:
    first = row[0].peer
    if first is None:
        return False
    return all(cell.peer is not None and cell.peer.id == first.id for cell in row)


def row_matches(row: list[GridCell], outcome: PrizeOutcome) -> bool:
    """True if every cell in the row shows the given winning outcome."""
    if isinstance(outcome, Amount):
        return _matches_amount(row, outcome)
    if isinstance(outcome, PeerWin):
        return _matches_peer(row)
    return False


def find_winning_row(grid: Grid, outcome: PrizeOutcome) -> int | None:
    """
    Index of the first row showing the outcome, or None.

    NoWin never has a winning row.
    """
    for index, row in enumerate(rows(grid)):
        if row_matches(row, outcome):
            return index
    return None


def is_triple(row: list[GridCell]) -> bool:
    """True if all cells of the row share one match key."""
    counts = Counter(cell.match_key() for cell in row)
    return max(counts.values()) == len(row)


def rewarded_peer(grid: Grid, outcome: PrizeOutcome) -> Peer | None:
    """The peer shown on the winning row of a PeerWin card."""
    if not isinstance(outcome, PeerWin):
        return None
    index = find_winning_row(grid, outcome)
    if index is None:
        return None
    return rows(grid)[index][0].peer
