from scratchoff.models.card import Card
from scratchoff.models.failure import (
    AlreadyClaimedError,
    AlreadyRevealedError,
    CardNotFoundError,
    ClaimContractUnavailableError,
    ConfigurationError,
    FailureDetail,
    FailureKind,
    FailureResponse,
    GridConstraintError,
    GridInconsistencyError,
    KnownError,
    NotRevealedError,
    OutcomeType,
    ProvisioningInconsistencyError,
    RefusalError,
    ScratchOffError,
    SignatureVerificationFailedError,
    SignerUnavailableError,
)
from scratchoff.models.grid import Grid, GridCell, Peer, rows
from scratchoff.models.prize import Amount, NoWin, PeerWin, PrizeOutcome, is_win

__all__ = [
    "AlreadyClaimedError",
    "AlreadyRevealedError",
    "Amount",
    "Card",
    "CardNotFoundError",
    "ClaimContractUnavailableError",
    "ConfigurationError",
    "FailureDetail",
    "FailureKind",
    "FailureResponse",
    "Grid",
    "GridCell",
    "GridConstraintError",
    "GridInconsistencyError",
    "KnownError",
    "NoWin",
    "NotRevealedError",
    "OutcomeType",
    "Peer",
    "PeerWin",
    "PrizeOutcome",
    "ProvisioningInconsistencyError",
    "RefusalError",
    "ScratchOffError",
    "SignatureVerificationFailedError",
    "SignerUnavailableError",
    "is_win",
    "rows",
]
