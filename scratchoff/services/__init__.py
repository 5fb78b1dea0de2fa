"""
ScratchOff services.

Prize drawing, card face generation, row matching, provisioning and
claim authorization.
"""

from scratchoff.services.card_provisioner import CardProvisioner
from scratchoff.services.claim_authorizer import (
    BatchClaimResult,
    ClaimAuthorization,
    ClaimAuthorizer,
    FailedClaim,
    to_amount_units,
)
from scratchoff.services.claim_signing import (
    ClaimMessageHasher,
    ContractClaimHasher,
    LocalAccountSigner,
    LocalClaimHasher,
    Signer,
    build_signer,
    claim_message_hash,
    encode_claim_message,
)
from scratchoff.services.grid_generator import GeneratedGrid, GridGenerator
from scratchoff.services.prize_drawer import PRIZE_BANDS, PrizeBand, PrizeDrawer
from scratchoff.services.row_matcher import (
    find_winning_row,
    is_triple,
    rewarded_peer,
    row_matches,
)

__all__ = [
    "PRIZE_BANDS",
    "BatchClaimResult",
    "CardProvisioner",
    "ClaimAuthorization",
    "ClaimAuthorizer",
    "ClaimMessageHasher",
    "ContractClaimHasher",
    "FailedClaim",
    "GeneratedGrid",
    "GridGenerator",
    "LocalAccountSigner",
    "LocalClaimHasher",
    "PrizeBand",
    "PrizeDrawer",
    "Signer",
    "build_signer",
    "claim_message_hash",
    "encode_claim_message",
    "find_winning_row",
    "is_triple",
    "rewarded_peer",
    "row_matches",
    "to_amount_units",
]
