"""
Service construction for request handlers.

Each builder reads settings once. Tests replace them through
app.dependency_overrides.
"""

import logging
from functools import lru_cache

from scratchoff.chain.contract import ScratchCardContract
from scratchoff.config import settings
from scratchoff.models.failure import SignerUnavailableError
from scratchoff.services.card_provisioner import CardProvisioner
from scratchoff.services.claim_authorizer import ClaimAuthorizer
from scratchoff.services.claim_signing import (
    ClaimMessageHasher,
    ContractClaimHasher,
    LocalClaimHasher,
    Signer,
    build_signer,
)
from scratchoff.services.grid_generator import GridGenerator
from scratchoff.services.prize_drawer import PrizeDrawer

logger = logging.getLogger(__name__)


@lru_cache
def get_signer() -> Signer | None:
    """The configured claim signer, or None when no key is set."""
    try:
        return build_signer(settings)
    except SignerUnavailableError as e:
        logger.warning("Claim signing disabled: %s", e.detail)
        return None


@lru_cache
def get_scratch_card_contract() -> ScratchCardContract:
    return ScratchCardContract(settings.rpc_url, settings.scratch_card_contract_address)


@lru_cache
def get_claim_hasher() -> ClaimMessageHasher | None:
    """Hash source chosen by CLAIM_HASH_SOURCE. Shared so startup parity sticks."""
    signer = get_signer()
    if signer is None:
        return None

    local = LocalClaimHasher(settings.signer_address or signer.address)
    if settings.claim_hash_source == "local":
        return local

    return ContractClaimHasher(
        get_scratch_card_contract(), local, parity_asset=settings.payment_token_address
    )


def get_claim_authorizer() -> ClaimAuthorizer:
    return ClaimAuthorizer(
        signer=get_signer(),
        hasher=get_claim_hasher(),
        contract_ref=settings.scratch_card_contract_address,
        default_asset=settings.payment_token_address,
        asset_decimals=settings.payment_token_decimals,
        deadline_seconds=settings.claim_deadline_seconds,
    )


def get_card_provisioner() -> CardProvisioner:
    return CardProvisioner(
        drawer=PrizeDrawer(prize_asset=settings.payment_token_address),
        generator=GridGenerator(peer_decoy_probability=settings.peer_decoy_probability),
        decoy_amounts=settings.decoy_amounts,
        decoy_assets=settings.decoy_assets,
    )
