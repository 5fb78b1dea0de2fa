"""
Claim Authorizer: signs payout authorizations for scratched cards.

An authorization lets the scratch card contract release a specific
amount of a specific token for a specific card before a deadline.

PROTOCOL:
1. amount_units = floor(prize * 10**decimals); 0 for NoWin and PeerWin
2. deadline = now + offset
3. hash = contract claim message hash of (token_id, amount_units, asset, deadline)
4. signature = EIP-191 signature of the raw hash
5. the signature is verified before it is returned

INVARIANTS:
- Issuing an authorization never marks a card claimed; issuance is
  retryable, claiming is not
- An unverifiable signature is never returned
- In a batch, one token's failure never affects the others
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from scratchoff.db.operations import card_to_model, get_card
from scratchoff.models.card import check_token_id
from scratchoff.models.failure import (
    AlreadyClaimedError,
    CardNotFoundError,
    ConfigurationError,
    GridInconsistencyError,
    NotRevealedError,
    ScratchOffError,
    SignatureVerificationFailedError,
    SignerUnavailableError,
)
from scratchoff.models.prize import Amount, PrizeOutcome, is_win
from scratchoff.services.claim_signing import ClaimMessageHasher, LocalClaimHasher, Signer
from scratchoff.services.row_matcher import find_winning_row

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECONDS = 24 * 3600
UNEXPECTED_FAILURE = "Claim could not be authorized due to an internal error."


@dataclass(frozen=True)
class ClaimAuthorization:
    """
    A signed, time-bounded payout authorization.

    Attributes:
        token_id: Card the payout is for
        amount_units: Payout in the asset's smallest unit
        asset_address: ERC-20 contract of the payout
        deadline: Unix seconds after which the contract rejects the claim
        signature: 65-byte EIP-191 signature
    """

    token_id: int
    amount_units: int
    asset_address: str
    deadline: int
    signature: bytes

    @property
    def signature_hex(self) -> str:
        return "0x" + self.signature.hex()


@dataclass(frozen=True)
class FailedClaim:
    token_id: int
    reason: str


@dataclass
class BatchClaimResult:
    """Outcome of authorizing several cards at once."""

    successful: list[int] = field(default_factory=list)
    failed: list[FailedClaim] = field(default_factory=list)
    authorizations: list[ClaimAuthorization] = field(default_factory=list)

    @property
    def total_amount_units(self) -> int:
        return sum(a.amount_units for a in self.authorizations)


def to_amount_units(outcome: PrizeOutcome, decimals: int) -> int:
    """Prize in the asset's smallest unit, floor-rounded. Non-amount prizes pay 0."""
    if not isinstance(outcome, Amount):
        return 0
    scaled = outcome.value * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


class ClaimAuthorizer:
    """Issues claim authorizations for cards in one NFT contract."""

    def __init__(
        self,
        signer: Signer | None,
        contract_ref: str,
        default_asset: str,
        asset_decimals: int,
        hasher: ClaimMessageHasher | None = None,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._signer = signer
        if hasher is None and signer is not None:
            hasher = LocalClaimHasher(signer.address)
        self._hasher = hasher
        self.contract_ref = contract_ref
        self.default_asset = default_asset
        self.asset_decimals = asset_decimals
        self.deadline_seconds = deadline_seconds
        self._clock = clock

    async def authorize(
        self,
        session: AsyncSession,
        token_id: int,
        deadline_offset_seconds: int | None = None,
    ) -> ClaimAuthorization:
        """
        Authorize the payout of a scratched, unclaimed card.

        Raises:
            ConfigurationError: Token id outside the storable range
            CardNotFoundError: No such card
            AlreadyClaimedError: Prize already claimed
            NotRevealedError: Card not scratched yet
            GridInconsistencyError: Winning prize without a matching row
            SignerUnavailableError: No signing key configured
            SignatureVerificationFailedError: Produced signature did not verify
        """
        check_token_id(token_id)
        db_card = await get_card(session, self.contract_ref, token_id)
        if db_card is None:
            raise CardNotFoundError(token_id)
        card = card_to_model(db_card)

        if card.claimed:
            raise AlreadyClaimedError(token_id)
        if not card.revealed:
            raise NotRevealedError(token_id)
        if is_win(card.prize) and find_winning_row(card.grid, card.prize) is None:
            logger.error("Card %d face has no row matching its prize %s", token_id, card.prize)
            raise GridInconsistencyError(token_id)

        return await self.sign(token_id, card.prize, deadline_offset_seconds)

    async def sign(
        self,
        token_id: int,
        outcome: PrizeOutcome,
        deadline_offset_seconds: int | None = None,
    ) -> ClaimAuthorization:
        """Build, sign and verify the authorization for a prize."""
        if self._signer is None or self._hasher is None:
            raise SignerUnavailableError(detail="No claim signer configured")

        offset = deadline_offset_seconds
        if offset is None:
            offset = self.deadline_seconds
        if offset <= 0:
            raise ConfigurationError(
                "Claim deadline must be in the future.",
                detail=f"offset={offset}",
            )

        asset = outcome.asset if isinstance(outcome, Amount) else self.default_asset
        amount_units = to_amount_units(outcome, self.asset_decimals)
        deadline = int(self._clock()) + offset

        message_hash = await self._hasher.compute_claim_message_hash(
            token_id, amount_units, asset, deadline
        )
        signature = self._signer.sign_hash(message_hash)

        verified = await self._hasher.verify_claim_signature(
            token_id, amount_units, asset, deadline, signature
        )
        if not verified:
            logger.error(
                "Claim signature for token %d failed verification (signer %s)",
                token_id,
                self._signer.address,
            )
            raise SignatureVerificationFailedError(token_id)

        logger.info(
            "Issued claim authorization for token %d: %d units of %s, deadline %d",
            token_id,
            amount_units,
            asset,
            deadline,
        )
        return ClaimAuthorization(
            token_id=token_id,
            amount_units=amount_units,
            asset_address=asset,
            deadline=deadline,
            signature=signature,
        )

    async def authorize_batch(
        self,
        session: AsyncSession,
        token_ids: Iterable[int],
        deadline_offset_seconds: int | None = None,
    ) -> BatchClaimResult:
        """
        Authorize several cards, each independently.

        Card-level failures are collected per token. A missing signer fails
        the whole call since no token could succeed.

        Authorizing only reads cards. An unexpected error on one token rolls
        back the session's transaction, which discards nothing but that
        token's reads, and the next token starts a fresh one.
        """
        if self._signer is None:
            raise SignerUnavailableError(detail="No claim signer configured")

        result = BatchClaimResult()
        for token_id in dict.fromkeys(token_ids):
            try:
                authorization = await self.authorize(session, token_id, deadline_offset_seconds)
            except ScratchOffError as e:
                logger.warning("Claim for token %d not authorized: %s", token_id, e.message)
                result.failed.append(FailedClaim(token_id=token_id, reason=e.message))
                continue
            except Exception:
                logger.exception("Unexpected error authorizing claim for token %d", token_id)
                await session.rollback()
                result.failed.append(FailedClaim(token_id=token_id, reason=UNEXPECTED_FAILURE))
                continue

            result.successful.append(token_id)
            result.authorizations.append(authorization)

        logger.info(
            "Batch claim: %d authorized, %d failed",
            len(result.successful),
            len(result.failed),
        )
        return result
