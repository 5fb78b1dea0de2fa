"""
Claim Signing: message hash and signature primitives.

The contract computes

    keccak256(abi.encode(uint256 tokenId, uint256 prizeAmount,
                         address tokenAddress, uint256 deadline))

and `verifyClaimSignature` recovers the EIP-191 personal-sign signer of
that 32-byte hash. Both the local reimplementation and the contract call
must produce identical hashes; a divergence yields signatures the
contract silently rejects.

HASH SOURCES:
- LocalClaimHasher: eth-abi encoding + keccak, no network
- ContractClaimHasher: the contract's own view functions, with a local
  fallback that is enabled only once check_parity() has proven both
  sources agree
"""

import logging
from typing import Protocol

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address

from scratchoff.chain.contract import ScratchCardContract
from scratchoff.config import Settings
from scratchoff.models.failure import ClaimContractUnavailableError, SignerUnavailableError

logger = logging.getLogger(__name__)

CLAIM_MESSAGE_TYPES = ["uint256", "uint256", "address", "uint256"]

# Fixed tuple hashed by both sources to prove they agree
PARITY_PROBE_TOKEN_ID = 1
PARITY_PROBE_AMOUNT_UNITS = 1_000_000
PARITY_PROBE_DEADLINE = 2**32


def encode_claim_message(token_id: int, amount_units: int, asset: str, deadline: int) -> bytes:
    """ABI-encode the claim fields exactly as the contract does."""
    return encode(
        CLAIM_MESSAGE_TYPES,
        [token_id, amount_units, to_checksum_address(asset), deadline],
    )


def claim_message_hash(token_id: int, amount_units: int, asset: str, deadline: int) -> bytes:
    """keccak256 of the encoded claim message (32 bytes)."""
    return keccak(encode_claim_message(token_id, amount_units, asset, deadline))


def recover_claim_signer(message_hash: bytes, signature: bytes) -> str:
    """Address that produced an EIP-191 signature over the raw hash."""
    return Account.recover_message(encode_defunct(primitive=message_hash), signature=signature)


# =============================================================================
# SIGNERS
# =============================================================================


class Signer(Protocol):
    """Signs claim message hashes with the server's key."""

    @property
    def address(self) -> str: ...

    def sign_hash(self, message_hash: bytes) -> bytes:
        """EIP-191 personal-sign the raw 32-byte hash."""
        ...


class LocalAccountSigner:
    """Signer backed by an in-memory private key."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return str(self._account.address)

    def sign_hash(self, message_hash: bytes) -> bytes:
        signed = self._account.sign_message(encode_defunct(primitive=message_hash))
        return bytes(signed.signature)


def build_signer(config: Settings) -> Signer:
    """
    Create the claim signer from settings.

    Raises:
        SignerUnavailableError: No key configured, or the key is malformed
    """
    if not config.signer_private_key:
        raise SignerUnavailableError(detail="SIGNER_PRIVATE_KEY is not set")

    try:
        signer = LocalAccountSigner(config.signer_private_key)
    except Exception as e:
        # eth-keys raises its own ValidationError alongside ValueError
        raise SignerUnavailableError(detail="SIGNER_PRIVATE_KEY is malformed") from e

    if config.signer_address and signer.address.lower() != config.signer_address.lower():
        logger.warning(
            "Signer key address %s does not match configured SIGNER_ADDRESS %s",
            signer.address,
            config.signer_address,
        )
    return signer


# =============================================================================
# HASH SOURCES
# =============================================================================


class ClaimMessageHasher(Protocol):
    """Computes and verifies claim message hashes."""

    async def compute_claim_message_hash(
        self, token_id: int, amount_units: int, asset: str, deadline: int
    ) -> bytes: ...

    async def verify_claim_signature(
        self, token_id: int, amount_units: int, asset: str, deadline: int, signature: bytes
    ) -> bool: ...


class LocalClaimHasher:
    """
    Reimplements the contract's hash and signature check locally.

    Verification recovers the signer and compares it to the address the
    contract is expected to trust.
    """

    def __init__(self, signer_address: str):
        self.signer_address = to_checksum_address(signer_address)

    async def compute_claim_message_hash(
        self, token_id: int, amount_units: int, asset: str, deadline: int
    ) -> bytes:
        return claim_message_hash(token_id, amount_units, asset, deadline)

    async def verify_claim_signature(
        self, token_id: int, amount_units: int, asset: str, deadline: int, signature: bytes
    ) -> bool:
        message_hash = claim_message_hash(token_id, amount_units, asset, deadline)
        try:
            recovered = recover_claim_signer(message_hash, signature)
        except Exception as e:
            # Malformed signatures surface as assorted eth-keys/ValueError types
            logger.warning("Could not recover claim signer for token %d: %s", token_id, e)
            return False
        return bool(recovered.lower() == self.signer_address.lower())


class ContractClaimHasher:
    """
    Uses the contract's view functions as the source of truth.

    When the contract is unreachable the local hasher is used instead,
    but only if check_parity() has succeeded in this process.
    """

    def __init__(self, contract: ScratchCardContract, local: LocalClaimHasher, parity_asset: str):
        self._contract = contract
        self._local = local
        self._parity_asset = parity_asset
        self.parity_verified = False

    async def check_parity(self) -> bool:
        """
        Hash a fixed tuple with both sources and compare.

        Run once at startup. A mismatch keeps the local fallback disabled.
        """
        args = (
            PARITY_PROBE_TOKEN_ID,
            PARITY_PROBE_AMOUNT_UNITS,
            self._parity_asset,
            PARITY_PROBE_DEADLINE,
        )
        try:
            remote = await self._contract.get_claim_message_hash(*args)
        except Exception as e:
            logger.error("Claim hash parity check could not reach contract: %s", e)
            self.parity_verified = False
            return False

        local = claim_message_hash(*args)
        self.parity_verified = remote == local
        if self.parity_verified:
            logger.info("Claim hash parity verified against %s", self._contract.address)
        else:
            logger.error(
                "Claim hash parity FAILED: contract=0x%s local=0x%s",
                remote.hex(),
                local.hex(),
            )
        return self.parity_verified

    async def compute_claim_message_hash(
        self, token_id: int, amount_units: int, asset: str, deadline: int
    ) -> bytes:
        try:
            return await self._contract.get_claim_message_hash(
                token_id, amount_units, asset, deadline
            )
        except Exception as e:
            if not self.parity_verified:
                raise ClaimContractUnavailableError(detail=str(e)) from e
            logger.warning("Contract hash call failed, using local hash: %s", e)
            return claim_message_hash(token_id, amount_units, asset, deadline)

    async def verify_claim_signature(
        self, token_id: int, amount_units: int, asset: str, deadline: int, signature: bytes
    ) -> bool:
        try:
            return await self._contract.verify_claim_signature(
                token_id, amount_units, asset, deadline, signature
            )
        except Exception as e:
            if not self.parity_verified:
                raise ClaimContractUnavailableError(detail=str(e)) from e
            logger.warning("Contract verify call failed, verifying locally: %s", e)
            return await self._local.verify_claim_signature(
                token_id, amount_units, asset, deadline, signature
            )
