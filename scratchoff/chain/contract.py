"""
Scratch card NFT contract client.

Read-only calls against the deployed contract. Calls are made once and
fail fast; retry policy belongs to the caller.
"""

import logging
from typing import Any

from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3

logger = logging.getLogger(__name__)

SCRATCH_CARD_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "tokenId", "type": "uint256"},
            {"name": "prizeAmount", "type": "uint256"},
            {"name": "tokenAddress", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "getClaimMessageHash",
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "pure",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "tokenId", "type": "uint256"},
            {"name": "prizeAmount", "type": "uint256"},
            {"name": "tokenAddress", "type": "address"},
            {"name": "deadline", "type": "uint256"},
            {"name": "signature", "type": "bytes"},
        ],
        "name": "verifyClaimSignature",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getPaymentTokenAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class ScratchCardContract:
    """Async client for the scratch card contract's view functions."""

    def __init__(self, rpc_url: str, address: str, w3: AsyncWeb3 | None = None):
        self.address = to_checksum_address(address)
        self._w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._contract = self._w3.eth.contract(address=self.address, abi=SCRATCH_CARD_ABI)

    async def get_claim_message_hash(
        self, token_id: int, amount_units: int, asset: str, deadline: int
    ) -> bytes:
        result = await self._contract.functions.getClaimMessageHash(
            token_id, amount_units, to_checksum_address(asset), deadline
        ).call()
        return bytes(result)

    async def verify_claim_signature(
        self, token_id: int, amount_units: int, asset: str, deadline: int, signature: bytes
    ) -> bool:
        result = await self._contract.functions.verifyClaimSignature(
            token_id, amount_units, to_checksum_address(asset), deadline, signature
        ).call()
        return bool(result)

    async def get_payment_token_address(self) -> str:
        """The ERC-20 token the contract pays prizes in."""
        result = await self._contract.functions.getPaymentTokenAddress().call()
        return to_checksum_address(result)

    async def check_payment_token(self, expected: str) -> bool:
        """
        Compare the contract's payment token with the configured one.

        A mismatch means signed amounts would be denominated in the wrong
        token. Logged, not raised; the caller decides whether to proceed.
        """
        try:
            actual = await self.get_payment_token_address()
        except Exception as e:
            logger.warning("Could not read payment token from %s: %s", self.address, e)
            return False

        if actual.lower() != expected.lower():
            logger.error(
                "Contract %s pays in %s but the configured payment token is %s",
                self.address,
                actual,
                expected,
            )
            return False
        return True
