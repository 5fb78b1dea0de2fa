from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Base mainnet USDC
USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "ScratchOff"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "postgresql+asyncpg://localhost:5432/scratchoff"

    rpc_url: str = "https://mainnet.base.org"
    scratch_card_contract_address: str = "0xca6ffd32f5070c862865eb86a89265962b33c8fb"
    payment_token_address: str = USDC_ADDRESS
    payment_token_decimals: int = 6

    # Claim signing key. Empty means claim issuance is unavailable.
    signer_private_key: str = ""
    # Address the contract trusts; a mismatch with the key is logged, not fatal
    signer_address: str = ""

    # "local" reimplements the contract hash, "remote" calls the contract
    # and falls back to local only after startup parity has been proven
    claim_hash_source: Literal["local", "remote"] = "local"

    claim_deadline_seconds: int = 24 * 3600
    batch_claim_deadline_seconds: int = 3600

    peer_decoy_probability: float = 0.3
    decoy_amounts: list[Decimal] = [
        Decimal("0.5"),
        Decimal("0.75"),
        Decimal("1"),
        Decimal("1.5"),
        Decimal("2"),
        Decimal("5"),
        Decimal("10"),
    ]
    decoy_assets: list[str] = [USDC_ADDRESS]

    max_batch_size: int = 50


settings = Settings()


# =============================================================================
# CARD FACE LIMITS
# =============================================================================

GRID_COLUMNS = 3
GRID_ROWS = 4
GRID_SIZE = GRID_COLUMNS * GRID_ROWS

# Redraw attempts before a decoy cell is accepted as drawn
MAX_DECOY_REDRAWS = 30
