from scratchoff.db.database import get_session, init_db
from scratchoff.db.operations import (
    CardCreated,
    CreateCardResult,
    DuplicateTokenId,
    card_to_model,
    create_card,
    find_cards_by_minter,
    find_cards_by_token_ids,
    get_card,
    update_card_claimed,
    update_card_revealed,
)

__all__ = [
    "CardCreated",
    "CreateCardResult",
    "DuplicateTokenId",
    "card_to_model",
    "create_card",
    "find_cards_by_minter",
    "find_cards_by_token_ids",
    "get_card",
    "get_session",
    "init_db",
    "update_card_claimed",
    "update_card_revealed",
]
