from scratchoff.chain.contract import SCRATCH_CARD_ABI, ScratchCardContract

__all__ = ["SCRATCH_CARD_ABI", "ScratchCardContract"]
