"""
Failure envelope for the prize and claim engine.

Every failure the engine raises is one of two things:
- KnownError: a hard failure the engine can explain (bad configuration,
  missing card, integrity violation, unavailable signer)
- RefusalError: the card is in a state where the request does not apply
  (already scratched, already claimed, not scratched yet)

Clients retrying idempotently may treat a refusal as "already done / not
yet". A known failure needs attention.

Both render to the same FailureResponse body at the HTTP boundary.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    CONFIGURATION_ERROR = "configuration_error"
    NOT_FOUND = "not_found"

    # Card lifecycle
    ALREADY_DONE = "already_done"
    STATE_CONFLICT = "state_conflict"

    # Collaborators
    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"

    # Storage or signing produced something that should be impossible
    INVARIANT_VIOLATION = "invariant_violation"


class OutcomeType(str, Enum):
    REFUSAL = "refusal"
    KNOWN_FAILURE = "known_failure"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(..., description="Classification of the failure")
    message: str = Field(..., description="What went wrong, safe to show to players")
    detail: str | None = Field(default=None, description="Technical detail for operators")
    suggestion: str | None = Field(default=None, description="What the client can do next")


class FailureResponse(BaseModel):
    """
    Error body for every engine failure.

    Clients inspect `outcome` to tell an idempotent no-op (refusal) from a
    hard failure.
    """

    outcome: OutcomeType
    failure: FailureDetail


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================


class ScratchOffError(Exception):
    """Common shape of engine failures. Raise a subclass, never this."""

    outcome: OutcomeType = OutcomeType.KNOWN_FAILURE

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 500,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> FailureResponse:
        return FailureResponse(
            outcome=self.outcome,
            failure=FailureDetail(
                kind=self.kind,
                message=self.message,
                detail=self.detail,
                suggestion=self.suggestion,
            ),
        )


class KnownError(ScratchOffError):
    """A hard failure the engine can explain."""

    outcome = OutcomeType.KNOWN_FAILURE


class RefusalError(ScratchOffError):
    """
    The card's state rules the request out.

    Never retried by the engine. Clients may treat ALREADY_DONE as a no-op.
    """

    outcome = OutcomeType.REFUSAL

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(kind, message, detail=detail, suggestion=suggestion, status_code=409)


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(KnownError):
    """Bad input pools or settings. A caller bug; never retried."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(FailureKind.CONFIGURATION_ERROR, message, detail=detail)


class GridConstraintError(ConfigurationError):
    """
    A generated card face would show an unintended winning row.

    Raised instead of emitting the grid, which only happens with
    degenerate decoy pools.
    """

    def __init__(self, row: int):
        self.row = row
        super().__init__(
            message="Decoy pools cannot produce a card face without a false win.",
            detail=f"Decoy row {row} repeats one value three times",
        )


# =============================================================================
# CARD LIFECYCLE
# =============================================================================


class CardNotFoundError(KnownError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(FailureKind.NOT_FOUND, f"Card {token_id} not found.", status_code=404)


class AlreadyRevealedError(RefusalError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(FailureKind.ALREADY_DONE, f"Card {token_id} has already been scratched.")


class AlreadyClaimedError(RefusalError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            FailureKind.ALREADY_DONE,
            f"Prize for card {token_id} has already been claimed.",
        )


class NotRevealedError(RefusalError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            FailureKind.STATE_CONFLICT,
            f"Card {token_id} must be scratched before claiming.",
            suggestion="Scratch the card first.",
        )


class ProvisioningInconsistencyError(KnownError):
    """
    A create conflicted but the conflicting card cannot be read back.

    Indicates a storage bug. Not retried.
    """

    def __init__(self, token_id: int, contract_ref: str):
        self.token_id = token_id
        self.contract_ref = contract_ref
        super().__init__(
            FailureKind.INVARIANT_VIOLATION,
            "Card storage returned inconsistent results.",
            detail=f"Duplicate token {token_id} on {contract_ref} not found on re-read",
        )


class GridInconsistencyError(KnownError):
    """A persisted winning outcome has no matching row on its card face."""

    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            FailureKind.INVARIANT_VIOLATION,
            f"Card {token_id} face does not match its prize.",
        )


# =============================================================================
# CLAIM SIGNING
# =============================================================================


class SignerUnavailableError(KnownError):
    def __init__(self, detail: str | None = None):
        super().__init__(
            FailureKind.SERVICE_UNAVAILABLE,
            "Claim signing is not configured.",
            detail=detail,
            status_code=503,
        )


class ClaimContractUnavailableError(KnownError):
    def __init__(self, detail: str | None = None):
        super().__init__(
            FailureKind.EXTERNAL_API_ERROR,
            "Scratch card contract could not be reached.",
            detail=detail,
            suggestion="Retry later.",
            status_code=502,
        )


class SignatureVerificationFailedError(KnownError):
    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(
            FailureKind.INVARIANT_VIOLATION,
            "Failed to generate a valid claim signature.",
            detail=f"Signature for token {token_id} did not verify",
        )
