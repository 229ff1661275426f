"""Error taxonomy for the permit marketplace.

Every error carries a machine-readable :class:`Reason` so callers can
branch on the failure without parsing messages. Any error raised inside a
ledger call aborts that call with zero state change.
"""

from enum import Enum
from typing import Any, Dict, Optional


class Reason(str, Enum):
    """Structured failure reasons."""

    # Authorization
    EXPIRED = "Expired"
    WRONG_SIGNER = "WrongSigner"
    CALLER_MISMATCH = "CallerMismatch"
    INVALID_SIGNATURE = "InvalidSignature"

    # Encoding
    MALFORMED_SIGNATURE = "MalformedSignature"

    # Registry / state
    NOT_LISTED = "NotListed"
    NOT_MAKER = "NotMaker"
    NOT_OWNER_OR_NOT_APPROVED = "NotOwnerOrNotApproved"
    ORDER_FILLED = "OrderFilled"

    # Validation
    ASSET_MISMATCH = "AssetMismatch"
    INCORRECT_VALUE = "IncorrectValue"
    INVALID_PRICE = "InvalidPrice"
    ZERO_ADDRESS = "ZeroAddress"
    INVALID_CONFIG = "InvalidConfig"

    # External calls
    PERMIT_FAILED = "PermitFailed"
    TRANSFER_FAILED = "TransferFailed"


class MarketError(Exception):
    """Base exception for all marketplace errors."""

    def __init__(
        self,
        reason: Reason,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.reason = reason
        self.message = message or reason.value
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.reason.value}: {self.message} ({details_str})"
        return f"{self.reason.value}: {self.message}"


class ValidationError(MarketError):
    """Raised for bad configuration or malformed call input."""


class AuthorizationError(MarketError):
    """Raised when a signature, signer, caller or deadline check fails."""


class StateError(MarketError):
    """Raised when the registry or asset state does not allow the operation."""


class FormatError(MarketError):
    """Raised when a signature cannot be decoded."""


class ExternalCallError(MarketError):
    """Raised when a permit or transfer on a collaborator contract fails."""
