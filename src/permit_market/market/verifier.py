"""Authorization policies.

Each purchase flow picks one policy; all of them share the marketplace's
domain separator and its immutable authority. ``verify`` either returns
the identity the authorization binds to or raises ``AuthorizationError``.

Checks run in a fixed order: deadline, then signer, then caller.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from eth_utils import to_checksum_address

from ..config import OrderSigner
from ..errors import AuthorizationError, Reason
from ..ledger.chain import CallContext
from ..signing.hashing import (
    ORDER_SCHEMA,
    PURCHASE_PERMIT_SCHEMA,
    WHITELIST_SCHEMA,
    TypedSchema,
    hash_struct,
    typed_data_digest,
)
from ..signing.recovery import recover_typed_signer
from ..signing.types import Order, PermitData, Whitelist


class AuthorizationPolicy(ABC):
    """Base class for a signed-authorization check."""

    schema: Optional[TypedSchema] = None

    def __init__(self, separator: bytes, authority: str):
        self._separator = separator
        self._authority = to_checksum_address(authority)

    @property
    def authority(self) -> str:
        return self._authority

    @abstractmethod
    def verify(self, ctx: CallContext, payload: Any, signature: Any) -> str:
        """Check ``payload`` and ``signature`` for the call in ``ctx``."""

    def digest(self, payload: Any) -> bytes:
        """EIP-712 digest of ``payload`` under this marketplace's domain."""
        return typed_data_digest(
            self._separator, hash_struct(self.schema, payload.struct_values())
        )

    def _check_deadline(self, ctx: CallContext, deadline: int) -> None:
        if ctx.timestamp > deadline:
            raise AuthorizationError(
                Reason.EXPIRED,
                "Authorization deadline has passed",
                {"deadline": deadline, "now": ctx.timestamp},
            )

    def _recover(self, payload: Any, signature: Any) -> str:
        return recover_typed_signer(
            self._separator, self.schema, payload.struct_values(), signature
        )

    def _require_signer(self, recovered: str, expected: str) -> None:
        if recovered != to_checksum_address(expected):
            raise AuthorizationError(
                Reason.WRONG_SIGNER,
                "Signature is not from the expected signer",
                {"recovered": recovered, "expected": expected},
            )


class OpenPolicy(AuthorizationPolicy):
    """Direct listing purchase: any caller, no signature."""

    def verify(self, ctx: CallContext, payload: Any = None, signature: Any = None) -> str:
        return ctx.sender


class WhitelistPolicy(AuthorizationPolicy):
    """Authority-signed ``Whitelist``; the caller must be the named buyer."""

    schema = WHITELIST_SCHEMA

    def verify(self, ctx: CallContext, payload: Whitelist, signature: Any) -> str:
        self._check_deadline(ctx, payload.deadline)
        recovered = self._recover(payload, signature)
        self._require_signer(recovered, self._authority)
        if ctx.sender != to_checksum_address(payload.buyer):
            raise AuthorizationError(
                Reason.CALLER_MISMATCH,
                "Caller is not the whitelisted buyer",
                {"caller": ctx.sender, "buyer": payload.buyer},
            )
        return recovered


class PurchasePermitPolicy(AuthorizationPolicy):
    """Authority-signed ``PurchasePermit`` for one asset."""

    schema = PURCHASE_PERMIT_SCHEMA

    def verify(self, ctx: CallContext, payload: PermitData, signature: Any) -> str:
        self._check_deadline(ctx, payload.deadline)
        recovered = self._recover(payload, signature)
        self._require_signer(recovered, self._authority)
        return recovered


class SignedOrderPolicy(AuthorizationPolicy):
    """``Order`` signed by the authority or, in maker mode, by its maker."""

    schema = ORDER_SCHEMA

    def __init__(self, separator: bytes, authority: str, signer: OrderSigner):
        super().__init__(separator, authority)
        self._signer_mode = signer

    @property
    def signer_mode(self) -> OrderSigner:
        return self._signer_mode

    def verify(self, ctx: CallContext, payload: Order, signature: Any) -> str:
        self._check_deadline(ctx, payload.deadline)
        recovered = self._recover(payload, signature)
        if self._signer_mode is OrderSigner.MAKER:
            self._require_signer(recovered, payload.maker)
        else:
            self._require_signer(recovered, self._authority)
        return recovered
