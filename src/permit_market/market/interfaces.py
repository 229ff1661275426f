"""Collaborator surfaces the marketplace consumes.

Any contract object satisfying these protocols can be wired in; the
reference implementations live in ``permit_market.ledger.tokens``.
"""

from typing import Optional, Protocol

from ..ledger.chain import CallContext


class PaymentToken(Protocol):
    """Fungible payment asset. ``permit`` and ``nonces`` are optional."""

    address: str

    def balance_of(self, owner: str) -> int:
        ...

    def allowance(self, owner: str, spender: str) -> int:
        ...

    def transfer_from(self, ctx: CallContext, owner: str, to: str, amount: int) -> bool:
        ...


class PermitCapableToken(PaymentToken, Protocol):
    """Payment asset with EIP-2612 self-service approvals."""

    @property
    def domain_separator(self) -> bytes:
        ...

    def nonces(self, owner: str) -> int:
        ...

    def permit(
        self,
        ctx: CallContext,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: int,
        s: int,
    ) -> None:
        ...


class NonFungibleAsset(Protocol):
    """Unique asset traded on the marketplace."""

    address: str

    def owner_of(self, asset_id: int) -> str:
        ...

    def get_approved(self, asset_id: int) -> str:
        ...

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        ...

    def safe_transfer_from(
        self,
        ctx: CallContext,
        sender: str,
        to: str,
        asset_id: int,
        data: Optional[bytes] = b"",
    ) -> None:
        ...
