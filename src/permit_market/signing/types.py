"""Signed payload types for the permit marketplace.

User-facing types for the authorizations the marketplace verifies.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from eth_utils import to_checksum_address

from .hashing import (
    ORDER_SCHEMA,
    PURCHASE_PERMIT_SCHEMA,
    TOKEN_PERMIT_SCHEMA,
    WHITELIST_SCHEMA,
)


@dataclass(frozen=True)
class Signature:
    """Decoded ECDSA signature."""

    r: int
    """First 32-byte scalar."""

    s: int
    """Second 32-byte scalar."""

    v: int
    """Recovery indicator, always 27 or 28 once decoded."""

    def to_bytes(self) -> bytes:
        """Pack as 65 bytes ``r‖s‖v``."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    @property
    def vrs(self) -> Tuple[int, int, int]:
        return self.v, self.r, self.s


@dataclass(frozen=True)
class PermitData:
    """Authority-issued permission to purchase one listed asset."""

    asset_id: int
    """Token ID of the listed asset."""

    deadline: int
    """Unix timestamp after which the permission is invalid."""

    schema = PURCHASE_PERMIT_SCHEMA

    def struct_values(self) -> Tuple[Any, ...]:
        return (self.asset_id, self.deadline)

    def message(self) -> Dict[str, Any]:
        return {"assetId": self.asset_id, "deadline": self.deadline}


@dataclass(frozen=True)
class Whitelist:
    """Authority-issued eligibility for one buyer."""

    buyer: str
    """Address allowed to call the gated purchase."""

    deadline: int
    """Unix timestamp after which the whitelist entry is invalid."""

    schema = WHITELIST_SCHEMA

    def struct_values(self) -> Tuple[Any, ...]:
        return (to_checksum_address(self.buyer), self.deadline)

    def message(self) -> Dict[str, Any]:
        return {"buyer": to_checksum_address(self.buyer), "deadline": self.deadline}


@dataclass(frozen=True)
class Order:
    """A listing supplied directly inside a signed order."""

    maker: str
    """Seller; must own the asset and have approved the marketplace."""

    asset_id: int
    """Token ID being sold."""

    price: int
    """Payment amount in the payment asset's smallest unit."""

    deadline: int
    """Unix timestamp after which the order cannot be filled."""

    payment_asset: str
    """Payment token address, or NATIVE_ASSET for native value."""

    nft_asset: str
    """Address of the unique-asset contract."""

    schema = ORDER_SCHEMA

    def struct_values(self) -> Tuple[Any, ...]:
        return (
            to_checksum_address(self.maker),
            self.asset_id,
            self.price,
            self.deadline,
            to_checksum_address(self.payment_asset),
            to_checksum_address(self.nft_asset),
        )

    def message(self) -> Dict[str, Any]:
        return dict(zip((n for n, _ in ORDER_SCHEMA.fields), self.struct_values()))


@dataclass(frozen=True)
class TokenPermitMessage:
    """EIP-2612 permit message as the payment token verifies it."""

    owner: str
    spender: str
    value: int
    nonce: int
    deadline: int

    schema = TOKEN_PERMIT_SCHEMA

    def struct_values(self) -> Tuple[Any, ...]:
        return (
            to_checksum_address(self.owner),
            to_checksum_address(self.spender),
            self.value,
            self.nonce,
            self.deadline,
        )

    def message(self) -> Dict[str, Any]:
        return dict(zip((n for n, _ in TOKEN_PERMIT_SCHEMA.fields), self.struct_values()))


@dataclass(frozen=True)
class TokenPermit:
    """The taker's EIP-2612 allowance signature carried into a settlement."""

    value: int
    """Allowance granted to the marketplace."""

    deadline: int
    """Permit deadline checked by the token."""

    signature: str
    """65-byte packed signature (hex string or bytes)."""


@dataclass(frozen=True)
class SignedPermitData(PermitData):
    """Purchase permission with the authority's signature."""

    signature: str = ""
    """EIP-712 signature (65 bytes packed hex string)."""


@dataclass(frozen=True)
class SignedWhitelist(Whitelist):
    """Whitelist entry with the authority's signature."""

    signature: str = ""
    """EIP-712 signature (65 bytes packed hex string)."""


@dataclass(frozen=True)
class SignedOrder(Order):
    """Order with the maker's or authority's signature."""

    signature: str = ""
    """EIP-712 signature (65 bytes packed hex string)."""
