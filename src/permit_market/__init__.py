"""Permit Marketplace.

Settlement core of a peer-to-peer NFT marketplace: EIP-712 authorizations
verified at first use, EIP-2612 permits instead of a separate approval
step, and an all-or-nothing swap of one asset for one payment.
"""

from .config import (
    MarketConfig,
    OrderSigner,
    ResolvedMarketConfig,
    TakerPolicy,
    market_config_from_env,
    resolve_market_config,
)
from .errors import (
    AuthorizationError,
    ExternalCallError,
    FormatError,
    MarketError,
    Reason,
    StateError,
    ValidationError,
)
from .ledger import Ledger, PermitToken, FungibleToken, UniqueAsset, Revert
from .market import Marketplace, Listing, Listed, Sold, Cancelled
from .signing import (
    NATIVE_ASSET,
    ZERO_ADDRESS,
    TokenPermit,
    create_order,
    create_purchase_permit,
    create_whitelist,
    sign_order,
    sign_purchase_permit,
    sign_token_permit,
    sign_whitelist,
)

__all__ = [
    # Config
    "MarketConfig",
    "OrderSigner",
    "ResolvedMarketConfig",
    "TakerPolicy",
    "market_config_from_env",
    "resolve_market_config",
    # Errors
    "AuthorizationError",
    "ExternalCallError",
    "FormatError",
    "MarketError",
    "Reason",
    "StateError",
    "ValidationError",
    # Ledger
    "Ledger",
    "PermitToken",
    "FungibleToken",
    "UniqueAsset",
    "Revert",
    # Market
    "Marketplace",
    "Listing",
    "Listed",
    "Sold",
    "Cancelled",
    # Signing
    "NATIVE_ASSET",
    "ZERO_ADDRESS",
    "TokenPermit",
    "create_order",
    "create_purchase_permit",
    "create_whitelist",
    "sign_order",
    "sign_purchase_permit",
    "sign_token_permit",
    "sign_whitelist",
]
