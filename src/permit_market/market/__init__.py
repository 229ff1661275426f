"""Marketplace contract: listing registry, authorization policies and settlement."""

from .engine import Marketplace, PermitResult, PermitStatus
from .events import Cancelled, Listed, Sold
from .interfaces import NonFungibleAsset, PaymentToken, PermitCapableToken
from .registry import EMPTY_LISTING, Listing, ListingRegistry
from .verifier import (
    AuthorizationPolicy,
    OpenPolicy,
    PurchasePermitPolicy,
    SignedOrderPolicy,
    WhitelistPolicy,
)

__all__ = [
    "Marketplace",
    "PermitResult",
    "PermitStatus",
    "Cancelled",
    "Listed",
    "Sold",
    "NonFungibleAsset",
    "PaymentToken",
    "PermitCapableToken",
    "EMPTY_LISTING",
    "Listing",
    "ListingRegistry",
    "AuthorizationPolicy",
    "OpenPolicy",
    "PurchasePermitPolicy",
    "SignedOrderPolicy",
    "WhitelistPolicy",
]
