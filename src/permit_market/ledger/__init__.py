"""Ledger host and reference asset contracts."""

from .chain import CallContext, Contract, Ledger, LogEntry, Revert
from .tokens import (
    ERC721_RECEIVED,
    Approval,
    ApprovalForAll,
    AssetApproval,
    AssetTransfer,
    FungibleToken,
    PermitToken,
    Transfer,
    UniqueAsset,
)

__all__ = [
    "CallContext",
    "Contract",
    "Ledger",
    "LogEntry",
    "Revert",
    "ERC721_RECEIVED",
    "Approval",
    "ApprovalForAll",
    "AssetApproval",
    "AssetTransfer",
    "FungibleToken",
    "PermitToken",
    "Transfer",
    "UniqueAsset",
]
