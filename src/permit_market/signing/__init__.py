"""Permit Marketplace Signing Module.

This module provides the signature layer shared by the marketplace, its
payment token and off-ledger clients.

Key components:
- Signature codec (65-byte packed ``r‖s‖v``)
- EIP-712 typed-data hashing (domain separator, type hashes, digests)
- Signer recovery with low-s enforcement
- Authorization creation and signing for every marketplace schema

Example usage:
    ```python
    from permit_market.signing import (
        create_whitelist,
        sign_whitelist,
        sign_token_permit,
    )

    # Authority approves a buyer for one hour
    whitelist = create_whitelist(buyer="0x...", deadline_seconds=3600)
    signed = sign_whitelist(
        private_key="0x...",
        market_address="0x...",
        whitelist=whitelist,
        chain_id=1,
    )

    # Buyer lets the marketplace pull the price without a prior approve()
    token_permit = sign_token_permit(
        private_key="0x...",
        token_name="Market Dollar",
        token_address="0x...",
        spender="0x...",
        value=1_000_000,
        nonce=0,
        deadline=whitelist.deadline,
    )
    ```
"""

from .types import (
    Signature,
    PermitData,
    Whitelist,
    Order,
    TokenPermit,
    TokenPermitMessage,
    SignedPermitData,
    SignedWhitelist,
    SignedOrder,
)
from .codec import decode_signature, normalize_v, signature_from_vrs
from .hashing import (
    TypedSchema,
    PURCHASE_PERMIT_SCHEMA,
    WHITELIST_SCHEMA,
    ORDER_SCHEMA,
    TOKEN_PERMIT_SCHEMA,
    PURCHASE_PERMIT_TYPEHASH,
    WHITELIST_TYPEHASH,
    ORDER_TYPEHASH,
    TOKEN_PERMIT_TYPEHASH,
    create_eip712_domain,
    domain_separator,
    hash_struct,
    typed_data_digest,
)
from .recovery import recover_signer, recover_typed_signer
from .signing import (
    market_domain,
    create_purchase_permit,
    create_whitelist,
    create_order,
    sign_purchase_permit,
    sign_whitelist,
    sign_order,
    sign_token_permit,
    sign_order_with_signer,
    verify_payload_signature,
    TypedDataSigner,
)
from .utils import (
    ZERO_ADDRESS,
    NATIVE_ASSET,
    MARKET_DOMAIN_NAME,
    MARKET_DOMAIN_VERSION,
    DEFAULT_CHAIN_ID,
    format_units,
    parse_units,
)

__all__ = [
    # Types
    "Signature",
    "PermitData",
    "Whitelist",
    "Order",
    "TokenPermit",
    "TokenPermitMessage",
    "SignedPermitData",
    "SignedWhitelist",
    "SignedOrder",
    "TypedDataSigner",
    # Codec
    "decode_signature",
    "normalize_v",
    "signature_from_vrs",
    # Hashing
    "TypedSchema",
    "PURCHASE_PERMIT_SCHEMA",
    "WHITELIST_SCHEMA",
    "ORDER_SCHEMA",
    "TOKEN_PERMIT_SCHEMA",
    "PURCHASE_PERMIT_TYPEHASH",
    "WHITELIST_TYPEHASH",
    "ORDER_TYPEHASH",
    "TOKEN_PERMIT_TYPEHASH",
    "create_eip712_domain",
    "domain_separator",
    "hash_struct",
    "typed_data_digest",
    # Recovery
    "recover_signer",
    "recover_typed_signer",
    # Signing
    "market_domain",
    "create_purchase_permit",
    "create_whitelist",
    "create_order",
    "sign_purchase_permit",
    "sign_whitelist",
    "sign_order",
    "sign_token_permit",
    "sign_order_with_signer",
    "verify_payload_signature",
    # Utils
    "ZERO_ADDRESS",
    "NATIVE_ASSET",
    "MARKET_DOMAIN_NAME",
    "MARKET_DOMAIN_VERSION",
    "DEFAULT_CHAIN_ID",
    "format_units",
    "parse_units",
]
