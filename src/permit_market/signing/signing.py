"""Authorization Signing for the Permit Marketplace.

Provides EIP-712 signing functions that produce exactly what the
marketplace and payment token verify:
- eth_account.Account (direct signing)
- Any async wallet implementing TypedDataSigner
"""

import time
from typing import Any, Dict, Optional, Protocol

from eth_account import Account
from eth_utils import is_address, to_checksum_address

from ..errors import MarketError
from .hashing import (
    EIP712_DOMAIN_FIELDS,
    create_eip712_domain,
    domain_separator,
)
from .recovery import recover_typed_signer
from .types import (
    Order,
    PermitData,
    SignedOrder,
    SignedPermitData,
    SignedWhitelist,
    TokenPermit,
    TokenPermitMessage,
    Whitelist,
)
from .utils import DEFAULT_CHAIN_ID, MARKET_DOMAIN_NAME, MARKET_DOMAIN_VERSION


# Deadline bounds
MIN_DEADLINE_SECONDS = 60  # 1 minute
MAX_DEADLINE_SECONDS = 86400 * 30  # 30 days


def _deadline_from_now(deadline_seconds: int, now: Optional[int]) -> int:
    if deadline_seconds < MIN_DEADLINE_SECONDS:
        raise ValueError(
            f"Deadline too short: {deadline_seconds}s. Minimum: {MIN_DEADLINE_SECONDS}s"
        )
    if deadline_seconds > MAX_DEADLINE_SECONDS:
        raise ValueError(
            f"Deadline too long: {deadline_seconds}s. Maximum: {MAX_DEADLINE_SECONDS}s"
        )
    return (int(time.time()) if now is None else now) + deadline_seconds


def _require_address(label: str, address: str) -> str:
    if not is_address(address):
        raise ValueError(f"Invalid {label} address: {address}")
    return to_checksum_address(address)


def market_domain(
    market_address: str,
    chain_id: int = DEFAULT_CHAIN_ID,
    name: str = MARKET_DOMAIN_NAME,
    version: str = MARKET_DOMAIN_VERSION,
) -> Dict[str, Any]:
    """EIP-712 domain of a marketplace deployment.

    Raises:
        ValueError: If the market address is invalid
    """
    _require_address("market", market_address)
    return create_eip712_domain(name, version, chain_id, market_address)


def create_purchase_permit(
    asset_id: int, deadline_seconds: int = 3600, now: Optional[int] = None
) -> PermitData:
    """Create a purchase permission for one asset.

    Args:
        asset_id: Token ID of the listed asset
        deadline_seconds: Seconds from ``now`` until the permission expires
        now: Reference timestamp (default: wall clock)

    Raises:
        ValueError: If the deadline is out of bounds
    """
    return PermitData(asset_id=asset_id, deadline=_deadline_from_now(deadline_seconds, now))


def create_whitelist(
    buyer: str, deadline_seconds: int = 3600, now: Optional[int] = None
) -> Whitelist:
    """Create a whitelist entry for ``buyer``.

    Raises:
        ValueError: If the buyer address is invalid or the deadline is out of bounds
    """
    return Whitelist(
        buyer=_require_address("buyer", buyer),
        deadline=_deadline_from_now(deadline_seconds, now),
    )


def create_order(
    maker: str,
    asset_id: int,
    price: int,
    payment_asset: str,
    nft_asset: str,
    deadline_seconds: int = 3600,
    now: Optional[int] = None,
) -> Order:
    """Create an order that can be filled without a prior listing.

    Raises:
        ValueError: If an address is invalid, the price is not positive,
            or the deadline is out of bounds
    """
    if price <= 0:
        raise ValueError(f"Invalid price: {price}. Must be positive")
    return Order(
        maker=_require_address("maker", maker),
        asset_id=asset_id,
        price=price,
        deadline=_deadline_from_now(deadline_seconds, now),
        payment_asset=_require_address("payment asset", payment_asset),
        nft_asset=_require_address("nft asset", nft_asset),
    )


def _sign_payload(private_key: str, domain: Dict[str, Any], payload: Any) -> str:
    account = Account.from_key(private_key)
    signed_message = account.sign_typed_data(
        domain_data=domain,
        message_types=payload.schema.eip712_types(),
        message_data=payload.message(),
    )
    return "0x" + bytes(signed_message.signature).hex()


def sign_purchase_permit(
    private_key: str,
    market_address: str,
    permit: PermitData,
    chain_id: int = DEFAULT_CHAIN_ID,
    name: str = MARKET_DOMAIN_NAME,
    version: str = MARKET_DOMAIN_VERSION,
) -> SignedPermitData:
    """Sign a purchase permission as the marketplace authority."""
    domain = market_domain(market_address, chain_id, name, version)
    signature = _sign_payload(private_key, domain, permit)
    return SignedPermitData(
        asset_id=permit.asset_id, deadline=permit.deadline, signature=signature
    )


def sign_whitelist(
    private_key: str,
    market_address: str,
    whitelist: Whitelist,
    chain_id: int = DEFAULT_CHAIN_ID,
    name: str = MARKET_DOMAIN_NAME,
    version: str = MARKET_DOMAIN_VERSION,
) -> SignedWhitelist:
    """Sign a whitelist entry as the marketplace authority."""
    signature = _sign_payload(
        private_key, market_domain(market_address, chain_id, name, version), whitelist
    )
    return SignedWhitelist(
        buyer=whitelist.buyer, deadline=whitelist.deadline, signature=signature
    )


def sign_order(
    private_key: str,
    market_address: str,
    order: Order,
    chain_id: int = DEFAULT_CHAIN_ID,
    name: str = MARKET_DOMAIN_NAME,
    version: str = MARKET_DOMAIN_VERSION,
) -> SignedOrder:
    """Sign an order as its maker (or as the authority)."""
    domain = market_domain(market_address, chain_id, name, version)
    signature = _sign_payload(private_key, domain, order)
    return SignedOrder(
        maker=order.maker,
        asset_id=order.asset_id,
        price=order.price,
        deadline=order.deadline,
        payment_asset=order.payment_asset,
        nft_asset=order.nft_asset,
        signature=signature,
    )


def sign_token_permit(
    private_key: str,
    token_name: str,
    token_address: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
    chain_id: int = DEFAULT_CHAIN_ID,
    token_version: str = "1",
) -> TokenPermit:
    """Sign an EIP-2612 permit letting ``spender`` pull ``value`` tokens.

    Args:
        private_key: Token owner's private key
        token_name: The token's EIP-712 domain name (usually its ERC-20 name)
        token_address: Payment token contract address
        spender: Marketplace address
        value: Allowance to grant
        nonce: Owner's current permit nonce on the token
        deadline: Unix timestamp after which the token rejects the permit
        chain_id: Chain ID
        token_version: The token's EIP-712 domain version

    Returns:
        TokenPermit ready to pass into a settlement call
    """
    owner = Account.from_key(private_key).address
    message = TokenPermitMessage(
        owner=owner,
        spender=_require_address("spender", spender),
        value=value,
        nonce=nonce,
        deadline=deadline,
    )
    domain = create_eip712_domain(
        token_name, token_version, chain_id, _require_address("token", token_address)
    )
    return TokenPermit(
        value=value,
        deadline=deadline,
        signature=_sign_payload(private_key, domain, message),
    )


class TypedDataSigner(Protocol):
    """Protocol for signers that can sign EIP-712 typed data."""

    async def get_address(self) -> str:
        """Get the signer's address."""
        ...

    async def sign_typed_data(self, params: Dict[str, Any]) -> str:
        """Sign EIP-712 typed data.

        Args:
            params: Dict with domain, types, primaryType, and message

        Returns:
            Signature as hex string
        """
        ...


async def sign_order_with_signer(
    signer: TypedDataSigner,
    market_address: str,
    order: Order,
    chain_id: int = DEFAULT_CHAIN_ID,
    name: str = MARKET_DOMAIN_NAME,
    version: str = MARKET_DOMAIN_VERSION,
) -> SignedOrder:
    """Sign an order with EIP-712 using any compatible wallet.

    Use this when the maker's key lives in an external wallet that
    implements the TypedDataSigner protocol.
    """
    signature = await signer.sign_typed_data(
        {
            "domain": market_domain(market_address, chain_id, name, version),
            "types": {"EIP712Domain": EIP712_DOMAIN_FIELDS, **order.schema.eip712_types()},
            "primaryType": order.schema.name,
            "message": order.message(),
        }
    )
    return SignedOrder(
        maker=order.maker,
        asset_id=order.asset_id,
        price=order.price,
        deadline=order.deadline,
        payment_asset=order.payment_asset,
        nft_asset=order.nft_asset,
        signature=signature,
    )


def verify_payload_signature(
    signed_payload: Any,
    market_address: str,
    chain_id: int,
    expected_signer: str,
    name: str = MARKET_DOMAIN_NAME,
    version: str = MARKET_DOMAIN_VERSION,
) -> bool:
    """Verify a signed marketplace payload locally.

    Note: This only works for EOA signatures and does not check deadlines;
    the marketplace performs the full check at settlement. ``name`` and
    ``version`` must match the marketplace's configured domain.

    Returns:
        True if the signature is valid and from ``expected_signer``
    """
    separator = domain_separator(name, version, chain_id, market_address)
    try:
        recovered = recover_typed_signer(
            separator,
            signed_payload.schema,
            signed_payload.struct_values(),
            signed_payload.signature,
        )
    except MarketError:
        return False
    return recovered.lower() == expected_signer.lower()
