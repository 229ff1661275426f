"""Permit-settlement orchestrator.

``Marketplace`` is the ledger-resident contract that swaps one unique asset
for one payment amount. Every purchase flow runs the same settlement:

1. find the listing (registry) or authenticate the supplied order
2. verify the flow's authorization policy
3. clear the listing / mark the order filled, before any external call
4. grant allowance via the token's permit (if supplied), then move payment
5. move the asset with ``safe_transfer_from``
6. emit ``Sold``

The whole sequence runs in one ledger call frame, so any failure undoes
all of it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

import structlog
from eth_utils import to_checksum_address

from ..config import MarketConfig, TakerPolicy, resolve_market_config
from ..errors import (
    AuthorizationError,
    ExternalCallError,
    Reason,
    StateError,
    ValidationError,
)
from ..ledger.chain import CallContext, Contract, Ledger, Revert
from ..signing.codec import decode_signature
from ..signing.hashing import (
    ORDER_SCHEMA,
    PURCHASE_PERMIT_SCHEMA,
    WHITELIST_SCHEMA,
    domain_separator,
)
from ..signing.types import SignedOrder, SignedPermitData, SignedWhitelist, TokenPermit
from ..signing.utils import NATIVE_ASSET
from .events import Cancelled, Listed, Sold
from .interfaces import NonFungibleAsset, PaymentToken
from .registry import Listing, ListingRegistry
from .verifier import (
    OpenPolicy,
    PurchasePermitPolicy,
    SignedOrderPolicy,
    WhitelistPolicy,
)

logger = structlog.get_logger("permit_market.market.engine")


class PermitStatus(str, Enum):
    """How a token responded to a permit attempt."""

    GRANTED = "granted"
    REJECTED = "rejected"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class PermitResult:
    """Outcome of calling a token's ``permit``."""

    status: PermitStatus
    reason: Optional[str] = None
    """Revert reason reported by the token, when it gave one."""

    @property
    def granted(self) -> bool:
        return self.status is PermitStatus.GRANTED


class Marketplace(Contract):
    """Permit-based NFT marketplace.

    Example:
        ```python
        market = ledger.deploy(Marketplace, deployer, {
            "authority": authority.address,
            "nft_asset": nft.address,
            "payment_asset": token.address,
        })
        ledger.call(maker, market.list, 1, 1_000_000)
        ledger.call(taker, market.buy_whitelisted, 1, signed_whitelist, token_permit)
        ```
    """

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        deployer: str,
        config: Optional[MarketConfig] = None,
    ):
        super().__init__(ledger, address, deployer)
        self.config = resolve_market_config(config)
        self._nft: NonFungibleAsset = self._contract(self.config.nft_asset, "nft_asset")
        self._payment_token: Optional[PaymentToken] = None
        if not self.config.pays_native:
            self._payment_token = self._contract(self.config.payment_asset, "payment_asset")

        self._domain_separator = domain_separator(
            self.config.name, self.config.version, ledger.chain_id, address
        )
        authority = self.config.authority
        self._open_policy = OpenPolicy(self._domain_separator, authority)
        self._whitelist_policy = WhitelistPolicy(self._domain_separator, authority)
        self._purchase_permit_policy = PurchasePermitPolicy(self._domain_separator, authority)
        self._order_policy = SignedOrderPolicy(
            self._domain_separator, authority, self.config.order_signer
        )

        self._registry = ListingRegistry(self, self._nft)
        self.storage["filled_orders"] = set()

        logger.info(
            "market.deployed",
            address=address,
            authority=authority,
            nft_asset=self.config.nft_asset,
            payment_asset=self.config.payment_asset,
            order_signer=self.config.order_signer.value,
            taker_policy=self.config.taker_policy.value,
        )

    def _contract(self, address: str, key: str) -> Any:
        if not self.ledger.is_contract(address):
            raise ValidationError(
                Reason.INVALID_CONFIG, f"{key} is not a deployed contract", {key: address}
            )
        return self.ledger.contract_at(address)

    @property
    def domain_separator(self) -> bytes:
        return self._domain_separator

    @property
    def authority(self) -> str:
        return self.config.authority

    def type_hashes(self) -> Dict[str, bytes]:
        """Type hash of every schema this marketplace verifies."""
        return {
            schema.name: schema.type_hash
            for schema in (PURCHASE_PERMIT_SCHEMA, WHITELIST_SCHEMA, ORDER_SCHEMA)
        }

    def type_hash(self, schema_name: str) -> bytes:
        try:
            return self.type_hashes()[schema_name]
        except KeyError:
            raise ValueError(f"Unknown schema: {schema_name}") from None

    def read(self, asset_id: int) -> Listing:
        return self._registry.read(asset_id)

    def order_digest(self, order: SignedOrder) -> bytes:
        return self._order_policy.digest(order)

    def is_order_filled(self, order: SignedOrder) -> bool:
        return self.order_digest(order) in self.storage["filled_orders"]

    def list(self, ctx: CallContext, asset_id: int, price: int) -> None:
        listing = self._registry.list(ctx, asset_id, price)
        self.emit(Listed(asset_id, listing.maker, listing.price))
        logger.info("market.listed", asset_id=asset_id, maker=listing.maker, price=price)

    def cancel(self, ctx: CallContext, asset_id: int) -> None:
        listing = self._registry.cancel(ctx, asset_id)
        self.emit(Cancelled(asset_id, listing.maker))
        logger.info("market.cancelled", asset_id=asset_id, maker=listing.maker)

    def buy(self, ctx: CallContext, asset_id: int) -> None:
        """Buy a listed asset with native value or an existing allowance."""
        self._buy_listed(ctx, asset_id, None, "direct")

    def buy_with_permit(self, ctx: CallContext, asset_id: int, token_permit: TokenPermit) -> None:
        """Buy a listed asset, granting the allowance in the same call."""
        self._buy_listed(ctx, asset_id, token_permit, "permit")

    def buy_whitelisted(
        self,
        ctx: CallContext,
        asset_id: int,
        whitelist: SignedWhitelist,
        token_permit: Optional[TokenPermit] = None,
    ) -> None:
        """Buy a listed asset as an authority-whitelisted buyer."""
        self._require_listed(asset_id)
        self._whitelist_policy.verify(ctx, whitelist, whitelist.signature)
        self._buy_listed(ctx, asset_id, token_permit, "whitelist")

    def buy_with_signed_permit(
        self,
        ctx: CallContext,
        permit: SignedPermitData,
        token_permit: Optional[TokenPermit] = None,
    ) -> None:
        """Buy the listed asset named in an authority-signed purchase permit."""
        self._require_listed(permit.asset_id)
        self._purchase_permit_policy.verify(ctx, permit, permit.signature)
        self._buy_listed(ctx, permit.asset_id, token_permit, "purchase_permit")

    def fulfill_order(
        self,
        ctx: CallContext,
        order: SignedOrder,
        token_permit: Optional[TokenPermit] = None,
        whitelist: Optional[SignedWhitelist] = None,
    ) -> None:
        """Buy an asset from a signed order; no listing is ever stored."""
        maker = to_checksum_address(order.maker)
        if to_checksum_address(order.nft_asset) != self._nft.address:
            raise ValidationError(
                Reason.ASSET_MISMATCH,
                "Order is for a different asset contract",
                {"nft_asset": order.nft_asset},
            )
        if to_checksum_address(order.payment_asset) not in (
            NATIVE_ASSET,
            self.config.payment_asset,
        ):
            raise ValidationError(
                Reason.ASSET_MISMATCH,
                "Order payment asset is not accepted",
                {"payment_asset": order.payment_asset},
            )
        if order.price <= 0:
            raise ValidationError(
                Reason.INVALID_PRICE, "Price must be positive", {"price": order.price}
            )

        self._order_policy.verify(ctx, order, order.signature)
        if self.config.taker_policy is TakerPolicy.WHITELISTED:
            if whitelist is None:
                raise AuthorizationError(
                    Reason.CALLER_MISMATCH,
                    "Signed orders require a whitelisted taker",
                    {"caller": ctx.sender},
                )
            self._whitelist_policy.verify(ctx, whitelist, whitelist.signature)

        digest = self.order_digest(order)
        if digest in self.storage["filled_orders"]:
            raise StateError(
                Reason.ORDER_FILLED, "Order already filled", {"digest": "0x" + digest.hex()}
            )
        if not self._registry.owned_and_approved(maker, order.asset_id):
            raise StateError(
                Reason.NOT_OWNER_OR_NOT_APPROVED,
                "Maker must own the asset and approve the marketplace",
                {"asset_id": order.asset_id, "maker": maker},
            )

        self.storage["filled_orders"].add(digest)
        if self._registry.is_listed(order.asset_id):
            self._registry.take(order.asset_id)

        self._settle(
            ctx,
            order.asset_id,
            Listing(maker=maker, price=order.price),
            to_checksum_address(order.payment_asset),
            token_permit,
        )
        logger.info(
            "market.sold",
            flow="order",
            asset_id=order.asset_id,
            maker=maker,
            taker=ctx.sender,
            price=order.price,
        )

    def _require_listed(self, asset_id: int) -> None:
        if not self._registry.is_listed(asset_id):
            raise StateError(Reason.NOT_LISTED, "Asset is not listed", {"asset_id": asset_id})

    def _buy_listed(
        self,
        ctx: CallContext,
        asset_id: int,
        token_permit: Optional[TokenPermit],
        flow: str,
    ) -> None:
        self._open_policy.verify(ctx)
        listing = self._registry.take(asset_id)
        self._settle(ctx, asset_id, listing, self.config.payment_asset, token_permit)
        logger.info(
            "market.sold",
            flow=flow,
            asset_id=asset_id,
            maker=listing.maker,
            taker=ctx.sender,
            price=listing.price,
        )

    def _settle(
        self,
        ctx: CallContext,
        asset_id: int,
        listing: Listing,
        payment_asset: str,
        token_permit: Optional[TokenPermit],
    ) -> None:
        if payment_asset == NATIVE_ASSET:
            if token_permit is not None:
                raise ValidationError(
                    Reason.ASSET_MISMATCH, "Token permit supplied for a native payment"
                )
            if ctx.value != listing.price:
                raise ValidationError(
                    Reason.INCORRECT_VALUE,
                    "Sent value must equal the price",
                    {"value": ctx.value, "price": listing.price},
                )
            self.ledger.transfer_native(self.address, listing.maker, listing.price)
        else:
            if ctx.value != 0:
                raise ValidationError(
                    Reason.INCORRECT_VALUE,
                    "Token payments take no native value",
                    {"value": ctx.value},
                )
            token = self._token_at(payment_asset)
            if token_permit is not None:
                self._grant_allowance(ctx.sender, token, token_permit, listing.price)
            self._external(
                Reason.TRANSFER_FAILED,
                token.transfer_from,
                ctx.sender,
                listing.maker,
                listing.price,
            )

        self._external(
            Reason.TRANSFER_FAILED,
            self._nft.safe_transfer_from,
            listing.maker,
            ctx.sender,
            asset_id,
        )
        self.emit(Sold(asset_id, listing.maker, ctx.sender, listing.price))

    def _token_at(self, payment_asset: str) -> PaymentToken:
        if self._payment_token is None or payment_asset != self._payment_token.address:
            raise ValidationError(
                Reason.ASSET_MISMATCH,
                "Payment asset is not accepted",
                {"payment_asset": payment_asset},
            )
        return self._payment_token

    def _grant_allowance(
        self, owner: str, token: PaymentToken, token_permit: TokenPermit, price: int
    ) -> None:
        result = self._try_permit(owner, token, token_permit)
        if result.granted:
            return
        # A front-run permit has already consumed the nonce; the allowance is what matters
        if token.allowance(owner, self.address) >= price:
            logger.info(
                "market.permit_skipped",
                owner=owner,
                status=result.status.value,
                reason=result.reason,
            )
            return
        raise ExternalCallError(
            Reason.PERMIT_FAILED,
            result.reason or "Permit failed",
            {"owner": owner, "status": result.status.value},
        )

    def _try_permit(
        self, owner: str, token: PaymentToken, token_permit: TokenPermit
    ) -> PermitResult:
        """Call ``token.permit`` and report the outcome instead of raising.

        Raises:
            FormatError: If the permit signature cannot be decoded
        """
        permit = getattr(token, "permit", None)
        if permit is None:
            return PermitResult(PermitStatus.UNSUPPORTED, "Token does not support permit")

        signature = decode_signature(token_permit.signature)
        try:
            self.ledger.call(
                self.address,
                permit,
                owner,
                self.address,
                token_permit.value,
                token_permit.deadline,
                signature.v,
                signature.r,
                signature.s,
            )
        except Revert as exc:
            return PermitResult(PermitStatus.REJECTED, exc.reason)
        return PermitResult(PermitStatus.GRANTED)

    def _external(self, reason: Reason, method: Callable[..., Any], *args: Any) -> Any:
        try:
            return self.ledger.call(self.address, method, *args)
        except Revert as exc:
            raise ExternalCallError(
                reason,
                exc.reason or "External call failed",
                {"target": method.__self__.address},  # type: ignore[attr-defined]
            ) from exc
