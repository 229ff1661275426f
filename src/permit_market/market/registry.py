"""Listing registry: asset id to ``{maker, price}``.

The table lives in the owning contract's storage so it is snapshotted and
restored with every ledger call frame. Absent ids read as ``EMPTY_LISTING``.
"""

from dataclasses import dataclass
from typing import Dict

from eth_utils import to_checksum_address

from ..errors import Reason, StateError, ValidationError
from ..ledger.chain import CallContext, Contract, Revert
from ..signing.utils import ZERO_ADDRESS
from .interfaces import NonFungibleAsset


@dataclass(frozen=True)
class Listing:
    """A recorded offer to sell one asset."""

    maker: str
    """Seller; ZERO_ADDRESS when the asset is not listed."""

    price: int
    """Asking price in the marketplace's payment asset."""

    @property
    def exists(self) -> bool:
        return self.maker != ZERO_ADDRESS


EMPTY_LISTING = Listing(maker=ZERO_ADDRESS, price=0)


class ListingRegistry:
    """Sole owner and mutator of listing entries."""

    def __init__(self, owner: Contract, nft: NonFungibleAsset):
        self._owner = owner
        self._nft = nft
        owner.storage.setdefault("listings", {})

    @property
    def _table(self) -> Dict[int, Listing]:
        return self._owner.storage["listings"]

    def read(self, asset_id: int) -> Listing:
        return self._table.get(asset_id, EMPTY_LISTING)

    def is_listed(self, asset_id: int) -> bool:
        return asset_id in self._table

    def list(self, ctx: CallContext, asset_id: int, price: int) -> Listing:
        """Record ``{maker=caller, price}``, replacing any earlier terms.

        Raises:
            ValidationError: If the price is not positive
            StateError: If the caller does not own the asset or has not
                approved the marketplace as its transfer agent
        """
        if price <= 0:
            raise ValidationError(
                Reason.INVALID_PRICE, "Price must be positive", {"price": price}
            )
        if not self.owned_and_approved(ctx.sender, asset_id):
            raise StateError(
                Reason.NOT_OWNER_OR_NOT_APPROVED,
                "Caller must own the asset and approve the marketplace",
                {"asset_id": asset_id, "caller": ctx.sender},
            )
        listing = Listing(maker=ctx.sender, price=price)
        self._table[asset_id] = listing
        return listing

    def cancel(self, ctx: CallContext, asset_id: int) -> Listing:
        """Remove the caller's listing and return it.

        Raises:
            StateError: If the caller is not the stored maker
        """
        listing = self.read(asset_id)
        if not listing.exists or listing.maker != ctx.sender:
            raise StateError(
                Reason.NOT_MAKER,
                "Only the maker can cancel a listing",
                {"asset_id": asset_id, "caller": ctx.sender},
            )
        del self._table[asset_id]
        return listing

    def take(self, asset_id: int) -> Listing:
        """Remove and return a listing at settlement.

        Raises:
            StateError: If the asset is not listed
        """
        listing = self._table.pop(asset_id, None)
        if listing is None:
            raise StateError(
                Reason.NOT_LISTED, "Asset is not listed", {"asset_id": asset_id}
            )
        return listing

    def owned_and_approved(self, caller: str, asset_id: int) -> bool:
        try:
            owner = to_checksum_address(self._nft.owner_of(asset_id))
            approved = to_checksum_address(self._nft.get_approved(asset_id))
        except Revert:
            return False
        if owner != caller:
            return False
        return approved == self._owner.address or self._nft.is_approved_for_all(
            owner, self._owner.address
        )
