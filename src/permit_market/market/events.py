"""Events emitted by the marketplace."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Listed:
    """Asset offered for sale, or its terms replaced."""

    asset_id: int
    maker: str
    price: int


@dataclass(frozen=True)
class Sold:
    """Settlement completed: asset to taker, payment to maker."""

    asset_id: int
    maker: str
    taker: str
    price: int


@dataclass(frozen=True)
class Cancelled:
    """Listing withdrawn by its maker."""

    asset_id: int
    maker: str
