"""Marketplace configuration.

Callers pass a partial ``MarketConfig``; ``resolve_market_config`` applies
defaults and validates it into an immutable ``ResolvedMarketConfig`` that
the marketplace keeps for its lifetime.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, TypedDict

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

from .errors import Reason, ValidationError
from .signing.utils import (
    MARKET_DOMAIN_NAME,
    MARKET_DOMAIN_VERSION,
    NATIVE_ASSET,
    ZERO_ADDRESS,
)


class OrderSigner(str, Enum):
    """Who must sign a directly supplied order."""

    AUTHORITY = "authority"
    MAKER = "maker"


class TakerPolicy(str, Enum):
    """Who may fill a signed order."""

    OPEN = "open"
    """Any caller."""

    WHITELISTED = "whitelisted"
    """Only a caller holding an authority-signed Whitelist."""


class MarketConfig(TypedDict, total=False):
    """Marketplace configuration."""

    authority: str
    """Account whose signature gates whitelisted and permitted purchases. Required."""

    nft_asset: str
    """Unique-asset contract traded on this marketplace. Required."""

    payment_asset: str
    """Payment token for listings, or NATIVE_ASSET. Default: NATIVE_ASSET"""

    name: str
    """EIP-712 domain name. Default: PermitMarket"""

    version: str
    """EIP-712 domain version. Default: 1"""

    order_signer: str
    """Signer required on orders: authority or maker. Default: authority"""

    taker_policy: str
    """Who may fill signed orders: open or whitelisted. Default: open"""


@dataclass(frozen=True)
class ResolvedMarketConfig:
    """Resolved marketplace configuration with all defaults applied."""

    authority: str
    nft_asset: str
    payment_asset: str
    name: str
    version: str
    order_signer: OrderSigner
    taker_policy: TakerPolicy

    @property
    def pays_native(self) -> bool:
        return self.payment_asset == NATIVE_ASSET


def _required_address(config: Dict[str, Any], key: str) -> str:
    value = config.get(key)
    if not value or not is_address(value):
        raise ValidationError(
            Reason.INVALID_CONFIG, f"Invalid {key} address", {key: value}
        )
    address = to_checksum_address(value)
    if address == ZERO_ADDRESS:
        raise ValidationError(Reason.ZERO_ADDRESS, f"{key} must not be the zero address")
    return address


def _enum_value(enum_cls, config: Dict[str, Any], key: str, default):
    raw = config.get(key, default)
    try:
        return enum_cls(raw)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            Reason.INVALID_CONFIG, f"{key} must be one of: {allowed}", {key: raw}
        ) from exc


def resolve_market_config(config: Optional[MarketConfig] = None) -> ResolvedMarketConfig:
    """Apply defaults and validate a marketplace configuration.

    Raises:
        ValidationError: If a required address is missing, malformed or zero,
            or a policy value is unknown
    """
    config = dict(config or {})
    payment_asset = config.get("payment_asset", NATIVE_ASSET)
    if payment_asset != NATIVE_ASSET:
        payment_asset = _required_address(config, "payment_asset")

    return ResolvedMarketConfig(
        authority=_required_address(config, "authority"),
        nft_asset=_required_address(config, "nft_asset"),
        payment_asset=payment_asset,
        name=config.get("name", MARKET_DOMAIN_NAME),
        version=config.get("version", MARKET_DOMAIN_VERSION),
        order_signer=_enum_value(OrderSigner, config, "order_signer", OrderSigner.AUTHORITY),
        taker_policy=_enum_value(TakerPolicy, config, "taker_policy", TakerPolicy.OPEN),
    )


# Environment variable for each config key
ENV_VARS = {
    "authority": "MARKET_AUTHORITY",
    "nft_asset": "MARKET_NFT_ASSET",
    "payment_asset": "MARKET_PAYMENT_ASSET",
    "name": "MARKET_NAME",
    "version": "MARKET_VERSION",
    "order_signer": "MARKET_ORDER_SIGNER",
    "taker_policy": "MARKET_TAKER_POLICY",
}


def market_config_from_env(dotenv_path: Optional[str] = None) -> MarketConfig:
    """Build a MarketConfig from ``MARKET_*`` environment variables.

    Values in a ``.env`` file are loaded first; variables already set in
    the environment win.
    """
    load_dotenv(dotenv_path)
    config: MarketConfig = {}
    for key, var in ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            config[key] = value  # type: ignore[literal-required]
    return config
