"""Address constants and amount helpers."""

from decimal import Decimal

# Zero address; marks an absent listing
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Sentinel payment asset meaning "pay with native value"
NATIVE_ASSET = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

# Default EIP-712 domain of the marketplace
MARKET_DOMAIN_NAME = "PermitMarket"
MARKET_DOMAIN_VERSION = "1"

# Chain ID used when none is configured
DEFAULT_CHAIN_ID = 1

# Default number of decimals for payment tokens
DEFAULT_DECIMALS = 18


def format_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Format a base-unit amount to a human readable string.

    Args:
        amount: Amount in base units (e.g., 1500000 with 6 decimals)
        decimals: Token decimals

    Returns:
        Human readable string (e.g., "1.5")
    """
    if decimals == 0:
        return str(amount)
    whole, frac = divmod(amount, 10**decimals)
    return f"{whole}.{frac:0{decimals}d}".rstrip("0").rstrip(".")


def parse_units(amount: str, decimals: int = DEFAULT_DECIMALS) -> int:
    """Parse a human readable amount to base units.

    Args:
        amount: Human readable amount (e.g., "1.50")
        decimals: Token decimals

    Returns:
        Amount in base units (e.g., 1500000 with 6 decimals)
    """
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))
