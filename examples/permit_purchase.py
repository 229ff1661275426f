"""Whitelisted Purchase with Token Permit Example.

This example runs a complete sale on a local ledger:
- The maker approves the marketplace and lists an asset
- The authority whitelists a buyer off-chain
- The buyer signs an EIP-2612 permit and settles in a single call

Prerequisites:
1. pip install permit-market
2. Optionally set AUTHORITY_PRIVATE_KEY, MAKER_PRIVATE_KEY and
   TAKER_PRIVATE_KEY (random keys are used otherwise)

Usage:
    python permit_purchase.py
"""

import os

from dotenv import load_dotenv
from eth_account import Account

from permit_market import (
    Ledger,
    MarketError,
    Marketplace,
    PermitToken,
    Sold,
    UniqueAsset,
    create_whitelist,
    sign_token_permit,
    sign_whitelist,
)
from permit_market.log import setup_logging
from permit_market.signing import format_units, parse_units

load_dotenv()


def _account(var):
    key = os.environ.get(var)
    return Account.from_key(key) if key else Account.create()


def main():
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))

    deployer = Account.create()
    authority = _account("AUTHORITY_PRIVATE_KEY")
    maker = _account("MAKER_PRIVATE_KEY")
    taker = _account("TAKER_PRIVATE_KEY")

    print("=" * 60)
    print("  WHITELISTED PURCHASE WITH TOKEN PERMIT")
    print("=" * 60)

    ledger = Ledger(chain_id=31337)
    price = parse_units("25", 6)

    print("\n[1] Deploying token, collection and marketplace...")
    token = ledger.deploy(PermitToken, deployer.address, "Market Dollar", "MUSD", 6)
    nft = ledger.deploy(UniqueAsset, deployer.address, "Permit Punks", "PUNK")
    market = ledger.deploy(Marketplace, deployer.address, {
        "authority": authority.address,
        "nft_asset": nft.address,
        "payment_asset": token.address,
    })
    ledger.call(deployer.address, token.mint, taker.address, parse_units("100", 6))
    ledger.call(deployer.address, nft.mint, maker.address, 1)
    print(f"    Marketplace: {market.address}")

    print("\n[2] Maker lists asset #1...")
    ledger.call(maker.address, nft.approve, market.address, 1)
    ledger.call(maker.address, market.list, 1, price)
    print(f"    Price: {format_units(price, 6)} MUSD")

    print("\n[3] Authority whitelists the buyer...")
    whitelist = sign_whitelist(
        private_key=authority.key.hex(),
        market_address=market.address,
        whitelist=create_whitelist(taker.address, deadline_seconds=3600, now=ledger.timestamp),
        chain_id=ledger.chain_id,
    )

    print("\n[4] Buyer signs a permit and settles...")
    permit = sign_token_permit(
        private_key=taker.key.hex(),
        token_name=token.name,
        token_address=token.address,
        spender=market.address,
        value=price,
        nonce=token.nonces(taker.address),
        deadline=ledger.timestamp + 600,
        chain_id=ledger.chain_id,
    )

    try:
        ledger.call(taker.address, market.buy_whitelisted, 1, whitelist, permit)
    except MarketError as e:
        print(f"\nError: {e}")
        return

    sold = ledger.events(Sold)[-1]
    print("\n[5] Sale settled!")
    print(f"    Owner of #1:   {nft.owner_of(1)}")
    print(f"    Maker balance: {format_units(token.balance_of(maker.address), 6)} MUSD")
    print(f"    Buyer balance: {format_units(token.balance_of(taker.address), 6)} MUSD")
    print(f"    Event:         {sold}")
    print("=" * 60)


if __name__ == "__main__":
    main()
