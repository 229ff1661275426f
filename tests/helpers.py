"""Shared keys and call helpers for the marketplace tests."""

from eth_account import Account

from permit_market.ledger import Ledger, PermitToken, UniqueAsset
from permit_market.market import Marketplace
from permit_market.signing import (
    TokenPermit,
    create_whitelist,
    sign_token_permit,
    sign_whitelist,
)

# Test wallets (DO NOT use in production)
DEPLOYER_KEY = "0x" + "01" * 32
AUTHORITY_KEY = "0x" + "a1" * 32
MAKER_KEY = "0x" + "b2" * 32
TAKER_KEY = "0x" + "c3" * 32
OTHER_KEY = "0x" + "d4" * 32

DEPLOYER = Account.from_key(DEPLOYER_KEY).address
AUTHORITY = Account.from_key(AUTHORITY_KEY).address
MAKER = Account.from_key(MAKER_KEY).address
TAKER = Account.from_key(TAKER_KEY).address
OTHER = Account.from_key(OTHER_KEY).address

CHAIN_ID = 31337
GENESIS_TIME = 1_700_000_000
TOKEN_NAME = "Market Dollar"
PRICE = 1_000_000  # 1.00 with 6 decimals
TAKER_FUNDS = 10 * PRICE


def deploy_token(ledger: Ledger) -> PermitToken:
    token = ledger.deploy(PermitToken, DEPLOYER, TOKEN_NAME, "MUSD", 6)
    ledger.call(DEPLOYER, token.mint, TAKER, TAKER_FUNDS)
    return token


def deploy_nft(ledger: Ledger, asset_ids=(1, 2, 3)) -> UniqueAsset:
    nft = ledger.deploy(UniqueAsset, DEPLOYER, "Permit Punks", "PUNK")
    for asset_id in asset_ids:
        ledger.call(DEPLOYER, nft.mint, MAKER, asset_id)
    return nft


def deploy_market(ledger: Ledger, nft: UniqueAsset, payment_asset=None, **overrides) -> Marketplace:
    config = {"authority": AUTHORITY, "nft_asset": nft.address, **overrides}
    if payment_asset is not None:
        config["payment_asset"] = payment_asset
    return ledger.deploy(Marketplace, DEPLOYER, config)


def approve_and_list(ledger: Ledger, nft: UniqueAsset, market: Marketplace, asset_id: int, price: int = PRICE) -> None:
    ledger.call(MAKER, nft.approve, market.address, asset_id)
    ledger.call(MAKER, market.list, asset_id, price)


def token_permit(
    ledger: Ledger,
    token: PermitToken,
    market: Marketplace,
    value: int = PRICE,
    key: str = TAKER_KEY,
    deadline_seconds: int = 3600,
) -> TokenPermit:
    owner = Account.from_key(key).address
    return sign_token_permit(
        private_key=key,
        token_name=TOKEN_NAME,
        token_address=token.address,
        spender=market.address,
        value=value,
        nonce=token.nonces(owner),
        deadline=ledger.timestamp + deadline_seconds,
        chain_id=ledger.chain_id,
    )


def whitelist_for(
    ledger: Ledger,
    market: Marketplace,
    buyer: str = TAKER,
    key: str = AUTHORITY_KEY,
    deadline_seconds: int = 3600,
):
    return sign_whitelist(
        private_key=key,
        market_address=market.address,
        whitelist=create_whitelist(buyer, deadline_seconds, now=ledger.timestamp),
        chain_id=ledger.chain_id,
    )
