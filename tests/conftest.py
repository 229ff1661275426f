"""Fixtures: a fresh ledger with a permit token, an NFT and a marketplace."""

import pytest

from permit_market.ledger import Ledger

from helpers import CHAIN_ID, GENESIS_TIME, deploy_market, deploy_nft, deploy_token


@pytest.fixture
def ledger():
    return Ledger(chain_id=CHAIN_ID, timestamp=GENESIS_TIME)


@pytest.fixture
def token(ledger):
    return deploy_token(ledger)


@pytest.fixture
def nft(ledger):
    return deploy_nft(ledger)


@pytest.fixture
def market(ledger, token, nft):
    return deploy_market(ledger, nft, payment_asset=token.address)


@pytest.fixture
def native_market(ledger, nft):
    return deploy_market(ledger, nft)
