"""Tests for the signing module."""

import asyncio

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_keys.constants import SECPK1_N
from eth_utils import keccak

from permit_market.errors import AuthorizationError, FormatError, Reason
from permit_market.signing import (
    NATIVE_ASSET,
    ORDER_SCHEMA,
    TOKEN_PERMIT_SCHEMA,
    TOKEN_PERMIT_TYPEHASH,
    WHITELIST_SCHEMA,
    Order,
    PermitData,
    Signature,
    TokenPermitMessage,
    TypedSchema,
    Whitelist,
    create_eip712_domain,
    create_order,
    create_purchase_permit,
    create_whitelist,
    decode_signature,
    domain_separator,
    format_units,
    hash_struct,
    market_domain,
    parse_units,
    recover_signer,
    recover_typed_signer,
    sign_order,
    sign_order_with_signer,
    sign_purchase_permit,
    sign_token_permit,
    sign_whitelist,
    typed_data_digest,
    verify_payload_signature,
)
from permit_market.signing.hashing import EIP712_DOMAIN_FIELDS, EIP712_DOMAIN_TYPEHASH

from helpers import AUTHORITY, AUTHORITY_KEY, CHAIN_ID, MAKER, MAKER_KEY, OTHER, PRICE, TAKER, TAKER_KEY


MARKET_ADDRESS = "0x5615dEB798BB3E4dFa0139dFa1b3D433Cc23b72f"
NFT_ADDRESS = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
TOKEN_ADDRESS = "0x989876083eD929BE583b8138e40D469ea3E53a37"
DEADLINE = 1_700_003_600


def _packed(r: int, s: int, v: int) -> bytes:
    return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v])


def _full_message(domain, payload):
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_FIELDS, **payload.schema.eip712_types()},
        "primaryType": payload.schema.name,
        "domain": domain,
        "message": payload.message(),
    }


PAYLOADS = [
    PermitData(asset_id=7, deadline=DEADLINE),
    Whitelist(buyer=TAKER, deadline=DEADLINE),
    Order(
        maker=MAKER,
        asset_id=7,
        price=PRICE,
        deadline=DEADLINE,
        payment_asset=NATIVE_ASSET,
        nft_asset=NFT_ADDRESS,
    ),
    TokenPermitMessage(owner=TAKER, spender=MARKET_ADDRESS, value=PRICE, nonce=3, deadline=DEADLINE),
]


class TestCodec:
    """Tests for packed signature decoding."""

    def test_decode_packed_signature(self):
        """Bytes 0-31 are r, 32-63 are s, 64 is v."""
        raw = _packed(1, 2, 28)
        signature = decode_signature(raw)

        assert (signature.r, signature.s, signature.v) == (1, 2, 28)
        assert signature.to_bytes() == raw

    def test_decode_hex_with_and_without_prefix(self):
        """Hex strings decode the same with or without 0x."""
        raw = _packed(5, 6, 27)
        assert decode_signature("0x" + raw.hex()) == decode_signature(raw.hex())

    @pytest.mark.parametrize("raw_v,expected", [(0, 27), (1, 28), (27, 27), (28, 28)])
    def test_recovery_indicator_normalized(self, raw_v, expected):
        """Raw recovery ids 0/1 become 27/28."""
        assert decode_signature(_packed(1, 2, raw_v)).v == expected

    @pytest.mark.parametrize("length", [0, 64, 66])
    def test_wrong_length_rejected(self, length):
        """Anything other than 65 bytes is malformed."""
        with pytest.raises(FormatError) as exc_info:
            decode_signature(b"\x01" * length)
        assert exc_info.value.reason is Reason.MALFORMED_SIGNATURE

    @pytest.mark.parametrize("raw_v", [2, 26, 29, 255])
    def test_invalid_recovery_indicator_rejected(self, raw_v):
        """Normalized v must be 27 or 28."""
        with pytest.raises(FormatError):
            decode_signature(_packed(1, 2, raw_v))

    def test_invalid_hex_rejected(self):
        """Non-hex strings are malformed."""
        with pytest.raises(FormatError):
            decode_signature("0x" + "zz" * 65)


class TestHashing:
    """Tests for EIP-712 hashing."""

    def test_domain_typehash_is_standard(self):
        """The domain type hash matches the well-known constant."""
        assert EIP712_DOMAIN_TYPEHASH.hex() == (
            "8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f"
        )

    def test_token_permit_typehash_is_eip2612(self):
        """The permit type hash matches EIP-2612."""
        assert TOKEN_PERMIT_TYPEHASH.hex() == (
            "6e71edae12b1b97f4d1f60370fef10105fa2faae0126114a169c64845d6126c9"
        )

    def test_encode_type(self):
        """Type strings list fields in declaration order."""
        assert WHITELIST_SCHEMA.encode_type() == "Whitelist(address buyer,uint256 deadline)"
        assert ORDER_SCHEMA.encode_type() == (
            "Order(address maker,uint256 assetId,uint256 price,uint256 deadline,"
            "address paymentAsset,address nftAsset)"
        )

    @pytest.mark.parametrize("payload", PAYLOADS, ids=lambda p: p.schema.name)
    def test_matches_eth_account_encoding(self, payload):
        """Separator, struct hash and digest equal what eth_account signs."""
        domain = create_eip712_domain("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)
        signable = encode_typed_data(full_message=_full_message(domain, payload))

        separator = domain_separator("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)
        struct_hash = hash_struct(payload.schema, payload.struct_values())

        assert bytes(signable.header) == separator
        assert bytes(signable.body) == struct_hash
        assert typed_data_digest(separator, struct_hash) == keccak(
            b"\x19" + signable.version + signable.header + signable.body
        )

    def test_separator_binds_deployment(self):
        """Chain ID and verifying address both change the separator."""
        base = domain_separator("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)
        assert base != domain_separator("PermitMarket", "1", CHAIN_ID + 1, MARKET_ADDRESS)
        assert base != domain_separator("PermitMarket", "1", CHAIN_ID, NFT_ADDRESS)

    def test_dynamic_field_types_rejected(self):
        """Only fixed-size fields are supported."""
        with pytest.raises(ValueError, match="Unsupported field type"):
            TypedSchema("Note", (("text", "string"),))

    def test_wrong_field_count_rejected(self):
        """Value count must match the schema."""
        with pytest.raises(ValueError, match="takes 2 fields"):
            hash_struct(WHITELIST_SCHEMA, [TAKER])


class TestRecovery:
    """Tests for signer recovery."""

    def _sign_whitelist(self, key=AUTHORITY_KEY):
        whitelist = Whitelist(buyer=TAKER, deadline=DEADLINE)
        domain = create_eip712_domain("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)
        signed = Account.from_key(key).sign_typed_data(
            domain_data=domain,
            message_types=WHITELIST_SCHEMA.eip712_types(),
            message_data=whitelist.message(),
        )
        separator = domain_separator("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)
        digest = typed_data_digest(separator, hash_struct(WHITELIST_SCHEMA, whitelist.struct_values()))
        return digest, decode_signature(bytes(signed.signature))

    def test_recovers_signer(self):
        """A wallet signature recovers to the wallet address."""
        digest, signature = self._sign_whitelist()
        assert recover_signer(digest, signature) == AUTHORITY

    def test_other_key_recovers_other_address(self):
        """Recovery reports whoever actually signed."""
        digest, signature = self._sign_whitelist(key=TAKER_KEY)
        assert recover_signer(digest, signature) == TAKER

    def test_malleated_signature_rejected(self):
        """(r, n - s, flipped v) is refused rather than canonicalized."""
        digest, signature = self._sign_whitelist()
        malleated = Signature(r=signature.r, s=SECPK1_N - signature.s, v=55 - signature.v)

        with pytest.raises(AuthorizationError) as exc_info:
            recover_signer(digest, malleated)
        assert exc_info.value.reason is Reason.INVALID_SIGNATURE

    @pytest.mark.parametrize("r,s", [(0, 1), (1, 0)])
    def test_zero_scalar_rejected(self, r, s):
        """Zero r or s is invalid."""
        with pytest.raises(AuthorizationError) as exc_info:
            recover_signer(b"\x11" * 32, Signature(r=r, s=s, v=27))
        assert exc_info.value.reason is Reason.INVALID_SIGNATURE

    def test_recover_typed_signer_accepts_packed_hex(self):
        """Typed recovery decodes packed signatures itself."""
        _, signature = self._sign_whitelist()
        separator = domain_separator("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)
        recovered = recover_typed_signer(
            separator,
            WHITELIST_SCHEMA,
            Whitelist(buyer=TAKER, deadline=DEADLINE).struct_values(),
            "0x" + signature.to_bytes().hex(),
        )
        assert recovered == AUTHORITY

    def test_out_of_range_value_rejected(self):
        """Values that do not fit their uint256 field fail as invalid signatures."""
        _, signature = self._sign_whitelist()
        separator = domain_separator("PermitMarket", "1", CHAIN_ID, MARKET_ADDRESS)

        with pytest.raises(AuthorizationError) as exc_info:
            recover_typed_signer(
                separator,
                WHITELIST_SCHEMA,
                Whitelist(buyer=TAKER, deadline=2**256).struct_values(),
                signature,
            )
        assert exc_info.value.reason is Reason.INVALID_SIGNATURE


class TestAuthorizationCreation:
    """Tests for authorization creation."""

    def test_create_whitelist(self):
        """Deadline is measured from the reference time."""
        whitelist = create_whitelist(TAKER.lower(), deadline_seconds=600, now=1_000)
        assert whitelist.buyer == TAKER
        assert whitelist.deadline == 1_600

    def test_create_whitelist_invalid_buyer(self):
        """Invalid buyer raises error."""
        with pytest.raises(ValueError, match="Invalid buyer"):
            create_whitelist("invalid")

    def test_deadline_too_short(self):
        """Deadline below the minimum raises error."""
        with pytest.raises(ValueError, match="Deadline too short"):
            create_purchase_permit(1, deadline_seconds=30)

    def test_deadline_too_long(self):
        """Deadline above the maximum raises error."""
        with pytest.raises(ValueError, match="Deadline too long"):
            create_purchase_permit(1, deadline_seconds=86400 * 365)

    def test_create_order_invalid_price(self):
        """Orders need a positive price."""
        with pytest.raises(ValueError, match="Invalid price"):
            create_order(MAKER, 1, 0, NATIVE_ASSET, NFT_ADDRESS)

    def test_market_domain_invalid_address(self):
        """Invalid market address raises error."""
        with pytest.raises(ValueError, match="Invalid market"):
            market_domain("0x1234")


class LocalWalletSigner:
    """TypedDataSigner backed by a local key."""

    def __init__(self, private_key):
        self._account = Account.from_key(private_key)

    async def get_address(self):
        return self._account.address

    async def sign_typed_data(self, params):
        signed = self._account.sign_typed_data(full_message=params)
        return "0x" + bytes(signed.signature).hex()


class TestSigning:
    """Tests for signing helpers."""

    def test_sign_whitelist_verifies(self):
        """Authority-signed whitelist verifies against the authority only."""
        signed = sign_whitelist(
            private_key=AUTHORITY_KEY,
            market_address=MARKET_ADDRESS,
            whitelist=create_whitelist(TAKER, now=1_000),
            chain_id=CHAIN_ID,
        )

        assert verify_payload_signature(signed, MARKET_ADDRESS, CHAIN_ID, AUTHORITY) is True
        assert verify_payload_signature(signed, MARKET_ADDRESS, CHAIN_ID, OTHER) is False

    def test_signature_bound_to_chain(self):
        """A signature for one chain does not verify on another."""
        signed = sign_purchase_permit(
            AUTHORITY_KEY, MARKET_ADDRESS, create_purchase_permit(9, now=1_000), chain_id=CHAIN_ID
        )
        assert verify_payload_signature(signed, MARKET_ADDRESS, CHAIN_ID + 1, AUTHORITY) is False

    def test_malformed_signature_does_not_verify(self):
        """Verification reports False instead of raising."""
        signed = sign_whitelist(
            AUTHORITY_KEY, MARKET_ADDRESS, create_whitelist(TAKER, now=1_000), chain_id=CHAIN_ID
        )
        broken = type(signed)(buyer=signed.buyer, deadline=signed.deadline, signature="0x1234")
        assert verify_payload_signature(broken, MARKET_ADDRESS, CHAIN_ID, AUTHORITY) is False

    def test_custom_domain_name_and_version(self):
        """Verification uses the domain the payload was signed under."""
        signed = sign_whitelist(
            AUTHORITY_KEY,
            MARKET_ADDRESS,
            create_whitelist(TAKER, now=1_000),
            chain_id=CHAIN_ID,
            name="Other",
            version="2",
        )

        assert verify_payload_signature(
            signed, MARKET_ADDRESS, CHAIN_ID, AUTHORITY, name="Other", version="2"
        ) is True
        assert verify_payload_signature(signed, MARKET_ADDRESS, CHAIN_ID, AUTHORITY) is False

    def test_oversized_payload_does_not_verify(self):
        """Out-of-range fields report False instead of raising."""
        signed = sign_whitelist(
            AUTHORITY_KEY, MARKET_ADDRESS, create_whitelist(TAKER, now=1_000), chain_id=CHAIN_ID
        )
        oversized = type(signed)(buyer=signed.buyer, deadline=2**256, signature=signed.signature)
        assert verify_payload_signature(oversized, MARKET_ADDRESS, CHAIN_ID, AUTHORITY) is False

    def test_wallet_signer_matches_key_signing(self):
        """An external wallet produces the same order signature."""
        order = create_order(MAKER, 4, PRICE, TOKEN_ADDRESS, NFT_ADDRESS, now=1_000)

        direct = sign_order(MAKER_KEY, MARKET_ADDRESS, order, chain_id=CHAIN_ID)
        via_wallet = asyncio.run(
            sign_order_with_signer(LocalWalletSigner(MAKER_KEY), MARKET_ADDRESS, order, chain_id=CHAIN_ID)
        )

        assert decode_signature(direct.signature) == decode_signature(via_wallet.signature)
        assert verify_payload_signature(via_wallet, MARKET_ADDRESS, CHAIN_ID, MAKER) is True

    def test_token_permit_verifies_under_token_domain(self):
        """Permit signatures are scoped to the token, not the marketplace."""
        permit = sign_token_permit(
            private_key=TAKER_KEY,
            token_name="Market Dollar",
            token_address=TOKEN_ADDRESS,
            spender=MARKET_ADDRESS,
            value=PRICE,
            nonce=0,
            deadline=DEADLINE,
            chain_id=CHAIN_ID,
        )
        message = TokenPermitMessage(
            owner=TAKER, spender=MARKET_ADDRESS, value=PRICE, nonce=0, deadline=DEADLINE
        )
        separator = domain_separator("Market Dollar", "1", CHAIN_ID, TOKEN_ADDRESS)

        assert recover_typed_signer(
            separator, TOKEN_PERMIT_SCHEMA, message.struct_values(), permit.signature
        ) == TAKER


class TestUtils:
    """Tests for utility functions."""

    def test_format_units(self):
        """Base units format to trimmed decimals."""
        assert format_units(1_000_000, 6) == "1"
        assert format_units(1_500_000, 6) == "1.5"
        assert format_units(1_234_567, 6) == "1.234567"
        assert format_units(100, 6) == "0.0001"
        assert format_units(10**18) == "1"

    def test_parse_units(self):
        """Decimal strings parse to base units."""
        assert parse_units("1.0", 6) == 1_000_000
        assert parse_units("1.5", 6) == 1_500_000
        assert parse_units("0.01", 6) == 10_000
        assert parse_units("2") == 2 * 10**18
