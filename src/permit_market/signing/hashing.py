"""EIP-712 typed-data hashing.

Builds domain separators, type hashes and struct hashes with the exact byte
layout ``eth_account.messages.encode_typed_data`` produces, so signatures
made by any standard wallet verify here without a live round-trip:

    digest = keccak(0x1901 ‖ domainSeparator ‖ keccak(typeHash ‖ fields...))

Only fixed-size field types are supported; every marketplace schema is
static.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from eth_abi import encode
from eth_utils import keccak, to_checksum_address


EIP712_DOMAIN_TYPE = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
EIP712_DOMAIN_TYPEHASH = keccak(text=EIP712_DOMAIN_TYPE)

EIP712_DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

# Field types that encode to exactly one 32-byte word
STATIC_FIELD_TYPES = frozenset({"address", "uint256", "bytes32", "bool"})


@dataclass(frozen=True)
class TypedSchema:
    """A fixed EIP-712 struct schema."""

    name: str
    """Primary type name (e.g. ``"Order"``)."""

    fields: Tuple[Tuple[str, str], ...]
    """Ordered ``(field name, solidity type)`` pairs."""

    def __post_init__(self):
        for field_name, field_type in self.fields:
            if field_type not in STATIC_FIELD_TYPES:
                raise ValueError(
                    f"Unsupported field type {field_type!r} for {self.name}.{field_name}"
                )

    def encode_type(self) -> str:
        """Return the canonical type string, e.g. ``Whitelist(address buyer,...)``."""
        members = ",".join(f"{t} {n}" for n, t in self.fields)
        return f"{self.name}({members})"

    @property
    def type_hash(self) -> bytes:
        return keccak(text=self.encode_type())

    @property
    def field_types(self) -> List[str]:
        return [t for _, t in self.fields]

    def eip712_types(self) -> Dict[str, List[Dict[str, str]]]:
        """Types dict in the shape ``eth_account`` signing expects."""
        return {self.name: [{"name": n, "type": t} for n, t in self.fields]}


PURCHASE_PERMIT_SCHEMA = TypedSchema(
    "PurchasePermit",
    (("assetId", "uint256"), ("deadline", "uint256")),
)

WHITELIST_SCHEMA = TypedSchema(
    "Whitelist",
    (("buyer", "address"), ("deadline", "uint256")),
)

ORDER_SCHEMA = TypedSchema(
    "Order",
    (
        ("maker", "address"),
        ("assetId", "uint256"),
        ("price", "uint256"),
        ("deadline", "uint256"),
        ("paymentAsset", "address"),
        ("nftAsset", "address"),
    ),
)

# EIP-2612, verified by the payment token under its own domain
TOKEN_PERMIT_SCHEMA = TypedSchema(
    "Permit",
    (
        ("owner", "address"),
        ("spender", "address"),
        ("value", "uint256"),
        ("nonce", "uint256"),
        ("deadline", "uint256"),
    ),
)

PURCHASE_PERMIT_TYPEHASH = PURCHASE_PERMIT_SCHEMA.type_hash
WHITELIST_TYPEHASH = WHITELIST_SCHEMA.type_hash
ORDER_TYPEHASH = ORDER_SCHEMA.type_hash
TOKEN_PERMIT_TYPEHASH = TOKEN_PERMIT_SCHEMA.type_hash


def create_eip712_domain(
    name: str, version: str, chain_id: int, verifying_contract: str
) -> Dict[str, Any]:
    """Create the EIP-712 domain dict for ``eth_account`` signing."""
    return {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": to_checksum_address(verifying_contract),
    }


def domain_separator(
    name: str, version: str, chain_id: int, verifying_contract: str
) -> bytes:
    """Compute the 32-byte domain separator.

    Args:
        name: Protocol name
        version: Protocol version
        chain_id: Chain ID the deployment lives on
        verifying_contract: Address of the verifying contract

    Returns:
        keccak256 of the ABI-encoded domain struct
    """
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                keccak(text=name),
                keccak(text=version),
                chain_id,
                to_checksum_address(verifying_contract),
            ],
        )
    )


def hash_struct(schema: TypedSchema, values: Sequence[Any]) -> bytes:
    """Hash one struct instance: ``keccak(typeHash ‖ enc(values)...)``.

    Raises:
        ValueError: If the number of values does not match the schema
    """
    if len(values) != len(schema.fields):
        raise ValueError(
            f"{schema.name} takes {len(schema.fields)} fields, got {len(values)}"
        )
    return keccak(
        encode(["bytes32", *schema.field_types], [schema.type_hash, *values])
    )


def typed_data_digest(separator: bytes, struct_hash: bytes) -> bytes:
    """Final EIP-712 digest that is actually signed."""
    return keccak(b"\x19\x01" + separator + struct_hash)
