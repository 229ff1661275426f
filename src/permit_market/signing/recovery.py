"""Signer recovery for EIP-712 digests.

Malleability policy: signatures whose ``s`` lies in the upper half of the
curve order are rejected outright instead of being canonicalized.
"""

from typing import Any, Sequence, Union

from eth_abi.exceptions import EncodingError
from eth_keys import keys
from eth_keys.constants import SECPK1_N
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError

from ..errors import AuthorizationError, Reason
from .codec import decode_signature
from .hashing import TypedSchema, hash_struct, typed_data_digest
from .types import Signature
from .utils import ZERO_ADDRESS


SECPK1_HALF_N = SECPK1_N // 2


def recover_signer(digest: bytes, signature: Signature) -> str:
    """Recover the checksum address that signed ``digest``.

    Args:
        digest: 32-byte EIP-712 digest
        signature: Decoded signature (``v`` in 27/28)

    Returns:
        Checksum address of the signer

    Raises:
        AuthorizationError: If the signature is zero, high-s, or unrecoverable
    """
    if signature.r == 0 or signature.s == 0:
        raise AuthorizationError(Reason.INVALID_SIGNATURE, "Zero signature scalar")
    if signature.s > SECPK1_HALF_N:
        raise AuthorizationError(
            Reason.INVALID_SIGNATURE, "Non-canonical signature (high s)"
        )

    try:
        key_signature = keys.Signature(vrs=(signature.v - 27, signature.r, signature.s))
        public_key = key_signature.recover_public_key_from_msg_hash(digest)
    except (BadSignature, KeyValidationError) as exc:
        raise AuthorizationError(
            Reason.INVALID_SIGNATURE, f"Signature recovery failed: {exc}"
        ) from exc

    recovered = public_key.to_checksum_address()
    if recovered == ZERO_ADDRESS:
        raise AuthorizationError(Reason.INVALID_SIGNATURE, "Recovered null signer")
    return recovered


def recover_typed_signer(
    separator: bytes,
    schema: TypedSchema,
    values: Sequence[Any],
    signature: Union[bytes, str, Signature],
) -> str:
    """Hash a typed payload under ``separator`` and recover its signer.

    Raises:
        FormatError: If the signature cannot be decoded
        AuthorizationError: If the payload does not fit its schema or the
            signature is invalid
    """
    if not isinstance(signature, Signature):
        signature = decode_signature(signature)
    try:
        struct_hash = hash_struct(schema, values)
    except EncodingError as exc:
        raise AuthorizationError(
            Reason.INVALID_SIGNATURE, f"Payload does not fit {schema.name}: {exc}"
        ) from exc
    digest = typed_data_digest(separator, struct_hash)
    return recover_signer(digest, signature)
