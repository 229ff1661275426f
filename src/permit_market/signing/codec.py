"""Packed signature decoding."""

from typing import Union

from eth_utils import to_bytes

from ..errors import FormatError, Reason
from .types import Signature


SIGNATURE_LENGTH = 65


def normalize_v(v: int) -> int:
    """Map raw recovery ids 0/1 to 27/28.

    Raises:
        FormatError: If the normalized value is not 27 or 28
    """
    if v < 27:
        v += 27
    if v not in (27, 28):
        raise FormatError(
            Reason.MALFORMED_SIGNATURE,
            "Invalid recovery indicator",
            {"v": v},
        )
    return v


def decode_signature(signature: Union[bytes, bytearray, str]) -> Signature:
    """Split a packed ``r‖s‖v`` signature into its parts.

    Args:
        signature: 65 raw bytes, or a hex string with or without 0x prefix

    Returns:
        Signature with ``v`` canonicalized to 27/28

    Raises:
        FormatError: If the length is not 65 bytes or ``v`` is invalid
    """
    if isinstance(signature, str):
        try:
            raw = to_bytes(hexstr=signature)
        except ValueError as exc:
            raise FormatError(
                Reason.MALFORMED_SIGNATURE, f"Signature is not valid hex: {exc}"
            ) from exc
    else:
        raw = bytes(signature)

    if len(raw) != SIGNATURE_LENGTH:
        raise FormatError(
            Reason.MALFORMED_SIGNATURE,
            "Signature must be exactly 65 bytes",
            {"length": len(raw)},
        )

    return Signature(
        r=int.from_bytes(raw[0:32], "big"),
        s=int.from_bytes(raw[32:64], "big"),
        v=normalize_v(raw[64]),
    )


def signature_from_vrs(v: int, r: int, s: int) -> Signature:
    """Build a Signature from separate components, normalizing ``v``."""
    return Signature(r=r, s=s, v=normalize_v(v))
