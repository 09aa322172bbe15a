"""
BSV Wallet Templates - BRC-29 Derivation Helper

This module generates fresh BRC-29 key identifiers for outputs that are paid
back to the wallet itself. The key identifier is "<prefix> <suffix>", each part
being the base64 encoding of 8 random bytes; the wallet can later recover the
key from the prefix and suffix recorded in an output's customInstructions.
"""

import base64
import json
import secrets
from typing import Any, Dict, Tuple

from .exceptions import DerivationError


BRC29_PROTOCOL_ID = [2, "3241645161d8"]
DERIVATION_ENTROPY_BYTES = 8


def _random_base64(size: int) -> str:
    data = secrets.token_bytes(size)
    if len(data) != size:
        raise DerivationError(f"Random source returned {len(data)} of {size} bytes")
    return base64.b64encode(data).decode("ascii")


def get_derivation() -> Dict[str, Any]:
    """
    Generate a fresh BRC-29 derivation.

    Returns:
        Dictionary with "protocolID" (BRC-29 protocol) and "keyID"
        ("<prefix> <suffix>")
    """
    prefix = _random_base64(DERIVATION_ENTROPY_BYTES)
    suffix = _random_base64(DERIVATION_ENTROPY_BYTES)
    return {
        "protocolID": list(BRC29_PROTOCOL_ID),
        "keyID": f"{prefix} {suffix}",
    }


def split_key_id(key_id: str) -> Tuple[str, str]:
    """
    Split a BRC-29 key identifier into its prefix and suffix.

    Args:
        key_id: Key identifier of the form "<prefix> <suffix>"

    Returns:
        Tuple of (derivation_prefix, derivation_suffix)

    Raises:
        DerivationError: If the key identifier does not have two parts
    """
    parts = key_id.split(" ") if isinstance(key_id, str) else []
    if len(parts) != 2 or not all(parts):
        raise DerivationError(f"Not a BRC-29 key identifier: {key_id!r}")
    return parts[0], parts[1]


def derivation_instructions(key_id: str) -> str:
    """JSON customInstructions recording where a BRC-29 key came from."""
    prefix, suffix = split_key_id(key_id)
    return json.dumps(
        {"derivationPrefix": prefix, "derivationSuffix": suffix},
        separators=(",", ":"),
    )
