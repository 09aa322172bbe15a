"""
Key Handling and Hashing for BSV Wallet Templates

This module wraps secp256k1 key operations and the Bitcoin hash functions
used by locking scripts and transaction identifiers.

References:
- SEC1 point encoding: https://www.secg.org/sec1-v2.pdf
- HASH160: RIPEMD160(SHA256(x))
"""

import hashlib
import secrets
from typing import Optional, Union

from coincurve import PrivateKey as CoinCurvePrivateKey, PublicKey as CoinCurvePublicKey
from Crypto.Hash import RIPEMD160

from .exceptions import InvalidKeyError


CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def sha256(data: bytes) -> bytes:
    """Compute a single SHA256 digest."""
    return hashlib.sha256(data).digest()


def hash256(data: bytes) -> bytes:
    """
    Compute double SHA256 (used for transaction ids and sighash digests).

    Args:
        data: Input data to hash

    Returns:
        32-byte digest
    """
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """
    Compute HASH160 (RIPEMD160(SHA256(data))).

    Args:
        data: Input data to hash

    Returns:
        20-byte HASH160 digest
    """
    rmd = RIPEMD160.new()
    rmd.update(hashlib.sha256(data).digest())
    return rmd.digest()


class PrivateKey:
    """
    Wrapper for private key operations.

    Signing normally happens inside the external wallet; this class backs
    local signers such as the deterministic test wallet.
    """

    def __init__(self, key_bytes: Optional[bytes] = None):
        """
        Initialize private key.

        Args:
            key_bytes: 32-byte private key. If None, generates random key.
        """
        try:
            if key_bytes is None:
                key_bytes = secrets.randbits(256).to_bytes(32, 'big')
                while int.from_bytes(key_bytes, 'big') == 0 or \
                        int.from_bytes(key_bytes, 'big') >= CURVE_ORDER:
                    key_bytes = secrets.randbits(256).to_bytes(32, 'big')

            if not isinstance(key_bytes, bytes) or len(key_bytes) != 32:
                raise InvalidKeyError("Private key must be 32 bytes")

            key_int = int.from_bytes(key_bytes, 'big')
            if key_int == 0 or key_int >= CURVE_ORDER:
                raise InvalidKeyError("Private key out of valid range")

            self._key = CoinCurvePrivateKey(key_bytes)

        except Exception as e:
            if isinstance(e, InvalidKeyError):
                raise
            raise InvalidKeyError(f"Failed to create private key: {e}")

    @property
    def bytes(self) -> bytes:
        """Get private key as bytes."""
        return self._key.secret

    @property
    def hex(self) -> str:
        """Get private key as hex string."""
        return self._key.secret.hex()

    def public_key(self) -> 'PublicKey':
        """Get corresponding public key."""
        return PublicKey(self._key.public_key)

    def sign_digest(self, digest: bytes) -> bytes:
        """
        Sign a precomputed 32-byte digest.

        Args:
            digest: 32-byte message digest, used as-is

        Returns:
            DER-encoded low-S signature
        """
        if len(digest) != 32:
            raise InvalidKeyError("Message digest must be 32 bytes")
        return self._key.sign(digest, hasher=None)


class PublicKey:
    """
    Wrapper for public key operations.
    """

    def __init__(self, key_data: Union[bytes, CoinCurvePublicKey]):
        """
        Initialize public key.

        Args:
            key_data: Public key bytes (33 or 65 bytes) or CoinCurvePublicKey
        """
        try:
            if isinstance(key_data, CoinCurvePublicKey):
                self._key = key_data
            else:
                if not isinstance(key_data, bytes):
                    raise InvalidKeyError("Public key data must be bytes")
                if len(key_data) not in [33, 65]:
                    raise InvalidKeyError("Public key must be 33 or 65 bytes")
                self._key = CoinCurvePublicKey(key_data)
        except Exception as e:
            if isinstance(e, InvalidKeyError):
                raise
            raise InvalidKeyError(f"Failed to create public key: {e}")

    @classmethod
    def from_hex(cls, key_hex: str) -> 'PublicKey':
        """
        Parse a hex encoded SEC1 public key.

        Args:
            key_hex: Compressed or uncompressed public key hex

        Returns:
            PublicKey instance

        Raises:
            InvalidKeyError: If the string is not valid hex or not a curve point
        """
        if not isinstance(key_hex, str):
            raise InvalidKeyError("Public key must be a hex string")
        try:
            key_bytes = bytes.fromhex(key_hex)
        except ValueError as e:
            raise InvalidKeyError(f"Public key is not valid hex: {e}")
        return cls(key_bytes)

    @property
    def bytes(self) -> bytes:
        """Get compressed public key as bytes."""
        return self._key.format(compressed=True)

    @property
    def hex(self) -> str:
        """Get compressed public key as hex string."""
        return self.bytes.hex()

    def hash160(self) -> bytes:
        """HASH160 of the compressed encoding (the P2PKH public key hash)."""
        return hash160(self.bytes)

    def verify_digest(self, signature: bytes, digest: bytes) -> bool:
        """
        Verify a DER signature over a precomputed digest.

        Args:
            signature: DER-encoded signature
            digest: 32-byte message digest

        Returns:
            True if signature is valid
        """
        if len(digest) != 32:
            return False
        try:
            return self._key.verify(signature, digest, hasher=None)
        except (ValueError, TypeError):
            return False

    def __eq__(self, other) -> bool:
        return isinstance(other, PublicKey) and self.bytes == other.bytes

    def __hash__(self) -> int:
        return hash(self.bytes)

    def __repr__(self) -> str:
        return f"PublicKey({self.hex})"
