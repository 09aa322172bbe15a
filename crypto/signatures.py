"""
ECDSA Transaction Signatures for BSV Wallet Templates

This module provides the DER signature model and the checksig format
(DER signature followed by one sighash scope byte) used in unlocking scripts.

References:
- BIP66 strict DER: https://github.com/bitcoin/bips/blob/master/bip-0066.mediawiki
- BIP62 low-S: https://github.com/bitcoin/bips/blob/master/bip-0062.mediawiki
- SIGHASH_FORKID: https://github.com/bitcoin-sv/bitcoin-sv/blob/master/doc/abc/replay-protected-sighash.md
"""

from dataclasses import dataclass
from typing import List, Union

from .exceptions import InvalidSignatureError
from .keys import CURVE_ORDER


# Sighash scope flags
SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_FORKID = 0x40
SIGHASH_ANYONECANPAY = 0x80

SIGHASH_BASE_MASK = 0x1f


@dataclass
class ECDSASignature:
    """
    ECDSA signature representation.
    """
    r: int
    s: int

    def __post_init__(self):
        """Validate signature components."""
        if not (1 <= self.r < CURVE_ORDER):
            raise InvalidSignatureError("Invalid r value")
        if not (1 <= self.s < CURVE_ORDER):
            raise InvalidSignatureError("Invalid s value")

    @classmethod
    def from_der(cls, der_bytes: bytes) -> 'ECDSASignature':
        """
        Parse DER-encoded signature.

        Args:
            der_bytes: DER-encoded signature

        Returns:
            ECDSASignature object
        """
        if len(der_bytes) < 8:
            raise InvalidSignatureError("DER signature too short")

        if der_bytes[0] != 0x30:
            raise InvalidSignatureError("Invalid DER signature header")

        length = der_bytes[1]
        if length != len(der_bytes) - 2:
            raise InvalidSignatureError("Invalid DER length")

        if der_bytes[2] != 0x02:
            raise InvalidSignatureError("Invalid r component")

        r_length = der_bytes[3]
        s_offset = 4 + r_length
        if s_offset + 2 > len(der_bytes):
            raise InvalidSignatureError("Invalid r length")
        r = int.from_bytes(der_bytes[4:s_offset], 'big')

        if der_bytes[s_offset] != 0x02:
            raise InvalidSignatureError("Invalid s component")

        s_length = der_bytes[s_offset + 1]
        if s_offset + 2 + s_length != len(der_bytes):
            raise InvalidSignatureError("Invalid s length")
        s = int.from_bytes(der_bytes[s_offset + 2:], 'big')

        return cls(r=r, s=s)

    def to_der(self) -> bytes:
        """
        Encode signature in DER format.

        Returns:
            DER-encoded signature
        """
        r_bytes = self.r.to_bytes((self.r.bit_length() + 7) // 8, 'big')
        s_bytes = self.s.to_bytes((self.s.bit_length() + 7) // 8, 'big')

        # Keep both integers positive
        if r_bytes[0] >= 0x80:
            r_bytes = b'\x00' + r_bytes
        if s_bytes[0] >= 0x80:
            s_bytes = b'\x00' + s_bytes

        r_der = b'\x02' + bytes([len(r_bytes)]) + r_bytes
        s_der = b'\x02' + bytes([len(s_bytes)]) + s_bytes

        sequence = r_der + s_der
        return b'\x30' + bytes([len(sequence)]) + sequence

    def is_low_s(self) -> bool:
        """Check if the signature has a low s value (BIP62)."""
        return self.s <= CURVE_ORDER // 2

    def normalized(self) -> 'ECDSASignature':
        """Return the low-S form of this signature."""
        if self.is_low_s():
            return self
        return ECDSASignature(r=self.r, s=CURVE_ORDER - self.s)


@dataclass
class TransactionSignature(ECDSASignature):
    """
    ECDSA signature bound to a sighash scope.
    """
    scope: int = SIGHASH_ALL | SIGHASH_FORKID

    def __post_init__(self):
        super().__post_init__()
        if not (0 <= self.scope <= 0xff):
            raise InvalidSignatureError(f"Invalid sighash scope {self.scope}")

    @classmethod
    def from_signature(cls, signature: ECDSASignature, scope: int) -> 'TransactionSignature':
        normalized = signature.normalized()
        return cls(r=normalized.r, s=normalized.s, scope=scope)

    @classmethod
    def from_checksig_format(cls, data: bytes) -> 'TransactionSignature':
        """
        Parse a signature as it appears in an unlocking script.

        Args:
            data: DER signature followed by the scope byte

        Returns:
            TransactionSignature object
        """
        if len(data) < 9:
            raise InvalidSignatureError("Checksig signature too short")
        signature = ECDSASignature.from_der(data[:-1])
        return cls(r=signature.r, s=signature.s, scope=data[-1])

    def to_checksig_format(self) -> bytes:
        """DER signature followed by the scope byte."""
        return self.to_der() + bytes([self.scope])


def signature_from_wallet(signature: Union[str, bytes, bytearray, List[int]]) -> ECDSASignature:
    """
    Decode a DER signature returned by a wallet.

    Wallets return signatures as hex strings, raw bytes or lists of byte
    values depending on their transport.

    Args:
        signature: DER signature in any of the accepted encodings

    Returns:
        ECDSASignature object

    Raises:
        InvalidSignatureError: If the value cannot be decoded
    """
    if isinstance(signature, str):
        try:
            der = bytes.fromhex(signature)
        except ValueError as e:
            raise InvalidSignatureError(f"Signature is not valid hex: {e}")
    elif isinstance(signature, (bytes, bytearray)):
        der = bytes(signature)
    elif isinstance(signature, list):
        try:
            der = bytes(signature)
        except (TypeError, ValueError) as e:
            raise InvalidSignatureError(f"Signature byte list is invalid: {e}")
    else:
        raise InvalidSignatureError(
            f"Unsupported signature type: {type(signature).__name__}"
        )
    return ECDSASignature.from_der(der)
