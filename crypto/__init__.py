"""
BSV Wallet Templates - Cryptographic Operations Module

This module provides the cryptographic helpers the script templates need:
- HASH160 / double SHA256 digests
- secp256k1 public and private key wrappers
- DER and checksig signature encodings with sighash scope flags

Dependencies:
- coincurve: Fast secp256k1 operations
- pycryptodome: RIPEMD160
- hashlib: SHA256
"""

from .exceptions import (
    CryptoError,
    InvalidKeyError,
    InvalidSignatureError,
)
from .keys import (
    PrivateKey,
    PublicKey,
    hash160,
    hash256,
    sha256,
)
from .signatures import (
    ECDSASignature,
    TransactionSignature,
    signature_from_wallet,
    SIGHASH_ALL,
    SIGHASH_NONE,
    SIGHASH_SINGLE,
    SIGHASH_FORKID,
    SIGHASH_ANYONECANPAY,
)

__all__ = [
    "CryptoError",
    "InvalidKeyError",
    "InvalidSignatureError",
    "PrivateKey",
    "PublicKey",
    "hash160",
    "hash256",
    "sha256",
    "ECDSASignature",
    "TransactionSignature",
    "signature_from_wallet",
    "SIGHASH_ALL",
    "SIGHASH_NONE",
    "SIGHASH_SINGLE",
    "SIGHASH_FORKID",
    "SIGHASH_ANYONECANPAY",
]
