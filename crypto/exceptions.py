"""
Cryptographic Exceptions for BSV Wallet Templates

This module defines custom exceptions for key, hash and signature handling.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidKeyError(CryptoError):
    """Raised when a key is invalid or malformed."""
    pass


class InvalidSignatureError(CryptoError):
    """Raised when a signature is invalid, malformed or verification fails."""
    pass
