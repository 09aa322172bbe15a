"""
Wallet Exceptions for BSV Wallet Templates

This module defines exceptions raised around the external BRC-100 wallet.
"""


class WalletError(Exception):
    """Base exception for wallet interaction errors."""

    def __init__(self, message: str, operation: str = None):
        super().__init__(message)
        self.operation = operation


class WalletParamsError(WalletError):
    """Raised when wallet derivation parameters are malformed."""
    pass


class DerivationError(WalletError):
    """Raised when a BRC-29 derivation key cannot be generated."""
    pass
