"""
BSV Wallet Templates - Transaction Exceptions

This module defines custom exceptions for transaction construction, signing
and serialization.
"""


class TransactionError(Exception):
    """Base exception for transaction-related errors."""
    pass


class ValidationError(TransactionError):
    """Exception raised when builder parameters fail validation."""
    pass


class PreimageError(TransactionError):
    """Exception raised when a signature preimage cannot be computed."""
    pass


class OpReturnError(TransactionError):
    """Exception raised for OP_RETURN encoding errors."""
    pass


class FeeError(TransactionError):
    """Exception raised when fee computation fails."""
    pass


class TransactionParsingError(TransactionError):
    """Exception raised when serialized transaction data cannot be parsed."""
    pass


class BeefError(TransactionError):
    """Exception raised for BEEF and Merkle path encoding errors."""
    pass


class TransactionBuildError(TransactionError):
    """Exception raised during transaction building operations."""
    pass

