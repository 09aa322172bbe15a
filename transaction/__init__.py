"""
BSV Wallet Templates - Transaction Construction and Signing

This module provides the transaction model, fee computation, BEEF envelopes,
the signature preimage calculator and createAction option validation.

The fluent TransactionBuilder depends on the script templates and lives in
transaction.builder.
"""

from .exceptions import *
from .transaction import Transaction, TransactionInput, TransactionOutput
from .fee_model import SatoshisPerKilobyte, DEFAULT_SAT_PER_KB
from .merkle_path import MerklePath, PathLeaf
from .beef import Beef, BeefTx
from .preimage import SignOutputs, PreimageResult, calculate_preimage, format_preimage, signature_scope
from .options import validate_options
from .settings import BuilderSettings

__all__ = [
    'Transaction',
    'TransactionInput',
    'TransactionOutput',
    'SatoshisPerKilobyte',
    'DEFAULT_SAT_PER_KB',
    'MerklePath',
    'PathLeaf',
    'Beef',
    'BeefTx',
    'SignOutputs',
    'PreimageResult',
    'calculate_preimage',
    'format_preimage',
    'signature_scope',
    'validate_options',
    'BuilderSettings',
    'TransactionError',
    'ValidationError',
    'PreimageError',
    'OpReturnError',
    'FeeError',
    'TransactionParsingError',
    'BeefError',
    'TransactionBuildError',
]
