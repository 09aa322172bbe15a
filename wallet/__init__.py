"""
BSV Wallet Templates - Wallet Module

This module describes the external BRC-100 wallet the templates sign with:
- WalletInterface: get_public_key, create_signature, create_action
- WalletDerivationParams: protocol / key / counterparty selection
- BRC-29 derivation helper for self-paid outputs
"""

from .exceptions import WalletError, WalletParamsError, DerivationError
from .interface import (
    WalletInterface,
    WalletDerivationParams,
    DEFAULT_P2PKH_PARAMS,
    validate_derivation_params,
    call_wallet,
)
from .derivation import (
    BRC29_PROTOCOL_ID,
    get_derivation,
    split_key_id,
    derivation_instructions,
)

__all__ = [
    "WalletError",
    "WalletParamsError",
    "DerivationError",
    "WalletInterface",
    "WalletDerivationParams",
    "DEFAULT_P2PKH_PARAMS",
    "validate_derivation_params",
    "call_wallet",
    "BRC29_PROTOCOL_ID",
    "get_derivation",
    "split_key_id",
    "derivation_instructions",
]
