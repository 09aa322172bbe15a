"""
BSV Wallet Templates - Wallet Interface

This module defines the subset of the BRC-100 wallet contract used by the
script templates and the transaction builder, together with the derivation
parameters that select a wallet key.

Wallet methods take a single dictionary argument and return a dictionary,
using the BRC-100 camelCase field names (protocolID, keyID, counterparty,
hashToDirectlySign, ...).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .exceptions import WalletError, WalletParamsError


logger = logging.getLogger(__name__)


class WalletInterface(ABC):
    """
    BRC-100 wallet operations consumed by this package.
    """

    @abstractmethod
    def get_public_key(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """
        Derive a public key.

        Args:
            args: {"protocolID", "keyID", "counterparty", "forSelf"?}

        Returns:
            {"publicKey": compressed public key hex}
        """

    @abstractmethod
    def create_signature(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sign a 32-byte digest with a derived key.

        Args:
            args: {"hashToDirectlySign", "protocolID", "keyID", "counterparty"}

        Returns:
            {"signature": DER signature as hex, bytes or list of byte values}
        """

    @abstractmethod
    def create_action(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create (and usually sign and broadcast) a transaction.

        Args:
            args: {"description", "inputBEEF"?, "inputs"?, "outputs", "options"}

        Returns:
            {"txid", "tx", ...}
        """


@dataclass(frozen=True)
class WalletDerivationParams:
    """
    Selects a wallet key: protocol, key identifier and counterparty.
    """
    protocol_id: Tuple[int, str]
    key_id: str
    counterparty: str = "self"

    def __post_init__(self):
        validate_derivation_params({
            "protocolID": self.protocol_id,
            "keyID": self.key_id,
            "counterparty": self.counterparty,
        })
        # Frozen dataclass: normalize lists to tuples
        object.__setattr__(self, "protocol_id", tuple(self.protocol_id))

    def to_dict(self) -> Dict[str, Any]:
        """Wire form used in wallet calls."""
        return {
            "protocolID": list(self.protocol_id),
            "keyID": self.key_id,
            "counterparty": self.counterparty,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], param_name: str = "parameters") -> 'WalletDerivationParams':
        """
        Build from the wire form, defaulting counterparty to "self".

        Args:
            data: {"protocolID", "keyID", "counterparty"?}
            param_name: Name used in error messages

        Returns:
            WalletDerivationParams instance
        """
        validate_derivation_params(data, param_name)
        return cls(
            protocol_id=tuple(data["protocolID"]),
            key_id=data["keyID"],
            counterparty=data.get("counterparty") or "self",
        )

    @classmethod
    def coerce(cls, value: Union['WalletDerivationParams', Dict[str, Any]],
               param_name: str = "parameters") -> 'WalletDerivationParams':
        if isinstance(value, cls):
            return value
        return cls.from_dict(value, param_name)


def validate_derivation_params(params: Any, param_name: str = "parameters") -> None:
    """
    Validate wallet derivation parameters in wire form.

    Args:
        params: Candidate {"protocolID", "keyID", "counterparty"?} mapping
        param_name: Name used in error messages

    Raises:
        WalletParamsError: If the shape is invalid
    """
    if not isinstance(params, dict):
        raise WalletParamsError(f"Invalid {param_name}: must be an object with protocolID and keyID")

    protocol_id = params.get("protocolID")
    if not protocol_id:
        raise WalletParamsError(f"Invalid {param_name}: protocolID is required")
    if not isinstance(protocol_id, (list, tuple)) or len(protocol_id) != 2:
        raise WalletParamsError(f"Invalid {param_name}: protocolID must be an array of [number, string]")

    security_level, protocol_name = protocol_id
    if isinstance(security_level, bool) or not isinstance(security_level, int) \
            or not isinstance(protocol_name, str):
        raise WalletParamsError(f"Invalid {param_name}: protocolID must be [number, string]")

    if params.get("keyID") is None:
        raise WalletParamsError(f"Invalid {param_name}: keyID is required")
    if not isinstance(params["keyID"], str):
        raise WalletParamsError(f"Invalid {param_name}: keyID must be a string")

    counterparty = params.get("counterparty")
    if counterparty is not None and not isinstance(counterparty, str):
        raise WalletParamsError(
            f'Invalid {param_name}: counterparty must be a string (or omit for default "self")'
        )


DEFAULT_P2PKH_PARAMS = WalletDerivationParams(protocol_id=(2, "p2pkh"), key_id="0")


def call_wallet(wallet: Any, operation: str, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Invoke a wallet operation, wrapping failures in WalletError.

    Args:
        wallet: BRC-100 wallet object
        operation: Method name (get_public_key, create_signature, create_action)
        args: Operation arguments

    Returns:
        Result dictionary returned by the wallet

    Raises:
        WalletError: If the wallet raises or returns something other than a dict
    """
    if wallet is None:
        raise WalletError(f"Wallet is required for {operation}", operation=operation)

    logger.debug(f"Calling wallet.{operation}")
    try:
        result = getattr(wallet, operation)(args)
    except WalletError:
        raise
    except Exception as e:
        raise WalletError(f"Wallet {operation} failed: {e}", operation=operation) from e

    if not isinstance(result, dict):
        raise WalletError(
            f"Wallet {operation} returned {type(result).__name__}, expected an object",
            operation=operation,
        )
    return result
