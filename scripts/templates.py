"""
BSV Wallet Templates - Script Template Base

This module provides the contracts shared by the script templates:
- lock targets: the three ways a P2PKH-style output names its key
- UnlockTemplate: signs one input and estimates its unlocking script size
- the wallet signing flow (preimage -> wallet signature -> checksig format)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from crypto.exceptions import CryptoError
from crypto.keys import PublicKey, hash160, hash256
from crypto.signatures import TransactionSignature, signature_from_wallet
from transaction.preimage import calculate_preimage
from wallet.exceptions import WalletError
from wallet.interface import WalletDerivationParams, call_wallet

from .exceptions import TemplateError
from .script import Script, UnlockingScript


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PubKeyHashTarget:
    """Lock to an explicit 20-byte public key hash."""
    pubkeyhash: bytes


@dataclass(frozen=True)
class PublicKeyTarget:
    """Lock to the hash of a hex encoded public key."""
    public_key: str


@dataclass(frozen=True)
class WalletTarget:
    """Lock to a key derived by the wallet."""
    params: WalletDerivationParams


LockTarget = Union[PubKeyHashTarget, PublicKeyTarget, WalletTarget]


def lock_target(
    pubkeyhash: Optional[Union[bytes, bytearray, list]] = None,
    public_key: Optional[str] = None,
    wallet_params: Optional[Union[WalletDerivationParams, dict]] = None
) -> Optional[LockTarget]:
    """
    Fold the mutually exclusive lock keywords into one target.

    Args:
        pubkeyhash: Raw public key hash
        public_key: Public key hex
        wallet_params: Wallet derivation parameters

    Returns:
        The selected target, or None when nothing was given

    Raises:
        TemplateError: If more than one keyword is set or a value has the wrong type
    """
    given = [value is not None for value in (pubkeyhash, public_key, wallet_params)]
    if sum(given) > 1:
        raise TemplateError("Provide only one of pubkeyhash, public_key or wallet_params")

    if pubkeyhash is not None:
        if not isinstance(pubkeyhash, (bytes, bytearray, list)):
            raise TemplateError("pubkeyhash must be bytes")
        try:
            return PubKeyHashTarget(bytes(pubkeyhash))
        except (TypeError, ValueError) as e:
            raise TemplateError(f"pubkeyhash must be bytes: {e}")
    if public_key is not None:
        if not isinstance(public_key, str):
            raise TemplateError("public_key must be a hex string")
        return PublicKeyTarget(public_key)
    if wallet_params is not None:
        try:
            return WalletTarget(WalletDerivationParams.coerce(wallet_params, "walletParams"))
        except WalletError as e:
            raise TemplateError(str(e))
    return None


def wallet_public_key(wallet: Any, params: WalletDerivationParams,
                      for_self: Optional[bool] = None) -> PublicKey:
    """
    Fetch a derived public key from the wallet.

    Args:
        wallet: BRC-100 wallet
        params: Key selection
        for_self: Passed as forSelf when set

    Returns:
        PublicKey instance
    """
    args = params.to_dict()
    if for_self is not None:
        args["forSelf"] = for_self
    result = call_wallet(wallet, "get_public_key", args)
    try:
        return PublicKey.from_hex(result.get("publicKey"))
    except CryptoError as e:
        raise WalletError(f"Wallet returned an invalid public key: {e}", operation="get_public_key")


def resolve_pubkeyhash(target: Optional[LockTarget], wallet: Any,
                       default_params: WalletDerivationParams) -> bytes:
    """
    Resolve a lock target to the 20-byte public key hash it locks to.

    Args:
        target: Lock target, or None for the wallet default key
        wallet: Wallet used for WalletTarget and the default key
        default_params: Key used when no target is given

    Returns:
        20-byte public key hash
    """
    if target is None:
        if wallet is None:
            raise TemplateError("pubkeyhash or wallet is required")
        target = WalletTarget(default_params)

    if isinstance(target, PubKeyHashTarget):
        data = target.pubkeyhash
    elif isinstance(target, PublicKeyTarget):
        try:
            data = hash160(PublicKey.from_hex(target.public_key).bytes)
        except CryptoError as e:
            raise TemplateError(f"Invalid public key: {e}")
    elif isinstance(target, WalletTarget):
        if wallet is None:
            raise TemplateError("Wallet is required when using wallet derivation parameters")
        data = wallet_public_key(wallet, target.params).hash160()
    else:
        raise TemplateError(f"Unsupported lock target: {type(target).__name__}")

    if len(data) != 20:
        raise TemplateError("Failed to generate valid public key hash (must be 20 bytes)")
    return data


def sign_input(
    wallet: Any,
    tx,
    input_index: int,
    params: WalletDerivationParams,
    sign_outputs: str = "all",
    anyone_can_pay: bool = False,
    source_satoshis: Optional[int] = None,
    locking_script: Optional[Script] = None,
    for_self: Optional[bool] = None
) -> Tuple[bytes, bytes]:
    """
    Have the wallet sign one input.

    The wallet signs hash256(preimage) directly; its DER signature is
    re-encoded in low-S checksig format with the scope byte appended.

    Args:
        wallet: BRC-100 wallet
        tx: Transaction being signed
        input_index: Input to sign
        params: Signing key selection
        sign_outputs: "all", "none" or "single"
        anyone_can_pay: ANYONECANPAY flag
        source_satoshis: Spent output value override
        locking_script: Spent output script override
        for_self: forSelf flag for the public key lookup

    Returns:
        Tuple of (checksig signature bytes, compressed public key bytes)
    """
    result = calculate_preimage(
        tx, input_index, sign_outputs, anyone_can_pay, source_satoshis, locking_script
    )

    args = params.to_dict()
    args["hashToDirectlySign"] = list(hash256(result.preimage))
    signed = call_wallet(wallet, "create_signature", args)

    public_key = wallet_public_key(wallet, params, for_self)

    try:
        raw = signature_from_wallet(signed.get("signature"))
        signature = TransactionSignature.from_signature(raw, result.signature_scope)
    except CryptoError as e:
        raise WalletError(f"Wallet returned an invalid signature: {e}", operation="create_signature")

    logger.debug(f"Input {input_index} signed with scope 0x{result.signature_scope:02x}")
    return signature.to_checksig_format(), public_key.bytes


class UnlockTemplate(ABC):
    """
    Produces the unlocking script for one input of a transaction.
    """

    @abstractmethod
    def sign(self, tx, input_index: int) -> UnlockingScript:
        """Build the unlocking script for input_index of tx."""

    @abstractmethod
    def estimate_length(self, tx, input_index: int) -> int:
        """Upper bound of the unlocking script size in bytes."""


class ScriptTemplate(ABC):
    """
    Base class for locking/unlocking script templates.
    """

    def __init__(self, wallet: Any = None):
        self.wallet = wallet
        self.logger = logging.getLogger(self.__class__.__module__)

    @abstractmethod
    def lock(self, *args, **kwargs) -> Script:
        """Create a locking script."""

    @abstractmethod
    def unlock(self, *args, **kwargs) -> UnlockTemplate:
        """Create an unlocking template."""
