"""
BSV Wallet Templates - P2PKH Template

Pay-to-public-key-hash locking scripts whose key is named by a raw hash, a
public key, or wallet derivation parameters, and wallet-signed unlocking
scripts of the form <signature> <compressed public key>.
"""

from typing import Any, Optional, Sequence, Union

from wallet.interface import DEFAULT_P2PKH_PARAMS, WalletDerivationParams

from .exceptions import TemplateError
from .opcodes import OpCode
from .script import LockingScript, Script, UnlockingScript
from .templates import (
    ScriptTemplate,
    UnlockTemplate,
    lock_target,
    resolve_pubkeyhash,
    sign_input,
)


# Signature push (1 + 73) and compressed public key push (1 + 33)
P2PKH_UNLOCK_ESTIMATE = 108


def p2pkh_script(pubkeyhash: bytes) -> LockingScript:
    """OP_DUP OP_HASH160 <20-byte hash> OP_EQUALVERIFY OP_CHECKSIG"""
    script = LockingScript()
    script.write_opcode(OpCode.OP_DUP)
    script.write_opcode(OpCode.OP_HASH160)
    script.write_bin(pubkeyhash)
    script.write_opcode(OpCode.OP_EQUALVERIFY)
    script.write_opcode(OpCode.OP_CHECKSIG)
    return script


class P2PKHUnlockTemplate(UnlockTemplate):
    """
    Wallet-signed P2PKH unlocking template.
    """

    def __init__(
        self,
        wallet: Any,
        params: WalletDerivationParams,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ):
        self.wallet = wallet
        self.params = params
        self.sign_outputs = sign_outputs
        self.anyone_can_pay = anyone_can_pay
        self.source_satoshis = source_satoshis
        self.locking_script = locking_script

    def sign(self, tx, input_index: int) -> UnlockingScript:
        signature, public_key = sign_input(
            self.wallet,
            tx,
            input_index,
            self.params,
            self.sign_outputs,
            self.anyone_can_pay,
            self.source_satoshis,
            self.locking_script,
        )
        script = UnlockingScript()
        script.write_bin(signature)
        script.write_bin(public_key)
        return script

    def estimate_length(self, tx=None, input_index: int = 0) -> int:
        return P2PKH_UNLOCK_ESTIMATE


class P2PKH(ScriptTemplate):
    """
    Pay-to-public-key-hash template.

    Example:
        >>> template = P2PKH(wallet)
        >>> locking_script = template.lock(public_key="02...")
        >>> unlocker = template.unlock(sign_outputs="single")
    """

    def lock(
        self,
        pubkeyhash: Optional[Union[bytes, bytearray, list]] = None,
        public_key: Optional[str] = None,
        wallet_params: Optional[Union[WalletDerivationParams, dict]] = None
    ) -> LockingScript:
        """
        Create a P2PKH locking script.

        Exactly one of the keywords may be given; with none, the wallet's
        default P2PKH key ([2, "p2pkh"], "0", "self") is used.

        Args:
            pubkeyhash: 20-byte public key hash
            public_key: Public key hex, hashed with HASH160
            wallet_params: Derivation parameters for a wallet key

        Returns:
            LockingScript

        Raises:
            TemplateError: If no key source is available or the hash is not 20 bytes
        """
        target = lock_target(pubkeyhash, public_key, wallet_params)
        data = resolve_pubkeyhash(target, self.wallet, DEFAULT_P2PKH_PARAMS)
        return p2pkh_script(data)

    def unlock(
        self,
        protocol_id: Sequence = (2, "p2pkh"),
        key_id: str = "0",
        counterparty: str = "self",
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ) -> P2PKHUnlockTemplate:
        """
        Create an unlocking template signed by the wallet.

        Args:
            protocol_id: Wallet protocol of the signing key
            key_id: Wallet key identifier
            counterparty: Wallet counterparty
            sign_outputs: "all", "none" or "single"
            anyone_can_pay: ANYONECANPAY flag
            source_satoshis: Spent output value, when no source transaction is attached
            locking_script: Spent output script, when no source transaction is attached

        Returns:
            P2PKHUnlockTemplate

        Raises:
            TemplateError: If no wallet is attached
        """
        if self.wallet is None:
            raise TemplateError("Wallet is required for unlocking")

        params = WalletDerivationParams(
            protocol_id=tuple(protocol_id),
            key_id=key_id,
            counterparty=counterparty,
        )
        return P2PKHUnlockTemplate(
            self.wallet, params, sign_outputs, anyone_can_pay, source_satoshis, locking_script
        )
