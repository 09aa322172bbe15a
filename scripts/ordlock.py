"""
BSV Wallet Templates - OrdLock Template

Order-lock contracts list a 1-satoshi BSV-20 token for sale. The locking
script carries an ordinal envelope with a BSV-20 transfer inscription, then
the contract with the seller's cancel key hash and the payment output the
buyer must create:

    OP_0 OP_IF "ord" OP_1 "application/bsv-20" OP_0 <transfer json> OP_ENDIF
    <contract prefix> <cancel pkh> <pay output> <contract suffix>
    [OP_RETURN <metadata json>]

Spending paths:
- cancel: <signature> <public key> OP_1, signed by the seller's wallet
- purchase: <output 0> <other outputs | OP_0> <preimage> OP_0
"""

import json
from typing import Any, Dict, Mapping, Optional, Sequence

from bitcoinlib.encoding import EncodingError, addr_base58_to_pubkeyhash

from transaction.preimage import calculate_preimage
from transaction.utils import serialize_output
from wallet.interface import WalletDerivationParams

from .exceptions import TemplateError
from .opcodes import OpCode
from .p2pkh import P2PKH, P2PKH_UNLOCK_ESTIMATE
from .script import LockingScript, Script, UnlockingScript
from .templates import ScriptTemplate, UnlockTemplate, sign_input


OLOCK_PREFIX = bytes.fromhex(
    '2097dfd76851bf465e8f715593b217714858bbe9570ff3bd5e33840a34e20ff0262102ba'
    '79df5f8ae7604a9830f03c7933028186aede0675a16f025dc4f8be8eec0382201008ce74'
    '80da41702918d1ec8e6849ba32b4d65b1e40dc669c31a1e6306b266c0000'
)

OLOCK_SUFFIX = bytes.fromhex(
    '615179547a75537a537a537a0079537a75527a527a7575615579008763567901c1615179'
    '57795779210ac407f0e4bd44bfc207355a778b046225a7068fc59ee7eda43ad905aadbff'
    'c800206c266b30e6a1319c66dc401e5bd6b432ba49688eecd118297041da8074ce081059'
    '795679615679aa0079610079517f517f517f517f517f517f517f517f517f517f517f517f'
    '517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f'
    '517f7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e'
    '7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e01007e81517a7561'
    '5779567956795679567961537956795479577995939521414136d08c5ed2bf3ba048afe6'
    'dcaebafeffffffffffffffffffffffffffffff00517951796151795179970079009f6300'
    '7952799367007968517a75517a75517a7561527a75517a517951795296a0630079527994'
    '527a75517a6853798277527982775379012080517f517f517f517f517f517f517f517f51'
    '7f517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f517f51'
    '7f517f517f517f517f7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c'
    '7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e7c7e01'
    '205279947f7754537993527993013051797e527e54797e58797e527e53797e52797e5779'
    '7e0079517a75517a75517a75517a75517a75517a75517a75517a75517a75517a75517a75'
    '517a75517a756100795779ac517a75517a75517a75517a75517a75517a75517a75517a75'
    '517a7561517a75517a756169587951797e58797eaa577961007982775179517958947f75'
    '51790128947f77517a75517a75618777777777777777777767557951876351795779a987'
    '6957795779ac777777777777777767006868'
)

BSV20_CONTENT_TYPE = "application/bsv-20"
DEFAULT_ORDLOCK_PROTOCOL = (0, "ordlock")


def _compact_json(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def address_to_pubkeyhash(address: str, name: str) -> bytes:
    """
    Decode a base58check P2PKH address.

    Args:
        address: Base58check address
        name: Parameter name, for error messages

    Returns:
        20-byte public key hash
    """
    try:
        pubkeyhash = addr_base58_to_pubkeyhash(address)
    except (EncodingError, AssertionError, ValueError, TypeError) as e:
        raise TemplateError(f"{name} is not a valid base58check address: {e}")
    if len(pubkeyhash) != 20:
        raise TemplateError(f"{name} does not encode a 20-byte public key hash")
    return bytes(pubkeyhash)


def _validate_lock_params(ord_address, pay_address, price, asset_id, metadata, item_data):
    if not ord_address or not isinstance(ord_address, str):
        raise TemplateError("ordAddress is required and must be a string")
    if not pay_address or not isinstance(pay_address, str):
        raise TemplateError("payAddress is required and must be a string")
    if isinstance(price, bool) or not isinstance(price, int) or price < 1:
        raise TemplateError("price is required and must be an integer greater than 0")
    if not asset_id or not isinstance(asset_id, str):
        raise TemplateError("assetId is required and must be a string")
    if metadata is not None and not isinstance(metadata, Mapping):
        raise TemplateError("metadata must be an object")
    if item_data is not None and not isinstance(item_data, Mapping):
        raise TemplateError("itemData must be an object")


class OrdLockCancelTemplate(UnlockTemplate):
    """
    Seller-side cancel: <signature> <public key> OP_1.
    """

    def __init__(self, wallet: Any, params: WalletDerivationParams, sign_outputs: str,
                 anyone_can_pay: bool, source_satoshis: Optional[int],
                 locking_script: Optional[Script]):
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
            for_self=True,
        )
        script = UnlockingScript()
        script.write_bin(signature)
        script.write_bin(public_key)
        script.write_opcode(OpCode.OP_1)
        return script

    def estimate_length(self, tx=None, input_index: int = 0) -> int:
        return P2PKH_UNLOCK_ESTIMATE


class OrdLockPurchaseTemplate(UnlockTemplate):
    """
    Buyer-side purchase: the contract checks the outputs against the preimage.
    """

    def __init__(self, source_satoshis: Optional[int] = None,
                 locking_script: Optional[Script] = None):
        self.source_satoshis = source_satoshis
        self.locking_script = locking_script

    def sign(self, tx, input_index: int) -> UnlockingScript:
        if len(tx.outputs) < 2:
            raise TemplateError("Malformed transaction")

        first = tx.outputs[0]
        output0 = serialize_output(first.satoshis or 0, first.locking_script.to_bytes())

        other_outputs = b"".join(
            serialize_output(output.satoshis or 0, output.locking_script.to_bytes())
            for output in tx.outputs[2:]
        )

        result = calculate_preimage(
            tx, input_index, "all", True, self.source_satoshis, self.locking_script
        )

        script = UnlockingScript()
        script.write_bin(output0)
        if other_outputs:
            script.write_bin(other_outputs)
        else:
            script.write_opcode(OpCode.OP_0)
        script.write_bin(result.preimage)
        script.write_opcode(OpCode.OP_0)
        return script

    def estimate_length(self, tx, input_index: int) -> int:
        return len(self.sign(tx, input_index).to_bytes())


class OrdLock(ScriptTemplate):
    """
    Order-lock listing template.
    """

    def __init__(self, wallet: Any = None):
        super().__init__(wallet)
        self.p2pkh = P2PKH(wallet)

    def lock(
        self,
        ord_address: str,
        pay_address: str,
        price: int,
        asset_id: str,
        metadata: Optional[Mapping[str, Any]] = None,
        item_data: Optional[Mapping[str, Any]] = None
    ) -> LockingScript:
        """
        Create an OrdLock listing script.

        Args:
            ord_address: Seller address allowed to cancel the listing
            pay_address: Address the buyer must pay
            price: Payment amount in satoshis (> 0)
            asset_id: BSV-20 token id being listed
            metadata: Application metadata, merged into the OP_RETURN payload
            item_data: Item data, merged over metadata

        Returns:
            LockingScript

        Raises:
            TemplateError: If a parameter is invalid
        """
        _validate_lock_params(ord_address, pay_address, price, asset_id, metadata, item_data)

        cancel_pkh = address_to_pubkeyhash(ord_address, "ordAddress")
        pay_pkh = address_to_pubkeyhash(pay_address, "payAddress")

        inscription = {"p": "bsv-20", "op": "transfer", "amt": 1, "id": asset_id}
        combined: Dict[str, Any] = {}
        combined.update(metadata or {})
        combined.update(item_data or {})

        pay_script = self.p2pkh.lock(pubkeyhash=pay_pkh)
        pay_output = serialize_output(price, pay_script.to_bytes())

        script = LockingScript()
        script.write_opcode(OpCode.OP_0)
        script.write_opcode(OpCode.OP_IF)
        script.write_bin(b"ord")
        script.write_opcode(OpCode.OP_1)
        script.write_bin(BSV20_CONTENT_TYPE.encode("utf-8"))
        script.write_opcode(OpCode.OP_0)
        script.write_bin(_compact_json(inscription))
        script.write_opcode(OpCode.OP_ENDIF)
        script.write_script(Script.from_bytes(OLOCK_PREFIX))
        script.write_bin(cancel_pkh)
        script.write_bin(pay_output)
        script.write_script(Script.from_bytes(OLOCK_SUFFIX))

        if combined:
            script.write_opcode(OpCode.OP_RETURN)
            script.write_bin(_compact_json(combined))

        self.logger.debug(f"OrdLock listing for {asset_id} at {price} satoshis")
        return script

    def unlock(self, kind: str = "cancel", **kwargs) -> UnlockTemplate:
        """
        Create an unlocking template for the cancel or purchase path.

        Args:
            kind: "purchase" for the buyer path, anything else cancels
            **kwargs: cancel_unlock / purchase_unlock keywords

        Returns:
            UnlockTemplate
        """
        if kind == "purchase":
            return self.purchase_unlock(**kwargs)
        return self.cancel_unlock(**kwargs)

    def cancel_unlock(
        self,
        protocol_id: Sequence = DEFAULT_ORDLOCK_PROTOCOL,
        key_id: str = "0",
        counterparty: str = "self",
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ) -> OrdLockCancelTemplate:
        if self.wallet is None:
            raise TemplateError("Wallet is required for unlocking")
        params = WalletDerivationParams(
            protocol_id=tuple(protocol_id), key_id=key_id, counterparty=counterparty
        )
        return OrdLockCancelTemplate(
            self.wallet, params, sign_outputs, anyone_can_pay, source_satoshis, locking_script
        )

    def purchase_unlock(
        self,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None
    ) -> OrdLockPurchaseTemplate:
        return OrdLockPurchaseTemplate(source_satoshis, locking_script)
