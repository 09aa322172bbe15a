"""
BSV Wallet Templates - Transaction Model

This module provides the in-memory transaction used to sign inputs and
compute fees before handing the result to the wallet: inputs that reference
their source transactions, outputs that may be marked as change, raw
serialization, size estimation, fee/change distribution and BEEF export.
"""

import logging
import struct
from dataclasses import dataclass
from io import BytesIO
from typing import Any, List, Optional

from crypto.keys import hash256
from scripts.exceptions import ScriptParseError
from scripts.script import LockingScript, UnlockingScript

from .exceptions import FeeError, TransactionError, TransactionParsingError
from .utils import (
    compact_size_length,
    is_txid,
    parse_compact_size,
    parse_outpoint,
    serialize_compact_size,
    serialize_outpoint,
    serialize_output,
    serialize_varstr,
    varstr_parse,
)


DEFAULT_SEQUENCE = 0xFFFFFFFF


@dataclass
class TransactionInput:
    """Transaction input referencing the output it spends."""
    source_transaction: Optional['Transaction'] = None
    source_output_index: int = 0
    source_txid: Optional[str] = None
    unlocking_script: Optional[UnlockingScript] = None
    unlocking_script_template: Optional[Any] = None
    sequence: int = DEFAULT_SEQUENCE

    def get_source_txid(self) -> Optional[str]:
        """Txid of the spent output, from the explicit id or the source transaction."""
        if self.source_txid:
            return self.source_txid
        if self.source_transaction is not None:
            return self.source_transaction.txid()
        return None

    def source_output(self) -> Optional['TransactionOutput']:
        """The spent output when the source transaction is attached."""
        if self.source_transaction is None:
            return None
        outputs = self.source_transaction.outputs
        if not 0 <= self.source_output_index < len(outputs):
            return None
        return outputs[self.source_output_index]


@dataclass
class TransactionOutput:
    """Transaction output; change outputs receive their value during fee()."""
    locking_script: LockingScript
    satoshis: Optional[int] = None
    change: bool = False


class Transaction:
    """
    Bitcoin SV transaction.
    """

    def __init__(
        self,
        version: int = 1,
        inputs: Optional[List[TransactionInput]] = None,
        outputs: Optional[List[TransactionOutput]] = None,
        lock_time: int = 0,
        merkle_path: Optional[Any] = None
    ):
        self.version = version
        self.inputs: List[TransactionInput] = list(inputs) if inputs else []
        self.outputs: List[TransactionOutput] = list(outputs) if outputs else []
        self.lock_time = lock_time
        self.merkle_path = merkle_path
        self.logger = logging.getLogger(__name__)

    def add_input(self, tx_input: TransactionInput) -> 'Transaction':
        if tx_input.source_transaction is None and not tx_input.source_txid:
            raise TransactionError("A reference to an input transaction is required")
        if tx_input.source_txid and not is_txid(tx_input.source_txid):
            raise TransactionError(f"Invalid source txid: {tx_input.source_txid!r}")
        self.inputs.append(tx_input)
        return self

    def add_output(self, output: TransactionOutput) -> 'Transaction':
        if not output.change:
            if output.satoshis is None:
                raise TransactionError("Either satoshis must be defined or change must be set to true")
            if output.satoshis < 0:
                raise TransactionError("Output satoshis must be a non-negative integer")
        self.outputs.append(output)
        return self

    # Serialization

    def to_bytes(self) -> bytes:
        """
        Serialize the transaction.

        Returns:
            Raw transaction bytes

        Raises:
            TransactionError: If an input is unsigned or an output has no value
        """
        buffer = BytesIO()
        buffer.write(struct.pack('<I', self.version))

        buffer.write(serialize_compact_size(len(self.inputs)))
        for index, tx_input in enumerate(self.inputs):
            txid = tx_input.get_source_txid()
            if txid is None:
                raise TransactionError(f"Input {index} has no source txid")
            if tx_input.unlocking_script is None:
                raise TransactionError(f"Input {index} has no unlocking script")
            buffer.write(serialize_outpoint(txid, tx_input.source_output_index))
            buffer.write(serialize_varstr(tx_input.unlocking_script.to_bytes()))
            buffer.write(struct.pack('<I', tx_input.sequence))

        buffer.write(serialize_compact_size(len(self.outputs)))
        for index, output in enumerate(self.outputs):
            if output.satoshis is None:
                raise TransactionError(f"Output {index} has no satoshis")
            buffer.write(serialize_output(output.satoshis, output.locking_script.to_bytes()))

        buffer.write(struct.pack('<I', self.lock_time))
        return buffer.getvalue()

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Transaction':
        tx, offset = cls.parse(data, 0)
        if offset != len(data):
            raise TransactionParsingError(f"Unexpected {len(data) - offset} trailing bytes")
        return tx

    @classmethod
    def from_hex(cls, tx_hex: str) -> 'Transaction':
        try:
            data = bytes.fromhex(tx_hex)
        except (TypeError, ValueError) as e:
            raise TransactionParsingError(f"Invalid transaction hex: {e}")
        return cls.from_bytes(data)

    @classmethod
    def parse(cls, data: bytes, offset: int = 0) -> tuple:
        """
        Parse a raw transaction starting at offset.

        Args:
            data: Bytes containing the transaction
            offset: Starting offset

        Returns:
            Tuple of (Transaction, new_offset)
        """
        try:
            version = struct.unpack('<I', data[offset:offset + 4])[0]
            offset += 4

            inputs = []
            input_count, offset = parse_compact_size(data, offset)
            for _ in range(input_count):
                txid, vout, offset = parse_outpoint(data, offset)
                script, offset = varstr_parse(data, offset)
                sequence = struct.unpack('<I', data[offset:offset + 4])[0]
                offset += 4
                inputs.append(TransactionInput(
                    source_txid=txid,
                    source_output_index=vout,
                    unlocking_script=UnlockingScript.from_bytes(script),
                    sequence=sequence
                ))

            outputs = []
            output_count, offset = parse_compact_size(data, offset)
            for _ in range(output_count):
                satoshis = struct.unpack('<Q', data[offset:offset + 8])[0]
                offset += 8
                script, offset = varstr_parse(data, offset)
                outputs.append(TransactionOutput(
                    locking_script=LockingScript.from_bytes(script),
                    satoshis=satoshis
                ))

            lock_time = struct.unpack('<I', data[offset:offset + 4])[0]
            offset += 4
        except (struct.error, ValueError, ScriptParseError) as e:
            raise TransactionParsingError(f"Failed to parse transaction: {e}")

        return cls(version=version, inputs=inputs, outputs=outputs, lock_time=lock_time), offset

    # Identity

    def hash(self) -> bytes:
        """Double SHA256 of the serialized transaction (internal byte order)."""
        return hash256(self.to_bytes())

    def txid(self) -> str:
        """Transaction id in display (reversed) hex order."""
        return self.hash()[::-1].hex()

    # Fees and signing

    def estimate_size(self) -> int:
        """
        Estimate the serialized size, using template estimates for unsigned inputs.

        Returns:
            Size in bytes

        Raises:
            FeeError: If an input has neither a script nor a template
        """
        size = 4 + compact_size_length(len(self.inputs))
        for index, tx_input in enumerate(self.inputs):
            # Outpoint and sequence
            size += 40
            if tx_input.unlocking_script is not None:
                script_length = len(tx_input.unlocking_script.to_bytes())
            elif tx_input.unlocking_script_template is not None:
                script_length = tx_input.unlocking_script_template.estimate_length(self, index)
            else:
                raise FeeError(
                    "All inputs must have an unlocking script or an unlocking "
                    "script template for sat/kb fee computation."
                )
            size += compact_size_length(script_length) + script_length

        size += compact_size_length(len(self.outputs))
        for output in self.outputs:
            script_length = len(output.locking_script.to_bytes())
            size += 8 + compact_size_length(script_length) + script_length

        return size + 4

    def fee(self, model=None) -> int:
        """
        Compute the fee and distribute the remainder equally across change outputs.

        When the remainder cannot give every change output at least one
        satoshi, change outputs are left without a value.

        Args:
            model: Fee model exposing compute_fee(tx); defaults to 100 sat/kB

        Returns:
            The computed fee in satoshis
        """
        if model is None:
            from .fee_model import SatoshisPerKilobyte
            model = SatoshisPerKilobyte()

        fee = model.compute_fee(self)

        change = 0
        for index, tx_input in enumerate(self.inputs):
            source = tx_input.source_output()
            if source is None or source.satoshis is None:
                raise FeeError(
                    f"Input {index}: source transactions are required for all inputs during fee computation"
                )
            change += source.satoshis
        change -= fee

        change_outputs = []
        for output in self.outputs:
            if output.change:
                change_outputs.append(output)
            else:
                change -= output.satoshis

        if not change_outputs:
            return fee

        if change <= len(change_outputs):
            self.logger.warning(
                f"Remaining {change} satoshis cannot fund {len(change_outputs)} change output(s)"
            )
            for output in change_outputs:
                output.satoshis = None
            return fee

        per_output = change // len(change_outputs)
        for output in change_outputs:
            output.satoshis = per_output
        self.logger.debug(f"Fee {fee} satoshis, {per_output} satoshis per change output")
        return fee

    def sign(self) -> 'Transaction':
        """
        Run every input's unlocking script template, in input order.

        Returns:
            self
        """
        for index, tx_input in enumerate(self.inputs):
            if tx_input.unlocking_script_template is None:
                continue
            tx_input.unlocking_script = tx_input.unlocking_script_template.sign(self, index)
            self.logger.debug(f"Signed input {index}")
        return self

    # BEEF

    def to_beef(self) -> bytes:
        """
        Serialize this transaction with its unproven ancestry as BEEF V1.

        Returns:
            BEEF bytes
        """
        from .beef import Beef

        beef = Beef()
        beef.merge_transaction(self)
        return beef.to_bytes()

    def __repr__(self) -> str:
        return f"Transaction(inputs={len(self.inputs)}, outputs={len(self.outputs)})"
