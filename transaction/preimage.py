"""
BSV Wallet Templates - Signature Preimage Calculator

This module computes the BIP-143 style preimage (with SIGHASH_FORKID) that a
wallet signs for one transaction input, together with the sighash scope byte
appended to the signature.

Preimage layout:
    u32 version
    32  hashPrevouts   (zero with ANYONECANPAY)
    32  hashSequence   (zero with ANYONECANPAY, NONE or SINGLE)
    36  outpoint being spent
    var subscript      (locking script of the spent output)
    u64 satoshis of the spent output
    u32 input sequence
    32  hashOutputs    (all outputs, the matching output for SINGLE, else zero)
    u32 lock time
    u32 sighash scope
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from crypto.keys import hash256
from crypto.signatures import (
    SIGHASH_ALL,
    SIGHASH_NONE,
    SIGHASH_SINGLE,
    SIGHASH_FORKID,
    SIGHASH_ANYONECANPAY,
    SIGHASH_BASE_MASK,
)
from scripts.script import Script

from .exceptions import PreimageError
from .utils import serialize_outpoint, serialize_output, serialize_varstr


ZERO_HASH = b'\x00' * 32
DEFAULT_SEQUENCE = 0xFFFFFFFF


class SignOutputs(str, Enum):
    """Which outputs a signature commits to."""
    ALL = "all"
    NONE = "none"
    SINGLE = "single"


_BASE_FLAGS = {
    SignOutputs.ALL.value: SIGHASH_ALL,
    SignOutputs.NONE.value: SIGHASH_NONE,
    SignOutputs.SINGLE.value: SIGHASH_SINGLE,
}


@dataclass
class PreimageResult:
    """Preimage bytes and the sighash scope they were computed for."""
    preimage: bytes
    signature_scope: int


def _sign_outputs_value(sign_outputs) -> Optional[str]:
    if isinstance(sign_outputs, SignOutputs):
        return sign_outputs.value
    if isinstance(sign_outputs, str) and sign_outputs in _BASE_FLAGS:
        return sign_outputs
    return None


def signature_scope(sign_outputs="all", anyone_can_pay: bool = False) -> int:
    """
    Combine output selection and ANYONECANPAY into a FORKID sighash scope.

    Args:
        sign_outputs: "all", "none" or "single"
        anyone_can_pay: Commit only to the input being signed

    Returns:
        Sighash scope byte value
    """
    value = _sign_outputs_value(sign_outputs)
    if value is None:
        raise PreimageError(f'Invalid signOutputs "{sign_outputs}". Must be "all", "none", or "single"')
    scope = SIGHASH_FORKID | _BASE_FLAGS[value]
    if anyone_can_pay:
        scope |= SIGHASH_ANYONECANPAY
    return scope


def format_preimage(
    source_txid: str,
    source_output_index: int,
    source_satoshis: int,
    transaction_version: int,
    other_inputs: Sequence,
    outputs: Sequence,
    input_index: int,
    subscript: bytes,
    input_sequence: int,
    lock_time: int,
    scope: int
) -> bytes:
    """
    Serialize the signature preimage for one input.

    Args:
        source_txid: Txid of the output being spent
        source_output_index: Index of the output being spent
        source_satoshis: Value of the output being spent
        transaction_version: Spending transaction version
        other_inputs: Every other input, in transaction order
        outputs: Spending transaction outputs
        input_index: Position of the input being signed
        subscript: Locking script of the output being spent
        input_sequence: Sequence number of the input being signed
        lock_time: Spending transaction lock time
        scope: Sighash scope

    Returns:
        Preimage bytes
    """
    base = scope & SIGHASH_BASE_MASK
    anyone_can_pay = bool(scope & SIGHASH_ANYONECANPAY)

    outpoints = [
        (inp.get_source_txid(), inp.source_output_index, inp.sequence)
        for inp in other_inputs
    ]
    outpoints.insert(input_index, (source_txid, source_output_index, input_sequence))

    if anyone_can_pay:
        hash_prevouts = ZERO_HASH
    else:
        hash_prevouts = hash256(b"".join(
            serialize_outpoint(txid, vout) for txid, vout, _ in outpoints
        ))

    if anyone_can_pay or base in (SIGHASH_SINGLE, SIGHASH_NONE):
        hash_sequence = ZERO_HASH
    else:
        hash_sequence = hash256(b"".join(
            struct.pack('<I', DEFAULT_SEQUENCE if sequence is None else sequence)
            for _, _, sequence in outpoints
        ))

    if base not in (SIGHASH_SINGLE, SIGHASH_NONE):
        hash_outputs = hash256(b"".join(
            serialize_output(out.satoshis or 0, out.locking_script.to_bytes())
            for out in outputs
        ))
    elif base == SIGHASH_SINGLE and input_index < len(outputs):
        out = outputs[input_index]
        hash_outputs = hash256(serialize_output(out.satoshis or 0, out.locking_script.to_bytes()))
    else:
        hash_outputs = ZERO_HASH

    return b"".join([
        struct.pack('<I', transaction_version),
        hash_prevouts,
        hash_sequence,
        serialize_outpoint(source_txid, source_output_index),
        serialize_varstr(subscript),
        struct.pack('<Q', source_satoshis),
        struct.pack('<I', DEFAULT_SEQUENCE if input_sequence is None else input_sequence),
        hash_outputs,
        struct.pack('<I', lock_time),
        struct.pack('<I', scope),
    ])


def calculate_preimage(
    tx,
    input_index: int,
    sign_outputs="all",
    anyone_can_pay: bool = False,
    source_satoshis: Optional[int] = None,
    locking_script: Optional[Script] = None
) -> PreimageResult:
    """
    Compute the preimage and sighash scope for signing one input.

    Values not passed explicitly are read from the input's source transaction.
    The transaction is not modified.

    Args:
        tx: Transaction being signed
        input_index: Index of the input to sign
        sign_outputs: "all", "none" or "single"
        anyone_can_pay: Commit only to this input
        source_satoshis: Value of the spent output, overriding the source transaction
        locking_script: Locking script of the spent output, overriding the source transaction

    Returns:
        PreimageResult with preimage bytes and signature scope

    Raises:
        PreimageError: If the transaction, index, scope or source data is invalid
    """
    if tx is None:
        raise PreimageError("Transaction is required")

    inputs = tx.inputs
    if not inputs:
        raise PreimageError("Transaction must have at least one input")

    if isinstance(input_index, bool) or not isinstance(input_index, int) \
            or not 0 <= input_index < len(inputs):
        raise PreimageError(
            f"Invalid inputIndex {input_index}. Transaction has {len(inputs)} input(s)"
        )

    scope = signature_scope(sign_outputs, anyone_can_pay)

    if scope & SIGHASH_BASE_MASK == SIGHASH_SINGLE and input_index >= len(tx.outputs):
        raise PreimageError(
            f"SIGHASH_SINGLE requires output at index {input_index}, "
            f"but transaction only has {len(tx.outputs)} output(s)"
        )

    current = inputs[input_index]
    other_inputs: List = [] if anyone_can_pay else [
        inp for index, inp in enumerate(inputs) if index != input_index
    ]

    source_txid = current.get_source_txid()
    if not source_txid:
        raise PreimageError(
            f"Input {input_index}: sourceTXID or sourceTransaction is required for signing"
        )

    source_output = current.source_output()
    satoshis = source_satoshis
    if not satoshis and source_output is not None:
        satoshis = source_output.satoshis
    if not satoshis:
        raise PreimageError(
            f"Input {input_index}: sourceSatoshis or input sourceTransaction is required for signing"
        )

    subscript = locking_script
    if subscript is None and source_output is not None:
        subscript = source_output.locking_script
    if subscript is None:
        raise PreimageError(
            f"Input {input_index}: lockingScript or input sourceTransaction is required for signing"
        )

    preimage = format_preimage(
        source_txid=source_txid,
        source_output_index=current.source_output_index,
        source_satoshis=satoshis,
        transaction_version=tx.version,
        other_inputs=other_inputs,
        outputs=tx.outputs,
        input_index=input_index,
        subscript=subscript.to_bytes(),
        input_sequence=current.sequence,
        lock_time=tx.lock_time,
        scope=scope,
    )
    return PreimageResult(preimage=preimage, signature_scope=scope)
