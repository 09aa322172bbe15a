"""
BSV Wallet Templates - OP_RETURN Data Encoder

This module appends an OP_RETURN data section to an existing locking script,
e.g. to attach application metadata to a payment output.

Each field is pushed as its own data element:
- str: kept as-is when it is an even-length hex string (lowercased),
  otherwise UTF-8 encoded
- bytes / bytearray: pushed verbatim
- list of ints: byte values 0-255
"""

import re
from typing import List, Sequence, Union

from scripts.opcodes import OpCode
from scripts.script import LockingScript, Script

from ..exceptions import OpReturnError


Field = Union[str, bytes, bytearray, List[int]]

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]*$')


def is_hex(value: str) -> bool:
    """True for an even-length string of hex digits (the empty string included)."""
    return len(value) % 2 == 0 and bool(_HEX_PATTERN.match(value))


def field_to_bytes(field: Field, index: int = 0) -> bytes:
    """
    Convert one OP_RETURN field to the bytes that get pushed.

    Args:
        field: String, bytes or list of byte values
        index: Position of the field, for error messages

    Returns:
        Field bytes

    Raises:
        OpReturnError: If the field has an unsupported type or invalid byte values
    """
    if isinstance(field, str):
        if is_hex(field):
            return bytes.fromhex(field)
        return field.encode('utf-8')

    if isinstance(field, (bytes, bytearray)):
        return bytes(field)

    if isinstance(field, list):
        for position, value in enumerate(field):
            if isinstance(value, bool) or not isinstance(value, int):
                raise OpReturnError(
                    f"Invalid field at index {index}: array contains non-number at position {position}"
                )
            if not 0 <= value <= 0xff:
                raise OpReturnError(
                    f"Invalid field at index {index}: byte value {value} at position {position} is out of range"
                )
        return bytes(field)

    raise OpReturnError(
        f"Invalid field at index {index}: must be a string or number array, got {type(field).__name__}"
    )


def add_op_return_data(script: Script, fields: Sequence[Field]) -> LockingScript:
    """
    Append OP_RETURN and data pushes to a locking script.

    Args:
        script: Base locking script, left unmodified
        fields: One or more data fields

    Returns:
        New locking script "<script> OP_RETURN <field> ..."

    Raises:
        OpReturnError: If the script already has OP_RETURN or the fields are invalid
    """
    if not isinstance(script, Script):
        raise OpReturnError("Invalid script parameter: must be a LockingScript instance")

    if script.has_opcode(OpCode.OP_RETURN):
        raise OpReturnError(
            "Script already contains OP_RETURN. Cannot add multiple OP_RETURN "
            "statements to the same script."
        )

    if not isinstance(fields, (list, tuple)):
        raise OpReturnError("Invalid fields parameter: must be an array of strings or number arrays")

    if len(fields) == 0:
        raise OpReturnError("At least one data field is required for OP_RETURN")

    payloads = [field_to_bytes(field, index) for index, field in enumerate(fields)]

    result = LockingScript().write_script(script)
    result.write_opcode(OpCode.OP_RETURN)
    for payload in payloads:
        result.write_bin(payload)
    return result
