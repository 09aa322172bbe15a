"""
BSV Wallet Templates - Script Inspection

This module recognizes the script shapes produced by the templates and pulls
their payloads back out:
- P2PKH, ordinal envelope and OP_RETURN detection
- script type classification
- inscription, MAP metadata and raw OP_RETURN field extraction

Every function accepts a Script or a hex string.
"""

import base64
import re
from enum import Enum
from typing import Dict, List, Optional, Union

from .exceptions import ScriptParseError
from .opcodes import OpCode
from .ordinal import MAP_SET_COMMAND, ORD_MARKER, ORDINAL_MAP_PREFIX, Inscription
from .script import Script, ScriptChunk


ScriptLike = Union[Script, str]

P2PKH_PREFIX = '76a914'
P2PKH_SUFFIX = '88ac'
P2PKH_HEX_LENGTH = 50
# OP_0 OP_IF "ord"
ORD_ENVELOPE_START = '0063036f7264'
OP_RETURN_HEX = '6a'
DEFAULT_CONTENT_TYPE = 'application/octet-stream'

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]*$')
_P2PKH_PATTERN = re.compile(r'76a914[0-9a-f]{40}88ac')
# Terminating opcodes commonly followed by OP_RETURN in unparseable scripts
_OP_RETURN_PATTERNS = [
    re.compile(r'88ac6a'),
    re.compile(r'686a'),
    re.compile(r'ae6a'),
]


class ScriptType(str, Enum):
    """Script classifications, most specific first."""
    ORDINAL = "Ordinal"
    P2PKH = "P2PKH"
    OP_RETURN = "OpReturn"
    CUSTOM = "Custom"


def _validate_input(value, function_name: str) -> None:
    if value is None:
        raise ScriptParseError(f"{function_name}: Input cannot be None")
    if isinstance(value, (list, tuple)):
        raise ScriptParseError(
            f"{function_name}: Input cannot be a list. Expected Script or hex string"
        )
    if isinstance(value, Script):
        return
    if not isinstance(value, str):
        raise ScriptParseError(
            f"{function_name}: Input must be a Script or hex string, got {type(value).__name__}"
        )
    if not _HEX_PATTERN.match(value):
        raise ScriptParseError(f"{function_name}: String must be a valid hexadecimal string")
    if len(value) % 2 != 0:
        raise ScriptParseError(f"{function_name}: Hex string must have even length")


def _to_hex(value: ScriptLike) -> str:
    if isinstance(value, Script):
        return value.to_hex()
    return value.lower()


def _to_script(value: ScriptLike) -> Script:
    if isinstance(value, Script):
        return value
    return Script.from_hex(value)


def _is_opcode(chunk: ScriptChunk, op: int) -> bool:
    return chunk.data is None and chunk.op == op


def _decode_utf8(data: bytes, function_name: str, what: str) -> str:
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ScriptParseError(f"{function_name}: Invalid UTF-8 in {what}: {e}")


def is_p2pkh(script: ScriptLike) -> bool:
    """
    Check for a bare P2PKH script: OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG.

    Args:
        script: Script or hex string

    Returns:
        True when the script is exactly the 25-byte P2PKH pattern
    """
    _validate_input(script, "is_p2pkh")
    script_hex = _to_hex(script)
    if len(script_hex) != P2PKH_HEX_LENGTH:
        return False
    return (
        script_hex.startswith(P2PKH_PREFIX)
        and script_hex[4:6] == '14'
        and script_hex.endswith(P2PKH_SUFFIX)
    )


def has_ord(script: ScriptLike) -> bool:
    """True when the script contains an "ord" inscription envelope."""
    _validate_input(script, "has_ord")
    return ORD_ENVELOPE_START in _to_hex(script)


def is_ordinal(script: ScriptLike) -> bool:
    """True for an inscription envelope together with a P2PKH lock."""
    _validate_input(script, "is_ordinal")
    if not has_ord(script):
        return False
    return bool(_P2PKH_PATTERN.search(_to_hex(script)))


def has_op_return_data(script: ScriptLike) -> bool:
    """
    Check whether the script contains OP_RETURN as an opcode.

    Hex strings that cannot be parsed are checked heuristically: a leading
    OP_RETURN, or OP_RETURN right after OP_CHECKSIG, OP_ENDIF or
    OP_CHECKMULTISIG.

    Args:
        script: Script or hex string

    Returns:
        True when OP_RETURN is present
    """
    _validate_input(script, "has_op_return_data")
    if isinstance(script, Script):
        return script.has_opcode(OpCode.OP_RETURN)

    try:
        if Script.from_hex(script).has_opcode(OpCode.OP_RETURN):
            return True
    except ScriptParseError:
        pass

    script_hex = script.lower()
    if script_hex.startswith(OP_RETURN_HEX):
        return True
    return any(pattern.search(script_hex) for pattern in _OP_RETURN_PATTERNS)


def get_script_type(script: ScriptLike) -> ScriptType:
    """
    Classify a locking script.

    Args:
        script: Script or hex string

    Returns:
        ScriptType.ORDINAL, P2PKH, OP_RETURN (script starting with OP_RETURN)
        or CUSTOM
    """
    _validate_input(script, "get_script_type")
    if is_ordinal(script):
        return ScriptType.ORDINAL
    if is_p2pkh(script):
        return ScriptType.P2PKH
    if has_op_return_data(script) and _to_hex(script).startswith(OP_RETURN_HEX):
        return ScriptType.OP_RETURN
    return ScriptType.CUSTOM


def _find_envelope(chunks: List[ScriptChunk]) -> int:
    for index in range(len(chunks) - 2):
        if _is_opcode(chunks[index], OpCode.OP_0) \
                and _is_opcode(chunks[index + 1], OpCode.OP_IF) \
                and chunks[index + 2].data == ORD_MARKER:
            return index
    return -1


def extract_inscription_data(script: ScriptLike) -> Optional[Inscription]:
    """
    Extract the inscribed file from an ordinal envelope.

    Envelope fields after the "ord" marker are tag/value pairs: OP_1 tags
    the content type, OP_0 tags the file body which ends the envelope.

    Args:
        script: Script or hex string

    Returns:
        Inscription with base64 data and content type (defaulting to
        application/octet-stream), or None without an envelope

    Raises:
        ScriptParseError: If the envelope is malformed
    """
    _validate_input(script, "extract_inscription_data")
    if not has_ord(script):
        return None

    chunks = _to_script(script).chunks
    start = _find_envelope(chunks)
    if start < 0:
        return None

    end = next(
        (index for index in range(start + 3, len(chunks))
         if _is_opcode(chunks[index], OpCode.OP_ENDIF)),
        -1
    )
    if end < 0:
        raise ScriptParseError("extract_inscription_data: Malformed ordinal script - missing OP_ENDIF")

    fields = chunks[start + 3:end]
    content_type = DEFAULT_CONTENT_TYPE
    body = None
    index = 0
    while index + 1 < len(fields):
        tag, value = fields[index], fields[index + 1]
        if _is_opcode(tag, OpCode.OP_1):
            if not value.data:
                raise ScriptParseError("extract_inscription_data: Missing content type data")
            content_type = _decode_utf8(value.data, "extract_inscription_data", "content type")
        elif _is_opcode(tag, OpCode.OP_0):
            body = value.data
            break
        index += 2

    if not body:
        raise ScriptParseError("extract_inscription_data: Missing inscription data")

    return Inscription(
        data_b64=base64.b64encode(body).decode('ascii'),
        content_type=content_type,
    )


def extract_map_metadata(script: ScriptLike) -> Optional[Dict[str, str]]:
    """
    Extract MAP "SET" metadata following OP_RETURN.

    Args:
        script: Script or hex string

    Returns:
        Key/value dict, or None when there is no MAP payload or it lacks
        "app" or "type"

    Raises:
        ScriptParseError: If a MAP string is not valid UTF-8
    """
    _validate_input(script, "extract_map_metadata")
    if not has_op_return_data(script):
        return None

    chunks = _to_script(script).chunks
    op_return = next(
        (index for index, chunk in enumerate(chunks) if _is_opcode(chunk, OpCode.OP_RETURN)),
        -1
    )
    if op_return < 0 or op_return + 2 >= len(chunks):
        return None

    prefix_chunk = chunks[op_return + 1]
    if not prefix_chunk.data:
        return None
    prefix = _decode_utf8(prefix_chunk.data, "extract_map_metadata", "MAP prefix")
    if prefix != ORDINAL_MAP_PREFIX:
        return None

    command_chunk = chunks[op_return + 2]
    if not command_chunk.data:
        return None
    if _decode_utf8(command_chunk.data, "extract_map_metadata", "command") != MAP_SET_COMMAND:
        return None

    metadata = {}
    index = op_return + 3
    while index + 1 < len(chunks):
        key_chunk, value_chunk = chunks[index], chunks[index + 1]
        if not key_chunk.data or not value_chunk.data:
            break
        key = _decode_utf8(key_chunk.data, "extract_map_metadata", "metadata key")
        metadata[key] = _decode_utf8(value_chunk.data, "extract_map_metadata", "metadata value")
        index += 2

    if not metadata.get("app") or not metadata.get("type"):
        return None
    return metadata


def extract_op_return_data(script: ScriptLike) -> Optional[List[str]]:
    """
    Extract the non-empty data pushes after OP_RETURN, base64 encoded.

    Args:
        script: Script or hex string

    Returns:
        List of base64 strings, or None when there are none
    """
    _validate_input(script, "extract_op_return_data")
    if not has_op_return_data(script):
        return None

    chunks = _to_script(script).chunks
    op_return = next(
        (index for index, chunk in enumerate(chunks) if _is_opcode(chunk, OpCode.OP_RETURN)),
        -1
    )
    if op_return < 0:
        return None

    fields = [
        base64.b64encode(chunk.data).decode('ascii')
        for chunk in chunks[op_return + 1:]
        if chunk.data
    ]
    return fields or None
