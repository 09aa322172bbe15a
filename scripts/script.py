"""
BSV Wallet Templates - Script Model

This module provides the chunk-based script representation shared by locking
and unlocking scripts, with conversion between raw bytes, hex and ASM.

ASM conventions: opcodes are rendered by name (OP_0 for the empty push), data
pushes as lowercase hex. When parsing ASM, "0" is OP_0, "-1" is OP_1NEGATE and
any other non-opcode token is hex data pushed with the smallest push prefix
that fits its length.
"""

import struct
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, List, Optional, Union

from .exceptions import ScriptParseError
from .opcodes import OpCode, opcode_from_name, opcode_name


@dataclass
class ScriptChunk:
    """A single opcode or data push in a script."""
    op: int
    data: Optional[bytes] = None

    def is_push(self) -> bool:
        return self.data is not None

    def serialize(self) -> bytes:
        """Serialize the chunk, keeping its original push opcode."""
        if self.data is None:
            return bytes([self.op])

        length = len(self.data)
        if self.op == OpCode.OP_PUSHDATA1:
            return bytes([self.op, length]) + self.data
        if self.op == OpCode.OP_PUSHDATA2:
            return bytes([self.op]) + struct.pack('<H', length) + self.data
        if self.op == OpCode.OP_PUSHDATA4:
            return bytes([self.op]) + struct.pack('<I', length) + self.data
        return bytes([self.op]) + self.data

    def to_asm(self) -> str:
        if self.data is None:
            return opcode_name(self.op)
        if not self.data and self.op == OpCode.OP_0:
            return "OP_0"
        return self.data.hex()


def push_chunk(data: bytes) -> ScriptChunk:
    """
    Build the push chunk for a byte string.

    Args:
        data: Bytes to push

    Returns:
        OP_0 for empty data, otherwise a direct or OP_PUSHDATA push
    """
    length = len(data)
    if length == 0:
        return ScriptChunk(op=OpCode.OP_0)
    if length < OpCode.OP_PUSHDATA1:
        return ScriptChunk(op=length, data=bytes(data))
    if length <= 0xff:
        return ScriptChunk(op=OpCode.OP_PUSHDATA1, data=bytes(data))
    if length <= 0xffff:
        return ScriptChunk(op=OpCode.OP_PUSHDATA2, data=bytes(data))
    if length <= 0xffffffff:
        return ScriptChunk(op=OpCode.OP_PUSHDATA4, data=bytes(data))
    raise ScriptParseError("Data push too large")


class Script:
    """
    Ordered list of script chunks.
    """

    def __init__(self, chunks: Optional[Iterable[ScriptChunk]] = None):
        self.chunks: List[ScriptChunk] = list(chunks) if chunks else []

    # Construction

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Script':
        """
        Parse raw script bytes.

        Args:
            data: Serialized script

        Returns:
            Script instance

        Raises:
            ScriptParseError: If a push runs past the end of the script
        """
        chunks = []
        stream = BytesIO(bytes(data))
        total = len(data)

        while stream.tell() < total:
            position = stream.tell()
            op = stream.read(1)[0]

            if 0 < op < OpCode.OP_PUSHDATA1:
                length = op
            elif op == OpCode.OP_PUSHDATA1:
                length = cls._read_length(stream, 1, '<B', position)
            elif op == OpCode.OP_PUSHDATA2:
                length = cls._read_length(stream, 2, '<H', position)
            elif op == OpCode.OP_PUSHDATA4:
                length = cls._read_length(stream, 4, '<I', position)
            else:
                chunks.append(ScriptChunk(op=op))
                continue

            payload = stream.read(length)
            if len(payload) != length:
                raise ScriptParseError(
                    f"Insufficient data for push at position {position}: "
                    f"expected {length} bytes, got {len(payload)}"
                )
            chunks.append(ScriptChunk(op=op, data=payload))

        return cls(chunks)

    @staticmethod
    def _read_length(stream: BytesIO, size: int, fmt: str, position: int) -> int:
        raw = stream.read(size)
        if len(raw) != size:
            raise ScriptParseError(f"Missing length bytes for push at position {position}")
        return struct.unpack(fmt, raw)[0]

    @classmethod
    def from_hex(cls, script_hex: str) -> 'Script':
        """Parse a hex encoded script."""
        if not isinstance(script_hex, str):
            raise ScriptParseError("Script hex must be a string")
        if len(script_hex) % 2 != 0:
            raise ScriptParseError("Script hex must have an even length")
        try:
            data = bytes.fromhex(script_hex)
        except ValueError as e:
            raise ScriptParseError(f"Invalid script hex: {e}")
        return cls.from_bytes(data)

    @classmethod
    def from_asm(cls, asm: str) -> 'Script':
        """
        Parse an ASM string.

        Args:
            asm: Space separated opcodes and hex data

        Returns:
            Script instance
        """
        script = cls()
        for token in asm.split():
            if token == "0":
                script.write_opcode(OpCode.OP_0)
                continue
            if token == "-1":
                script.write_opcode(OpCode.OP_1NEGATE)
                continue

            op = opcode_from_name(token)
            if op is not None:
                script.write_opcode(op)
                continue

            hex_data = token if len(token) % 2 == 0 else "0" + token
            try:
                data = bytes.fromhex(hex_data)
            except ValueError:
                raise ScriptParseError(f"Invalid token in ASM: {token}")
            script.chunks.append(push_chunk(data))
        return script

    # Mutation

    def write_opcode(self, op: int) -> 'Script':
        self.chunks.append(ScriptChunk(op=op))
        return self

    def write_bin(self, data: Union[bytes, bytearray, List[int]]) -> 'Script':
        """Append a push of the given bytes."""
        self.chunks.append(push_chunk(bytes(data)))
        return self

    def write_script(self, other: 'Script') -> 'Script':
        self.chunks.extend(ScriptChunk(op=c.op, data=c.data) for c in other.chunks)
        return self

    # Rendering

    def to_bytes(self) -> bytes:
        return b"".join(chunk.serialize() for chunk in self.chunks)

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    def to_asm(self) -> str:
        return " ".join(chunk.to_asm() for chunk in self.chunks)

    def has_opcode(self, op: int) -> bool:
        """True when the opcode appears outside of push data."""
        return any(chunk.data is None and chunk.op == op for chunk in self.chunks)

    def __len__(self) -> int:
        return len(self.to_bytes())

    def __eq__(self, other) -> bool:
        return isinstance(other, Script) and self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_hex()})"


class LockingScript(Script):
    """Script placed in a transaction output."""
    pass


class UnlockingScript(Script):
    """Script placed in a transaction input."""
    pass
