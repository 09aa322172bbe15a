"""
BSV Wallet Templates - Transaction Utilities

This module provides serialization helpers shared by the transaction model,
the preimage calculator and the BEEF encoder.
"""

import struct
from typing import Tuple


def varstr_parse(data: bytes, offset: int = 0) -> Tuple[bytes, int]:
    """
    Parse variable-length string from bytes.

    Args:
        data: Bytes to parse
        offset: Starting offset

    Returns:
        Tuple of (parsed_data, new_offset)
    """
    length, new_offset = parse_compact_size(data, offset)
    if new_offset + length > len(data):
        raise ValueError("Insufficient data for varstr")

    return data[new_offset:new_offset + length], new_offset + length


def serialize_varstr(data: bytes) -> bytes:
    """Length-prefixed byte string (compact size + data)."""
    return serialize_compact_size(len(data)) + bytes(data)


def serialize_compact_size(n: int) -> bytes:
    """
    Serialize integer as Bitcoin compact size.

    Args:
        n: Integer to serialize

    Returns:
        Compact size encoded bytes
    """
    if n < 0xfd:
        return struct.pack('<B', n)
    elif n <= 0xffff:
        return b'\xfd' + struct.pack('<H', n)
    elif n <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', n)
    else:
        return b'\xff' + struct.pack('<Q', n)


def parse_compact_size(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Parse Bitcoin compact size from bytes.

    Args:
        data: Bytes to parse
        offset: Starting offset in bytes

    Returns:
        Tuple of (value, new_offset)
    """
    if offset >= len(data):
        raise ValueError("Insufficient data for compact size")

    first_byte = data[offset]

    if first_byte < 0xfd:
        return first_byte, offset + 1
    elif first_byte == 0xfd:
        if offset + 3 > len(data):
            raise ValueError("Insufficient data for 2-byte compact size")
        return struct.unpack('<H', data[offset + 1:offset + 3])[0], offset + 3
    elif first_byte == 0xfe:
        if offset + 5 > len(data):
            raise ValueError("Insufficient data for 4-byte compact size")
        return struct.unpack('<I', data[offset + 1:offset + 5])[0], offset + 5
    else:  # 0xff
        if offset + 9 > len(data):
            raise ValueError("Insufficient data for 8-byte compact size")
        return struct.unpack('<Q', data[offset + 1:offset + 9])[0], offset + 9


def compact_size_length(n: int) -> int:
    """Number of bytes the compact size encoding of n occupies."""
    if n < 0xfd:
        return 1
    elif n <= 0xffff:
        return 3
    elif n <= 0xffffffff:
        return 5
    return 9


def serialize_outpoint(txid: str, vout: int) -> bytes:
    """
    Serialize transaction outpoint.

    Args:
        txid: Transaction ID as hex string
        vout: Output index

    Returns:
        Serialized outpoint (32 bytes txid + 4 bytes vout)
    """
    # Display order txid is big endian; the wire format is little endian
    txid_bytes = bytes.fromhex(txid)[::-1]
    vout_bytes = struct.pack('<I', vout)
    return txid_bytes + vout_bytes


def parse_outpoint(data: bytes, offset: int = 0) -> Tuple[str, int, int]:
    """
    Parse transaction outpoint.

    Args:
        data: Bytes to parse
        offset: Starting offset

    Returns:
        Tuple of (txid, vout, new_offset)
    """
    if offset + 36 > len(data):
        raise ValueError("Insufficient data for outpoint")

    txid = data[offset:offset + 32][::-1].hex()
    vout = struct.unpack('<I', data[offset + 32:offset + 36])[0]

    return txid, vout, offset + 36


def serialize_output(satoshis: int, script: bytes) -> bytes:
    """
    Serialize a transaction output (u64 satoshis + varstr script).

    Args:
        satoshis: Output value
        script: Locking script bytes

    Returns:
        Serialized output
    """
    return struct.pack('<Q', satoshis) + serialize_varstr(script)


def is_txid(value) -> bool:
    """True for a 64 character hex transaction id."""
    if not isinstance(value, str) or len(value) != 64:
        return False
    try:
        bytes.fromhex(value)
        return True
    except ValueError:
        return False
