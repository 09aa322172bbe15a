"""
BSV Wallet Templates - Merkle Paths (BUMP)

This module implements the BSV Unified Merkle Path format (BRC-74) carried in
BEEF envelopes to prove a transaction's inclusion in a block.

Binary layout:
    varint block_height
    u8 tree_height
    per level: varint n_leaves, then per leaf
        varint offset, u8 flags, [32-byte hash unless duplicate]

Flags: 0x01 duplicate (no hash), 0x02 client txid.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from crypto.keys import hash256

from .exceptions import BeefError
from .utils import parse_compact_size, serialize_compact_size


FLAG_DUPLICATE = 0x01
FLAG_TXID = 0x02


@dataclass
class PathLeaf:
    """One node of a Merkle path level. Hashes are display-order hex."""
    offset: int
    hash: Optional[str] = None
    txid: bool = False
    duplicate: bool = False


def _merkle_parent(left_hex: str, right_hex: str) -> str:
    # Display-order hex in, display-order hex out
    left = bytes.fromhex(left_hex)[::-1]
    right = bytes.fromhex(right_hex)[::-1]
    return hash256(left + right)[::-1].hex()


class MerklePath:
    """
    Merkle proof for one or more transactions of a block.
    """

    def __init__(self, block_height: int, path: List[List[PathLeaf]]):
        if not path:
            raise BeefError("Merkle path must have at least one level")
        self.block_height = block_height
        self.path = [sorted(level, key=lambda leaf: leaf.offset) for level in path]

    @classmethod
    def parse(cls, data: bytes, offset: int = 0) -> Tuple['MerklePath', int]:
        """
        Parse a BUMP starting at offset.

        Args:
            data: Bytes containing the BUMP
            offset: Starting offset

        Returns:
            Tuple of (MerklePath, new_offset)
        """
        try:
            block_height, offset = parse_compact_size(data, offset)
            tree_height = data[offset]
            offset += 1

            path = []
            for _ in range(tree_height):
                leaves = []
                leaf_count, offset = parse_compact_size(data, offset)
                for _ in range(leaf_count):
                    leaf_offset, offset = parse_compact_size(data, offset)
                    flags = data[offset]
                    offset += 1
                    if flags & FLAG_DUPLICATE:
                        leaves.append(PathLeaf(offset=leaf_offset, duplicate=True))
                        continue
                    raw = data[offset:offset + 32]
                    if len(raw) != 32:
                        raise ValueError("Insufficient data for leaf hash")
                    offset += 32
                    leaves.append(PathLeaf(
                        offset=leaf_offset,
                        hash=raw[::-1].hex(),
                        txid=bool(flags & FLAG_TXID)
                    ))
                path.append(leaves)
        except (IndexError, ValueError) as e:
            raise BeefError(f"Failed to parse merkle path: {e}")

        return cls(block_height, path), offset

    @classmethod
    def from_bytes(cls, data: bytes) -> 'MerklePath':
        merkle_path, offset = cls.parse(data, 0)
        if offset != len(data):
            raise BeefError("Unexpected trailing bytes after merkle path")
        return merkle_path

    @classmethod
    def from_hex(cls, bump_hex: str) -> 'MerklePath':
        return cls.from_bytes(bytes.fromhex(bump_hex))

    def to_bytes(self) -> bytes:
        data = serialize_compact_size(self.block_height) + bytes([len(self.path)])
        for level in self.path:
            data += serialize_compact_size(len(level))
            for leaf in level:
                data += serialize_compact_size(leaf.offset)
                if leaf.duplicate:
                    data += bytes([FLAG_DUPLICATE])
                    continue
                data += bytes([FLAG_TXID if leaf.txid else 0])
                data += bytes.fromhex(leaf.hash)[::-1]
        return data

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    def txids(self) -> List[str]:
        """Transaction ids this path proves."""
        return [leaf.hash for leaf in self.path[0] if leaf.txid and leaf.hash]

    def _find_leaf(self, height: int, offset: int) -> Optional[PathLeaf]:
        for leaf in self.path[height]:
            if leaf.offset == offset:
                return leaf
        return None

    def _find_or_compute_leaf(self, height: int, offset: int) -> Optional[PathLeaf]:
        leaf = self._find_leaf(height, offset)
        if leaf is not None or height == 0:
            return leaf

        left = self._find_or_compute_leaf(height - 1, offset * 2)
        if left is None or left.hash is None:
            return None
        right = self._find_or_compute_leaf(height - 1, offset * 2 + 1)
        if right is None:
            return None
        right_hash = left.hash if right.duplicate else right.hash
        return PathLeaf(offset=offset, hash=_merkle_parent(left.hash, right_hash))

    def compute_root(self, txid: Optional[str] = None) -> str:
        """
        Compute the Merkle root for a transaction of this path.

        Args:
            txid: Transaction id; defaults to the first hash at level 0

        Returns:
            Merkle root in display-order hex

        Raises:
            BeefError: If the txid is not in the path or a sibling is missing
        """
        if txid is None:
            first = next((leaf for leaf in self.path[0] if leaf.hash), None)
            if first is None:
                raise BeefError("Merkle path has no leaf hash at level 0")
            txid = first.hash

        leaf = next((leaf for leaf in self.path[0] if leaf.hash == txid), None)
        if leaf is None:
            raise BeefError(f"Transaction {txid} is not in the merkle path")
        index = leaf.offset

        # Single transaction block
        if len(self.path) == 1 and len(self.path[0]) == 1:
            return txid

        working = txid
        for height in range(len(self.path)):
            sibling_offset = (index >> height) ^ 1
            sibling = self._find_or_compute_leaf(height, sibling_offset)
            if sibling is None:
                raise BeefError(f"Missing hash for index {index} at height {height}")
            if sibling.duplicate:
                working = _merkle_parent(working, working)
            elif sibling_offset % 2 != 0:
                working = _merkle_parent(working, sibling.hash)
            else:
                working = _merkle_parent(sibling.hash, working)
        return working

    def combine(self, other: 'MerklePath') -> 'MerklePath':
        """
        Merge another path of the same block into this one.

        Args:
            other: Merkle path for the same block and root

        Returns:
            self

        Raises:
            BeefError: If the paths belong to different blocks
        """
        if self.block_height != other.block_height:
            raise BeefError("Cannot combine merkle paths from different blocks")
        if self.compute_root() != other.compute_root():
            raise BeefError("Cannot combine merkle paths with different roots")
        if len(self.path) != len(other.path):
            raise BeefError("Cannot combine merkle paths with different tree heights")

        for height, level in enumerate(other.path):
            existing: Dict[int, PathLeaf] = {leaf.offset: leaf for leaf in self.path[height]}
            for leaf in level:
                current = existing.get(leaf.offset)
                if current is None:
                    existing[leaf.offset] = PathLeaf(leaf.offset, leaf.hash, leaf.txid, leaf.duplicate)
                elif leaf.txid and not current.txid:
                    current.txid = True
            self.path[height] = sorted(existing.values(), key=lambda item: item.offset)
        return self

    def __repr__(self) -> str:
        return f"MerklePath(block_height={self.block_height}, levels={len(self.path)})"
