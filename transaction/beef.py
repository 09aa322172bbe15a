"""
BSV Wallet Templates - BEEF Envelopes

This module implements Background Evaluation Extended Format (BRC-62, V1):
a set of Merkle proofs (BUMPs) followed by transactions in dependency order,
each flagged with the index of the BUMP that proves it, if any.

Binary layout:
    u32 version (0100beef)
    varint n_bumps, BUMPs
    varint n_txs, per transaction: raw tx, u8 has_bump, [varint bump_index]
"""

import logging
import struct
from dataclasses import dataclass
from typing import List, Optional, Union

from .exceptions import BeefError, TransactionParsingError
from .merkle_path import MerklePath, PathLeaf
from .transaction import Transaction
from .utils import parse_compact_size, serialize_compact_size


BEEF_V1 = 4022206465


@dataclass
class BeefTx:
    """A transaction carried in a BEEF, with the index of its proof."""
    tx: Transaction
    bump_index: Optional[int] = None

    @property
    def txid(self) -> str:
        return self.tx.txid()


class Beef:
    """
    BEEF V1 envelope.
    """

    def __init__(self):
        self.bumps: List[MerklePath] = []
        self.txs: List[BeefTx] = []
        self.logger = logging.getLogger(__name__)

    def find_transaction(self, txid: str) -> Optional[BeefTx]:
        for beef_tx in self.txs:
            if beef_tx.txid == txid:
                return beef_tx
        return None

    def merge_bump(self, bump: MerklePath) -> int:
        """
        Add a Merkle path, combining it with an existing one for the same block.

        Args:
            bump: Merkle path to merge

        Returns:
            Index of the BUMP now covering this path
        """
        for index, existing in enumerate(self.bumps):
            if existing.block_height == bump.block_height \
                    and existing.compute_root() == bump.compute_root():
                existing.combine(bump)
                return index
        self.bumps.append(MerklePath(bump.block_height, [
            [PathLeaf(leaf.offset, leaf.hash, leaf.txid, leaf.duplicate) for leaf in level]
            for level in bump.path
        ]))
        return len(self.bumps) - 1

    def merge_transaction(self, tx: Transaction) -> BeefTx:
        """
        Add a transaction and, unless it carries a proof, its source transactions.

        Ancestors are inserted before descendants. A transaction already
        present is not duplicated.

        Args:
            tx: Transaction to merge

        Returns:
            The BeefTx entry for the transaction

        Raises:
            BeefError: If an unproven transaction lacks a source transaction
        """
        existing = self.find_transaction(tx.txid())
        if existing is not None:
            return existing

        bump_index = None
        if tx.merkle_path is not None:
            bump_index = self.merge_bump(tx.merkle_path)
        else:
            for index, tx_input in enumerate(tx.inputs):
                if tx_input.source_transaction is None:
                    raise BeefError(
                        f"A required source transaction is missing for input {index} of {tx.txid()}"
                    )
                self.merge_transaction(tx_input.source_transaction)

        beef_tx = BeefTx(tx=tx, bump_index=bump_index)
        self.txs.append(beef_tx)
        return beef_tx

    def merge_beef(self, other: Union['Beef', bytes, List[int]]) -> 'Beef':
        """
        Merge the proofs and transactions of another BEEF.

        Args:
            other: Beef instance or its serialized bytes

        Returns:
            self
        """
        if not isinstance(other, Beef):
            other = Beef.from_bytes(bytes(other))

        index_map = {}
        for index, bump in enumerate(other.bumps):
            index_map[index] = self.merge_bump(bump)

        for beef_tx in other.txs:
            if self.find_transaction(beef_tx.txid) is not None:
                continue
            bump_index = None
            if beef_tx.bump_index is not None:
                bump_index = index_map[beef_tx.bump_index]
                beef_tx.tx.merkle_path = self.bumps[bump_index]
            self.txs.append(BeefTx(tx=beef_tx.tx, bump_index=bump_index))
        return self

    def to_bytes(self) -> bytes:
        data = struct.pack('<I', BEEF_V1)
        data += serialize_compact_size(len(self.bumps))
        for bump in self.bumps:
            data += bump.to_bytes()
        data += serialize_compact_size(len(self.txs))
        for beef_tx in self.txs:
            data += beef_tx.tx.to_bytes()
            if beef_tx.bump_index is None:
                data += b'\x00'
            else:
                data += b'\x01' + serialize_compact_size(beef_tx.bump_index)
        return data

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Beef':
        """
        Parse a BEEF V1 envelope.

        Source transactions are re-linked to the inputs that spend them.

        Args:
            data: Serialized BEEF

        Returns:
            Beef instance

        Raises:
            BeefError: On an unknown version or malformed content
        """
        if len(data) < 4:
            raise BeefError("BEEF data too short")
        version = struct.unpack('<I', data[:4])[0]
        if version != BEEF_V1:
            raise BeefError(f"Unsupported BEEF version {data[:4].hex()}")

        beef = cls()
        try:
            bump_count, offset = parse_compact_size(data, 4)
            for _ in range(bump_count):
                bump, offset = MerklePath.parse(data, offset)
                beef.bumps.append(bump)

            tx_count, offset = parse_compact_size(data, offset)
            for _ in range(tx_count):
                tx, offset = Transaction.parse(data, offset)
                has_bump = data[offset]
                offset += 1
                bump_index = None
                if has_bump:
                    bump_index, offset = parse_compact_size(data, offset)
                    if bump_index >= len(beef.bumps):
                        raise BeefError(f"Invalid bump index {bump_index}")
                    tx.merkle_path = beef.bumps[bump_index]
                for tx_input in tx.inputs:
                    parent = beef.find_transaction(tx_input.source_txid)
                    if parent is not None:
                        tx_input.source_transaction = parent.tx
                beef.txs.append(BeefTx(tx=tx, bump_index=bump_index))
        except (IndexError, ValueError, TransactionParsingError) as e:
            raise BeefError(f"Failed to parse BEEF: {e}")

        if offset != len(data):
            raise BeefError("Unexpected trailing bytes after BEEF")
        return beef

    @classmethod
    def from_hex(cls, beef_hex: str) -> 'Beef':
        return cls.from_bytes(bytes.fromhex(beef_hex))

    def __repr__(self) -> str:
        return f"Beef(bumps={len(self.bumps)}, txs={len(self.txs)})"
