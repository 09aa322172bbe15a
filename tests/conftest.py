"""
Pytest configuration and fixtures for wallet template tests.
"""

import json

import pytest

from crypto.keys import PrivateKey, sha256
from scripts.p2pkh import P2PKH
from scripts.script import UnlockingScript
from transaction.merkle_path import MerklePath, PathLeaf
from transaction.transaction import Transaction, TransactionInput, TransactionOutput
from wallet.interface import WalletInterface


class MockWallet(WalletInterface):
    """
    Deterministic BRC-100 test wallet.

    Each (protocolID, keyID, counterparty) selects the private key
    sha256(json of the selection), so the same parameters always give the
    same key. Every call is recorded in self.calls.
    """

    def __init__(self, seed: str = "test-wallet"):
        self.seed = seed
        self.calls = []

    def private_key(self, args) -> PrivateKey:
        selection = json.dumps(
            [self.seed, list(args["protocolID"]), args["keyID"], args.get("counterparty") or "self"]
        )
        return PrivateKey(sha256(selection.encode("utf-8")))

    def get_public_key(self, args):
        self.calls.append(("get_public_key", args))
        return {"publicKey": self.private_key(args).public_key().hex}

    def create_signature(self, args):
        self.calls.append(("create_signature", args))
        digest = bytes(args["hashToDirectlySign"])
        return {"signature": list(self.private_key(args).sign_digest(digest))}

    def create_action(self, args):
        self.calls.append(("create_action", args))
        return {"txid": "ab" * 32, "tx": [1, 2, 3]}

    def calls_to(self, operation: str):
        return [args for name, args in self.calls if name == operation]


class FailingWallet(MockWallet):
    """Wallet whose createAction always fails."""

    def create_action(self, args):
        self.calls.append(("create_action", args))
        raise RuntimeError("broadcast rejected")


def proven(tx: Transaction, block_height: int = 800000) -> Transaction:
    """Attach a single-transaction Merkle proof (root == txid)."""
    tx.merkle_path = MerklePath(block_height, [[PathLeaf(offset=0, hash=tx.txid(), txid=True)]])
    return tx


@pytest.fixture
def wallet():
    """Deterministic test wallet."""
    return MockWallet()


@pytest.fixture
def failing_wallet():
    """Wallet whose createAction raises."""
    return FailingWallet()


@pytest.fixture
def source_tx_factory(wallet):
    """
    Factory for proven funding transactions paying the wallet's default P2PKH key.

    Call with a list of output values and an optional nonce that makes the
    txid unique.
    """
    def make(satoshis=(10000,), nonce: int = 0, locking_script=None) -> Transaction:
        script = locking_script or P2PKH(wallet).lock()
        tx = Transaction()
        tx.add_input(TransactionInput(
            source_txid=f"{nonce:064x}",
            source_output_index=0,
            unlocking_script=UnlockingScript().write_bin(b"\x01"),
        ))
        for value in satoshis:
            tx.add_output(TransactionOutput(locking_script=script, satoshis=value))
        return proven(tx)

    return make


@pytest.fixture
def source_tx(source_tx_factory):
    """Proven funding transaction with one 10000 satoshi output."""
    return source_tx_factory()
