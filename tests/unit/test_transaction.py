"""
Tests for the Transaction Model

Tests serialization, size estimation, fee computation and change
distribution.
"""

import pytest

from crypto.keys import hash256
from scripts.p2pkh import P2PKH
from scripts.script import UnlockingScript
from transaction.exceptions import FeeError, TransactionError, TransactionParsingError
from transaction.fee_model import DEFAULT_SAT_PER_KB, SatoshisPerKilobyte
from transaction.transaction import Transaction, TransactionInput, TransactionOutput
from transaction.utils import (
    compact_size_length,
    parse_compact_size,
    serialize_compact_size,
    varstr_parse,
)


class FixedTemplate:
    """Unlocking template with a fixed estimate and a fixed script."""

    def __init__(self, length=108):
        self.length = length
        self.signed = []

    def sign(self, tx, input_index):
        self.signed.append(input_index)
        return UnlockingScript.from_bytes(b"\x51" * self.length)

    def estimate_length(self, tx, input_index):
        return self.length


class TestCompactSize:
    """Test compact size helpers."""

    @pytest.mark.parametrize("value, length", [
        (0, 1), (0xfc, 1), (0xfd, 3), (0xffff, 3), (0x10000, 5), (0x100000000, 9),
    ])
    def test_round_trip(self, value, length):
        data = serialize_compact_size(value)
        assert len(data) == length == compact_size_length(value)
        assert parse_compact_size(data) == (value, length)

    def test_truncated(self):
        with pytest.raises(ValueError):
            parse_compact_size(b"\xfd\x01")
        with pytest.raises(ValueError):
            varstr_parse(b"\x05ab")


class TestSerialization:
    """Test raw transaction encoding."""

    def setup_method(self):
        self.tx = Transaction(version=1, lock_time=0)
        self.tx.add_input(TransactionInput(
            source_txid="aa" * 32,
            source_output_index=3,
            unlocking_script=UnlockingScript().write_bin(b"\x02" * 71),
        ))
        self.tx.add_output(TransactionOutput(
            locking_script=P2PKH().lock(pubkeyhash=b"\x04" * 20), satoshis=1500
        ))

    def test_round_trip(self):
        raw = self.tx.to_hex()
        parsed = Transaction.from_hex(raw)

        assert parsed.to_hex() == raw
        assert parsed.inputs[0].source_txid == "aa" * 32
        assert parsed.inputs[0].source_output_index == 3
        assert parsed.outputs[0].satoshis == 1500

    def test_txid_is_reversed_double_sha256(self):
        assert self.tx.txid() == hash256(self.tx.to_bytes())[::-1].hex()

    def test_trailing_bytes(self):
        with pytest.raises(TransactionParsingError, match="trailing"):
            Transaction.from_bytes(self.tx.to_bytes() + b"\x00")

    def test_truncated(self):
        with pytest.raises(TransactionParsingError):
            Transaction.from_bytes(self.tx.to_bytes()[:-10])

    def test_invalid_hex(self):
        with pytest.raises(TransactionParsingError):
            Transaction.from_hex("zz")

    def test_unsigned_input_cannot_serialize(self):
        tx = Transaction()
        tx.add_input(TransactionInput(source_txid="aa" * 32))
        with pytest.raises(TransactionError, match="no unlocking script"):
            tx.to_bytes()

    def test_add_input_requires_source(self):
        with pytest.raises(TransactionError, match="reference to an input transaction"):
            Transaction().add_input(TransactionInput())
        with pytest.raises(TransactionError, match="Invalid source txid"):
            Transaction().add_input(TransactionInput(source_txid="abc"))

    def test_add_output_requires_value(self):
        script = P2PKH().lock(pubkeyhash=b"\x04" * 20)
        with pytest.raises(TransactionError, match="change must be set"):
            Transaction().add_output(TransactionOutput(locking_script=script))
        with pytest.raises(TransactionError, match="non-negative"):
            Transaction().add_output(TransactionOutput(locking_script=script, satoshis=-1))
        Transaction().add_output(TransactionOutput(locking_script=script, change=True))


class TestFees:
    """Test size estimation, fees and change distribution."""

    def setup_method(self):
        self.script = P2PKH().lock(pubkeyhash=b"\x06" * 20)

    def _tx(self, source_tx, fixed=(1000,), change_outputs=1):
        tx = Transaction()
        tx.add_input(TransactionInput(
            source_transaction=source_tx,
            source_output_index=0,
            unlocking_script_template=FixedTemplate(),
        ))
        for satoshis in fixed:
            tx.add_output(TransactionOutput(locking_script=self.script, satoshis=satoshis))
        for _ in range(change_outputs):
            tx.add_output(TransactionOutput(locking_script=self.script, change=True))
        return tx

    def test_estimate_size(self, source_tx):
        # version + count + (outpoint, sequence, script) + count + 2 outputs + lock time
        assert self._tx(source_tx).estimate_size() == 4 + 1 + (40 + 1 + 108) + 1 + 2 * 34 + 4

    def test_estimate_requires_script_or_template(self, source_tx):
        tx = Transaction()
        tx.add_input(TransactionInput(source_transaction=source_tx))
        with pytest.raises(FeeError, match="unlocking script template"):
            tx.estimate_size()

    def test_fee_rounds_up(self, source_tx):
        tx = self._tx(source_tx)
        assert SatoshisPerKilobyte(DEFAULT_SAT_PER_KB).compute_fee(tx) == 23
        assert SatoshisPerKilobyte(0).compute_fee(tx) == 0

    def test_invalid_rate(self):
        with pytest.raises(FeeError):
            SatoshisPerKilobyte(-1)
        with pytest.raises(FeeError):
            SatoshisPerKilobyte("100")

    def test_change_receives_remainder(self, source_tx):
        tx = self._tx(source_tx)
        fee = tx.fee()

        assert fee == 23
        assert tx.outputs[1].satoshis == 10000 - 1000 - 23
        assert source_tx.outputs[0].satoshis - sum(o.satoshis for o in tx.outputs) == 23

    def test_change_split_equally(self, source_tx):
        tx = self._tx(source_tx, change_outputs=2)
        fee = tx.fee()

        # 3 outputs: 261 bytes -> 27 satoshis, 8973 left over
        assert fee == 27
        assert [o.satoshis for o in tx.outputs[1:]] == [4486, 4486]

    def test_change_without_funds_is_unset(self, source_tx):
        tx = self._tx(source_tx, fixed=(9980,))
        tx.fee()
        assert tx.outputs[1].satoshis is None

    def test_change_must_exceed_one_satoshi_per_output(self, source_tx):
        # Exactly one satoshi left for one change output
        tx = self._tx(source_tx, fixed=(10000 - 23 - 1,))
        tx.fee()
        assert tx.outputs[1].satoshis is None

    def test_fee_requires_source_outputs(self):
        tx = Transaction()
        tx.add_input(TransactionInput(source_txid="aa" * 32, unlocking_script_template=FixedTemplate()))
        tx.add_output(TransactionOutput(locking_script=self.script, change=True))
        with pytest.raises(FeeError, match="source transactions are required"):
            tx.fee()

    def test_sign_runs_templates_in_order(self, source_tx_factory):
        template = FixedTemplate()
        tx = Transaction()
        for nonce in (1, 2):
            tx.add_input(TransactionInput(
                source_transaction=source_tx_factory(nonce=nonce),
                unlocking_script_template=template,
            ))
        tx.add_output(TransactionOutput(locking_script=self.script, satoshis=100))

        tx.sign()

        assert template.signed == [0, 1]
        assert all(len(i.unlocking_script.to_bytes()) == 108 for i in tx.inputs)
        assert Transaction.from_hex(tx.to_hex()).to_hex() == tx.to_hex()
