"""
Tests for OP_RETURN Data Encoder

Tests field conversion and appending OP_RETURN sections to locking scripts.
"""

import pytest

from scripts.opcodes import OpCode
from scripts.script import LockingScript, Script
from transaction.exceptions import OpReturnError
from transaction.outputs.op_return import add_op_return_data, field_to_bytes, is_hex


P2PKH_HEX = "76a914" + "cd" * 20 + "88ac"


class TestFieldConversion:
    """Test conversion of individual fields."""

    def test_is_hex(self):
        assert is_hex("deadBEEF")
        assert is_hex("")
        assert not is_hex("abc")
        assert not is_hex("hello")

    def test_text_is_utf8(self):
        assert field_to_bytes("hello") == b"hello"
        assert field_to_bytes("héllo") == "héllo".encode("utf-8")

    def test_hex_string_is_decoded(self):
        assert field_to_bytes("CAFE") == b"\xca\xfe"

    def test_bytes_and_lists(self):
        assert field_to_bytes(b"\x00\x01") == b"\x00\x01"
        assert field_to_bytes(bytearray(b"ab")) == b"ab"
        assert field_to_bytes([0, 255, 16]) == b"\x00\xff\x10"

    def test_invalid_list_values(self):
        with pytest.raises(OpReturnError, match="non-number at position 1"):
            field_to_bytes([1, "2"], index=3)
        with pytest.raises(OpReturnError, match="out of range"):
            field_to_bytes([256])
        with pytest.raises(OpReturnError, match="non-number"):
            field_to_bytes([True])

    def test_unsupported_type(self):
        with pytest.raises(OpReturnError, match="Invalid field at index 2"):
            field_to_bytes(12, index=2)


class TestAddOpReturnData:
    """Test appending OP_RETURN sections."""

    def setup_method(self):
        self.base = Script.from_hex(P2PKH_HEX)

    def test_hello_push(self):
        script = add_op_return_data(self.base, ["hello"])
        assert isinstance(script, LockingScript)
        assert script.to_hex() == P2PKH_HEX + "6a" + "05" + b"hello".hex()

    def test_base_script_is_unchanged(self):
        add_op_return_data(self.base, ["hello"])
        assert self.base.to_hex() == P2PKH_HEX

    def test_bare_op_return(self):
        script = add_op_return_data(Script(), ["a0", [1, 2]])
        assert script.to_hex() == "6a" + "01a0" + "020102"

    def test_each_field_is_one_push(self):
        script = add_op_return_data(self.base, ["app", "x" * 80, b"\x01"])
        pushes = script.chunks[6:]
        assert [c.data for c in pushes] == [b"app", b"x" * 80, b"\x01"]
        assert pushes[1].op == OpCode.OP_PUSHDATA1

    def test_empty_field_pushes_op_0(self):
        script = add_op_return_data(self.base, [""])
        assert script.to_hex().endswith("6a00")

    def test_second_op_return_rejected(self):
        once = add_op_return_data(self.base, ["hello"])
        with pytest.raises(OpReturnError, match="already contains OP_RETURN"):
            add_op_return_data(once, ["again"])

    def test_requires_fields(self):
        with pytest.raises(OpReturnError, match="At least one data field"):
            add_op_return_data(self.base, [])
        with pytest.raises(OpReturnError, match="must be an array"):
            add_op_return_data(self.base, "hello")

    def test_requires_script(self):
        with pytest.raises(OpReturnError, match="Invalid script parameter"):
            add_op_return_data(P2PKH_HEX, ["hello"])

    def test_invalid_field_leaves_no_partial_script(self):
        with pytest.raises(OpReturnError):
            add_op_return_data(self.base, ["ok", {"bad": 1}])
        assert not self.base.has_opcode(OpCode.OP_RETURN)
