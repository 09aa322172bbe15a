"""
Tests for Script Inspection

Tests script classification and payload extraction for both Script objects
and hex strings.
"""

import base64

import pytest

from scripts.exceptions import ScriptParseError
from scripts.ordinal import OrdinalP2PKH
from scripts.script import Script
from scripts.validation import (
    DEFAULT_CONTENT_TYPE,
    ScriptType,
    extract_inscription_data,
    extract_map_metadata,
    extract_op_return_data,
    get_script_type,
    has_op_return_data,
    has_ord,
    is_ordinal,
    is_p2pkh,
)
from transaction.outputs.op_return import add_op_return_data


P2PKH_HEX = "76a914" + "ab" * 20 + "88ac"
# OP_0 OP_IF "ord" OP_1 "text/plain" OP_0 "hi" OP_ENDIF
ENVELOPE_HEX = "0063036f7264510a746578742f706c61696e0002686968"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class TestInputValidation:
    """Test argument checks shared by every inspection function."""

    @pytest.mark.parametrize("function", [
        is_p2pkh, has_ord, is_ordinal, has_op_return_data, get_script_type,
        extract_inscription_data, extract_map_metadata, extract_op_return_data,
    ])
    def test_rejects_bad_inputs(self, function):
        with pytest.raises(ScriptParseError, match="cannot be None"):
            function(None)
        with pytest.raises(ScriptParseError, match="cannot be a list"):
            function([0x76])
        with pytest.raises(ScriptParseError, match="valid hexadecimal"):
            function("xyz0")
        with pytest.raises(ScriptParseError, match="even length"):
            function("abc")
        with pytest.raises(ScriptParseError, match="got int"):
            function(42)

    def test_error_names_the_function(self):
        with pytest.raises(ScriptParseError, match="^is_p2pkh:"):
            is_p2pkh(None)


class TestDetection:
    """Test script shape detection."""

    def test_is_p2pkh(self):
        assert is_p2pkh(P2PKH_HEX)
        assert is_p2pkh(P2PKH_HEX.upper())
        assert is_p2pkh(Script.from_hex(P2PKH_HEX))
        assert not is_p2pkh(P2PKH_HEX + "00")
        assert not is_p2pkh(ENVELOPE_HEX + P2PKH_HEX)
        assert not is_p2pkh("")

    def test_has_ord(self):
        assert has_ord(ENVELOPE_HEX)
        assert not has_ord(P2PKH_HEX)

    def test_is_ordinal_needs_both_parts(self):
        assert is_ordinal(ENVELOPE_HEX + P2PKH_HEX)
        assert not is_ordinal(ENVELOPE_HEX)
        assert not is_ordinal(P2PKH_HEX)

    def test_has_op_return_data(self):
        assert has_op_return_data("6a0568656c6c6f")
        assert has_op_return_data(P2PKH_HEX + "6a0100")
        assert not has_op_return_data(P2PKH_HEX)
        # OP_RETURN byte inside push data does not count
        assert not has_op_return_data("016a")

    def test_has_op_return_heuristic_on_unparseable_hex(self):
        # Truncated push after OP_CHECKSIG OP_RETURN
        assert has_op_return_data("88ac6a05aa")
        assert not has_op_return_data("05aa")

    def test_script_type(self):
        assert get_script_type(ENVELOPE_HEX + P2PKH_HEX) == ScriptType.ORDINAL
        assert get_script_type(P2PKH_HEX) == ScriptType.P2PKH
        assert get_script_type("6a0568656c6c6f") == ScriptType.OP_RETURN
        assert get_script_type(P2PKH_HEX + "6a0100") == ScriptType.CUSTOM
        assert get_script_type("51") == ScriptType.CUSTOM
        assert ScriptType.ORDINAL.value == "Ordinal"


class TestInscriptionExtraction:
    """Test reading inscriptions back from ordinal scripts."""

    def test_extract_from_template(self):
        script = OrdinalP2PKH().lock(
            pubkeyhash=b"\xab" * 20,
            inscription={"dataB64": _b64(b"\x89PNG data"), "contentType": "image/png"},
        )
        inscription = extract_inscription_data(script.to_hex())
        assert inscription.content_type == "image/png"
        assert inscription.data_b64 == _b64(b"\x89PNG data")

    def test_no_envelope(self):
        assert extract_inscription_data(P2PKH_HEX) is None

    def test_default_content_type(self):
        # OP_0 OP_IF "ord" OP_0 "hi" OP_ENDIF
        inscription = extract_inscription_data("0063036f72640002686968" + P2PKH_HEX)
        assert inscription.content_type == DEFAULT_CONTENT_TYPE
        assert inscription.file_bytes() == b"hi"

    def test_missing_endif(self):
        with pytest.raises(ScriptParseError, match="missing OP_ENDIF"):
            extract_inscription_data("0063036f7264510a746578742f706c61696e00026869")

    def test_missing_body(self):
        with pytest.raises(ScriptParseError, match="Missing inscription data"):
            extract_inscription_data("0063036f7264510a746578742f706c61696e68")


class TestMapExtraction:
    """Test reading MAP metadata."""

    def test_extract(self):
        metadata = {"app": "gallery", "type": "ord", "title": "sunset"}
        script = OrdinalP2PKH().lock(pubkeyhash=b"\xab" * 20, metadata=metadata)
        assert extract_map_metadata(script) == metadata

    def test_wrong_prefix(self):
        script = add_op_return_data(Script.from_hex(P2PKH_HEX), ["other", "SET", "app", "x", "type", "y"])
        assert extract_map_metadata(script) is None

    def test_missing_type(self):
        script = add_op_return_data(
            Script.from_hex(P2PKH_HEX),
            ["1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5", "SET", "app", "gallery"],
        )
        assert extract_map_metadata(script) is None

    def test_no_op_return(self):
        assert extract_map_metadata(P2PKH_HEX) is None


class TestOpReturnExtraction:
    """Test raw OP_RETURN field extraction."""

    def test_fields_base64(self):
        script = add_op_return_data(Script.from_hex(P2PKH_HEX), ["hello", "cafe"])
        assert extract_op_return_data(script) == [_b64(b"hello"), _b64(b"\xca\xfe")]

    def test_empty_fields_are_skipped(self):
        assert extract_op_return_data("6a00") is None
        assert extract_op_return_data("6a0002aabb") == [_b64(b"\xaa\xbb")]

    def test_without_op_return(self):
        assert extract_op_return_data(P2PKH_HEX) is None
