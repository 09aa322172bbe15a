"""
Tests for Crypto Signatures Module

Tests DER encoding, low-S normalization, checksig format and decoding of
wallet-returned signatures.
"""

import pytest

from crypto.exceptions import InvalidKeyError, InvalidSignatureError
from crypto.keys import CURVE_ORDER, PrivateKey, PublicKey, hash160, hash256, sha256
from crypto.signatures import (
    SIGHASH_ALL,
    SIGHASH_FORKID,
    ECDSASignature,
    TransactionSignature,
    signature_from_wallet,
)


class TestHashes:
    """Test hashing helpers."""

    def test_hash256_is_double_sha256(self):
        assert hash256(b"abc") == sha256(sha256(b"abc"))

    def test_hash160_known_vector(self):
        """HASH160 of the empty string."""
        assert hash160(b"").hex() == "b472a266d0bd89c13706a4132ccfb16f7c3b9fcb"


class TestKeys:
    """Test key wrappers."""

    def setup_method(self):
        self.private_key = PrivateKey(b"\x01" * 32)

    def test_public_key_is_compressed(self):
        public_key = self.private_key.public_key()
        assert len(public_key.bytes) == 33
        assert public_key.hex[:2] in ("02", "03")

    def test_public_key_from_hex_round_trip(self):
        public_key = self.private_key.public_key()
        assert PublicKey.from_hex(public_key.hex) == public_key

    def test_invalid_public_key_hex(self):
        with pytest.raises(InvalidKeyError):
            PublicKey.from_hex("zz")
        with pytest.raises(InvalidKeyError):
            PublicKey.from_hex("02" + "00" * 10)

    def test_sign_and_verify_digest(self):
        digest = sha256(b"message")
        signature = self.private_key.sign_digest(digest)
        public_key = self.private_key.public_key()

        assert public_key.verify_digest(signature, digest)
        assert not public_key.verify_digest(signature, sha256(b"other"))

    def test_sign_digest_requires_32_bytes(self):
        with pytest.raises(InvalidKeyError):
            self.private_key.sign_digest(b"short")

    def test_out_of_range_private_key(self):
        with pytest.raises(InvalidKeyError):
            PrivateKey(CURVE_ORDER.to_bytes(32, "big"))


class TestECDSASignature:
    """Test ECDSASignature encoding."""

    def test_der_round_trip(self):
        der = PrivateKey(b"\x02" * 32).sign_digest(sha256(b"x"))
        signature = ECDSASignature.from_der(der)
        assert signature.to_der() == der

    def test_high_r_gets_zero_padding(self):
        signature = ECDSASignature(r=0x80 << 248, s=1)
        der = signature.to_der()
        assert der[3] == 33
        assert der[4] == 0x00

    def test_normalized_low_s(self):
        high = ECDSASignature(r=1, s=CURVE_ORDER - 1)
        assert not high.is_low_s()
        low = high.normalized()
        assert low.is_low_s()
        assert low.s == 1

    def test_invalid_components(self):
        with pytest.raises(InvalidSignatureError):
            ECDSASignature(r=0, s=1)
        with pytest.raises(InvalidSignatureError):
            ECDSASignature(r=1, s=CURVE_ORDER)

    def test_invalid_der(self):
        with pytest.raises(InvalidSignatureError, match="too short"):
            ECDSASignature.from_der(b"\x30\x01")
        with pytest.raises(InvalidSignatureError, match="header"):
            ECDSASignature.from_der(b"\x31" + b"\x00" * 8)


class TestTransactionSignature:
    """Test checksig format with sighash scope."""

    def test_checksig_format_appends_scope(self):
        scope = SIGHASH_ALL | SIGHASH_FORKID
        base = ECDSASignature(r=5, s=7)
        signature = TransactionSignature.from_signature(base, scope)

        data = signature.to_checksig_format()
        assert data[-1] == 0x41
        assert data[:-1] == base.to_der()

        parsed = TransactionSignature.from_checksig_format(data)
        assert (parsed.r, parsed.s, parsed.scope) == (5, 7, 0x41)

    def test_from_signature_normalizes(self):
        signature = TransactionSignature.from_signature(
            ECDSASignature(r=3, s=CURVE_ORDER - 2), 0x41
        )
        assert signature.s == 2

    def test_invalid_scope(self):
        with pytest.raises(InvalidSignatureError):
            TransactionSignature(r=1, s=1, scope=0x100)


class TestSignatureFromWallet:
    """Test decoding of wallet signature encodings."""

    def setup_method(self):
        self.der = PrivateKey(b"\x03" * 32).sign_digest(sha256(b"wallet"))

    def test_hex_bytes_and_list_agree(self):
        from_hex = signature_from_wallet(self.der.hex())
        from_bytes = signature_from_wallet(self.der)
        from_list = signature_from_wallet(list(self.der))
        assert from_hex == from_bytes == from_list

    def test_invalid_inputs(self):
        with pytest.raises(InvalidSignatureError):
            signature_from_wallet("not hex")
        with pytest.raises(InvalidSignatureError):
            signature_from_wallet([256])
        with pytest.raises(InvalidSignatureError):
            signature_from_wallet(12345)
