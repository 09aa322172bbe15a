"""
Tests for the bwt Command Line Interface
"""

import base64
import json
import os

import pytest
from bitcoinlib.encoding import pubkeyhash_to_addr_base58
from click.testing import CliRunner

from cli import __version__
from cli.main import cli
from crypto.keys import PrivateKey
from scripts.p2pkh import P2PKH


PUBLIC_KEY = PrivateKey(b"\x0c" * 32).public_key()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith("BWT_"):
            monkeypatch.delenv(key)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "bwt.json"
    path.write_text("{}")
    return str(path)


@pytest.fixture
def run(config_file):
    """Invoke the CLI with an isolated configuration file."""
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["-c", config_file, *args])

    return invoke


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestMain:
    """Test the top-level group."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"bwt, version {__version__}" in result.output

    def test_help(self):
        result = CliRunner().invoke(cli, ["-h"])
        assert result.exit_code == 0
        assert "script" in result.output
        assert "config" in result.output


class TestScriptCommands:
    """Test locking script construction commands."""

    def test_p2pkh_from_public_key(self, run):
        data = _json(run("-o", "json", "script", "p2pkh", "--public-key", PUBLIC_KEY.hex))
        assert data["type"] == "P2PKH"
        assert data["size"] == 25
        assert data["hex"] == P2PKH().lock(public_key=PUBLIC_KEY.hex).to_hex()
        assert data["asm"].startswith("OP_DUP OP_HASH160")

    def test_p2pkh_from_hash(self, run):
        data = _json(run("-o", "json", "script", "p2pkh", "--pubkeyhash", "aa" * 20))
        assert data["hex"] == "76a914" + "aa" * 20 + "88ac"

    def test_p2pkh_table_output(self, run):
        result = run("script", "p2pkh", "--pubkeyhash", "aa" * 20)
        assert result.exit_code == 0
        assert result.stdout.splitlines()[0].split() == ["type", "P2PKH"]

    def test_p2pkh_key_source_required(self, run):
        result = run("script", "p2pkh")
        assert result.exit_code == 2
        assert "exactly one of --public-key or --pubkeyhash" in result.output

    def test_p2pkh_bad_hash(self, run):
        result = run("script", "p2pkh", "--pubkeyhash", "zz")
        assert result.exit_code == 2
        assert "must be a hex string" in result.output

    def test_p2pkh_invalid_public_key(self, run):
        result = run("script", "p2pkh", "--public-key", "02abcd")
        assert result.exit_code == 1
        assert "Error: Invalid public key" in result.output

    def test_ordinal_with_file_and_map(self, run, tmp_path):
        image = tmp_path / "art.txt"
        image.write_bytes(b"pixel art")

        data = _json(run(
            "-o", "json", "script", "ordinal",
            "--pubkeyhash", "bb" * 20,
            "--file", str(image), "--content-type", "text/plain",
            "--map", "app=gallery", "--map", "type=ord",
        ))
        assert data["type"] == "Ordinal"

        inspected = _json(run("-o", "json", "script", "inspect", data["hex"]))
        assert inspected["type"] == "Ordinal"
        assert inspected["inscription"] == {"content_type": "text/plain", "size": 9}
        assert inspected["map"] == {"app": "gallery", "type": "ord"}

    def test_ordinal_file_needs_content_type(self, run, tmp_path):
        image = tmp_path / "art.txt"
        image.write_bytes(b"x")
        result = run("script", "ordinal", "--pubkeyhash", "bb" * 20, "--file", str(image))
        assert result.exit_code == 2
        assert "--content-type is required" in result.output

    def test_ordinal_bad_map_pair(self, run):
        result = run("script", "ordinal", "--pubkeyhash", "bb" * 20, "--map", "novalue")
        assert result.exit_code == 2

    def test_ordinal_map_requires_app_and_type(self, run):
        result = run("script", "ordinal", "--pubkeyhash", "bb" * 20, "--map", "app=gallery")
        assert result.exit_code == 1
        assert "metadata.type" in result.output

    def test_ordlock(self, run):
        data = _json(run(
            "-o", "json", "script", "ordlock",
            "--ord-address", pubkeyhash_to_addr_base58(b"\x01" * 20, prefix=b'\x00'),
            "--pay-address", pubkeyhash_to_addr_base58(b"\x02" * 20, prefix=b'\x00'),
            "--price", "1000",
            "--asset-id", "cc" * 32 + "_0",
            "--metadata", '{"app": "market"}',
        ))
        assert data["type"] == "OrdLock"
        assert "14" + "01" * 20 in data["hex"]

    def test_ordlock_invalid_price(self, run):
        address = pubkeyhash_to_addr_base58(b"\x01" * 20, prefix=b'\x00')
        result = run(
            "script", "ordlock", "--ord-address", address, "--pay-address", address,
            "--price", "0", "--asset-id", "x",
        )
        assert result.exit_code == 1
        assert "price is required" in result.output

    def test_ordlock_metadata_must_be_object(self, run):
        address = pubkeyhash_to_addr_base58(b"\x01" * 20, prefix=b'\x00')
        result = run(
            "script", "ordlock", "--ord-address", address, "--pay-address", address,
            "--price", "1", "--asset-id", "x", "--metadata", "[1]",
        )
        assert result.exit_code == 2

    def test_op_return(self, run):
        data = _json(run("-o", "json", "script", "op-return", "", "hello", "cafe"))
        assert data["type"] == "OpReturn"
        assert data["hex"] == "6a0568656c6c6f02cafe"

    def test_op_return_twice(self, run):
        result = run("script", "op-return", "6a0100", "again")
        assert result.exit_code == 1
        assert "Error: Script already contains OP_RETURN" in result.output


class TestInspectCommand:
    """Test script inspection."""

    def test_p2pkh(self, run):
        data = _json(run("-o", "json", "script", "inspect", "76a914" + "aa" * 20 + "88ac"))
        assert data == {
            "type": "P2PKH",
            "size": 25,
            "asm": "OP_DUP OP_HASH160 " + "aa" * 20 + " OP_EQUALVERIFY OP_CHECKSIG",
        }

    def test_op_return_fields(self, run):
        data = _json(run("-o", "json", "script", "inspect", "6a0568656c6c6f"))
        assert data["type"] == "OpReturn"
        assert data["op_return"] == [base64.b64encode(b"hello").decode()]

    def test_invalid_hex(self, run):
        result = run("script", "inspect", "abc")
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestConfigCommands:
    """Test configuration commands."""

    def test_show_all(self, run):
        data = _json(run("-o", "json", "config", "show"))
        assert data["builder"]["sat_per_kb"] == 100

    def test_show_key_with_profile(self, run):
        data = _json(run("-p", "priority", "-o", "json", "config", "show", "builder.sat_per_kb"))
        assert data == {"builder.sat_per_kb": 500}

    def test_show_missing_key(self, run):
        result = run("config", "show", "builder.nothing")
        assert result.exit_code == 1
        assert "Configuration key not found: builder.nothing" in result.output

    def test_validate(self, run):
        result = run("config", "validate")
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "100 sat/kB" in result.output

    def test_validate_reports_errors(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"builder": {"sat_per_kb": -5}}))
        result = CliRunner().invoke(cli, ["-c", str(path), "config", "validate"])
        assert result.exit_code == 1
        assert "builder.sat_per_kb must be a non-negative number" in result.output

    def test_environment_override(self, run, monkeypatch):
        monkeypatch.setenv("BWT_BUILDER_SAT_PER_KB", "42")
        data = _json(run("-o", "json", "config", "show", "builder.sat_per_kb"))
        assert data == {"builder.sat_per_kb": 42}

    def test_output_format_from_config(self, tmp_path):
        path = tmp_path / "bwt.yml"
        path.write_text("cli:\n  output_format: json\n")
        result = CliRunner().invoke(cli, ["-c", str(path), "config", "show", "cli.output_format"])
        assert json.loads(result.stdout) == {"cli.output_format": "json"}

    def test_sources(self, run, monkeypatch):
        monkeypatch.setenv("BWT_CLI_VERBOSE", "0")
        result = run("-p", "economy", "config", "sources")
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["1. defaults", "2. profile:economy", "3. environment"]
