"""
BSV Wallet Templates - Ordinal P2PKH Template

1-satoshi ordinal outputs: an "ord" inscription envelope in front of a P2PKH
locking script, optionally followed by MAP metadata.

    OP_0 OP_IF "ord" OP_1 <content type> OP_0 <file data> OP_ENDIF
    [OP_CODESEPARATOR]
    OP_DUP OP_HASH160 <pkh> OP_EQUALVERIFY OP_CHECKSIG
    [OP_RETURN <MAP prefix> "SET" <key> <value> ...]
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from wallet.interface import WalletDerivationParams

from .exceptions import TemplateError
from .opcodes import OpCode
from .p2pkh import P2PKH, P2PKHUnlockTemplate
from .script import LockingScript, Script
from .templates import ScriptTemplate


ORDINAL_MAP_PREFIX = "1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5"
ORD_MARKER = b"ord"
MAP_SET_COMMAND = "SET"
MAP_RESERVED_KEY = "cmd"


@dataclass(frozen=True)
class Inscription:
    """File inscribed in an ordinal envelope."""
    data_b64: str
    content_type: str

    def __post_init__(self):
        if not self.data_b64 or not isinstance(self.data_b64, str):
            raise TemplateError("inscription.dataB64 is required and must be a base64 string")
        if not self.content_type or not isinstance(self.content_type, str):
            raise TemplateError("inscription.contentType is required and must be a string (MIME type)")

    @classmethod
    def coerce(cls, value: Union['Inscription', Mapping[str, Any]]) -> 'Inscription':
        """Accept an Inscription or a {"dataB64", "contentType"} mapping."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise TemplateError("inscription must be an object with dataB64 and contentType properties")
        return cls(data_b64=value.get("dataB64"), content_type=value.get("contentType"))

    def file_bytes(self) -> bytes:
        try:
            data = base64.b64decode(self.data_b64)
        except (binascii.Error, ValueError) as e:
            raise TemplateError(f"Invalid file data: {e}")
        if not data:
            raise TemplateError("Invalid file data")
        return data


def validate_map_metadata(metadata: Any) -> Dict[str, str]:
    """
    Validate MAP metadata.

    Args:
        metadata: Mapping with mandatory "app" and "type" keys

    Returns:
        The metadata as a plain dict

    Raises:
        TemplateError: If the mapping or a value is invalid
    """
    if not isinstance(metadata, Mapping):
        raise TemplateError("metadata must be an object")
    if not metadata.get("app") or not isinstance(metadata.get("app"), str):
        raise TemplateError("metadata.app is required and must be a string")
    if not metadata.get("type") or not isinstance(metadata.get("type"), str):
        raise TemplateError("metadata.type is required and must be a string")
    for key, value in metadata.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise TemplateError(f"metadata.{key} must be a string")
    return dict(metadata)


def apply_inscription(
    locking_script: Script,
    inscription: Optional[Inscription] = None,
    metadata: Optional[Mapping[str, str]] = None,
    with_separator: bool = False
) -> LockingScript:
    """
    Wrap a locking script with an ordinal envelope and MAP metadata.

    Args:
        locking_script: Base (P2PKH) locking script
        inscription: File to inscribe, or None for no envelope
        metadata: MAP key/values, or None
        with_separator: Insert OP_CODESEPARATOR after the envelope

    Returns:
        New locking script
    """
    result = LockingScript()

    if inscription is not None:
        result.write_opcode(OpCode.OP_0)
        result.write_opcode(OpCode.OP_IF)
        result.write_bin(ORD_MARKER)
        result.write_opcode(OpCode.OP_1)
        result.write_bin(inscription.content_type.encode("utf-8"))
        result.write_opcode(OpCode.OP_0)
        result.write_bin(inscription.file_bytes())
        result.write_opcode(OpCode.OP_ENDIF)
        if with_separator:
            result.write_opcode(OpCode.OP_CODESEPARATOR)

    result.write_script(locking_script)

    if metadata is not None:
        if not metadata.get("app") or not metadata.get("type"):
            raise TemplateError("MAP.app and MAP.type are required fields")
        result.write_opcode(OpCode.OP_RETURN)
        result.write_bin(ORDINAL_MAP_PREFIX.encode("utf-8"))
        result.write_bin(MAP_SET_COMMAND.encode("utf-8"))
        for key, value in metadata.items():
            if key == MAP_RESERVED_KEY:
                continue
            result.write_bin(key.encode("utf-8"))
            result.write_bin(value.encode("utf-8"))

    return result


class OrdinalP2PKH(ScriptTemplate):
    """
    Ordinal inscription on top of a P2PKH output.
    """

    def __init__(self, wallet: Any = None):
        super().__init__(wallet)
        self.p2pkh = P2PKH(wallet)

    def lock(
        self,
        pubkeyhash: Optional[Union[bytes, bytearray, list]] = None,
        public_key: Optional[str] = None,
        wallet_params: Optional[Union[WalletDerivationParams, dict]] = None,
        inscription: Optional[Union[Inscription, Mapping[str, Any]]] = None,
        metadata: Optional[Mapping[str, str]] = None
    ) -> LockingScript:
        """
        Create an ordinal locking script.

        Args:
            pubkeyhash: 20-byte public key hash
            public_key: Public key hex
            wallet_params: Derivation parameters for a wallet key
            inscription: Inscription or {"dataB64", "contentType"} mapping
            metadata: MAP metadata with "app" and "type"

        Returns:
            LockingScript

        Raises:
            TemplateError: On invalid inscription, metadata or key source
        """
        if inscription is not None:
            inscription = Inscription.coerce(inscription)
        if metadata is not None:
            metadata = validate_map_metadata(metadata)

        if pubkeyhash is None and public_key is None and wallet_params is None:
            raise TemplateError("One of pubkeyhash, publicKey, or walletParams is required")

        base = self.p2pkh.lock(
            pubkeyhash=pubkeyhash, public_key=public_key, wallet_params=wallet_params
        )
        return apply_inscription(base, inscription, metadata)

    def unlock(self, *args, **kwargs) -> P2PKHUnlockTemplate:
        """Ordinal outputs are spent like P2PKH; see P2PKH.unlock."""
        return self.p2pkh.unlock(*args, **kwargs)
