"""
BSV Wallet Templates - Builder Input and Output Configs

Records accumulated by TransactionBuilder before a build. Each record is
tagged with the kind of input or output it describes; the tag decides which
fields the builder reads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from scripts.ordinal import Inscription
from scripts.script import LockingScript, Script
from wallet.interface import WalletDerivationParams

from .preimage import SignOutputs


class InputType(Enum):
    """Kinds of inputs the builder can spend."""
    P2PKH = "p2pkh"
    ORDINAL_P2PKH = "ordinalP2PKH"
    CUSTOM = "custom"


class OutputType(Enum):
    """Kinds of outputs the builder can create."""
    P2PKH = "p2pkh"
    ORDINAL_P2PKH = "ordinalP2PKH"
    CUSTOM = "custom"
    CHANGE = "change"


@dataclass
class InputConfig:
    """An input to spend, as recorded by the builder."""
    type: InputType
    source_transaction: Any
    source_output_index: int
    description: Optional[str] = None
    wallet_params: Optional[WalletDerivationParams] = None
    sign_outputs: SignOutputs = SignOutputs.ALL
    anyone_can_pay: bool = False
    source_satoshis: Optional[int] = None
    locking_script: Optional[Script] = None
    unlocking_script_template: Optional[Any] = None


@dataclass
class OutputConfig:
    """An output to create, as recorded by the builder."""
    type: OutputType
    satoshis: Optional[int] = None
    description: Optional[str] = None
    public_key: Optional[str] = None
    wallet_params: Optional[WalletDerivationParams] = None
    inscription: Optional[Inscription] = None
    metadata: Optional[Dict[str, str]] = None
    locking_script: Optional[LockingScript] = None
    op_return_fields: Optional[List[Any]] = None
    basket: Optional[str] = None
    custom_instructions: Optional[str] = None
