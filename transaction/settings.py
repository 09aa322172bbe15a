"""
BSV Wallet Templates - Builder Settings

Defaults applied by the transaction builder when a build does not specify
them: the fee rate and the descriptions handed to the wallet.
"""

from dataclasses import dataclass

from .fee_model import DEFAULT_SAT_PER_KB


@dataclass
class BuilderSettings:
    """Fee rate and default descriptions used by TransactionBuilder."""
    sat_per_kb: float = DEFAULT_SAT_PER_KB
    default_description: str = "Transaction"
    input_description: str = "Transaction input"
    output_description: str = "Transaction output"
    change_description: str = "Change"
