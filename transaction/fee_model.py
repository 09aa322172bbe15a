"""
BSV Wallet Templates - Fee Model

Satoshis-per-kilobyte fee computation over the estimated transaction size.
"""

import math

from .exceptions import FeeError


DEFAULT_SAT_PER_KB = 100


class SatoshisPerKilobyte:
    """
    Fee model charging a fixed rate per 1000 bytes, rounded up.
    """

    def __init__(self, value: float = DEFAULT_SAT_PER_KB):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise FeeError(f"Fee rate must be a non-negative number, got {value!r}")
        self.value = value

    def compute_fee(self, tx) -> int:
        """
        Compute the fee for a transaction.

        Args:
            tx: Transaction whose size is estimated

        Returns:
            Fee in satoshis
        """
        size = tx.estimate_size()
        return math.ceil((size / 1000) * self.value)

    def __repr__(self) -> str:
        return f"SatoshisPerKilobyte({self.value})"
