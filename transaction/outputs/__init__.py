"""
BSV Wallet Templates - Output Script Helpers

This package provides helpers that decorate output locking scripts.
"""

from .op_return import add_op_return_data, field_to_bytes, is_hex

__all__ = [
    'add_op_return_data',
    'field_to_bytes',
    'is_hex',
]
