"""
Script Exceptions for BSV Wallet Templates

This module defines exceptions for script parsing and template construction.
"""


class ScriptError(Exception):
    """Base exception for script errors."""
    pass


class ScriptParseError(ScriptError):
    """Raised when script bytes, hex or ASM cannot be parsed."""
    pass


class TemplateError(ScriptError):
    """Raised when a script template receives invalid parameters."""
    pass
