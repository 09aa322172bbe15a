"""
bwt CLI Commands Package

Command modules for the bwt CLI.
"""

__all__ = ['script', 'config']
