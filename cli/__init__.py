"""
bwt CLI Package

Command line interface for the BSV wallet templates.
"""

__version__ = '0.1.0'
