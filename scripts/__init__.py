"""
BSV Wallet Templates - Scripts Module

Script model, opcodes, and the P2PKH, OrdinalP2PKH and OrdLock templates.
Import the submodules directly (scripts.script, scripts.p2pkh, ...).
"""
