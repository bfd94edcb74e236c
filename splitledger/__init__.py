"""
Split Ledger - Source Package

Shared expense tracking for a household or small group. Computes how much
each member owes for an expense and records it.

DESIGN PRINCIPLES:
1. Money is counted in integer cents, never floats
2. Splits always add up to the expense total, to the cent
3. Proxies consume, guardians pay
4. An expense and its splits are saved together or not at all
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
