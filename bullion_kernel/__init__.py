"""
Bullion Kernel - transaction posting engine for a bullion back office.

For every commercial metal transaction the kernel:
- Builds double-entry registry postings (cash and gold legs)
- Adjusts party multi-currency cash and gold balances
- Adjusts physical metal inventory with an audit log
- Opens fixing-price and hedge-fixing records
- Reverses all of the above on update and delete, atomically
"""

__version__ = "0.1.0"
