"""
Rental Ledger

Double-entry posting and reporting engine for a rental business: balanced
general-ledger postings from sales and expenses, collision-free document
numbers, and trial balances as of any date.
"""

__version__ = "1.0.0"
