"""
Duwit - Personal Finance Tracker

Records income and expense transactions against wallets, derives
balances from the full transaction history and tracks monthly
category budgets.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Backend first, local state second (pessimistic writes)
3. A failed action never takes the app down
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Duwit Team"
