"""Expense ledger package."""

from src.expenses.ledger import ExpenseLedger, filter_expenses

__all__ = ["ExpenseLedger", "filter_expenses"]
