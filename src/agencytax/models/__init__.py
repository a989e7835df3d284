"""Database models."""
from agencytax.models.user import User
from agencytax.models.bank_account import BankAccount
from agencytax.models.category import Category, CategoryRule, CategoryType
from agencytax.models.transaction import Transaction
from agencytax.models.audit_log import AuditLog

__all__ = [
    "User",
    "BankAccount",
    "Category",
    "CategoryRule",
    "CategoryType",
    "Transaction",
    "AuditLog",
]
