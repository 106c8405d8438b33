"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the import pipeline never sees
ORM objects.
"""

from csvintake.domain import entities as domain
from csvintake.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        created_at=orm_account.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        vendor=orm_transaction.vendor,
        amount=orm_transaction.amount,
        description=orm_transaction.description,
        category_name=orm_transaction.category_name,
        category_group_name=orm_transaction.category_group_name,
        source_account=orm_transaction.source_account,
        is_starting_balance=orm_transaction.is_starting_balance,
        imported_at=orm_transaction.imported_at,
    )


def transaction_to_existing_record(transaction: domain.Transaction) -> domain.ExistingRecord:
    """Convert a stored transaction into a duplicate-detection snapshot record."""
    return domain.ExistingRecord(
        id=transaction.id,
        date=transaction.date,
        amount=transaction.amount,
        vendor=transaction.vendor,
        description=transaction.description,
        account_id=transaction.account_id,
    )
